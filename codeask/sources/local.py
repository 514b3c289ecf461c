"""
Source fetcher for a repository checked out on local disk.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import List

from codeask.config import settings
from codeask.errors import ValidationError
from codeask.models.entities import Repository
from codeask.sources.base import RepositoryInfo, SourceCommit, SourceFile, is_text_path, language_for_path

logger = logging.getLogger(__name__)

SKIP_DIRS = {".git", "node_modules", "__pycache__", ".venv", "venv", "dist", "build", ".mypy_cache", ".pytest_cache"}

_RECORD_SEP = "\x1e"
_FIELD_SEP = "\x1f"


class LocalSourceFetcher:
    def __init__(self, max_file_size: int = settings.max_file_size_bytes) -> None:
        self.max_file_size = max_file_size

    @staticmethod
    def _root(url: str) -> Path:
        root = Path(url).expanduser()
        if not root.is_dir():
            raise ValidationError("Repository path is not a directory", field="url", details={"url": url})
        return root

    async def resolve(self, url: str) -> RepositoryInfo:
        root = self._root(url).resolve()
        return RepositoryInfo(name=root.name, full_name=root.name)

    async def fetch_files(self, repository: Repository) -> List[SourceFile]:
        root = self._root(repository.url)
        return await asyncio.to_thread(self._walk, root)

    def _walk(self, root: Path) -> List[SourceFile]:
        files: List[SourceFile] = []
        for path in sorted(root.rglob("*")):
            if not path.is_file() or any(part in SKIP_DIRS for part in path.relative_to(root).parts):
                continue
            relative = path.relative_to(root).as_posix()
            size = path.stat().st_size
            if size > self.max_file_size or not is_text_path(relative):
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Failed to read file", extra={"path": relative, "error": str(exc)})
                continue
            files.append(SourceFile(path=relative, content=content, size=size, language=language_for_path(relative)))
        return files

    async def fetch_commits(self, repository: Repository, limit: int) -> List[SourceCommit]:
        root = self._root(repository.url)
        if limit <= 0 or not (root / ".git").exists() or shutil.which("git") is None:
            return []

        process = await asyncio.create_subprocess_exec(
            "git",
            "-C",
            str(root),
            "log",
            f"-n{limit}",
            "--numstat",
            f"--pretty=format:{_RECORD_SEP}%H{_FIELD_SEP}%an{_FIELD_SEP}%ae{_FIELD_SEP}%aI{_FIELD_SEP}%s",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            logger.warning("git log failed", extra={"path": str(root), "stderr": stderr.decode(errors="replace")[:200]})
            return []
        return parse_git_log(stdout.decode("utf-8", errors="replace"))


def parse_git_log(output: str) -> List[SourceCommit]:
    """Parse ``git log --numstat`` output produced with the record/field separators above."""
    commits: List[SourceCommit] = []
    for record in output.split(_RECORD_SEP):
        if not record.strip():
            continue
        header, _, stat_block = record.partition("\n")
        fields = header.split(_FIELD_SEP)
        if len(fields) != 5:
            continue
        sha, author, email, date, subject = fields
        additions = deletions = 0
        for line in stat_block.splitlines():
            parts = line.split("\t")
            if len(parts) != 3:
                continue
            # binary files report "-"
            if parts[0].isdigit():
                additions += int(parts[0])
            if parts[1].isdigit():
                deletions += int(parts[1])
        commits.append(
            SourceCommit(
                sha=sha,
                message=subject,
                author=author,
                author_email=email or None,
                date=datetime.fromisoformat(date) if date else None,
                additions=additions,
                deletions=deletions,
            )
        )
    return commits


__all__ = ["LocalSourceFetcher", "parse_git_log"]
