"""
Source fetcher interface and the shapes it yields.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath
from typing import Dict, List, Protocol

from codeask.models.entities import Repository

LANGUAGE_BY_EXTENSION: Dict[str, str] = {
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".java": "java",
    ".kt": "kotlin",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".c": "c",
    ".h": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".swift": "swift",
    ".scala": "scala",
    ".sh": "shell",
    ".sql": "sql",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".vue": "vue",
    ".md": "markdown",
    ".json": "json",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".toml": "toml",
    ".xml": "xml",
}

# Extensionless files worth indexing
TEXT_FILENAMES = {"Dockerfile", "Makefile", "README", "LICENSE", "Procfile"}
TEXT_EXTENSIONS = set(LANGUAGE_BY_EXTENSION) | {".txt", ".cfg", ".ini", ".env.example", ".gitignore"}


@dataclass(frozen=True)
class RepositoryInfo:
    name: str
    full_name: str
    description: str | None = None
    language: str | None = None


@dataclass(frozen=True)
class SourceFile:
    path: str
    content: str
    size: int
    language: str | None = None


@dataclass(frozen=True)
class SourceCommit:
    sha: str
    message: str
    author: str
    author_email: str | None = None
    date: datetime | None = None
    additions: int = 0
    deletions: int = 0


class SourceFetcher(Protocol):
    async def resolve(self, url: str) -> RepositoryInfo:
        ...

    async def fetch_files(self, repository: Repository) -> List[SourceFile]:
        ...

    async def fetch_commits(self, repository: Repository, limit: int) -> List[SourceCommit]:
        ...


def language_for_path(path: str) -> str | None:
    return LANGUAGE_BY_EXTENSION.get(PurePosixPath(path).suffix.lower())


def is_text_path(path: str) -> bool:
    name = PurePosixPath(path).name
    if name in TEXT_FILENAMES:
        return True
    suffix = PurePosixPath(path).suffix.lower()
    return suffix in TEXT_EXTENSIONS or name in TEXT_EXTENSIONS


__all__ = [
    "RepositoryInfo",
    "SourceFile",
    "SourceCommit",
    "SourceFetcher",
    "language_for_path",
    "is_text_path",
    "LANGUAGE_BY_EXTENSION",
]
