"""
Ingestion pipeline: fetch a repository, chunk, embed and index its files, summarise
recent commits, analyse the whole repository and flip its status to ``ready``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List

from tqdm import tqdm

from codeask.config import settings
from codeask.errors import IngestionStepFailure
from codeask.indexing.index import EmbeddingIndex
from codeask.llm.provider import CommitSummarizer, RepositoryAnalyzer
from codeask.models.entities import Commit, RepositoryFile, RepositoryStatus, utcnow
from codeask.observability.metrics import MetricsRegistry
from codeask.sources.base import SourceCommit, SourceFetcher, SourceFile
from codeask.storage.memory import InMemoryStorage

logger = logging.getLogger(__name__)


def document_id_for(repository_id: str, path: str) -> str:
    return f"{repository_id}_{path}"


@dataclass
class IngestionSummary:
    repository_id: str
    status: RepositoryStatus
    files_indexed: int = 0
    files_failed: int = 0
    chunks_indexed: int = 0
    commits_summarized: int = 0
    elapsed_sec: float = 0.0
    error: str | None = None


class IngestionPipeline:
    """
    Runs detached from any request, so fatal failures surface through the repository
    status rather than as exceptions. Per-file and per-commit failures are skipped.
    """

    def __init__(
        self,
        storage: InMemoryStorage,
        fetcher: SourceFetcher,
        index: EmbeddingIndex,
        summarizer: CommitSummarizer,
        analyzer: RepositoryAnalyzer,
        commit_limit: int = settings.commit_limit,
        show_progress: bool = settings.show_progress,
        step_timeout: float = settings.synthesis_timeout_sec,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self.storage = storage
        self.fetcher = fetcher
        self.index = index
        self.summarizer = summarizer
        self.analyzer = analyzer
        self.commit_limit = commit_limit
        self.show_progress = show_progress
        self.step_timeout = step_timeout
        self.metrics = metrics or MetricsRegistry()

    async def run(self, repository_id: str) -> IngestionSummary:
        started = time.monotonic()
        summary = IngestionSummary(repository_id=repository_id, status=RepositoryStatus.PROCESSING)
        try:
            repository = await self.storage.update_repository(
                repository_id, status=RepositoryStatus.PROCESSING, error=None
            )

            try:
                files = await self.fetcher.fetch_files(repository)
            except Exception as exc:
                raise IngestionStepFailure("fetch_files", f"Failed to fetch files: {exc}") from exc

            self.index.clear_repository(repository_id)
            await self.storage.delete_repository_files(repository_id)
            await self.storage.delete_repository_commits(repository_id)

            await self._index_files(repository_id, files, summary)
            await self._summarize_commits(repository, summary)

            try:
                analysis = await asyncio.wait_for(self.analyzer.analyze_repository(files), timeout=self.step_timeout)
            except Exception as exc:
                raise IngestionStepFailure("analyze_repository", f"Repository analysis failed: {exc}") from exc

            await self.storage.update_repository(
                repository_id,
                status=RepositoryStatus.READY,
                file_count=summary.files_indexed,
                last_analyzed=utcnow(),
                analysis=analysis,
            )
            summary.status = RepositoryStatus.READY
        except asyncio.CancelledError:
            await self._mark_error(repository_id, "ingestion cancelled", summary)
            raise
        except IngestionStepFailure as exc:
            logger.error(
                "Ingestion step failed",
                extra={"repository_id": repository_id, "step": exc.step, "error_msg": exc.message},
            )
            await self._mark_error(repository_id, exc.message, summary)
        except Exception as exc:
            logger.exception("Ingestion failed", extra={"repository_id": repository_id})
            await self._mark_error(repository_id, str(exc) or type(exc).__name__, summary)
        finally:
            summary.elapsed_sec = time.monotonic() - started
            self.metrics.inc(f"ingestion.{summary.status.value}")
            self.metrics.inc("ingestion.files_indexed", summary.files_indexed)
            self.metrics.inc("ingestion.files_failed", summary.files_failed)

        logger.info(
            "Ingestion finished",
            extra={
                "repository_id": repository_id,
                "status": summary.status.value,
                "files_indexed": summary.files_indexed,
                "files_failed": summary.files_failed,
                "chunks_indexed": summary.chunks_indexed,
                "commits_summarized": summary.commits_summarized,
                "elapsed_sec": round(summary.elapsed_sec, 2),
            },
        )
        return summary

    async def _index_files(self, repository_id: str, files: List[SourceFile], summary: IngestionSummary) -> None:
        for file in tqdm(files, desc="Indexing", unit="files", disable=not self.show_progress):
            try:
                await self.storage.create_repository_file(
                    RepositoryFile(
                        repository_id=repository_id,
                        path=file.path,
                        content=file.content,
                        language=file.language,
                        size=file.size,
                    )
                )
                summary.chunks_indexed += await self.index.add_document(
                    document_id_for(repository_id, file.path),
                    file.content,
                    {"path": file.path, "language": file.language},
                )
                summary.files_indexed += 1
            except Exception as exc:
                summary.files_failed += 1
                logger.warning(
                    "Failed to index file",
                    extra={"repository_id": repository_id, "path": file.path, "error_msg": str(exc)},
                )

    async def _summarize_commits(self, repository, summary: IngestionSummary) -> None:
        try:
            commits: List[SourceCommit] = await self.fetcher.fetch_commits(repository, self.commit_limit)
        except Exception as exc:
            logger.warning(
                "Failed to fetch commits", extra={"repository_id": repository.id, "error_msg": str(exc)}
            )
            return

        for source in commits:
            commit = Commit(
                repository_id=repository.id,
                sha=source.sha,
                message=source.message,
                author=source.author,
                author_email=source.author_email,
                date=source.date,
                additions=source.additions,
                deletions=source.deletions,
            )
            try:
                result = await asyncio.wait_for(self.summarizer.summarize_commit(commit), timeout=self.step_timeout)
                await self.storage.create_commit(commit.model_copy(update={"ai_summary": result.summary}))
                summary.commits_summarized += 1
            except Exception as exc:
                logger.warning(
                    "Failed to summarise commit",
                    extra={"repository_id": repository.id, "sha": source.sha, "error_msg": str(exc)},
                )

    async def _mark_error(self, repository_id: str, message: str, summary: IngestionSummary) -> None:
        summary.status = RepositoryStatus.ERROR
        summary.error = message
        repository = await self.storage.get_repository(repository_id)
        if repository is not None:
            await self.storage.update_repository(repository_id, status=RepositoryStatus.ERROR, error=message)


__all__ = ["IngestionPipeline", "IngestionSummary", "document_id_for"]
