"""
Background ingestion tasks, one per repository.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List

from codeask.errors import IngestionInProgressError
from codeask.indexing.pipeline import IngestionPipeline, IngestionSummary

logger = logging.getLogger(__name__)


class IngestionTaskManager:
    """
    Schedules ``IngestionPipeline.run`` as asyncio tasks and keeps their handles.

    At most one ingestion per repository id is in flight; the task handle doubles as the
    cancellation token and the repository status field is the observable progress.
    """

    def __init__(self, pipeline: IngestionPipeline) -> None:
        self.pipeline = pipeline
        self._tasks: Dict[str, asyncio.Task] = {}

    def is_running(self, repository_id: str) -> bool:
        task = self._tasks.get(repository_id)
        return task is not None and not task.done()

    def schedule(self, repository_id: str) -> "asyncio.Task[IngestionSummary]":
        if self.is_running(repository_id):
            raise IngestionInProgressError(repository_id)

        task = asyncio.create_task(self.pipeline.run(repository_id), name=f"ingest:{repository_id}")
        self._tasks[repository_id] = task
        task.add_done_callback(lambda finished: self._forget(repository_id, finished))
        logger.info("Ingestion scheduled", extra={"repository_id": repository_id})
        return task

    def _forget(self, repository_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(repository_id) is task:
            del self._tasks[repository_id]
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Ingestion task crashed",
                extra={"repository_id": repository_id},
                exc_info=task.exception(),
            )

    async def cancel(self, repository_id: str) -> bool:
        task = self._tasks.get(repository_id)
        if task is None or task.done():
            return False
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.info("Ingestion cancelled", extra={"repository_id": repository_id})
        return True

    async def wait(self, repository_id: str) -> IngestionSummary | None:
        task = self._tasks.get(repository_id)
        if task is None:
            return None
        return await asyncio.shield(task)

    def running(self) -> List[str]:
        return [repository_id for repository_id, task in self._tasks.items() if not task.done()]

    async def shutdown(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()


__all__ = ["IngestionTaskManager"]
