"""
Tests for the ingestion pipeline and the background task manager.
"""

import asyncio
from datetime import datetime, timezone

import pytest

from codeask.errors import IngestionInProgressError
from codeask.indexing.pipeline import IngestionPipeline, document_id_for
from codeask.indexing.tasks import IngestionTaskManager
from codeask.models.entities import Repository, RepositoryStatus
from codeask.sources.base import SourceCommit
from codeask.storage.memory import InMemoryStorage
from tests.conftest import FAIL_MARKER, FakeFetcher, FakeProvider, make_file


def _commit(sha: str, day: int) -> SourceCommit:
    return SourceCommit(
        sha=sha,
        message=f"commit {sha}",
        author="dev",
        date=datetime(2024, 1, day, tzinfo=timezone.utc),
        additions=3,
        deletions=1,
    )


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher(
        files=[
            make_file("auth.py", "def login(user, password):\n    return True"),
            make_file("db.py", "def connect():\n    pass"),
        ],
        commits=[_commit("aaa", 1), _commit("bbb", 2)],
    )


def _pipeline(storage, fetcher, index, provider=None) -> IngestionPipeline:
    provider = provider or FakeProvider()
    return IngestionPipeline(
        storage=storage,
        fetcher=fetcher,
        index=index,
        summarizer=provider,
        analyzer=provider,
        commit_limit=10,
        step_timeout=1.0,
    )


async def _registered(storage, repository) -> Repository:
    return await storage.create_repository(repository)


class TestIngestionPipeline:
    @pytest.mark.asyncio
    async def test_successful_run_marks_ready(self, storage, fetcher, index, store, repository):
        await _registered(storage, repository)

        summary = await _pipeline(storage, fetcher, index).run(repository.id)

        stored = await storage.get_repository(repository.id)
        assert summary.status is RepositoryStatus.READY
        assert stored.status is RepositoryStatus.READY
        assert stored.file_count == 2
        assert stored.last_analyzed is not None
        assert stored.analysis.summary == "2 files"
        assert sorted(store.ids()) == sorted(
            [f"{document_id_for(repository.id, 'auth.py')}_chunk_0", f"{document_id_for(repository.id, 'db.py')}_chunk_0"]
        )
        assert len(await storage.get_repository_files(repository.id)) == 2

    @pytest.mark.asyncio
    async def test_commits_are_summarised_newest_first(self, storage, fetcher, index, repository):
        await _registered(storage, repository)

        summary = await _pipeline(storage, fetcher, index).run(repository.id)

        commits = await storage.get_repository_commits(repository.id)
        assert summary.commits_summarized == 2
        assert [c.sha for c in commits] == ["bbb", "aaa"]
        assert commits[0].ai_summary == "summary of bbb"

    @pytest.mark.asyncio
    async def test_failing_file_is_skipped(self, storage, index, store, repository):
        fetcher = FakeFetcher(
            files=[
                make_file("one.py", "print('one')"),
                make_file("two.py", f"{FAIL_MARKER}"),
                make_file("three.py", "print('three')"),
            ]
        )
        await _registered(storage, repository)

        summary = await _pipeline(storage, fetcher, index).run(repository.id)

        assert summary.status is RepositoryStatus.READY
        assert (summary.files_indexed, summary.files_failed) == (2, 1)
        assert (await storage.get_repository(repository.id)).file_count == 2
        assert not any("two.py" in chunk_id for chunk_id in store.ids())
        results = await index.search("print", limit=10, prefix=f"{repository.id}_")
        assert sorted(r.chunk.path for r in results) == ["one.py", "three.py"]

    @pytest.mark.asyncio
    async def test_failing_commit_summary_is_skipped(self, storage, fetcher, index, repository):
        await _registered(storage, repository)

        summary = await _pipeline(storage, fetcher, index, FakeProvider(fail_commit_shas=["aaa"])).run(repository.id)

        assert summary.status is RepositoryStatus.READY
        assert [c.sha for c in await storage.get_repository_commits(repository.id)] == ["bbb"]

    @pytest.mark.asyncio
    async def test_fetch_failure_marks_error(self, storage, index, repository):
        await _registered(storage, repository)

        summary = await _pipeline(storage, FakeFetcher(fail_files=True), index).run(repository.id)

        stored = await storage.get_repository(repository.id)
        assert summary.status is RepositoryStatus.ERROR
        assert stored.status is RepositoryStatus.ERROR
        assert "GitHub unavailable" in stored.error

    @pytest.mark.asyncio
    async def test_analysis_failure_marks_error(self, storage, fetcher, index, repository):
        await _registered(storage, repository)

        await _pipeline(storage, fetcher, index, FakeProvider(fail_analysis=True)).run(repository.id)

        assert (await storage.get_repository(repository.id)).status is RepositoryStatus.ERROR

    @pytest.mark.asyncio
    async def test_reingestion_replaces_previous_chunks(self, storage, fetcher, index, store, repository):
        await _registered(storage, repository)
        pipeline = _pipeline(storage, fetcher, index)
        await pipeline.run(repository.id)

        fetcher.files = [make_file("auth.py", "def login(user):\n    return True")]
        await pipeline.run(repository.id)

        assert store.ids() == [f"{repository.id}_auth.py_chunk_0"]
        assert len(await storage.get_repository_files(repository.id)) == 1
        assert len(await storage.get_repository_commits(repository.id)) == 2

    @pytest.mark.asyncio
    async def test_other_repositories_are_untouched(self, storage, fetcher, index, store, repository):
        await index.add_document("other_keep.py", "keep me", {"path": "keep.py"})
        await _registered(storage, repository)

        await _pipeline(storage, fetcher, index).run(repository.id)

        assert "other_keep.py_chunk_0" in store.ids()


class BlockingFetcher(FakeFetcher):
    def __init__(self) -> None:
        super().__init__(files=[make_file("a.py", "x = 1")])
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def fetch_files(self, repository):
        self.started.set()
        await self.release.wait()
        return await super().fetch_files(repository)


class TestIngestionTaskManager:
    @pytest.mark.asyncio
    async def test_second_schedule_is_rejected_while_running(self, storage, index, repository):
        fetcher = BlockingFetcher()
        await _registered(storage, repository)
        manager = IngestionTaskManager(_pipeline(storage, fetcher, index))

        manager.schedule(repository.id)
        await fetcher.started.wait()

        assert manager.is_running(repository.id)
        with pytest.raises(IngestionInProgressError):
            manager.schedule(repository.id)

        fetcher.release.set()
        summary = await manager.wait(repository.id)
        assert summary.status is RepositoryStatus.READY
        assert not manager.is_running(repository.id)

    @pytest.mark.asyncio
    async def test_cancel_marks_repository_error(self, storage, index, repository):
        fetcher = BlockingFetcher()
        await _registered(storage, repository)
        manager = IngestionTaskManager(_pipeline(storage, fetcher, index))

        manager.schedule(repository.id)
        await fetcher.started.wait()

        assert await manager.cancel(repository.id) is True
        stored = await storage.get_repository(repository.id)
        assert stored.status is RepositoryStatus.ERROR
        assert stored.error == "ingestion cancelled"
        assert manager.running() == []

    @pytest.mark.asyncio
    async def test_cancel_unknown_repository_is_noop(self, storage, fetcher, index):
        manager = IngestionTaskManager(_pipeline(storage, fetcher, index))

        assert await manager.cancel("missing") is False
        assert await manager.wait("missing") is None

    @pytest.mark.asyncio
    async def test_shutdown_cancels_everything(self, storage, index, repository):
        fetcher = BlockingFetcher()
        await _registered(storage, repository)
        manager = IngestionTaskManager(_pipeline(storage, fetcher, index))
        task = manager.schedule(repository.id)
        await fetcher.started.wait()

        await manager.shutdown()

        assert task.cancelled()
        assert manager.running() == []
