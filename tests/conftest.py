"""
Shared fixtures and stub collaborators: deterministic embedders, synthesizers and fetchers
that never touch the network.
"""

from __future__ import annotations

import asyncio
from typing import List, Sequence

import pytest

from codeask.config import Settings
from codeask.embeddings.client import HashingEmbedder
from codeask.errors import SynthesisFailure
from codeask.indexing.index import EmbeddingIndex
from codeask.models.entities import Commit, Repository
from codeask.models.results import Answer, CommitSummary, ContextSnippet, RepositoryAnalysis
from codeask.sources.base import RepositoryInfo, SourceCommit, SourceFile
from codeask.vector_store.memory_store import InMemoryVectorStore

FAIL_MARKER = "EMBED_FAIL"


class FlakyEmbedder(HashingEmbedder):
    """Hashing embedder that raises for any text containing ``FAIL_MARKER``."""

    def __init__(self, dim: int = 64) -> None:
        super().__init__(dim=dim)
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if FAIL_MARKER in text:
            raise RuntimeError("embedding backend unavailable")
        return self.vectorize(text)


class SlowEmbedder(HashingEmbedder):
    async def embed(self, text: str) -> List[float]:
        await asyncio.sleep(10)
        return self.vectorize(text)


class StaticSynthesizer:
    """Returns a fixed answer and records what it was asked."""

    def __init__(self, answer: Answer) -> None:
        self.answer = answer
        self.calls: List[tuple] = []

    async def synthesize(self, question: str, context: Sequence[ContextSnippet], repository_description: str) -> Answer:
        self.calls.append((question, list(context), repository_description))
        return self.answer


class FailingSynthesizer:
    async def synthesize(self, question, context, repository_description) -> Answer:
        raise SynthesisFailure("model unavailable")


class FakeProvider:
    """Provider double for ingestion: configurable commit and analysis failures."""

    def __init__(self, fail_commit_shas: Sequence[str] = (), fail_analysis: bool = False) -> None:
        self.fail_commit_shas = set(fail_commit_shas)
        self.fail_analysis = fail_analysis

    async def synthesize(self, question, context, repository_description) -> Answer:
        return Answer(answer=f"answer to {question}", confidence=0.5, sources=[c.path for c in context])

    async def summarize_commit(self, commit: Commit) -> CommitSummary:
        if commit.sha in self.fail_commit_shas:
            raise SynthesisFailure("commit summary failed")
        return CommitSummary(summary=f"summary of {commit.sha}", impact="Low")

    async def analyze_repository(self, files) -> RepositoryAnalysis:
        if self.fail_analysis:
            raise SynthesisFailure("analysis failed")
        return RepositoryAnalysis(summary=f"{len(files)} files")


class FakeFetcher:
    def __init__(
        self,
        files: Sequence[SourceFile] = (),
        commits: Sequence[SourceCommit] = (),
        fail_files: bool = False,
    ) -> None:
        self.files = list(files)
        self.commits = list(commits)
        self.fail_files = fail_files

    async def resolve(self, url: str) -> RepositoryInfo:
        name = url.rstrip("/").rsplit("/", 1)[-1]
        return RepositoryInfo(name=name, full_name=f"acme/{name}", language="Python")

    async def fetch_files(self, repository: Repository) -> List[SourceFile]:
        if self.fail_files:
            raise RuntimeError("GitHub unavailable")
        return list(self.files)

    async def fetch_commits(self, repository: Repository, limit: int) -> List[SourceCommit]:
        return self.commits[:limit]


def make_file(path: str, content: str) -> SourceFile:
    return SourceFile(path=path, content=content, size=len(content), language="python")


@pytest.fixture
def embedder() -> FlakyEmbedder:
    return FlakyEmbedder()


@pytest.fixture
def store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def index(store: InMemoryVectorStore, embedder: FlakyEmbedder) -> EmbeddingIndex:
    return EmbeddingIndex(store=store, embedder=embedder, chunk_size=1000, embed_timeout=1.0)


@pytest.fixture
def offline_settings() -> Settings:
    return Settings(
        ai_provider="offline",
        source_fetcher="local",
        vector_store_backend="memory",
        stream_token_delay_ms=0,
        hashing_embedding_dim=64,
    )


@pytest.fixture
def repository() -> Repository:
    return Repository(name="shop", full_name="acme/shop", url="https://github.com/acme/shop", language="Python")
