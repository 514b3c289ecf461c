"""
Application state: the one place where concrete collaborators are chosen and wired.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from codeask.config import Settings, settings as default_settings
from codeask.embeddings.client import Embedder, HashingEmbedder, OpenAIEmbedder
from codeask.indexing.index import EmbeddingIndex
from codeask.indexing.pipeline import IngestionPipeline
from codeask.indexing.tasks import IngestionTaskManager
from codeask.llm.provider import AIProvider, OfflineProvider, OpenAIProvider
from codeask.observability.metrics import MetricsRegistry
from codeask.rag.pipeline import QAService
from codeask.rag.retriever import ContextRetriever
from codeask.sources import get_source_fetcher
from codeask.sources.base import SourceFetcher
from codeask.storage.memory import InMemoryStorage
from codeask.transcripts.service import TranscriptService
from codeask.vector_store import get_vector_store
from codeask.vector_store.base import VectorStore

logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    settings: Settings
    storage: InMemoryStorage
    fetcher: SourceFetcher
    provider: AIProvider
    index: EmbeddingIndex
    retriever: ContextRetriever
    qa: QAService
    pipeline: IngestionPipeline
    tasks: IngestionTaskManager
    transcripts: TranscriptService
    metrics: MetricsRegistry

    async def aclose(self) -> None:
        await self.tasks.shutdown()


def get_embedder(config: Settings) -> Embedder:
    if config.ai_provider == "offline":
        return HashingEmbedder(dim=config.hashing_embedding_dim)
    return OpenAIEmbedder(model=config.embedding_model_name)


def get_ai_provider(config: Settings) -> AIProvider:
    if config.ai_provider == "offline":
        return OfflineProvider()
    return OpenAIProvider(model=config.llm_model_name)


def build_container(
    config: Settings | None = None,
    *,
    store: VectorStore | None = None,
    embedder: Embedder | None = None,
    provider: AIProvider | None = None,
    fetcher: SourceFetcher | None = None,
    storage: InMemoryStorage | None = None,
    token_delay: float | None = None,
) -> AppContainer:
    """
    Build every component from ``config``. Keyword overrides replace individual
    collaborators (tests pass stubs this way).
    """
    config = config or default_settings
    storage = storage or InMemoryStorage()
    metrics = MetricsRegistry()
    provider = provider or get_ai_provider(config)
    fetcher = fetcher or get_source_fetcher(config)
    index = EmbeddingIndex(
        store=store or get_vector_store(config),
        embedder=embedder or get_embedder(config),
        chunk_size=config.chunk_size_chars,
        embed_timeout=config.embedding_timeout_sec,
    )
    retriever = ContextRetriever(index, top_k=config.context_top_k)
    qa = QAService(
        retriever,
        provider,
        storage,
        synthesis_timeout=config.synthesis_timeout_sec,
        token_delay=token_delay if token_delay is not None else config.stream_token_delay_ms / 1000,
        metrics=metrics,
    )
    pipeline = IngestionPipeline(
        storage=storage,
        fetcher=fetcher,
        index=index,
        summarizer=provider,
        analyzer=provider,
        commit_limit=config.commit_limit,
        show_progress=config.show_progress,
        step_timeout=config.synthesis_timeout_sec,
        metrics=metrics,
    )
    container = AppContainer(
        settings=config,
        storage=storage,
        fetcher=fetcher,
        provider=provider,
        index=index,
        retriever=retriever,
        qa=qa,
        pipeline=pipeline,
        tasks=IngestionTaskManager(pipeline),
        transcripts=TranscriptService(storage, index, provider, synthesis_timeout=config.synthesis_timeout_sec),
        metrics=metrics,
    )
    logger.info(
        "Container built",
        extra={
            "ai_provider": config.ai_provider,
            "vector_store": config.vector_store_backend,
            "source_fetcher": config.source_fetcher,
        },
    )
    return container


__all__ = ["AppContainer", "build_container", "get_embedder", "get_ai_provider"]
