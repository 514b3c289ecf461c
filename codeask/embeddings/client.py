"""
Embedding clients: OpenAI embeddings API and an offline hashing embedder.
"""

from __future__ import annotations

import hashlib
import math
import re
from typing import List, Protocol, Sequence

from openai import AsyncOpenAI, OpenAIError

from codeask.config import settings
from codeask.errors import EmbeddingFailure

DEFAULT_EMBEDDING_MODEL = settings.embedding_model_name
DEFAULT_EMBED_BATCH_SIZE = 64
DEFAULT_HASHING_DIM = settings.hashing_embedding_dim

_TOKEN_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*|\d+")


class Embedder(Protocol):
    async def embed(self, text: str) -> List[float]:
        ...


class OpenAIEmbedder:
    def __init__(
        self,
        model: str = DEFAULT_EMBEDDING_MODEL,
        batch_size: int = DEFAULT_EMBED_BATCH_SIZE,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self.batch_size = batch_size
        api_key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else None
        self.client = client or AsyncOpenAI(api_key=api_key)

    async def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []

        embeddings: List[List[float]] = []
        for i in range(0, len(texts), self.batch_size):
            batch = list(texts[i : i + self.batch_size])
            try:
                response = await self.client.embeddings.create(model=self.model, input=batch)
            except OpenAIError as exc:
                raise EmbeddingFailure("Failed to generate embedding", {"model": self.model, "error": str(exc)}) from exc
            embeddings.extend([item.embedding for item in response.data])
        return embeddings

    async def embed(self, text: str) -> List[float]:
        vectors = await self.embed_texts([text])
        if not vectors:
            raise EmbeddingFailure("Embedding response was empty", {"model": self.model})
        return vectors[0]


class HashingEmbedder:
    """
    Deterministic bag-of-words embedder for offline use and tests.

    Identifiers are split on camelCase and snake_case boundaries, each token is hashed
    into one of ``dim`` buckets with a hash-derived sign, and the vector is L2-normalised.
    Identical text always yields the identical vector; text with no tokens yields zeros.
    """

    def __init__(self, dim: int = DEFAULT_HASHING_DIM) -> None:
        if dim <= 0:
            raise ValueError("dim must be positive")
        self.dim = dim

    async def embed(self, text: str) -> List[float]:
        return self.vectorize(text)

    def vectorize(self, text: str) -> List[float]:
        vector = [0.0] * self.dim
        for token in _tokenize(text):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "big") % self.dim
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign

        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0.0:
            return vector
        return [v / norm for v in vector]


def _tokenize(text: str) -> List[str]:
    tokens: List[str] = []
    for raw in _TOKEN_PATTERN.findall(text):
        for part in raw.split("_"):
            if not part:
                continue
            pieces = re.findall(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|\d+", part) or [part]
            tokens.extend(piece.lower() for piece in pieces)
    return tokens


__all__ = ["Embedder", "OpenAIEmbedder", "HashingEmbedder", "DEFAULT_EMBEDDING_MODEL"]
