"""
Application configuration loaded from environment variables.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralised application settings."""

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    openai_api_key: SecretStr | None = Field(default=None, alias="OPENAI_API_KEY")
    llm_model_name: str = Field(default="gpt-4.1-mini", alias="LLM_MODEL_NAME")
    embedding_model_name: str = Field(default="text-embedding-3-small", alias="EMBEDDING_MODEL_NAME")

    ai_provider: Literal["openai", "offline"] = Field(default="openai", alias="AI_PROVIDER")
    hashing_embedding_dim: int = Field(default=256, gt=0, alias="HASHING_EMBEDDING_DIM")

    vector_store_backend: str = Field(default="memory", alias="VECTOR_STORE_BACKEND")
    vector_store_path: str | None = Field(default=None, alias="VECTOR_STORE_PATH")

    chunk_size_chars: int = Field(default=1000, gt=0, alias="CHUNK_SIZE_CHARS")
    context_top_k: int = Field(default=3, gt=0, alias="CONTEXT_TOP_K")
    stream_token_delay_ms: int = Field(default=15, ge=0, alias="STREAM_TOKEN_DELAY_MS")

    embedding_timeout_sec: float = Field(default=30.0, gt=0, alias="EMBEDDING_TIMEOUT_SEC")
    synthesis_timeout_sec: float = Field(default=60.0, gt=0, alias="SYNTHESIS_TIMEOUT_SEC")

    source_fetcher: Literal["github", "local"] = Field(default="github", alias="SOURCE_FETCHER")
    github_token: SecretStr | None = Field(default=None, alias="GITHUB_TOKEN")
    github_api_url: str = Field(default="https://api.github.com", alias="GITHUB_API_URL")
    max_file_size_bytes: int = Field(default=100_000, gt=0, alias="MAX_FILE_SIZE_BYTES")
    commit_limit: int = Field(default=20, ge=0, alias="COMMIT_LIMIT")

    show_progress: bool = Field(default=False, alias="SHOW_PROGRESS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")


settings = Settings()


def setup_logging(level: str | None = None) -> logging.Logger:
    """
    Configure base logging for the app.
    """
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
    )
    return logging.getLogger("codeask")


def public_settings() -> Dict[str, Any]:
    """
    Return settings without secrets for safe logging/inspection.
    """
    return settings.model_dump(
        exclude={"openai_api_key", "github_token"},
        exclude_none=True,
    )


__all__ = ["Settings", "settings", "setup_logging", "public_settings"]
