"""
Error kinds shared by the retrieval core, ingestion and the HTTP layer.
"""

from __future__ import annotations

from typing import Any, Dict


class CodeAskError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str, details: Dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(CodeAskError):
    """Missing or malformed input. Never retried."""

    def __init__(self, message: str, field: str | None = None, details: Dict[str, Any] | None = None) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class NotFoundError(CodeAskError):
    """A referenced entity does not exist."""


class RepositoryNotFoundError(NotFoundError):
    def __init__(self, repository_id: str) -> None:
        super().__init__(f"Repository not found: {repository_id}", {"repository_id": repository_id})


class NotReadyError(CodeAskError):
    """Repository is not yet queryable; the caller may retry later."""

    def __init__(self, repository_id: str, status: str) -> None:
        super().__init__(
            "Repository is still being processed",
            {"repository_id": repository_id, "status": status},
        )


class EmbeddingFailure(CodeAskError):
    """The embedding function errored or timed out."""


class SynthesisFailure(CodeAskError):
    """The answer synthesis (or summarisation) call errored or timed out."""


class IngestionStepFailure(CodeAskError):
    """A fatal ingestion step failed; the repository moves to ``error``."""

    def __init__(self, step: str, message: str, details: Dict[str, Any] | None = None) -> None:
        details = details or {}
        details["step"] = step
        super().__init__(message, details)
        self.step = step


class IngestionInProgressError(CodeAskError):
    """An ingestion for the same repository is already running."""

    def __init__(self, repository_id: str) -> None:
        super().__init__("Ingestion already in progress", {"repository_id": repository_id})


__all__ = [
    "CodeAskError",
    "ValidationError",
    "NotFoundError",
    "RepositoryNotFoundError",
    "NotReadyError",
    "EmbeddingFailure",
    "SynthesisFailure",
    "IngestionStepFailure",
    "IngestionInProgressError",
]
