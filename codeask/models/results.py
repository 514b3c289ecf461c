"""
Results produced by the AI collaborators and the retriever.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class Answer(BaseModel):
    """Full answer returned by the synthesizer."""

    answer: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    sources: List[str] = Field(default_factory=list)


class CommitSummary(BaseModel):
    summary: str = ""
    impact: str = ""
    files_affected: List[str] = Field(default_factory=list)


class RepositoryAnalysis(BaseModel):
    summary: str = ""
    insights: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    primary_language: str | None = None
    framework: str | None = None
    build_tool: str | None = None
    dependencies: int | str | None = None


class ContextSnippet(BaseModel):
    """A retrieved chunk projected down to what the synthesizer needs."""

    path: str
    content: str


__all__ = ["Answer", "CommitSummary", "RepositoryAnalysis", "ContextSnippet"]
