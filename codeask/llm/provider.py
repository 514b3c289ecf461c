"""
AI capabilities used by the retrieval core and ingestion: answer synthesis, commit
summaries and whole-repository analysis.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections import Counter
from typing import Any, Dict, List, Protocol, Sequence, Set

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError as PydanticValidationError

from codeask.config import settings
from codeask.errors import SynthesisFailure
from codeask.models.entities import Commit
from codeask.models.results import Answer, CommitSummary, ContextSnippet, RepositoryAnalysis
from codeask.sources.base import SourceFile

logger = logging.getLogger(__name__)

DEFAULT_LLM_MODEL = settings.llm_model_name
ANALYSIS_SAMPLE_FILES = 10
ANALYSIS_SAMPLE_CHARS = 500

_WORD = re.compile(r"\w+")


class Synthesizer(Protocol):
    async def synthesize(
        self,
        question: str,
        context: Sequence[ContextSnippet],
        repository_description: str,
    ) -> Answer:
        ...


class CommitSummarizer(Protocol):
    async def summarize_commit(self, commit: Commit) -> CommitSummary:
        ...


class RepositoryAnalyzer(Protocol):
    async def analyze_repository(self, files: Sequence[SourceFile]) -> RepositoryAnalysis:
        ...


class AIProvider(Synthesizer, CommitSummarizer, RepositoryAnalyzer, Protocol):
    pass


class OpenAIProvider:
    """Chat-completion backed provider; every call asks for a JSON object at temperature 0."""

    def __init__(self, model: str = DEFAULT_LLM_MODEL, client: AsyncOpenAI | None = None) -> None:
        self.model = model
        if client is None:
            api_key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else None
            client = AsyncOpenAI(api_key=api_key)
        self.client = client

    async def synthesize(
        self,
        question: str,
        context: Sequence[ContextSnippet],
        repository_description: str,
    ) -> Answer:
        files = "\n\n".join(f"File: {item.path}\n{item.content}" for item in context)
        user_prompt = "\n\n".join(
            [
                "Answer this question about the codebase using the provided context.",
                f"Repository context: {repository_description}",
                f"Question: {question}",
                f"Relevant files:\n{files or '(no indexed files matched)'}",
                "Provide your answer in JSON format:",
                json.dumps(
                    {
                        "answer": "Detailed answer to the question",
                        "confidence": "number between 0 and 1",
                        "sources": ["path/of/file.py"],
                    },
                    indent=2,
                ),
            ]
        )
        messages = [
            {
                "role": "system",
                "content": (
                    "You are an expert software engineer helping developers understand their codebase. "
                    "Answer only from the provided code context and cite the file paths you used."
                ),
            },
            {"role": "user", "content": user_prompt},
        ]
        payload = await self._complete(messages, max_tokens=1000, what="answer")
        answer = self._validate(Answer, _coerce_answer(payload), what="answer")
        if not answer.answer:
            raise SynthesisFailure("Synthesizer returned an empty answer")
        return answer

    async def summarize_commit(self, commit: Commit) -> CommitSummary:
        user_prompt = "\n\n".join(
            [
                "Analyze this commit and provide a summary in JSON format.",
                f"Commit message: {commit.message}\nLines added: {commit.additions}\nLines deleted: {commit.deletions}",
                json.dumps(
                    {
                        "summary": "Clear explanation of what this commit does",
                        "impact": "High/Medium/Low",
                        "files_affected": ["category of files likely affected"],
                    },
                    indent=2,
                ),
            ]
        )
        messages = [
            {"role": "system", "content": "You are a code reviewer summarising git commits concisely and accurately."},
            {"role": "user", "content": user_prompt},
        ]
        payload = await self._complete(messages, max_tokens=300, what="commit summary")
        return self._validate(CommitSummary, payload, what="commit summary")

    async def analyze_repository(self, files: Sequence[SourceFile]) -> RepositoryAnalysis:
        structure = "\n".join(f.path for f in files)
        samples = "\n\n".join(
            f"{f.path}:\n{f.content[:ANALYSIS_SAMPLE_CHARS]}" for f in files[:ANALYSIS_SAMPLE_FILES]
        )
        user_prompt = "\n\n".join(
            [
                "Analyze this codebase and provide insights in JSON format.",
                f"File structure:\n{structure}",
                f"Sample file contents:\n{samples}",
                json.dumps(
                    {
                        "summary": "Brief overview of the project",
                        "insights": ["Key insight"],
                        "recommendations": ["Recommendation"],
                        "primary_language": "Main programming language",
                        "framework": "Primary framework if applicable",
                        "build_tool": "Build tool if identifiable",
                        "dependencies": "estimated dependency count",
                    },
                    indent=2,
                ),
            ]
        )
        messages = [
            {"role": "system", "content": "You are a senior software architect analysing codebases."},
            {"role": "user", "content": user_prompt},
        ]
        payload = await self._complete(messages, max_tokens=1000, what="repository analysis")
        return self._validate(RepositoryAnalysis, payload, what="repository analysis")

    async def _complete(self, messages: List[dict], max_tokens: int, what: str) -> Dict[str, Any]:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=0.0,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        except OpenAIError as exc:
            raise SynthesisFailure(f"Failed to generate {what}", {"model": self.model, "error": str(exc)}) from exc
        raw = response.choices[0].message.content if response.choices else None
        parsed = _parse_llm_response(raw)
        if parsed is None:
            raise SynthesisFailure(f"Unparseable {what} response", {"raw": (raw or "")[:200]})
        return parsed

    @staticmethod
    def _validate(model, payload: Dict[str, Any], what: str):
        try:
            return model.model_validate(payload)
        except PydanticValidationError as exc:
            raise SynthesisFailure(f"Malformed {what} response", {"error": str(exc)}) from exc


class OfflineProvider:
    """
    Deterministic provider that needs no network.

    Answers are extractive: they point at the retrieved files and quote the lines that
    share the most words with the question.
    """

    async def synthesize(
        self,
        question: str,
        context: Sequence[ContextSnippet],
        repository_description: str,
    ) -> Answer:
        sources = list(dict.fromkeys(item.path for item in context))
        if not sources:
            return Answer(
                answer=f"No indexed content in {repository_description} matched the question.",
                confidence=0.0,
                sources=[],
            )

        terms = {word for word in _WORD.findall(question.lower()) if len(word) > 2}
        lines = [f"Relevant code in {repository_description}:"]
        for item in context:
            best = _best_line(item.content, terms)
            lines.append(f"- {item.path}: {best}" if best else f"- {item.path}")
        confidence = round(min(1.0, 0.3 + 0.2 * len(sources)), 2)
        return Answer(answer="\n".join(lines), confidence=confidence, sources=sources)

    async def summarize_commit(self, commit: Commit) -> CommitSummary:
        changed = commit.additions + commit.deletions
        impact = "High" if changed > 500 else "Medium" if changed > 50 else "Low"
        first_line = commit.message.strip().splitlines()[0] if commit.message.strip() else "(no message)"
        return CommitSummary(summary=first_line, impact=impact, files_affected=[])

    async def analyze_repository(self, files: Sequence[SourceFile]) -> RepositoryAnalysis:
        languages = Counter(f.language for f in files if f.language)
        primary = languages.most_common(1)[0][0] if languages else None
        summary = f"{len(files)} files" + (f", mostly {primary}" if primary else "")
        return RepositoryAnalysis(
            summary=summary,
            insights=[f"{lang}: {count} files" for lang, count in languages.most_common(3)],
            primary_language=primary,
        )


def _best_line(content: str, terms: Set[str]) -> str:
    best, best_score = "", 0
    for line in content.splitlines():
        score = sum(1 for word in _WORD.findall(line.lower()) if word in terms)
        if score > best_score:
            best, best_score = line.strip(), score
    return best


def _coerce_answer(payload: Dict[str, Any]) -> Dict[str, Any]:
    # models sometimes return confidence as a string or outside [0, 1]
    data = dict(payload)
    try:
        data["confidence"] = max(0.0, min(1.0, float(data.get("confidence", 0.0))))
    except (TypeError, ValueError):
        data["confidence"] = 0.0
    sources = data.get("sources") or []
    data["sources"] = [str(s) for s in sources] if isinstance(sources, list) else [str(sources)]
    return data


def _parse_llm_response(raw: str | None) -> Dict[str, Any] | None:
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


async def synthesize_with_deadline(
    synthesizer: Synthesizer,
    question: str,
    context: Sequence[ContextSnippet],
    repository_description: str,
    timeout: float,
) -> Answer:
    """Run one synthesis call; any error or an elapsed deadline becomes ``SynthesisFailure``."""
    try:
        return await asyncio.wait_for(
            synthesizer.synthesize(question, context, repository_description),
            timeout=timeout,
        )
    except SynthesisFailure:
        raise
    except asyncio.TimeoutError as exc:
        raise SynthesisFailure("Answer synthesis timed out", {"timeout_sec": timeout}) from exc
    except Exception as exc:
        raise SynthesisFailure("Failed to answer question", {"error": str(exc)}) from exc


__all__ = [
    "Synthesizer",
    "CommitSummarizer",
    "RepositoryAnalyzer",
    "AIProvider",
    "OpenAIProvider",
    "OfflineProvider",
    "synthesize_with_deadline",
]
