"""
Tests for the answer stream coordinator and the SSE encoding of its events.
"""

import json

import pytest

from codeask.errors import EmbeddingFailure
from codeask.models.results import Answer
from codeask.rag.events import DoneEvent, ErrorEvent, TokenEvent, encode_sse, is_terminal
from codeask.rag.retriever import ContextRetriever
from codeask.rag.streaming import AnswerStreamCoordinator, StreamState, normalize_question, tokenize_answer
from tests.conftest import FailingSynthesizer, StaticSynthesizer


async def _collect(coordinator, question, repository):
    return [event async for event in coordinator.stream(question, repository)]


@pytest.fixture
def retriever(index):
    return ContextRetriever(index, top_k=3)


class TestTokenizeAnswer:
    def test_whitespace_runs_are_tokens(self):
        assert tokenize_answer("hello world") == ["hello", " ", "world"]

    def test_concatenation_restores_answer(self):
        answer = "  def login():\n\n    return True  "
        assert "".join(tokenize_answer(answer)) == answer

    def test_empty_answer_has_no_tokens(self):
        assert tokenize_answer("") == []

    def test_normalize_question_collapses_whitespace(self):
        assert normalize_question("  how   does\nlogin work? ") == "how does login work?"
        assert normalize_question(None) == ""


class TestAnswerStreamCoordinator:
    @pytest.mark.asyncio
    async def test_tokens_then_done(self, retriever, repository):
        synthesizer = StaticSynthesizer(Answer(answer="hello world", confidence=0.8, sources=["a.py"]))
        coordinator = AnswerStreamCoordinator(retriever, synthesizer, token_delay=0)

        events = await _collect(coordinator, "what?", repository)

        assert events == [
            TokenEvent(chunk="hello"),
            TokenEvent(chunk=" "),
            TokenEvent(chunk="world"),
            DoneEvent(sources=["a.py"], confidence=0.8),
        ]
        assert coordinator.state is StreamState.DONE

    @pytest.mark.asyncio
    async def test_synthesizer_receives_context_and_description(self, index, retriever, repository):
        await index.add_document(f"{repository.id}_auth.py", "def login(user, password):", {"path": "auth.py"})
        synthesizer = StaticSynthesizer(Answer(answer="ok", confidence=0.5, sources=["auth.py"]))

        await _collect(AnswerStreamCoordinator(retriever, synthesizer, token_delay=0), "login?", repository)

        question, context, description = synthesizer.calls[0]
        assert question == "login?"
        assert [snippet.path for snippet in context] == ["auth.py"]
        assert description == "Repository: acme/shop (Python)"

    @pytest.mark.asyncio
    async def test_question_reaches_synthesizer_as_asked(self, retriever, repository):
        synthesizer = StaticSynthesizer(Answer(answer="ok", confidence=0.5))
        question = "  why does\n    login   fail?\n"

        await _collect(AnswerStreamCoordinator(retriever, synthesizer, token_delay=0), question, repository)

        assert synthesizer.calls[0][0] == "why does\n    login   fail?"

    @pytest.mark.asyncio
    async def test_synthesis_failure_emits_single_error(self, retriever, repository):
        coordinator = AnswerStreamCoordinator(retriever, FailingSynthesizer(), token_delay=0)

        events = await _collect(coordinator, "what?", repository)

        assert events == [ErrorEvent(message="model unavailable")]
        assert coordinator.state is StreamState.ERRORED

    @pytest.mark.asyncio
    async def test_unexpected_error_is_reported_generically(self, retriever, repository):
        class Broken:
            async def synthesize(self, question, context, repository_description):
                raise KeyError("boom")

        events = await _collect(AnswerStreamCoordinator(retriever, Broken(), token_delay=0), "what?", repository)

        assert len(events) == 1
        assert isinstance(events[0], ErrorEvent)

    @pytest.mark.asyncio
    async def test_blank_question_emits_error_without_synthesis(self, retriever, repository):
        synthesizer = StaticSynthesizer(Answer(answer="unused", confidence=1.0))

        events = await _collect(AnswerStreamCoordinator(retriever, synthesizer), "   ", repository)

        assert events == [ErrorEvent(message="Question must not be empty")]
        assert synthesizer.calls == []

    @pytest.mark.asyncio
    async def test_retrieval_failure_still_answers(self, retriever, repository, monkeypatch):
        async def fail(*args, **kwargs):
            raise EmbeddingFailure("down")

        monkeypatch.setattr(retriever.index, "search", fail)
        synthesizer = StaticSynthesizer(Answer(answer="no context", confidence=0.1))

        events = await _collect(AnswerStreamCoordinator(retriever, synthesizer, token_delay=0), "q", repository)

        assert synthesizer.calls[0][1] == []
        assert isinstance(events[-1], DoneEvent)

    @pytest.mark.asyncio
    async def test_exactly_one_terminal_event_last(self, retriever, repository):
        synthesizer = StaticSynthesizer(Answer(answer="a b c d", confidence=0.4))

        events = await _collect(AnswerStreamCoordinator(retriever, synthesizer, token_delay=0), "q", repository)

        assert [is_terminal(e) for e in events] == [False] * (len(events) - 1) + [True]

    @pytest.mark.asyncio
    async def test_closing_stream_stops_emission(self, retriever, repository):
        synthesizer = StaticSynthesizer(Answer(answer="one two three four", confidence=0.4))
        coordinator = AnswerStreamCoordinator(retriever, synthesizer, token_delay=0.01)
        events = coordinator.stream("q", repository)

        first = await events.__anext__()
        await events.aclose()

        assert first == TokenEvent(chunk="one")
        assert coordinator.state is StreamState.ERRORED
        with pytest.raises(StopAsyncIteration):
            await events.__anext__()

    @pytest.mark.asyncio
    async def test_coordinator_is_single_use(self, retriever, repository):
        coordinator = AnswerStreamCoordinator(retriever, StaticSynthesizer(Answer(answer="x", confidence=0.1)), token_delay=0)
        await _collect(coordinator, "q", repository)

        with pytest.raises(RuntimeError):
            await _collect(coordinator, "q", repository)


class TestEncodeSse:
    def test_token_frame(self):
        frame = encode_sse(TokenEvent(chunk="héllo"))

        assert frame == 'event: token\ndata: {"chunk": "héllo"}\n\n'

    def test_done_frame(self):
        frame = encode_sse(DoneEvent(sources=["a.py"], confidence=0.5))
        event_line, data_line, _, _ = frame.split("\n")

        assert event_line == "event: done"
        assert json.loads(data_line.removeprefix("data: ")) == {"sources": ["a.py"], "confidence": 0.5}

    def test_error_frame(self):
        assert encode_sse(ErrorEvent(message="bad")) == 'event: error\ndata: {"error": "bad"}\n\n'
