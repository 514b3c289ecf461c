"""
Streaming protocol events and their server-sent-events encoding.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, List, Union

from pydantic import BaseModel, Field


class StreamEventType(str, Enum):
    TOKEN = "token"
    DONE = "done"
    ERROR = "error"


class TokenEvent(BaseModel):
    chunk: str

    @property
    def event(self) -> StreamEventType:
        return StreamEventType.TOKEN

    def payload(self) -> Dict[str, Any]:
        return {"chunk": self.chunk}


class DoneEvent(BaseModel):
    sources: List[str] = Field(default_factory=list)
    confidence: float = 0.0

    @property
    def event(self) -> StreamEventType:
        return StreamEventType.DONE

    def payload(self) -> Dict[str, Any]:
        return {"sources": self.sources, "confidence": self.confidence}


class ErrorEvent(BaseModel):
    message: str

    @property
    def event(self) -> StreamEventType:
        return StreamEventType.ERROR

    def payload(self) -> Dict[str, Any]:
        return {"error": self.message}


StreamEvent = Union[TokenEvent, DoneEvent, ErrorEvent]


def is_terminal(event: StreamEvent) -> bool:
    return not isinstance(event, TokenEvent)


def encode_sse(event: StreamEvent) -> str:
    """Render one event as a ``text/event-stream`` frame."""
    return f"event: {event.event.value}\ndata: {json.dumps(event.payload(), ensure_ascii=False)}\n\n"


__all__ = [
    "StreamEventType",
    "TokenEvent",
    "DoneEvent",
    "ErrorEvent",
    "StreamEvent",
    "is_terminal",
    "encode_sse",
]
