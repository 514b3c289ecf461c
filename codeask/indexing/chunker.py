"""
Text chunking utilities.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from codeask.config import settings

CHUNK_SIZE_CHARS = settings.chunk_size_chars


@dataclass(frozen=True)
class TextChunk:
    content: str
    start_line: int
    end_line: int


def split_into_chunks(content: str, max_length: int = CHUNK_SIZE_CHARS) -> List[TextChunk]:
    """
    Split ``content`` into runs of whole lines of at most ``max_length`` characters.

    Line numbers are 1-based and inclusive. The bound is soft: a single line longer
    than ``max_length`` becomes its own chunk instead of being cut mid-statement. A buffer
    whose text is still empty (only a seeded blank line) is never emitted on its own.
    """
    if max_length <= 0:
        raise ValueError("max_length must be positive")
    if not content:
        return []

    chunks: List[TextChunk] = []
    buffer: List[str] = []
    buffer_len = 0
    start_line = 1

    for line_no, line in enumerate(content.split("\n"), start=1):
        candidate_len = buffer_len + 1 + len(line) if buffer else len(line)
        if buffer_len and candidate_len > max_length:
            chunks.append(TextChunk("\n".join(buffer), start_line, line_no - 1))
            buffer = [line]
            buffer_len = len(line)
            start_line = line_no
        else:
            buffer.append(line)
            buffer_len = candidate_len

    if buffer_len:
        chunks.append(TextChunk("\n".join(buffer), start_line, start_line + len(buffer) - 1))

    return chunks


__all__ = ["TextChunk", "split_into_chunks", "CHUNK_SIZE_CHARS"]
