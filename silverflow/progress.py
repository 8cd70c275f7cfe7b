"""
Progress sinks.

The engine writes ordered, human-readable progress text to a sink and never
reads it back. LLM output is forwarded chunk by chunk as it streams.
"""

import sys
from typing import List, Optional, TextIO


class ProgressSink:
    """Write-only destination for progress output."""

    def emit(self, text: str) -> None:
        raise NotImplementedError

    def line(self, text: str = "") -> None:
        """Emit text terminated by a newline."""
        self.emit(f"{text}\n")


class NullSink(ProgressSink):
    """Discards everything."""

    def emit(self, text: str) -> None:
        pass


class CollectingSink(ProgressSink):
    """Keeps every emitted chunk in order."""

    def __init__(self):
        self.chunks: List[str] = []

    def emit(self, text: str) -> None:
        self.chunks.append(text)

    @property
    def text(self) -> str:
        return "".join(self.chunks)

    def lines(self) -> List[str]:
        return self.text.splitlines()


class StreamSink(ProgressSink):
    """Writes to a text stream (stdout by default), flushing each chunk."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    def emit(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()
