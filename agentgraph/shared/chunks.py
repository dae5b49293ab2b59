"""
Framing helper for the streaming sink.

Nodes demarcate structured sections (thinking, tool output, environment
info) by sending begin/content/end chunks through the same sink. A section
is a six-backtick fence tagged with its type, e.g. ``[md|thinking]``.
"""

from typing import Callable

from .models import StreamChunk

FENCE = "``````"


class ChunkSender:
    """Fluent writer of framed sections onto a `send_chunk` sink."""

    def __init__(self, send_chunk: Callable[[StreamChunk], None]):
        self._send = send_chunk

    def start(self, section_type: str) -> "ChunkSender":
        self._send(StreamChunk(content=f"\n{FENCE}{section_type}\n"))
        return self

    def content(self, text: str) -> "ChunkSender":
        self._send(StreamChunk(content=text))
        return self

    def finish(self) -> "ChunkSender":
        self._send(StreamChunk(content=f"\n{FENCE}\n"))
        return self

    def send_chunk(self, chunk: StreamChunk) -> None:
        """Pass-through so the sender itself can be handed to `ILLMClient.send`."""
        self._send(chunk)

    def section(self, section_type: str, text: str) -> "ChunkSender":
        return self.start(section_type).content(text).finish()
