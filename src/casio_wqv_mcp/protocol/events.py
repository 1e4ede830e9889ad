"""Progress events emitted while a photo is downloaded."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Union


@dataclass(frozen=True)
class HandshakeProgress:
    """A handshake (or session close) reply has been sent."""

    packets: int


@dataclass(frozen=True)
class ChunkReceived:
    """A data chunk arrived; *offset* is its position in the image blob."""

    offset: int
    chunk: bytes

    def __repr__(self) -> str:
        return f"ChunkReceived(offset={self.offset}, len={len(self.chunk)})"


DownloadEvent = Union[HandshakeProgress, ChunkReceived]
EventSink = Callable[[DownloadEvent], None]


def discard(_event: DownloadEvent) -> None:
    """Sink that ignores every event."""
