"""Shared fixtures: a scripted in-memory serial channel."""

from __future__ import annotations

import pytest

from casio_wqv_mcp.errors import LinkTimeoutError


class ScriptedChannel:
    """Channel that replays a fixed list of reads and records writes.

    Each script item is either bytes returned by one ``read`` call or an
    exception raised by it. Reads larger than the requested size are
    split across calls. An exhausted script behaves like a timeout.
    """

    def __init__(self, reads):
        self._reads = list(reads)
        self.written: list[bytes] = []
        self.read_calls = 0

    @property
    def remaining(self) -> int:
        return len(self._reads)

    def read(self, size: int) -> bytes:
        self.read_calls += 1
        if not self._reads:
            raise LinkTimeoutError("script exhausted")
        item = self._reads.pop(0)
        if isinstance(item, BaseException):
            raise item
        if len(item) > size:
            self._reads.insert(0, item[size:])
            item = item[:size]
        return item

    def write(self, data: bytes) -> int:
        self.written.append(bytes(data))
        return len(data)


@pytest.fixture
def make_channel():
    """Factory for :class:`ScriptedChannel` instances."""
    return ScriptedChannel
