"""Frame synchronisation over the raw serial byte stream.

The IR dongle delivers bytes in arbitrary chunks: a single read may hold
line noise, half a frame, or the end of one frame followed by the start
of the next. :class:`LinkReader` turns that stream into frame bodies (the
still-escaped bytes between BOF and EOF) and carries any bytes that follow
an EOF over to the next call.
"""

from __future__ import annotations

import logging
from typing import Protocol

import tenacity

from ..errors import LinkIOError, LinkTimeoutError
from .framing import BOF, EOF

logger = logging.getLogger(__name__)

READ_SIZE = 1024
READ_RETRIES = 3
RETRY_WAIT_S = 0.05
MAX_EMPTY_READS = 64


class Channel(Protocol):
    """Blocking duplex byte channel with a bounded read timeout."""

    def read(self, size: int) -> bytes: ...

    def write(self, data: bytes) -> int | None: ...


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, OSError) and not isinstance(exc, LinkTimeoutError)


def _log_read_retry(retry_state: tenacity.RetryCallState) -> None:
    logger.warning(
        "Channel read failed (attempt %d): %s",
        retry_state.attempt_number,
        retry_state.outcome.exception() if retry_state.outcome else "unknown",
    )


class LinkReader:
    """Extracts delimited frame bodies from a channel.

    Usage::

        reader = LinkReader(port)
        body = reader.read_frame_body()
        frame = parse_frame(body)
    """

    def __init__(
        self,
        channel: Channel,
        read_size: int = READ_SIZE,
        retries: int = READ_RETRIES,
        retry_wait: float = RETRY_WAIT_S,
        max_empty_reads: int = MAX_EMPTY_READS,
    ) -> None:
        self._channel = channel
        self._read_size = read_size
        self._max_empty_reads = max_empty_reads
        self._retryer = tenacity.Retrying(
            stop=tenacity.stop_after_attempt(retries),
            wait=tenacity.wait_incrementing(start=retry_wait, increment=retry_wait),
            retry=tenacity.retry_if_exception(_is_transient),
            before_sleep=_log_read_retry,
            reraise=True,
        )
        self.residual = b""

    def _read_chunk(self) -> bytes:
        try:
            return bytes(self._retryer(self._channel.read, self._read_size))
        except LinkIOError:
            raise
        except OSError as e:
            raise LinkIOError(f"Channel read failed: {e}") from e

    def read_frame_body(self) -> bytes:
        """Block until one complete frame has been seen and return its body.

        Bytes before the first BOF are discarded as noise. Bytes after the
        closing EOF are kept in :attr:`residual` for the next call.

        Raises:
            LinkIOError: If the channel keeps failing after retries.
            LinkTimeoutError: If the channel times out or stays silent for
                too many consecutive reads.
        """
        frame = bytearray()
        started = False
        empty_reads = 0

        while True:
            if self.residual:
                buf, self.residual = self.residual, b""
                logger.debug("Using %d bytes left over from the last read", len(buf))
            else:
                buf = self._read_chunk()
                if not buf:
                    empty_reads += 1
                    if empty_reads >= self._max_empty_reads:
                        raise LinkTimeoutError(
                            f"No data after {empty_reads} consecutive empty reads"
                        )
                    continue
                empty_reads = 0

            for i, byte in enumerate(buf):
                if not started:
                    started = byte == BOF
                elif byte == EOF:
                    self.residual = buf[i + 1 :]
                    return bytes(frame)
                else:
                    frame.append(byte)
