"""Exception hierarchy for the WQV link.

All errors raised by the link engine derive from :class:`WQVError`, so a
caller can abort a session with a single ``except`` clause. Any of them
means the exchange has to be restarted from the greeting.
"""

from __future__ import annotations


class WQVError(Exception):
    """Base class for every error raised by this package."""


class LinkIOError(WQVError, OSError):
    """The serial channel failed to read or write."""


class LinkTimeoutError(LinkIOError):
    """No bytes arrived within the channel timeout."""


class FramingError(WQVError, ValueError):
    """A delimited frame could not be decoded."""


class ChecksumError(FramingError):
    """The trailing 16-bit sum of a frame does not match its contents."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Checksum mismatch: frame says 0x{expected:04X}, "
            f"computed 0x{actual:04X}"
        )
        self.expected = expected
        self.actual = actual


class ProtocolError(WQVError):
    """The device sent something the exchange does not allow here."""


class DataError(WQVError, ValueError):
    """The transferred image payload is malformed."""
