"""16-bit additive checksum used by the WQV-1 link.

The checksum is the plain sum of all bytes, wrapping at 2**16. It is
computed over the unescaped ``[address, command, payload...]`` bytes.
"""

from __future__ import annotations

SUM16_MASK = 0xFFFF


def sum16(data: bytes | bytearray) -> int:
    """Return the 16-bit wrapping sum of *data*."""
    return sum(data) & SUM16_MASK
