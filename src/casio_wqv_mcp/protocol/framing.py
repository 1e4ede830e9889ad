"""Frame builder and parser for the WQV-1 infrared link.

Frame layout on the wire::

    +------+---------+---------+-------------------+-------------+-------------+------+
    | BOF  | Address | Command | Escaped payload   | Checksum hi | Checksum lo | EOF  |
    | 0xC0 | 1 byte  | 1 byte  | variable length   | 1 byte      | 1 byte      | 0xC1 |
    +------+---------+---------+-------------------+-------------+-------------+------+

- Checksum: 16-bit wrapping sum of the *unescaped* address, command and
  payload bytes, big-endian.
- Escaping: a payload byte equal to BOF, EOF or ESC (0x7D) is sent as
  ``ESC, byte ^ 0x20``.
- Address, command and checksum bytes are written as-is, even when they
  collide with a reserved byte. The watch expects exactly this, so the
  encoder must not escape them.

On receive the whole interior (everything between BOF and EOF) is
unescaped before it is split up.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import ChecksumError, FramingError
from ..utils.checksum import sum16

BOF = 0xC0
EOF = 0xC1
ESC = 0x7D
ESC_XOR = 0x20

RESERVED_BYTES = frozenset((BOF, EOF, ESC))

MIN_FRAME_SIZE = 4  # address + command + 2 checksum bytes


@dataclass
class Frame:
    """A decoded link frame."""

    address: int
    command: int
    payload: bytes = b""

    def __repr__(self) -> str:
        return (
            f"Frame(address=0x{self.address:02X}, command=0x{self.command:02X}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def escape(data: bytes) -> bytes:
    """Escape every reserved byte in *data*."""
    out = bytearray()
    for b in data:
        if b in RESERVED_BYTES:
            out.append(ESC)
            out.append(b ^ ESC_XOR)
        else:
            out.append(b)
    return bytes(out)


def unescape(data: bytes) -> bytes:
    """Reverse :func:`escape`.

    Raises:
        FramingError: If the data ends in the middle of an escape sequence.
    """
    out = bytearray()
    it = iter(data)
    for b in it:
        if b == ESC:
            nxt = next(it, None)
            if nxt is None:
                raise FramingError("Truncated escape sequence at end of frame")
            out.append(nxt ^ ESC_XOR)
        else:
            out.append(b)
    return bytes(out)


def build_frame(address: int, command: int, payload: bytes = b"") -> bytes:
    """Build the wire form of a single frame.

    Args:
        address: Concrete destination address byte.
        command: Single-byte command.
        payload: Command-specific payload bytes (unescaped).

    Returns:
        The delimited, escaped, checksummed frame ready to write.
    """
    if not 0 <= address <= 0xFF:
        raise ValueError(f"Address must be 0-255, got {address}")
    if not 0 <= command <= 0xFF:
        raise ValueError(f"Command must be 0-255, got {command}")

    checksum = sum16(bytes([address, command]) + payload)
    return (
        bytes([BOF, address, command])
        + escape(payload)
        + checksum.to_bytes(2, "big")
        + bytes([EOF])
    )


def parse_frame(body: bytes) -> Frame:
    """Decode the interior of a frame (the bytes between BOF and EOF).

    Raises:
        FramingError: If the frame is too short or ends in a dangling escape.
        ChecksumError: If the trailing sum disagrees with the contents.
    """
    raw = unescape(body)
    if len(raw) < MIN_FRAME_SIZE:
        raise FramingError(
            f"Frame too short: {len(raw)} bytes after unescaping "
            f"(need at least {MIN_FRAME_SIZE})"
        )

    expected = int.from_bytes(raw[-2:], "big")
    actual = sum16(raw[:-2])
    if expected != actual:
        raise ChecksumError(expected, actual)

    return Frame(address=raw[0], command=raw[1], payload=raw[2:-2])


def parse_wire(data: bytes) -> Frame:
    """Decode a complete frame including its BOF/EOF delimiters."""
    if len(data) < 2 or data[0] != BOF or data[-1] != EOF:
        raise FramingError("Frame is not delimited by BOF/EOF")
    return parse_frame(data[1:-1])
