"""Command bytes and the fixed exchange tables of the WQV-1 link.

The watch drives the conversation: it sends a command and the host
answers with the matching reply. Only the photo download exchange is
modelled here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

BROADCAST_ADDRESS = 0xFF
UNASSIGNED_ADDRESS = 0xFF

ADDRESS_OFFER_MIN_LEN = 5
ADDRESS_OFFER_INDEX = 4

CHUNK_MARKER = 0x05
STATUS_TOKEN = 0x06


class Command(IntEnum):
    """Command bytes used during a photo download."""

    GREETING = 0xB3
    TIME_SYNC = 0xA3
    ADDRESS_OFFER = 0x93
    ADDRESS_ACK = 0x63
    LINK_READY = 0x11
    LINK_ACK = 0x01
    TRANSFER_OFFER = 0x10
    TRANSFER_ACK = 0x21
    TRANSFER_START = 0x20
    END_OF_TRANSMISSION = 0x31
    CLOSE_REQUEST = 0x42
    CLOSE_CONFIRM = 0x53


class Addr(Enum):
    """Symbolic destination addresses.

    A plain ``int`` may be used wherever an ``Addr`` is accepted to send
    to a fixed address.
    """

    AUTO = "auto"
    BROADCAST = "broadcast"


@dataclass(frozen=True)
class HandshakeStep:
    """One wait-for/reply pair of the handshake."""

    expect: Command
    reply: Command
    payload: bytes = b""
    address: Addr = Addr.AUTO
    time_sync: bool = False  # payload is the current time instead


HANDSHAKE_STEPS: tuple[HandshakeStep, ...] = (
    HandshakeStep(Command.GREETING, Command.TIME_SYNC, address=Addr.BROADCAST, time_sync=True),
    HandshakeStep(Command.ADDRESS_OFFER, Command.ADDRESS_ACK),
    HandshakeStep(Command.LINK_READY, Command.LINK_ACK),
    HandshakeStep(Command.TRANSFER_OFFER, Command.TRANSFER_ACK),
    HandshakeStep(Command.LINK_READY, Command.TRANSFER_START, bytes([STATUS_TOKEN])),
)


@dataclass(frozen=True)
class TransferSlot:
    """A (put, ack) pair of the rotating chunk sequence."""

    put: int
    ack: int


# Modulo-8 sequence numbering: the watch cycles through the put commands
# and each chunk is acknowledged with the ack in the same slot.
TRANSFER_SLOTS: tuple[TransferSlot, ...] = (
    TransferSlot(0x32, 0x41),
    TransferSlot(0x34, 0x61),
    TransferSlot(0x36, 0x81),
    TransferSlot(0x38, 0xA1),
    TransferSlot(0x3A, 0xC1),
    TransferSlot(0x3C, 0xE1),
    TransferSlot(0x3E, 0x01),
    TransferSlot(0x30, 0x21),
)

_SLOT_BY_PUT: dict[int, int] = {slot.put: i for i, slot in enumerate(TRANSFER_SLOTS)}


def slot_index(put_command: int) -> int | None:
    """Return the rotation index of *put_command*, or ``None`` if unknown."""
    return _SLOT_BY_PUT.get(put_command)

