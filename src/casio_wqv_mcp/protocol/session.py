"""Per-session link state: the channel, the learned address, leftover bytes."""

from __future__ import annotations

import logging

from ..errors import LinkIOError
from .commands import (
    ADDRESS_OFFER_INDEX,
    ADDRESS_OFFER_MIN_LEN,
    BROADCAST_ADDRESS,
    UNASSIGNED_ADDRESS,
    Addr,
    Command,
)
from .framing import Frame, build_frame, parse_frame
from .reader import Channel, LinkReader

logger = logging.getLogger(__name__)


class ProtocolState:
    """Owns the channel for one download session.

    The watch assigns the host an address during the handshake (in the
    ``ADDRESS_OFFER`` frame). Until then :attr:`peer_address` reads as
    0xFF; once learned it stays fixed for the session.

    Only one caller may drive a ``ProtocolState`` at a time.
    """

    def __init__(self, channel: Channel, reader: LinkReader | None = None) -> None:
        self._channel = channel
        self._reader = reader or LinkReader(channel)
        self._peer_address = UNASSIGNED_ADDRESS
        self._address_learned = False

    @property
    def channel(self) -> Channel:
        return self._channel

    @property
    def peer_address(self) -> int:
        return self._peer_address

    @property
    def residual_bytes(self) -> bytes:
        return self._reader.residual

    def resolve(self, address: Addr | int) -> int:
        """Turn an address selector into a concrete address byte."""
        if address is Addr.AUTO:
            return self._peer_address
        if address is Addr.BROADCAST:
            return BROADCAST_ADDRESS
        if not 0 <= address <= 0xFF:
            raise ValueError(f"Address must be 0-255, got {address}")
        return address

    def read_frame(self) -> Frame:
        """Read and decode the next frame from the channel."""
        frame = parse_frame(self._reader.read_frame_body())
        logger.debug(
            "<~ ADR=%02X CMD=%02X DATA=(%d) %s",
            frame.address,
            frame.command,
            len(frame.payload),
            frame.payload[:10].hex(" "),
        )
        if (
            frame.command == Command.ADDRESS_OFFER
            and len(frame.payload) >= ADDRESS_OFFER_MIN_LEN
            and not self._address_learned
        ):
            self._peer_address = frame.payload[ADDRESS_OFFER_INDEX]
            self._address_learned = True
            logger.info("Watch assigned us address 0x%02X", self._peer_address)
        return frame

    def read_command(self, expected: int) -> Frame:
        """Read frames until one carries *expected*; others are skipped."""
        while True:
            frame = self.read_frame()
            if frame.command == expected:
                return frame
            logger.debug(
                "Skipping frame with command 0x%02X while waiting for 0x%02X",
                frame.command,
                expected,
            )

    def send_frame(self, address: Addr | int, command: int, payload: bytes = b"") -> None:
        """Encode and write one frame."""
        adr = self.resolve(address)
        data = build_frame(adr, command, payload)
        try:
            self._channel.write(data)
        except LinkIOError:
            raise
        except OSError as e:
            raise LinkIOError(f"Channel write failed: {e}") from e
        logger.debug("~> ADR=%02X CMD=%02X DAT=%s", adr, command, payload.hex(" "))
