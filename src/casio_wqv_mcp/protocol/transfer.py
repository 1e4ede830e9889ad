"""Chunked bulk transfer of the image blob.

After the handshake the watch streams the photo as a series of data
frames. Each frame's command is one of eight "put" commands, cycled in
order, and the host answers each with the "ack" of the same slot::

    watch 32 [05 data...]  ->  host 41
    watch 34 [05 data...]  ->  host 61
    ...
    watch 31               (end of transmission)
"""

from __future__ import annotations

import logging

from ..errors import ProtocolError
from .commands import CHUNK_MARKER, TRANSFER_SLOTS, Addr, Command, slot_index
from .events import ChunkReceived, EventSink, discard
from .session import ProtocolState

logger = logging.getLogger(__name__)


class BulkTransferReceiver:
    """Receives data chunks until the watch signals end of transmission."""

    def __init__(self, state: ProtocolState, on_event: EventSink = discard) -> None:
        self._state = state
        self._on_event = on_event
        self.chunks = 0

    def run(self) -> bytes:
        """Receive the whole transfer and return the assembled payload.

        Raises:
            ProtocolError: If a frame uses a command outside the rotation
                table or lacks the chunk marker.
        """
        data = bytearray()

        while True:
            frame = self._state.read_frame()
            if frame.command == Command.END_OF_TRANSMISSION:
                break

            index = slot_index(frame.command)
            if index is None:
                raise ProtocolError(
                    f"Unexpected command 0x{frame.command:02X} during transfer"
                )

            if not frame.payload or frame.payload[0] != CHUNK_MARKER:
                raise ProtocolError(
                    f"Invalid data chunk from 0x{frame.command:02X}: "
                    f"expected marker 0x{CHUNK_MARKER:02X} as first byte"
                )

            chunk = frame.payload[1:]
            self._on_event(ChunkReceived(offset=len(data), chunk=chunk))
            data.extend(chunk)
            self.chunks += 1

            slot = TRANSFER_SLOTS[index % len(TRANSFER_SLOTS)]
            self._state.send_frame(Addr.AUTO, slot.ack)
            logger.debug(
                "~> %02X <~ %02X read %d bytes", slot.put, slot.ack, len(chunk)
            )

        logger.info("Data transmission complete, got %d bytes", len(data))
        return bytes(data)
