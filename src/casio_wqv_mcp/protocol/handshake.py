"""The fixed command/acknowledge exchange that opens a download.

Sequence (watch -> host / host -> watch)::

    B3 greeting          ->  A3 current time (broadcast)
    93 address offer     ->  63
    11                   ->  01
    10 transfer offer    ->  21
    11                   ->  20 [06]

After the bulk transfer the host closes the session::

    host 42 [06]  ->  watch 53  ->  host 63
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from .commands import (
    ADDRESS_OFFER_MIN_LEN,
    HANDSHAKE_STEPS,
    STATUS_TOKEN,
    Addr,
    Command,
    HandshakeStep,
)
from .events import EventSink, HandshakeProgress, discard
from .session import ProtocolState

logger = logging.getLogger(__name__)


def time_sync_payload(now: datetime) -> bytes:
    """Payload of the time-sync reply: hour, minute, second, 1/256 s."""
    return bytes([now.hour, now.minute, now.second, 0x00])


class HandshakeSession:
    """Walks the five handshake steps on a :class:`ProtocolState`.

    Each step blocks until the expected command arrives; unrelated frames
    are skipped. The session is complete once the last reply is sent.
    """

    def __init__(
        self,
        state: ProtocolState,
        on_event: EventSink = discard,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._state = state
        self._on_event = on_event
        self._clock = clock
        self.packets = 0

    def _reply_payload(self, step: HandshakeStep) -> bytes:
        if step.time_sync:
            return time_sync_payload(self._clock())
        return step.payload

    def _progress(self) -> None:
        self.packets += 1
        self._on_event(HandshakeProgress(packets=self.packets))

    def step(self, step: HandshakeStep) -> None:
        """Wait for the step's command and send its reply."""
        frame = self._state.read_command(step.expect)
        if step.expect == Command.ADDRESS_OFFER and len(frame.payload) < ADDRESS_OFFER_MIN_LEN:
            logger.warning(
                "Address offer carried only %d bytes; keeping address 0x%02X",
                len(frame.payload),
                self._state.peer_address,
            )
        self._state.send_frame(step.address, step.reply, self._reply_payload(step))
        self._progress()

    def run(self) -> int:
        """Run the full handshake.

        Returns:
            The peer address assigned by the watch.
        """
        for step in HANDSHAKE_STEPS:
            self.step(step)
        logger.info("Handshake complete, peer address 0x%02X", self._state.peer_address)
        return self._state.peer_address

    def close(self) -> None:
        """Send the closing exchange after a completed transfer."""
        self._state.send_frame(Addr.AUTO, Command.CLOSE_REQUEST, bytes([STATUS_TOKEN]))
        self._state.read_command(Command.CLOSE_CONFIRM)
        self._state.send_frame(Addr.AUTO, Command.ADDRESS_ACK)
        self._progress()
        logger.info("Session closed")
