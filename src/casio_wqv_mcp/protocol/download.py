"""High-level photo download: handshake, bulk transfer, session close."""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from ..models.image import ImageBlob, parse_image_blob
from .events import DownloadEvent
from .handshake import HandshakeSession
from .reader import Channel, LinkReader
from .session import ProtocolState
from .transfer import BulkTransferReceiver

logger = logging.getLogger(__name__)


@dataclass
class DownloadResult:
    """Raw image payload plus the progress events seen on the way."""

    blob: bytes
    peer_address: int
    events: list[DownloadEvent] = field(default_factory=list)

    def image(self) -> ImageBlob:
        """Parse the payload into an :class:`ImageBlob`."""
        return parse_image_blob(self.blob)


class _EventRecorder:
    """Keeps every event and forwards it to an optional observer queue."""

    def __init__(self, observer: queue.Queue | None) -> None:
        self.events: list[DownloadEvent] = []
        self._observer = observer

    def __call__(self, event: DownloadEvent) -> None:
        self.events.append(event)
        if self._observer is not None:
            self._observer.put(event)


def download_image(
    channel: Channel,
    events: queue.Queue | None = None,
    clock: Callable[[], datetime] = datetime.now,
    close_session: bool = True,
    reader: LinkReader | None = None,
) -> DownloadResult:
    """Download the photo the watch is currently offering.

    The call blocks for the whole session and owns *channel* while it
    runs. Progress events are delivered in order; if *events* is given
    they are also put on that queue as they happen, so another thread can
    follow the download.

    Args:
        channel: Open serial channel to the IR dongle.
        events: Optional queue receiving progress events.
        clock: Source of the local time sent in the handshake.
        close_session: Send the closing exchange after the transfer.
        reader: Custom frame reader (defaults to one on *channel*).

    Raises:
        WQVError: Any link, framing or protocol failure aborts the session.
    """
    recorder = _EventRecorder(events)
    state = ProtocolState(channel, reader=reader)

    handshake = HandshakeSession(state, on_event=recorder, clock=clock)
    peer = handshake.run()

    blob = BulkTransferReceiver(state, on_event=recorder).run()

    if close_session:
        handshake.close()

    return DownloadResult(blob=blob, peer_address=peer, events=recorder.events)
