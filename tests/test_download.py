"""End-to-end tests for a scripted photo download."""

import queue
from datetime import datetime

import pytest

from casio_wqv_mcp.errors import ChecksumError, ProtocolError
from casio_wqv_mcp.models.image import PIXEL_DATA_SIZE
from casio_wqv_mcp.protocol.download import download_image
from casio_wqv_mcp.protocol.events import ChunkReceived, HandshakeProgress
from casio_wqv_mcp.protocol.framing import build_frame

NOW = datetime(2026, 10, 19, 13, 45, 30)
PUTS = [0x32, 0x34, 0x36, 0x38, 0x3A, 0x3C, 0x3E, 0x30]
ACKS = [0x41, 0x61, 0x81, 0xA1, 0xC1, 0xE1, 0x01, 0x21]
CHUNK_SIZE = 1000


def _blob() -> bytes:
    pixels = bytearray(PIXEL_DATA_SIZE)
    pixels[0:3] = b"\xC0\xC1\x7D"
    return b"TEST".ljust(24, b" ") + bytes([25, 12, 31, 23, 59]) + bytes(pixels)


def _watch_script(blob: bytes) -> list[bytes]:
    frames = [
        build_frame(0xFF, 0xB3),
        build_frame(0xFF, 0x93, bytes([13, 45, 30, 0, 0x2A])),
        build_frame(0xFF, 0x11),
        build_frame(0xFF, 0x10),
        build_frame(0xFF, 0x11),
    ]
    for i, offset in enumerate(range(0, len(blob), CHUNK_SIZE)):
        chunk = blob[offset : offset + CHUNK_SIZE]
        frames.append(build_frame(0xFF, PUTS[i % 8], b"\x05" + chunk))
    frames.append(build_frame(0xFF, 0x31))
    frames.append(build_frame(0xFF, 0x53))
    return frames


def test_download_image(make_channel):
    blob = _blob()
    channel = make_channel(_watch_script(blob))

    result = download_image(channel, clock=lambda: NOW)

    assert result.blob == blob
    assert result.peer_address == 0x2A
    image = result.image()
    assert image.name == "TEST"
    assert image.timestamp.isoformat() == "2025-12-31T23:59:00+00:00"


def test_download_replies(make_channel):
    channel = make_channel(_watch_script(_blob()))
    download_image(channel, clock=lambda: NOW)

    commands = [frame[2] for frame in channel.written]
    assert commands == [0xA3, 0x63, 0x01, 0x21, 0x20] + ACKS + [0x42, 0x63]
    assert channel.written[0] == build_frame(0xFF, 0xA3, bytes([13, 45, 30, 0]))
    assert all(frame[1] == 0x2A for frame in channel.written[1:])


def test_download_events(make_channel):
    blob = _blob()
    result = download_image(make_channel(_watch_script(blob)), clock=lambda: NOW)

    progress = [ev for ev in result.events if isinstance(ev, HandshakeProgress)]
    chunks = [ev for ev in result.events if isinstance(ev, ChunkReceived)]
    assert [ev.packets for ev in progress] == [1, 2, 3, 4, 5, 6]
    assert [ev.offset for ev in chunks] == list(range(0, len(blob), CHUNK_SIZE))
    assert b"".join(ev.chunk for ev in chunks) == blob
    # Handshake first, then chunks, then the session close.
    assert result.events[:5] == progress[:5]
    assert result.events[-1] == progress[-1]


def test_download_events_on_queue(make_channel):
    observer = queue.Queue()
    result = download_image(
        make_channel(_watch_script(_blob())), events=observer, clock=lambda: NOW
    )
    received = []
    while not observer.empty():
        received.append(observer.get_nowait())
    assert received == result.events


def test_download_single_stream(make_channel):
    """The whole exchange arriving as one byte stream decodes the same."""
    blob = _blob()
    channel = make_channel([b"\x00\x13" + b"".join(_watch_script(blob))])
    assert download_image(channel, clock=lambda: NOW).blob == blob


def test_download_without_close(make_channel):
    script = _watch_script(_blob())[:-1]
    channel = make_channel(script)
    download_image(channel, clock=lambda: NOW, close_session=False)
    assert channel.written[-1][2] == 0x21
    assert channel.remaining == 0


def test_download_aborts_on_checksum_error(make_channel):
    script = _watch_script(_blob())
    corrupt = bytearray(script[6])
    corrupt[10] ^= 0x01
    script[6] = bytes(corrupt)
    with pytest.raises(ChecksumError):
        download_image(make_channel(script), clock=lambda: NOW)


def test_download_aborts_on_protocol_error(make_channel):
    script = _watch_script(_blob())
    script[7] = build_frame(0xFF, 0x44, b"\x05\x00")
    with pytest.raises(ProtocolError):
        download_image(make_channel(script), clock=lambda: NOW)
