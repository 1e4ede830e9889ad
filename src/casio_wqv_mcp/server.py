"""MCP server entry point for the Casio WQV-1 wrist camera.

Exposes the photo download over the Model Context Protocol using the
official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .errors import WQVError
from .models.image import BLOB_SIZE, HEIGHT, WIDTH, ImageBlob
from .protocol.download import download_image as run_download
from .protocol.events import ChunkReceived, HandshakeProgress
from .transport.serial_connection import (
    DEFAULT_TIMEOUT_S,
    SerialConnection,
    list_candidate_ports,
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "casio-wqv",
    instructions="MCP server for downloading photos from a Casio WQV-1 over IR",
)

_last_image: ImageBlob | None = None


def _image_result(image: ImageBlob, include_pixels: bool) -> dict[str, Any]:
    result = image.to_dict()
    if include_pixels:
        result["pixels_hex"] = image.pixels.hex()
    return result


# ─── PORT TOOLS ──────────────────────────────────────────────────────

@mcp.tool()
def list_ports() -> dict[str, Any]:
    """List serial ports that look like a USB infrared dongle."""
    return {"ports": list_candidate_ports()}


# ─── DOWNLOAD TOOLS ──────────────────────────────────────────────────

@mcp.tool()
def download_image(
    port: str | None = None,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    include_pixels: bool = True,
) -> dict[str, Any]:
    """Download the photo currently being sent by the watch.

    Start the IR transfer on the watch, then call this tool. The call
    blocks until the whole image has arrived or the link fails.

    Args:
        port: Serial device of the IR dongle. Defaults to the first
            candidate from list_ports.
        timeout_s: Read timeout in seconds for each step.
        include_pixels: Include the packed 4-bit pixel data as hex.
    """
    global _last_image

    if port is None:
        candidates = list_candidate_ports()
        if not candidates:
            return {"error": "No USB serial port found. Is the IR dongle plugged in?"}
        port = candidates[0]

    conn = SerialConnection(port, timeout_s=timeout_s)
    try:
        conn.open()
        result = run_download(conn)
        image = result.image()
    except (WQVError, ConnectionError) as e:
        logger.error("Download from %s failed: %s", port, e)
        return {"error": str(e), "port": port}
    finally:
        conn.close()

    _last_image = image
    packets = sum(1 for ev in result.events if isinstance(ev, HandshakeProgress))
    chunks = sum(1 for ev in result.events if isinstance(ev, ChunkReceived))

    out = _image_result(image, include_pixels)
    out.update(
        {
            "port": port,
            "peer_address": result.peer_address,
            "packets": packets,
            "chunks": chunks,
        }
    )
    return out


@mcp.tool()
def get_last_image(include_pixels: bool = False) -> dict[str, Any]:
    """Return the photo from the most recent successful download.

    Args:
        include_pixels: Include the packed 4-bit pixel data as hex.
    """
    if _last_image is None:
        return {"error": "No image downloaded yet. Use download_image first."}
    return _image_result(_last_image, include_pixels)


# ─── RESOURCES ───────────────────────────────────────────────────────

@mcp.resource("wqv://protocol")
def protocol_reference() -> str:
    """Short description of the WQV-1 link and image format."""
    return f"""Casio WQV-1 IR link

Frame: C0 | address | command | escaped payload | sum_hi | sum_lo | C1
Payload bytes C0, C1 and 7D are sent as 7D, byte^20.
Checksum: 16-bit sum of address, command and unescaped payload.

Image blob: {BLOB_SIZE} bytes
  24 bytes name (space padded)
  year-2000, month, day, hour, minute
  {WIDTH}x{HEIGHT} pixels, 4 bits per pixel"""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
