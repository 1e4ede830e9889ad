"""Tests for the MCP server tools."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from casio_wqv_mcp.errors import LinkTimeoutError
from casio_wqv_mcp.models.image import ImageBlob
from casio_wqv_mcp.protocol.download import DownloadResult
from casio_wqv_mcp.protocol.events import ChunkReceived, HandshakeProgress


def _get_server_module():
    """Import server module with FastMCP mocked to avoid init issues."""
    mock_fastmcp_cls = MagicMock()
    mock_fastmcp_instance = MagicMock()
    # Make the @mcp.tool() decorator a no-op that returns the function unchanged
    mock_fastmcp_instance.tool.return_value = lambda fn: fn
    mock_fastmcp_instance.resource.return_value = lambda fn: fn
    mock_fastmcp_instance.prompt.return_value = lambda fn: fn
    mock_fastmcp_cls.return_value = mock_fastmcp_instance

    with patch.dict(sys.modules, {}):
        with patch("mcp.server.fastmcp.FastMCP", mock_fastmcp_cls):
            # Remove cached server module so it re-imports with our mock
            sys.modules.pop("casio_wqv_mcp.server", None)
            import casio_wqv_mcp.server as server_mod

    return server_mod


def _result() -> DownloadResult:
    blob = b"TEST".ljust(24, b" ") + bytes([25, 12, 31, 23, 59]) + b"\x11" * 7200
    events = [HandshakeProgress(packets=n) for n in range(1, 6)]
    events.append(ChunkReceived(offset=0, chunk=blob[:4000]))
    events.append(ChunkReceived(offset=4000, chunk=blob[4000:]))
    events.append(HandshakeProgress(packets=6))
    return DownloadResult(blob=blob, peer_address=0x2A, events=events)


def test_list_ports():
    server = _get_server_module()
    with patch.object(server, "list_candidate_ports", return_value=["/dev/ttyUSB0"]):
        assert server.list_ports() == {"ports": ["/dev/ttyUSB0"]}


def test_download_without_ports():
    server = _get_server_module()
    with patch.object(server, "list_candidate_ports", return_value=[]):
        result = server.download_image()
    assert "error" in result


def test_download_image_success():
    server = _get_server_module()
    mock_conn = MagicMock()

    with patch.object(server, "list_candidate_ports", return_value=["/dev/ttyUSB0"]), \
         patch.object(server, "SerialConnection", return_value=mock_conn) as conn_cls, \
         patch.object(server, "run_download", return_value=_result()) as run:
        result = server.download_image(timeout_s=30)

    conn_cls.assert_called_once_with("/dev/ttyUSB0", timeout_s=30)
    run.assert_called_once_with(mock_conn)
    mock_conn.open.assert_called_once()
    mock_conn.close.assert_called_once()

    assert result["name"] == "TEST"
    assert result["timestamp"] == "2025-12-31T23:59:00+00:00"
    assert result["peer_address"] == 0x2A
    assert result["packets"] == 6
    assert result["chunks"] == 2
    assert result["pixels_hex"] == "11" * 7200


def test_download_image_failure_closes_port():
    server = _get_server_module()
    mock_conn = MagicMock()

    with patch.object(server, "SerialConnection", return_value=mock_conn), \
         patch.object(server, "run_download", side_effect=LinkTimeoutError("no data")):
        result = server.download_image(port="/dev/ttyUSB1")

    assert result == {"error": "no data", "port": "/dev/ttyUSB1"}
    mock_conn.close.assert_called_once()


def test_get_last_image():
    server = _get_server_module()
    assert "error" in server.get_last_image()

    with patch.object(server, "SerialConnection", return_value=MagicMock()), \
         patch.object(server, "run_download", return_value=_result()):
        server.download_image(port="/dev/ttyUSB0")

    last = server.get_last_image()
    assert last["name"] == "TEST"
    assert "pixels_hex" not in last
    assert server.get_last_image(include_pixels=True)["pixels_hex"] == "11" * 7200


def test_image_result_fields():
    server = _get_server_module()
    image = ImageBlob(
        name="X",
        timestamp=datetime(2001, 1, 1, tzinfo=timezone.utc),
        pixels=b"\x00" * 7200,
    )
    result = server._image_result(image, include_pixels=False)
    assert result["pixel_bytes"] == 7200
    assert result["bits_per_pixel"] == 4


def test_protocol_resource():
    server = _get_server_module()
    text = server.protocol_reference()
    assert "7229" in text
