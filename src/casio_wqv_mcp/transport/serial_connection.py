"""Serial connection to the WQV-1 through a USB infrared dongle.

The dongle shows up as a plain USB serial port running at 115200 baud,
8N1. Reads block until data arrives or the configured timeout elapses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import serial
from serial.tools import list_ports

from ..errors import LinkIOError, LinkTimeoutError

logger = logging.getLogger(__name__)

BAUDRATE = 115200
DEFAULT_TIMEOUT_S = 20.0
LONG_TIMEOUT_S = 60.0
PORT_MARKERS = ("usbserial", "ttyUSB")


@dataclass
class PortInfo:
    """Basic identification of an opened serial port."""

    device: str = ""
    baudrate: int = BAUDRATE
    timeout_s: float = DEFAULT_TIMEOUT_S


def list_candidate_ports(markers: tuple[str, ...] = PORT_MARKERS) -> list[str]:
    """Return the serial ports that look like USB IR dongles, sorted by name."""
    return sorted(
        port.device
        for port in list_ports.comports()
        if any(marker in port.device for marker in markers)
    )


class SerialConnection:
    """Manages the serial port to the IR dongle.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0")
        conn.open()
        conn.write(frame_bytes)
        data = conn.read(1024)
        conn.close()

    It can also be used as a context manager.
    """

    def __init__(
        self,
        device: str,
        baudrate: int = BAUDRATE,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self._port: serial.Serial | None = None
        self._info = PortInfo(device=device, baudrate=baudrate, timeout_s=timeout_s)

    @property
    def connected(self) -> bool:
        return self._port is not None and self._port.is_open

    @property
    def port_info(self) -> PortInfo:
        return self._info

    def open(self) -> PortInfo:
        """Open the serial port.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        try:
            self._port = serial.Serial(
                self._info.device,
                baudrate=self._info.baudrate,
                timeout=self._info.timeout_s,
            )
        except (serial.SerialException, OSError) as e:
            raise ConnectionError(
                f"Could not open serial port {self._info.device}. "
                f"Ensure the IR dongle is plugged in and you have permissions. "
                f"Last error: {e}"
            ) from e

        logger.info(
            "Opened %s at %d baud (timeout %.0fs)",
            self._info.device,
            self._info.baudrate,
            self._info.timeout_s,
        )
        return self._info

    def close(self) -> None:
        """Close the serial port."""
        if self._port is None:
            return

        try:
            self._port.close()
        except (serial.SerialException, OSError) as e:
            logger.warning("Error closing port: %s", e)
        finally:
            self._port = None
            logger.info("Disconnected")

    def __enter__(self) -> SerialConnection:
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _require_port(self) -> serial.Serial:
        if self._port is None:
            raise ConnectionError("Not connected to device")
        return self._port

    def write(self, data: bytes) -> int:
        """Write raw bytes to the port.

        Raises:
            ConnectionError: If not connected.
            LinkIOError: If the write fails.
        """
        port = self._require_port()
        try:
            written = port.write(data)
            port.flush()
        except serial.SerialTimeoutException as e:
            raise LinkTimeoutError(f"Write timed out: {e}") from e
        except (serial.SerialException, OSError) as e:
            raise LinkIOError(f"Write failed: {e}") from e
        return written

    def read(self, size: int) -> bytes:
        """Read up to *size* bytes, blocking until some arrive.

        Raises:
            ConnectionError: If not connected.
            LinkTimeoutError: If nothing arrived within the timeout.
            LinkIOError: If the read fails.
        """
        port = self._require_port()
        try:
            # Block for the first byte only, then take whatever is buffered.
            data = port.read(1)
            if data and size > 1:
                data += port.read(min(port.in_waiting, size - 1))
        except (serial.SerialException, OSError) as e:
            raise LinkIOError(f"Read failed: {e}") from e

        if not data:
            raise LinkTimeoutError(
                f"No data from {self._info.device} within {self._info.timeout_s:.0f}s"
            )
        return bytes(data)
