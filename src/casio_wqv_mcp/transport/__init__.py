"""Serial transport to the IR dongle."""

from .serial_connection import SerialConnection, list_candidate_ports
