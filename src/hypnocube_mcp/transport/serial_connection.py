"""Serial connection to the Hypnocube.

The cube talks 38400 baud 8N1 over a plain serial line (or a USB-serial
adapter). This module only moves bytes; framing lives in
:mod:`hypnocube_mcp.protocol.framing`.
"""

from __future__ import annotations

import logging
import os
import sys

import serial

from ..errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_BAUD = 38400
READ_TIMEOUT = 0.1  # seconds per read call; the frame reader owns the deadline
WRITE_TIMEOUT = 1.0
PORT_ENV_VAR = "HYPNOCUBE_PORT"


def default_port(platform: str = sys.platform) -> str:
    """Pick the conventional first serial port for this platform.

    ``HYPNOCUBE_PORT`` in the environment wins over the platform default.
    """
    override = os.environ.get(PORT_ENV_VAR)
    if override:
        return override
    if platform.startswith("win"):
        return "COM1"
    if "bsd" in platform:
        return "/dev/cuad0" if os.path.exists("/dev/cuad0") else "/dev/cuaa0"
    return "/dev/ttyS1"


class SerialConnection:
    """Manages the serial link to the cube.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0")
        conn.open()
        conn.write(frame_bytes)
        byte = conn.read(1)
        conn.close()
    """

    def __init__(
        self,
        port: str | None = None,
        baudrate: int = DEFAULT_BAUD,
        timeout: float = READ_TIMEOUT,
    ) -> None:
        self._port = port or default_port()
        self._baudrate = baudrate
        self._timeout = timeout
        self._serial: serial.Serial | None = None
        self._activity = False

    @property
    def port(self) -> str:
        return self._port

    @property
    def baudrate(self) -> int:
        return self._baudrate

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    @property
    def activity(self) -> bool:
        """True while a read or write is in progress. Advisory only."""
        return self._activity

    def open(self) -> None:
        """Open the serial port.

        Raises:
            TransportError: If the port cannot be opened.
        """
        if self.connected:
            return
        try:
            self._serial = serial.Serial(
                self._port,
                baudrate=self._baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=self._timeout,
                write_timeout=WRITE_TIMEOUT,
            )
        except serial.SerialException as e:
            raise TransportError(
                f"Could not open {self._port} at {self._baudrate} baud. "
                f"Check the cable and your permissions on the port. "
                f"Last error: {e}"
            ) from e
        self._serial.reset_input_buffer()
        logger.info("Opened %s at %d baud", self._port, self._baudrate)

    def close(self) -> None:
        """Close the serial port."""
        if self._serial is None:
            return
        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing %s: %s", self._port, e)
        finally:
            self._serial = None
            self._activity = False
            logger.info("Disconnected from %s", self._port)

    def _require_open(self) -> serial.Serial:
        if not self.connected:
            raise TransportError(f"Serial port {self._port} is not open")
        return self._serial

    def write(self, data: bytes) -> int:
        """Write raw bytes to the cube.

        Returns:
            Number of bytes written.

        Raises:
            TransportError: If not connected or the write fails.
        """
        port = self._require_open()
        self._activity = True
        try:
            written = port.write(data)
            port.flush()
        except serial.SerialException as e:
            raise TransportError(f"Write to {self._port} failed: {e}") from e
        finally:
            self._activity = False
        if written != len(data):
            logger.warning("Write incomplete (%d of %d bytes)", written, len(data))
        return written

    def read(self, size: int = 1) -> bytes:
        """Read up to ``size`` bytes.

        Returns fewer bytes (possibly none) if the per-read timeout expires.

        Raises:
            TransportError: If not connected or the read fails.
        """
        port = self._require_open()
        self._activity = True
        try:
            return port.read(size)
        except serial.SerialException as e:
            raise TransportError(f"Read from {self._port} failed: {e}") from e
        finally:
            self._activity = False
