"""Driver for the Hypnocube 4x4x4 LED cube.

:class:`HypnoCube` owns the session with one cube: it logs in, keeps a local
framebuffer, pushes it to the device and tracks the device's error state.
Every exchange goes through :meth:`HypnoCube.send_data`, which paces writes,
splits the message into frames and reads back one reply frame.

Usage::

    conn = SerialConnection("/dev/ttyUSB0")
    conn.open()
    cube = HypnoCube(conn)
    cube.login()
    cube.set_plane("y", 0, "red")
    cube.update()
    cube.logout()

Not thread-safe: one caller at a time.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Protocol

from .errors import (
    NO_ERROR,
    ArgumentError,
    ErrorCode,
    ErrorInfo,
    ProtocolError,
    SessionError,
)
from .models.buffer_store import DEFAULT_BUFFER_PATH, BufferStore
from .models.device_info import DeviceInfo
from .models.framebuffer import Framebuffer, Status
from .protocol.commands import (
    ERROR_CLEAR_DATA,
    Command,
    InfoField,
    build_command,
    info_data,
    login_data,
)
from .protocol.framing import DEFAULT_RESPONSE_TIMEOUT, Frame, read_frame
from .protocol.parser import parse_error, parse_info_string, parse_version
from .utils.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """What the driver needs from the link."""

    @property
    def activity(self) -> bool: ...

    def read(self, size: int = 1) -> bytes: ...

    def write(self, data: bytes) -> int: ...


class SessionState(Enum):
    LOGGED_OUT = "logged_out"
    LOGGED_IN = "logged_in"


def _command_name(command: int) -> str:
    try:
        return Command(command).name
    except ValueError:
        return f"command {command}"


class HypnoCube:
    """A session with one cube."""

    def __init__(
        self,
        transport: Transport,
        *,
        buffer_path: str | Path | None = DEFAULT_BUFFER_PATH,
        rate_limiter: RateLimiter | None = None,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
    ) -> None:
        self._transport = transport
        self._store = BufferStore(buffer_path) if buffer_path is not None else None
        self._rate_limiter = rate_limiter or RateLimiter()
        self._response_timeout = response_timeout
        self._state = SessionState.LOGGED_OUT
        self._error_info: ErrorInfo = NO_ERROR
        self._device_info: DeviceInfo | None = None
        self._framebuffer = Framebuffer()

    # ─── STATE ───────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def logged_in(self) -> bool:
        return self._state is SessionState.LOGGED_IN

    @property
    def error_info(self) -> ErrorInfo:
        """The last error decoded from a reply (code 0 when healthy)."""
        return self._error_info

    @property
    def device_info(self) -> DeviceInfo | None:
        """Cached identification, or None until :meth:`info` has run."""
        return self._device_info

    @property
    def framebuffer(self) -> Framebuffer:
        return self._framebuffer

    # ─── DISPATCH ────────────────────────────────────────────────────

    def send_data(
        self,
        command: Command | int | None,
        data: bytes = b"",
        no_response: bool = False,
    ) -> Frame | None:
        """Send one logical message and optionally read the reply.

        Args:
            command: Command byte, sent as is. None is a no-op.
            data: Message data following the command byte.
            no_response: Fire-and-forget; do not wait for a reply.

        Returns:
            The reply frame, or None when no reply was requested, no command
            was given, or the reply could not be decoded (see
            :attr:`error_info`).

        Raises:
            TransportError: If the link fails.
        """
        if command is None:
            logger.debug("send_data: no command specified")
            return None

        command = int(command)
        name = _command_name(command)
        logger.debug("send_data %s data=%s", name, data.hex(" ") if data else "(empty)")
        self._rate_limiter.wait()
        for packet in build_command(command, data):
            logger.debug("-> %s", packet.hex(" "))
            self._transport.write(packet)

        if no_response:
            return None

        try:
            response = read_frame(self._transport, self._response_timeout)
        except ProtocolError as e:
            logger.warning("%s reply not decoded: %s", name, e)
            self._error_info = e.info
            return None

        self._error_info = parse_error(response)
        if not self._error_info.ok:
            logger.warning(
                "%s rejected: error %d (%s)",
                name,
                self._error_info.code,
                self._error_info.message,
            )
        return response

    # ─── SESSION ─────────────────────────────────────────────────────

    def login(self) -> bool:
        """Claim the cube and show the last saved (or a black) image.

        Returns:
            True if logged in.
        """
        if self.logged_in:
            return True

        response = self.send_data(Command.LOGIN, login_data())
        if response is None:
            return False
        # Some firmware answers a good login with ERR carrying code 0
        accepted = response.command == Command.ACK or (
            response.command == Command.ERR and self._error_info.code == ErrorCode.NONE
        )
        if not accepted:
            logger.warning(
                "Login refused: reply %d, error %d", response.command, self._error_info.code
            )
            return False

        self._state = SessionState.LOGGED_IN
        logger.info("Logged in")

        self._restore_buffer()
        self.update()
        return True

    def logout(self) -> None:
        """Release the cube and forget its identification."""
        if not self.logged_in:
            return
        self.send_data(Command.LOGOUT, no_response=True)
        self._state = SessionState.LOGGED_OUT
        self._device_info = None
        logger.info("Logged out")

    def info(self) -> DeviceInfo:
        """Identification strings and versions, fetched once per session."""
        if self._device_info is not None:
            return self._device_info

        strings = {}
        for field in InfoField:
            response = self.send_data(Command.INFO, info_data(field))
            strings[field] = (parse_info_string(response) or "") if response else ""

        response = self.send_data(Command.VERS)
        version = parse_version(response) if response else None

        info = DeviceInfo(
            name=strings[InfoField.NAME],
            description=strings[InfoField.DESCRIPTION],
            copyright=strings[InfoField.COPYRIGHT],
            **(asdict(version) if version else {}),
        )
        self._device_info = info
        return info

    def ping(self) -> None:
        """Keep the cube from dropping into its demo mode."""
        # traffic already on the link counts as a ping
        if self._transport.activity:
            logger.debug("ping skipped, link busy")
            return
        self.send_data(Command.PING, no_response=True)

    def reset(self) -> None:
        """Reset the cube (fire-and-forget)."""
        self.send_data(Command.RESET, no_response=True)

    def last_error(self) -> ErrorInfo:
        """Read and then clear the cube's error register."""
        response = self.send_data(Command.ERR)
        if response is not None:
            code = response.payload[0] if response.payload else 0
            self._error_info = ErrorInfo.from_code(code)
        error = self._error_info
        self.send_data(Command.ERR, ERROR_CLEAR_DATA)
        return error

    # ─── DISPLAY ─────────────────────────────────────────────────────

    def _require_login(self, operation: str) -> None:
        if not self.logged_in:
            raise SessionError(f"Cannot {operation} while logged out, login first")

    def update(self) -> bool:
        """Send the framebuffer to the cube and display it.

        Returns:
            True if the cube acknowledged the frame.

        Raises:
            SessionError: If not logged in.
        """
        self._require_login("update")
        response = self.send_data(Command.FRAME, self._framebuffer.to_wire_bytes())
        if response is None or response.command != Command.ACK:
            return False

        self.flip()
        if self._store is not None:
            self._store.save(self._framebuffer)
        return True

    def flip(self) -> None:
        """Swap the cube's display buffers."""
        self._require_login("flip")
        self.send_data(Command.FLIP, no_response=True)

    def clear(self, color="black") -> Status:
        return self._framebuffer.clear(color)

    def set_pixel(self, x: int | None, y: int | None, z: int | None, color="white") -> Status:
        return self._framebuffer.set_pixel(x, y, z, color)

    def set_plane(self, axis: str, index: int | None, color="white") -> Status:
        return self._framebuffer.set_plane(axis, index, color)

    def _restore_buffer(self) -> None:
        """Load the last saved image, falling back to black."""
        if self._store is not None:
            try:
                saved = self._store.load()
                if saved is not None:
                    self._framebuffer.load(saved)
                    return
            except ArgumentError as e:
                logger.warning("Ignoring saved buffer: %s", e)
        self._framebuffer.clear("black")
