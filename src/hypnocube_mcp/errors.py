"""Device error codes and the exception hierarchy.

The cube reports link-level problems with a one-byte code in the payload of
an ERR reply. The same codes are used for problems detected locally while
decoding a reply, so both end up in a single :class:`ErrorInfo` record.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCode(IntEnum):
    """Error register values defined by the cube firmware."""

    NONE = 0
    TIMEOUT = 1
    MISSING_PACKET = 2
    BAD_CHECKSUM = 3
    INVALID_TYPE = 4
    BAD_SEQUENCE = 5
    MISSING_SYNC = 6
    BAD_LENGTH = 7
    BAD_COMMAND = 8
    BAD_DATA = 9
    BAD_ESCAPE = 10
    OVERFLOW = 11
    NOT_IMPLEMENTED = 12
    BAD_LOGIN = 13


ERROR_MESSAGES: dict[int, str] = {
    ErrorCode.NONE: "no error",
    ErrorCode.TIMEOUT: "timeout - too long of a delay between packets",
    ErrorCode.MISSING_PACKET: "missing packet, followed by missing sequence number",
    ErrorCode.BAD_CHECKSUM: "invalid checksum",
    ErrorCode.INVALID_TYPE: "invalid type (2 and 3 defined for now)",
    ErrorCode.BAD_SEQUENCE: "invalid sequence counter",
    ErrorCode.MISSING_SYNC: "missing SYNC - SYNC out of order",
    ErrorCode.BAD_LENGTH: "invalid packet length",
    ErrorCode.BAD_COMMAND: "invalid command",
    ErrorCode.BAD_DATA: "invalid data (valid command)",
    ErrorCode.BAD_ESCAPE: "invalid ESC sequence - illegal byte after ESC byte",
    ErrorCode.OVERFLOW: "overflow - too much data was fed in with the packets",
    ErrorCode.NOT_IMPLEMENTED: "command not implemented",
    ErrorCode.BAD_LOGIN: "invalid login value",
}


@dataclass(frozen=True)
class ErrorInfo:
    """The last error seen on the link."""

    code: int = ErrorCode.NONE
    message: str = ERROR_MESSAGES[ErrorCode.NONE]

    @classmethod
    def from_code(cls, code: int) -> ErrorInfo:
        return cls(code=code, message=ERROR_MESSAGES.get(code, f"unknown error {code}"))

    @property
    def ok(self) -> bool:
        return self.code == ErrorCode.NONE

    def to_dict(self) -> dict:
        return {"code": int(self.code), "message": self.message}


NO_ERROR = ErrorInfo()


class HypnocubeError(Exception):
    """Base class for everything raised by this package."""


class ProtocolError(HypnocubeError):
    """A framing problem, detected locally or reported by the device."""

    def __init__(self, code: ErrorCode, detail: str = "") -> None:
        self.code = code
        message = ERROR_MESSAGES.get(code, f"unknown error {code}")
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    @property
    def info(self) -> ErrorInfo:
        return ErrorInfo.from_code(self.code)


class FrameTimeout(ProtocolError):
    """No complete frame arrived before the deadline."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(ErrorCode.TIMEOUT, detail)


class SessionError(HypnocubeError):
    """A display operation was attempted while logged out."""


class ArgumentError(HypnocubeError, ValueError):
    """Invalid coordinates, plane index, color or buffer contents."""


class TransportError(HypnocubeError, ConnectionError):
    """The serial link is unavailable, closed or failed mid-operation."""
