"""Response parsing for cube replies."""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import NO_ERROR, ErrorInfo
from .commands import Command
from .framing import Frame

VERSION_SIZE = 6


@dataclass
class VersionResponse:
    """Parsed VERS reply: hardware, software and protocol versions."""

    hw_major: int = 0
    hw_minor: int = 0
    sw_major: int = 0
    sw_minor: int = 0
    proto_major: int = 0
    proto_minor: int = 0


def parse_error(frame: Frame) -> ErrorInfo:
    """Decode the error state carried by a reply.

    ERR replies carry the code in the first payload byte; any other reply
    means the link is healthy.
    """
    if frame.command != Command.ERR:
        return NO_ERROR
    code = frame.payload[0] if frame.payload else 0
    return ErrorInfo.from_code(code)


def parse_info_string(frame: Frame) -> str | None:
    """Parse an INFO reply into text, stopping at the first NUL.

    Returns None if the cube answered with ERR instead.
    """
    if frame.command == Command.ERR:
        return None
    return frame.payload.split(b"\x00")[0].decode("ascii", errors="replace")


def parse_version(frame: Frame) -> VersionResponse | None:
    """Parse a VERS reply. Short payloads are zero-padded."""
    if frame.command != Command.VERS:
        return None
    raw = frame.payload[:VERSION_SIZE].ljust(VERSION_SIZE, b"\x00")
    return VersionResponse(*raw)
