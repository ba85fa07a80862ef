"""Command byte constants and payload builders.

Every logical message starts with a single command byte; the same values
are used for host-to-cube requests and cube-to-host replies.
"""

from __future__ import annotations

from enum import IntEnum

from .framing import build_frames

LOGIN_CHALLENGE = 0xABADC0DE

# Written after reading the error register to reset it (-2 as a signed byte)
ERROR_CLEAR_DATA = bytes([0xFE])


class Command(IntEnum):
    """Command identifiers."""

    LOGIN = 0
    LOGOUT = 1
    RESET = 10
    INFO = 11
    VERS = 12
    ERR = 20
    ACK = 25
    PING = 60
    FLIP = 80
    FRAME = 81


class InfoField(IntEnum):
    """Selector for the INFO query."""

    NAME = 0
    DESCRIPTION = 1
    COPYRIGHT = 2


def build_command(command: Command | int, data: bytes = b"") -> list[bytes]:
    """Build the wire frames for one logical message."""
    return build_frames(int(command), data)


def login_data(challenge: int = LOGIN_CHALLENGE) -> bytes:
    """Build the LOGIN payload: the challenge as 4 big-endian bytes."""
    return (challenge & 0xFFFFFFFF).to_bytes(4, "big")


def info_data(field: InfoField) -> bytes:
    """Build an INFO payload selecting one of the identification strings."""
    return bytes([0, int(field)])
