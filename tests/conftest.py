"""Shared fixtures: an in-memory stand-in for the serial link."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from hypnocube_mcp.cube import HypnoCube
from hypnocube_mcp.protocol.commands import Command
from hypnocube_mcp.protocol.framing import decode_frame, encode_frame
from hypnocube_mcp.utils.rate_limit import RateLimiter


def reply(command: int, payload: bytes = b"") -> bytes:
    """Wire bytes for a single-frame reply from the cube."""
    return encode_frame(bytes([command]) + payload)


@dataclass
class SentMessage:
    command: int
    data: bytes


class FakeTransport:
    """Records writes and replays scripted cube replies byte by byte."""

    def __init__(self) -> None:
        self.written: list[bytes] = []
        self.activity = False
        self._incoming = bytearray()

    def queue(self, *wire: bytes) -> None:
        for chunk in wire:
            self._incoming += chunk

    def queue_reply(self, command: int, payload: bytes = b"") -> None:
        self.queue(reply(command, payload))

    @property
    def pending(self) -> int:
        return len(self._incoming)

    def write(self, data: bytes) -> int:
        self.written.append(bytes(data))
        return len(data)

    def read(self, size: int = 1) -> bytes:
        data = bytes(self._incoming[:size])
        del self._incoming[:size]
        return data

    def messages(self) -> list[SentMessage]:
        """Reassemble written frames into logical messages."""
        result: list[SentMessage] = []
        current = b""
        for packet in self.written:
            frame = decode_frame(packet)
            current += bytes([frame.command]) + frame.payload
            if frame.last:
                result.append(SentMessage(command=current[0], data=current[1:]))
                current = b""
        return result

    def commands(self) -> list[Command]:
        return [Command(message.command) for message in self.messages()]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def buffer_path(tmp_path):
    return tmp_path / "hypnocube.buffer.json"


@pytest.fixture
def cube(transport, buffer_path) -> HypnoCube:
    return HypnoCube(
        transport,
        buffer_path=buffer_path,
        rate_limiter=RateLimiter(interval=0),
        response_timeout=0.05,
    )
