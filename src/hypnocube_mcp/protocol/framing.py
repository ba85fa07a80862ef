"""Frame encoder, packetizer and decoder for the cube's serial link.

Frame layout::

    +------+-----------+--------+------+---------+------------------+--------+------+
    | SYNC | Flags+Seq | Length | Dest | Command |     Payload      | CRC-16 | SYNC |
    | 0xC0 | 1 byte    | 1 byte | 0x00 | 1 byte  | length - 1 bytes | 2 B BE | 0xC0 |
    +------+-----------+--------+------+---------+------------------+--------+------+

- Flags+Seq: top 3 bits 0x60 for the last frame of a message, 0x40 when more
  frames follow; low 5 bits are the sequence number (wraps 31 -> 0)
- Length: number of bytes in command + payload, before escaping
- CRC-16: CCITT over flags through payload, unescaped, big-endian
- Everything between the two SYNC delimiters is byte-stuffed: SYNC becomes
  ESC ESC+1 and ESC becomes ESC ESC+2
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from ..errors import ErrorCode, FrameTimeout, ProtocolError
from ..utils.crc import crc16

logger = logging.getLogger(__name__)

SYNC = 0xC0
ESC = 0xDB
ESC_SYNC = ESC + 1
ESC_ESC = ESC + 2

LAST_FLAG = 0x60
MORE_FLAG = 0x40
TYPE_MASK = 0xE0
SEQUENCE_MASK = 0x1F

BROADCAST = 0x00
MAX_PAYLOAD_PER_FRAME = 50  # command byte included
HEADER_SIZE = 3  # flags+seq, length, dest

DEFAULT_RESPONSE_TIMEOUT = 2.0  # seconds


class ByteSource(Protocol):
    """Anything that can hand out raw bytes from the link."""

    def read(self, size: int = 1) -> bytes: ...


@dataclass
class Frame:
    """A decoded protocol frame."""

    command: int
    payload: bytes = b""
    sequence: int = 0
    last: bool = True
    destination: int = BROADCAST

    def __repr__(self) -> str:
        return (
            f"Frame(command={self.command}, seq={self.sequence}, "
            f"last={self.last}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def escape(data: bytes) -> bytes:
    """Byte-stuff SYNC and ESC occurrences in ``data``."""
    out = bytearray()
    for byte in data:
        if byte == SYNC:
            out += bytes([ESC, ESC_SYNC])
        elif byte == ESC:
            out += bytes([ESC, ESC_ESC])
        else:
            out.append(byte)
    return bytes(out)


def _unescape_pair(follower: int) -> int:
    if follower == ESC_SYNC:
        return SYNC
    if follower == ESC_ESC:
        return ESC
    raise ProtocolError(ErrorCode.BAD_ESCAPE, f"ESC followed by 0x{follower:02X}")


def encode_frame(payload: bytes, sequence: int = 0, last: bool = True) -> bytes:
    """Build one wire frame around ``payload``.

    Args:
        payload: Command byte plus data, 1 to ``MAX_PAYLOAD_PER_FRAME`` bytes.
            An empty payload has no command byte and is never produced by
            :func:`build_frames`.
        sequence: Frame sequence number; only the low 5 bits are used.
        last: True if this is the final frame of the message.

    Returns:
        The SYNC-delimited, escaped frame ready to write to the port.
    """
    assert 0 < len(payload) <= MAX_PAYLOAD_PER_FRAME, (
        f"frame payload must be 1-{MAX_PAYLOAD_PER_FRAME} bytes, got {len(payload)}"
    )
    flags = (LAST_FLAG if last else MORE_FLAG) | (sequence & SEQUENCE_MASK)
    body = bytes([flags, len(payload), BROADCAST]) + payload
    body += crc16(body).to_bytes(2, "big")
    return bytes([SYNC]) + escape(body) + bytes([SYNC])


def build_frames(command: int, data: bytes = b"") -> list[bytes]:
    """Split a logical message into wire frames.

    The command byte is prepended to ``data`` and the result is cut into
    slices of at most ``MAX_PAYLOAD_PER_FRAME`` bytes. Sequence numbers start
    at 0 and wrap after 31; only the final slice carries the last-frame flag.
    """
    message = bytes([command]) + data
    frames: list[bytes] = []
    sequence = 0
    offset = 0
    while True:
        chunk = message[offset : offset + MAX_PAYLOAD_PER_FRAME]
        offset += len(chunk)
        last = offset >= len(message)
        frames.append(encode_frame(chunk, sequence, last))
        sequence = (sequence + 1) & SEQUENCE_MASK
        if last:
            return frames


class _Resync(Exception):
    """A SYNC turned up inside a frame body; it opens the next frame."""


def _parse(next_raw: Callable[[], int]) -> Frame:
    """Parse one frame from a stream of raw (escaped) bytes.

    ``next_raw`` returns the next byte from the link and raises when none is
    available. Noise before the opening SYNC is discarded. A SYNC inside a
    frame body drops the partial frame and parsing restarts at that SYNC.
    """
    skipped = 0
    while next_raw() != SYNC:
        skipped += 1
    if skipped:
        logger.debug("Discarded %d bytes before SYNC", skipped)

    while True:
        try:
            return _parse_body(next_raw)
        except _Resync:
            logger.warning("SYNC inside frame body, dropping partial frame")


def _parse_body(next_raw: Callable[[], int]) -> Frame:
    """Parse the rest of a frame whose opening SYNC was just consumed."""
    byte = next_raw()
    # back-to-back SYNCs: the previous frame's tail followed by our head
    while byte == SYNC:
        byte = next_raw()

    def next_byte() -> int:
        nonlocal byte
        if byte is None:
            byte = next_raw()
        current, byte = byte, None
        if current == SYNC:
            raise _Resync
        if current == ESC:
            follower = next_raw()
            if follower == SYNC:
                raise _Resync
            return _unescape_pair(follower)
        return current

    def next_bytes(count: int) -> bytes:
        return bytes(next_byte() for _ in range(count))

    header = next_bytes(HEADER_SIZE)
    flags, length, destination = header
    if length < 1:
        raise ProtocolError(ErrorCode.BAD_LENGTH, "zero-length frame")
    payload = next_bytes(length)
    expected = int.from_bytes(next_bytes(2), "big")
    tail = next_raw()
    if tail != SYNC:
        raise ProtocolError(ErrorCode.MISSING_SYNC, f"trailing byte 0x{tail:02X}")

    actual = crc16(header + payload)
    if actual != expected:
        raise ProtocolError(
            ErrorCode.BAD_CHECKSUM,
            f"expected 0x{expected:04X}, computed 0x{actual:04X}",
        )

    frame = Frame(
        command=payload[0],
        payload=payload[1:],
        sequence=flags & SEQUENCE_MASK,
        last=(flags & TYPE_MASK) == LAST_FLAG,
        destination=destination,
    )
    logger.debug("Decoded %r", frame)
    return frame


def decode_frame(data: bytes) -> Frame:
    """Decode a complete wire frame held in memory.

    Raises:
        ProtocolError: If the frame is truncated or fails validation.
    """
    source = iter(data)

    def next_raw() -> int:
        byte = next(source, None)
        if byte is None:
            raise ProtocolError(ErrorCode.BAD_LENGTH, "frame truncated")
        return byte

    return _parse(next_raw)


def read_frame(source: ByteSource, timeout: float = DEFAULT_RESPONSE_TIMEOUT) -> Frame:
    """Read one frame from the link, byte by byte.

    Args:
        source: Transport providing ``read(size)``. A read may return no data
            when the port's own timeout expires. The deadline is checked
            before every read, so noise cannot hold the reader past it.
        timeout: Seconds allowed for a complete frame to arrive.

    Raises:
        FrameTimeout: No complete frame before the deadline.
        ProtocolError: The frame failed validation.
    """
    deadline = time.monotonic() + timeout

    def next_raw() -> int:
        while True:
            if time.monotonic() >= deadline:
                raise FrameTimeout(f"no complete frame within {timeout:.3f}s")
            data = source.read(1)
            if data:
                return data[0]

    return _parse(next_raw)
