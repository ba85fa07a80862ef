"""Checksum and pacing helpers shared by the protocol layer."""

from .crc import crc16
from .rate_limit import RateLimiter
