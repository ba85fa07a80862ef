"""CRC-16/CCITT checksum used by the cube's link layer.

Polynomial 0x1021, MSB first, no reflection, no final XOR. The device seeds
the register with 0xFFFF (the "CCITT-FALSE" flavour); pass ``initial=0`` for
the XModem flavour.
"""

from __future__ import annotations

CRC_POLY = 0x1021
CRC_INIT = 0xFFFF


def _build_table() -> tuple[int, ...]:
    table = []
    for byte in range(256):
        crc = byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ CRC_POLY) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
        table.append(crc)
    return tuple(table)


_CRC_TABLE = _build_table()


def crc16(data: bytes, initial: int = CRC_INIT) -> int:
    """Compute the 16-bit CRC of ``data``.

    Args:
        data: Unescaped frame bytes.
        initial: Register seed.

    Returns:
        The checksum as an int in 0..0xFFFF.
    """
    crc = initial & 0xFFFF
    for byte in data:
        crc = ((crc << 8) & 0xFFFF) ^ _CRC_TABLE[((crc >> 8) ^ byte) & 0xFF]
    return crc
