# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
CRC-8 (polynomial 0x07, init 0x00, no reflection) implementation.

This is the same CRC-8 the bootloader uses to validate every 18-byte
packet, so it must match bit-for-bit.
"""

# Pre-computed CRC-8 lookup table
_CRC8_TABLE = []


def _init_table():
    """Initialize the CRC-8 lookup table."""
    global _CRC8_TABLE
    poly = 0x07
    for i in range(256):
        crc = i
        for _ in range(8):
            if crc & 0x80:
                crc = ((crc << 1) ^ poly) & 0xFF
            else:
                crc = (crc << 1) & 0xFF
        _CRC8_TABLE.append(crc)


_init_table()


def crc8(data: bytes) -> int:
    """
    Compute CRC-8 checksum.

    Args:
        data: Bytes to compute checksum for

    Returns:
        8-bit CRC value
    """
    crc = 0
    for byte in data:
        crc = _CRC8_TABLE[(crc ^ byte) & 0xFF]
    return crc
