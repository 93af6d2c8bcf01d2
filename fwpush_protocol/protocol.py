# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
Bootloader packet protocol definitions and serialization.

Every packet on the wire is exactly 18 bytes:

    +--------+------------------------------+-------+
    | length |     payload (16 bytes)       |  crc  |
    +--------+------------------------------+-------+

The payload is right-padded with 0xFF and the CRC-8 covers the length
byte plus all 16 payload bytes (padding included).
"""

from dataclasses import dataclass
from enum import IntEnum

from .crc8 import crc8

PACKET_LENGTH_BYTES = 1
PACKET_DATA_BYTES = 16
PACKET_CRC_BYTES = 1
PACKET_CRC_INDEX = PACKET_LENGTH_BYTES + PACKET_DATA_BYTES
PACKET_LENGTH = PACKET_LENGTH_BYTES + PACKET_DATA_BYTES + PACKET_CRC_BYTES

PADDING_BYTE = 0xFF

# Unframed marker written until the bootloader reports SYNC_OBSERVED
SYNC_SEQ = b"\xc4\x55\x7e\x10"

DEVICE_ID = 0x42


class Opcode(IntEnum):
    """First payload byte of single-byte (control) packets."""
    ACK = 0x15
    RETX = 0x19
    SYNC_OBSERVED = 0x20
    FW_UPDATE_REQ = 0x31
    FW_UPDATE_RES = 0x37
    DEVICE_ID_REQ = 0x3C
    DEVICE_ID_RES = 0x3F
    FW_LENGTH_REQ = 0x42
    FW_LENGTH_RES = 0x45
    READY_FOR_DATA = 0x48
    UPDATE_SUCCESSFUL = 0x54
    NACK = 0x59

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Packet:
    """A decoded (not necessarily valid) packet."""
    length: int
    data: bytes
    crc: int

    def compute_crc(self) -> int:
        return crc8(bytes([self.length]) + self.data)

    def verify(self) -> bool:
        """Return True if the stored CRC matches the packet contents."""
        return self.crc == self.compute_crc()

    def is_control(self, opcode: int) -> bool:
        """Return True if this is the single-byte packet carrying ``opcode``."""
        if self.length != 1 or self.data[0] != opcode:
            return False
        return all(b == PADDING_BYTE for b in self.data[1:])

    @property
    def is_ack(self) -> bool:
        return self.is_control(Opcode.ACK)

    @property
    def is_retx(self) -> bool:
        return self.is_control(Opcode.RETX)

    @property
    def is_nack(self) -> bool:
        return self.is_control(Opcode.NACK)

    def to_bytes(self) -> bytes:
        return bytes([self.length]) + self.data + bytes([self.crc])

    def __repr__(self) -> str:
        return (
            f"Packet(length={self.length}, data={self.data.hex(' ')}, "
            f"crc=0x{self.crc:02X})"
        )


def encode_packet(length: int, payload: bytes) -> bytes:
    """
    Encode a packet, padding the payload and appending its CRC.

    Args:
        length: Value of the length byte (0-255)
        payload: Up to 16 payload bytes

    Returns:
        18-byte packet

    Raises:
        ValueError: If length or payload size is out of range
    """
    if not 0 <= length <= 0xFF:
        raise ValueError(f"Packet length field out of range: {length}")
    if len(payload) > PACKET_DATA_BYTES:
        raise ValueError(
            f"Payload too large: {len(payload)} > {PACKET_DATA_BYTES} bytes"
        )

    data = bytes(payload) + bytes([PADDING_BYTE]) * (PACKET_DATA_BYTES - len(payload))
    body = bytes([length]) + data
    return body + bytes([crc8(body)])


def decode_packet(raw: bytes) -> Packet:
    """
    Split 18 raw bytes into a Packet. The CRC is not checked.

    Raises:
        ValueError: If raw is not exactly one packet long
    """
    if len(raw) != PACKET_LENGTH:
        raise ValueError(f"Expected {PACKET_LENGTH} bytes, got {len(raw)}")
    return Packet(
        length=raw[0],
        data=bytes(raw[PACKET_LENGTH_BYTES:PACKET_CRC_INDEX]),
        crc=raw[PACKET_CRC_INDEX],
    )


def verify_packet(packet: Packet) -> bool:
    """Recompute the CRC of a decoded packet and compare it."""
    return packet.verify()


def encode_control(opcode: int) -> bytes:
    """Encode a single-byte control packet."""
    return encode_packet(1, bytes([opcode]))


def encode_device_id_response(device_id: int = DEVICE_ID) -> bytes:
    """Encode the DEVICE_ID_RES packet."""
    return encode_packet(2, bytes([Opcode.DEVICE_ID_RES, device_id]))


def encode_firmware_length_response(length: int) -> bytes:
    """Encode the FW_LENGTH_RES packet (length as u32 little-endian)."""
    payload = bytes([Opcode.FW_LENGTH_RES]) + length.to_bytes(4, "little")
    return encode_packet(5, payload)


def encode_data_chunk(chunk: bytes) -> bytes:
    """
    Encode a firmware data packet.

    The length byte holds ``len(chunk) - 1``, so a full 16-byte chunk is
    sent as 15 and a single byte as 0.
    """
    if not 1 <= len(chunk) <= PACKET_DATA_BYTES:
        raise ValueError(f"Data chunk must be 1-{PACKET_DATA_BYTES} bytes, got {len(chunk)}")
    return encode_packet(len(chunk) - 1, chunk)


ACK_PACKET = encode_control(Opcode.ACK)
RETX_PACKET = encode_control(Opcode.RETX)
