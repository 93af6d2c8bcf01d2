# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
Packet bootloader protocol - Python host library.

This package pushes a firmware image to the packet bootloader over a
serial link using 18-byte CRC-8 protected packets.

Example usage:
    from fwpush_protocol import Transport, UpdateSession, read_firmware_file

    firmware = read_firmware_file("firmware.bin")

    with Transport("/dev/ttyACM0") as transport:
        UpdateSession(transport).run(
            firmware,
            progress_callback=lambda sent, total: print(f"{sent}/{total}")
        )
"""

from .crc8 import crc8
from .deframer import Deframer
from .image import (
    BOOTLOADER_SIZE,
    MAX_FIRMWARE_LENGTH,
    read_firmware_file,
    strip_bootloader,
)
from .protocol import (
    DEVICE_ID,
    PACKET_DATA_BYTES,
    PACKET_LENGTH,
    SYNC_SEQ,
    Opcode,
    Packet,
    encode_packet,
    decode_packet,
    verify_packet,
    encode_control,
    encode_device_id_response,
    encode_firmware_length_response,
    encode_data_chunk,
)
from .session import UpdateSession, update_firmware
from .transport import (
    DEFAULT_TIMEOUT,
    Transport,
    TransportError,
    TimeoutError,
    ProtocolError,
    PeerAbortError,
    UploadError,
)

__version__ = "0.1.0"

__all__ = [
    # CRC
    "crc8",
    # Protocol types
    "Opcode",
    "Packet",
    "DEVICE_ID",
    "PACKET_DATA_BYTES",
    "PACKET_LENGTH",
    "SYNC_SEQ",
    # Protocol encoding
    "encode_packet",
    "decode_packet",
    "verify_packet",
    "encode_control",
    "encode_device_id_response",
    "encode_firmware_length_response",
    "encode_data_chunk",
    # Deframing
    "Deframer",
    # Transport
    "DEFAULT_TIMEOUT",
    "Transport",
    "TransportError",
    "TimeoutError",
    "ProtocolError",
    "PeerAbortError",
    "UploadError",
    # Session
    "UpdateSession",
    "update_firmware",
    # Image
    "BOOTLOADER_SIZE",
    "MAX_FIRMWARE_LENGTH",
    "read_firmware_file",
    "strip_bootloader",
]
