# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""Firmware image helpers."""

from pathlib import Path

from .transport import UploadError

# The image is linked for the full flash; the first 32 KiB belong to the
# bootloader and are never sent.
BOOTLOADER_SIZE = 0x8000

MAX_FIRMWARE_LENGTH = 0xFFFFFFFF  # FW_LENGTH_RES carries a u32


def check_firmware_length(firmware: bytes) -> int:
    """Return the image length, or raise UploadError if it can't be sent."""
    length = len(firmware)
    if length > MAX_FIRMWARE_LENGTH:
        raise UploadError(f"Firmware too large: {length} bytes")
    return length


def strip_bootloader(image: bytes, reserved: int = BOOTLOADER_SIZE) -> bytes:
    """
    Drop the reserved bootloader region from a full flash image.

    Raises:
        UploadError: If nothing follows the reserved region
    """
    if len(image) <= reserved:
        raise UploadError(
            f"Image is {len(image)} bytes, no application after "
            f"0x{reserved:x}-byte bootloader region"
        )
    return image[reserved:]


def read_firmware_file(path: Path, reserved: int = BOOTLOADER_SIZE) -> bytes:
    """
    Read a flash image from disk and return the application part.

    Raises:
        UploadError: If the image has no application part
        FileNotFoundError: If the file does not exist
    """
    return strip_bootloader(Path(path).read_bytes(), reserved)
