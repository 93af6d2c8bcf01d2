#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
Firmware upload tool for the packet bootloader.

Usage:
    python fwpush_upload.py --port /dev/ttyACM0 firmware.bin
    python fwpush_upload.py --port /dev/ttyUSB0 --baud 57600 --verbose firmware.bin

Requirements:
    pip install pyserial
"""

import argparse
import logging
import sys
from pathlib import Path

import serial

from fwpush_protocol import (
    BOOTLOADER_SIZE,
    DEFAULT_TIMEOUT,
    DEVICE_ID,
    Transport,
    UpdateSession,
    read_firmware_file,
)
from fwpush_protocol.transport import TransportError, UploadError


def info(message: str):
    print(f"[.] {message}")


def success(message: str):
    print(f"[$] {message}")


def error(message: str):
    print(f"[!] {message}")


def cmd_upload(transport: Transport, firmware: bytes, device_id: int, timeout: float) -> bool:
    """Run the update session, reporting progress."""
    size = len(firmware)

    def progress(sent: int, total: int):
        pct = sent * 100 // total
        print(f"\rUploading: {pct:3d}% ({sent}/{total} bytes)", end="", flush=True)

    session = UpdateSession(transport, device_id=device_id, timeout=timeout)

    try:
        info("Attempting to sync with the bootloader")
        session.sync()
        success("Synced")

        info("Requesting firmware update")
        session.request_update()
        success("Firmware update request accepted")

        session.send_device_id()
        info(f"Responded with device ID 0x{device_id:02x}")

        session.send_length(size)
        info(f"Responded with firmware length ({size} bytes)")

        info("Waiting for main application to be erased...")
        session.wait_for_erase()

        session.send_firmware(firmware, progress)
        if size:
            print("\rUploading: 100% - Complete!          ")

        session.wait_for_completion()
    except TransportError as e:
        print()
        error(str(e))
        print(e.diagnostics())
        return False

    success("Firmware update complete!")
    return True


def main():
    parser = argparse.ArgumentParser(
        description="Firmware upload tool for the packet bootloader"
    )
    parser.add_argument(
        "--port", "-p",
        required=True,
        help="Serial port (e.g., /dev/ttyACM0)"
    )
    parser.add_argument("--baud", "-b", type=int, default=115200,
                        help="Baud rate (default 115200)")
    parser.add_argument("--timeout", "-t", type=float, default=DEFAULT_TIMEOUT,
                        help="Seconds to wait for each bootloader reply")
    parser.add_argument("--device-id", type=lambda s: int(s, 0), default=DEVICE_ID,
                        help="Device ID sent to the bootloader (default 0x42)")
    parser.add_argument("--reserved", type=lambda s: int(s, 0), default=BOOTLOADER_SIZE,
                        help="Bootloader region skipped at the start of the image")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log every packet exchanged")
    parser.add_argument("file", type=Path, help="Firmware image file")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    if not args.file.exists():
        error(f"File not found: {args.file}")
        sys.exit(1)

    info("Reading firmware image...")
    try:
        firmware = read_firmware_file(args.file, args.reserved)
    except UploadError as e:
        error(str(e))
        sys.exit(1)
    success(f"Read firmware image ({len(firmware)} bytes)")

    try:
        transport = Transport(args.port, args.baud, timeout=args.timeout)
    except serial.SerialException as e:
        error(f"Error opening {args.port}: {e}")
        sys.exit(1)

    try:
        ok = cmd_upload(transport, firmware, args.device_id, args.timeout)
    finally:
        transport.close()

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
