# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
Firmware update session.

Drives the bootloader handshake on top of a Transport:

    sync -> FW_UPDATE_REQ/RES -> DEVICE_ID_REQ/RES -> FW_LENGTH_REQ/RES
         -> erase settle -> READY_FOR_DATA/data ... -> UPDATE_SUCCESSFUL

Every step either completes or raises; nothing is retried here.
"""

import logging
from typing import Callable, Optional

from .image import check_firmware_length
from .protocol import (
    DEVICE_ID,
    PACKET_DATA_BYTES,
    Opcode,
    encode_control,
    encode_data_chunk,
    encode_device_id_response,
    encode_firmware_length_response,
)
from .transport import Transport

logger = logging.getLogger(__name__)

ERASE_SETTLE_STEPS = 3
ERASE_SETTLE_SECONDS = 1.0  # per step


class UpdateSession:
    """
    One firmware update over an open transport.

    Args:
        transport: Connected Transport
        device_id: Device ID reported to the bootloader
        timeout: Per-step wait timeout in seconds (default: transport timeout)
        erase_settle: Seconds per erase settle step
    """

    def __init__(
        self,
        transport: Transport,
        device_id: int = DEVICE_ID,
        timeout: Optional[float] = None,
        erase_settle: float = ERASE_SETTLE_SECONDS,
    ):
        self.transport = transport
        self.device_id = device_id
        self.timeout = timeout
        self.erase_settle = erase_settle

    def _expect(self, opcode: Opcode):
        return self.transport.wait_for_control(opcode, self.timeout)

    def sync(self):
        logger.info("Attempting to sync with the bootloader")
        self.transport.sync(timeout=self.timeout)
        logger.info("Synced")

    def request_update(self):
        logger.info("Requesting firmware update")
        self.transport.send(encode_control(Opcode.FW_UPDATE_REQ))
        self._expect(Opcode.FW_UPDATE_RES)
        logger.info("Firmware update request accepted")

    def send_device_id(self):
        logger.info("Waiting for device ID request")
        self._expect(Opcode.DEVICE_ID_REQ)
        self.transport.send(encode_device_id_response(self.device_id))
        logger.info("Responding with device ID 0x%02x", self.device_id)

    def send_length(self, length: int):
        logger.info("Waiting for firmware length request")
        self._expect(Opcode.FW_LENGTH_REQ)
        self.transport.send(encode_firmware_length_response(length))
        logger.info("Responding with firmware length (%d bytes)", length)

    def wait_for_erase(self):
        """Give the bootloader time to erase the application region."""
        for _ in range(ERASE_SETTLE_STEPS):
            logger.info("Waiting for main application to be erased...")
            self.transport.idle(self.erase_settle)

    def send_firmware(
        self,
        firmware: bytes,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ):
        """Send the image one READY_FOR_DATA at a time."""
        total = len(firmware)
        offset = 0
        while offset < total:
            self._expect(Opcode.READY_FOR_DATA)
            chunk = firmware[offset:offset + PACKET_DATA_BYTES]
            self.transport.send(encode_data_chunk(chunk))
            offset += len(chunk)

            logger.debug("Wrote %d bytes (%d/%d)", len(chunk), offset, total)
            if progress_callback:
                progress_callback(offset, total)

    def wait_for_completion(self):
        self._expect(Opcode.UPDATE_SUCCESSFUL)
        logger.info("Firmware update complete")

    def run(
        self,
        firmware: bytes,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> None:
        """
        Run the whole update.

        Args:
            firmware: Application image (bootloader region already removed)
            progress_callback: Optional callback(bytes_sent, total_bytes)

        Raises:
            UploadError: If the image cannot be described to the bootloader
            TransportError: On timeout, unexpected packet or NACK
        """
        check_firmware_length(firmware)

        self.sync()
        self.request_update()
        self.send_device_id()
        self.send_length(len(firmware))
        self.wait_for_erase()
        self.send_firmware(firmware, progress_callback)
        self.wait_for_completion()


def update_firmware(
    transport: Transport,
    firmware: bytes,
    device_id: int = DEVICE_ID,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """Convenience wrapper: run a full UpdateSession."""
    UpdateSession(transport, device_id=device_id).run(firmware, progress_callback)
