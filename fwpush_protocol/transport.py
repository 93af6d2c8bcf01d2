# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
Transport layer for bootloader communication.

Handles the serial link, packet retransmission and the timed waits the
update session is built on. Everything runs on the caller's thread:
received bytes are pulled from the port and deframed only while the
caller sits in one of the wait points (sync, wait_for_packet,
wait_for_control, idle).
"""

import logging
import time
from typing import List, Optional

import serial

from .deframer import Deframer
from .protocol import (
    ACK_PACKET,
    SYNC_SEQ,
    Opcode,
    Packet,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0  # seconds
SYNC_INTERVAL = 0.5  # seconds between sync markers
POLL_INTERVAL = 0.001  # seconds


class TransportError(Exception):
    """
    Base exception for transport errors.

    Fatal errors carry the receive state at the time they were raised:
    ``pending`` is the partial packet still buffered and ``queued`` the
    application packets nobody consumed yet.
    """

    def __init__(
        self,
        message: str,
        pending: bytes = b"",
        queued: Optional[List[Packet]] = None,
    ):
        super().__init__(message)
        self.pending = pending
        self.queued = queued or []

    def diagnostics(self) -> str:
        lines = [f"  pending: {self.pending.hex(' ') if self.pending else '(empty)'}"]
        if self.queued:
            lines.extend(f"  queued:  {p!r}" for p in self.queued)
        else:
            lines.append("  queued:  (none)")
        return "\n".join(lines)


class TimeoutError(TransportError):
    """Timeout waiting for a packet."""
    pass


class ProtocolError(TransportError):
    """Protocol-level error (unexpected packet, etc.)."""
    pass


class PeerAbortError(TransportError):
    """The bootloader rejected the update with a NACK."""
    pass


class UploadError(TransportError):
    """Error with the firmware image being uploaded."""
    pass


class Transport:
    """
    Serial transport for the packet bootloader.

    Can be used as a context manager:
        with Transport("/dev/ttyACM0") as t:
            t.sync()
    """

    def __init__(
        self,
        port: str,
        baudrate: int = 115200,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Open a connection to the bootloader.

        Args:
            port: Serial port path (e.g., "/dev/ttyACM0")
            baudrate: Baud rate (default 115200)
            timeout: Default wait timeout in seconds (default 10.0)
        """
        # Reads never block; waiting is done by polling in wait_for_packet
        self._ser = serial.Serial(port, baudrate, timeout=0)
        self.timeout = timeout
        self._last_packet = ACK_PACKET
        self._deframer = Deframer(self.send, self.resend_last, self._peer_abort)
        time.sleep(0.1)  # Let the device settle

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self):
        """Close the serial connection."""
        if self._ser and self._ser.is_open:
            self._ser.close()

    @property
    def port(self) -> str:
        """Return the serial port name."""
        return self._ser.port

    @property
    def last_packet(self) -> bytes:
        """The packet a RETX from the bootloader would replay."""
        return self._last_packet

    @property
    def crc_errors(self) -> int:
        """Number of received packets dropped for a bad CRC."""
        return self._deframer.crc_errors

    def _write(self, data: bytes):
        """Send raw bytes."""
        self._ser.write(data)
        self._ser.flush()

    def send(self, packet: bytes) -> None:
        """Send an encoded packet and remember it for retransmission."""
        self._write(packet)
        self._last_packet = packet

    def resend_last(self) -> None:
        """Send the last packet again, byte for byte."""
        self._write(self._last_packet)

    def receive(self, data: bytes) -> None:
        """Feed bytes received from the link into the deframer."""
        self._deframer.append(data)

    def _peer_abort(self, packet: Packet):
        logger.error("Received NACK from bootloader")
        raise PeerAbortError("Received NACK", **self._state())

    def _state(self) -> dict:
        return {"pending": self._deframer.pending, "queued": self._deframer.queued}

    def _poll(self):
        """Pull whatever the port has buffered into the deframer."""
        if self._deframer.aborted:
            raise PeerAbortError("Received NACK", **self._state())
        waiting = self._ser.in_waiting
        if waiting:
            self.receive(self._ser.read(waiting))

    def idle(self, seconds: float) -> None:
        """Wait without expecting anything, still answering the link."""
        deadline = time.monotonic() + seconds
        self._poll()
        while time.monotonic() < deadline:
            time.sleep(POLL_INTERVAL)
            self._poll()

    def sync(
        self,
        interval: float = SYNC_INTERVAL,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Send the sync marker until the bootloader reports it has seen it.

        Args:
            interval: Seconds between sync markers
            timeout: Give up after this many seconds (default: transport timeout)

        Raises:
            ProtocolError: If any other packet arrives first
            TimeoutError: If SYNC_OBSERVED never arrives
        """
        timeout = self.timeout if timeout is None else timeout
        start = time.monotonic()

        while True:
            self._write(SYNC_SEQ)
            self.idle(interval)

            if len(self._deframer):
                packet = self._deframer.pop()
                if packet.is_control(Opcode.SYNC_OBSERVED):
                    return
                raise ProtocolError(
                    f"Wrong packet observed during sync sequence: {packet!r}",
                    **self._state(),
                )

            if time.monotonic() - start >= timeout:
                raise TimeoutError(
                    "Timed out waiting for sync sequence observed",
                    **self._state(),
                )

    def wait_for_packet(self, timeout: Optional[float] = None) -> Packet:
        """
        Wait for the next application packet.

        Args:
            timeout: Seconds to wait (default: transport timeout)

        Returns:
            The oldest queued packet

        Raises:
            TimeoutError: If no packet arrives in time
            PeerAbortError: If the bootloader sends NACK
        """
        timeout = self.timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout

        self._poll()
        while not len(self._deframer):
            if time.monotonic() >= deadline:
                raise TimeoutError(
                    f"Timed out waiting for packet ({timeout:g}s)",
                    **self._state(),
                )
            time.sleep(POLL_INTERVAL)
            self._poll()

        return self._deframer.pop()

    def wait_for_control(self, opcode: Opcode, timeout: Optional[float] = None) -> Packet:
        """
        Wait for the next packet and require it to be the given control packet.

        Raises:
            ProtocolError: If a different packet arrives
            TimeoutError: If no packet arrives in time
            PeerAbortError: If the bootloader sends NACK
        """
        packet = self.wait_for_packet(timeout)
        if not packet.is_control(opcode):
            state = self._state()
            state["queued"] = [packet] + state["queued"]
            raise ProtocolError(
                f"Unexpected packet received. Expected single byte "
                f"{Opcode(opcode)} (0x{opcode:02x}), got {packet!r}",
                **state,
            )
        return packet
