# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""Pytest configuration and shared fakes."""

from unittest.mock import patch

import pytest

from fwpush_protocol.protocol import (
    ACK_PACKET,
    PACKET_LENGTH,
    SYNC_SEQ,
    Opcode,
    decode_packet,
    encode_control,
)


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--device",
        action="store",
        default=None,
        help="Serial port for the device (e.g., /dev/ttyACM0)",
    )
    parser.addoption(
        "--firmware",
        action="store",
        default=None,
        help="Flash image to upload in integration tests",
    )


class FakeTime:
    """Stands in for the time module; sleep() advances monotonic()."""

    def __init__(self):
        self.now = 0.0

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float):
        self.now += seconds


class MockSerial:
    """
    Mock serial port for testing.

    Every write is recorded and handed to ``responder``; whatever it
    returns becomes readable. ``chunk_size`` limits how many bytes one
    read delivers.
    """

    def __init__(self, responder=None, chunk_size=None):
        self.responder = responder
        self.chunk_size = chunk_size
        self.rx = bytearray()
        self.writes = []
        self.is_open = True
        self.port = "/dev/ttyTEST"

    @property
    def in_waiting(self) -> int:
        if self.chunk_size:
            return min(self.chunk_size, len(self.rx))
        return len(self.rx)

    def read(self, size: int) -> bytes:
        data = bytes(self.rx[:size])
        del self.rx[:size]
        return data

    def write(self, data: bytes) -> int:
        self.writes.append(bytes(data))
        if self.responder:
            self.rx.extend(self.responder(bytes(data)))
        return len(data)

    def flush(self):
        pass

    def close(self):
        self.is_open = False

    def packets_written(self):
        """Framed writes other than ACKs, decoded."""
        return [
            decode_packet(w) for w in self.writes
            if len(w) == PACKET_LENGTH and w != ACK_PACKET
        ]


class FakeBootloader:
    """
    Scripted device side of the update handshake.

    Args:
        replace: Maps an opcode the bootloader would send to the opcode
            to send instead (None to stay silent)
        corrupt: Opcodes whose first transmission gets a bad CRC
    """

    def __init__(self, replace=None, corrupt=()):
        self.replace = replace or {}
        self.corrupt = set(corrupt)
        self.synced = False
        self.expected_length = None
        self.image = bytearray()
        self.retx_requests = 0
        self.last_sent = ACK_PACKET

    def _emit(self, *opcodes) -> bytes:
        out = bytearray()
        for opcode in opcodes:
            opcode = self.replace.get(opcode, opcode)
            if opcode is None:
                continue
            packet = encode_control(opcode)
            self.last_sent = packet
            if opcode in self.corrupt:
                self.corrupt.discard(opcode)
                packet = packet[:-1] + bytes([packet[-1] ^ 0xFF])
            out.extend(packet)
        return bytes(out)

    def __call__(self, data: bytes) -> bytes:
        if data == SYNC_SEQ:
            if self.synced:
                return b""
            self.synced = True
            return self._emit(Opcode.SYNC_OBSERVED)

        packet = decode_packet(data)
        if packet.is_ack:
            return b""
        if packet.is_retx:
            self.retx_requests += 1
            return self.last_sent

        if self.expected_length is not None:
            self.image.extend(packet.data[:packet.length + 1])
            if len(self.image) < self.expected_length:
                return ACK_PACKET + self._emit(Opcode.READY_FOR_DATA)
            return ACK_PACKET + self._emit(Opcode.UPDATE_SUCCESSFUL)

        if packet.is_control(Opcode.FW_UPDATE_REQ):
            return ACK_PACKET + self._emit(Opcode.FW_UPDATE_RES, Opcode.DEVICE_ID_REQ)
        if packet.length == 2 and packet.data[0] == Opcode.DEVICE_ID_RES:
            return ACK_PACKET + self._emit(Opcode.FW_LENGTH_REQ)
        if packet.length == 5 and packet.data[0] == Opcode.FW_LENGTH_RES:
            self.expected_length = int.from_bytes(packet.data[1:5], "little")
            if self.expected_length:
                return ACK_PACKET + self._emit(Opcode.READY_FOR_DATA)
            return ACK_PACKET + self._emit(Opcode.UPDATE_SUCCESSFUL)

        return ACK_PACKET + self._emit(Opcode.NACK)


@pytest.fixture
def fake_time():
    """Replace the transport's clock so timeouts elapse instantly."""
    clock = FakeTime()
    with patch("fwpush_protocol.transport.time", clock):
        yield clock


@pytest.fixture
def make_transport(fake_time):
    """Factory: Transport wired to a MockSerial."""
    from fwpush_protocol.transport import Transport

    def factory(responder=None, chunk_size=None, timeout=10.0):
        mock_serial = MockSerial(responder, chunk_size)
        with patch("fwpush_protocol.transport.serial.Serial", return_value=mock_serial):
            transport = Transport("/dev/ttyTEST", timeout=timeout)
        return transport, mock_serial

    return factory


@pytest.fixture
def fake_bootloader():
    """Factory for FakeBootloader responders."""
    return FakeBootloader
