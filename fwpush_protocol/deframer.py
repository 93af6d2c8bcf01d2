# SPDX-License-Identifier: MIT
# Copyright (c) 2026 ADNT Sarl <info@adnt.io>

"""
Stream deframer for the 18-byte packet protocol.

Bytes may arrive in chunks of any size. Complete packets are cut from
the front of the buffer on 18-byte boundaries; no attempt is made to
re-align a stream that has slipped.
"""

import logging
from collections import deque
from typing import Callable, List

from .protocol import (
    ACK_PACKET,
    PACKET_LENGTH,
    RETX_PACKET,
    Packet,
    decode_packet,
)

logger = logging.getLogger(__name__)


class Deframer:
    """
    Turns a byte stream into a FIFO of application packets.

    Link-level packets are handled here and never queued:
    a packet with a bad CRC is answered with RETX, RETX replays the last
    packet we sent, ACK is dropped, and NACK aborts.

    Args:
        send: Writes an encoded packet to the link (and caches it)
        resend_last: Writes the cached last-sent packet again
        on_nack: Called with the NACK packet; processing stops afterwards
    """

    def __init__(
        self,
        send: Callable[[bytes], None],
        resend_last: Callable[[], None],
        on_nack: Callable[[Packet], None],
    ):
        self._send = send
        self._resend_last = resend_last
        self._on_nack = on_nack
        self._buffer = bytearray()
        self._queue = deque()
        self.aborted = False
        self.crc_errors = 0

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def pending(self) -> bytes:
        """Buffered bytes not yet forming a complete packet."""
        return bytes(self._buffer)

    @property
    def queued(self) -> List[Packet]:
        """Snapshot of the queued application packets, oldest first."""
        return list(self._queue)

    def pop(self) -> Packet:
        """Remove and return the oldest queued packet."""
        return self._queue.popleft()

    def append(self, data: bytes) -> None:
        """Add received bytes and process every complete packet."""
        if self.aborted:
            return

        self._buffer.extend(data)

        while len(self._buffer) >= PACKET_LENGTH:
            raw = bytes(self._buffer[:PACKET_LENGTH])
            del self._buffer[:PACKET_LENGTH]
            packet = decode_packet(raw)

            if not packet.verify():
                self.crc_errors += 1
                logger.debug(
                    "CRC mismatch (got 0x%02X, computed 0x%02X), requesting retransmit",
                    packet.crc, packet.compute_crc(),
                )
                self._send(RETX_PACKET)
                continue

            if packet.is_retx:
                logger.debug("Retransmitting last packet")
                self._resend_last()
                continue

            if packet.is_ack:
                continue

            if packet.is_nack:
                self.aborted = True
                self._on_nack(packet)
                return

            self._queue.append(packet)
            self._send(ACK_PACKET)
