"""Ack frame parser for the Crazyradio bulk IN endpoint.

An ack frame is one status byte followed by up to 32 ack payload bytes:
- bit 0: ack received
- bit 1: power detector triggered
- bits 4-7: number of retransmissions
"""
from __future__ import annotations

import logging
from typing import Optional

from ..errors import TransportError
from ..models import AckFrame

logger = logging.getLogger(__name__)

ACK_RECEIVED_MASK = 0x01
POWER_DETECTOR_MASK = 0x02
RETRY_COUNT_SHIFT = 4


def parse_ack(frame, ack_buffer: Optional[bytearray] = None) -> AckFrame:
    """Decode an ack frame read from the dongle.

    Args:
        frame: Raw bytes read from the bulk IN endpoint
        ack_buffer: Optional writable buffer receiving the ack payload.
            The payload is copied up to the buffer capacity and silently
            truncated beyond it (see AckFrame.truncated).

    Returns:
        AckFrame with the decoded status and copied payload

    Raises:
        TransportError: If the frame does not even hold a status byte

    Examples:
        >>> ack = parse_ack(bytes([0b01010001, 0xAA]))
        >>> ack.received, ack.power_detector, ack.retry_count
        (True, False, 5)
    """
    frame = bytes(frame)
    if not frame:
        raise TransportError("Empty ack frame received from dongle")

    status = frame[0]
    payload = frame[1:]

    if ack_buffer is not None:
        copied = min(len(ack_buffer), len(payload))
        ack_buffer[:copied] = payload[:copied]
        payload = payload[:copied]
        if copied < len(frame) - 1:
            logger.warning(
                f"Ack payload truncated: {len(frame) - 1} bytes received, "
                f"buffer holds {copied}"
            )

    return AckFrame(
        received=bool(status & ACK_RECEIVED_MASK),
        power_detector=bool(status & POWER_DETECTOR_MASK),
        retry_count=status >> RETRY_COUNT_SHIFT,
        payload_length=len(frame) - 1,
        payload=payload,
    )
