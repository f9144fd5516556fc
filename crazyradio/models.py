"""Immutable data models for Crazyradio radio parameters and ack frames.

All models are frozen dataclasses or IntEnums so they can be shared freely
between threads and used as settings-cache keys.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple, Union

from .errors import InvalidArgumentError

# nRF24 radio limits
MAX_CHANNEL = 125
ADDRESS_LENGTH = 5
MAX_ARC = 15


@dataclass(frozen=True, order=True)
class Channel:
    """Radio channel, 2400 MHz + channel MHz.

    Attributes:
        number: Channel number in [0, 125]
    """
    number: int

    def __post_init__(self):
        if not isinstance(self.number, int) or isinstance(self.number, bool):
            raise InvalidArgumentError(f"Channel must be an int, got {self.number!r}")
        if not 0 <= self.number <= MAX_CHANNEL:
            raise InvalidArgumentError(
                f"Channel {self.number} out of range [0, {MAX_CHANNEL}]"
            )

    @classmethod
    def coerce(cls, value: Union[Channel, int]) -> Channel:
        """Accept either a Channel or a plain channel number."""
        if isinstance(value, Channel):
            return value
        return cls(value)

    def __int__(self) -> int:
        return self.number

    def __str__(self) -> str:
        return str(self.number)


class Datarate(IntEnum):
    """Radio datarate, encoded as its ordinal on the wire."""
    DR_250KPS = 0
    DR_1MPS = 1
    DR_2MPS = 2


class Power(IntEnum):
    """Transmit power, encoded as its ordinal on the wire."""
    P_M18DBM = 0
    P_M12DBM = 1
    P_M6DBM = 2
    P_0DBM = 3

    @property
    def dbm(self) -> int:
        return (-18, -12, -6, 0)[self.value]


@dataclass(frozen=True)
class RadioAddress:
    """5-byte radio address."""
    value: bytes

    def __post_init__(self):
        # bytes(n) would build n zero bytes
        if isinstance(self.value, (int, str)):
            raise InvalidArgumentError(f"Invalid radio address {self.value!r}")
        try:
            raw = bytes(self.value)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"Invalid radio address {self.value!r}") from e
        if len(raw) != ADDRESS_LENGTH:
            raise InvalidArgumentError(
                f"Radio address must be exactly {ADDRESS_LENGTH} bytes, got {len(raw)}"
            )
        object.__setattr__(self, "value", raw)

    @classmethod
    def coerce(cls, value) -> RadioAddress:
        """Accept a RadioAddress or any 5-item bytes-like value."""
        if isinstance(value, RadioAddress):
            return value
        return cls(value)

    @classmethod
    def from_hex(cls, text: str) -> RadioAddress:
        """Parse an address like 'E7E7E7E7E7'."""
        try:
            return cls(bytes.fromhex(text))
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid radio address {text!r}") from e

    def __str__(self) -> str:
        return self.value.hex().upper()


@dataclass(frozen=True, order=True)
class RadioVersion:
    """Dongle hardware/firmware revision (from the BCD bcdDevice field)."""
    major: int
    minor: int
    subminor: int = 0

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.subminor)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.subminor}"


@dataclass(frozen=True)
class AckFrame:
    """Decoded response to a sent packet.

    Attributes:
        received: Ack was received from the remote radio
        power_detector: Received power detector triggered
        retry_count: Number of retransmissions done by the dongle (0-15)
        payload_length: Ack payload length reported by the dongle (0-32)
        payload: Ack payload bytes actually copied to the caller
    """
    received: bool
    power_detector: bool
    retry_count: int
    payload_length: int
    payload: bytes = b""

    @property
    def truncated(self) -> bool:
        """True if the caller buffer was too small for the whole payload."""
        return self.payload_length > len(self.payload)
