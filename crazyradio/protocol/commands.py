"""Crazyradio vendor command encoder.

Converts logical radio parameters into USB vendor control requests.
Pure functions with no side effects: range violations raise
InvalidArgumentError before anything is sent to the dongle.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from ..errors import InvalidArgumentError
from ..models import (
    Channel,
    Datarate,
    Power,
    RadioAddress,
    MAX_ARC,
)

# Auto retry delay register
ARD_STEP_MS = 250
ARD_MAX_DELAY_MS = 4000
ARD_PAYLOAD_FLAG = 0x80
ARD_MAX_PAYLOAD_BYTES = 32


def _check_int(name: str, value) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be an int, got {value!r}")


class UsbCommand(IntEnum):
    """Vendor request codes understood by the dongle firmware."""
    SET_RADIO_CHANNEL = 0x01
    SET_RADIO_ADDRESS = 0x02
    SET_DATA_RATE = 0x03
    SET_RADIO_POWER = 0x04
    SET_RADIO_ARD = 0x05
    SET_RADIO_ARC = 0x06
    ACK_ENABLE = 0x10
    SET_CONT_CARRIER = 0x20
    LAUNCH_BOOTLOADER = 0xFF


@dataclass(frozen=True)
class ControlRequest:
    """One host-to-device vendor control transfer.

    Attributes:
        command: Vendor request code (bRequest)
        value: Encoded parameter word (wValue)
        index: Always 0 for this dongle (wIndex)
        data: Transfer payload, only used by SET_RADIO_ADDRESS
    """
    command: UsbCommand
    value: int = 0
    index: int = 0
    data: bytes = b""


class CommandEncoder:
    """Encoder for the Crazyradio vendor command set."""

    @staticmethod
    def channel(channel: Union[Channel, int]) -> ControlRequest:
        channel = Channel.coerce(channel)
        return ControlRequest(UsbCommand.SET_RADIO_CHANNEL, channel.number)

    @staticmethod
    def address(address) -> ControlRequest:
        """Address is sent as the 5-byte payload, wValue is unused."""
        address = RadioAddress.coerce(address)
        return ControlRequest(UsbCommand.SET_RADIO_ADDRESS, 0, data=address.value)

    @staticmethod
    def datarate(datarate: Union[Datarate, int]) -> ControlRequest:
        try:
            datarate = Datarate(datarate)
        except ValueError as e:
            raise InvalidArgumentError(f"Unknown datarate {datarate!r}") from e
        return ControlRequest(UsbCommand.SET_DATA_RATE, int(datarate))

    @staticmethod
    def power(power: Union[Power, int]) -> ControlRequest:
        try:
            power = Power(power)
        except ValueError as e:
            raise InvalidArgumentError(f"Unknown power level {power!r}") from e
        return ControlRequest(UsbCommand.SET_RADIO_POWER, int(power))

    @staticmethod
    def ard_time(delay_ms: float) -> ControlRequest:
        """Encode the auto retry delay as a 250ms step index.

        Rounds down to the step at or below ``delay_ms``:
            0000 - 250ms
            0001 - 500ms
            ........
            1111 - 4000ms
        Delays shorter than one step select the shortest delay.
        """
        if not isinstance(delay_ms, (int, float)) or isinstance(delay_ms, bool):
            raise InvalidArgumentError(f"ARD delay must be a number, got {delay_ms!r}")
        if delay_ms < 0 or delay_ms > ARD_MAX_DELAY_MS:
            raise InvalidArgumentError(
                f"ARD delay {delay_ms}ms out of range [0, {ARD_MAX_DELAY_MS}]"
            )
        step = max(0, math.floor(delay_ms / ARD_STEP_MS) - 1)
        return ControlRequest(UsbCommand.SET_RADIO_ARD, step)

    @staticmethod
    def ard_bytes(nbytes: int) -> ControlRequest:
        """Encode the auto retry delay as an expected ack payload length."""
        _check_int("ARD payload length", nbytes)
        if not 0 <= nbytes <= ARD_MAX_PAYLOAD_BYTES:
            raise InvalidArgumentError(
                f"ARD payload length {nbytes} out of range [0, {ARD_MAX_PAYLOAD_BYTES}]"
            )
        return ControlRequest(UsbCommand.SET_RADIO_ARD, ARD_PAYLOAD_FLAG | nbytes)

    @staticmethod
    def arc(arc: int) -> ControlRequest:
        _check_int("ARC", arc)
        if not 0 <= arc <= MAX_ARC:
            raise InvalidArgumentError(f"ARC {arc} out of range [0, {MAX_ARC}]")
        return ControlRequest(UsbCommand.SET_RADIO_ARC, arc)

    @staticmethod
    def ack_enable(enable: bool) -> ControlRequest:
        return ControlRequest(UsbCommand.ACK_ENABLE, 1 if enable else 0)

    @staticmethod
    def cont_carrier(enable: bool) -> ControlRequest:
        return ControlRequest(UsbCommand.SET_CONT_CARRIER, 1 if enable else 0)

    @staticmethod
    def launch_bootloader() -> ControlRequest:
        return ControlRequest(UsbCommand.LAUNCH_BOOTLOADER)
