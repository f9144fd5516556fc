"""Protocol layer: vendor command encoding and ack frame decoding."""

from .commands import CommandEncoder, ControlRequest, UsbCommand
from .parser import parse_ack

__all__ = [
    "CommandEncoder",
    "ControlRequest",
    "UsbCommand",
    "parse_ack",
]
