"""Crazyradio - host-side driver for the Crazyradio USB radio dongle."""

from .errors import (
    CrazyradioError,
    DongleNotFoundError,
    InvalidArgumentError,
    RadioConsumedError,
    TransportError,
    UnsupportedVersionError,
)
from .models import (
    AckFrame,
    Channel,
    Datarate,
    Power,
    RadioAddress,
    RadioVersion,
)
from .dongle import Crazyradio, SettingsCache, list_serials

__version__ = "0.1.0"

__all__ = [
    "AckFrame",
    "Channel",
    "Datarate",
    "Power",
    "RadioAddress",
    "RadioVersion",
    "Crazyradio",
    "SettingsCache",
    "list_serials",
    "CrazyradioError",
    "DongleNotFoundError",
    "InvalidArgumentError",
    "RadioConsumedError",
    "TransportError",
    "UnsupportedVersionError",
]
