from .core import (
    CRADIO_PID,
    CRADIO_VID,
    DongleInfo,
    find_dongle,
    find_dongles,
    is_dongle_available,
    list_serials,
    parse_bcd_version,
    read_serial,
)
from ...errors import DongleNotFoundError

__all__ = [
    "CRADIO_PID",
    "CRADIO_VID",
    "DongleInfo",
    "find_dongle",
    "find_dongles",
    "is_dongle_available",
    "list_serials",
    "parse_bcd_version",
    "read_serial",
    "DongleNotFoundError",
]
