"""Error taxonomy for the Crazyradio driver.

Every error raised by this package derives from CrazyradioError, so callers
can catch the whole family with a single except clause.
"""
from __future__ import annotations

from typing import Optional, Tuple


class CrazyradioError(RuntimeError):
    """Base class for all Crazyradio driver errors."""
    pass


class TransportError(CrazyradioError):
    """Raised when a USB transfer, enumeration, open or claim fails.

    The underlying pyusb exception is kept in ``usb_error`` and chained
    as ``__cause__``.
    """
    def __init__(self, message: str, usb_error: Optional[BaseException] = None):
        super().__init__(message)
        self.usb_error = usb_error


class DongleNotFoundError(CrazyradioError):
    """Raised when no matching dongle could be found."""
    pass


class InvalidArgumentError(CrazyradioError, ValueError):
    """Raised when a radio parameter is outside its hardware range."""
    pass


class UnsupportedVersionError(CrazyradioError):
    """Raised when the dongle firmware is older than the minimum supported."""
    def __init__(self, message: str, version: Tuple[int, int, int]):
        super().__init__(message)
        self.version = version


class RadioConsumedError(CrazyradioError):
    """Raised when a closed or bootloader-launched radio is used again."""
    pass
