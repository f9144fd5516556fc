"""Dongle layer for the Crazyradio USB radio dongle.

This module provides:
- The Crazyradio driver (Crazyradio) - configuration, packets, scanning
- The settings cache used by its setters (SettingsCache)
- Device discovery utilities (find_dongles, find_dongle, list_serials)
"""

from .connection import Crazyradio
from .settings import SettingsCache
from .dongle_finder import (
    DongleInfo,
    DongleNotFoundError,
    find_dongle,
    find_dongles,
    is_dongle_available,
    list_serials,
)

__all__ = [
    # Driver
    'Crazyradio',
    'SettingsCache',

    # Finder
    'DongleInfo',
    'DongleNotFoundError',
    'find_dongle',
    'find_dongles',
    'is_dongle_available',
    'list_serials',
]
