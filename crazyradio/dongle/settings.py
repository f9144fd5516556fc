"""Settings cache for Crazyradio radio parameters.

Mirrors the radio parameters last confirmed written to the dongle so that
setters can skip control transfers that would not change anything. Only
channel, address and datarate are cached; they form the small working set
reused when talking to many remote radios.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from ..models import Channel, Datarate, RadioAddress

CHANNEL = "channel"
ADDRESS = "address"
DATARATE = "datarate"
CACHED_SETTINGS = (CHANNEL, ADDRESS, DATARATE)


class SettingsCache:
    """In-memory mirror of cached dongle settings.

    Not thread-safe: owned by a single Crazyradio instance.
    """

    def __init__(self, enabled: bool = True):
        """Initialize an empty cache.

        Args:
            enabled: If False, every setter always writes to the dongle.
        """
        self._enabled = enabled
        self._values: Dict[str, Any] = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled

    def needs_write(self, name: str, value: Any, force: bool = False) -> bool:
        """Decide whether setting ``name`` to ``value`` requires a transfer.

        Args:
            name: One of CACHED_SETTINGS
            value: Requested value
            force: Bypass the cache for this call

        Returns:
            True unless caching is enabled and the cached value is identical
        """
        if name not in CACHED_SETTINGS:
            raise KeyError(f"Setting {name!r} is not cached")
        if force or not self._enabled or name not in self._values:
            return True
        return self._values[name] != value

    def update(self, name: str, value: Any) -> None:
        """Record a value confirmed written to the dongle."""
        if name not in CACHED_SETTINGS:
            raise KeyError(f"Setting {name!r} is not cached")
        self._values[name] = value

    def clear(self) -> None:
        self._values.clear()

    @property
    def channel(self) -> Optional[Channel]:
        return self._values.get(CHANNEL)

    @property
    def address(self) -> Optional[RadioAddress]:
        return self._values.get(ADDRESS)

    @property
    def datarate(self) -> Optional[Datarate]:
        return self._values.get(DATARATE)
