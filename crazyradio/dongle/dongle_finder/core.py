from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

import usb.core
import usb.util

from ...errors import DongleNotFoundError, TransportError
from ...models import RadioVersion

logger = logging.getLogger(__name__)

CRADIO_VID = 0x1915
CRADIO_PID = 0x7777


@dataclass(frozen=True)
class DongleInfo:
    """
    Representation of one Crazyradio dongle as seen by pyusb.

    Attributes:
        device: pyusb Device object, used to open the dongle.
        vid: USB Vendor ID.
        pid: USB Product ID.
        bus: USB bus number, if known.
        address: USB device address on the bus, if known.
        bcd_device: Raw BCD device release number (firmware version).
    """
    device: Any = field(compare=False, repr=False)
    vid: int
    pid: int
    bus: Optional[int]
    address: Optional[int]
    bcd_device: int

    @property
    def version(self) -> RadioVersion:
        return parse_bcd_version(self.bcd_device)


def parse_bcd_version(bcd: int) -> RadioVersion:
    """
    Decode a USB BCD release number (e.g. 0x0052 -> 0.5.2).

    The major number spans two BCD digits, minor and subminor one each.
    """
    major = ((bcd >> 12) & 0xF) * 10 + ((bcd >> 8) & 0xF)
    minor = (bcd >> 4) & 0xF
    subminor = bcd & 0xF
    return RadioVersion(major, minor, subminor)


def _device_to_info(device) -> DongleInfo:
    """Convert a pyusb Device to DongleInfo."""
    return DongleInfo(
        device=device,
        vid=device.idVendor,
        pid=device.idProduct,
        bus=getattr(device, "bus", None),
        address=getattr(device, "address", None),
        bcd_device=device.bcdDevice,
    )


def find_dongles(
    *,
    matcher: Optional[Callable[[DongleInfo], bool]] = None,
    expected_vid: int = CRADIO_VID,
    expected_pid: int = CRADIO_PID,
) -> List[DongleInfo]:
    """
    Find all Crazyradio dongles connected to this machine.

    Dongles are returned in pyusb discovery order, which is platform
    defined but stable while the bus is unchanged.

    Raises:
        TransportError: If the USB backend is unavailable or enumeration fails.
    """
    try:
        devices = list(usb.core.find(
            find_all=True,
            idVendor=expected_vid,
            idProduct=expected_pid,
        ))
    except (usb.core.USBError, usb.core.NoBackendError) as e:
        logger.warning(f"USB enumeration failed: {e}")
        raise TransportError(f"USB enumeration failed: {e}", e) from e

    results: List[DongleInfo] = []
    for device in devices:
        info = _device_to_info(device)
        if matcher is None or matcher(info):
            results.append(info)

    logger.debug(f"Found {len(results)} Crazyradio dongle(s)")
    return results


def read_serial(device) -> str:
    """
    Read the serial number string descriptor of a dongle.

    Uses the first language ID supported by the device.

    Raises:
        TransportError: If the descriptor cannot be read.
    """
    try:
        langids = device.langids
        if not langids:
            raise TransportError("Dongle reports no string descriptor language")
        serial = usb.util.get_string(device, device.iSerialNumber, langid=langids[0])
    except (usb.core.USBError, ValueError) as e:
        # pyusb raises ValueError when the langid table cannot be read
        logger.warning(f"Could not read dongle serial number: {e}")
        raise TransportError(f"Could not read serial number: {e}", e) from e
    return serial or ""


def list_serials() -> List[str]:
    """Serial numbers of all connected dongles, in discovery order."""
    return [read_serial(info.device) for info in find_dongles()]


def find_dongle(
    *,
    nth: int = 0,
    serial: Optional[str] = None,
) -> DongleInfo:
    """
    Find one dongle, either the nth discovered or the one with a given serial.

    Behaviour:
        - serial given -> first dongle whose serial number matches exactly
        - otherwise    -> the nth dongle in discovery order

    Raises:
        DongleNotFoundError: If no dongle matches.
        TransportError: If enumeration or a descriptor read fails.
    """
    dongles = find_dongles()

    if serial is not None:
        for info in dongles:
            if read_serial(info.device) == serial:
                return info
        raise DongleNotFoundError(f"No Crazyradio with serial {serial!r} found")

    if nth < 0 or nth >= len(dongles):
        raise DongleNotFoundError(
            f"Crazyradio #{nth} not found ({len(dongles)} connected)"
        )
    return dongles[nth]


def is_dongle_available(serial: Optional[str] = None) -> bool:
    """Check if a dongle is plugged in, without opening it.

    Args:
        serial: Specific serial number to look for, or None for any dongle.

    Returns:
        True if a matching dongle is found.
    """
    try:
        find_dongle(serial=serial)
        return True
    except DongleNotFoundError:
        return False
    except TransportError as e:
        logger.debug(f"Dongle availability check failed: {e}")
        return False
