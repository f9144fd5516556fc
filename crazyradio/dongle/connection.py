"""Low-level USB connection to a Crazyradio dongle.

The Crazyradio is an nRF24LU1+ based USB radio dongle that:
- Connects to PC via USB (VID=0x1915, PID=0x7777)
- Is configured through vendor control transfers on endpoint 0
- Sends radio packets on bulk OUT endpoint 0x01
- Returns one ack frame per packet on bulk IN endpoint 0x81

This module handles:
- Opening and exclusively claiming a dongle
- Radio configuration, with a cache eliding redundant writes
- Packet exchange and channel scanning
- Switching the dongle to its bootloader

Note: A Crazyradio instance is not thread-safe. Callers must serialize
      all operations on one instance.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Union

import usb.core
import usb.util

from ..errors import (
    InvalidArgumentError,
    RadioConsumedError,
    TransportError,
    UnsupportedVersionError,
)
from ..models import AckFrame, Channel, Datarate, Power, RadioAddress, RadioVersion
from ..protocol import CommandEncoder, ControlRequest, parse_ack
from .dongle_finder import find_dongle, parse_bcd_version, read_serial
from .settings import ADDRESS, CHANNEL, DATARATE, SettingsCache

logger = logging.getLogger(__name__)

USB_TIMEOUT_MS = 1000
USB_CONFIGURATION = 1
USB_INTERFACE = 0
EP_OUT = 0x01
EP_IN = 0x81
MAX_PAYLOAD = 32
ACK_FRAME_SIZE = MAX_PAYLOAD + 1

MIN_SUPPORTED_VERSION = RadioVersion(0, 5, 0)

# Host to device, vendor request, device recipient (0x40)
VENDOR_OUT_REQUEST_TYPE = usb.util.build_request_type(
    usb.util.CTRL_OUT,
    usb.util.CTRL_TYPE_VENDOR,
    usb.util.CTRL_RECIPIENT_DEVICE,
)

# Radio state after power-up
DEFAULT_CHANNEL = Channel(2)
DEFAULT_DATARATE = Datarate.DR_2MPS
DEFAULT_ADDRESS = RadioAddress(b"\xe7\xe7\xe7\xe7\xe7")
DEFAULT_POWER = Power.P_0DBM
DEFAULT_ARC = 3
DEFAULT_ARD_BYTES = 32


class Crazyradio:
    """Driver for one Crazyradio dongle.

    Owns an exclusive claim on the dongle's interface from construction
    until close() or launch_bootloader().

    Example:
        >>> with Crazyradio.open_first() as radio:
        ...     radio.set_channel(80)
        ...     radio.set_datarate(Datarate.DR_2MPS)
        ...     ack = radio.send_packet(b"\\xff")
        ...     ack.received
        True
    """

    def __init__(self, device, cache_settings: bool = True):
        """Open and reset a dongle.

        Args:
            device: pyusb Device for the dongle (see find_dongle())
            cache_settings: Skip writes of unchanged channel/address/datarate

        Raises:
            UnsupportedVersionError: If the dongle firmware is older than 0.5
            TransportError: If the dongle cannot be configured or claimed
        """
        self._device = device
        self._cache = SettingsCache(enabled=cache_settings)
        self._consumed: Optional[str] = None

        self._version = parse_bcd_version(device.bcdDevice)
        if self._version < MIN_SUPPORTED_VERSION:
            raise UnsupportedVersionError(
                f"Crazyradio version {self._version} is not supported "
                f"(minimum {MIN_SUPPORTED_VERSION})",
                self._version.as_tuple(),
            )

        try:
            self._device.set_configuration(USB_CONFIGURATION)
            usb.util.claim_interface(self._device, USB_INTERFACE)
        except usb.core.USBError as e:
            logger.warning(f"Failed to claim Crazyradio: {e}")
            usb.util.dispose_resources(self._device)
            raise TransportError(f"Failed to claim Crazyradio: {e}", e) from e

        try:
            self.reset()
        except Exception:
            self._release()
            raise

        logger.info(f"Opened Crazyradio version {self._version}")

    # Opening

    @classmethod
    def open_first(cls, cache_settings: bool = True) -> Crazyradio:
        """Open the first dongle found."""
        return cls.open_nth(0, cache_settings=cache_settings)

    @classmethod
    def open_nth(cls, nth: int, cache_settings: bool = True) -> Crazyradio:
        """Open the nth dongle in discovery order (0 based)."""
        info = find_dongle(nth=nth)
        return cls(info.device, cache_settings=cache_settings)

    @classmethod
    def open_by_serial(cls, serial: str, cache_settings: bool = True) -> Crazyradio:
        """Open the dongle with the given USB serial number."""
        info = find_dongle(serial=serial)
        return cls(info.device, cache_settings=cache_settings)

    # Properties

    @property
    def version(self) -> RadioVersion:
        return self._version

    @property
    def serial(self) -> str:
        """USB serial number of the dongle."""
        self._ensure_usable()
        return read_serial(self._device)

    @property
    def cache(self) -> SettingsCache:
        return self._cache

    @property
    def is_consumed(self) -> bool:
        return self._consumed is not None

    # Configuration

    def reset(self) -> None:
        """Write every radio setting to its power-up default, bypassing the cache."""
        self.set_datarate(DEFAULT_DATARATE, force=True)
        self.set_channel(DEFAULT_CHANNEL, force=True)
        self.set_cont_carrier(False)
        self.set_address(DEFAULT_ADDRESS, force=True)
        self.set_power(DEFAULT_POWER)
        self.set_arc(DEFAULT_ARC)
        self.set_ard_bytes(DEFAULT_ARD_BYTES)
        self.set_ack_enable(True)

    def set_cache_settings(self, enabled: bool) -> None:
        """Enable or disable the settings cache.

        When disabled, channel/address/datarate setters always write.
        """
        self._cache.set_enabled(enabled)

    def set_channel(self, channel: Union[Channel, int], *, force: bool = False) -> None:
        channel = Channel.coerce(channel)
        self._cached_write(CHANNEL, channel, CommandEncoder.channel(channel), force)

    def set_address(self, address, *, force: bool = False) -> None:
        """Set the 5-byte radio address."""
        address = RadioAddress.coerce(address)
        self._cached_write(ADDRESS, address, CommandEncoder.address(address), force)

    def set_datarate(self, datarate: Union[Datarate, int], *, force: bool = False) -> None:
        request = CommandEncoder.datarate(datarate)
        self._cached_write(DATARATE, Datarate(datarate), request, force)

    def set_power(self, power: Union[Power, int]) -> None:
        self._control(CommandEncoder.power(power))

    def set_ard_time(self, delay_ms: float) -> None:
        """Set the auto retry delay, rounded down to a 250ms step."""
        self._control(CommandEncoder.ard_time(delay_ms))

    def set_ard_bytes(self, nbytes: int) -> None:
        """Set the auto retry delay from the expected ack payload length."""
        self._control(CommandEncoder.ard_bytes(nbytes))

    def set_arc(self, arc: int) -> None:
        """Set the auto retry count (0-15)."""
        self._control(CommandEncoder.arc(arc))

    def set_ack_enable(self, enable: bool) -> None:
        self._control(CommandEncoder.ack_enable(enable))

    def set_cont_carrier(self, enable: bool) -> None:
        """Enable or disable continuous carrier mode (radio test)."""
        self._control(CommandEncoder.cont_carrier(enable))

    # Data transfers

    def send_packet(self, data: bytes, ack_buffer: Optional[bytearray] = None) -> AckFrame:
        """Send a packet and read back the ack frame.

        Args:
            data: Packet payload, at most 32 bytes
            ack_buffer: Optional writable buffer receiving the ack payload,
                truncated to its length

        Returns:
            Decoded AckFrame

        Raises:
            InvalidArgumentError: If data is longer than 32 bytes
            TransportError: On timeout, stall or disconnection
        """
        self._ensure_usable()
        self._check_payload(data)

        try:
            self._device.write(EP_OUT, data, timeout=USB_TIMEOUT_MS)
            frame = self._device.read(EP_IN, ACK_FRAME_SIZE, timeout=USB_TIMEOUT_MS)
        except usb.core.USBError as e:
            logger.warning(f"Packet transfer failed: {e}")
            raise TransportError(f"Packet transfer failed: {e}", e) from e

        return parse_ack(frame, ack_buffer)

    def send_packet_no_ack(self, data: bytes) -> None:
        """Send a packet without reading an ack frame.

        Only meaningful after set_ack_enable(False).
        """
        self._ensure_usable()
        self._check_payload(data)

        try:
            self._device.write(EP_OUT, data, timeout=USB_TIMEOUT_MS)
        except usb.core.USBError as e:
            logger.warning(f"Packet transfer failed: {e}")
            raise TransportError(f"Packet transfer failed: {e}", e) from e

    def scan_channels(
        self,
        start: Union[Channel, int],
        stop: Union[Channel, int],
        packet: bytes,
    ) -> List[Channel]:
        """Find the channels on which a remote radio acks ``packet``.

        Channels from start to stop (inclusive) are tried in ascending
        order, one packet at a time.

        Returns:
            Acked channels, ascending
        """
        start = Channel.coerce(start)
        stop = Channel.coerce(stop)
        self._check_payload(packet)

        ack_buffer = bytearray(MAX_PAYLOAD)
        result: List[Channel] = []
        for number in range(start.number, stop.number + 1):
            channel = Channel(number)
            self.set_channel(channel)
            ack = self.send_packet(packet, ack_buffer)
            if ack.received:
                result.append(channel)

        logger.debug(f"Scan {start}-{stop} found channels {[c.number for c in result]}")
        return result

    # Lifecycle

    def launch_bootloader(self) -> None:
        """Reboot the dongle into its bootloader.

        The instance is consumed: any further call raises RadioConsumedError.
        """
        self._control(CommandEncoder.launch_bootloader())
        self._consumed = "bootloader launched"
        logger.info("Crazyradio switched to bootloader")
        usb.util.dispose_resources(self._device)

    def close(self) -> None:
        """Release the dongle. Safe to call multiple times."""
        if self._consumed is not None:
            return
        self._consumed = "closed"
        self._release()
        logger.info("Closed Crazyradio")

    def __enter__(self) -> Crazyradio:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # Internal methods

    def _ensure_usable(self) -> None:
        if self._consumed is not None:
            raise RadioConsumedError(f"Crazyradio can no longer be used ({self._consumed})")

    @staticmethod
    def _check_payload(data: bytes) -> None:
        if len(data) > MAX_PAYLOAD:
            raise InvalidArgumentError(
                f"Packet of {len(data)} bytes exceeds {MAX_PAYLOAD} bytes"
            )

    def _cached_write(self, name: str, value, request: ControlRequest, force: bool) -> None:
        """Issue ``request`` unless the cache says the dongle already has ``value``."""
        self._ensure_usable()
        if not self._cache.needs_write(name, value, force):
            logger.debug(f"Skipping {request.command.name}, {name} already {value}")
            return
        self._control(request)
        self._cache.update(name, value)

    def _control(self, request: ControlRequest) -> None:
        """Send one vendor control transfer."""
        self._ensure_usable()
        logger.debug(
            f"{request.command.name} value=0x{request.value:02x} data={request.data.hex()}"
        )
        try:
            self._device.ctrl_transfer(
                VENDOR_OUT_REQUEST_TYPE,
                int(request.command),
                request.value,
                request.index,
                request.data,
                timeout=USB_TIMEOUT_MS,
            )
        except usb.core.USBError as e:
            logger.warning(f"{request.command.name} failed: {e}")
            raise TransportError(f"{request.command.name} failed: {e}", e) from e

    def _release(self) -> None:
        try:
            usb.util.release_interface(self._device, USB_INTERFACE)
        except usb.core.USBError as e:
            logger.error(f"Error releasing Crazyradio interface: {e}")
        finally:
            usb.util.dispose_resources(self._device)
