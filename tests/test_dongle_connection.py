"""Unit tests for the Crazyradio driver (mocked pyusb device)."""

import unittest
from array import array
from unittest.mock import MagicMock, call, patch

import usb.core

from crazyradio.dongle.connection import (
    Crazyradio,
    EP_IN,
    EP_OUT,
    USB_TIMEOUT_MS,
)
from crazyradio.errors import (
    InvalidArgumentError,
    RadioConsumedError,
    TransportError,
    UnsupportedVersionError,
)
from crazyradio.models import Channel, Datarate, Power, RadioAddress, RadioVersion


def make_device(bcd=0x0052):
    """Build a mock pyusb Device."""
    device = MagicMock()
    device.bcdDevice = bcd
    return device


def vendor(request, value=0, data=b""):
    """Expected ctrl_transfer call for a vendor request."""
    return call(0x40, request, value, 0, data, timeout=1000)


def ack(status, payload=b""):
    return array('B', bytes([status]) + payload)


class DriverTestCase(unittest.TestCase):
    """Opens a Crazyradio on a mock device with pyusb util calls patched."""

    def setUp(self):
        self.claim_patcher = patch('usb.util.claim_interface')
        self.release_patcher = patch('usb.util.release_interface')
        self.dispose_patcher = patch('usb.util.dispose_resources')
        self.mock_claim = self.claim_patcher.start()
        self.mock_release = self.release_patcher.start()
        self.mock_dispose = self.dispose_patcher.start()

        self.device = make_device()

    def tearDown(self):
        self.claim_patcher.stop()
        self.release_patcher.stop()
        self.dispose_patcher.stop()

    def open_radio(self, **kwargs):
        radio = Crazyradio(self.device, **kwargs)
        self.device.reset_mock()
        return radio

    def transfer_calls(self):
        """ctrl_transfer and bulk write calls, in issue order."""
        return [c for c in self.device.mock_calls if c[0] in ('ctrl_transfer', 'write')]


class TestCrazyradioOpen(DriverTestCase):
    """Tests for opening and resetting the dongle."""

    def test_open_claims_and_resets(self):
        """Test open configures, claims and writes boot defaults."""
        radio = Crazyradio(self.device)

        self.device.set_configuration.assert_called_once_with(1)
        self.mock_claim.assert_called_once_with(self.device, 0)
        self.assertEqual(self.device.ctrl_transfer.call_args_list, [
            vendor(0x03, 2),
            vendor(0x01, 2),
            vendor(0x20, 0),
            vendor(0x02, 0, b"\xe7\xe7\xe7\xe7\xe7"),
            vendor(0x04, 3),
            vendor(0x06, 3),
            vendor(0x05, 0xA0),
            vendor(0x10, 1),
        ])
        self.assertEqual(radio.version, RadioVersion(0, 5, 2))
        self.assertEqual(radio.cache.channel, Channel(2))
        self.assertEqual(radio.cache.datarate, Datarate.DR_2MPS)
        self.assertEqual(radio.cache.address, RadioAddress(b"\xe7" * 5))

    def test_reset_bypasses_cache(self):
        """Test reset writes every setting even when already cached."""
        radio = self.open_radio()

        radio.reset()

        self.assertEqual(self.device.ctrl_transfer.call_count, 8)

    def test_unsupported_version(self):
        """Test firmware below 0.5 is refused before claiming."""
        self.device.bcdDevice = 0x0049

        with self.assertRaises(UnsupportedVersionError) as ctx:
            Crazyradio(self.device)

        self.assertEqual(ctx.exception.version, (0, 4, 9))
        self.mock_claim.assert_not_called()
        self.device.ctrl_transfer.assert_not_called()

    def test_claim_failure(self):
        """Test a busy interface raises TransportError."""
        self.mock_claim.side_effect = usb.core.USBError("Resource busy")

        with self.assertRaises(TransportError):
            Crazyradio(self.device)

        self.mock_release.assert_not_called()
        self.mock_dispose.assert_called_once_with(self.device)

    def test_reset_failure_releases(self):
        """Test the claim is released when the initial reset fails."""
        self.device.ctrl_transfer.side_effect = usb.core.USBError("Pipe error")

        with self.assertRaises(TransportError):
            Crazyradio(self.device)

        self.mock_release.assert_called_once_with(self.device, 0)
        self.mock_dispose.assert_called_once_with(self.device)

    @patch('crazyradio.dongle.connection.find_dongle')
    def test_open_first(self, mock_find):
        """Test open_first opens dongle #0."""
        mock_find.return_value = MagicMock(device=self.device)

        radio = Crazyradio.open_first()

        mock_find.assert_called_once_with(nth=0)
        self.assertIs(radio._device, self.device)

    @patch('crazyradio.dongle.connection.find_dongle')
    def test_open_nth(self, mock_find):
        """Test open_nth forwards the ordinal and cache option."""
        mock_find.return_value = MagicMock(device=self.device)

        radio = Crazyradio.open_nth(3, cache_settings=False)

        mock_find.assert_called_once_with(nth=3)
        self.assertFalse(radio.cache.enabled)

    @patch('crazyradio.dongle.connection.find_dongle')
    def test_open_by_serial(self, mock_find):
        """Test open_by_serial forwards the serial."""
        mock_find.return_value = MagicMock(device=self.device)

        Crazyradio.open_by_serial("E7E7E7E7E7")

        mock_find.assert_called_once_with(serial="E7E7E7E7E7")

    @patch('crazyradio.dongle.connection.read_serial', return_value="ABCD")
    def test_serial(self, mock_read_serial):
        """Test serial reads the string descriptor."""
        radio = self.open_radio()

        self.assertEqual(radio.serial, "ABCD")
        mock_read_serial.assert_called_once_with(self.device)


class TestCrazyradioSettings(DriverTestCase):
    """Tests for setters and the settings cache."""

    def test_cached_channel_skips_transfer(self):
        """Test setting the cached channel issues no transfer."""
        radio = self.open_radio()

        radio.set_channel(2)

        self.device.ctrl_transfer.assert_not_called()

    def test_new_channel_written_once(self):
        """Test a new channel is written once then cached."""
        radio = self.open_radio()

        radio.set_channel(Channel(80))
        radio.set_channel(80)

        self.assertEqual(self.device.ctrl_transfer.call_args_list, [vendor(0x01, 80)])
        self.assertEqual(radio.cache.channel, Channel(80))

    def test_cache_disabled_always_writes(self):
        """Test with caching disabled each call issues exactly one transfer."""
        radio = self.open_radio()
        radio.set_cache_settings(False)

        for _ in range(3):
            radio.set_channel(2)

        self.assertEqual(self.device.ctrl_transfer.call_count, 3)

    def test_cache_disabled_at_open(self):
        """Test cache_settings=False at construction."""
        radio = self.open_radio(cache_settings=False)

        radio.set_datarate(Datarate.DR_2MPS)
        radio.set_datarate(Datarate.DR_2MPS)

        self.assertEqual(self.device.ctrl_transfer.call_count, 2)

    def test_force_writes(self):
        """Test force bypasses the cache for one call."""
        radio = self.open_radio()

        radio.set_channel(2, force=True)
        radio.set_channel(2)

        self.assertEqual(self.device.ctrl_transfer.call_args_list, [vendor(0x01, 2)])

    def test_failed_write_keeps_cache(self):
        """Test a failed transfer leaves the cache unchanged."""
        radio = self.open_radio()
        self.device.ctrl_transfer.side_effect = usb.core.USBError("Timeout")

        with self.assertRaises(TransportError):
            radio.set_channel(10)

        self.assertEqual(radio.cache.channel, Channel(2))

        self.device.ctrl_transfer.side_effect = None
        radio.set_channel(10)
        self.assertEqual(radio.cache.channel, Channel(10))
        self.assertEqual(self.device.ctrl_transfer.call_count, 2)

    def test_address(self):
        """Test address is sent as data and cached."""
        radio = self.open_radio()

        radio.set_address(b"\x01\x02\x03\x04\x05")
        radio.set_address(RadioAddress(b"\x01\x02\x03\x04\x05"))

        self.assertEqual(
            self.device.ctrl_transfer.call_args_list,
            [vendor(0x02, 0, b"\x01\x02\x03\x04\x05")],
        )

    def test_datarate(self):
        """Test datarate write and cache."""
        radio = self.open_radio()

        radio.set_datarate(Datarate.DR_250KPS)

        self.assertEqual(self.device.ctrl_transfer.call_args_list, [vendor(0x03, 0)])
        self.assertEqual(radio.cache.datarate, Datarate.DR_250KPS)

    def test_uncached_setters_always_write(self):
        """Test power, ARD, ARC, ack and carrier are never cached."""
        radio = self.open_radio()

        radio.set_power(Power.P_0DBM)
        radio.set_power(Power.P_0DBM)
        radio.set_arc(3)
        radio.set_ard_bytes(32)
        radio.set_ard_time(500)
        radio.set_ack_enable(True)
        radio.set_cont_carrier(True)

        self.assertEqual(self.device.ctrl_transfer.call_args_list, [
            vendor(0x04, 3),
            vendor(0x04, 3),
            vendor(0x06, 3),
            vendor(0x05, 0xA0),
            vendor(0x05, 1),
            vendor(0x10, 1),
            vendor(0x20, 1),
        ])

    def test_invalid_arguments_issue_no_transfer(self):
        """Test range errors are raised before any transfer."""
        radio = self.open_radio()

        with self.assertRaises(InvalidArgumentError):
            radio.set_channel(126)
        with self.assertRaises(InvalidArgumentError):
            radio.set_arc(16)
        with self.assertRaises(InvalidArgumentError):
            radio.set_ard_bytes(33)
        with self.assertRaises(InvalidArgumentError):
            radio.set_ard_time(4001)
        with self.assertRaises(InvalidArgumentError):
            radio.set_address(b"\x01\x02")
        with self.assertRaises(InvalidArgumentError):
            radio.set_datarate(7)
        with self.assertRaises(InvalidArgumentError):
            radio.set_address(5)
        with self.assertRaises(InvalidArgumentError):
            radio.set_arc(2.5)

        self.device.ctrl_transfer.assert_not_called()
        self.assertEqual(radio.cache.channel, Channel(2))


class TestCrazyradioPackets(DriverTestCase):
    """Tests for packet exchange and scanning."""

    def test_send_packet(self):
        """Test bulk write then read and ack decoding."""
        radio = self.open_radio()
        self.device.read.return_value = ack(0b01010001, b"\x0a\x0b")

        result = radio.send_packet(b"\xff")

        self.device.write.assert_called_once_with(EP_OUT, b"\xff", timeout=USB_TIMEOUT_MS)
        self.device.read.assert_called_once_with(EP_IN, 33, timeout=USB_TIMEOUT_MS)
        self.assertTrue(result.received)
        self.assertFalse(result.power_detector)
        self.assertEqual(result.retry_count, 5)
        self.assertEqual(result.payload, b"\x0a\x0b")

    def test_send_packet_ack_buffer(self):
        """Test ack payload copied into a small caller buffer."""
        radio = self.open_radio()
        self.device.read.return_value = ack(0x01, b"abcdef")
        buffer = bytearray(4)

        result = radio.send_packet(b"\x01", buffer)

        self.assertEqual(bytes(buffer), b"abcd")
        self.assertEqual(result.payload_length, 6)
        self.assertTrue(result.truncated)

    def test_send_packet_too_long(self):
        """Test payloads over 32 bytes are rejected."""
        radio = self.open_radio()

        with self.assertRaises(InvalidArgumentError):
            radio.send_packet(b"\x00" * 33)

        self.device.write.assert_not_called()

    def test_send_packet_timeout(self):
        """Test a read timeout surfaces as TransportError."""
        radio = self.open_radio()
        self.device.read.side_effect = usb.core.USBTimeoutError("Operation timed out")

        with self.assertRaises(TransportError) as ctx:
            radio.send_packet(b"\xff")
        self.assertIsInstance(ctx.exception.__cause__, usb.core.USBTimeoutError)

    def test_send_packet_no_ack(self):
        """Test no-ack send only writes."""
        radio = self.open_radio()

        radio.send_packet_no_ack(b"\x01\x02")

        self.device.write.assert_called_once_with(EP_OUT, b"\x01\x02", timeout=USB_TIMEOUT_MS)
        self.device.read.assert_not_called()

    def test_scan_channels(self):
        """Test scan sets each channel then sends, in ascending order."""
        radio = self.open_radio()
        self.device.read.side_effect = [ack(0x01), ack(0x00), ack(0x31)]

        channels = radio.scan_channels(0, 2, b"\xff")

        self.assertEqual(channels, [Channel(0), Channel(2)])
        self.assertEqual(self.transfer_calls(), [
            call.ctrl_transfer(0x40, 0x01, 0, 0, b"", timeout=1000),
            call.write(EP_OUT, b"\xff", timeout=1000),
            call.ctrl_transfer(0x40, 0x01, 1, 0, b"", timeout=1000),
            call.write(EP_OUT, b"\xff", timeout=1000),
            call.ctrl_transfer(0x40, 0x01, 2, 0, b"", timeout=1000),
            call.write(EP_OUT, b"\xff", timeout=1000),
        ])

    def test_scan_no_response(self):
        """Test a silent range returns nothing."""
        radio = self.open_radio()
        self.device.read.return_value = ack(0xF0)

        self.assertEqual(radio.scan_channels(10, 20, b"\xff"), [])
        self.assertEqual(self.device.write.call_count, 11)

    def test_scan_empty_range(self):
        """Test start above stop scans nothing."""
        radio = self.open_radio()

        self.assertEqual(radio.scan_channels(5, 4, b"\xff"), [])
        self.device.write.assert_not_called()

    def test_scan_invalid_stop(self):
        """Test an out of range stop channel is rejected."""
        radio = self.open_radio()

        with self.assertRaises(InvalidArgumentError):
            radio.scan_channels(0, 126, b"\xff")


class TestCrazyradioLifecycle(DriverTestCase):
    """Tests for bootloader launch and close."""

    def test_launch_bootloader_consumes(self):
        """Test every call after bootloader launch is rejected."""
        radio = self.open_radio()

        radio.launch_bootloader()

        self.assertEqual(self.device.ctrl_transfer.call_args_list, [vendor(0xFF, 0)])
        self.assertTrue(radio.is_consumed)
        self.device.reset_mock()

        with self.assertRaises(RadioConsumedError):
            radio.set_channel(2)
        with self.assertRaises(RadioConsumedError):
            radio.set_power(Power.P_0DBM)
        with self.assertRaises(RadioConsumedError):
            radio.send_packet(b"\xff")
        with self.assertRaises(RadioConsumedError):
            radio.launch_bootloader()
        with self.assertRaises(RadioConsumedError):
            radio.serial

        self.device.ctrl_transfer.assert_not_called()
        self.device.write.assert_not_called()

    def test_failed_bootloader_keeps_radio(self):
        """Test a failed bootloader launch leaves the radio usable."""
        radio = self.open_radio()
        self.device.ctrl_transfer.side_effect = usb.core.USBError("Pipe error")

        with self.assertRaises(TransportError):
            radio.launch_bootloader()

        self.assertFalse(radio.is_consumed)
        self.device.ctrl_transfer.side_effect = None
        radio.set_channel(40)

    def test_close(self):
        """Test close releases the interface once."""
        radio = self.open_radio()

        radio.close()
        radio.close()

        self.mock_release.assert_called_once_with(self.device, 0)
        with self.assertRaises(RadioConsumedError):
            radio.set_channel(3)

    def test_close_after_bootloader(self):
        """Test close does not touch a bootloader-mode dongle."""
        radio = self.open_radio()
        radio.launch_bootloader()

        radio.close()

        self.mock_release.assert_not_called()

    def test_context_manager(self):
        """Test with-statement closes the radio."""
        with Crazyradio(self.device) as radio:
            radio.set_channel(10)

        self.assertTrue(radio.is_consumed)
        self.mock_release.assert_called_once()


if __name__ == '__main__':
    unittest.main()
