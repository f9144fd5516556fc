#!/usr/bin/env python3
"""
Crazyradio scan script.

Opens the first Crazyradio, scans every channel at every datarate with a
null packet and prints where a remote radio acked.
"""

import sys
import logging
from pathlib import Path

# Add package to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from crazyradio import Crazyradio, CrazyradioError, Datarate, DongleNotFoundError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)

# Crazyflie null packet
SCAN_PACKET = b"\xff"


def main():
    print("Opening Crazyradio...")
    try:
        radio = Crazyradio.open_first()
    except DongleNotFoundError:
        print("No Crazyradio found! Is the dongle plugged in?")
        return 1

    with radio:
        print(f"Serial: {radio.serial}  Version: {radio.version}")
        radio.set_arc(0)

        try:
            for datarate in Datarate:
                radio.set_datarate(datarate)
                channels = radio.scan_channels(0, 125, SCAN_PACKET)
                found = ", ".join(str(c) for c in channels) or "none"
                print(f"{datarate.name:>10}: {found}")
        except KeyboardInterrupt:
            print("\nInterrupted by user.")
        except CrazyradioError as e:
            print(f"Scan failed: {e}")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
