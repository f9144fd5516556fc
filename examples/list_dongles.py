#!/usr/bin/env python3
"""
List connected Crazyradio dongles using the asyncio entry points.
"""

import asyncio
import sys
import logging
from pathlib import Path

# Add package to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from crazyradio import aio

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)


async def main():
    serials = await aio.list_serials()
    print(f"Found {len(serials)} Crazyradio(s)")
    for idx, serial in enumerate(serials):
        print(f"  #{idx}: {serial}")

    if serials:
        radio = await aio.open_by_serial(serials[0])
        with radio:
            print(f"Opened {serials[0]}, version {radio.version}")


if __name__ == "__main__":
    asyncio.run(main())
