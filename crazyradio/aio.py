"""asyncio entry points for blocking Crazyradio operations.

Enumerating, opening and reading string descriptors are blocking libusb
calls that cannot be made non-blocking. Each call here runs the blocking
operation on its own worker thread and hands the outcome back to the event
loop through a single-use future, re-raising the original exception if it
failed.

Worker threads are not cancellable. If the awaiting task is cancelled or
its event loop goes away, the blocking call still runs to completion on its
thread and the result is discarded.

Example:
    >>> async def main():
    ...     print(await aio.list_serials())
    ...     radio = await aio.open_first()
    ...     radio.set_channel(80)
"""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, List, TypeVar

from .dongle.connection import Crazyradio
from .dongle.dongle_finder import core as dongle_finder

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _deliver_result(future: asyncio.Future, result) -> None:
    if not future.done():
        future.set_result(result)


def _deliver_exception(future: asyncio.Future, error: BaseException) -> None:
    if not future.done():
        future.set_exception(error)


async def run_blocking(func: Callable[..., T], *args, **kwargs) -> T:
    """Run ``func(*args, **kwargs)`` on a dedicated worker thread.

    Args:
        func: Blocking callable
        *args, **kwargs: Forwarded to func

    Returns:
        Whatever func returns; whatever func raises is raised here unchanged
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()
    name = getattr(func, "__name__", "call")

    def worker():
        try:
            result = func(*args, **kwargs)
        except BaseException as e:
            deliver, outcome = _deliver_exception, e
        else:
            deliver, outcome = _deliver_result, result
        try:
            loop.call_soon_threadsafe(deliver, future, outcome)
        except RuntimeError:
            # Event loop closed while we were blocked
            logger.debug(f"Discarding result of {name}, event loop is closed")

    threading.Thread(
        target=worker,
        daemon=True,
        name=f"CrazyradioBlocking-{name}",
    ).start()

    return await future


async def open_first(cache_settings: bool = True) -> Crazyradio:
    return await run_blocking(Crazyradio.open_first, cache_settings=cache_settings)


async def open_nth(nth: int, cache_settings: bool = True) -> Crazyradio:
    return await run_blocking(Crazyradio.open_nth, nth, cache_settings=cache_settings)


async def open_by_serial(serial: str, cache_settings: bool = True) -> Crazyradio:
    return await run_blocking(
        Crazyradio.open_by_serial, serial, cache_settings=cache_settings
    )


async def list_serials() -> List[str]:
    return await run_blocking(dongle_finder.list_serials)


async def read_serial(radio: Crazyradio) -> str:
    """Read the serial number of an opened radio."""
    return await run_blocking(lambda: radio.serial)
