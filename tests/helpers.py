"""Async test helpers."""

import asyncio
from typing import Callable


async def run_until(predicate: Callable[[], bool], limit: int = 200) -> None:
    """Yield to the event loop until predicate holds."""
    for _ in range(limit):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("Condition not reached")


class FakeClock:
    """Sleep replacement that only wakes up when told to."""

    def __init__(self):
        self.sleeps: list[float] = []
        self._waiters: list[asyncio.Future] = []

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        await fut

    @property
    def pending(self) -> int:
        """Number of sleepers waiting for a tick."""
        return sum(1 for fut in self._waiters if not fut.done())

    def tick(self) -> None:
        """Wake every pending sleeper."""
        waiters, self._waiters = self._waiters, []
        for fut in waiters:
            if not fut.done():
                fut.set_result(None)


async def wait_for_condition(
    predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01
) -> None:
    """Poll predicate in real time until it holds or timeout passes."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not reached before timeout")
        await asyncio.sleep(interval)
