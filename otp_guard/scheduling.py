"""
Clock and Scheduler
===================
Time sources and the single cancellable sleep primitive used by the
retry loop, the connectivity wait and the offline queue drain.
"""

import asyncio
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Source of the current time, in epoch seconds."""

    @abstractmethod
    def now(self) -> float:
        ...


class Scheduler(ABC):
    """Suspends the current task. Cancelling the task interrupts the sleep."""

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        ...


class SystemClock(Clock):
    def now(self) -> float:
        return time.time()


class AsyncioScheduler(Scheduler):
    async def sleep(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)
        else:
            await asyncio.sleep(0)
