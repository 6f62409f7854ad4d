"""
Connectivity Watcher
====================
Polls a probe and fires a callback on every offline to online transition.
Used to drain the offline OTP queue when the network comes back.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import structlog

from ..scheduling import AsyncioScheduler, Scheduler
from .probes import NetworkProbe

logger = structlog.get_logger(__name__)


class ConnectivityWatcher:
    """
    Example:
        watcher = ConnectivityWatcher(probe, coordinator.drain_offline_queue)
        watcher.start()
        ...
        await watcher.stop()
    """

    def __init__(
        self,
        probe: NetworkProbe,
        on_restored: Callable[[], Awaitable[None]],
        scheduler: Optional[Scheduler] = None,
        interval: float = 5.0,
    ):
        self.probe = probe
        self.on_restored = on_restored
        self.scheduler = scheduler or AsyncioScheduler()
        self.interval = interval
        self._was_online: Optional[bool] = None
        self._task: Optional[asyncio.Task] = None

    async def poll_once(self) -> bool:
        """
        Probe once, invoking the callback on a restored connection.

        A failing probe leaves the last known state untouched.

        Returns:
            True if the callback fired
        """
        try:
            state = await self.probe.current()
        except Exception as e:
            logger.warning("connectivity_probe_failed", error=str(e))
            return False

        online = state.is_online
        restored = online and self._was_online is False
        self._was_online = online

        if not restored:
            return False

        logger.info("connectivity_restored", transport=state.transport.value)
        try:
            await self.on_restored()
        except Exception as e:
            logger.error("connectivity_callback_failed", error=str(e))
        return True

    async def run(self) -> None:
        while True:
            await self.poll_once()
            await self.scheduler.sleep(self.interval)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
