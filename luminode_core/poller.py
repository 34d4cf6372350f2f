"""Periodic HTTP refresh of device state at two cadences."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from contextlib import suppress
from enum import Enum

_LOGGER = logging.getLogger(__name__)

FAST_POLL_INTERVAL = 5.0
SLOW_POLL_INTERVAL = 15.0

PollJob = Callable[[], Awaitable[None]]


class PollerState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    CLOSING = "closing"


class LuminodePoller:
    """Run refresh jobs immediately, then on a fast and a slow interval.

    Jobs are expected to handle their own request errors; anything that
    escapes is logged and the schedule keeps running.

    Usage:
        poller = LuminodePoller(
            "192.168.1.10",
            fast_jobs=[refresh_device_info, refresh_play_info],
            slow_jobs=[refresh_profiles],
        )
        poller.start()
        ...
        await poller.stop()
    """

    def __init__(
        self,
        name: str,
        *,
        fast_jobs: Sequence[PollJob] = (),
        slow_jobs: Sequence[PollJob] = (),
        fast_interval: float = FAST_POLL_INTERVAL,
        slow_interval: float = SLOW_POLL_INTERVAL,
    ) -> None:
        self.name = name
        self._fast_jobs = tuple(fast_jobs)
        self._slow_jobs = tuple(slow_jobs)
        self._fast_interval = fast_interval
        self._slow_interval = slow_interval
        self._state = PollerState.IDLE
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is PollerState.ACTIVE

    def start(self) -> None:
        """Start polling, replacing any schedule that is already running."""
        self._cancel_tasks()
        _LOGGER.debug("[%s] Starting device poll", self.name)
        if self._fast_jobs:
            self._tasks.append(
                asyncio.create_task(
                    self._run(self._fast_jobs, self._fast_interval),
                    name=f"luminode-poll-fast-{self.name}",
                )
            )
        if self._slow_jobs:
            self._tasks.append(
                asyncio.create_task(
                    self._run(self._slow_jobs, self._slow_interval),
                    name=f"luminode-poll-slow-{self.name}",
                )
            )
        self._state = PollerState.ACTIVE

    async def stop(self) -> None:
        """Cancel both schedules; safe to call when not started."""
        if self._state is PollerState.IDLE and not self._tasks:
            return
        self._state = PollerState.CLOSING
        tasks = self._cancel_tasks()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        self._state = PollerState.IDLE
        _LOGGER.debug("[%s] Stopped device poll", self.name)

    def _cancel_tasks(self) -> list[asyncio.Task[None]]:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        return tasks

    async def _run(self, jobs: tuple[PollJob, ...], interval: float) -> None:
        loop = asyncio.get_running_loop()
        next_run = loop.time()
        while True:
            results = await asyncio.gather(
                *(job() for job in jobs), return_exceptions=True
            )
            for result in results:
                if isinstance(result, Exception):
                    _LOGGER.warning("[%s] Poll job failed: %s", self.name, result)
            # Overrunning rounds are not caught up in bursts
            next_run = max(next_run + interval, loop.time())
            await asyncio.sleep(next_run - loop.time())
