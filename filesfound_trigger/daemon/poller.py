"""CronPoller — calls a tick callback on a job's cron schedule.

One poller runs per armed job as an asyncio task.  The next fire time is
computed after each tick completes, so ticks of one job never overlap; a
tick that overruns a slot simply skips it.

The ``tick_callback`` signature::

    async def on_tick(job_name: str) -> None:
        ...

Exceptions raised by the callback are logged and the poller keeps going.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

from filesfound_trigger.logging import get_logger
from filesfound_trigger.triggers.schedule import TimerSchedule

log = get_logger(__name__)

TickCallback = Callable[[str], Awaitable[object]]


class CronPoller:
    def __init__(self, job_name: str, schedule: TimerSchedule, tick_callback: TickCallback) -> None:
        self._job_name = job_name
        self._schedule = schedule
        self._tick_callback = tick_callback
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self.ticks = 0

    # ---------------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------------

    async def start(self) -> None:
        if self._task is not None and not self._task.done():
            return  # already running
        self._stop_event.clear()
        self._task = asyncio.create_task(self._guarded_run(), name=f"poller_{self._job_name}")
        log.debug("poller_started", job=self._job_name, schedule=self._schedule.spec)

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        log.debug("poller_stopped", job=self._job_name)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def job_name(self) -> str:
        return self._job_name

    # ---------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------

    async def _guarded_run(self) -> None:
        try:
            await self._run()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.error("poller_crashed", job=self._job_name, error=str(exc))

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            next_fire = self._schedule.next_fire(time.time())
            if next_fire is None:
                log.debug("poller_idle_empty_schedule", job=self._job_name)
                return
            delay = max(0.0, next_fire - time.time())
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                return  # stopped
            except asyncio.TimeoutError:
                pass
            await self.tick()

    async def tick(self) -> None:
        """Run the callback once.  Errors are caught and logged."""
        self.ticks += 1
        try:
            await self._tick_callback(self._job_name)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.error("poller_tick_failed", job=self._job_name, error=str(exc), exc_info=True)
