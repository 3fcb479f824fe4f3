"""TriggerDaemon — arms a poller per job and dispatches the builds they queue.

It:

1. **Loads** the enabled jobs from the JobStore on startup.
2. **Arms** each job with a CronPoller on its trigger schedule.
3. **Evaluates** the trigger on every tick in a worker thread, bounded by
   ``scan_timeout_seconds``.
4. **Dispatches** due builds from the BuildQueue to the BuildRunner, at most
   ``max_concurrent_builds`` at a time and one at a time per job.
5. **Exposes** register / remove / enable / disable / poll_now at runtime.

Tick flow::

    CronPoller fires
        ↓
    TriggerDaemon._on_tick()
        ↓
    asyncio.to_thread(FilesFoundTrigger.run)   (cancel event set on timeout)
        ↓
    BuildQueue.schedule_build()                (cause folded if pending)
        ↓
    _dispatch_loop()  →  BuildRunner.run()

Usage::

    daemon = TriggerDaemon(store, NodeRegistry.from_settings(settings), settings.triggers)
    await daemon.start()
    ...
    await daemon.stop()
"""

from __future__ import annotations

import asyncio
from typing import Any

from filesfound_trigger.builds.queue import BuildQueue, QueuedBuild
from filesfound_trigger.builds.runner import BuildRunner
from filesfound_trigger.config import TriggerConfig
from filesfound_trigger.daemon.poller import CronPoller
from filesfound_trigger.exceptions import JobNotFoundError
from filesfound_trigger.jobs.models import JobDefinition
from filesfound_trigger.jobs.store import JobStore
from filesfound_trigger.logging import bind_job_context, clear_job_context, get_logger
from filesfound_trigger.triggers.models import FilesFoundTriggerCause
from filesfound_trigger.triggers.nodes import NodeRegistry
from filesfound_trigger.triggers.trigger import TriggerContext

log = get_logger(__name__)


class TriggerDaemon:
    """Long-lived orchestrator.  Start with ``start()``, stop with ``stop()``."""

    def __init__(
        self,
        store: JobStore,
        nodes: NodeRegistry,
        config: TriggerConfig | None = None,
        build_queue: BuildQueue | None = None,
        runner: BuildRunner | None = None,
    ) -> None:
        self._store = store
        self._nodes = nodes
        self._config = config or TriggerConfig()
        self._queue = build_queue or BuildQueue()
        self._runner = runner or BuildRunner(store, self._config.global_properties)

        # job name → running poller
        self._pollers: dict[str, CronPoller] = {}
        # job name → JobDefinition (in-memory cache)
        self._jobs: dict[str, JobDefinition] = {}
        # job name → running build task
        self._running: dict[str, asyncio.Task[Any]] = {}
        # job name → trigger evaluation whose worker thread has not returned yet
        self._ticks: dict[str, tuple[asyncio.Future[Any], TriggerContext]] = {}

        self._work_available = asyncio.Event()
        self._dispatch_task: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._started = False

    # ---------------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------------

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        self._loop = asyncio.get_running_loop()
        self._queue.add_listener(self._wake_dispatcher)

        jobs = await self._store.list_jobs(enabled_only=True)
        for job in jobs:
            self._jobs[job.name] = job
            await self._arm(job)

        self._dispatch_task = asyncio.create_task(self._dispatch_loop(), name="build_dispatcher")
        log.info("trigger_daemon_started", jobs=len(jobs), armed=len(self._pollers))

    async def stop(self) -> None:
        """Stop all pollers and the dispatcher, then wait for running builds."""
        if not self._started:
            return
        self._started = False

        if self._dispatch_task and not self._dispatch_task.done():
            self._dispatch_task.cancel()
            try:
                await self._dispatch_task
            except asyncio.CancelledError:
                pass

        await asyncio.gather(
            *(p.stop() for p in self._pollers.values()),
            return_exceptions=True,
        )
        self._pollers.clear()

        for _, context in self._ticks.values():
            context.cancel.set()

        if self._running:
            await asyncio.gather(*self._running.values(), return_exceptions=True)
        log.info("trigger_daemon_stopped")

    # ---------------------------------------------------------------------------
    # Job API
    # ---------------------------------------------------------------------------

    async def register(self, job: JobDefinition) -> JobDefinition:
        """Validate, persist and (if enabled) arm *job*.

        Raises:
            InvalidScheduleError: The trigger schedule does not parse.
        """
        job.trigger.parse_schedule(hash_id=job.name)
        await self._store.save_job(job)
        self._jobs[job.name] = job
        if job.enabled:
            await self._arm(job)
        else:
            await self._disarm(job.name)
        log.info("job_registered", job=job.name, enabled=job.enabled)
        return job

    async def remove(self, name: str) -> bool:
        await self._disarm(name)
        self._jobs.pop(name, None)
        self._queue.cancel(name)
        deleted = await self._store.delete_job(name)
        if deleted:
            log.info("job_removed", job=name)
        return deleted

    async def enable(self, name: str) -> JobDefinition:
        job = await self._store.set_enabled(name, True)
        self._jobs[name] = job
        await self._arm(job)
        return job

    async def disable(self, name: str) -> JobDefinition:
        await self._disarm(name)
        job = await self._store.set_enabled(name, False)
        self._jobs[name] = job
        return job

    async def poll_now(self, name: str) -> FilesFoundTriggerCause | None:
        """Evaluate *name*'s trigger immediately, outside its schedule."""
        job = self._jobs.get(name) or await self._store.get_job(name)
        if job is None:
            raise JobNotFoundError(name)
        self._jobs[name] = job
        return await self._evaluate(job)

    @property
    def build_queue(self) -> BuildQueue:
        return self._queue

    @property
    def armed_jobs(self) -> list[str]:
        return sorted(name for name, p in self._pollers.items() if p.is_running)

    @property
    def running_builds(self) -> list[str]:
        return sorted(self._running)

    # ---------------------------------------------------------------------------
    # Poller management
    # ---------------------------------------------------------------------------

    async def _arm(self, job: JobDefinition) -> None:
        if job.name in self._pollers:
            await self._disarm(job.name)
        try:
            schedule = job.trigger.parse_schedule(hash_id=job.name)
        except Exception as exc:
            log.error("job_arm_failed", job=job.name, error=str(exc))
            return
        if schedule.is_empty:
            log.info("job_not_armed_empty_schedule", job=job.name)
            return
        poller = CronPoller(job.name, schedule, self._on_tick)
        self._pollers[job.name] = poller
        await poller.start()
        log.debug("job_armed", job=job.name, schedule=schedule.spec)

    async def _disarm(self, name: str) -> None:
        poller = self._pollers.pop(name, None)
        if poller is not None:
            await poller.stop()

    # ---------------------------------------------------------------------------
    # Tick (called by pollers)
    # ---------------------------------------------------------------------------

    async def _on_tick(self, name: str) -> None:
        job = self._jobs.get(name)
        if job is None or not job.enabled:
            return
        await self._evaluate(job)

    async def _evaluate(self, job: JobDefinition) -> FilesFoundTriggerCause | None:
        """Run one evaluation of *job*'s trigger.

        Evaluations of one job never overlap: while a previous worker thread
        is still running (including one abandoned after a timeout) the new
        evaluation is skipped.
        """
        if job.name in self._ticks:
            log.warning("trigger_tick_skipped", job=job.name, reason="previous tick still running")
            return None
        quiet_period = (
            job.quiet_period_seconds
            if job.quiet_period_seconds is not None
            else self._config.quiet_period_seconds
        )
        context = TriggerContext(
            job_name=job.name,
            nodes=self._nodes,
            build_queue=self._queue,
            global_properties=self._config.global_properties,
            quiet_period=quiet_period,
        )
        future = asyncio.ensure_future(asyncio.to_thread(_run_trigger, job, context))
        self._ticks[job.name] = (future, context)
        future.add_done_callback(lambda f: self._tick_finished(job.name, f))
        try:
            # Shielded so a timeout leaves the future pending until the thread returns.
            return await asyncio.wait_for(
                asyncio.shield(future), timeout=self._config.scan_timeout_seconds
            )
        except asyncio.TimeoutError:
            context.cancel.set()
            log.warning(
                "trigger_tick_timed_out",
                job=job.name,
                timeout=self._config.scan_timeout_seconds,
            )
        except Exception as exc:
            log.error("trigger_tick_failed", job=job.name, error=str(exc), exc_info=True)
        return None

    def _tick_finished(self, name: str, future: asyncio.Future[Any]) -> None:
        entry = self._ticks.get(name)
        if entry is not None and entry[0] is future:
            del self._ticks[name]
        if not future.cancelled() and future.exception() is not None:
            log.debug("trigger_tick_thread_failed", job=name, error=str(future.exception()))

    # ---------------------------------------------------------------------------
    # Build dispatch
    # ---------------------------------------------------------------------------

    def _wake_dispatcher(self) -> None:
        # Called from worker threads.
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._work_available.set)

    async def _dispatch_loop(self) -> None:
        while True:
            try:
                await asyncio.wait_for(
                    self._work_available.wait(),
                    timeout=self._config.dispatch_interval_seconds,
                )
            except asyncio.TimeoutError:
                pass
            self._work_available.clear()
            try:
                self._dispatch_due()
            except Exception as exc:
                log.error("build_dispatch_failed", error=str(exc))

    def _dispatch_due(self) -> None:
        free = self._config.max_concurrent_builds - len(self._running)
        if free <= 0:
            return
        for item in self._queue.pop_due(limit=free, exclude=self._running):
            job = self._jobs.get(item.job_name)
            if job is None:
                log.warning("queued_build_dropped", job=item.job_name, reason="job removed")
                continue
            task = asyncio.create_task(self._run_build(job, item), name=f"build_{job.name}")
            self._running[job.name] = task

    async def _run_build(self, job: JobDefinition, item: QueuedBuild) -> None:
        try:
            await self._runner.run(job, item)
        except Exception as exc:
            log.error("build_failed_unexpectedly", job=job.name, error=str(exc), exc_info=True)
        finally:
            self._running.pop(job.name, None)
            self._work_available.set()


def _run_trigger(job: JobDefinition, context: TriggerContext) -> FilesFoundTriggerCause | None:
    bind_job_context(job=job.name)
    try:
        return job.trigger.run(context)
    finally:
        clear_job_context()
