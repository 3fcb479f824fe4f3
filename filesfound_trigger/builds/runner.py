"""BuildRunner — execute a queued build and record the result.

The job command runs without a shell.  Its environment is the process
environment, overlaid with the global properties and then with the
``filesfound_setting_*`` variables of the cause that triggered it.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping

from filesfound_trigger.logging import get_logger
from filesfound_trigger.triggers.environment import build_environment

if TYPE_CHECKING:
    from filesfound_trigger.builds.queue import QueuedBuild
    from filesfound_trigger.jobs.models import JobDefinition
    from filesfound_trigger.jobs.store import JobStore

log = get_logger(__name__)

_OUTPUT_LIMIT = 16_384


class BuildStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"  # could not be started, or timed out


@dataclass
class BuildRecord:
    job_name: str
    number: int
    status: BuildStatus
    causes: list[dict[str, Any]] = field(default_factory=list)
    return_code: int | None = None
    started_at: float = field(default_factory=time.time)
    finished_at: float | None = None
    output: str = ""
    error: str | None = None

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        return round(self.finished_at - self.started_at, 3)


class BuildRunner:
    def __init__(
        self,
        store: "JobStore",
        global_properties: Mapping[str, str] | None = None,
    ) -> None:
        self._store = store
        self._global_properties = dict(global_properties or {})

    async def run(self, job: "JobDefinition", item: "QueuedBuild") -> BuildRecord:
        """Run one build of *job* for the queued *item* and persist its record."""
        number = await self._store.next_build_number(job.name)
        record = BuildRecord(
            job_name=job.name,
            number=number,
            status=BuildStatus.SUCCESS,
            causes=[{**c.to_dict(), "count": n} for c, n in item.causes.items()],
        )
        env = build_environment(item.cause_list(), self._global_properties)
        log.info("build_started", job=job.name, number=number, causes=len(item.causes))

        if job.command:
            await self._execute(job, env, record)
        else:
            log.debug("build_has_no_command", job=job.name, number=number)

        record.finished_at = time.time()
        await self._store.save_build(record)
        log.info(
            "build_finished",
            job=job.name,
            number=number,
            status=record.status.value,
            return_code=record.return_code,
            duration_seconds=record.duration_seconds,
        )
        return record

    async def _execute(
        self, job: "JobDefinition", env: dict[str, str], record: BuildRecord
    ) -> None:
        try:
            proc = await asyncio.create_subprocess_exec(
                *job.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=job.working_directory,
                env=env,
            )
        except OSError as exc:
            record.status = BuildStatus.ERROR
            record.error = f"Cannot start {job.command[0]!r}: {exc}"
            log.error("build_start_failed", job=job.name, error=str(exc))
            return

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=job.timeout_seconds)
        except asyncio.TimeoutError:
            proc.kill()
            stdout, _ = await proc.communicate()
            record.status = BuildStatus.ERROR
            record.error = f"Build timed out after {job.timeout_seconds}s"
            log.warning("build_timed_out", job=job.name, timeout=job.timeout_seconds)
        else:
            record.status = BuildStatus.SUCCESS if proc.returncode == 0 else BuildStatus.FAILURE

        record.return_code = proc.returncode
        text = stdout.decode(errors="replace") if stdout else ""
        record.output = text[-_OUTPUT_LIMIT:]
