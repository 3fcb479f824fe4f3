"""FilesFoundTrigger — evaluate the search configurations once per tick.

The first configuration (in declaration order) that finds enough files
schedules one build and wins the tick; later configurations are not
evaluated.  Nothing is remembered between ticks.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Mapping, Protocol

from filesfound_trigger.logging import get_logger
from filesfound_trigger.triggers.models import FilesFoundTriggerCause, SearchConfig
from filesfound_trigger.triggers.nodes import NodeRegistry
from filesfound_trigger.triggers.schedule import TimerSchedule

log = get_logger(__name__)


class BuildScheduler(Protocol):
    def schedule_build(
        self, job_name: str, quiet_period: int, cause: FilesFoundTriggerCause
    ) -> bool: ...


@dataclass
class TriggerContext:
    """Everything ``run()`` needs from its host for one tick."""

    job_name: str
    nodes: NodeRegistry
    build_queue: BuildScheduler
    global_properties: Mapping[str, str] = field(default_factory=dict)
    quiet_period: int = 0
    cancel: threading.Event = field(default_factory=threading.Event)

    @property
    def cancelled(self) -> bool:
        return self.cancel.is_set()


@dataclass(frozen=True)
class FilesFoundTrigger:
    schedule: str = ""
    configs: tuple[SearchConfig, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "schedule", (self.schedule or "").strip())
        configs = tuple(self.configs)
        object.__setattr__(self, "configs", configs or (SearchConfig(),))

    def parse_schedule(self, hash_id: str | None = None) -> TimerSchedule:
        """Parse ``schedule``.  Raises InvalidScheduleError."""
        return TimerSchedule.parse(self.schedule, hash_id=hash_id)

    def run(self, context: TriggerContext) -> FilesFoundTriggerCause | None:
        """Evaluate the configurations and schedule at most one build."""
        for index, config in enumerate(self.configs):
            if context.cancelled:
                log.info("trigger_run_interrupted", job=context.job_name, config_index=index)
                return None
            expanded = config.expand(context.global_properties)
            if not expanded.files_found(context.nodes, expand=False, cancel=context.cancel):
                continue
            if context.cancelled:
                return None
            cause = FilesFoundTriggerCause.from_config(expanded)
            queued = context.build_queue.schedule_build(
                context.job_name, context.quiet_period, cause
            )
            log.info(
                "build_triggered",
                job=context.job_name,
                config_index=index,
                directory=expanded.directory,
                node=expanded.node or "local",
                queued=queued,
            )
            return cause
        return None
