"""BuildQueue — the scheduling sink the trigger writes to.

A job has at most one pending item.  Scheduling a job that is already
waiting folds the new cause into the pending item (with a count) instead
of queueing a second build.  The queue is shared by every poller thread,
so all access goes through one lock.

Usage::

    queue = BuildQueue()
    queue.schedule_build("nightly", quiet_period=5, cause=cause)
    for item in queue.pop_due():
        ...
"""

from __future__ import annotations

import threading
import time
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Iterable

from filesfound_trigger.logging import get_logger
from filesfound_trigger.triggers.models import FilesFoundTriggerCause

log = get_logger(__name__)


@dataclass
class QueuedBuild:
    job_name: str
    due_at: float
    causes: Counter[FilesFoundTriggerCause] = field(default_factory=Counter)
    queued_at: float = field(default_factory=time.time)
    item_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def is_due(self, now: float) -> bool:
        return self.due_at <= now

    def cause_list(self) -> list[FilesFoundTriggerCause]:
        return list(self.causes)


class BuildQueue:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: dict[str, QueuedBuild] = {}
        self._listeners: list[Callable[[], None]] = []

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Call *callback* (from the scheduling thread) whenever an item is added."""
        self._listeners.append(callback)

    def schedule_build(
        self, job_name: str, quiet_period: int, cause: FilesFoundTriggerCause
    ) -> bool:
        """Queue a build of *job_name*.

        Returns:
            True if a new item was queued, False if the cause was folded into
            an item already waiting.
        """
        with self._lock:
            item = self._pending.get(job_name)
            if item is not None:
                item.causes[cause] += 1
                folded = True
            else:
                self._pending[job_name] = QueuedBuild(
                    job_name=job_name,
                    due_at=time.time() + max(0, quiet_period),
                    causes=Counter({cause: 1}),
                )
                folded = False

        if folded:
            log.debug("build_cause_folded", job=job_name)
            return False

        log.info("build_queued", job=job_name, quiet_period=quiet_period)
        for callback in self._listeners:
            callback()
        return True

    def pop_due(
        self,
        now: float | None = None,
        limit: int | None = None,
        exclude: Iterable[str] = (),
    ) -> list[QueuedBuild]:
        """Remove and return the items whose quiet period is over, oldest first."""
        now = time.time() if now is None else now
        skipped = set(exclude)
        with self._lock:
            due = sorted(
                (i for i in self._pending.values() if i.is_due(now) and i.job_name not in skipped),
                key=lambda i: i.due_at,
            )
            if limit is not None:
                due = due[:limit]
            for item in due:
                del self._pending[item.job_name]
        return due

    def cancel(self, job_name: str) -> bool:
        with self._lock:
            return self._pending.pop(job_name, None) is not None

    def pending(self) -> list[QueuedBuild]:
        with self._lock:
            return sorted(self._pending.values(), key=lambda i: i.due_at)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def __contains__(self, job_name: object) -> bool:
        with self._lock:
            return job_name in self._pending
