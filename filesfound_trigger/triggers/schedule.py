"""Cron schedules of the files-found trigger.

A schedule is one cron expression per line.  Blank lines and lines
starting with ``#`` are ignored.  Each expression has five fields
(minute hour day-of-month month day-of-week) or is one of the ``@hourly``
style aliases.  ``H`` stands for a value hashed from the job name, which
spreads jobs sharing the same schedule across the period::

    # every fifteen minutes, at a job-specific offset
    H/15 * * * *
    # and once at night
    H H(0-5) * * *

The next fire time is the earliest next time of all lines.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from croniter import croniter

from filesfound_trigger.exceptions import InvalidScheduleError

_ALIASES = frozenset(
    {"@yearly", "@annually", "@monthly", "@weekly", "@daily", "@midnight", "@hourly"}
)


def _schedule_lines(spec: str) -> list[str]:
    lines = []
    for raw in spec.splitlines():
        line = raw.strip()
        if line and not line.startswith("#"):
            lines.append(line)
    return lines


@dataclass(frozen=True)
class TimerSchedule:
    spec: str
    lines: tuple[str, ...]
    hash_id: str | None = None

    @classmethod
    def parse(cls, spec: str, hash_id: str | None = None) -> "TimerSchedule":
        """Validate every line of *spec*.

        Raises:
            InvalidScheduleError: A line has the wrong number of fields or
                is rejected by croniter.
        """
        lines = _schedule_lines(spec or "")
        for line in lines:
            if line.lower() not in _ALIASES and len(line.split()) != 5:
                raise InvalidScheduleError(line, "expected 5 fields or an @alias")
            try:
                croniter(line, 0, hash_id=hash_id)
            except (ValueError, KeyError, TypeError) as exc:
                raise InvalidScheduleError(line, str(exc)) from exc
        return cls(spec=spec or "", lines=tuple(lines), hash_id=hash_id)

    @property
    def is_empty(self) -> bool:
        """An empty schedule never fires."""
        return not self.lines

    def next_fire(self, after: float) -> float | None:
        """Return the first fire time strictly after the *after* timestamp."""
        if not self.lines:
            return None
        # Local time, so that "H 2 * * *" means 02:xx on the host's clock.
        start = datetime.fromtimestamp(after).astimezone()
        return min(
            croniter(line, start, hash_id=self.hash_id).get_next(float) for line in self.lines
        )
