"""Job definitions.

A job couples a files-found trigger with the command a build runs.  Job
files are YAML or JSON; the ``trigger`` block may use any persisted trigger
shape (see ``triggers.migration``)::

    name: import-orders
    command: ["./import.sh", "--all"]
    working_directory: /opt/import
    trigger:
      schedule: "H/5 * * * *"
      configs:
        - directory: $INBOX/orders
          include_pattern: "**/*.xml"
          exclude_pattern: "**/*.tmp"
          minimum_match_count: 1
"""

from __future__ import annotations

import re
import shlex
from dataclasses import dataclass, field
from typing import Any, Mapping

from filesfound_trigger.exceptions import ConfigurationError
from filesfound_trigger.triggers.migration import dump_trigger, load_trigger
from filesfound_trigger.triggers.trigger import FilesFoundTrigger

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


@dataclass
class JobDefinition:
    name: str
    trigger: FilesFoundTrigger = field(default_factory=FilesFoundTrigger)
    command: list[str] = field(default_factory=list)
    working_directory: str | None = None
    enabled: bool = True
    quiet_period_seconds: int | None = None
    timeout_seconds: float | None = None
    description: str = ""

    def __post_init__(self) -> None:
        if not _NAME_RE.match(self.name or ""):
            raise ConfigurationError(
                f"Invalid job name {self.name!r}: use letters, digits, '.', '_' or '-'",
                context={"job": self.name},
            )
        if isinstance(self.command, str):
            self.command = shlex.split(self.command)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "enabled": self.enabled,
            "command": list(self.command),
            "working_directory": self.working_directory,
            "quiet_period_seconds": self.quiet_period_seconds,
            "timeout_seconds": self.timeout_seconds,
            "trigger": dump_trigger(self.trigger),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JobDefinition":
        """Build a job from a parsed job file or a stored definition.

        Raises:
            ConfigurationError: Missing name or unusable trigger block.
        """
        if not isinstance(data, Mapping) or "name" not in data:
            raise ConfigurationError("A job definition needs a 'name'")
        return cls(
            name=str(data["name"]),
            trigger=load_trigger(dict(data.get("trigger") or {})),
            command=data.get("command") or [],
            working_directory=data.get("working_directory"),
            enabled=bool(data.get("enabled", True)),
            quiet_period_seconds=data.get("quiet_period_seconds"),
            timeout_seconds=data.get("timeout_seconds"),
            description=data.get("description", "") or "",
        )
