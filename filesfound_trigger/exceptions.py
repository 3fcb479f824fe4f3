"""filesfound-trigger — Exception hierarchy.

All exceptions raised by the package inherit from FilesFoundError so that
callers can catch the full family with a single except clause when needed.

Hierarchy:
    FilesFoundError
    ├── ConfigurationError
    │   ├── InvalidScheduleError
    │   └── ConfigMigrationError
    ├── SearchError
    │   ├── ScanError
    │   ├── NodeCommunicationError
    │   └── ScanInterrupted
    ├── StoreError
    │   └── JobNotFoundError
    └── BuildError
"""

from __future__ import annotations

from typing import Any


class FilesFoundError(Exception):
    """Base exception for all filesfound-trigger errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(FilesFoundError):
    """A job or trigger definition is unusable as written."""


class InvalidScheduleError(ConfigurationError):
    """A line of the trigger's cron specification could not be parsed."""

    def __init__(self, schedule: str, reason: str) -> None:
        super().__init__(
            f"Invalid schedule '{schedule}': {reason}",
            context={"schedule": schedule, "reason": reason},
        )
        self.schedule = schedule


class ConfigMigrationError(ConfigurationError):
    """A persisted trigger payload matches none of the known shapes."""

    def __init__(self, message: str, payload: Any = None) -> None:
        super().__init__(message, context={"payload": payload})
        self.payload = payload


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class SearchError(FilesFoundError):
    """Base for failures while performing a directory scan."""


class ScanError(SearchError):
    """The scan failed on the execution target (I/O or agent-side error)."""


class NodeCommunicationError(SearchError):
    """The remote node could not be reached or answered with garbage."""

    def __init__(self, node: str, reason: str) -> None:
        super().__init__(
            f"Cannot communicate with node '{node}': {reason}",
            context={"node": node, "reason": reason},
        )
        self.node = node


class ScanInterrupted(SearchError):
    """The scan observed a cancellation request and stopped early."""


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class StoreError(FilesFoundError):
    """Base for job store failures."""


class JobNotFoundError(StoreError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Job not found: '{name}'", context={"job": name})
        self.name = name


# ---------------------------------------------------------------------------
# Builds
# ---------------------------------------------------------------------------


class BuildError(FilesFoundError):
    """A queued build could not be started."""
