"""Jobs layer — job definitions and their SQLite store."""

from filesfound_trigger.jobs.models import JobDefinition
from filesfound_trigger.jobs.store import JobStore

__all__ = ["JobDefinition", "JobStore"]
