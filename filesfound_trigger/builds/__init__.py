"""Builds layer — the build queue and the build runner."""

from filesfound_trigger.builds.queue import BuildQueue, QueuedBuild
from filesfound_trigger.builds.runner import BuildRecord, BuildRunner, BuildStatus

__all__ = ["BuildQueue", "BuildRecord", "BuildRunner", "BuildStatus", "QueuedBuild"]
