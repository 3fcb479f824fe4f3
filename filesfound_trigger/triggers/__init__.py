"""Triggers layer — pattern matching, file search and trigger evaluation.

    patterns     — Ant-style globs and the directory scan primitive
    expansion    — $name / ${name} substitution
    nodes        — local and remote execution targets
    models       — SearchConfig, SearchResult, FilesFoundTriggerCause
    search       — FileSearch.perform(), test_configuration()
    trigger      — FilesFoundTrigger.run()
    schedule     — multi-line cron schedules with H hashing
    migration    — persisted trigger shapes (v1, v2, v3)
    environment  — build environment export of the cause
"""

from filesfound_trigger.triggers.models import (
    FilesFoundTriggerCause,
    FilesFoundTriggerConfig,
    SearchConfig,
    SearchOutcome,
    SearchResult,
    Severity,
)
from filesfound_trigger.triggers.nodes import ExecutionTarget, LocalTarget, NodeRegistry, RemoteTarget
from filesfound_trigger.triggers.search import FileSearch
from filesfound_trigger.triggers.trigger import FilesFoundTrigger, TriggerContext

__all__ = [
    "ExecutionTarget",
    "FileSearch",
    "FilesFoundTrigger",
    "FilesFoundTriggerCause",
    "FilesFoundTriggerConfig",
    "LocalTarget",
    "NodeRegistry",
    "RemoteTarget",
    "SearchConfig",
    "SearchOutcome",
    "SearchResult",
    "Severity",
    "TriggerContext",
]
