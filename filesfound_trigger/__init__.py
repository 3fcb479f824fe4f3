"""filesfound-trigger — Build trigger that fires when files are found.

A job's trigger polls one or more directories (locally or on a remote
node running the scan agent) on a cron schedule.  When files matching an
Ant-style pattern are found, a single build is queued and the matching
search is attached to it as the build cause.

Architecture layers (bottom to top):
    1. Triggers — pattern matching, file search, trigger evaluation, causes
    2. Builds   — build queue (quiet period, cause folding) and runner
    3. Jobs     — SQLite persistence of job definitions and build records
    4. Daemon   — cron pollers and build dispatch
    5. Agent    — HTTP scan service for remote nodes
    6. CLI      — typer front end
"""

__version__ = "0.1.0"
__author__ = "filesfound-trigger contributors"
__license__ = "MIT"

from filesfound_trigger.triggers.models import (
    FilesFoundTriggerCause,
    FilesFoundTriggerConfig,
    SearchConfig,
)
from filesfound_trigger.triggers.trigger import FilesFoundTrigger

__all__ = [
    "__version__",
    "FilesFoundTrigger",
    "FilesFoundTriggerCause",
    "FilesFoundTriggerConfig",
    "SearchConfig",
]
