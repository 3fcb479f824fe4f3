"""Daemon layer — cron pollers and build dispatch."""

from filesfound_trigger.daemon.poller import CronPoller
from filesfound_trigger.daemon.service import TriggerDaemon

__all__ = ["CronPoller", "TriggerDaemon"]
