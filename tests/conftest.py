"""Shared pytest fixtures for the filesfound-trigger test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest
import structlog

from filesfound_trigger.config import Settings, override_settings
from filesfound_trigger.triggers.models import FilesFoundTriggerCause
from filesfound_trigger.triggers.nodes import NodeRegistry


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True, scope="session")
def _stdlib_logging() -> None:
    # Keep structlog off stdout so CLI output can be parsed.
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    settings = Settings(
        triggers={"db_path": str(tmp_path / "jobs.db")},
        logging={"level": "debug", "format": "console"},
    )
    override_settings(settings)
    return settings


# ---------------------------------------------------------------------------
# Filesystem
# ---------------------------------------------------------------------------


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[..., Path]:
    """Create files (relative paths, "/" separated) under a fresh directory."""

    def _make(*paths: str, root: str = "tree") -> Path:
        base = tmp_path / root
        base.mkdir(parents=True, exist_ok=True)
        for rel in paths:
            target = base / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(rel)
        return base

    return _make


# ---------------------------------------------------------------------------
# Trigger collaborators
# ---------------------------------------------------------------------------


class RecordingQueue:
    """Build scheduler that only records what it was asked to schedule."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, int, FilesFoundTriggerCause]] = []

    def schedule_build(self, job_name: str, quiet_period: int, cause: FilesFoundTriggerCause) -> bool:
        self.calls.append((job_name, quiet_period, cause))
        return True


@pytest.fixture
def recording_queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
def local_nodes() -> NodeRegistry:
    return NodeRegistry()
