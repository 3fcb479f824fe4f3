"""CLI — Helpers shared by the command modules."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from filesfound_trigger.config import Settings, override_settings
from filesfound_trigger.jobs.store import JobStore
from filesfound_trigger.logging import configure_logging


def load_settings(config: Path | None, log_level: str | None = None) -> Settings:
    """Load settings, install them as the singleton and configure logging."""
    settings = Settings.load(config_file=config)
    if log_level:
        settings.logging.level = log_level  # type: ignore[assignment]
    override_settings(settings)
    configure_logging(
        level=settings.logging.level,
        format=settings.logging.format,
        log_file=str(settings.logging.file) if settings.logging.file else None,
    )
    return settings


@asynccontextmanager
async def open_store(settings: Settings) -> AsyncIterator[JobStore]:
    store = JobStore(settings.triggers.db_path)
    await store.init()
    try:
        yield store
    finally:
        await store.close()
