"""filesfound-trigger — Structured logging.

Every process (daemon, agent, CLI) calls :func:`configure_logging` once.
Records go to stderr, and optionally to a file, rendered either for a
terminal or as one JSON object per line.

The job being polled is bound with :func:`bind_job_context` so that log
lines emitted deep inside a search (node lookups, scan failures) carry a
``job`` key without passing the name down every call.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

_JOB_KEYS = ("job", "node")

# Chatty libraries only surface their warnings unless we are debugging.
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "asyncio", "aiosqlite")


def bind_job_context(job: str | None = None, node: str | None = None) -> None:
    """Attach *job* (and optionally *node*) to log lines of the current task or thread."""
    values = {key: value for key, value in zip(_JOB_KEYS, (job, node)) if value is not None}
    if values:
        structlog.contextvars.bind_contextvars(**values)


def clear_job_context() -> None:
    structlog.contextvars.unbind_contextvars(*_JOB_KEYS)


def _strip_uvicorn_color(
    _logger: WrappedLogger, _method: str, event_dict: EventDict
) -> EventDict:
    event_dict.pop("color_message", None)
    return event_dict


def _build_handlers(
    formatter: logging.Formatter, log_file: str | None
) -> list[logging.Handler]:
    # stdout belongs to CLI output.
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(
    level: str = "info",
    format: str = "console",
    log_file: str | None = None,
) -> None:
    """Route structlog and stdlib logging through one formatter.

    Args:
        level:    debug, info, warning, error or critical.
        format:   ``"console"`` or ``"json"``.
        log_file: Extra destination; its directory is created if needed.
    """
    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _strip_uvicorn_color,
    ]
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if format == "json"
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )

    root = logging.getLogger()
    root.handlers = _build_handlers(formatter, log_file)
    root.setLevel(level.upper())

    quiet_level = logging.DEBUG if level.lower() == "debug" else logging.WARNING
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named *name*.

    Usage::

        log = get_logger(__name__)
        log.info("build_scheduled", job="nightly", quiet_period=5)
    """
    return structlog.get_logger(name)
