"""Agent layer — FastAPI application factory.

Usage::

    app = create_agent_app(settings)
    uvicorn.run(app, host=settings.agent.host, port=settings.agent.port)
"""

from __future__ import annotations

from fastapi import FastAPI

from filesfound_trigger import __version__
from filesfound_trigger.agent import routes
from filesfound_trigger.agent.middleware import AccessLogMiddleware, build_error_handler
from filesfound_trigger.config import Settings, get_settings
from filesfound_trigger.exceptions import FilesFoundError


def create_agent_app(settings: Settings | None = None) -> FastAPI:
    """Create the scan agent application.

    Args:
        settings: Optional settings override (used in tests).
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="filesfound agent",
        description="Runs directory scans for the files-found trigger on this node.",
        version=__version__,
    )
    app.state.settings = settings

    app.add_middleware(AccessLogMiddleware)
    app.add_exception_handler(FilesFoundError, build_error_handler())  # type: ignore[arg-type]
    app.include_router(routes.router)
    return app
