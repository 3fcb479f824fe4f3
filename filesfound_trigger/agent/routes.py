"""Agent layer — ``GET /health`` and ``POST /scan``."""

from __future__ import annotations

import socket
import time

from fastapi import APIRouter

from filesfound_trigger import __version__
from filesfound_trigger.agent.dependencies import AuthDep
from filesfound_trigger.agent.schemas import HealthResponse, ScanRequest, ScanResponse
from filesfound_trigger.exceptions import ScanError
from filesfound_trigger.logging import get_logger
from filesfound_trigger.triggers.nodes import current_user
from filesfound_trigger.triggers.patterns import scan_directory

log = get_logger(__name__)

router = APIRouter(dependencies=[AuthDep])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Agent health check")
async def health() -> HealthResponse:
    return HealthResponse(
        version=__version__,
        node=socket.gethostname(),
        user=current_user(),
        uptime_seconds=round(time.time() - _start_time, 2),
    )


@router.post("/scan", response_model=ScanResponse, summary="Scan a local directory")
def scan(body: ScanRequest) -> ScanResponse:
    # Sync handler: FastAPI runs it in its thread pool.
    try:
        files = scan_directory(body.directory, body.include_pattern, body.exclude_pattern)
    except OSError as exc:
        raise ScanError(
            f"Scan of '{body.directory}' failed: {exc}", context={"directory": body.directory}
        ) from exc
    log.debug("agent_scan_done", directory=body.directory, matches=len(files or []))
    if files is None:
        return ScanResponse(exists=False)
    return ScanResponse(exists=True, files=files)
