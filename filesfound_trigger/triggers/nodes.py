"""Execution targets: where a directory scan actually runs.

    LocalTarget   — the host running the daemon (node name "")
    RemoteTarget  — a named node reached through its scan agent over HTTP
    NodeRegistry  — resolves node names to targets

Both targets return ``None`` from ``scan()`` when the base path is not a
directory, and a (possibly empty) sorted list otherwise.

Usage::

    registry = NodeRegistry.from_settings(settings)
    target = registry.locate("build-02")
    if target is not None and target.is_reachable():
        files = target.scan(ScanRequest(directory="/in", include_pattern="*.xml"))
"""

from __future__ import annotations

import getpass
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Mapping

import httpx
from pydantic import ValidationError

from filesfound_trigger.agent.schemas import HEADER_API_TOKEN, ScanRequest, ScanResponse
from filesfound_trigger.exceptions import NodeCommunicationError, ScanError, ScanInterrupted
from filesfound_trigger.logging import get_logger
from filesfound_trigger.triggers.patterns import scan_directory

if TYPE_CHECKING:
    from filesfound_trigger.config import NodeEntry, Settings

log = get_logger(__name__)


def current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


class ExecutionTarget(ABC):
    """A location able to scan its own filesystem."""

    name: str = ""

    @property
    def user(self) -> str:
        """The account the scan runs as, reported in "directory not found"."""
        return current_user()

    @abstractmethod
    def is_reachable(self) -> bool:
        """False if the location is known but currently offline."""

    @abstractmethod
    def scan(
        self, request: ScanRequest, cancel: threading.Event | None = None
    ) -> list[str] | None:
        """Run the scan.  Raises OSError or a SearchError on failure."""


class LocalTarget(ExecutionTarget):
    name = ""

    def is_reachable(self) -> bool:
        return True

    def scan(
        self, request: ScanRequest, cancel: threading.Event | None = None
    ) -> list[str] | None:
        return scan_directory(
            request.directory,
            request.include_pattern,
            request.exclude_pattern,
            cancel=cancel,
        )


class RemoteTarget(ExecutionTarget):
    """A node reached through the agent's ``/health`` and ``/scan`` endpoints."""

    def __init__(
        self,
        name: str,
        entry: "NodeEntry",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.name = name
        self._entry = entry
        self._transport = transport
        self._user: str | None = None

    @property
    def url(self) -> str:
        return self._entry.url

    @property
    def user(self) -> str:
        return self._user or "unknown"

    def _client(self, timeout: float) -> httpx.Client:
        headers = {"Content-Type": "application/json"}
        if self._entry.api_token:
            headers[HEADER_API_TOKEN] = self._entry.api_token
        return httpx.Client(
            base_url=self._entry.url,
            headers=headers,
            timeout=timeout,
            transport=self._transport,
        )

    def is_reachable(self) -> bool:
        """Probe ``/health``.

        Raises:
            NodeCommunicationError: The agent answered but refused our token.
        """
        try:
            with self._client(self._entry.health_timeout_seconds) as client:
                resp = client.get("/health")
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log.debug("node_unreachable", node=self.name, url=self.url, error=str(exc))
            return False
        if resp.status_code in (401, 403):
            raise NodeCommunicationError(self.name, "agent rejected the API token")
        if resp.status_code != 200:
            log.debug("node_unhealthy", node=self.name, status=resp.status_code)
            return False
        body = _json_object(resp)
        if body is not None:
            self._user = str(body.get("user") or "") or None
        return True

    def scan(
        self, request: ScanRequest, cancel: threading.Event | None = None
    ) -> list[str] | None:
        # A round-trip cannot be aborted midway; honour cancellation before it.
        if cancel is not None and cancel.is_set():
            raise ScanInterrupted(
                f"Scan on node '{self.name}' was interrupted", context={"node": self.name}
            )
        try:
            with self._client(self._entry.timeout_seconds) as client:
                resp = client.post("/scan", json=request.model_dump())
        except httpx.TimeoutException as exc:
            raise NodeCommunicationError(
                self.name, f"no answer within {self._entry.timeout_seconds}s"
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise NodeCommunicationError(self.name, str(exc)) from exc

        if resp.status_code in (401, 403):
            raise NodeCommunicationError(self.name, "agent rejected the API token")
        if resp.status_code >= 400:
            raise ScanError(
                f"Scan failed on node '{self.name}': {_error_text(resp)}",
                context={"node": self.name, "status": resp.status_code},
            )
        try:
            body = ScanResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            raise NodeCommunicationError(self.name, f"malformed scan response: {exc}") from exc
        return body.files if body.exists else None


def _json_object(resp: httpx.Response) -> dict[str, Any] | None:
    try:
        body = resp.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _error_text(resp: httpx.Response) -> str:
    body = _json_object(resp)
    if body is None:
        return resp.text
    return str(body.get("error", resp.text))


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class NodeRegistry:
    """Resolves node names to execution targets.  Read-only once built."""

    def __init__(self, targets: Mapping[str, ExecutionTarget] | None = None) -> None:
        self._local = LocalTarget()
        self._targets: dict[str, ExecutionTarget] = dict(targets or {})

    @classmethod
    def from_settings(
        cls, settings: "Settings", transport: httpx.BaseTransport | None = None
    ) -> "NodeRegistry":
        return cls(
            {
                name: RemoteTarget(name, entry, transport=transport)
                for name, entry in settings.nodes.items()
            }
        )

    def register(self, name: str, target: ExecutionTarget) -> None:
        self._targets[name] = target

    def locate(self, node: str) -> ExecutionTarget | None:
        """Return the target for *node*; ``""`` is the local host, unknown is None."""
        if not node:
            return self._local
        return self._targets.get(node)

    def names(self) -> list[str]:
        return sorted(self._targets)

    def __contains__(self, node: object) -> bool:
        return node == "" or node in self._targets
