"""Unit tests — triggers/nodes.py (LocalTarget, RemoteTarget, NodeRegistry)."""

from __future__ import annotations

import json
import threading

import httpx
import pytest

from filesfound_trigger.agent.schemas import HEADER_API_TOKEN, ScanRequest
from filesfound_trigger.config import NodeEntry, Settings
from filesfound_trigger.exceptions import NodeCommunicationError, ScanError, ScanInterrupted
from filesfound_trigger.triggers.nodes import LocalTarget, NodeRegistry, RemoteTarget

_REQUEST = ScanRequest(directory="/in", include_pattern="*.xml")


def _target(handler, token: str | None = None) -> RemoteTarget:
    entry = NodeEntry(url="http://node-1:40100/", api_token=token)
    return RemoteTarget("node-1", entry, transport=httpx.MockTransport(handler))


@pytest.mark.unit
class TestNodeRegistry:
    def test_empty_name_is_local(self) -> None:
        assert isinstance(NodeRegistry().locate(""), LocalTarget)

    def test_unknown_is_none(self) -> None:
        assert NodeRegistry().locate("ghost") is None

    def test_from_settings(self) -> None:
        settings = Settings(nodes={"b2": {"url": "http://b2:40100"}})
        registry = NodeRegistry.from_settings(settings)
        assert registry.names() == ["b2"]
        target = registry.locate("b2")
        assert isinstance(target, RemoteTarget)
        assert target.url == "http://b2:40100"

    def test_contains(self) -> None:
        registry = NodeRegistry({"b2": LocalTarget()})
        assert "" in registry
        assert "b2" in registry
        assert "b3" not in registry


@pytest.mark.unit
class TestLocalTarget:
    def test_scan(self, make_tree) -> None:
        root = make_tree("a.xml")
        request = ScanRequest(directory=str(root), include_pattern="*.xml")
        assert LocalTarget().scan(request) == ["a.xml"]
        assert LocalTarget().is_reachable()


@pytest.mark.unit
class TestRemoteTarget:
    def test_reachable_and_user(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/health"
            return httpx.Response(200, json={"status": "ok", "user": "builder"})

        target = _target(handler)
        assert target.is_reachable()
        assert target.user == "builder"

    def test_unreachable_on_connect_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        assert not _target(handler).is_reachable()

    def test_unreachable_on_error_status(self) -> None:
        assert not _target(lambda r: httpx.Response(503)).is_reachable()

    def test_scan_sends_token_and_body(self) -> None:
        seen: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["token"] = request.headers.get(HEADER_API_TOKEN)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"exists": True, "files": ["a.xml"]})

        assert _target(handler, token="s3cret").scan(_REQUEST) == ["a.xml"]
        assert seen["token"] == "s3cret"
        assert seen["body"] == {"directory": "/in", "include_pattern": "*.xml", "exclude_pattern": ""}

    def test_scan_missing_directory_is_none(self) -> None:
        target = _target(lambda r: httpx.Response(200, json={"exists": False, "files": []}))
        assert target.scan(_REQUEST) is None

    def test_scan_empty_list_is_not_none(self) -> None:
        target = _target(lambda r: httpx.Response(200, json={"exists": True, "files": []}))
        assert target.scan(_REQUEST) == []

    def test_timeout_raises_communication_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(NodeCommunicationError):
            _target(handler).scan(_REQUEST)

    def test_rejected_token(self) -> None:
        with pytest.raises(NodeCommunicationError):
            _target(lambda r: httpx.Response(401)).scan(_REQUEST)

    def test_agent_error_raises_scan_error(self) -> None:
        target = _target(lambda r: httpx.Response(500, json={"error": "permission denied"}))
        with pytest.raises(ScanError, match="permission denied"):
            target.scan(_REQUEST)

    def test_malformed_response(self) -> None:
        target = _target(lambda r: httpx.Response(200, content=b"not json"))
        with pytest.raises(NodeCommunicationError):
            target.scan(_REQUEST)

    def test_cancelled_before_round_trip(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"exists": True, "files": []})

        cancel = threading.Event()
        cancel.set()
        with pytest.raises(ScanInterrupted):
            _target(handler).scan(_REQUEST, cancel=cancel)
        assert calls == []


@pytest.mark.unit
class TestRemoteTargetOddAnswers:
    def test_health_body_not_an_object(self) -> None:
        target = _target(lambda r: httpx.Response(200, json=[]))
        assert target.is_reachable()
        assert target.user == "unknown"

    def test_health_rejects_token(self) -> None:
        with pytest.raises(NodeCommunicationError, match="API token"):
            _target(lambda r: httpx.Response(403)).is_reachable()

    def test_error_body_not_an_object(self) -> None:
        target = _target(lambda r: httpx.Response(500, json=["boom"]))
        with pytest.raises(ScanError, match="boom"):
            target.scan(_REQUEST)

    def test_invalid_url_is_unreachable(self) -> None:
        target = RemoteTarget("n1", NodeEntry(url="http://n1:notaport"))
        assert not target.is_reachable()

    def test_invalid_url_scan_raises_communication_error(self) -> None:
        target = RemoteTarget("n1", NodeEntry(url="http://n1:notaport"))
        with pytest.raises(NodeCommunicationError):
            target.scan(_REQUEST)
