"""Unit tests — triggers/trigger.py (FilesFoundTrigger.run)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from filesfound_trigger.config import NodeEntry
from filesfound_trigger.exceptions import InvalidScheduleError
from filesfound_trigger.triggers.models import FilesFoundTriggerCause, SearchConfig
from filesfound_trigger.triggers.nodes import NodeRegistry, RemoteTarget
from filesfound_trigger.triggers.search import FileSearch
from filesfound_trigger.triggers.trigger import FilesFoundTrigger, TriggerContext


def _context(queue, nodes: NodeRegistry, **kwargs) -> TriggerContext:
    return TriggerContext(job_name="import", nodes=nodes, build_queue=queue, **kwargs)


@pytest.mark.unit
class TestFilesFoundTriggerConstruction:
    def test_empty_configs_replaced_by_one_empty_config(self) -> None:
        trigger = FilesFoundTrigger(schedule="* * * * *", configs=())
        assert trigger.configs == (SearchConfig(),)

    def test_configs_become_tuple(self) -> None:
        trigger = FilesFoundTrigger(configs=[SearchConfig(directory="/a")])
        assert isinstance(trigger.configs, tuple)

    def test_parse_schedule_rejects_garbage(self) -> None:
        with pytest.raises(InvalidScheduleError):
            FilesFoundTrigger(schedule="every minute").parse_schedule()


@pytest.mark.unit
class TestFilesFoundTriggerRun:
    def test_no_match_schedules_nothing(
        self, tmp_path: Path, recording_queue, local_nodes: NodeRegistry
    ) -> None:
        trigger = FilesFoundTrigger(
            configs=(SearchConfig(directory=str(tmp_path), include_pattern="*.xml"),)
        )
        assert trigger.run(_context(recording_queue, local_nodes)) is None
        assert recording_queue.calls == []

    def test_match_schedules_one_build_with_cause(
        self, make_tree, recording_queue, local_nodes: NodeRegistry
    ) -> None:
        root = make_tree("a.xml")
        trigger = FilesFoundTrigger(
            configs=(SearchConfig(directory=str(root), include_pattern="*.xml"),)
        )
        cause = trigger.run(_context(recording_queue, local_nodes, quiet_period=7))
        assert cause == FilesFoundTriggerCause(
            directory=str(root), include_pattern="*.xml", minimum_match_count="1"
        )
        assert recording_queue.calls == [("import", 7, cause)]

    def test_first_matching_config_wins(
        self, make_tree, recording_queue, local_nodes: NodeRegistry
    ) -> None:
        first = make_tree("one.xml", root="first")
        second = make_tree("two.xml", root="second")
        trigger = FilesFoundTrigger(
            configs=(
                SearchConfig(directory=str(first), include_pattern="*.json"),
                SearchConfig(directory=str(first), include_pattern="*.xml"),
                SearchConfig(directory=str(second), include_pattern="*.xml"),
            )
        )
        with patch.object(FileSearch, "perform", wraps=FileSearch.perform) as perform:
            cause = trigger.run(_context(recording_queue, local_nodes))
        assert cause is not None
        assert cause.directory == str(first)
        assert cause.include_pattern == "*.xml"
        assert perform.call_count == 2
        assert len(recording_queue.calls) == 1

    def test_threshold_respected(
        self, make_tree, recording_queue, local_nodes: NodeRegistry
    ) -> None:
        root = make_tree("a.xml", "b.xml")
        trigger = FilesFoundTrigger(
            configs=(
                SearchConfig(directory=str(root), include_pattern="*.xml", minimum_match_count="3"),
            )
        )
        assert trigger.run(_context(recording_queue, local_nodes)) is None

    def test_cause_carries_expanded_values(
        self, make_tree, recording_queue, local_nodes: NodeRegistry
    ) -> None:
        root = make_tree("a.xml")
        trigger = FilesFoundTrigger(configs=(SearchConfig(directory="$IN", include_pattern="*.xml"),))
        cause = trigger.run(
            _context(recording_queue, local_nodes, global_properties={"IN": str(root)})
        )
        assert cause is not None
        assert cause.directory == str(root)

    def test_failing_config_does_not_stop_the_next(
        self, make_tree, recording_queue, local_nodes: NodeRegistry
    ) -> None:
        root = make_tree("a.xml")
        trigger = FilesFoundTrigger(
            configs=(
                SearchConfig(directory="/unreadable", include_pattern="*.xml"),
                SearchConfig(directory=str(root), include_pattern="*.xml"),
            )
        )
        real_perform = FileSearch.perform

        def flaky(config, nodes, cancel=None):
            if config.directory == "/unreadable":
                raise PermissionError("denied")
            return real_perform(config, nodes, cancel=cancel)

        with patch.object(FileSearch, "perform", side_effect=flaky):
            cause = trigger.run(_context(recording_queue, local_nodes))
        assert cause is not None
        assert cause.directory == str(root)

    def test_cancelled_context_schedules_nothing(
        self, make_tree, recording_queue, local_nodes: NodeRegistry
    ) -> None:
        root = make_tree("a.xml")
        trigger = FilesFoundTrigger(configs=(SearchConfig(directory=str(root), include_pattern="*"),))
        context = _context(recording_queue, local_nodes)
        context.cancel.set()
        assert trigger.run(context) is None
        assert recording_queue.calls == []

    def test_running_twice_schedules_twice(
        self, make_tree, recording_queue, local_nodes: NodeRegistry
    ) -> None:
        root = make_tree("a.xml")
        trigger = FilesFoundTrigger(configs=(SearchConfig(directory=str(root), include_pattern="*"),))
        trigger.run(_context(recording_queue, local_nodes))
        trigger.run(_context(recording_queue, local_nodes))
        assert len(recording_queue.calls) == 2


def _remote_nodes(entry: NodeEntry, handler=None) -> NodeRegistry:
    transport = httpx.MockTransport(handler) if handler is not None else None
    return NodeRegistry({"n1": RemoteTarget("n1", entry, transport=transport)})


@pytest.mark.unit
class TestRemoteFailuresAreIsolated:
    def _trigger(self, root: Path) -> FilesFoundTrigger:
        return FilesFoundTrigger(
            configs=(
                SearchConfig(node="n1", directory="/in", include_pattern="*.xml"),
                SearchConfig(directory=str(root), include_pattern="*.xml"),
            )
        )

    def test_non_object_json_from_agent(self, make_tree, recording_queue) -> None:
        root = make_tree("a.xml")
        nodes = _remote_nodes(
            NodeEntry(url="http://n1:40100"), lambda r: httpx.Response(200, json=[])
        )
        cause = self._trigger(root).run(_context(recording_queue, nodes))
        assert cause is not None
        assert cause.directory == str(root)
        assert len(recording_queue.calls) == 1

    def test_malformed_node_url(self, make_tree, recording_queue) -> None:
        root = make_tree("a.xml")
        nodes = _remote_nodes(NodeEntry(url="http://n1:notaport"))
        cause = self._trigger(root).run(_context(recording_queue, nodes))
        assert cause is not None
        assert cause.directory == str(root)

    def test_rejected_token(self, make_tree, recording_queue) -> None:
        root = make_tree("a.xml")
        nodes = _remote_nodes(NodeEntry(url="http://n1:40100"), lambda r: httpx.Response(401))
        cause = self._trigger(root).run(_context(recording_queue, nodes))
        assert cause is not None
        assert cause.node == ""

    def test_unexpected_exception_in_one_config(
        self, make_tree, recording_queue, local_nodes: NodeRegistry
    ) -> None:
        root = make_tree("a.xml")
        trigger = FilesFoundTrigger(
            configs=(
                SearchConfig(directory="/broken", include_pattern="*.xml"),
                SearchConfig(directory=str(root), include_pattern="*.xml"),
            )
        )
        real_perform = FileSearch.perform

        def broken(config, nodes, cancel=None):
            if config.directory == "/broken":
                raise RuntimeError("bug")
            return real_perform(config, nodes, cancel=cancel)

        with patch.object(FileSearch, "perform", side_effect=broken):
            cause = trigger.run(_context(recording_queue, local_nodes))
        assert cause is not None
        assert cause.directory == str(root)
