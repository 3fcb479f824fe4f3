"""Unit tests — triggers/search.py (FileSearch.perform, test_configuration)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from filesfound_trigger.config import NodeEntry
from filesfound_trigger.exceptions import NodeCommunicationError
from filesfound_trigger.triggers import search
from filesfound_trigger.triggers.models import SearchConfig, SearchOutcome, Severity
from filesfound_trigger.triggers.nodes import ExecutionTarget, NodeRegistry, RemoteTarget
from filesfound_trigger.triggers.search import FileSearch


def _remote(reachable: bool = True, files: list[str] | None = None) -> MagicMock:
    target = MagicMock(spec=ExecutionTarget)
    target.is_reachable.return_value = reachable
    target.scan.return_value = files
    target.user = "builder"
    return target


@pytest.mark.unit
class TestFileSearchPerform:
    def test_directory_not_specified(self, local_nodes: NodeRegistry) -> None:
        result = FileSearch.perform(SearchConfig(include_pattern="*"), local_nodes)
        assert result.outcome is SearchOutcome.DIRECTORY_NOT_SPECIFIED
        assert result.severity is Severity.ERROR
        assert result.files == ()

    def test_files_not_specified(self, local_nodes: NodeRegistry) -> None:
        result = FileSearch.perform(SearchConfig(directory="/in"), local_nodes)
        assert result.outcome is SearchOutcome.FILES_NOT_SPECIFIED

    def test_directory_checked_before_files(self, local_nodes: NodeRegistry) -> None:
        result = FileSearch.perform(SearchConfig(), local_nodes)
        assert result.outcome is SearchOutcome.DIRECTORY_NOT_SPECIFIED

    def test_unknown_node(self, local_nodes: NodeRegistry) -> None:
        config = SearchConfig(node="ghost", directory="/in", include_pattern="*")
        result = FileSearch.perform(config, local_nodes)
        assert result.outcome is SearchOutcome.NODE_NOT_FOUND
        assert "ghost" in result.message

    def test_offline_node(self) -> None:
        target = _remote(reachable=False)
        nodes = NodeRegistry({"n1": target})
        config = SearchConfig(node="n1", directory="/in", include_pattern="*")
        result = FileSearch.perform(config, nodes)
        assert result.outcome is SearchOutcome.NODE_OFFLINE
        target.scan.assert_not_called()

    def test_remote_directory_not_found_names_user(self) -> None:
        nodes = NodeRegistry({"n1": _remote(files=None)})
        config = SearchConfig(node="n1", directory="/in", include_pattern="*")
        result = FileSearch.perform(config, nodes)
        assert result.outcome is SearchOutcome.DIRECTORY_NOT_FOUND
        assert result.severity is Severity.WARNING
        assert "builder" in result.message

    def test_remote_match(self) -> None:
        nodes = NodeRegistry({"n1": _remote(files=["a.xml"])})
        config = SearchConfig(node="n1", directory="/in", include_pattern="*.xml")
        result = FileSearch.perform(config, nodes)
        assert result.outcome is SearchOutcome.MATCHED
        assert result.message == "Found 1 file: a.xml"

    def test_local_missing_directory(self, tmp_path: Path, local_nodes: NodeRegistry) -> None:
        config = SearchConfig(directory=str(tmp_path / "missing"), include_pattern="*")
        result = FileSearch.perform(config, local_nodes)
        assert result.outcome is SearchOutcome.DIRECTORY_NOT_FOUND

    def test_local_empty_directory_is_a_match_of_zero(
        self, tmp_path: Path, local_nodes: NodeRegistry
    ) -> None:
        config = SearchConfig(directory=str(tmp_path), include_pattern="*")
        result = FileSearch.perform(config, local_nodes)
        assert result.outcome is SearchOutcome.MATCHED
        assert result.message == "No files found."
        assert result.files == ()

    def test_local_many_files(self, make_tree, local_nodes: NodeRegistry) -> None:
        root = make_tree("a.xml", "b.xml", "sub/c.xml")
        config = SearchConfig(directory=str(root), include_pattern="**/*.xml")
        result = FileSearch.perform(config, local_nodes)
        assert result.message == "Found 3 files."
        assert result.files == ("a.xml", "b.xml", "sub/c.xml")

    def test_scan_errors_propagate(self) -> None:
        target = _remote()
        target.scan.side_effect = OSError("disk gone")
        nodes = NodeRegistry({"n1": target})
        config = SearchConfig(node="n1", directory="/in", include_pattern="*")
        with pytest.raises(OSError):
            FileSearch.perform(config, nodes)

    def test_local_single_file(self, make_tree, local_nodes: NodeRegistry) -> None:
        root = make_tree("test")
        config = SearchConfig(directory=str(root), include_pattern="**")
        result = FileSearch.perform(config, local_nodes)
        assert result.outcome is SearchOutcome.MATCHED
        assert result.message == "Found 1 file: test"
        assert result.files == ("test",)

    def test_local_two_files_in_order(self, make_tree, local_nodes: NodeRegistry) -> None:
        root = make_tree("test2", "test")
        config = SearchConfig(directory=str(root), include_pattern="**")
        result = FileSearch.perform(config, local_nodes)
        assert result.message == "Found 2 files."
        assert result.files == ("test", "test2")

    def test_exclude_everything(self, make_tree, local_nodes: NodeRegistry) -> None:
        root = make_tree("test")
        config = SearchConfig(directory=str(root), include_pattern="**", exclude_pattern="**")
        result = FileSearch.perform(config, local_nodes)
        assert result.outcome is SearchOutcome.MATCHED
        assert result.message == "No files found."
        assert result.files == ()

    def test_rejected_token_is_not_reported_offline(self) -> None:
        target = RemoteTarget(
            "n1",
            NodeEntry(url="http://n1:40100", api_token="wrong"),
            transport=httpx.MockTransport(lambda r: httpx.Response(401)),
        )
        config = SearchConfig(node="n1", directory="/in", include_pattern="*")
        with pytest.raises(NodeCommunicationError, match="API token"):
            FileSearch.perform(config, NodeRegistry({"n1": target}))

    def test_perform_does_not_expand(self, local_nodes: NodeRegistry) -> None:
        config = SearchConfig(directory="$NOT_EXPANDED_HERE", include_pattern="*")
        result = FileSearch.perform(config, local_nodes)
        assert result.outcome is SearchOutcome.DIRECTORY_NOT_FOUND


@pytest.mark.unit
class TestTestConfiguration:
    def test_expands_then_performs(self, make_tree, local_nodes: NodeRegistry) -> None:
        root = make_tree("report.csv")
        config = SearchConfig(directory="$OUT", include_pattern="*.csv")
        result = search.test_configuration(config, local_nodes, {"OUT": str(root)})
        assert result.outcome is SearchOutcome.MATCHED
        assert result.files == ("report.csv",)

    def test_reports_validation_errors(self, local_nodes: NodeRegistry) -> None:
        result = search.test_configuration(SearchConfig(directory="/in"), local_nodes)
        assert result.outcome is SearchOutcome.FILES_NOT_SPECIFIED
