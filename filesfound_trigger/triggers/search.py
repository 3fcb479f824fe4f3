"""FileSearch — validate a search configuration and run it on its node.

``perform()`` never expands variables; callers hand it an expanded
configuration.  ``test_configuration()`` is the validation entry point
used by the CLI: it expands and performs in one call.
"""

from __future__ import annotations

import threading
from typing import Mapping

from filesfound_trigger.agent.schemas import ScanRequest
from filesfound_trigger.logging import get_logger
from filesfound_trigger.triggers import messages
from filesfound_trigger.triggers.models import SearchConfig, SearchOutcome, SearchResult
from filesfound_trigger.triggers.nodes import NodeRegistry

log = get_logger(__name__)


class FileSearch:
    """Stateless search procedure."""

    @staticmethod
    def perform(
        config: SearchConfig,
        nodes: NodeRegistry,
        cancel: threading.Event | None = None,
    ) -> SearchResult:
        """Search for the files described by *config*.

        Raises:
            OSError: The local scan failed.
            SearchError: The remote scan failed, the node refused the API
                token, or the scan was interrupted.
        """
        if not config.directory:
            return SearchResult.failed(
                SearchOutcome.DIRECTORY_NOT_SPECIFIED, messages.DIRECTORY_NOT_SPECIFIED
            )
        if not config.include_pattern:
            return SearchResult.failed(
                SearchOutcome.FILES_NOT_SPECIFIED, messages.FILES_NOT_SPECIFIED
            )

        target = nodes.locate(config.node)
        if target is None:
            return SearchResult.failed(
                SearchOutcome.NODE_NOT_FOUND, messages.node_not_found(config.node)
            )
        if not target.is_reachable():
            return SearchResult.failed(
                SearchOutcome.NODE_OFFLINE, messages.node_offline(config.node)
            )

        files = target.scan(
            ScanRequest(
                directory=config.directory,
                include_pattern=config.include_pattern,
                exclude_pattern=config.exclude_pattern,
            ),
            cancel=cancel,
        )
        if files is None:
            return SearchResult.failed(
                SearchOutcome.DIRECTORY_NOT_FOUND, messages.directory_not_found(target.user)
            )

        log.debug(
            "file_search_done",
            directory=config.directory,
            node=config.node or "local",
            matches=len(files),
        )
        return SearchResult.matched(files)


def test_configuration(
    config: SearchConfig,
    nodes: NodeRegistry,
    global_properties: Mapping[str, str] | None = None,
) -> SearchResult:
    """Expand *config* and perform the search, for interactive validation."""
    return FileSearch.perform(config.expand(global_properties), nodes)


test_configuration.__test__ = False  # type: ignore[attr-defined]
