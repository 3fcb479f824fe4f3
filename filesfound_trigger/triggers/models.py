"""Data models for the files-found trigger.

Defines:
    SearchConfig           — one directory/pattern search (immutable)
    FilesFoundTriggerConfig — public alias of SearchConfig
    Severity, SearchOutcome — classification of a search
    SearchResult           — outcome + message + matched files
    FilesFoundTriggerCause — snapshot of the config that fired a build

All string fields are trimmed at construction; the empty string is the
"unset" sentinel and ``None`` is never stored.
"""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping

from filesfound_trigger.exceptions import ScanInterrupted, SearchError
from filesfound_trigger.logging import get_logger
from filesfound_trigger.triggers import messages
from filesfound_trigger.triggers.expansion import build_variables, replace_macro

if TYPE_CHECKING:
    from filesfound_trigger.triggers.nodes import NodeRegistry

log = get_logger(__name__)

LOCAL_NODE_ALIASES = frozenset({"master", "built-in"})
DEFAULT_MINIMUM_MATCH_COUNT = 1


def _clean(value: Any) -> str:
    return "" if value is None else str(value).strip()


def normalise_node(node: Any) -> str:
    """Map the built-in node names to the empty "local host" sentinel."""
    name = _clean(node)
    return "" if name.lower() in LOCAL_NODE_ALIASES else name


def parse_minimum_match_count(text: str) -> int:
    """Parse a threshold, falling back to 1 for empty, invalid or < 1 input."""
    try:
        value = int(text)
    except (TypeError, ValueError):
        return DEFAULT_MINIMUM_MATCH_COUNT
    return value if value >= 1 else DEFAULT_MINIMUM_MATCH_COUNT


# ---------------------------------------------------------------------------
# Search configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SearchConfig:
    """A directory to search, the files to look for and the match threshold.

    ``directory`` and the patterns may hold ``$name`` references which are
    resolved by ``expand()`` at evaluation time; the raw form is what gets
    persisted.
    """

    node: str = ""
    directory: str = ""
    include_pattern: str = ""
    exclude_pattern: str = ""
    minimum_match_count: str = "1"

    def __post_init__(self) -> None:
        object.__setattr__(self, "node", normalise_node(self.node))
        for name in ("directory", "include_pattern", "exclude_pattern", "minimum_match_count"):
            object.__setattr__(self, name, _clean(getattr(self, name)))

    @property
    def threshold(self) -> int:
        return parse_minimum_match_count(self.minimum_match_count)

    @property
    def is_local(self) -> bool:
        return not self.node

    def expand(
        self,
        global_properties: Mapping[str, str] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> "SearchConfig":
        """Return a copy with ``$name`` / ``${name}`` references resolved."""
        variables = build_variables(global_properties, environ)
        return SearchConfig(
            node=replace_macro(self.node, variables),
            directory=replace_macro(self.directory, variables),
            include_pattern=replace_macro(self.include_pattern, variables),
            exclude_pattern=replace_macro(self.exclude_pattern, variables),
            minimum_match_count=replace_macro(self.minimum_match_count, variables),
        )

    def find_files(
        self,
        nodes: "NodeRegistry",
        global_properties: Mapping[str, str] | None = None,
        *,
        expand: bool = True,
        cancel: threading.Event | None = None,
    ) -> list[str]:
        """Search and return the matched files.

        Failures are logged and reported as "nothing found".  When the scan
        is interrupted the *cancel* event is left set for the caller to see.
        """
        from filesfound_trigger.triggers.search import FileSearch

        config = self.expand(global_properties) if expand else self
        try:
            return list(FileSearch.perform(config, nodes, cancel=cancel).files)
        except ScanInterrupted as exc:
            log.warning(
                "file_search_interrupted",
                directory=config.directory,
                node=config.node or "local",
                error=str(exc),
            )
            if cancel is not None:
                cancel.set()
        except (OSError, SearchError) as exc:
            log.warning(
                "file_search_failed",
                directory=config.directory,
                node=config.node or "local",
                error=str(exc),
            )
        except Exception as exc:
            log.error(
                "file_search_crashed",
                directory=config.directory,
                node=config.node or "local",
                error=str(exc),
                exc_info=True,
            )
        return []

    def files_found(
        self,
        nodes: "NodeRegistry",
        global_properties: Mapping[str, str] | None = None,
        *,
        expand: bool = True,
        cancel: threading.Event | None = None,
    ) -> bool:
        """True if at least ``threshold`` files are found."""
        config = self.expand(global_properties) if expand else self
        found = config.find_files(nodes, expand=False, cancel=cancel)
        return len(found) >= config.threshold

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SearchConfig":
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


FilesFoundTriggerConfig = SearchConfig


# ---------------------------------------------------------------------------
# Search results
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


class SearchOutcome(str, Enum):
    DIRECTORY_NOT_SPECIFIED = "directory_not_specified"
    FILES_NOT_SPECIFIED = "files_not_specified"
    NODE_NOT_FOUND = "node_not_found"
    NODE_OFFLINE = "node_offline"
    DIRECTORY_NOT_FOUND = "directory_not_found"
    MATCHED = "matched"

    @property
    def severity(self) -> Severity:
        if self is SearchOutcome.MATCHED:
            return Severity.OK
        if self is SearchOutcome.DIRECTORY_NOT_FOUND:
            return Severity.WARNING
        return Severity.ERROR


@dataclass(frozen=True)
class SearchResult:
    """The classified outcome of one ``FileSearch.perform()`` call."""

    outcome: SearchOutcome
    message: str
    files: tuple[str, ...] = field(default_factory=tuple)

    @property
    def severity(self) -> Severity:
        return self.outcome.severity

    @classmethod
    def matched(cls, files: list[str] | tuple[str, ...]) -> "SearchResult":
        files = tuple(files)
        if not files:
            message = messages.NO_FILES_FOUND
        elif len(files) == 1:
            message = messages.single_file_found(files[0])
        else:
            message = messages.multiple_files_found(len(files))
        return cls(outcome=SearchOutcome.MATCHED, message=message, files=files)

    @classmethod
    def failed(cls, outcome: SearchOutcome, message: str) -> "SearchResult":
        return cls(outcome=outcome, message=message)


# ---------------------------------------------------------------------------
# Build cause
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FilesFoundTriggerCause:
    """Why a build was started: the expanded search that found files."""

    node: str = ""
    directory: str = ""
    include_pattern: str = ""
    exclude_pattern: str = ""
    minimum_match_count: str = ""

    def __post_init__(self) -> None:
        for f in fields(self):
            object.__setattr__(self, f.name, _clean(getattr(self, f.name)))

    @classmethod
    def from_config(cls, config: SearchConfig) -> "FilesFoundTriggerCause":
        return cls(
            node=config.node,
            directory=config.directory,
            include_pattern=config.include_pattern,
            exclude_pattern=config.exclude_pattern,
            minimum_match_count=config.minimum_match_count,
        )

    @property
    def short_description(self) -> str:
        if self.exclude_pattern:
            return messages.cause_with_ignored_files(
                self.directory, self.include_pattern, self.exclude_pattern, self.node
            )
        return messages.cause(self.directory, self.include_pattern, self.node)

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FilesFoundTriggerCause":
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})
