"""Ant-style path patterns and the directory scan primitive.

Pattern syntax
--------------
``*``   — zero or more characters within one path segment
``?``   — exactly one character within one path segment
``**``  — zero or more whole path segments
A trailing ``/`` is shorthand for ``/**``.  Backslashes are treated as
separators.  Several patterns may be given in one string, separated by
commas.  Matching is case-sensitive and there are no default exclusions:
VCS metadata such as ``.git/`` is eligible like any other file.

``scan_directory()`` is the primitive every execution target runs.  It
returns ``None`` when the base path is not a directory, which callers must
keep distinct from an empty match list.
"""

from __future__ import annotations

import fnmatch
import os
import re
import threading
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from filesfound_trigger.exceptions import ScanInterrupted

_DOUBLE_STAR = "**"


@lru_cache(maxsize=512)
def _compile_segment(segment: str) -> re.Pattern[str]:
    # Ant has no character classes: keep '[' literal.
    return re.compile(fnmatch.translate(segment.replace("[", "[[]")))


@dataclass(frozen=True)
class AntPattern:
    """A single compiled Ant-style pattern."""

    text: str
    tokens: tuple[str, ...]

    @classmethod
    def compile(cls, text: str) -> "AntPattern":
        normalised = text.strip().replace("\\", "/")
        if normalised.endswith("/"):
            normalised += _DOUBLE_STAR
        tokens = tuple(t for t in normalised.split("/") if t and t != ".")
        return cls(text=text.strip(), tokens=tokens)

    def matches(self, path: str) -> bool:
        """Return True if the ``/``-separated relative *path* matches."""
        parts = [p for p in path.replace("\\", "/").split("/") if p]
        return _match_tokens(self.tokens, 0, parts, 0)


def _match_tokens(tokens: tuple[str, ...], ti: int, parts: list[str], pi: int) -> bool:
    while ti < len(tokens):
        token = tokens[ti]
        if token == _DOUBLE_STAR:
            while ti < len(tokens) and tokens[ti] == _DOUBLE_STAR:
                ti += 1
            if ti == len(tokens):
                return True
            return any(_match_tokens(tokens, ti, parts, start) for start in range(pi, len(parts) + 1))
        if pi >= len(parts) or not _segment_matches(token, parts[pi]):
            return False
        ti += 1
        pi += 1
    return pi == len(parts)


def _segment_matches(token: str, name: str) -> bool:
    if "*" not in token and "?" not in token:
        return token == name
    return _compile_segment(token).match(name) is not None


@dataclass(frozen=True)
class PatternSet:
    """A comma-separated list of Ant patterns; matches if any member does."""

    patterns: tuple[AntPattern, ...]

    @classmethod
    def parse(cls, text: str) -> "PatternSet":
        return cls(
            patterns=tuple(
                AntPattern.compile(piece) for piece in text.split(",") if piece.strip()
            )
        )

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def matches(self, path: str) -> bool:
        return any(p.matches(path) for p in self.patterns)


def scan_directory(
    directory: str | Path,
    include_pattern: str,
    exclude_pattern: str = "",
    cancel: threading.Event | None = None,
) -> list[str] | None:
    """List the files under *directory* selected by the include/exclude patterns.

    Returns:
        Relative paths with ``/`` separators in lexicographic order, or
        ``None`` if *directory* does not exist or is not a directory.

    Raises:
        ScanInterrupted: *cancel* was set while the tree was being walked.
    """
    root = Path(directory)
    if not root.is_dir():
        return None

    includes = PatternSet.parse(include_pattern)
    excludes = PatternSet.parse(exclude_pattern)
    found: list[str] = []

    # Unreadable subdirectories are skipped silently, as Ant's scanner does.
    for dirpath, dirnames, filenames in os.walk(root):
        if cancel is not None and cancel.is_set():
            raise ScanInterrupted(
                f"Scan of '{root}' was interrupted", context={"directory": str(root)}
            )
        dirnames.sort()
        rel_dir = os.path.relpath(dirpath, root)
        prefix = "" if rel_dir == os.curdir else rel_dir.replace(os.sep, "/") + "/"
        for name in filenames:
            rel_path = prefix + name
            if includes.matches(rel_path) and not excludes.matches(rel_path):
                found.append(rel_path)

    return sorted(found)
