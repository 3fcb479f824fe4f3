"""Export the build cause to the build's environment.

Variables (set only when the build was started by this trigger)::

    filesfound_setting_node            node name, "" for the local host
    filesfound_setting_directory       expanded base directory
    filesfound_setting_files           include pattern
    filesfound_setting_ignoredfiles    exclude pattern
    filesfound_setting_triggernumber   minimum match count
"""

from __future__ import annotations

import os
from typing import Iterable, Mapping, MutableMapping

from filesfound_trigger.triggers.models import FilesFoundTriggerCause

ENV_PREFIX = "filesfound_setting_"

_EXPORTS = (
    ("node", "node"),
    ("directory", "directory"),
    ("files", "include_pattern"),
    ("ignoredfiles", "exclude_pattern"),
    ("triggernumber", "minimum_match_count"),
)


def contribute_environment(causes: Iterable[object], env: MutableMapping[str, str]) -> None:
    """Add the variables of the first FilesFoundTriggerCause in *causes* to *env*."""
    cause = next((c for c in causes if isinstance(c, FilesFoundTriggerCause)), None)
    if cause is None:
        return
    for suffix, attribute in _EXPORTS:
        env[ENV_PREFIX + suffix] = getattr(cause, attribute)


def build_environment(
    causes: Iterable[object],
    global_properties: Mapping[str, str] | None = None,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Full environment of a build: process env, global properties, then the cause."""
    env = dict(os.environ if base is None else base)
    env.update(global_properties or {})
    contribute_environment(causes, env)
    return env
