"""Persisted trigger shapes and their migration to the current format.

Three shapes have been written over time:

  v1 — single search, no node::

        {"spec": "H/5 * * * *", "directory": "/in", "files": "*.xml",
         "ignoredFiles": ""}

  v2 — primary search plus additional ones::

        {"spec": "...", "node": "", "directory": "/in", "files": "*.xml",
         "ignoredFiles": "", "triggerNumber": "1",
         "additionalConfigs": [{"node": ..., "directory": ..., ...}]}

  v3 — current::

        {"format_version": 3, "schedule": "...",
         "configs": [{"node": ..., "directory": ..., "include_pattern": ...,
                      "exclude_pattern": ..., "minimum_match_count": ...}]}

Policy:
  - Migration happens once, at the load boundary; the trigger itself only
    ever sees the current shape.
  - Each migration is a pure function: dict -> dict, never mutating its
    input.
  - A payload claiming a newer format than ``CURRENT_FORMAT_VERSION`` is
    rejected.
  - ``dump_trigger()`` always writes v3.
"""

from __future__ import annotations

import json
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from filesfound_trigger.exceptions import ConfigMigrationError
from filesfound_trigger.triggers.models import SearchConfig
from filesfound_trigger.triggers.trigger import FilesFoundTrigger

CURRENT_FORMAT_VERSION = 3
LEGACY_MINIMUM_MATCH_COUNT = "1"

MigrationFn = Callable[[dict[str, Any]], dict[str, Any]]

_V1_KEYS = frozenset({"spec", "directory", "files", "ignoredFiles"})
_V2_KEYS = frozenset({"node", "triggerNumber", "additionalConfigs"})


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------


def _text(v: Any) -> str:
    return "" if v is None else str(v)


class _LegacyConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    node: str = ""
    directory: str = ""
    files: str = ""
    ignoredFiles: str = ""
    triggerNumber: str = LEGACY_MINIMUM_MATCH_COUNT

    @field_validator("node", "directory", "files", "ignoredFiles", mode="before")
    @classmethod
    def _none_is_empty(cls, v: Any) -> str:
        return _text(v)

    @field_validator("triggerNumber", mode="before")
    @classmethod
    def _missing_count_is_one(cls, v: Any) -> str:
        return LEGACY_MINIMUM_MATCH_COUNT if v is None else str(v)


class _LegacyTrigger(_LegacyConfig):
    spec: str = ""
    additionalConfigs: list[_LegacyConfig] = Field(default_factory=list)

    @field_validator("spec", mode="before")
    @classmethod
    def _spec_text(cls, v: Any) -> str:
        return _text(v)

    @field_validator("additionalConfigs", mode="before")
    @classmethod
    def _none_is_no_configs(cls, v: Any) -> Any:
        return [] if v is None else v


class _ConfigV3(BaseModel):
    model_config = ConfigDict(extra="ignore")

    node: str = ""
    directory: str = ""
    include_pattern: str = ""
    exclude_pattern: str = ""
    minimum_match_count: str = LEGACY_MINIMUM_MATCH_COUNT

    @field_validator("*", mode="before")
    @classmethod
    def _none_is_empty(cls, v: Any) -> str:
        return _text(v)


class _TriggerV3(BaseModel):
    model_config = ConfigDict(extra="ignore")

    format_version: int = CURRENT_FORMAT_VERSION
    schedule: str = ""
    configs: list[_ConfigV3] = Field(default_factory=list)

    @field_validator("schedule", mode="before")
    @classmethod
    def _schedule_text(cls, v: Any) -> str:
        return _text(v)


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------


def _migrate_v1_to_v2(payload: dict[str, Any]) -> dict[str, Any]:
    """v1 had a single local search and no threshold."""
    legacy = _LegacyTrigger.model_validate(payload)
    return {
        "spec": legacy.spec,
        "node": "",
        "directory": legacy.directory,
        "files": legacy.files,
        "ignoredFiles": legacy.ignoredFiles,
        "triggerNumber": LEGACY_MINIMUM_MATCH_COUNT,
        "additionalConfigs": [],
    }


def _legacy_to_v3(config: _LegacyConfig) -> dict[str, str]:
    return {
        "node": config.node,
        "directory": config.directory,
        "include_pattern": config.files,
        "exclude_pattern": config.ignoredFiles,
        "minimum_match_count": config.triggerNumber,
    }


def _migrate_v2_to_v3(payload: dict[str, Any]) -> dict[str, Any]:
    """Fold the primary search into the list, ahead of the additional ones."""
    legacy = _LegacyTrigger.model_validate(payload)
    return {
        "format_version": 3,
        "schedule": legacy.spec,
        "configs": [_legacy_to_v3(legacy)] + [_legacy_to_v3(c) for c in legacy.additionalConfigs],
    }


MIGRATIONS: dict[int, MigrationFn] = {
    1: _migrate_v1_to_v2,
    2: _migrate_v2_to_v3,
}


def detect_format(payload: dict[str, Any]) -> int:
    """Guess the format version of a persisted trigger payload."""
    if "format_version" in payload:
        try:
            return int(payload["format_version"])
        except (TypeError, ValueError) as exc:
            raise ConfigMigrationError(
                f"Invalid format_version: {payload['format_version']!r}", payload
            ) from exc
    if "configs" in payload or "schedule" in payload:
        return CURRENT_FORMAT_VERSION
    if _V2_KEYS & payload.keys():
        return 2
    if _V1_KEYS & payload.keys():
        return 1
    return CURRENT_FORMAT_VERSION


def upgrade(payload: dict[str, Any]) -> dict[str, Any]:
    """Migrate *payload* to the current shape.  The input is not modified."""
    version = detect_format(payload)
    if version > CURRENT_FORMAT_VERSION:
        raise ConfigMigrationError(
            f"Trigger format {version} is newer than supported ({CURRENT_FORMAT_VERSION})",
            payload,
        )
    if version < 1:
        raise ConfigMigrationError(f"Unknown trigger format {version}", payload)

    result = dict(payload)
    try:
        while version < CURRENT_FORMAT_VERSION:
            result = MIGRATIONS[version](result)
            version += 1
    except ValidationError as exc:
        raise ConfigMigrationError(f"Malformed trigger payload: {exc}", payload) from exc
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_trigger(raw: str | bytes | dict[str, Any]) -> FilesFoundTrigger:
    """Build a FilesFoundTrigger from any known persisted shape.

    Raises:
        ConfigMigrationError: *raw* is not valid JSON, not an object, or
            does not fit any known shape.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigMigrationError(f"Trigger payload is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigMigrationError("Trigger payload must be an object", raw)

    try:
        current = _TriggerV3.model_validate(upgrade(raw))
    except ValidationError as exc:
        raise ConfigMigrationError(f"Malformed trigger payload: {exc}", raw) from exc

    return FilesFoundTrigger(
        schedule=current.schedule,
        configs=tuple(SearchConfig(**c.model_dump()) for c in current.configs),
    )


def dump_trigger(trigger: FilesFoundTrigger) -> dict[str, Any]:
    """Serialise *trigger* in the current format."""
    return {
        "format_version": CURRENT_FORMAT_VERSION,
        "schedule": trigger.schedule,
        "configs": [c.to_dict() for c in trigger.configs],
    }
