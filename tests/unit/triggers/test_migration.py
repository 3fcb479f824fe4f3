"""Unit tests — triggers/migration.py (persisted trigger shapes)."""

from __future__ import annotations

import json

import pytest

from filesfound_trigger.exceptions import ConfigMigrationError
from filesfound_trigger.triggers.migration import (
    CURRENT_FORMAT_VERSION,
    detect_format,
    dump_trigger,
    load_trigger,
    upgrade,
)
from filesfound_trigger.triggers.models import SearchConfig
from filesfound_trigger.triggers.trigger import FilesFoundTrigger

V1 = {"spec": "H/5 * * * *", "directory": "/in", "files": "*.xml", "ignoredFiles": "*.tmp"}

V2 = {
    "spec": "* * * * *",
    "node": "master",
    "directory": "/primary",
    "files": "*.xml",
    "ignoredFiles": "",
    "triggerNumber": "2",
    "additionalConfigs": [
        {"node": "build-02", "directory": "/extra", "files": "*.json", "ignoredFiles": None},
    ],
}


@pytest.mark.unit
class TestDetectFormat:
    def test_versions(self) -> None:
        assert detect_format(V1) == 1
        assert detect_format(V2) == 2
        assert detect_format({"format_version": 3, "configs": []}) == 3
        assert detect_format({"schedule": "", "configs": []}) == 3
        assert detect_format({}) == CURRENT_FORMAT_VERSION

    def test_invalid_version_value(self) -> None:
        with pytest.raises(ConfigMigrationError):
            detect_format({"format_version": "three"})


@pytest.mark.unit
class TestLoadTrigger:
    def test_v1_single_local_search(self) -> None:
        trigger = load_trigger(V1)
        assert trigger.schedule == "H/5 * * * *"
        assert trigger.configs == (
            SearchConfig(
                node="",
                directory="/in",
                include_pattern="*.xml",
                exclude_pattern="*.tmp",
                minimum_match_count="1",
            ),
        )

    def test_v2_primary_first(self) -> None:
        trigger = load_trigger(V2)
        assert [c.directory for c in trigger.configs] == ["/primary", "/extra"]
        primary, extra = trigger.configs
        assert primary.node == ""
        assert primary.minimum_match_count == "2"
        assert extra.node == "build-02"
        assert extra.exclude_pattern == ""
        assert extra.minimum_match_count == "1"

    def test_v2_null_additional_configs(self) -> None:
        payload = dict(V2, additionalConfigs=None)
        assert len(load_trigger(payload).configs) == 1

    def test_v3(self) -> None:
        payload = {
            "format_version": 3,
            "schedule": "@hourly",
            "configs": [{"directory": "/in", "include_pattern": "*", "minimum_match_count": 4}],
        }
        trigger = load_trigger(payload)
        assert trigger.configs[0].minimum_match_count == "4"

    def test_empty_payload_gives_one_empty_config(self) -> None:
        assert load_trigger({}).configs == (SearchConfig(),)

    def test_json_string(self) -> None:
        assert load_trigger(json.dumps(V1)).configs[0].directory == "/in"

    def test_invalid_json(self) -> None:
        with pytest.raises(ConfigMigrationError):
            load_trigger("{not json")

    def test_not_an_object(self) -> None:
        with pytest.raises(ConfigMigrationError):
            load_trigger("[1, 2]")

    def test_newer_format_rejected(self) -> None:
        with pytest.raises(ConfigMigrationError):
            load_trigger({"format_version": CURRENT_FORMAT_VERSION + 1})

    def test_malformed_configs(self) -> None:
        with pytest.raises(ConfigMigrationError):
            load_trigger({"format_version": 3, "configs": "not-a-list"})

    def test_upgrade_does_not_mutate_input(self) -> None:
        payload = json.loads(json.dumps(V2))
        upgrade(payload)
        assert payload == V2


@pytest.mark.unit
class TestDumpTrigger:
    def test_always_writes_current_format(self) -> None:
        trigger = load_trigger(V1)
        dumped = dump_trigger(trigger)
        assert dumped["format_version"] == CURRENT_FORMAT_VERSION
        assert dumped["schedule"] == "H/5 * * * *"
        assert dumped["configs"][0]["include_pattern"] == "*.xml"

    def test_reload_is_identity(self) -> None:
        trigger = FilesFoundTrigger(
            schedule="* * * * *",
            configs=(SearchConfig("n1", "/a", "*.xml", "", "2"), SearchConfig(directory="/b")),
        )
        assert load_trigger(dump_trigger(trigger)) == trigger
