"""
Tests for adkar_backup/version_manager.py

Covers:
    - Version detection (explicit and shape heuristics)
    - Support allow-list
    - v1 -> v3 and v2 -> v3 migration
    - Idempotence and purity of migration
    - Audit lines written to the log sink
    - Injected VersionPolicy
"""

import copy

import pytest

from adkar_backup.config import VersionPolicy
from adkar_backup.version_manager import (
    CURRENT_VERSION,
    UnsupportedVersionError,
    VersionManager,
    detect_version,
    get_version_info,
    is_version_supported,
    migrate_to_current_version,
)


@pytest.fixture
def vm():
    return VersionManager()


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

class TestDetectVersion:
    def test_explicit_version_returned_verbatim(self, vm):
        assert vm.detect_version({"version": "3.0.0", "data": {}}) == "3.0.0"
        assert vm.detect_version({"version": "2.0", "data": {}}) == "2.0"
        assert vm.detect_version({"version": "0.5.0"}) == "0.5.0"

    def test_data_wrapper_means_v2(self, vm):
        assert vm.detect_version({"data": {"groups": [], "adkar": []}}) == "2.0.0"

    def test_empty_data_object_still_means_v2(self, vm):
        assert vm.detect_version({"data": {}}) == "2.0.0"

    @pytest.mark.parametrize("key", ["groups", "adkar", "categories"])
    def test_flat_collections_mean_v1(self, vm, key):
        assert vm.detect_version({key: []}) == "1.0.0"

    def test_unknown_for_empty_object(self, vm):
        assert vm.detect_version({}) == "unknown"

    def test_unknown_for_none_and_non_objects(self, vm):
        assert vm.detect_version(None) == "unknown"
        assert vm.detect_version([1, 2]) == "unknown"
        assert vm.detect_version("backup") == "unknown"

    def test_blank_version_falls_back_to_shape(self, vm):
        assert vm.detect_version({"version": "", "data": {}}) == "2.0.0"

    def test_module_level_alias(self):
        assert detect_version({"groups": []}) == "1.0.0"


class TestIsSupported:
    @pytest.mark.parametrize("version", ["1.0", "1.0.0", "2.0", "2.0.0", "3.0", "3.0.0"])
    def test_allow_listed(self, vm, version):
        assert vm.is_supported(version)

    @pytest.mark.parametrize("version", ["4.0", "0.5.0", "unknown", "1", "3.0.0.0", "", None, 3])
    def test_not_allow_listed(self, vm, version):
        assert not vm.is_supported(version)

    def test_module_level_alias(self):
        assert is_version_supported("2.0")


class TestVersionInfo:
    def test_info_reports_policy(self):
        info = get_version_info()
        assert info["current"] == CURRENT_VERSION == "3.0.0"
        assert "1.0" in info["supported"]
        assert info["description"]


# ---------------------------------------------------------------------------
# v1 -> v3
# ---------------------------------------------------------------------------

class TestMigrateV1:
    def test_scenario_legacy_field_names(self, vm, v1_backup):
        assert vm.detect_version(v1_backup) == "1.0.0"
        migrated = vm.migrate(v1_backup, sink=[])
        adkar = migrated["data"]["adkar"][0]
        assert adkar["content_type"] == "audio"
        assert adkar["schedule_days"] == "[0,1]"
        assert "type" not in adkar
        assert "days_of_week" not in adkar

    def test_wraps_flat_structure(self, vm):
        backup = {
            "timestamp": "2024-01-01T00:00:00Z",
            "groups": [{"chat_id": 123, "title": "Group1"}],
            "adkar": [{"category_id": 1, "title": "Adkar1"}],
            "categories": [{"name": "Cat1"}],
        }
        migrated = vm.migrate(backup, sink=[])
        assert migrated["version"] == "3.0.0"
        assert migrated["timestamp"] == "2024-01-01T00:00:00Z"
        assert len(migrated["data"]["groups"]) == 1
        assert len(migrated["data"]["adkar"]) == 1
        assert len(migrated["data"]["categories"]) == 1
        assert "groups" not in migrated

    def test_backfills_all_schedule_defaults(self, vm):
        migrated = vm.migrate({"adkar": [{"category_id": 1}]}, sink=[])
        adkar = migrated["data"]["adkar"][0]
        assert adkar["schedule_days"] == "[0,1,2,3,4,5,6]"
        assert adkar["schedule_dates"] == "[]"
        assert adkar["schedule_months"] == "[]"
        assert adkar["schedule_time"] == "12:00"
        assert adkar["schedule_type"] == "daily"

    def test_new_name_takes_precedence(self, vm):
        backup = {"adkar": [{"category_id": 1, "type": "audio", "content_type": "video"}]}
        adkar = vm.migrate(backup, sink=[])["data"]["adkar"][0]
        assert adkar["content_type"] == "video"
        # Not renamed, so the legacy key is left in place
        assert adkar["type"] == "audio"

    def test_missing_collections_become_empty_lists(self, vm):
        migrated = vm.migrate({"groups": [{"chat_id": 1, "title": "x"}]}, sink=[])
        assert migrated["data"]["adkar"] == []
        assert migrated["data"]["categories"] == []

    def test_adds_timestamp_when_missing(self, vm):
        sink = []
        migrated = vm.migrate({"groups": [], "adkar": [{"category_id": 1}]}, sink=sink)
        assert migrated["timestamp"]
        assert "Added timestamp to migrated backup" in sink

    def test_does_not_mutate_input(self, vm, v1_backup):
        original = copy.deepcopy(v1_backup)
        vm.migrate(v1_backup, sink=[])
        assert v1_backup == original

    def test_bare_version_string_migrates(self, vm):
        migrated = vm.migrate({"version": "1.0", "adkar": [{"category_id": 1, "type": "pdf"}]}, sink=[])
        assert migrated["data"]["adkar"][0]["content_type"] == "pdf"

    def test_step_reapplied_to_wrapped_backup_keeps_data(self, vm, v1_backup):
        once = vm.migrate_v1_to_v3(v1_backup, sink=[])
        twice = vm.migrate_v1_to_v3(once, sink=[])
        assert twice["data"] == once["data"]


# ---------------------------------------------------------------------------
# v2 -> v3
# ---------------------------------------------------------------------------

class TestMigrateV2:
    def test_preserves_data_and_renames(self, vm):
        backup = {
            "version": "2.0",
            "timestamp": "2024-01-01T00:00:00Z",
            "data": {
                "categories": [{"id": 1, "name": "c"}],
                "adkar": [{"category_id": 1, "type": "image", "days_of_week": [1, 2]}],
                "groups": [],
            },
        }
        migrated = vm.migrate(backup, sink=[])
        assert migrated["version"] == "3.0.0"
        assert migrated["timestamp"] == "2024-01-01T00:00:00Z"
        adkar = migrated["data"]["adkar"][0]
        assert adkar["content_type"] == "image"
        assert adkar["schedule_days"] == [1, 2]
        assert migrated["data"]["categories"] == [{"id": 1, "name": "c"}]

    def test_does_not_backfill_defaults(self, vm):
        migrated = vm.migrate({"data": {"adkar": [{"category_id": 1}]}}, sink=[])
        adkar = migrated["data"]["adkar"][0]
        assert "schedule_time" not in adkar
        assert "schedule_dates" not in adkar

    def test_step_is_idempotent_on_current_data(self, vm, v3_backup):
        once = vm.migrate_v2_to_v3(v3_backup, sink=[])
        twice = vm.migrate_v2_to_v3(once, sink=[])
        assert once == twice
        assert once["data"] == v3_backup["data"]


# ---------------------------------------------------------------------------
# migrate() entry point
# ---------------------------------------------------------------------------

class TestMigrate:
    def test_current_version_is_returned_unchanged(self, vm, v3_backup):
        assert vm.migrate(v3_backup, sink=[]) is v3_backup

    def test_unsupported_version_raises(self, vm):
        with pytest.raises(UnsupportedVersionError) as excinfo:
            vm.migrate({"version": "0.5.0", "data": {}}, sink=[])
        assert "0.5.0" in str(excinfo.value)
        assert "3.0.0" in str(excinfo.value)

    def test_unknown_shape_raises(self, vm):
        with pytest.raises(ValueError):
            vm.migrate({}, sink=[])

    @pytest.mark.parametrize("backup", [
        {"groups": [{"chat_id": 1, "title": "g"}], "adkar": [{"category_id": 2, "type": "audio"}]},
        {"version": "2.0.0", "data": {"adkar": [{"category_id": 1, "days_of_week": "[1]"}]}},
        {"version": "3.0.0", "timestamp": "t", "data": {"adkar": []}},
    ])
    def test_migrate_is_idempotent(self, vm, backup):
        once = vm.migrate(backup, sink=[])
        assert vm.migrate(once, sink=[]) == once

    def test_three_point_oh_passes_through(self, vm):
        backup = {"version": "3.0", "data": {"adkar": []}}
        assert vm.migrate(backup, sink=[]) is backup

    def test_module_level_alias(self, v1_backup):
        assert migrate_to_current_version(v1_backup, sink=[])["version"] == "3.0.0"


class TestMigrationAuditLog:
    def test_every_rename_is_logged_once(self, vm, v1_backup):
        sink = []
        vm.migrate(v1_backup, sink=sink)
        assert sum("type -> content_type" in line for line in sink) == 1
        assert sum("days_of_week -> schedule_days" in line for line in sink) == 1

    def test_defaults_are_logged(self, vm):
        sink = []
        vm.migrate({"adkar": [{"category_id": 1}]}, sink=sink)
        for field_name in ("schedule_days", "schedule_dates", "schedule_months",
                           "schedule_time", "schedule_type"):
            assert sum(f"default {field_name}" in line for line in sink) == 1

    def test_wrap_is_logged(self, vm, v1_backup):
        sink = []
        vm.migrate(v1_backup, sink=sink)
        assert any("Wrapped" in line for line in sink)
        assert sink[0] == "Detected backup version: 1.0.0"

    def test_default_sink_uses_logging(self, vm, v1_backup, caplog):
        with caplog.at_level("INFO", logger="adkar_backup.version_manager"):
            vm.migrate(v1_backup)
        assert any("Migration complete" in r.getMessage() for r in caplog.records)


class TestInjectedPolicy:
    def test_custom_current_version(self):
        vm = VersionManager(VersionPolicy(current_version="2.0.0"))
        backup = {"version": "2.0.0", "data": {}}
        assert vm.migrate(backup, sink=[]) is backup

    def test_custom_allow_list(self):
        vm = VersionManager(VersionPolicy(supported_versions=("3.0.0",)))
        assert not vm.is_supported("1.0.0")
        with pytest.raises(UnsupportedVersionError):
            vm.migrate({"groups": []}, sink=[])

    def test_policy_is_immutable(self):
        policy = VersionPolicy()
        with pytest.raises(Exception):
            policy.current_version = "9.9.9"
