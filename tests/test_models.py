"""
Tests for adkar_backup/models/

Covers:
    - Adkar shape classification (legacy vs current)
    - Alias resolution into CanonicalAdkar
    - Issue serialisation
"""

import pytest

from adkar_backup.models import (
    CanonicalAdkar,
    CurrentShape,
    Issue,
    LegacyV1Shape,
    Severity,
    parse_adkar_shape,
    resolve_adkar,
)
from adkar_backup.utils import is_blank


class TestParseAdkarShape:
    def test_current_names(self):
        shape = parse_adkar_shape({"category_id": 1, "content_type": "text"})
        assert isinstance(shape, CurrentShape)
        assert not isinstance(shape, LegacyV1Shape)
        assert shape.pending_renames() == []

    def test_legacy_names(self):
        shape = parse_adkar_shape({"category_id": 1, "type": "audio", "days_of_week": "[1]"})
        assert isinstance(shape, LegacyV1Shape)
        assert shape.shape == "legacy_v1"
        assert shape.pending_renames() == [("type", "content_type"), ("days_of_week", "schedule_days")]

    def test_only_unshadowed_aliases_are_renamed(self):
        shape = parse_adkar_shape({"type": "audio", "days_of_week": "[1]", "schedule_days": "[2]"})
        assert shape.pending_renames() == [("type", "content_type")]

    def test_extra_fields_survive(self):
        shape = parse_adkar_shape({"category_id": 1, "title": "T", "id": 9})
        assert shape.model_extra["title"] == "T"

    def test_shape_key_in_data_is_ignored(self):
        shape = parse_adkar_shape({"shape": "legacy_v1", "content_type": "text"})
        assert isinstance(shape, CurrentShape)
        assert shape.shape == "current"


class TestResolveAdkar:
    def test_legacy_values_resolve_to_current_names(self):
        canonical = resolve_adkar({"category_id": 2, "type": "video", "days_of_week": [0, 6]})
        assert isinstance(canonical, CanonicalAdkar)
        assert canonical.content_type == "video"
        assert canonical.schedule_days == [0, 6]
        assert canonical.shape == "legacy_v1"

    def test_current_value_wins(self):
        canonical = resolve_adkar({"type": "audio", "content_type": "pdf"})
        assert canonical.content_type == "pdf"

    def test_malformed_values_are_kept(self):
        canonical = resolve_adkar({"schedule_time": 830, "schedule_days": {"x": 1}})
        assert canonical.schedule_time == 830
        assert canonical.schedule_days == {"x": 1}

    def test_canonical_is_frozen(self):
        canonical = resolve_adkar({"category_id": 1})
        with pytest.raises(Exception):
            canonical.category_id = 2


class TestIssue:
    def test_to_dict_uses_severity_value(self):
        issue = Issue(Severity.WARNING, "careful", "data", "look")
        data = issue.to_dict()
        assert data["severity"] == "warning"
        assert data["field"] == "data"
        assert data["suggestion"] == "look"
        assert data["timestamp"]


class TestIsBlank:
    @pytest.mark.parametrize("value", [None, "", False, 0, 0.0])
    def test_blank(self, value):
        assert is_blank(value)

    @pytest.mark.parametrize("value", [[], {}, "0", 1, True, "x"])
    def test_not_blank(self, value):
        assert not is_blank(value)
