"""
adkar_backup/models/adkar.py -- Adkar shape variants.

An adkar item arrives in one of two shapes:

    LegacyV1Shape   uses ``type`` and/or ``days_of_week`` where the current
                    names are unset
    CurrentShape    uses ``content_type`` / ``schedule_days`` (or neither)

``parse_adkar_shape`` picks the variant once, and ``to_canonical`` folds
either variant into a single ``CanonicalAdkar``.  The validator reads the
canonical view; the migration chain reads ``pending_renames``.  Neither
re-derives field presence on its own.

Raw values are kept as ``Any``: a malformed field must survive parsing so
the validator can report it.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict

from adkar_backup.utils import is_blank

# (legacy name, current name)
LEGACY_ALIASES: tuple[tuple[str, str], ...] = (
    ("type", "content_type"),
    ("days_of_week", "schedule_days"),
)


class CurrentShape(BaseModel):
    """Adkar item that already uses the current field names."""

    model_config = ConfigDict(extra="allow")

    shape: Literal["current", "legacy_v1"] = "current"
    category_id: Any = None
    content_type: Any = None
    schedule_days: Any = None
    schedule_dates: Any = None
    schedule_months: Any = None
    schedule_time: Any = None

    def pending_renames(self) -> list[tuple[str, str]]:
        return []

    def resolved(self, current_name: str) -> Any:
        return getattr(self, current_name)


class LegacyV1Shape(CurrentShape):
    """Adkar item carrying at least one v1 field name in place of the current one."""

    shape: Literal["current", "legacy_v1"] = "legacy_v1"
    type: Any = None
    days_of_week: Any = None

    def pending_renames(self) -> list[tuple[str, str]]:
        return [
            (old, new)
            for old, new in LEGACY_ALIASES
            if not is_blank(getattr(self, old)) and is_blank(getattr(self, new))
        ]

    def resolved(self, current_name: str) -> Any:
        value = getattr(self, current_name)
        if not is_blank(value):
            return value
        for old, new in LEGACY_ALIASES:
            if new == current_name:
                return getattr(self, old)
        return value


AdkarShape = Union[LegacyV1Shape, CurrentShape]


class CanonicalAdkar(BaseModel):
    """Alias-resolved adkar fields, before defaults are applied."""

    model_config = ConfigDict(frozen=True)

    shape: Literal["current", "legacy_v1"]
    category_id: Any = None
    content_type: Any = None
    schedule_days: Any = None
    schedule_dates: Any = None
    schedule_months: Any = None
    schedule_time: Any = None


def _has_legacy_fields(item: dict) -> bool:
    return any(
        not is_blank(item.get(old)) and is_blank(item.get(new))
        for old, new in LEGACY_ALIASES
    )


def parse_adkar_shape(item: dict) -> AdkarShape:
    """Classify a raw adkar dict as ``LegacyV1Shape`` or ``CurrentShape``."""
    model = LegacyV1Shape if _has_legacy_fields(item) else CurrentShape
    payload = {k: v for k, v in item.items() if k != "shape"}
    return model.model_validate(payload)


def to_canonical(shape: AdkarShape) -> CanonicalAdkar:
    return CanonicalAdkar(
        shape=shape.shape,
        category_id=shape.category_id,
        content_type=shape.resolved("content_type"),
        schedule_days=shape.resolved("schedule_days"),
        schedule_dates=shape.schedule_dates,
        schedule_months=shape.schedule_months,
        schedule_time=shape.schedule_time,
    )


def resolve_adkar(item: dict) -> CanonicalAdkar:
    """Parse and canonicalise a raw adkar dict in one step."""
    return to_canonical(parse_adkar_shape(item))
