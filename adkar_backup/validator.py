"""
adkar_backup/validator.py -- Field-level validation for backup entities.

Each ``validate_*_item`` function takes one entity, its 0-based index and a
shared ``ValidationLog``.  It records zero or more errors on the log and
returns nothing; data problems are never raised.

``validate_backup_data`` runs every item of every collection and returns an
aggregated report.  An empty backup is valid but carries a warning: empty
means "nothing to restore", not "malformed".

Usage::

    from adkar_backup.validator import ValidationLog, validate_adkar_item

    log = ValidationLog()
    validate_adkar_item(item, 0, log)
    report = log.get_report()
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from adkar_backup.models.adkar import resolve_adkar
from adkar_backup.models.issues import ValidationEntry
from adkar_backup.utils import get_field, is_blank

logger = logging.getLogger(__name__)

VALID_CONTENT_TYPES = ("text", "audio", "image", "video", "pdf")
SCHEDULE_TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

DEFAULT_CONTENT_TYPE = "text"
DEFAULT_SCHEDULE_DAYS = "[0,1,2,3,4,5,6]"
DEFAULT_SCHEDULE_DATES = "[]"
DEFAULT_SCHEDULE_MONTHS = "[]"
DEFAULT_SCHEDULE_TIME = "12:00"
DEFAULT_SCHEDULE_TYPE = "daily"

COLLECTIONS = ("categories", "adkar", "groups")


# ---------------------------------------------------------------------------
# ValidationLog
# ---------------------------------------------------------------------------

class ValidationLog:
    """Accumulates errors, warnings and informational lines."""

    def __init__(self):
        self.errors: list[ValidationEntry] = []
        self.warnings: list[ValidationEntry] = []
        self.info: list[ValidationEntry] = []

    def error(self, message: str, field: str | None = None, suggestion: str | None = None) -> None:
        self.errors.append(ValidationEntry("error", message, field, suggestion))

    def warn(self, message: str, field: str | None = None) -> None:
        self.warnings.append(ValidationEntry("warning", message, field))

    def log(self, message: str) -> None:
        self.info.append(ValidationEntry("info", message))

    @property
    def valid(self) -> bool:
        return not self.errors

    def get_report(self) -> dict:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "info": [i.to_dict() for i in self.info],
            "summary": {
                "total_errors": len(self.errors),
                "total_warnings": len(self.warnings),
                "total_info": len(self.info),
            },
        }

    def format_report(self) -> str:
        """Render the log as a multi-section text report."""
        lines = ["", "Validation Report", "=" * 60]

        if self.info:
            lines.append("")
            lines.append("Information:")
            for item in self.info:
                lines.append(f"  - {item.message}")

        if self.warnings:
            lines.append("")
            lines.append("Warnings:")
            for item in self.warnings:
                lines.append(f"  ! {item.message}")
                if item.field:
                    lines.append(f"    Field: {item.field}")

        if self.errors:
            lines.append("")
            lines.append("Errors:")
            for item in self.errors:
                lines.append(f"  x {item.message}")
                if item.field:
                    lines.append(f"    Field: {item.field}")
                if item.suggestion:
                    lines.append(f"    Suggestion: {item.suggestion}")

        lines.append("")
        lines.append("=" * 60)
        lines.append(f"Valid: {self.valid}")
        lines.append(f"Errors: {len(self.errors)}")
        lines.append(f"Warnings: {len(self.warnings)}")
        lines.append("=" * 60)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------

def is_valid_json(value: Any) -> dict:
    """Check that *value* is JSON: non-string values pass, strings must parse."""
    if not isinstance(value, str):
        return {"valid": True}
    try:
        json.loads(value)
    except ValueError as exc:
        return {"valid": False, "error": "Invalid JSON", "details": str(exc)}
    return {"valid": True}


def is_valid_json_array(value: Any, field_name: str) -> dict:
    """Check that *value* is a list or a JSON string encoding a list.

    Blank values count as a valid empty list.
    """
    if is_blank(value):
        return {"valid": True, "value": []}
    if isinstance(value, list):
        return {"valid": True, "value": value}
    if not isinstance(value, str):
        return {
            "valid": False,
            "error": f'Field "{field_name}" must be a JSON array',
            "details": f"Current value: {value!r}",
        }
    try:
        parsed = json.loads(value)
    except ValueError as exc:
        return {
            "valid": False,
            "error": f'Field "{field_name}" contains invalid JSON',
            "details": str(exc),
        }
    if not isinstance(parsed, list):
        return {
            "valid": False,
            "error": f'Field "{field_name}" must be a JSON array',
            "details": f"Current value: {value}",
        }
    return {"valid": True, "value": parsed}


def _missing_but_not_zero(value: Any) -> bool:
    """Identifier check where 0 is a real id."""
    return value is None or value is False or value == ""


# ---------------------------------------------------------------------------
# Entity validators
# ---------------------------------------------------------------------------

def _require_object(item: Any, label: str, item_num: int, log: ValidationLog) -> bool:
    if isinstance(item, dict):
        return True
    log.error(
        f"{label} #{item_num} must be an object",
        None,
        f"Replace {label.lower()} #{item_num} with a JSON object",
    )
    return False


def validate_adkar_item(adkar: Any, index: int, log: ValidationLog) -> None:
    """Validate one adkar item. Legacy ``type``/``days_of_week`` are honoured."""
    item_num = index + 1
    if not _require_object(adkar, "Adkar", item_num, log):
        return

    item = resolve_adkar(adkar)

    if _missing_but_not_zero(item.category_id):
        log.error(
            f"Adkar #{item_num} is missing category_id",
            "category_id",
            "Add a valid category_id field (integer)",
        )

    content_type = item.content_type if not is_blank(item.content_type) else DEFAULT_CONTENT_TYPE
    if content_type not in VALID_CONTENT_TYPES:
        log.error(
            f'Adkar #{item_num} has invalid content_type: "{content_type}"',
            "content_type",
            f"Use one of: {', '.join(VALID_CONTENT_TYPES)}",
        )

    array_fields = (
        ("schedule_days", item.schedule_days, DEFAULT_SCHEDULE_DAYS,
         'Use JSON array format like "[0,1,2,3,4,5,6]" or a native list [0,1,2,3,4,5,6]'),
        ("schedule_dates", item.schedule_dates, DEFAULT_SCHEDULE_DATES,
         'Use JSON array format like "[]" or a native list []'),
        ("schedule_months", item.schedule_months, DEFAULT_SCHEDULE_MONTHS,
         'Use JSON array format like "[]" or a native list []'),
    )
    for field_name, value, default, suggestion in array_fields:
        if is_blank(value):
            value = default
        result = is_valid_json_array(value, field_name)
        if not result["valid"]:
            log.error(f"Adkar #{item_num}: {result['error']}", field_name, suggestion)

    schedule_time = item.schedule_time if not is_blank(item.schedule_time) else DEFAULT_SCHEDULE_TIME
    if not isinstance(schedule_time, str) or not SCHEDULE_TIME_RE.match(schedule_time):
        log.error(
            f'Adkar #{item_num} has invalid schedule_time: "{schedule_time}"',
            "schedule_time",
            'Use HH:MM format (e.g., "08:30", "14:00")',
        )


def validate_group_item(group: Any, index: int, log: ValidationLog) -> None:
    item_num = index + 1
    if not _require_object(group, "Group", item_num, log):
        return

    if _missing_but_not_zero(group.get("chat_id")):
        log.error(
            f"Group #{item_num} is missing chat_id",
            "chat_id",
            "Add a valid chat_id field (integer, can be negative for supergroups)",
        )

    if is_blank(group.get("title")):
        log.error(
            f"Group #{item_num} is missing title",
            "title",
            "Add a title field with the group name",
        )

    settings = group.get("settings")
    if isinstance(settings, str) and settings and not is_valid_json(settings)["valid"]:
        log.error(
            f"Group #{item_num} has invalid settings JSON",
            "settings",
            "Ensure settings is a valid JSON string or object",
        )


def validate_category_item(category: Any, index: int, log: ValidationLog) -> None:
    item_num = index + 1
    if not _require_object(category, "Category", item_num, log):
        return

    if is_blank(category.get("name")):
        log.error(
            f"Category #{item_num} is missing name",
            "name",
            "Add a name field with the category name",
        )


ITEM_VALIDATORS = {
    "categories": validate_category_item,
    "adkar": validate_adkar_item,
    "groups": validate_group_item,
}


def _count(value: Any) -> int:
    return len(value) if isinstance(value, list) else 0


# ---------------------------------------------------------------------------
# Document-level validation
# ---------------------------------------------------------------------------

def validate_backup_data(backup: Any) -> dict:
    """Validate every entity of a v2/v3 backup envelope.

    Returns
    -------
    dict
        ``{valid, errors, warnings, info, summary}``.
    """
    log = ValidationLog()
    log.log("Starting backup validation...")

    if is_blank(backup):
        log.error("Backup data is null or undefined", None, "Provide a valid backup object")
        return log.get_report()

    data = get_field(backup, "data")
    if data is None:
        log.error(
            'Backup is missing "data" field',
            "data",
            'Ensure backup has a "data" object containing categories, adkar, and groups',
        )
        return log.get_report()
    if not isinstance(data, dict):
        log.error('Field "data" must be an object', "data", "Wrap categories, adkar and groups in an object")
        return log.get_report()

    if not any(_count(data.get(name)) for name in COLLECTIONS):
        log.warn("Backup contains no data (empty categories, adkar, and groups)")

    for name in COLLECTIONS:
        log.log(f"Found {_count(data.get(name))} {name}")

    for name in COLLECTIONS:
        items = data.get(name)
        if items is None:
            continue
        if not isinstance(items, list):
            log.error(
                f'Field "{name}" must be an array',
                name,
                f"Ensure {name} is an array of objects",
            )
            continue
        validate_item = ITEM_VALIDATORS[name]
        for index, item in enumerate(items):
            validate_item(item, index, log)

    log.log("Validation complete")
    logger.debug("Validated backup: %d error(s), %d warning(s)", len(log.errors), len(log.warnings))
    return log.get_report()
