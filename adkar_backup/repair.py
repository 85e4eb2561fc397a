"""
adkar_backup/repair.py -- Automatic structural repair of backup documents.

``repair_backup`` works on a deep copy and applies deterministic fixes:

    1. add a missing ``version`` (detected from shape)
    2. add a missing ``timestamp``
    3. migrate to the current schema
    4. JSON-encode native schedule arrays on every adkar, then default a
       blank ``schedule_time`` / ``schedule_days``
    5. JSON-encode object ``settings`` on every group

Every applied fix adds one line to ``repair_log``.  Repair does not run the
validator: re-diagnose the repaired document to confirm it is healthy.

``schedule_dates`` and ``schedule_months`` are not defaulted
here, although the v1 migration step does default them.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from adkar_backup.utils import compact_json, is_blank, now_iso
from adkar_backup.validator import DEFAULT_SCHEDULE_DAYS, DEFAULT_SCHEDULE_TIME
from adkar_backup.version_manager import UnsupportedVersionError, VersionManager, default_manager

logger = logging.getLogger(__name__)

ARRAY_SCHEDULE_FIELDS = ("schedule_days", "schedule_dates", "schedule_months")

# Fields defaulted after array encoding.
REPAIR_DEFAULTS = (
    ("schedule_time", DEFAULT_SCHEDULE_TIME),
    ("schedule_days", DEFAULT_SCHEDULE_DAYS),
)


@dataclass
class RepairResult:
    success: bool
    repaired_data: Any
    repair_log: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "repaired_data": self.repaired_data,
            "repair_log": list(self.repair_log),
        }


def _repair_adkar(adkar: dict, index: int, repair_log: list[str]) -> dict:
    fixed = dict(adkar)
    item_num = index + 1

    for field_name in ARRAY_SCHEDULE_FIELDS:
        if isinstance(fixed.get(field_name), list):
            fixed[field_name] = compact_json(fixed[field_name])
            repair_log.append(f"Adkar #{item_num}: Converted {field_name} array to JSON string")

    for field_name, default in REPAIR_DEFAULTS:
        if is_blank(fixed.get(field_name)):
            fixed[field_name] = default
            repair_log.append(f"Adkar #{item_num}: Added default {field_name}")

    return fixed


def _repair_group(group: dict, index: int, repair_log: list[str]) -> dict:
    fixed = dict(group)
    if isinstance(fixed.get("settings"), (dict, list)):
        fixed["settings"] = compact_json(fixed["settings"])
        repair_log.append(f"Group #{index + 1}: Converted settings object to JSON string")
    return fixed


def _repair_collection(data: dict, name: str, fix, repair_log: list[str]) -> None:
    items = data.get(name)
    if not isinstance(items, list):
        return
    data[name] = [
        fix(item, index, repair_log) if isinstance(item, dict) else item
        for index, item in enumerate(items)
    ]


def repair_backup(backup: Any, version_manager: VersionManager | None = None) -> RepairResult:
    """Attempt to repair *backup*; the input object is never modified.

    A migration failure (unsupported version) returns ``success=False``
    together with the partially repaired document and the log so far.
    """
    vm = version_manager or default_manager
    repair_log: list[str] = []

    if is_blank(backup):
        return RepairResult(False, None, ["Cannot repair null or undefined backup"])

    if not isinstance(backup, dict):
        return RepairResult(False, None, ["Cannot repair a backup that is not a JSON object"])

    repaired = copy.deepcopy(backup)

    if is_blank(repaired.get("version")):
        detected = vm.detect_version(repaired)
        repaired["version"] = detected
        repair_log.append(f"Added missing version field: {detected}")

    if is_blank(repaired.get("timestamp")):
        repaired["timestamp"] = now_iso()
        repair_log.append("Added missing timestamp")

    try:
        repaired = vm.migrate(repaired, sink=repair_log)
    except UnsupportedVersionError as exc:
        repair_log.append(f"Migration failed: {exc}")
        logger.warning("Repair aborted: %s", exc)
        return RepairResult(False, repaired, repair_log)

    data = repaired.get("data")
    if isinstance(data, dict):
        _repair_collection(data, "adkar", _repair_adkar, repair_log)
        _repair_collection(data, "groups", _repair_group, repair_log)

    logger.info("Repair finished with %d action(s)", len(repair_log))
    return RepairResult(True, repaired, repair_log)
