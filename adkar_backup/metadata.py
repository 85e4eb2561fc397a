"""
adkar_backup/metadata.py -- Backup metadata: checksums, statistics and
descriptive fields attached to a backup envelope.

The checksum is SHA-256 over the compact JSON of the envelope *without* its
``metadata`` key.  It is computed before metadata is attached and verified
by recomputing over envelope-minus-metadata.
"""

from __future__ import annotations

import hashlib
import logging
import platform
import sys
from datetime import datetime
from typing import Any

from adkar_backup.config import APP_VERSION, DEFAULT_POLICY
from adkar_backup.utils import compact_json, json_byte_size, now_iso

logger = logging.getLogger(__name__)

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def generate_checksum(data: Any) -> str:
    """Return the SHA-256 hex digest of the compact JSON of *data*."""
    return hashlib.sha256(compact_json(data).encode("utf-8")).hexdigest()


def _without_metadata(backup: dict) -> dict:
    return {key: value for key, value in backup.items() if key != "metadata"}


def verify_checksum(backup: Any) -> bool:
    """Return True only when a stored checksum matches the envelope content."""
    if not isinstance(backup, dict):
        return False
    metadata = backup.get("metadata")
    if not isinstance(metadata, dict) or not metadata.get("checksum"):
        return False
    return metadata["checksum"] == generate_checksum(_without_metadata(backup))


def format_bytes(size: int) -> str:
    """Format a byte count, 1024-based, e.g. ``1536 -> "1.5 KB"``."""
    if size <= 0:
        return "0 Bytes"
    index = 0
    value = float(size)
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[index]}"


def calculate_statistics(data: Any) -> dict:
    """Count the entities of a data block and measure its serialised size."""
    stats = {"groups": 0, "adkar": 0, "categories": 0, "totalSize": 0}
    if isinstance(data, dict):
        for name in ("groups", "adkar", "categories"):
            if isinstance(data.get(name), list):
                stats[name] = len(data[name])

    stats["totalSize"] = json_byte_size(data)
    stats["formattedSize"] = format_bytes(stats["totalSize"])
    return stats


def create_metadata(data: Any, description: str = "", app_version: str = APP_VERSION) -> dict:
    return {
        "createdAt": now_iso(),
        "appVersion": app_version,
        "backupVersion": DEFAULT_POLICY.current_version,
        "description": description,
        "statistics": calculate_statistics(data),
        "system": {
            "pythonVersion": platform.python_version(),
            "platform": sys.platform,
        },
    }


def create_backup_with_metadata(data: Any, description: str = "", app_version: str = APP_VERSION) -> dict:
    """Build a complete current-version envelope around *data*.

    The checksum covers ``version``, ``timestamp`` and ``data``.
    """
    backup = {
        "version": DEFAULT_POLICY.current_version,
        "timestamp": now_iso(),
        "data": data,
    }
    metadata = create_metadata(data, description, app_version)
    metadata["checksum"] = generate_checksum(backup)
    backup["metadata"] = metadata
    return backup


def _format_date(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed.strftime("%Y-%m-%d %H:%M")


def extract_metadata(backup: Any) -> dict | None:
    """Summarise a backup envelope for display.

    Returns ``None`` for a missing backup.  Statistics are recomputed from
    ``data`` when the stored ones are absent or report no groups and no
    adkar.
    """
    if backup is None:
        return None
    if not isinstance(backup, dict):
        backup = {}

    summary = {
        "version": backup.get("version") or "unknown",
        "timestamp": backup.get("timestamp") or "unknown",
        "createdAt": None,
        "appVersion": None,
        "description": "",
        "statistics": {
            "groups": 0,
            "adkar": 0,
            "categories": 0,
            "totalSize": 0,
            "formattedSize": "0 Bytes",
        },
        "hasChecksum": False,
        "checksumValid": None,
    }

    metadata = backup.get("metadata")
    if isinstance(metadata, dict):
        summary["createdAt"] = metadata.get("createdAt") or backup.get("timestamp")
        summary["appVersion"] = metadata.get("appVersion")
        summary["description"] = metadata.get("description") or ""
        summary["hasChecksum"] = bool(metadata.get("checksum"))
        if summary["hasChecksum"]:
            summary["checksumValid"] = verify_checksum(backup)
        if isinstance(metadata.get("statistics"), dict):
            summary["statistics"] = metadata["statistics"]

    stats = summary["statistics"]
    if backup.get("data") and not stats.get("groups") and not stats.get("adkar"):
        summary["statistics"] = calculate_statistics(backup["data"])

    if summary["createdAt"]:
        summary["formattedDate"] = _format_date(summary["createdAt"])

    return summary


def validate_metadata(metadata: Any) -> dict:
    """Check the structure of a metadata block. Returns ``{valid, errors}``."""
    errors: list[str] = []

    if not metadata:
        return {"valid": False, "errors": ["Metadata is missing"]}
    if not isinstance(metadata, dict):
        return {"valid": False, "errors": ["Metadata must be an object"]}

    if not metadata.get("createdAt"):
        errors.append("Missing createdAt in metadata")

    if not metadata.get("backupVersion") and not metadata.get("version"):
        errors.append("Missing version in metadata")

    statistics = metadata.get("statistics")
    if isinstance(statistics, dict):
        for name in ("groups", "adkar", "categories"):
            value = statistics.get(name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                errors.append(f"Invalid statistics.{name} - must be a number")

    return {"valid": not errors, "errors": errors}
