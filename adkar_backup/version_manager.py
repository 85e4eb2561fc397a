"""
adkar_backup/version_manager.py -- Backup schema versioning and migration.

Detects the schema version of a backup from its shape, checks it against
the supported allow-list, and migrates older backups to the current schema.

Migration chain (every step jumps straight to the current schema):

    1.x  flat ``{groups, adkar, categories}``  ->  3.0.0 (wrap + rename + defaults)
    2.x  nested ``{data: {...}}``              ->  3.0.0 (rename only)

Each step is pure and idempotent, so ``migrate`` may be called on any
supported backup, including one that is already current.

Every action is written as one human-readable line to a *log sink*: any
object with an ``append(str)`` method.  A plain ``list`` works.  Without a
sink the lines go to this module's logger.

Usage::

    from adkar_backup.version_manager import VersionManager

    vm = VersionManager()
    audit: list[str] = []
    current = vm.migrate(backup, sink=audit)
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Protocol

from adkar_backup.config import DEFAULT_POLICY, VersionPolicy
from adkar_backup.models.adkar import parse_adkar_shape
from adkar_backup.utils import get_field, is_blank, now_iso
from adkar_backup.validator import (
    DEFAULT_SCHEDULE_DATES,
    DEFAULT_SCHEDULE_DAYS,
    DEFAULT_SCHEDULE_MONTHS,
    DEFAULT_SCHEDULE_TIME,
    DEFAULT_SCHEDULE_TYPE,
)

logger = logging.getLogger(__name__)

UNKNOWN_VERSION = "unknown"
LEGACY_COLLECTIONS = ("groups", "adkar", "categories")

# Defaults backfilled by the v1 -> v3 step, in the order they are applied.
MIGRATION_DEFAULTS = (
    ("schedule_days", DEFAULT_SCHEDULE_DAYS),
    ("schedule_dates", DEFAULT_SCHEDULE_DATES),
    ("schedule_months", DEFAULT_SCHEDULE_MONTHS),
    ("schedule_time", DEFAULT_SCHEDULE_TIME),
    ("schedule_type", DEFAULT_SCHEDULE_TYPE),
)


class LogSink(Protocol):
    def append(self, line: str) -> None: ...


class LoggerSink:
    """Sink that forwards every line to a ``logging.Logger`` at INFO."""

    def __init__(self, target: logging.Logger | None = None):
        self._logger = target or logger

    def append(self, line: str) -> None:
        self._logger.info("%s", line)


class UnsupportedVersionError(ValueError):
    """Raised by ``migrate`` for a version outside the allow-list."""

    def __init__(self, version: Any, supported: tuple[str, ...]):
        self.version = version
        self.supported = supported
        super().__init__(
            f"Unsupported backup version: {version}. "
            f"Supported versions: {', '.join(supported)}"
        )


class VersionManager:
    """Version detection and migration bound to one ``VersionPolicy``.

    Parameters
    ----------
    policy : VersionPolicy, optional
        Current version and supported allow-list.  Defaults to
        ``DEFAULT_POLICY`` (current ``3.0.0``).
    """

    def __init__(self, policy: VersionPolicy | None = None):
        self.policy = policy or DEFAULT_POLICY

    @property
    def current_version(self) -> str:
        return self.policy.current_version

    @property
    def supported_versions(self) -> tuple[str, ...]:
        return self.policy.supported_versions

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect_version(self, backup: Any) -> Any:
        """Return the backup's version, inferring it from shape when absent.

        An explicit ``version`` is returned verbatim.  Otherwise a ``data``
        wrapper means ``"2.0.0"``, top-level collections mean ``"1.0.0"``,
        and anything else is ``"unknown"``.
        """
        version = get_field(backup, "version")
        if not is_blank(version):
            return version
        if not is_blank(get_field(backup, "data")):
            return "2.0.0"
        if any(not is_blank(get_field(backup, name)) for name in LEGACY_COLLECTIONS):
            return "1.0.0"
        return UNKNOWN_VERSION

    def is_supported(self, version: Any) -> bool:
        return isinstance(version, str) and version in self.policy.supported_versions

    def get_version_info(self) -> dict:
        return {
            "current": self.policy.current_version,
            "supported": list(self.policy.supported_versions),
            "description": self.policy.description,
        }

    # ------------------------------------------------------------------
    # Migration steps
    # ------------------------------------------------------------------

    def _rename_legacy_fields(self, adkar: dict, index: int, sink: LogSink) -> dict:
        """Return a copy of *adkar* with v1 field names moved to current ones."""
        migrated = dict(adkar)
        for old, new in parse_adkar_shape(adkar).pending_renames():
            migrated[new] = migrated.pop(old)
            sink.append(f"Migrated adkar #{index + 1}: {old} -> {new}")
        return migrated

    def migrate_v1_to_v3(self, backup: dict, sink: LogSink | None = None) -> dict:
        """Wrap a flat v1 backup in a ``data`` block and normalise its adkar."""
        sink = sink if sink is not None else LoggerSink()
        sink.append(f"Migrating backup from v1.0 to v{self.current_version}...")

        timestamp = backup.get("timestamp")
        if is_blank(timestamp):
            timestamp = now_iso()
            sink.append("Added timestamp to migrated backup")

        # Re-applied to an already wrapped backup, read from its data block.
        source = backup.get("data") if isinstance(backup.get("data"), dict) else backup
        data = {}
        for name in ("categories", "adkar", "groups"):
            value = source.get(name)
            data[name] = copy.deepcopy(value) if not is_blank(value) else []
        if source is backup:
            sink.append("Wrapped top-level categories, adkar and groups in a data block")

        adkar_items = data["adkar"]
        if isinstance(adkar_items, list):
            migrated_items = []
            for index, adkar in enumerate(adkar_items):
                if not isinstance(adkar, dict):
                    migrated_items.append(adkar)
                    continue
                item = self._rename_legacy_fields(adkar, index, sink)
                for field_name, default in MIGRATION_DEFAULTS:
                    if is_blank(item.get(field_name)):
                        item[field_name] = default
                        sink.append(f"Added default {field_name} to adkar #{index + 1}")
                migrated_items.append(item)
            data["adkar"] = migrated_items

        sink.append(f"Migration complete: v1.0 -> v{self.current_version}")
        return {
            "version": self.current_version,
            "timestamp": timestamp,
            "data": data,
        }

    def migrate_v2_to_v3(self, backup: dict, sink: LogSink | None = None) -> dict:
        """Bring a nested v2 backup to the current schema (field renames only)."""
        sink = sink if sink is not None else LoggerSink()
        sink.append(f"Migrating backup from v2.0 to v{self.current_version}...")

        timestamp = backup.get("timestamp")
        if is_blank(timestamp):
            timestamp = now_iso()
            sink.append("Added timestamp to migrated backup")

        data = backup.get("data")
        if is_blank(data):
            data = {"categories": [], "adkar": [], "groups": []}
            sink.append("Created empty data block")
        else:
            data = copy.deepcopy(data)

        adkar_items = get_field(data, "adkar")
        if isinstance(adkar_items, list):
            data["adkar"] = [
                self._rename_legacy_fields(adkar, index, sink) if isinstance(adkar, dict) else adkar
                for index, adkar in enumerate(adkar_items)
            ]

        sink.append(f"Migration complete: v2.0 -> v{self.current_version}")
        return {
            "version": self.current_version,
            "timestamp": timestamp,
            "data": data,
        }

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def migrate(self, backup: Any, sink: LogSink | None = None) -> Any:
        """Migrate *backup* to the current version.

        Raises
        ------
        UnsupportedVersionError
            If the detected version is not in the allow-list.
        """
        sink = sink if sink is not None else LoggerSink()
        version = self.detect_version(backup)
        sink.append(f"Detected backup version: {version}")

        if not self.is_supported(version):
            raise UnsupportedVersionError(version, self.policy.supported_versions)

        if version == self.policy.current_version:
            sink.append("Backup is already at current version")
            return backup

        if version.startswith("1."):
            return self.migrate_v1_to_v3(backup, sink)
        if version.startswith("2."):
            return self.migrate_v2_to_v3(backup, sink)

        sink.append(f"No migration step needed for version {version}")
        return backup


# Module-level conveniences bound to the default policy.
default_manager = VersionManager()

CURRENT_VERSION = DEFAULT_POLICY.current_version
SUPPORTED_VERSIONS = DEFAULT_POLICY.supported_versions

detect_version = default_manager.detect_version
is_version_supported = default_manager.is_supported
migrate_to_current_version = default_manager.migrate
get_version_info = default_manager.get_version_info
