"""
adkar_backup/backup_manager.py -- Snapshot creation, listing and restore
for the bot's JSON datastore.

The store is a directory holding one JSON list per collection::

    <store_dir>/categories.json
    <store_dir>/adkar.json
    <store_dir>/groups.json

Snapshots are written as current-version backup envelopes (with metadata
and checksum) to ``<backups_dir>/backup-<UTC stamp>.json``.  Only the
``keep_count`` most recent snapshots are retained.

Usage:
    from adkar_backup.backup_manager import BackupManager

    bm = BackupManager(settings)
    info = bm.create_backup(description="before cleanup")
    backups = bm.list_backups()
    preview = bm.restore_backup(backups[0]["path"])
    bm.restore_backup(backups[0]["path"], confirm=True)
"""

import json
import logging
import os
from pathlib import Path

from adkar_backup.config import BackupSettings
from adkar_backup.diagnostic import diagnose_backup, normalize_view
from adkar_backup.metadata import create_backup_with_metadata, extract_metadata
from adkar_backup.repair import repair_backup
from adkar_backup.utils import load_json_document, now_stamp, write_json_document
from adkar_backup.version_manager import VersionManager, default_manager

logger = logging.getLogger(__name__)

STORE_COLLECTIONS = ("categories", "adkar", "groups")
BACKUP_PREFIX = "backup-"
BACKUP_SUFFIX = ".json"


# ---------------------------------------------------------------------------
# BackupManager
# ---------------------------------------------------------------------------

class BackupManager:
    """Manages creation, listing, restoration and cleanup of store snapshots.

    Parameters
    ----------
    settings : BackupSettings, optional
        Store and backup locations plus retention.  Defaults to
        ``BackupSettings()`` (platform data directory).
    version_manager : VersionManager, optional
        Used to migrate snapshots on restore.
    """

    def __init__(self, settings: BackupSettings | None = None,
                 version_manager: VersionManager | None = None):
        self.settings = settings or BackupSettings()
        self.version_manager = version_manager or default_manager
        self.store_dir = Path(self.settings.store_dir)
        self.backups_dir = Path(self.settings.backups_dir)

        os.makedirs(str(self.backups_dir), exist_ok=True)

    # ------------------------------------------------------------------
    # 1. Backup creation
    # ------------------------------------------------------------------

    def _read_store(self) -> dict:
        data = {}
        for name in STORE_COLLECTIONS:
            value = load_json_document(str(self.store_dir / f"{name}.json"), default=[])
            if not isinstance(value, list):
                logger.warning("Store file %s.json is not a list; backing up as empty", name)
                value = []
            data[name] = value
        return data

    def create_backup(self, description: str = "") -> dict:
        """Snapshot the store into a new timestamped backup file.

        Returns
        -------
        dict
            ``path``, ``filename``, ``size_bytes``, ``timestamp``,
            ``statistics`` and ``deleted`` (paths removed by retention).

        Raises
        ------
        RuntimeError
            If the backup file cannot be written.
        """
        data = self._read_store()
        backup = create_backup_with_metadata(data, description, self.settings.app_version)

        filename = f"{BACKUP_PREFIX}{now_stamp()}{BACKUP_SUFFIX}"
        final_path = self.backups_dir / filename
        try:
            write_json_document(str(final_path), backup)
        except OSError as exc:
            raise RuntimeError(
                f"Could not create backup. There may be a disk space or "
                f"permissions issue. Technical detail: {exc}"
            ) from exc

        logger.info("Created backup %s", final_path)
        deleted = self.cleanup_old_backups(self.settings.keep_count)

        return {
            "path": str(final_path),
            "filename": filename,
            "size_bytes": os.path.getsize(str(final_path)),
            "timestamp": backup["timestamp"],
            "statistics": backup["metadata"]["statistics"],
            "deleted": deleted,
        }

    # ------------------------------------------------------------------
    # 2. Backup management
    # ------------------------------------------------------------------

    def list_backups(self) -> list[dict]:
        """Return all readable backups, newest first."""
        backups: list[dict] = []
        if not self.backups_dir.exists():
            return backups

        for entry in os.scandir(str(self.backups_dir)):
            if not (entry.is_file() and entry.name.startswith(BACKUP_PREFIX)
                    and entry.name.endswith(BACKUP_SUFFIX)):
                continue
            backup = load_json_document(entry.path)
            summary = extract_metadata(backup) if backup is not None else None
            if summary is None:
                logger.warning("Skipping unreadable backup %s", entry.path)
                continue
            backups.append({
                "path": entry.path,
                "filename": entry.name,
                "size_bytes": entry.stat().st_size,
                "version": summary["version"],
                "timestamp": summary["timestamp"],
                "description": summary["description"],
                "statistics": summary["statistics"],
            })

        # Filenames embed a sortable UTC stamp
        backups.sort(key=lambda b: b["filename"], reverse=True)
        return backups

    def get_backup_info(self, backup_path: str) -> dict:
        """Return the display summary of one backup file.

        Raises
        ------
        FileNotFoundError
            If the backup file does not exist.
        ValueError
            If the file is not valid JSON.
        """
        backup = self._load_backup(backup_path)
        info = extract_metadata(backup)
        info["path"] = backup_path
        info["size_bytes"] = os.path.getsize(backup_path)
        return info

    def delete_backup(self, backup_path: str) -> None:
        if not os.path.isfile(backup_path):
            raise FileNotFoundError(
                f"The backup file was not found at: {backup_path}\n"
                f"It may have already been deleted."
            )
        try:
            os.remove(backup_path)
        except OSError as exc:
            raise RuntimeError(
                f"Could not delete the backup file. Technical detail: {exc}"
            ) from exc

    def cleanup_old_backups(self, keep_count: int = 10) -> list[str]:
        """Keep only the *keep_count* most recent backups; return deleted paths."""
        to_delete = self.list_backups()[keep_count:]
        deleted: list[str] = []
        for backup in to_delete:
            try:
                os.remove(backup["path"])
                deleted.append(backup["path"])
                logger.info("Deleted old backup %s", backup["filename"])
            except OSError:
                logger.warning("Could not delete old backup %s", backup["path"], exc_info=True)
        return deleted

    # ------------------------------------------------------------------
    # 3. Restore
    # ------------------------------------------------------------------

    def restore_backup(self, backup_path: str, confirm: bool = False, repair: bool = False) -> dict:
        """Restore the store from a backup file.

        The backup is diagnosed first (and repaired when *repair* is set).
        An unhealthy backup is refused.  Without ``confirm=True`` only a
        preview is returned; with it, a ``pre_restore`` safety snapshot is
        taken and every collection is written back to the store.

        Returns
        -------
        dict
            ``restored``, ``diagnostic`` (report), ``repair_log``,
            ``statistics`` and, when confirmed, ``pre_restore_backup``.

        Raises
        ------
        FileNotFoundError / ValueError
            If the file is missing, unparsable, unrepairable or unhealthy.
        """
        backup = self._load_backup(backup_path)
        repair_log: list[str] = []

        if repair:
            outcome = repair_backup(backup, self.version_manager)
            repair_log = outcome.repair_log
            if not outcome.success:
                raise ValueError(
                    "The backup could not be repaired: " + "; ".join(repair_log)
                )
            backup = outcome.repaired_data

        diagnostic = diagnose_backup(backup, self.version_manager, self.settings)
        report = diagnostic.get_report()
        if not report["is_healthy"]:
            raise ValueError(
                f"The backup at '{backup_path}' has problems and was not restored.\n"
                + diagnostic.format_report()
            )

        migrated = self.version_manager.migrate(backup, sink=repair_log)
        # A current-version document may still use the flat layout.
        data = normalize_view(migrated)["data"]
        statistics = {name: len(data.get(name) or []) for name in STORE_COLLECTIONS}

        result = {
            "restored": False,
            "diagnostic": report,
            "repair_log": repair_log,
            "statistics": statistics,
        }
        if not confirm:
            return result

        pre_restore = self.create_backup(description="pre_restore")
        try:
            for name in STORE_COLLECTIONS:
                write_json_document(str(self.store_dir / f"{name}.json"), data.get(name) or [])
        except OSError as exc:
            raise RuntimeError(
                f"The restore failed while writing the store. "
                f"A pre-restore backup was saved at: {pre_restore['path']}\n"
                f"Technical detail: {exc}"
            ) from exc

        logger.info("Restored store from %s", backup_path)
        result["restored"] = True
        result["pre_restore_backup"] = pre_restore["path"]
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _load_backup(backup_path: str):
        if not os.path.isfile(backup_path):
            raise FileNotFoundError(
                f"The backup file was not found at: {backup_path}\n"
                f"It may have been moved or deleted."
            )
        try:
            with open(backup_path, "r", encoding="utf-8") as fh:
                return json.load(fh)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ValueError(
                f"The file at '{backup_path}' does not appear to be a valid "
                f"backup. It may be corrupted or truncated. Technical detail: {exc}"
            ) from exc
