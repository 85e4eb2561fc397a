"""
adkar_backup/diagnostic.py -- Whole-document backup diagnosis.

Runs the version manager and the entity validators over one backup and
classifies every finding by severity.  Diagnosis never raises for bad data
and never mutates its input: a malformed backup is itself a diagnosable
condition.

Outcome:
    healthy               no CRITICAL and no ERROR issues
    unhealthy, fixable    ERROR issues only
    unhealthy, unfixable  at least one CRITICAL issue

Usage::

    from adkar_backup.diagnostic import diagnose_backup

    result = diagnose_backup(backup)
    report = result.get_report()
    print(result.format_report())
"""

from __future__ import annotations

import logging
from typing import Any

from adkar_backup.config import BackupSettings
from adkar_backup.models.issues import Issue, Severity
from adkar_backup.utils import get_field, is_blank, json_byte_size
from adkar_backup.validator import COLLECTIONS, ITEM_VALIDATORS, ValidationLog
from adkar_backup.version_manager import (
    LEGACY_COLLECTIONS,
    UNKNOWN_VERSION,
    VersionManager,
    default_manager,
)

logger = logging.getLogger(__name__)

_BYTES_PER_MB = 1024 * 1024

_SECTION_TITLES = (
    (Severity.CRITICAL, "Critical Issues"),
    (Severity.ERROR, "Errors"),
    (Severity.WARNING, "Warnings"),
    (Severity.INFO, "Information"),
)


# ---------------------------------------------------------------------------
# DiagnosticResult
# ---------------------------------------------------------------------------

class DiagnosticResult:
    """Issues collected while diagnosing one backup.

    ``fixable`` starts True and is cleared for good by the first CRITICAL
    issue.
    """

    def __init__(self):
        self.issues: list[Issue] = []
        self.fixable = True
        self.auto_fix_applied = False

    def add_issue(
        self,
        severity: Severity,
        message: str,
        field: str | None = None,
        suggestion: str | None = None,
    ) -> Issue:
        issue = Issue(severity, message, field, suggestion)
        self.issues.append(issue)
        if severity is Severity.CRITICAL:
            self.fixable = False
        logger.debug("diagnostic %s: %s", severity.value, message)
        return issue

    def by_severity(self, severity: Severity) -> list[Issue]:
        return [i for i in self.issues if i.severity is severity]

    @property
    def is_healthy(self) -> bool:
        return not self.by_severity(Severity.CRITICAL) and not self.by_severity(Severity.ERROR)

    def get_report(self) -> dict:
        return {
            "is_healthy": self.is_healthy,
            "fixable": self.fixable,
            "auto_fix_applied": self.auto_fix_applied,
            "summary": {
                "critical": len(self.by_severity(Severity.CRITICAL)),
                "errors": len(self.by_severity(Severity.ERROR)),
                "warnings": len(self.by_severity(Severity.WARNING)),
                "info": len(self.by_severity(Severity.INFO)),
                "total": len(self.issues),
            },
            "issues": [i.to_dict() for i in self.issues],
        }

    def format_report(self) -> str:
        """Render the issues grouped by severity, most serious first."""
        lines = ["=" * 60, "  BACKUP DIAGNOSTIC REPORT", "=" * 60]

        for severity, title in _SECTION_TITLES:
            issues = self.by_severity(severity)
            if not issues:
                continue
            lines.append("")
            lines.append(f"--- {title} ---")
            for issue in issues:
                lines.append(f"  - {issue.message}")
                if severity is Severity.INFO:
                    continue
                if issue.field:
                    lines.append(f"    Field: {issue.field}")
                if issue.suggestion:
                    lines.append(f"    Suggestion: {issue.suggestion}")

        summary = self.get_report()["summary"]
        lines.append("")
        lines.append("=" * 60)
        lines.append("Summary:")
        lines.append(f"  Critical: {summary['critical']}")
        lines.append(f"  Errors:   {summary['errors']}")
        lines.append(f"  Warnings: {summary['warnings']}")
        lines.append(f"  Info:     {summary['info']}")
        lines.append(f"  Healthy:  {self.is_healthy}")
        lines.append(f"  Fixable:  {self.fixable}")
        lines.append("=" * 60)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------

def _check_version(result: DiagnosticResult, backup: Any, vm: VersionManager) -> None:
    version = vm.detect_version(backup)
    result.add_issue(Severity.INFO, f"Detected backup version: {version}", "version")

    if version == UNKNOWN_VERSION:
        result.add_issue(
            Severity.ERROR,
            "Unable to detect backup version",
            "version",
            "Backup may have an unknown or corrupted structure",
        )
    elif not vm.is_supported(version):
        result.add_issue(
            Severity.CRITICAL,
            f"Unsupported backup version: {version}",
            "version",
            f"Supported versions: {', '.join(vm.supported_versions)}",
        )
    elif version != vm.current_version:
        result.add_issue(
            Severity.WARNING,
            f"Backup is from older version ({version}). Migration will be required.",
            "version",
            "The backup will be migrated to the current version automatically",
        )


def _has_recognizable_shape(backup: Any) -> bool:
    if not is_blank(get_field(backup, "data")):
        return True
    return any(not is_blank(get_field(backup, name)) for name in LEGACY_COLLECTIONS)


def normalize_view(backup: Any) -> dict:
    """Return a read-only view of *backup* with a ``data`` block.

    A flat v1 backup is wrapped; the input itself is never modified.
    """
    if not is_blank(get_field(backup, "data")):
        return backup
    data = {}
    for name in LEGACY_COLLECTIONS:
        # Same presence rule as the v1 migration step: an empty dict is kept.
        value = get_field(backup, name)
        data[name] = value if not is_blank(value) else []
    return {"version": "1.0.0", "data": data}


def _count(value: Any) -> int:
    return len(value) if isinstance(value, list) else 0


def _check_presence(result: DiagnosticResult, data: dict) -> None:
    if not any(_count(data.get(name)) for name in COLLECTIONS):
        result.add_issue(
            Severity.WARNING,
            "Backup contains no data (empty categories, adkar, and groups)",
            "data",
            "This backup will restore an empty database",
        )
        return
    result.add_issue(
        Severity.INFO,
        f"Backup contains {_count(data.get('categories'))} categories, "
        f"{_count(data.get('adkar'))} adkar, {_count(data.get('groups'))} groups",
    )


def _check_collections(result: DiagnosticResult, data: dict) -> None:
    for name in COLLECTIONS:
        items = data.get(name)
        if items is None:
            continue
        if not isinstance(items, list):
            result.add_issue(
                Severity.ERROR,
                f"{name.capitalize()} field is not an array",
                name,
                f"Ensure {name} is an array of objects",
            )
            continue

        validate_item = ITEM_VALIDATORS[name]
        for index, item in enumerate(items):
            log = ValidationLog()
            validate_item(item, index, log)
            for entry in log.errors:
                result.add_issue(Severity.ERROR, entry.message, entry.field, entry.suggestion)


def check_size(result: DiagnosticResult, size_bytes: int, settings: BackupSettings) -> None:
    """Record the serialised size; warn or fail past the configured limits.

    An oversized backup is an ERROR, not CRITICAL, so it does not by itself
    clear ``fixable``.
    """
    size_mb = size_bytes / _BYTES_PER_MB
    result.add_issue(Severity.INFO, f"Backup file size: {size_mb:.2f} MB", "file_size")

    if size_mb > settings.max_size_mb:
        result.add_issue(
            Severity.ERROR,
            f"Backup file is too large ({size_mb:.2f} MB). "
            f"Maximum allowed is {settings.max_size_mb:g} MB.",
            "file_size",
            "Consider reducing the amount of data or splitting into multiple backups",
        )
    elif size_mb > settings.warn_size_mb:
        result.add_issue(
            Severity.WARNING,
            f"Backup file is quite large ({size_mb:.2f} MB). Upload may be slow.",
            "file_size",
        )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def diagnose_backup(
    backup: Any,
    version_manager: VersionManager | None = None,
    settings: BackupSettings | None = None,
) -> DiagnosticResult:
    """Diagnose one parsed backup document.

    Parameters
    ----------
    backup
        The parsed JSON document (any type; ``None`` is diagnosable).
    version_manager : VersionManager, optional
        Defaults to the module-level manager bound to the default policy.
    settings : BackupSettings, optional
        Supplies the size thresholds.
    """
    vm = version_manager or default_manager
    settings = settings or BackupSettings()
    result = DiagnosticResult()

    if is_blank(backup):
        result.add_issue(
            Severity.CRITICAL,
            "Backup data is null or undefined",
            None,
            "Ensure the file was loaded correctly and is not empty",
        )
        return result

    _check_version(result, backup, vm)

    if not _has_recognizable_shape(backup):
        result.add_issue(
            Severity.CRITICAL,
            "Backup has no recognizable data structure",
            "data",
            'Backup must contain either a "data" field or top-level groups/adkar/categories fields',
        )
        return result

    view = normalize_view(backup)
    data = view["data"]

    if isinstance(data, dict):
        _check_presence(result, data)
        _check_collections(result, data)
    else:
        result.add_issue(
            Severity.ERROR,
            'Field "data" is not an object',
            "data",
            "Wrap categories, adkar and groups in a JSON object",
        )

    check_size(result, json_byte_size(view), settings)
    return result
