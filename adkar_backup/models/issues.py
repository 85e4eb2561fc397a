"""
adkar_backup/models/issues.py -- Issue records shared by the validator and
the diagnostic engine.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from dataclasses import field as dataclass_field
from enum import Enum

from adkar_backup.utils import now_iso


class Severity(str, Enum):
    """Diagnostic severity, ordered from most to least serious.

    CRITICAL  structurally unrecoverable, forces ``fixable=False``
    ERROR     entity-level defect, makes the backup unhealthy
    WARNING   benign anomaly
    INFO      observation only
    """

    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class Issue:
    """A single diagnostic finding."""
    severity: Severity
    message: str
    field: str | None = None
    suggestion: str | None = None
    timestamp: str = dataclass_field(default_factory=now_iso)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["severity"] = self.severity.value
        return data


@dataclass
class ValidationEntry:
    """One line recorded by a ``ValidationLog``."""
    level: str
    message: str
    field: str | None = None
    suggestion: str | None = None
    timestamp: str = dataclass_field(default_factory=now_iso)

    def to_dict(self) -> dict:
        return asdict(self)
