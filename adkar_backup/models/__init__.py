"""
adkar_backup/models/ -- Typed records for the backup engine.

Submodules:
    issues   Severity levels and issue/validation entries.
    adkar    Pydantic v2 adkar shape variants and the canonical view.
"""

from adkar_backup.models.adkar import (
    CanonicalAdkar,
    CurrentShape,
    LegacyV1Shape,
    parse_adkar_shape,
    resolve_adkar,
)
from adkar_backup.models.issues import Issue, Severity, ValidationEntry

__all__ = [
    "CanonicalAdkar",
    "CurrentShape",
    "Issue",
    "LegacyV1Shape",
    "Severity",
    "ValidationEntry",
    "parse_adkar_shape",
    "resolve_adkar",
]
