"""
adkar_backup/config.py -- Immutable configuration for the backup engine.

Two frozen Pydantic models carry every tunable value:

    VersionPolicy    current schema version and the supported allow-list,
                     injected into ``VersionManager`` at construction.
    BackupSettings   snapshot locations, retention and size thresholds.

Default directories come from ``platformdirs`` and can be overridden with
the ``ADKAR_BACKUP_DIR`` and ``ADKAR_STORE_DIR`` environment variables.
"""

from __future__ import annotations

import os

from platformdirs import user_data_dir
from pydantic import BaseModel, ConfigDict, Field, field_validator

_APP_NAME = "AdkarBot"
_APP_AUTHOR = "AdkarBot"

APP_VERSION = "3.0.0"


def get_user_data_dir() -> str:
    """Return the platform-appropriate user data directory."""
    return user_data_dir(_APP_NAME, _APP_AUTHOR)


def default_store_dir() -> str:
    return os.environ.get("ADKAR_STORE_DIR") or os.path.join(get_user_data_dir(), "database")


def default_backups_dir() -> str:
    return os.environ.get("ADKAR_BACKUP_DIR") or os.path.join(get_user_data_dir(), "backups")


class VersionPolicy(BaseModel):
    """Schema versions known to the migration chain.

    Both the bare (``"1.0"``) and full (``"1.0.0"``) spellings are listed
    separately; callers must match one of them exactly.
    """

    model_config = ConfigDict(frozen=True)

    current_version: str = "3.0.0"
    supported_versions: tuple[str, ...] = ("1.0", "1.0.0", "2.0", "2.0.0", "3.0", "3.0.0")
    description: str = "Backup version management for the adkar bot"

    @field_validator("supported_versions")
    @classmethod
    def _non_empty(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("supported_versions must not be empty")
        return value


class BackupSettings(BaseModel):
    """Where snapshots live and how large a backup may grow."""

    model_config = ConfigDict(frozen=True)

    store_dir: str = Field(default_factory=default_store_dir)
    backups_dir: str = Field(default_factory=default_backups_dir)
    keep_count: int = Field(default=10, ge=1)
    warn_size_mb: float = 5.0
    max_size_mb: float = 10.0
    app_version: str = APP_VERSION


DEFAULT_POLICY = VersionPolicy()
