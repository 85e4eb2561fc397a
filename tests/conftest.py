"""
Shared pytest fixtures for the adkar backup test suite.

Provides:
    - v1_backup: a flat, unversioned legacy backup
    - v3_backup: a healthy current-version backup
    - settings: BackupSettings pointing at temporary directories
    - populated_store: a store directory with one entity of each kind
"""

import copy
import json
import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Ensure adkar_backup/ is importable regardless of where pytest is invoked
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from adkar_backup.config import BackupSettings  # noqa: E402


SAMPLE_CATEGORY = {"id": 1, "name": "Morning"}
SAMPLE_ADKAR = {
    "id": 1,
    "category_id": 1,
    "content_type": "text",
    "schedule_days": "[0,1,2,3,4,5,6]",
    "schedule_dates": "[]",
    "schedule_months": "[]",
    "schedule_time": "06:30",
}
SAMPLE_GROUP = {"id": 1, "chat_id": -100123, "title": "Family", "settings": "{}"}


@pytest.fixture
def v1_backup():
    """Return a flat v1 backup using the legacy ``type``/``days_of_week`` names."""
    return {
        "groups": [{"id": 1, "title": "G", "chat_id": 5}],
        "adkar": [{
            "id": 1,
            "category_id": 1,
            "title": "T",
            "type": "audio",
            "days_of_week": "[0,1]",
        }],
        "categories": [],
    }


@pytest.fixture
def v3_backup():
    """Return a healthy current-version backup."""
    return {
        "version": "3.0.0",
        "timestamp": "2024-01-01T00:00:00+00:00",
        "data": {
            "categories": [copy.deepcopy(SAMPLE_CATEGORY)],
            "adkar": [copy.deepcopy(SAMPLE_ADKAR)],
            "groups": [copy.deepcopy(SAMPLE_GROUP)],
        },
    }


@pytest.fixture
def settings(tmp_path):
    """Return BackupSettings rooted in a temporary directory."""
    return BackupSettings(
        store_dir=str(tmp_path / "database"),
        backups_dir=str(tmp_path / "backups"),
        keep_count=10,
    )


@pytest.fixture
def populated_store(settings):
    """Write one category, adkar and group into the store directory."""
    store = Path(settings.store_dir)
    store.mkdir(parents=True, exist_ok=True)
    for name, item in (("categories", SAMPLE_CATEGORY), ("adkar", SAMPLE_ADKAR), ("groups", SAMPLE_GROUP)):
        with open(str(store / f"{name}.json"), "w", encoding="utf-8") as fh:
            json.dump([item], fh)
    return store
