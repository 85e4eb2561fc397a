"""
Shared helpers for the backup engine.

All JSON writes go through a hidden partial file and os.replace() so a
snapshot or a restored store file is never left half-written.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# JSON documents on disk
# ---------------------------------------------------------------------------

def load_json_document(path, default=None):
    """Load a store file or snapshot, falling back to *default*.

    A missing file is normal (a fresh store has none) and is returned as
    *default* silently.  An unreadable or corrupt file is logged first.
    """
    path = Path(path)
    if not path.is_file():
        return default
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable JSON document %s: %s", path, exc)
        return default


def write_json_document(path, data, *, indent=2):
    """Write *data* to *path* through a hidden ``.partial`` file and ``os.replace``.

    The partial file never matches the ``backup-*.json`` snapshot pattern,
    so a listing running concurrently cannot pick up a half-written
    snapshot.  Parent directories are created as needed.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, partial = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.stem}-", suffix=".partial")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=indent, ensure_ascii=False)
        os.replace(partial, str(path))
    except BaseException:
        if os.path.exists(partial):
            os.unlink(partial)
        raise


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

def compact_json(value) -> str:
    """Serialise *value* without whitespace, keeping non-ASCII characters.

    This is the canonical form used for checksums, size estimates and for
    JSON-encoding schedule arrays during repair.
    """
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def json_byte_size(value) -> int:
    """Return the UTF-8 byte length of the compact serialisation of *value*."""
    return len(compact_json(value).encode("utf-8"))


# ---------------------------------------------------------------------------
# Presence checks
# ---------------------------------------------------------------------------

def is_blank(value) -> bool:
    """Return True for values a backup treats as "not set".

    ``None``, empty strings, ``False`` and numeric zero are blank.  Empty
    lists and dicts are *not* blank: an empty ``schedule_dates`` list is a
    real value.
    """
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    return False


def get_field(doc, key):
    """Return ``doc[key]`` when *doc* is a dict, else ``None``."""
    if isinstance(doc, dict):
        return doc.get(key)
    return None


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------

def now_iso() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


def now_stamp() -> str:
    """Return a filesystem-safe UTC timestamp for filenames."""
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S_%fZ")
