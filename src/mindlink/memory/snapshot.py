"""Single-blob JSON snapshots.

Each store owns one file holding a JSON array. Reads never fail: a missing,
unreadable, or wrongly shaped file yields an empty list. Writes replace the
whole file (last write wins).
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def load_snapshot(path: Path) -> list:
    """Return the JSON array stored at path, or [] if there is nothing usable."""
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Unreadable snapshot %s, starting empty: %s", path, e)
        return []
    if not isinstance(data, list):
        logger.warning("Snapshot %s is not a JSON array, starting empty", path)
        return []
    return data


def save_snapshot(path: Path, records: list[dict]) -> None:
    """Serialize records as one unit, replacing the previous snapshot."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(records, ensure_ascii=False), encoding="utf-8")
    os.replace(tmp, path)
    logger.debug("Saved %d records to %s", len(records), path)
