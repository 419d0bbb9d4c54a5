from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List

from .models import Alarm

logger = logging.getLogger(__name__)


def load_alarms(path: Path) -> List[Alarm]:
    """Read the alarm snapshot written by :func:`save_alarms`.

    A missing or unreadable file yields an empty list; broken items are
    skipped so one bad entry does not lose the rest.
    """
    if not path.exists():
        return []
    try:
        with path.open("r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, ValueError) as exc:
        logger.error("Failed to load alarms from %s: %s", path, exc)
        return []
    alarms: List[Alarm] = []
    for item in payload or []:
        try:
            alarms.append(Alarm.from_dict(item))
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping alarm item due to parse error: %s", exc)
    return alarms


def save_alarms(path: Path, alarms: Iterable[Alarm]) -> None:
    """Replace the snapshot at ``path``; the old file stays intact if writing fails."""
    path.parent.mkdir(parents=True, exist_ok=True)
    serializable = [a.to_dict() for a in alarms]
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(serializable, f, ensure_ascii=False, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        os.unlink(tmp_name)
        raise
