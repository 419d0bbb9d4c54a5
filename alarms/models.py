from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from .errors import InvalidTime


class AlarmKind(str, Enum):
    RECURRING = "recurring"
    ONE_SHOT = "one-shot"


def validate_time(hour, minute) -> None:
    """Reject anything that is not an in-range integer hour/minute pair."""
    for value in (hour, minute):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidTime(hour, minute)
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise InvalidTime(hour, minute)


def new_alarm_id() -> str:
    return f"al_{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class Alarm:
    id: str
    hour: int
    minute: int
    label: str = ""
    enabled: bool = True
    kind: AlarmKind = AlarmKind.RECURRING
    created_at: Optional[datetime] = None

    @property
    def is_one_shot(self) -> bool:
        return self.kind is AlarmKind.ONE_SHOT

    @property
    def hhmm(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    def with_enabled(self, enabled: bool) -> "Alarm":
        return replace(self, enabled=enabled)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "hour": self.hour,
            "minute": self.minute,
            "label": self.label,
            "enabled": self.enabled,
            "kind": self.kind.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Alarm":
        if "hour" not in data or "minute" not in data:
            raise ValueError("Alarm payload missing hour/minute fields")
        hour = data["hour"]
        minute = data["minute"]
        validate_time(hour, minute)
        created_raw = data.get("created_at")
        return cls(
            id=str(data.get("id") or new_alarm_id()),
            hour=hour,
            minute=minute,
            label=str(data.get("label") or ""),
            enabled=bool(data.get("enabled", True)),
            kind=AlarmKind(data.get("kind", AlarmKind.RECURRING.value)),
            created_at=datetime.fromisoformat(created_raw) if created_raw else None,
        )
