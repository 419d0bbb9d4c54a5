from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, Optional

from .models import Alarm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FireKey:
    """Identifies one occurrence of an alarm: the id plus the matched day and minute."""

    alarm_id: str
    day: date
    hour: int
    minute: int

    @classmethod
    def for_tick(cls, alarm_id: str, now: datetime) -> "FireKey":
        return cls(alarm_id=alarm_id, day=now.date(), hour=now.hour, minute=now.minute)


@dataclass(frozen=True)
class FireEvent:
    alarm_id: str
    fired_at: datetime
    key: Optional[FireKey] = None


class TriggerLedger:
    """Last fire key per alarm. Lives in memory only."""

    def __init__(self) -> None:
        self._last: Dict[str, FireKey] = {}

    def last(self, alarm_id: str) -> Optional[FireKey]:
        return self._last.get(alarm_id)

    def record(self, key: FireKey) -> None:
        self._last[key.alarm_id] = key

    def forget(self, alarm_id: str) -> None:
        self._last.pop(alarm_id, None)

    def clear(self) -> None:
        self._last.clear()

    def __len__(self) -> int:
        return len(self._last)

    def __contains__(self, alarm_id: object) -> bool:
        return alarm_id in self._last


class TriggerEvaluator:
    """Decides which alarm, if any, fires on a given tick.

    A match needs the tick's hour and minute to equal the alarm's. Every
    genuine match is written to the ledger keyed on (id, date, hour, minute),
    so repeated ticks inside the same minute are suppressed while the same
    time on the next day produces a new key. Only the first match in snapshot
    order fires; a match found while something is already ringing is recorded
    and dropped.
    """

    def __init__(self, ledger: TriggerLedger):
        self.ledger = ledger

    def evaluate(self, now: datetime, snapshot: Iterable[Alarm], ringing: bool) -> Optional[FireEvent]:
        for alarm in snapshot:
            if not alarm.enabled:
                continue
            if alarm.hour != now.hour or alarm.minute != now.minute:
                continue
            key = FireKey.for_tick(alarm.id, now)
            if self.ledger.last(alarm.id) == key:
                continue
            self.ledger.record(key)
            if ringing:
                logger.warning(
                    "Alarm %s due at %s missed: another alarm is ringing",
                    alarm.id,
                    alarm.hhmm,
                )
                continue
            logger.info("Alarm %s matched at %s (label=%s)", alarm.id, now.isoformat(), alarm.label)
            return FireEvent(alarm_id=alarm.id, fired_at=now, key=key)
        return None
