from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

from .errors import DuplicateAlarm, NotFound
from .evaluator import TriggerLedger
from .models import Alarm, AlarmKind, new_alarm_id, validate_time

logger = logging.getLogger(__name__)


class AlarmRegistry:
    """Canonical, insertion-ordered set of alarms.

    Not thread-safe on its own; :class:`alarms.manager.AlarmManager` holds
    the lock around every call.
    """

    def __init__(self, ledger: Optional[TriggerLedger] = None):
        self.ledger = ledger or TriggerLedger()
        self._alarms: Dict[str, Alarm] = {}

    def create(
        self,
        hour: int,
        minute: int,
        label: str = "",
        kind: AlarmKind | str = AlarmKind.RECURRING,
        alarm_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> str:
        validate_time(hour, minute)
        kind = AlarmKind(kind)
        if alarm_id is None:
            alarm_id = new_alarm_id()
            while alarm_id in self._alarms:
                alarm_id = new_alarm_id()
        elif alarm_id in self._alarms:
            raise DuplicateAlarm(alarm_id)
        alarm = Alarm(
            id=alarm_id,
            hour=hour,
            minute=minute,
            label=label or "",
            enabled=True,
            kind=kind,
            created_at=now,
        )
        self._alarms[alarm_id] = alarm
        logger.info("Alarm %s created for %s (kind=%s, label=%s)", alarm_id, alarm.hhmm, kind.value, alarm.label)
        return alarm_id

    def restore(self, alarm: Alarm) -> Alarm:
        validate_time(alarm.hour, alarm.minute)
        if alarm.id in self._alarms:
            raise DuplicateAlarm(alarm.id)
        self._alarms[alarm.id] = alarm
        return alarm

    def get(self, alarm_id: str) -> Alarm:
        try:
            return self._alarms[alarm_id]
        except KeyError:
            raise NotFound(alarm_id) from None

    def delete(self, alarm_id: str) -> Optional[Alarm]:
        removed = self._alarms.pop(alarm_id, None)
        self.ledger.forget(alarm_id)
        if removed:
            logger.info("Alarm %s deleted", alarm_id)
        else:
            logger.debug("Delete of unknown alarm %s ignored", alarm_id)
        return removed

    def set_enabled(self, alarm_id: str, enabled: bool) -> Alarm:
        alarm = self.get(alarm_id).with_enabled(bool(enabled))
        self._alarms[alarm_id] = alarm
        logger.info("Alarm %s %s", alarm_id, "enabled" if alarm.enabled else "disabled")
        return alarm

    def disable_after_fire(self, alarm_id: str) -> None:
        alarm = self._alarms.get(alarm_id)
        if alarm and alarm.is_one_shot and alarm.enabled:
            self._alarms[alarm_id] = alarm.with_enabled(False)

    def snapshot(self) -> List[Alarm]:
        return list(self._alarms.values())

    def __contains__(self, alarm_id: object) -> bool:
        return alarm_id in self._alarms

    def __len__(self) -> int:
        return len(self._alarms)
