from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from .effects import Signal
from .evaluator import FireEvent
from .models import Alarm, AlarmKind
from .registry import AlarmRegistry

logger = logging.getLogger(__name__)

DEFAULT_VIBRATION_PATTERN = (0, 1000, 500, 1000, 500, 1000)


@dataclass(frozen=True)
class RingingState:
    alarm_id: str
    kind: AlarmKind
    label: str
    fired_at: datetime


class RingingStateMachine:
    """Single ringing slot: ``state is None`` means idle.

    Transitions update the slot first and return the signals for the outlet,
    so a collaborator failing to start or stop sound can never leave the
    machine ringing.
    """

    def __init__(self, registry: AlarmRegistry, vibration_pattern: Sequence[int] = DEFAULT_VIBRATION_PATTERN):
        self.registry = registry
        self.vibration_pattern = tuple(vibration_pattern)
        self.state: Optional[RingingState] = None

    @property
    def is_ringing(self) -> bool:
        return self.state is not None

    def fire(self, event: FireEvent, alarm: Alarm) -> List[Signal]:
        if self.state is not None:
            logger.info("Ignoring fire for %s: %s is already ringing", event.alarm_id, self.state.alarm_id)
            return []
        self.state = RingingState(
            alarm_id=alarm.id,
            kind=alarm.kind,
            label=alarm.label,
            fired_at=event.fired_at,
        )
        logger.info("Ringing %s (label=%s)", alarm.id, alarm.label)
        return [
            Signal("keep_awake", (True,)),
            Signal("start_vibration", (self.vibration_pattern,)),
            Signal("start_audio"),
            Signal("on_fire", (alarm,)),
        ]

    def dismiss(self) -> tuple[Optional[RingingState], List[Signal]]:
        current = self.state
        if current is None:
            return None, []
        signals = self._stop()
        if current.kind is AlarmKind.ONE_SHOT:
            self.registry.delete(current.alarm_id)
        logger.info("Dismissed %s", current.alarm_id)
        return current, signals

    def cancel(self, alarm_id: str) -> tuple[Optional[RingingState], List[Signal]]:
        current = self.state
        if current is None or current.alarm_id != alarm_id:
            return None, []
        signals = self._stop()
        logger.info("Cancelled ringing %s", alarm_id)
        return current, signals

    def _stop(self) -> List[Signal]:
        alarm_id = self.state.alarm_id if self.state else None
        self.state = None
        return [
            Signal("stop_vibration"),
            Signal("keep_awake", (False,)),
            Signal("stop_audio"),
            Signal("on_dismiss", (alarm_id,)),
        ]
