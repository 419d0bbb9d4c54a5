"""Side-effect outlet for the alarm core.

The core never plays sound or vibrates itself. State transitions produce
:class:`Signal` records naming a method of :class:`AlarmEffects`; the manager
queues them in transition order and delivers them after releasing its lock. Delivery is best-effort: a failing
handler is logged and the remaining signals are still delivered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from .gateway import ScheduleOutcome
from .models import Alarm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Signal:
    name: str
    args: tuple = field(default_factory=tuple)


class AlarmEffects:
    """No-op outlet. Subclasses override what they can honor."""

    def on_fire(self, alarm: Alarm) -> None:
        pass

    def on_dismiss(self, alarm_id: Optional[str]) -> None:
        pass

    def start_audio(self) -> None:
        pass

    def stop_audio(self) -> None:
        pass

    def start_vibration(self, pattern: Sequence[int]) -> None:
        pass

    def stop_vibration(self) -> None:
        pass

    def keep_awake(self, enabled: bool) -> None:
        pass

    def on_gateway_status(self, alarm_id: str, outcome: ScheduleOutcome) -> None:
        pass


def dispatch(outlet: AlarmEffects, signals: Iterable[Signal]) -> int:
    """Deliver ``signals`` in order and return how many handlers failed."""
    failures = 0
    for signal in signals:
        handler = getattr(outlet, signal.name, None)
        if handler is None:
            logger.warning("Outlet %s has no handler for %s", type(outlet).__name__, signal.name)
            failures += 1
            continue
        try:
            handler(*signal.args)
        except Exception:
            failures += 1
            logger.error("Side effect %s failed", signal.name, exc_info=True)
    return failures
