"""Bridge to the OS exact-alarm authority.

The in-process evaluator is the authoritative firing path. The gateway is a
coarser backstop that can wake the device; its answers are advisory and
never change what the core stores or fires.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional

logger = logging.getLogger(__name__)

MAX_SCHEDULE_AHEAD = timedelta(days=365)


class ScheduleOutcome(str, Enum):
    ACCEPTED = "accepted"
    NEEDS_PERMISSION = "needs_permission"
    REJECTED = "rejected"


@dataclass(frozen=True)
class PermissionStatus:
    can_schedule: bool
    message: str


def next_occurrence(hour: int, minute: int, now: datetime) -> datetime:
    """Next instant at ``hour:minute``: later today, otherwise tomorrow."""
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target = target + timedelta(days=1)
    return target


class SchedulingGateway:
    """Contract for exact-alarm backends. Every call must be idempotent."""

    def request_schedule(self, alarm_id: str, hour: int, minute: int, now: datetime) -> ScheduleOutcome:
        raise NotImplementedError

    def request_cancel(self, alarm_id: str) -> None:
        raise NotImplementedError

    def can_schedule_exact(self) -> PermissionStatus:
        raise NotImplementedError

    def request_permission(self) -> str:
        raise NotImplementedError


class LocalSchedulingGateway(SchedulingGateway):
    """In-process stand-in used when no platform alarm service is present.

    Keeps one pending wake-up per alarm id, mirroring how the platform keys
    pending intents: scheduling again replaces the previous entry and
    cancelling an id that is not pending does nothing.
    """

    def __init__(self, exact_permission: bool = True):
        self.exact_permission = exact_permission
        self.pending: Dict[str, datetime] = {}

    def request_schedule(self, alarm_id: str, hour: int, minute: int, now: datetime) -> ScheduleOutcome:
        if not self.exact_permission:
            logger.warning("Cannot schedule exact alarm %s: permission not granted", alarm_id)
            return ScheduleOutcome.NEEDS_PERMISSION
        target = next_occurrence(hour, minute, now)
        if target <= now or target - now > MAX_SCHEDULE_AHEAD:
            logger.warning("Rejected exact alarm %s for %s", alarm_id, target.isoformat())
            return ScheduleOutcome.REJECTED
        self.pending[alarm_id] = target
        logger.debug("Exact alarm %s armed for %s", alarm_id, target.isoformat())
        return ScheduleOutcome.ACCEPTED

    def request_cancel(self, alarm_id: str) -> None:
        if self.pending.pop(alarm_id, None) is not None:
            logger.debug("Exact alarm %s cancelled", alarm_id)

    def can_schedule_exact(self) -> PermissionStatus:
        if self.exact_permission:
            return PermissionStatus(True, "Exact alarms permitted")
        return PermissionStatus(False, "Exact alarm permission required (Alarms & reminders)")

    def request_permission(self) -> str:
        self.exact_permission = True
        return "Exact alarm permission granted"

    def next_pending(self) -> Optional[tuple[str, datetime]]:
        if not self.pending:
            return None
        alarm_id = min(self.pending, key=self.pending.__getitem__)
        return alarm_id, self.pending[alarm_id]
