from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """Timezone for alarm matching: the named zone, else the system zone, else UTC."""
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as exc:  # pragma: no cover - environment-dependent
            logger.warning("Failed to load timezone %s via zoneinfo (%s)", name, exc)
    local_tz = datetime.now().astimezone().tzinfo
    if local_tz:
        if name:
            logger.warning("Using system local timezone instead: %s", getattr(local_tz, "key", local_tz))
        return local_tz
    logger.warning("System timezone unavailable, fallback to UTC")
    return timezone.utc


def now_in_tz(tz: Optional[tzinfo]) -> datetime:
    if tz:
        return datetime.now(tz)
    return datetime.now().astimezone()


def format_tz_offset(tz: tzinfo) -> str:
    sample = now_in_tz(tz)
    offset = tz.utcoffset(sample)
    if offset is None:
        return ""
    total_minutes = int(offset.total_seconds() // 60)
    sign = "+" if total_minutes >= 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


class SystemClock:
    """Wall-clock source handed to the alarm manager; read once per tick."""

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz

    def now(self) -> datetime:
        return now_in_tz(self.tz)

    def __call__(self) -> datetime:
        return self.now()


class FixedClock:
    """Manually advanced clock for tests and dry runs."""

    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current

    def set(self, value: datetime) -> None:
        self.current = value

    def __call__(self) -> datetime:
        return self.now()
