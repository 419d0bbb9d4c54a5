from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .models import AlarmKind

ONE_SHOT_WORDS = ("once", "one-shot", "oneshot")

ACTION_WORDS = {
    "add": "add",
    "set": "add",
    "new": "add",
    "test": "test",
    "list": "list",
    "ls": "list",
    "show": "list",
    "delete": "delete",
    "del": "delete",
    "rm": "delete",
    "remove": "delete",
    "enable": "enable",
    "on": "enable",
    "disable": "disable",
    "off": "disable",
    "dismiss": "dismiss",
    "stop": "dismiss",
    "cancel": "cancel",
    "ring": "ring",
    "permissions": "permissions",
    "perm": "permissions",
    "grant": "grant",
    "status": "status",
    "help": "help",
    "?": "help",
    "quit": "quit",
    "exit": "quit",
}

ID_ACTIONS = ("delete", "enable", "disable", "cancel", "ring")

TIME_RE = re.compile(
    r"^(?P<hour>\d{1,2})(?:[:.h](?P<minute>\d{2}))?\s*(?P<meridiem>a\.?m\.?|p\.?m\.?)?(?=\s|$)",
    re.IGNORECASE,
)


@dataclass
class AlarmCommand:
    action: str
    hour: Optional[int] = None
    minute: Optional[int] = None
    label: Optional[str] = None
    kind: AlarmKind = AlarmKind.RECURRING
    alarm_id: Optional[str] = None
    delay_seconds: Optional[int] = None
    error: Optional[str] = None
    raw_text: str = ""


def to_24_hour(hour: int, minute: int, meridiem: Optional[str]) -> tuple[int, int]:
    """Convert a clock-face reading to the 24-hour frame used by the core.

    Without a meridiem the input is already 24-hour and is returned as is,
    so out-of-range values still reach validation and get rejected there.
    """
    if not meridiem:
        return hour, minute
    marker = meridiem.lower().replace(".", "")
    if not 1 <= hour <= 12:
        raise ValueError(f"{hour} is not a 12-hour clock value")
    if marker == "am":
        return (0 if hour == 12 else hour), minute
    if marker == "pm":
        return (12 if hour == 12 else hour + 12), minute
    raise ValueError(f"Unknown meridiem {meridiem!r}")


def parse_command(text: str) -> Optional[AlarmCommand]:
    """Parse one console line into a structured command; ``None`` for blank input."""
    cleaned = text.strip()
    if not cleaned:
        return None
    head, _, rest = cleaned.partition(" ")
    rest = rest.strip()
    action = ACTION_WORDS.get(head.lower())

    if action is None:
        # a bare time like "7:30 am" is shorthand for "add"
        if TIME_RE.match(cleaned):
            action, rest = "add", cleaned
        else:
            return AlarmCommand(action="unknown", error=f"Unknown command: {head}", raw_text=cleaned)

    if action == "add":
        return _parse_add(rest, cleaned)

    if action == "test":
        delay = None
        if rest:
            match = re.match(r"^(\d+)\s*s?(?:ec(?:onds?)?)?$", rest, re.IGNORECASE)
            if not match:
                return AlarmCommand(action="unknown", error="Usage: test [seconds]", raw_text=cleaned)
            delay = int(match.group(1))
        return AlarmCommand(action="test", delay_seconds=delay, raw_text=cleaned)

    if action in ID_ACTIONS:
        if not rest:
            return AlarmCommand(action="unknown", error=f"Usage: {action} <alarm id>", raw_text=cleaned)
        return AlarmCommand(action=action, alarm_id=rest.split()[0], raw_text=cleaned)

    return AlarmCommand(action=action, raw_text=cleaned)


def _parse_add(rest: str, raw: str) -> AlarmCommand:
    match = TIME_RE.match(rest)
    if not match:
        return AlarmCommand(action="unknown", error="Usage: add <HH:MM> [am|pm] [once] [label]", raw_text=raw)
    hour = int(match.group("hour"))
    minute = int(match.group("minute")) if match.group("minute") else 0
    try:
        hour, minute = to_24_hour(hour, minute, match.group("meridiem"))
    except ValueError as exc:
        return AlarmCommand(action="unknown", error=str(exc), raw_text=raw)

    words = rest[match.end():].split()
    kind = AlarmKind.RECURRING
    if words and words[0].lower() in ONE_SHOT_WORDS:
        kind = AlarmKind.ONE_SHOT
        words = words[1:]
    label = " ".join(words) or None
    return AlarmCommand(action="add", hour=hour, minute=minute, label=label, kind=kind, raw_text=raw)
