from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import AlarmError
from .manager import AlarmManager
from .models import Alarm
from .parser import parse_command

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Commands:\n"
    "  add <HH:MM> [am|pm] [once] [label]   create an alarm (24-hour unless am/pm given)\n"
    "  test [seconds]                       one-shot alarm a few seconds from now\n"
    "  list                                 show alarms\n"
    "  enable <id> | disable <id>           toggle an alarm\n"
    "  delete <id>                          remove an alarm\n"
    "  ring <id>                            ring an alarm right away\n"
    "  dismiss                              stop the ringing alarm\n"
    "  cancel <id>                          silence <id> if it is ringing, keep it\n"
    "  permissions | grant                  exact alarm permission status / request\n"
    "  status | help | quit"
)


@dataclass
class IntentResult:
    handled: bool
    response_text: Optional[str] = None
    action: Optional[str] = None
    quit: bool = False


class IntentRouter:
    """Maps console commands onto :class:`AlarmManager` calls.

    Core errors are turned into response text here; nothing raised by a
    command escapes to the input loop.
    """

    def __init__(self, alarm_manager: AlarmManager, default_label: str = "Wake up"):
        self.alarm_manager = alarm_manager
        self.default_label = default_label

    def handle_text(self, text: str) -> Optional[IntentResult]:
        parsed = parse_command(text)
        if not parsed:
            return None
        logger.debug("Command parsed: %s", parsed)

        if parsed.action == "unknown":
            return IntentResult(handled=False, response_text=parsed.error, action=parsed.action)
        try:
            return self._dispatch(parsed)
        except AlarmError as exc:
            logger.info("Command %r rejected: %s", parsed.raw_text, exc)
            return IntentResult(handled=False, response_text=str(exc), action=parsed.action)

    def _dispatch(self, parsed) -> IntentResult:
        manager = self.alarm_manager
        action = parsed.action

        if action == "add":
            alarm = manager.create_alarm(
                parsed.hour,
                parsed.minute,
                label=parsed.label or self.default_label,
                kind=parsed.kind,
            )
            return IntentResult(True, f"Alarm {alarm.id} set for {describe_alarm(alarm)}.", action)

        if action == "test":
            alarm = manager.schedule_test_alarm(parsed.delay_seconds)
            return IntentResult(True, f"Test alarm {alarm.id} will ring at {format_alarm_time(alarm.hour, alarm.minute)}.", action)

        if action == "list":
            alarms = manager.list_alarms()
            if not alarms:
                return IntentResult(True, "No alarms set.", action)
            lines = [f"{idx}) {alarm.id} {describe_alarm(alarm)}" for idx, alarm in enumerate(alarms, start=1)]
            return IntentResult(True, "Alarms:\n" + "\n".join(lines), action)

        if action == "delete":
            removed = manager.delete_alarm(parsed.alarm_id)
            if removed:
                return IntentResult(True, f"Deleted {removed.id} ({describe_alarm(removed)}).", action)
            return IntentResult(True, f"No alarm {parsed.alarm_id}, nothing to delete.", action)

        if action in ("enable", "disable"):
            alarm = manager.set_enabled(parsed.alarm_id, action == "enable")
            return IntentResult(True, f"Alarm {alarm.id} {action}d.", action)

        if action == "dismiss":
            dismissed = manager.dismiss()
            if dismissed:
                return IntentResult(True, f"Dismissed {dismissed.alarm_id}.", action)
            return IntentResult(True, "Nothing is ringing.", action)

        if action == "cancel":
            if manager.cancel(parsed.alarm_id):
                return IntentResult(True, f"Silenced {parsed.alarm_id}.", action)
            return IntentResult(True, f"{parsed.alarm_id} is not ringing.", action)

        if action == "ring":
            if manager.ring_now(parsed.alarm_id):
                return IntentResult(True, f"Ringing {parsed.alarm_id}.", action)
            return IntentResult(True, "Another alarm is already ringing.", action)

        if action == "permissions":
            status = manager.check_permissions()
            return IntentResult(True, status.message, action)

        if action == "grant":
            return IntentResult(True, manager.request_permission(), action)

        if action == "status":
            ringing = manager.ringing
            state = f"ringing {ringing.alarm_id}" if ringing else "idle"
            return IntentResult(True, f"{len(manager.list_alarms())} alarms, {state}.", action)

        if action == "help":
            return IntentResult(True, HELP_TEXT, action)

        if action == "quit":
            return IntentResult(True, "Bye.", action, quit=True)

        return IntentResult(False, f"Unsupported command: {action}", action)


def format_alarm_time(hour: int, minute: int) -> str:
    h = 12 if hour % 12 == 0 else hour % 12
    meridiem = "PM" if hour >= 12 else "AM"
    return f"{h}:{minute:02d} {meridiem}"


def describe_alarm(alarm: Alarm) -> str:
    parts = [format_alarm_time(alarm.hour, alarm.minute)]
    if alarm.label:
        parts.append(f"- {alarm.label}")
    if alarm.is_one_shot:
        parts.append("(once)")
    if not alarm.enabled:
        parts.append("[off]")
    return " ".join(parts)
