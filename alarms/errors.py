from __future__ import annotations


class AlarmError(Exception):
    """Base class for errors returned by the alarm core."""


class InvalidTime(AlarmError, ValueError):
    def __init__(self, hour, minute):
        super().__init__(f"Invalid alarm time {hour!r}:{minute!r} (hour 0-23, minute 0-59)")
        self.hour = hour
        self.minute = minute


class NotFound(AlarmError, KeyError):
    def __init__(self, alarm_id: str):
        super().__init__(alarm_id)
        self.alarm_id = alarm_id

    def __str__(self) -> str:
        return f"Alarm {self.alarm_id} not found"


class AlreadyRinging(AlarmError):
    def __init__(self, alarm_id: str):
        super().__init__(f"Alarm {alarm_id} is already ringing")
        self.alarm_id = alarm_id


class DuplicateAlarm(AlarmError):
    def __init__(self, alarm_id: str):
        super().__init__(f"Alarm id {alarm_id} already exists")
        self.alarm_id = alarm_id
