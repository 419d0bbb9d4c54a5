from datetime import datetime, timezone

from alarms.intent_router import IntentRouter, describe_alarm, format_alarm_time
from alarms.manager import AlarmManager
from alarms.models import Alarm, AlarmKind
from fakes import NoSettingsGateway, RecordingEffects
from time_utils import FixedClock


def _router():
    clock = FixedClock(datetime(2025, 1, 1, 6, 0, tzinfo=timezone.utc))
    manager = AlarmManager(effects=RecordingEffects(), clock=clock)
    return IntentRouter(manager, default_label="Wake up"), manager, clock


def test_add_uses_default_label():
    router, manager, _ = _router()
    result = router.handle_text("add 7:30 am")
    assert result.handled
    alarm = manager.list_alarms()[0]
    assert (alarm.hour, alarm.minute, alarm.label) == (7, 30, "Wake up")
    assert "7:30 AM" in result.response_text


def test_invalid_time_is_reported_not_raised():
    router, manager, _ = _router()
    result = router.handle_text("add 24:00")
    assert not result.handled
    assert "Invalid alarm time" in result.response_text
    assert manager.list_alarms() == []


def test_unknown_id_is_reported():
    router, _, _ = _router()
    result = router.handle_text("disable al_missing")
    assert not result.handled
    assert "not found" in result.response_text


def test_delete_twice_is_fine():
    router, manager, _ = _router()
    router.handle_text("add 8:00 Gym")
    alarm_id = manager.list_alarms()[0].id
    assert router.handle_text(f"delete {alarm_id}").handled
    second = router.handle_text(f"delete {alarm_id}")
    assert second.handled
    assert "nothing to delete" in second.response_text


def test_ring_and_dismiss_flow():
    router, manager, _ = _router()
    router.handle_text("add 19:00 once Pills")
    alarm_id = manager.list_alarms()[0].id
    assert router.handle_text(f"ring {alarm_id}").response_text == f"Ringing {alarm_id}."
    assert "ringing" in router.handle_text("status").response_text
    assert router.handle_text("dismiss").response_text == f"Dismissed {alarm_id}."
    assert router.handle_text("dismiss").response_text == "Nothing is ringing."
    assert manager.list_alarms() == []


def test_list_and_quit():
    router, _, _ = _router()
    assert router.handle_text("list").response_text == "No alarms set."
    router.handle_text("add 6:15 Run")
    assert "6:15 AM - Run" in router.handle_text("list").response_text
    assert router.handle_text("quit").quit


def test_blank_line_is_ignored():
    router, _, _ = _router()
    assert router.handle_text("\n") is None


def test_format_alarm_time():
    assert format_alarm_time(0, 5) == "12:05 AM"
    assert format_alarm_time(12, 0) == "12:00 PM"
    assert format_alarm_time(23, 59) == "11:59 PM"


def test_describe_alarm_flags():
    alarm = Alarm(id="x", hour=7, minute=0, label="", enabled=False, kind=AlarmKind.ONE_SHOT)
    assert describe_alarm(alarm) == "7:00 AM (once) [off]"


def test_grant_failure_is_reported_not_raised():
    clock = FixedClock(datetime(2025, 1, 1, 6, 0, tzinfo=timezone.utc))
    manager = AlarmManager(effects=RecordingEffects(), gateway=NoSettingsGateway(), clock=clock)
    router = IntentRouter(manager)
    result = router.handle_text("grant")
    assert result.handled
    assert "failed" in result.response_text
