from datetime import datetime, timezone

from alarms.gateway import LocalSchedulingGateway, ScheduleOutcome, next_occurrence

NOW = datetime(2025, 3, 10, 8, 0, 30, tzinfo=timezone.utc)


def test_next_occurrence_later_today():
    assert next_occurrence(9, 15, NOW) == datetime(2025, 3, 10, 9, 15, tzinfo=timezone.utc)


def test_next_occurrence_rolls_to_tomorrow():
    assert next_occurrence(7, 0, NOW) == datetime(2025, 3, 11, 7, 0, tzinfo=timezone.utc)
    # the current minute has already started, so it is tomorrow as well
    assert next_occurrence(8, 0, NOW) == datetime(2025, 3, 11, 8, 0, tzinfo=timezone.utc)


def test_schedule_is_idempotent_per_alarm():
    gateway = LocalSchedulingGateway()
    assert gateway.request_schedule("a", 9, 0, NOW) is ScheduleOutcome.ACCEPTED
    assert gateway.request_schedule("a", 10, 0, NOW) is ScheduleOutcome.ACCEPTED
    assert list(gateway.pending) == ["a"]
    assert gateway.pending["a"].hour == 10


def test_cancel_unknown_is_fine():
    gateway = LocalSchedulingGateway()
    gateway.request_cancel("nope")
    gateway.request_schedule("a", 9, 0, NOW)
    gateway.request_cancel("a")
    gateway.request_cancel("a")
    assert gateway.pending == {}


def test_needs_permission_until_granted():
    gateway = LocalSchedulingGateway(exact_permission=False)
    assert not gateway.can_schedule_exact().can_schedule
    assert gateway.request_schedule("a", 9, 0, NOW) is ScheduleOutcome.NEEDS_PERMISSION
    assert gateway.pending == {}
    gateway.request_permission()
    assert gateway.can_schedule_exact().can_schedule
    assert gateway.request_schedule("a", 9, 0, NOW) is ScheduleOutcome.ACCEPTED


def test_next_pending_is_earliest():
    gateway = LocalSchedulingGateway()
    gateway.request_schedule("late", 22, 0, NOW)
    gateway.request_schedule("soon", 9, 0, NOW)
    alarm_id, when = gateway.next_pending()
    assert alarm_id == "soon"
    assert when.hour == 9
