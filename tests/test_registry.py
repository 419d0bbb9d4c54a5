from datetime import date

import pytest

from alarms.errors import DuplicateAlarm, InvalidTime, NotFound
from alarms.evaluator import FireKey, TriggerLedger
from alarms.models import Alarm, AlarmKind
from alarms.registry import AlarmRegistry


def test_every_valid_time_is_stored_once():
    registry = AlarmRegistry()
    ids = [registry.create(hour, minute) for hour in range(24) for minute in range(60)]
    snapshot = registry.snapshot()
    assert len(snapshot) == 24 * 60
    assert [a.id for a in snapshot] == ids
    assert len(set(ids)) == len(ids)


@pytest.mark.parametrize("hour, minute", [(24, 0), (-1, 0), (0, 60), (0, -1), (99, 99), ("7", 30), (7.5, 0), (True, 0)])
def test_invalid_time_is_rejected_and_not_stored(hour, minute):
    registry = AlarmRegistry()
    registry.create(6, 0)
    before = registry.snapshot()
    with pytest.raises(InvalidTime):
        registry.create(hour, minute)
    assert registry.snapshot() == before


def test_new_alarm_defaults():
    registry = AlarmRegistry()
    alarm = registry.get(registry.create(7, 30, label="Wake up"))
    assert alarm.enabled
    assert alarm.kind is AlarmKind.RECURRING
    assert alarm.id.startswith("al_")


def test_kind_accepts_string_value():
    registry = AlarmRegistry()
    alarm = registry.get(registry.create(7, 30, kind="one-shot"))
    assert alarm.is_one_shot


def test_caller_assigned_id_must_be_unique():
    registry = AlarmRegistry()
    assert registry.create(7, 0, alarm_id="morning") == "morning"
    with pytest.raises(DuplicateAlarm):
        registry.create(8, 0, alarm_id="morning")


def test_delete_is_idempotent_and_drops_ledger_entry():
    ledger = TriggerLedger()
    registry = AlarmRegistry(ledger)
    alarm_id = registry.create(7, 30)
    ledger.record(FireKey(alarm_id, date(2025, 1, 1), 7, 30))
    assert registry.delete(alarm_id).id == alarm_id
    assert alarm_id not in ledger
    assert registry.delete(alarm_id) is None
    assert registry.delete("never-existed") is None
    assert len(registry) == 0


def test_set_enabled_unknown_id():
    registry = AlarmRegistry()
    with pytest.raises(NotFound):
        registry.set_enabled("missing", False)


def test_set_enabled_keeps_order():
    registry = AlarmRegistry()
    first = registry.create(6, 0)
    second = registry.create(7, 0)
    registry.set_enabled(first, False)
    snapshot = registry.snapshot()
    assert [a.id for a in snapshot] == [first, second]
    assert snapshot[0].enabled is False


def test_snapshot_is_a_copy():
    registry = AlarmRegistry()
    registry.create(6, 0)
    snapshot = registry.snapshot()
    snapshot.clear()
    assert len(registry.snapshot()) == 1


def test_disable_after_fire_only_touches_one_shot():
    registry = AlarmRegistry()
    daily = registry.create(6, 0)
    once = registry.create(6, 0, kind=AlarmKind.ONE_SHOT)
    registry.disable_after_fire(daily)
    registry.disable_after_fire(once)
    assert registry.get(daily).enabled
    assert not registry.get(once).enabled


def test_restore_validates():
    registry = AlarmRegistry()
    registry.restore(Alarm(id="a", hour=5, minute=5))
    with pytest.raises(InvalidTime):
        registry.restore(Alarm(id="b", hour=30, minute=0))
    with pytest.raises(DuplicateAlarm):
        registry.restore(Alarm(id="a", hour=6, minute=0))
    assert [a.id for a in registry.snapshot()] == ["a"]
