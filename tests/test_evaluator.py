from datetime import datetime, timedelta, timezone

from alarms.evaluator import FireKey, TriggerEvaluator, TriggerLedger
from alarms.models import Alarm


def _at(hour, minute, second=0, day=1):
    return datetime(2025, 1, day, hour, minute, second, tzinfo=timezone.utc)


def _alarm(alarm_id, hour=7, minute=30, enabled=True):
    return Alarm(id=alarm_id, hour=hour, minute=minute, label=alarm_id, enabled=enabled)


def test_single_fire_across_a_full_minute_of_ticks():
    evaluator = TriggerEvaluator(TriggerLedger())
    snapshot = [_alarm("a")]
    events = [evaluator.evaluate(_at(7, 30, s), snapshot, ringing=False) for s in range(60)]
    fired = [e for e in events if e]
    assert len(fired) == 1
    assert fired[0].alarm_id == "a"
    assert fired[0].key == FireKey("a", _at(7, 30).date(), 7, 30)


def test_no_match_outside_the_minute():
    evaluator = TriggerEvaluator(TriggerLedger())
    snapshot = [_alarm("a")]
    assert evaluator.evaluate(_at(7, 29, 59), snapshot, ringing=False) is None
    assert evaluator.evaluate(_at(7, 31), snapshot, ringing=False) is None
    assert evaluator.evaluate(_at(19, 30), snapshot, ringing=False) is None


def test_disabled_alarm_never_fires():
    evaluator = TriggerEvaluator(TriggerLedger())
    assert evaluator.evaluate(_at(7, 30), [_alarm("a", enabled=False)], ringing=False) is None
    assert len(evaluator.ledger) == 0


def test_snapshot_order_wins_and_loser_is_recorded_while_ringing():
    ledger = TriggerLedger()
    evaluator = TriggerEvaluator(ledger)
    snapshot = [_alarm("a"), _alarm("b")]

    first = evaluator.evaluate(_at(7, 30, 0), snapshot, ringing=False)
    assert first.alarm_id == "a"
    assert "b" not in ledger

    assert evaluator.evaluate(_at(7, 30, 1), snapshot, ringing=True) is None
    assert ledger.last("b") == FireKey("b", _at(7, 30).date(), 7, 30)

    # b is not offered again once a is dismissed within the same minute
    assert evaluator.evaluate(_at(7, 30, 2), snapshot, ringing=False) is None


def test_next_day_produces_a_new_key():
    evaluator = TriggerEvaluator(TriggerLedger())
    snapshot = [_alarm("a")]
    assert evaluator.evaluate(_at(7, 30, day=1), snapshot, ringing=False)
    assert evaluator.evaluate(_at(7, 30, 30, day=1), snapshot, ringing=False) is None
    assert evaluator.evaluate(_at(7, 30, day=2), snapshot, ringing=False)


def test_forgotten_ledger_entry_allows_refire():
    ledger = TriggerLedger()
    evaluator = TriggerEvaluator(ledger)
    snapshot = [_alarm("a")]
    assert evaluator.evaluate(_at(7, 30), snapshot, ringing=False)
    ledger.forget("a")
    assert evaluator.evaluate(_at(7, 30, 5), snapshot, ringing=False)


def test_coarse_ticks_still_fire_once_per_minute():
    evaluator = TriggerEvaluator(TriggerLedger())
    snapshot = [_alarm("a")]
    start = _at(7, 29, 40)
    ticks = [start + timedelta(seconds=15 * i) for i in range(8)]
    fired = [evaluator.evaluate(t, snapshot, ringing=False) for t in ticks]
    assert sum(1 for e in fired if e) == 1
