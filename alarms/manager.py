from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timedelta
from threading import Event, Lock, Thread
from typing import Callable, Iterable, List, Optional, Sequence

from .effects import AlarmEffects, Signal, dispatch
from .errors import AlarmError, AlreadyRinging
from .evaluator import FireEvent, FireKey, TriggerEvaluator, TriggerLedger
from .gateway import LocalSchedulingGateway, PermissionStatus, ScheduleOutcome, SchedulingGateway
from .models import Alarm, AlarmKind
from .registry import AlarmRegistry
from .ringing import DEFAULT_VIBRATION_PATTERN, RingingState, RingingStateMachine

logger = logging.getLogger(__name__)


class AlarmManager:
    """Owns the registry, ledger and ringing slot behind one lock.

    Commands and ticks are mutually exclusive. Transitions queue their
    side-effect signals on one outbox while still holding the lock, so the
    outbox order is the transition order. The outbox is delivered after the
    lock is released by whichever thread gets the dispatch lock; a thread
    that finds delivery in progress leaves its signals to that thread
    instead of waiting, so a slow collaborator never holds up a command.
    """

    def __init__(
        self,
        effects: Optional[AlarmEffects] = None,
        gateway: Optional[SchedulingGateway] = None,
        clock: Optional[Callable[[], datetime]] = None,
        check_interval: float = 1.0,
        vibration_pattern: Sequence[int] = DEFAULT_VIBRATION_PATTERN,
        test_delay_seconds: int = 10,
        on_alarms_changed: Optional[Callable[[List[Alarm]], None]] = None,
    ):
        self.effects = effects or AlarmEffects()
        self.gateway = gateway or LocalSchedulingGateway()
        self.clock = clock or (lambda: datetime.now().astimezone())
        self.check_interval = max(0.2, check_interval)
        self.test_delay_seconds = max(0, test_delay_seconds)
        self.on_alarms_changed = on_alarms_changed

        self.ledger = TriggerLedger()
        self.registry = AlarmRegistry(self.ledger)
        self.evaluator = TriggerEvaluator(self.ledger)
        self.ringing_machine = RingingStateMachine(self.registry, vibration_pattern)
        self.gateway_status: dict[str, ScheduleOutcome] = {}

        self._lock = Lock()
        self._dispatch_lock = Lock()
        self._outbox: deque = deque()
        self._stop_event = Event()
        self._thread: Optional[Thread] = None

    def start(self) -> None:
        self._stop_event.clear()
        self._thread = Thread(target=self._loop, name="alarm-ticker", daemon=True)
        self._thread.start()
        logger.info("Alarm ticker started (interval=%.1fs)", self.check_interval)

    def shutdown(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
        self._thread = None
        with self._lock:
            state = self.ringing_machine.state
            if state:
                _, signals = self.ringing_machine.cancel(state.alarm_id)
                self._outbox.extend(signals)
        self._deliver()

    # -- commands -----------------------------------------------------------

    def create_alarm(
        self,
        hour: int,
        minute: int,
        label: str = "",
        kind: AlarmKind | str = AlarmKind.RECURRING,
        alarm_id: Optional[str] = None,
    ) -> Alarm:
        now = self.clock()
        with self._lock:
            new_id = self.registry.create(hour, minute, label=label, kind=kind, alarm_id=alarm_id, now=now)
            alarm = self.registry.get(new_id)
            snapshot = self.registry.snapshot()
        self._request_schedule(alarm, now)
        self._notify_changed(snapshot)
        return alarm

    def restore_alarms(self, alarms: Iterable[Alarm]) -> int:
        """Load alarms kept by an outside store; bad or duplicate items are skipped."""
        now = self.clock()
        restored: List[Alarm] = []
        with self._lock:
            for alarm in alarms:
                try:
                    restored.append(self.registry.restore(alarm))
                except AlarmError as exc:
                    logger.warning("Skipping restored alarm %s: %s", alarm.id, exc)
        for alarm in restored:
            if alarm.enabled:
                self._request_schedule(alarm, now)
        logger.info("Restored %s alarms", len(restored))
        return len(restored)

    def delete_alarm(self, alarm_id: str) -> Optional[Alarm]:
        with self._lock:
            removed = self.registry.delete(alarm_id)
            snapshot = self.registry.snapshot()
        self._request_cancel(alarm_id)
        if removed:
            self._notify_changed(snapshot)
        return removed

    def set_enabled(self, alarm_id: str, enabled: bool) -> Alarm:
        with self._lock:
            alarm = self.registry.set_enabled(alarm_id, enabled)
            snapshot = self.registry.snapshot()
        if alarm.enabled:
            self._request_schedule(alarm, self.clock())
        else:
            self._request_cancel(alarm_id)
        self._notify_changed(snapshot)
        return alarm

    def dismiss(self) -> Optional[RingingState]:
        with self._lock:
            dismissed, signals = self.ringing_machine.dismiss()
            self._outbox.extend(signals)
            snapshot = self.registry.snapshot()
        self._deliver()
        if dismissed and dismissed.kind is AlarmKind.ONE_SHOT:
            self._request_cancel(dismissed.alarm_id)
            self._notify_changed(snapshot)
        return dismissed

    def cancel(self, alarm_id: str) -> bool:
        with self._lock:
            cancelled, signals = self.ringing_machine.cancel(alarm_id)
            self._outbox.extend(signals)
        self._deliver()
        return cancelled is not None

    def ring_now(self, alarm_id: str, strict: bool = False) -> bool:
        """Start ringing ``alarm_id`` immediately, bypassing the clock.

        While another alarm rings the request is dropped and ``False`` is
        returned; with ``strict=True`` :class:`AlreadyRinging` is raised instead.
        """
        now = self.clock()
        with self._lock:
            alarm = self.registry.get(alarm_id)
            current = self.ringing_machine.state
            if current is not None:
                if strict:
                    raise AlreadyRinging(current.alarm_id)
                logger.info("ring_now(%s) ignored: %s is ringing", alarm_id, current.alarm_id)
                return False
            key = None
            if (alarm.hour, alarm.minute) == (now.hour, now.minute):
                # keeps the next tick in this minute from firing it a second time
                key = FireKey.for_tick(alarm.id, now)
                self.ledger.record(key)
            event = FireEvent(alarm_id=alarm.id, fired_at=now, key=key)
            self._outbox.extend(self._fire(event, alarm))
            snapshot = self.registry.snapshot()
        self._deliver()
        if alarm.is_one_shot:
            self._notify_changed(snapshot)
        return True

    def schedule_test_alarm(self, delay_seconds: Optional[int] = None, label: str = "Test alarm") -> Alarm:
        delay = self.test_delay_seconds if delay_seconds is None else max(0, delay_seconds)
        target = self.clock() + timedelta(seconds=delay)
        alarm = self.create_alarm(target.hour, target.minute, label=label, kind=AlarmKind.ONE_SHOT)
        logger.info("Test alarm %s set for %s (delay=%ss)", alarm.id, alarm.hhmm, delay)
        return alarm

    def check_permissions(self) -> PermissionStatus:
        try:
            status = self.gateway.can_schedule_exact()
        except Exception as exc:
            logger.error("Exact alarm permission check failed: %s", exc)
            return PermissionStatus(False, f"Permission check failed: {exc}")
        if not status.can_schedule:
            logger.warning("Cannot schedule exact alarms: %s", status.message)
        return status

    def request_permission(self) -> str:
        try:
            message = self.gateway.request_permission()
            granted = self.gateway.can_schedule_exact().can_schedule
        except Exception as exc:
            logger.error("Exact alarm permission request failed", exc_info=True)
            return f"Permission request failed: {exc}"
        if granted:
            now = self.clock()
            for alarm in self.list_alarms():
                if alarm.enabled:
                    self._request_schedule(alarm, now)
        return message

    # -- queries ------------------------------------------------------------

    def list_alarms(self) -> List[Alarm]:
        with self._lock:
            return self.registry.snapshot()

    def get_alarm(self, alarm_id: str) -> Alarm:
        with self._lock:
            return self.registry.get(alarm_id)

    @property
    def ringing(self) -> Optional[RingingState]:
        with self._lock:
            return self.ringing_machine.state

    @property
    def is_ringing(self) -> bool:
        with self._lock:
            return self.ringing_machine.is_ringing

    # -- ticking ------------------------------------------------------------

    def tick(self, now: Optional[datetime] = None) -> Optional[FireEvent]:
        try:
            now = now or self.clock()
            with self._lock:
                event = self.evaluator.evaluate(
                    now,
                    self.registry.snapshot(),
                    ringing=self.ringing_machine.is_ringing,
                )
                if event is None:
                    return None
                alarm = self.registry.get(event.alarm_id)
                self._outbox.extend(self._fire(event, alarm))
                snapshot = self.registry.snapshot()
            self._deliver()
            if alarm.is_one_shot:
                self._notify_changed(snapshot)
            else:
                self._request_schedule(alarm, now + timedelta(minutes=1))
            return event
        except Exception:
            logger.error("Alarm tick failed", exc_info=True)
            return None

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            self.tick()
            self._stop_event.wait(self.check_interval)

    def _fire(self, event: FireEvent, alarm: Alarm) -> List[Signal]:
        signals = self.ringing_machine.fire(event, alarm)
        if signals:
            self.registry.disable_after_fire(alarm.id)
        return signals

    def _deliver(self) -> None:
        while self._outbox:
            if not self._dispatch_lock.acquire(blocking=False):
                return
            try:
                while self._outbox:
                    dispatch(self.effects, [self._outbox.popleft()])
            finally:
                self._dispatch_lock.release()

    # -- collaborators ------------------------------------------------------

    def _request_schedule(self, alarm: Alarm, now: datetime) -> None:
        try:
            outcome = self.gateway.request_schedule(alarm.id, alarm.hour, alarm.minute, now)
        except Exception as exc:
            logger.error("Gateway schedule for %s failed: %s", alarm.id, exc)
            outcome = ScheduleOutcome.REJECTED
        self.gateway_status[alarm.id] = outcome
        if outcome is not ScheduleOutcome.ACCEPTED:
            logger.warning("Exact alarm for %s not armed (%s); relying on in-process ticks", alarm.id, outcome.value)
        self._outbox.append(Signal("on_gateway_status", (alarm.id, outcome)))
        self._deliver()

    def _request_cancel(self, alarm_id: str) -> None:
        self.gateway_status.pop(alarm_id, None)
        try:
            self.gateway.request_cancel(alarm_id)
        except Exception as exc:
            logger.error("Gateway cancel for %s failed: %s", alarm_id, exc)

    def _notify_changed(self, snapshot: List[Alarm]) -> None:
        if not self.on_alarms_changed:
            return
        try:
            self.on_alarms_changed(snapshot)
        except Exception:  # pragma: no cover - callback safety
            logger.error("on_alarms_changed callback failed", exc_info=True)
