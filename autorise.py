import logging
import signal
import sys
from typing import Optional, Sequence

from alarms.effects import AlarmEffects
from alarms.gateway import LocalSchedulingGateway, ScheduleOutcome
from alarms.intent_router import IntentRouter
from alarms.manager import AlarmManager
from alarms.models import Alarm
from alarms.sounds import AlarmSoundPlayer, LocalSpeaker
from alarms.storage import load_alarms, save_alarms
from config import Config, load_config, setup_logging
from time_utils import SystemClock, format_tz_offset, resolve_timezone

logger = logging.getLogger("autorise")


def graceful_exit(signum, frame) -> None:  # pragma: no cover - signal handler
    logger.info("Shutting down (signal %s)", signum)
    raise KeyboardInterrupt()


class ConsoleEffects(AlarmEffects):
    """Outlet for the console runtime: looping beep, spoken label, log lines."""

    def __init__(self, sound_player: AlarmSoundPlayer, speaker: Optional[LocalSpeaker] = None):
        self.sound_player = sound_player
        self.speaker = speaker
        self.awake = False

    def on_fire(self, alarm: Alarm) -> None:
        message = f"Alarm! {alarm.hhmm} {alarm.label}".strip()
        print(message, flush=True)
        if self.speaker and self.speaker.available:
            self.speaker.speak_async(message)

    def on_dismiss(self, alarm_id: Optional[str]) -> None:
        logger.info("Alarm %s stopped", alarm_id)

    def start_audio(self) -> None:
        self.sound_player.start_loop()

    def stop_audio(self) -> None:
        self.sound_player.stop_loop()

    def start_vibration(self, pattern: Sequence[int]) -> None:
        logger.info("Vibration pattern %s (no vibrator on this device)", list(pattern))

    def stop_vibration(self) -> None:
        logger.debug("Vibration stopped")

    def keep_awake(self, enabled: bool) -> None:
        self.awake = enabled
        logger.debug("Keep awake -> %s", enabled)

    def on_gateway_status(self, alarm_id: str, outcome: ScheduleOutcome) -> None:
        if outcome is ScheduleOutcome.NEEDS_PERMISSION:
            print(
                f"Exact alarms are not permitted; {alarm_id} relies on this process staying awake. "
                "Run 'permissions' to request access.",
                flush=True,
            )


class AlarmRuntime:
    """Wires the alarm core to the console: sound, speech, snapshot file, stdin."""

    def __init__(self, config: Config):
        self.config = config
        self.tzinfo = resolve_timezone(config.timezone_name)
        self.clock = SystemClock(self.tzinfo)

        self.sound_player = AlarmSoundPlayer(config.alarm_sound_path, beep_interval=config.alarm_beep_interval_s)
        self.speaker = LocalSpeaker(rate=config.speech_rate, enabled=config.enable_speech)
        self.effects = ConsoleEffects(self.sound_player, self.speaker)
        self.gateway = LocalSchedulingGateway(exact_permission=config.exact_alarm_permission)
        self.alarm_manager = AlarmManager(
            effects=self.effects,
            gateway=self.gateway,
            clock=self.clock,
            check_interval=config.alarm_tick_interval_ms / 1000.0,
            vibration_pattern=config.vibration_pattern_ms,
            test_delay_seconds=config.alarm_test_delay_seconds,
            on_alarms_changed=self._save_snapshot,
        )
        self.router = IntentRouter(self.alarm_manager, default_label=config.alarm_default_label)

    def start(self) -> None:
        restored = self.alarm_manager.restore_alarms(load_alarms(self.config.alarms_path))
        logger.info("Loaded %s alarms from %s", restored, self.config.alarms_path)
        status = self.alarm_manager.check_permissions()
        logger.info("Exact alarms: %s", status.message)
        self.alarm_manager.start()

    def shutdown(self) -> None:
        self.alarm_manager.shutdown()
        self.sound_player.stop_loop()

    def run_console(self, stream=sys.stdin) -> None:
        print("AutoRise ready. Type 'help' for commands.", flush=True)
        for line in stream:
            result = self.router.handle_text(line)
            if result is None:
                continue
            if result.response_text:
                print(result.response_text, flush=True)
            if result.quit:
                break

    def _save_snapshot(self, alarms) -> None:
        try:
            save_alarms(self.config.alarms_path, alarms)
        except OSError as exc:
            logger.error("Failed to save alarms to %s: %s", self.config.alarms_path, exc)


def main() -> None:
    config = load_config()
    setup_logging(config.log_level)
    signal.signal(signal.SIGINT, graceful_exit)
    runtime = AlarmRuntime(config)
    logger.info(
        "Starting AutoRise (tz=%s %s, tick=%sms)",
        getattr(runtime.tzinfo, "key", runtime.tzinfo),
        format_tz_offset(runtime.tzinfo),
        config.alarm_tick_interval_ms,
    )
    runtime.start()
    try:
        runtime.run_console()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        runtime.shutdown()


if __name__ == "__main__":
    main()
