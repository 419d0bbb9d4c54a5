import logging
import logging.handlers
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv


def _get_env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return val.strip() in {"1", "true", "True", "yes", "YES", "y"}


def _get_env_int(name: str, default: int) -> int:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


def _get_env_float(name: str, default: float) -> float:
    val = os.getenv(name)
    if val is None or val == "":
        return default
    try:
        return float(val)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a float") from exc


def _get_env_int_list(name: str, default: Tuple[int, ...]) -> Tuple[int, ...]:
    val = os.getenv(name)
    if val is None or val.strip() == "":
        return default
    try:
        return tuple(int(part) for part in val.split(",") if part.strip())
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a comma-separated list of integers") from exc


@dataclass
class Config:
    debug: bool
    log_level: str
    timezone_name: Optional[str]
    alarms_path: Path
    alarm_sound_path: Path
    alarm_tick_interval_ms: int
    alarm_beep_interval_s: float
    alarm_default_label: str
    alarm_test_delay_seconds: int
    vibration_pattern_ms: Tuple[int, ...]
    exact_alarm_permission: bool
    enable_speech: bool
    speech_rate: int


DEFAULT_VIBRATION_PATTERN_MS = (0, 1000, 500, 1000, 500, 1000)


def load_config(env_path: Optional[Path] = None) -> Config:
    if env_path is None:
        env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    debug = _get_env_bool("DEBUG", False)
    log_level = os.getenv("LOG_LEVEL", "DEBUG" if debug else "INFO").upper()
    timezone_name = os.getenv("ALARM_TIMEZONE") or None
    alarms_path = Path(os.getenv("ALARM_STORAGE_PATH", "data/alarms.json"))
    alarm_sound_path = Path(os.getenv("ALARM_SOUND_PATH", "data/alarm.wav"))
    alarm_tick_interval_ms = _get_env_int("ALARM_TICK_INTERVAL_MS", 1000)
    alarm_beep_interval_s = _get_env_float("ALARM_BEEP_INTERVAL_S", 0.75)
    alarm_default_label = os.getenv("ALARM_DEFAULT_LABEL", "Wake up")
    alarm_test_delay_seconds = _get_env_int("ALARM_TEST_DELAY_SECONDS", 10)
    vibration_pattern_ms = _get_env_int_list("ALARM_VIBRATION_PATTERN_MS", DEFAULT_VIBRATION_PATTERN_MS)
    exact_alarm_permission = _get_env_bool("ALARM_EXACT_PERMISSION", True)
    enable_speech = _get_env_bool("ENABLE_SPEECH", True)
    speech_rate = _get_env_int("SPEECH_RATE", 185)

    if alarm_tick_interval_ms > 60_000:
        raise ValueError("ALARM_TICK_INTERVAL_MS must not exceed 60000, alarms would be skipped")
    if alarm_sound_path.suffix.lower() != ".wav":
        logging.warning("ALARM_SOUND_PATH is not a .wav file: %s", alarm_sound_path)

    return Config(
        debug=debug,
        log_level=log_level,
        timezone_name=timezone_name,
        alarms_path=alarms_path,
        alarm_sound_path=alarm_sound_path,
        alarm_tick_interval_ms=alarm_tick_interval_ms,
        alarm_beep_interval_s=alarm_beep_interval_s,
        alarm_default_label=alarm_default_label,
        alarm_test_delay_seconds=alarm_test_delay_seconds,
        vibration_pattern_ms=vibration_pattern_ms,
        exact_alarm_permission=exact_alarm_permission,
        enable_speech=enable_speech,
        speech_rate=speech_rate,
    )


def setup_logging(log_level: str = "INFO", logs_dir: Path = Path("logs")) -> None:
    logs_dir.mkdir(exist_ok=True)

    log_path = logs_dir / "autorise.log"
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=[file_handler, console_handler],
    )
