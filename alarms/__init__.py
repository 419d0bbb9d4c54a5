"""Alarm core: registry, trigger evaluation and the ringing state machine."""

from .errors import AlarmError, AlreadyRinging, DuplicateAlarm, InvalidTime, NotFound
from .manager import AlarmManager
from .models import Alarm, AlarmKind
from .parser import AlarmCommand, parse_command
from .ringing import RingingState
