from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import time

ClockValue = str | time | None

# Placeholders attendance exports use for "no punch".
_MISSING_CLOCK_VALUES = frozenset({"", "--:--", "-", "--"})


class AttendanceStatus(str, enum.Enum):
    PRESENT = "H"
    ABSENT = "A"
    LEAVE = "C"
    PERMIT = "I"
    SICK = "S"
    OFFICIAL_DUTY = "P"


@dataclass(frozen=True, slots=True)
class DerivedAttendance:
    late_minutes: int
    early_minutes: int
    status: str | None


def parse_hhmm_minutes(value: ClockValue) -> int | None:
    """Minutes since midnight, or ``None`` for anything that is not a usable ``HH:MM``."""
    if value is None:
        return None
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    if not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    if len(parts) != 2:
        return None
    hour_str, minute_str = parts
    if not (hour_str.isascii() and hour_str.isdigit() and minute_str.isascii() and minute_str.isdigit()):
        return None
    return int(hour_str) * 60 + int(minute_str)


def has_clock_value(value: ClockValue) -> bool:
    if value is None:
        return False
    if isinstance(value, time):
        return True
    return isinstance(value, str) and value.strip() not in _MISSING_CLOCK_VALUES


def lateness(standard_in: ClockValue, actual_in: ClockValue) -> int:
    standard_minutes = parse_hhmm_minutes(standard_in)
    actual_minutes = parse_hhmm_minutes(actual_in)
    if standard_minutes is None or actual_minutes is None:
        return 0
    return max(0, actual_minutes - standard_minutes)


def earliness(standard_out: ClockValue, actual_out: ClockValue) -> int:
    standard_minutes = parse_hhmm_minutes(standard_out)
    actual_minutes = parse_hhmm_minutes(actual_out)
    if standard_minutes is None or actual_minutes is None:
        return 0
    return max(0, standard_minutes - actual_minutes)


def sanitize_status(status: str | None, actual_in: ClockValue, actual_out: ClockValue) -> str | None:
    """Demote "present" to "absent" when neither punch exists.

    A single punch (clock-in without clock-out or the reverse) stays "present";
    there is no partial status.
    """
    if status is None:
        return None
    normalized = status.strip().upper()
    if normalized != AttendanceStatus.PRESENT.value:
        return status
    if not has_clock_value(actual_in) and not has_clock_value(actual_out):
        return AttendanceStatus.ABSENT.value
    return status


def derive_day(
    *,
    standard_in: ClockValue,
    standard_out: ClockValue,
    actual_in: ClockValue,
    actual_out: ClockValue,
    status: str | None,
) -> DerivedAttendance:
    return DerivedAttendance(
        late_minutes=lateness(standard_in, actual_in),
        early_minutes=earliness(standard_out, actual_out),
        status=sanitize_status(status, actual_in, actual_out),
    )
