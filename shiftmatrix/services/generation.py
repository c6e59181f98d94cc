"""Expansion of a cyclic shift pattern into a monthly matrix.

A pattern is a finite token sequence anchored on a reference date (cycle
position 0). Any calendar day maps to a position by modular arithmetic over
the whole-day offset from that anchor, so the same (pattern, reference date)
always yields the same calendar no matter which month is asked for first.
Nothing here touches the database.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from shiftmatrix.models import MATRIX_SLOT_COUNT
from shiftmatrix.services.periods import Period


def cycle_position(day_date: date, reference_date: date, cycle_length: int) -> int:
    if cycle_length < 1:
        raise ValueError("cycle_length must be >= 1")
    offset_days = (day_date - reference_date).days
    # Python's % is floored, so days before the reference date still land in 0..cycle_length-1.
    return offset_days % cycle_length


def token_for_day(sequence: Sequence[str], reference_date: date, day_date: date) -> str:
    return sequence[cycle_position(day_date, reference_date, len(sequence))]


def generate_month_slots(
    sequence: Sequence[str],
    reference_date: date,
    year: int,
    month: int,
) -> list[str | None]:
    """Return the 31-slot matrix for ``year``/``month``; slots past month end stay ``None``."""
    period = Period(year=year, month=month)
    slots: list[str | None] = [None] * MATRIX_SLOT_COUNT
    for day_date in period.days():
        slots[day_date.day - 1] = token_for_day(sequence, reference_date, day_date)
    return slots
