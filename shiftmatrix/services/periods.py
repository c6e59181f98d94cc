from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date

from shiftmatrix.errors import ValidationError

_PERIOD_RE = re.compile(r"^(\d{4})-?(\d{2})$")


@dataclass(frozen=True, slots=True)
class Period:
    year: int
    month: int

    @property
    def key(self) -> str:
        return f"{self.year:04d}{self.month:02d}"

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, self.days_in_month)

    def day(self, day_of_month: int) -> date:
        return date(self.year, self.month, day_of_month)

    def days(self) -> list[date]:
        return [self.day(day_number) for day_number in range(1, self.days_in_month + 1)]


def parse_period(raw: str) -> Period:
    """Accept ``YYYYMM`` or ``YYYY-MM``."""
    match = _PERIOD_RE.match((raw or "").strip())
    if match is None:
        raise ValidationError(f"Invalid period '{raw}'. Use YYYYMM or YYYY-MM.")
    year = int(match.group(1))
    month = int(match.group(2))
    if year < 1970 or month < 1 or month > 12:
        raise ValidationError(f"Invalid period '{raw}'. Use YYYYMM or YYYY-MM.")
    return Period(year=year, month=month)


def period_of(day_date: date) -> Period:
    return Period(year=day_date.year, month=day_date.month)
