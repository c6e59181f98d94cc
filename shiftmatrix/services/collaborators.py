"""Contracts for the roster and attendance stores that matrix sync writes through.

Sync only needs two narrow capabilities from the outside world: who is in a
group right now, and a way to (re)write an employee-day's planned schedule.
The SQL implementations below open their own short-lived sessions so every
employee-day write is its own transaction.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, time
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from shiftmatrix.models import Employee, EmployeeScheduleDay


@dataclass(frozen=True, slots=True)
class StandardSchedule:
    day_date: date
    period: str
    group_shift_id: int
    shift_code: str
    is_working_day: bool
    clock_in: time | None
    clock_out: time | None


@dataclass(frozen=True, slots=True)
class ActualAttendance:
    clock_in: time | None
    clock_out: time | None
    status: str | None


class EmployeeRoster(Protocol):
    def active_members_of(self, group_id: int) -> list[int]: ...


class AttendanceStore(Protocol):
    def upsert_standard_schedule(self, employee_id: int, schedule: StandardSchedule) -> bool:
        """Write the planned fields for one employee-day; return False when nothing changed."""
        ...

    def get_actual(self, employee_id: int, day_date: date) -> ActualAttendance | None: ...


SessionFactory = Callable[[], Session]


class SqlEmployeeRoster:
    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    def active_members_of(self, group_id: int) -> list[int]:
        with self._session_factory() as session:
            return list(
                session.scalars(
                    select(Employee.id)
                    .where(
                        Employee.group_shift_id == group_id,
                        Employee.is_active.is_(True),
                    )
                    .order_by(Employee.id.asc())
                ).all()
            )


def _standard_fields_match(row: EmployeeScheduleDay, schedule: StandardSchedule) -> bool:
    return (
        row.period == schedule.period
        and row.group_shift_id == schedule.group_shift_id
        and row.shift_code == schedule.shift_code
        and row.is_working_day == schedule.is_working_day
        and row.standard_in == schedule.clock_in
        and row.standard_out == schedule.clock_out
    )


class SqlAttendanceStore:
    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    def upsert_standard_schedule(self, employee_id: int, schedule: StandardSchedule) -> bool:
        with self._session_factory() as session, session.begin():
            row = session.scalar(
                select(EmployeeScheduleDay)
                .where(
                    EmployeeScheduleDay.employee_id == employee_id,
                    EmployeeScheduleDay.day_date == schedule.day_date,
                )
                .with_for_update()
            )
            if row is None:
                session.add(
                    EmployeeScheduleDay(
                        employee_id=employee_id,
                        day_date=schedule.day_date,
                        period=schedule.period,
                        group_shift_id=schedule.group_shift_id,
                        shift_code=schedule.shift_code,
                        is_working_day=schedule.is_working_day,
                        standard_in=schedule.clock_in,
                        standard_out=schedule.clock_out,
                    )
                )
                return True
            if _standard_fields_match(row, schedule):
                return False

            # actual_in / actual_out / status_code belong to attendance ingestion.
            row.period = schedule.period
            row.group_shift_id = schedule.group_shift_id
            row.shift_code = schedule.shift_code
            row.is_working_day = schedule.is_working_day
            row.standard_in = schedule.clock_in
            row.standard_out = schedule.clock_out
            return True

    def get_actual(self, employee_id: int, day_date: date) -> ActualAttendance | None:
        with self._session_factory() as session:
            row = session.scalar(
                select(EmployeeScheduleDay).where(
                    EmployeeScheduleDay.employee_id == employee_id,
                    EmployeeScheduleDay.day_date == day_date,
                )
            )
            if row is None:
                return None
            return ActualAttendance(clock_in=row.actual_in, clock_out=row.actual_out, status=row.status_code)
