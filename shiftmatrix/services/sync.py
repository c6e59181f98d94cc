"""Propagation of a group's monthly matrix onto its members' planned schedules.

Only the standard (planned) side of each employee-day is written; recorded
punches and statuses are left as they are. Work fans out per employee over a
bounded pool; one employee failing or timing out is reported and does not
stop the others.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from shiftmatrix.errors import ApiError, PartialBatchFailure, ValidationError
from shiftmatrix.models import OFF_CODE, ShiftType
from shiftmatrix.services.collaborators import AttendanceStore, EmployeeRoster, StandardSchedule
from shiftmatrix.services.matrices import get_matrix
from shiftmatrix.services.periods import Period, parse_period
from shiftmatrix.services.shift_types import load_shift_types_by_code

logger = logging.getLogger("shiftmatrix.sync")


class SyncCancelled(Exception):
    pass


@dataclass(frozen=True, slots=True)
class SyncPlan:
    group_shift_id: int
    period: str
    matrix_version: int
    days: tuple[StandardSchedule, ...]


@dataclass(frozen=True, slots=True)
class EmployeeSyncError:
    employee_id: int
    code: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"employee_id": self.employee_id, "code": self.code, "message": self.message}


@dataclass(slots=True)
class EmployeeSyncOutcome:
    employee_id: int
    updated: int = 0
    skipped: int = 0
    changed_with_actuals: int = 0
    error: EmployeeSyncError | None = None


@dataclass(slots=True)
class SyncReport:
    group_shift_id: int
    period: str
    employees_total: int = 0
    updated: int = 0
    skipped: int = 0
    changed_with_actuals: int = 0
    errors: list[EmployeeSyncError] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def partial_failure(self) -> bool:
        return bool(self.errors)

    def add(self, outcome: EmployeeSyncOutcome) -> None:
        self.updated += outcome.updated
        self.skipped += outcome.skipped
        self.changed_with_actuals += outcome.changed_with_actuals
        if outcome.error is not None:
            self.errors.append(outcome.error)

    def raise_for_errors(self) -> None:
        if self.errors:
            raise PartialBatchFailure(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "group_shift_id": self.group_shift_id,
            "period": self.period,
            "employees_total": self.employees_total,
            "updated": self.updated,
            "skipped": self.skipped,
            "changed_with_actuals": self.changed_with_actuals,
            "partial_failure": self.partial_failure,
            "errors": [item.to_dict() for item in self.errors],
            "duration_ms": self.duration_ms,
        }


def build_sync_plan(
    *,
    group_shift_id: int,
    period: Period,
    slots: list[str | None],
    shift_types: dict[str, ShiftType],
    matrix_version: int = 0,
) -> SyncPlan:
    days: list[StandardSchedule] = []
    for day_date in period.days():
        slot = slots[day_date.day - 1] if day_date.day <= len(slots) else None
        if slot is None:
            # Unassigned day: nothing to stamp, existing schedule stays.
            continue
        if slot == OFF_CODE:
            days.append(
                StandardSchedule(
                    day_date=day_date,
                    period=period.key,
                    group_shift_id=group_shift_id,
                    shift_code=OFF_CODE,
                    is_working_day=False,
                    clock_in=None,
                    clock_out=None,
                )
            )
            continue
        shift_type = shift_types.get(slot)
        if shift_type is None:
            raise ValidationError(f"Matrix day {day_date.day} references unknown shift code '{slot}'")
        days.append(
            StandardSchedule(
                day_date=day_date,
                period=period.key,
                group_shift_id=group_shift_id,
                shift_code=shift_type.code,
                is_working_day=True,
                clock_in=shift_type.start_time_local,
                clock_out=shift_type.end_time_local,
            )
        )
    return SyncPlan(
        group_shift_id=group_shift_id,
        period=period.key,
        matrix_version=matrix_version,
        days=tuple(days),
    )


def prepare_sync_plan(db: Session, *, group_id: int, period_key: str) -> SyncPlan:
    period = parse_period(period_key)
    matrix = get_matrix(db, group_id=group_id, period_key=period.key)
    slots = list(matrix.slots or [])
    # Inactive types still carry valid times; only missing codes are an error.
    shift_types = load_shift_types_by_code(db, [slot for slot in slots if slot])
    return build_sync_plan(
        group_shift_id=group_id,
        period=period,
        slots=slots,
        shift_types=shift_types,
        matrix_version=matrix.version,
    )


def _write_employee_month(
    store: AttendanceStore,
    employee_id: int,
    days: tuple[StandardSchedule, ...],
    cancel_event: threading.Event,
) -> EmployeeSyncOutcome:
    outcome = EmployeeSyncOutcome(employee_id=employee_id)
    for schedule in days:
        if cancel_event.is_set():
            raise SyncCancelled(f"cancelled before {schedule.day_date.isoformat()}")
        if store.upsert_standard_schedule(employee_id, schedule):
            outcome.updated += 1
            actual = store.get_actual(employee_id, schedule.day_date)
            if actual is not None and (actual.clock_in is not None or actual.clock_out is not None):
                outcome.changed_with_actuals += 1
        else:
            outcome.skipped += 1
    return outcome


async def _sync_one_employee(
    *,
    plan: SyncPlan,
    employee_id: int,
    store: AttendanceStore,
    semaphore: asyncio.Semaphore,
    timeout_seconds: float,
) -> EmployeeSyncOutcome:
    async with semaphore:
        cancel_event = threading.Event()
        worker = asyncio.ensure_future(
            asyncio.to_thread(_write_employee_month, store, employee_id, plan.days, cancel_event)
        )
        try:
            return await asyncio.wait_for(asyncio.shield(worker), timeout=timeout_seconds)
        except asyncio.TimeoutError:
            # The worker thread cannot be killed; it stops before its next day write.
            # The slot stays held until it has, so max_workers bounds live writers.
            cancel_event.set()
            await asyncio.gather(worker, return_exceptions=True)
            logger.warning(
                "sync_employee_timeout",
                extra={
                    "group_shift_id": plan.group_shift_id,
                    "period": plan.period,
                    "employee_id": employee_id,
                    "timeout_seconds": timeout_seconds,
                },
            )
            error = EmployeeSyncError(
                employee_id=employee_id,
                code="TIMEOUT",
                message=f"Employee schedule write exceeded {timeout_seconds:g}s",
            )
        except Exception as exc:
            logger.exception(
                "sync_employee_failed",
                extra={
                    "group_shift_id": plan.group_shift_id,
                    "period": plan.period,
                    "employee_id": employee_id,
                },
            )
            error = EmployeeSyncError(
                employee_id=employee_id,
                code="WRITE_FAILED",
                message=f"{exc.__class__.__name__}: {exc}",
            )
        return EmployeeSyncOutcome(employee_id=employee_id, error=error)


async def run_sync(
    plan: SyncPlan,
    *,
    roster: EmployeeRoster,
    store: AttendanceStore,
    max_workers: int,
    employee_timeout_seconds: float,
    roster_timeout_seconds: float,
) -> SyncReport:
    started = time.perf_counter()
    try:
        employee_ids = await asyncio.wait_for(
            asyncio.to_thread(roster.active_members_of, plan.group_shift_id),
            timeout=roster_timeout_seconds,
        )
    except asyncio.TimeoutError as exc:
        raise ApiError(504, "ROSTER_TIMEOUT", "Employee roster lookup timed out") from exc

    report = SyncReport(
        group_shift_id=plan.group_shift_id,
        period=plan.period,
        employees_total=len(employee_ids),
    )
    if not employee_ids:
        logger.warning(
            "sync_empty_roster",
            extra={"group_shift_id": plan.group_shift_id, "period": plan.period},
        )

    semaphore = asyncio.Semaphore(max(1, max_workers))
    outcomes = await asyncio.gather(
        *(
            _sync_one_employee(
                plan=plan,
                employee_id=employee_id,
                store=store,
                semaphore=semaphore,
                timeout_seconds=employee_timeout_seconds,
            )
            for employee_id in employee_ids
        )
    )
    for outcome in outcomes:
        report.add(outcome)

    report.duration_ms = round((time.perf_counter() - started) * 1000, 2)
    log_method = logger.warning if report.partial_failure else logger.info
    log_method(
        "sync_completed",
        extra={
            "group_shift_id": plan.group_shift_id,
            "period": plan.period,
            "matrix_version": plan.matrix_version,
            "employees_total": report.employees_total,
            "updated": report.updated,
            "skipped": report.skipped,
            "changed_with_actuals": report.changed_with_actuals,
            "error_count": len(report.errors),
            "duration_ms": report.duration_ms,
        },
    )
    return report


async def sync_group_matrix(
    db: Session,
    *,
    group_id: int,
    period_key: str,
    roster: EmployeeRoster,
    store: AttendanceStore,
    max_workers: int,
    employee_timeout_seconds: float,
    roster_timeout_seconds: float,
) -> SyncReport:
    plan = prepare_sync_plan(db, group_id=group_id, period_key=period_key)
    return await run_sync(
        plan,
        roster=roster,
        store=store,
        max_workers=max_workers,
        employee_timeout_seconds=employee_timeout_seconds,
        roster_timeout_seconds=roster_timeout_seconds,
    )
