from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from shiftmatrix.db import get_db
from shiftmatrix.errors import NotFoundError
from shiftmatrix.models import Employee, EmployeeScheduleDay
from shiftmatrix.schemas import AttendanceDayRead, EmployeeDayShiftRead
from shiftmatrix.services.attendance_derivation import derive_day
from shiftmatrix.services.matrices import resolve_employee_day_shift
from shiftmatrix.services.periods import parse_period
from shiftmatrix.services.shift_types import format_hhmm

router = APIRouter(tags=["attendance"])


@router.get("/api/attendance/employees/{employee_id}/shift", response_model=EmployeeDayShiftRead)
def employee_shift_of_day(
    employee_id: int,
    day: date = Query(...),
    db: Session = Depends(get_db),
) -> EmployeeDayShiftRead:
    resolved = resolve_employee_day_shift(db, employee_id=employee_id, day_date=day)
    shift_type = resolved.shift_type
    return EmployeeDayShiftRead(
        employee_id=resolved.employee_id,
        day_date=resolved.day_date,
        group_shift_id=resolved.group_shift_id,
        shift_code=resolved.shift_code,
        shift_name=shift_type.name if shift_type is not None else None,
        is_working_day=resolved.is_working_day,
        start_time_local=format_hhmm(shift_type.start_time_local) if shift_type is not None else None,
        end_time_local=format_hhmm(shift_type.end_time_local) if shift_type is not None else None,
    )


@router.get("/api/attendance/employees/{employee_id}/days", response_model=list[AttendanceDayRead])
def employee_attendance_days(
    employee_id: int,
    period: str = Query(...),
    db: Session = Depends(get_db),
) -> list[AttendanceDayRead]:
    resolved_period = parse_period(period)
    if db.get(Employee, employee_id) is None:
        raise NotFoundError("Employee not found")

    rows = list(
        db.scalars(
            select(EmployeeScheduleDay)
            .where(
                EmployeeScheduleDay.employee_id == employee_id,
                EmployeeScheduleDay.day_date >= resolved_period.first_day,
                EmployeeScheduleDay.day_date <= resolved_period.last_day,
            )
            .order_by(EmployeeScheduleDay.day_date.asc())
        ).all()
    )

    items: list[AttendanceDayRead] = []
    for row in rows:
        derived = derive_day(
            standard_in=row.standard_in,
            standard_out=row.standard_out,
            actual_in=row.actual_in,
            actual_out=row.actual_out,
            status=row.status_code,
        )
        items.append(
            AttendanceDayRead(
                day_date=row.day_date,
                shift_code=row.shift_code,
                is_working_day=row.is_working_day,
                standard_in=format_hhmm(row.standard_in),
                standard_out=format_hhmm(row.standard_out),
                actual_in=format_hhmm(row.actual_in),
                actual_out=format_hhmm(row.actual_out),
                status_raw=row.status_code,
                status=derived.status,
                late_minutes=derived.late_minutes,
                early_minutes=derived.early_minutes,
            )
        )
    return items
