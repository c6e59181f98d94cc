from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shiftmatrix.errors import ConflictError, InvalidConfigurationError, NotFoundError, ValidationError
from shiftmatrix.models import (
    MATRIX_SLOT_COUNT,
    OFF_CODE,
    Employee,
    GroupShift,
    MatrixSource,
    MonthlyMatrix,
    ShiftPattern,
    ShiftType,
)
from shiftmatrix.services.generation import generate_month_slots
from shiftmatrix.services.groups import get_group
from shiftmatrix.services.periods import Period, parse_period, period_of
from shiftmatrix.services.shift_types import is_off_token, load_shift_types_by_code, normalize_code

logger = logging.getLogger("shiftmatrix.matrices")

_EMPTY_SLOT_VALUES = frozenset({"", "NULL", "NONE"})


@dataclass(frozen=True, slots=True)
class EmployeeDayShift:
    employee_id: int
    day_date: date
    group_shift_id: int | None
    shift_code: str | None
    is_working_day: bool
    shift_type: ShiftType | None = None


def normalize_matrix_slots(raw_slots: Sequence[str | None], period: Period) -> list[str | None]:
    """Pad to 31 slots, normalize OFF aliases and blanks, reject values past month end."""
    if len(raw_slots) > MATRIX_SLOT_COUNT:
        raise ValidationError(f"A matrix holds at most {MATRIX_SLOT_COUNT} day slots")

    slots: list[str | None] = [None] * MATRIX_SLOT_COUNT
    for index, raw_value in enumerate(raw_slots):
        token = normalize_code(raw_value) if raw_value is not None else ""
        if token in _EMPTY_SLOT_VALUES:
            continue
        if index >= period.days_in_month:
            raise ValidationError(
                f"Day {index + 1} does not exist in period {period.key} ({period.days_in_month} days)"
            )
        slots[index] = OFF_CODE if is_off_token(token) else token
    return slots


def validate_slot_codes(db: Session, slots: Sequence[str | None]) -> None:
    codes = {slot for slot in slots if slot is not None and slot != OFF_CODE}
    active_types = load_shift_types_by_code(db, codes, active_only=True)
    unknown = sorted(code for code in codes if code not in active_types)
    if unknown:
        raise ValidationError(f"Unknown or inactive shift code(s) in matrix: {', '.join(unknown)}")


def find_matrix(db: Session, *, group_id: int, period: Period) -> MonthlyMatrix | None:
    return db.scalar(
        select(MonthlyMatrix).where(
            MonthlyMatrix.group_shift_id == group_id,
            MonthlyMatrix.period == period.key,
        )
    )


def get_matrix(db: Session, *, group_id: int, period_key: str) -> MonthlyMatrix:
    period = parse_period(period_key)
    get_group(db, group_id)
    matrix = find_matrix(db, group_id=group_id, period=period)
    if matrix is None:
        raise NotFoundError(f"No shift matrix for group {group_id} in period {period.key}")
    return matrix


def _write_matrix(
    db: Session,
    *,
    group_id: int,
    period: Period,
    slots: list[str | None],
    source: MatrixSource,
    pattern_id: int | None,
    allow_overwrite: bool,
) -> MonthlyMatrix:
    # Row lock serializes manual saves and regenerations of the same (group, period).
    matrix = db.scalar(
        select(MonthlyMatrix)
        .where(
            MonthlyMatrix.group_shift_id == group_id,
            MonthlyMatrix.period == period.key,
        )
        .with_for_update()
    )
    if matrix is None:
        matrix = MonthlyMatrix(
            group_shift_id=group_id,
            period=period.key,
            slots=slots,
            source=source,
            pattern_id=pattern_id,
            version=1,
        )
        db.add(matrix)
    else:
        if not allow_overwrite:
            db.rollback()
            raise ConflictError(
                f"Matrix for period {period.key} already exists; confirm the overwrite to regenerate it"
            )
        matrix.slots = slots
        matrix.source = source
        matrix.pattern_id = pattern_id
        matrix.version = (matrix.version or 0) + 1

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(f"Matrix for period {period.key} was created concurrently; retry") from exc
    db.refresh(matrix)
    return matrix


def apply_manual_edit(
    db: Session,
    *,
    group_id: int,
    period_key: str,
    slots: Sequence[str | None],
) -> MonthlyMatrix:
    period = parse_period(period_key)
    get_group(db, group_id)
    normalized = normalize_matrix_slots(slots, period)
    validate_slot_codes(db, normalized)

    matrix = _write_matrix(
        db,
        group_id=group_id,
        period=period,
        slots=normalized,
        source=MatrixSource.MANUAL,
        pattern_id=None,
        allow_overwrite=True,
    )
    logger.info(
        "matrix_saved",
        extra={"group_shift_id": group_id, "period": period.key, "version": matrix.version},
    )
    return matrix


def _bound_pattern(db: Session, group: GroupShift) -> tuple[ShiftPattern, date]:
    reference_date = group.pattern_reference_date
    if group.pattern_id is None or reference_date is None:
        raise InvalidConfigurationError(
            f"Group {group.code} has no shift pattern or reference date; enter the matrix manually"
        )
    pattern = db.get(ShiftPattern, group.pattern_id)
    if pattern is None or not pattern.is_active:
        raise InvalidConfigurationError(f"Group {group.code} is bound to a missing or inactive pattern")
    if not pattern.sequence:
        raise InvalidConfigurationError(f"Pattern '{pattern.name}' has an empty sequence")
    return pattern, reference_date


def regenerate_from_pattern(
    db: Session,
    *,
    group_id: int,
    period_key: str,
    allow_overwrite: bool = True,
) -> MonthlyMatrix:
    """Destructive: replaces every slot of an existing matrix, manual edits included."""
    period = parse_period(period_key)
    group = get_group(db, group_id)
    pattern, reference_date = _bound_pattern(db, group)

    slots = generate_month_slots(pattern.sequence, reference_date, period.year, period.month)
    validate_slot_codes(db, slots)

    matrix = _write_matrix(
        db,
        group_id=group.id,
        period=period,
        slots=slots,
        source=MatrixSource.PATTERN,
        pattern_id=pattern.id,
        allow_overwrite=allow_overwrite,
    )
    logger.info(
        "matrix_regenerated",
        extra={
            "group_shift_id": group.id,
            "period": period.key,
            "pattern_id": pattern.id,
            "reference_date": reference_date,
            "version": matrix.version,
        },
    )
    return matrix


def resolve_employee_day_shift(db: Session, *, employee_id: int, day_date: date) -> EmployeeDayShift:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")
    if employee.group_shift_id is None:
        return EmployeeDayShift(
            employee_id=employee_id,
            day_date=day_date,
            group_shift_id=None,
            shift_code=None,
            is_working_day=False,
        )

    matrix = find_matrix(db, group_id=employee.group_shift_id, period=period_of(day_date))
    slot = None
    if matrix is not None and matrix.slots and len(matrix.slots) >= day_date.day:
        slot = matrix.slots[day_date.day - 1]

    shift_type = None
    if slot is not None and slot != OFF_CODE:
        shift_type = load_shift_types_by_code(db, [slot]).get(slot)
    return EmployeeDayShift(
        employee_id=employee_id,
        day_date=day_date,
        group_shift_id=employee.group_shift_id,
        shift_code=slot,
        is_working_day=slot is not None and slot != OFF_CODE,
        shift_type=shift_type,
    )
