from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import time

from sqlalchemy import select, type_coerce
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Session

from shiftmatrix.errors import ConflictError, NotFoundError, ValidationError
from shiftmatrix.models import OFF_CODE, MonthlyMatrix, ShiftPattern, ShiftType
from shiftmatrix.schemas import ShiftTypeUpsert

logger = logging.getLogger("shiftmatrix.shift_types")

# "0" is how the legacy matrix screens stored a day off.
OFF_ALIASES = frozenset({OFF_CODE, "0"})


def normalize_code(raw: str | None) -> str:
    return (raw or "").strip().upper()


def is_off_token(value: str | None) -> bool:
    return normalize_code(value) in OFF_ALIASES


def parse_hhmm(value: str) -> time:
    try:
        hour_str, minute_str = value.strip().split(":")
        hour = int(hour_str)
        minute = int(minute_str)
        if hour < 0 or hour > 23 or minute < 0 or minute > 59:
            raise ValueError
        return time(hour=hour, minute=minute)
    except ValueError as exc:
        raise ValidationError("Invalid time format. Use HH:MM.") from exc


def format_hhmm(value: time | None) -> str | None:
    if value is None:
        return None
    return f"{value.hour:02d}:{value.minute:02d}"


def list_shift_types(db: Session, *, active_only: bool = False) -> list[ShiftType]:
    stmt = select(ShiftType).order_by(ShiftType.code.asc())
    if active_only:
        stmt = stmt.where(ShiftType.is_active.is_(True))
    return list(db.scalars(stmt).all())


def load_shift_types_by_code(
    db: Session,
    codes: Iterable[str],
    *,
    active_only: bool = False,
) -> dict[str, ShiftType]:
    wanted = {normalize_code(code) for code in codes if code and not is_off_token(code)}
    if not wanted:
        return {}
    stmt = select(ShiftType).where(ShiftType.code.in_(sorted(wanted)))
    if active_only:
        stmt = stmt.where(ShiftType.is_active.is_(True))
    return {item.code: item for item in db.scalars(stmt).all()}


def find_shift_type_references(db: Session, code: str) -> dict[str, list[int]]:
    """Pattern ids and matrix ids whose tokens mention ``code``.

    Stored tokens are already normalized, so JSONB containment matches them exactly.
    """
    pattern_ids = db.scalars(
        select(ShiftPattern.id)
        .where(type_coerce(ShiftPattern.sequence, JSONB).contains([code]))
        .order_by(ShiftPattern.id.asc())
    ).all()
    matrix_ids = db.scalars(
        select(MonthlyMatrix.id)
        .where(type_coerce(MonthlyMatrix.slots, JSONB).contains([code]))
        .order_by(MonthlyMatrix.id.asc())
    ).all()
    return {"patterns": list(pattern_ids), "matrices": list(matrix_ids)}


def _is_referenced(references: dict[str, list[int]]) -> bool:
    return bool(references["patterns"] or references["matrices"])


def upsert_shift_type(
    db: Session,
    *,
    payload: ShiftTypeUpsert,
    shift_type_id: int | None = None,
) -> ShiftType:
    code = normalize_code(payload.code)
    if not code:
        raise ValidationError("Shift code is required")
    if code in OFF_ALIASES:
        raise ValidationError(f"'{code}' is reserved for days off")
    name = payload.name.strip()
    if not name:
        raise ValidationError("Shift name is required")
    start_time_local = parse_hhmm(payload.start_time_local)
    end_time_local = parse_hhmm(payload.end_time_local)

    existing_conflict = db.scalar(select(ShiftType).where(ShiftType.code == code))
    if existing_conflict is not None and (shift_type_id is None or existing_conflict.id != shift_type_id):
        raise ConflictError(f"Shift code '{code}' already exists")

    if shift_type_id is None:
        shift_type = ShiftType(
            code=code,
            name=name,
            start_time_local=start_time_local,
            end_time_local=end_time_local,
            is_active=payload.is_active,
        )
        db.add(shift_type)
    else:
        shift_type = db.get(ShiftType, shift_type_id)
        if shift_type is None:
            raise NotFoundError("Shift type not found")
        if shift_type.code != code and _is_referenced(find_shift_type_references(db, shift_type.code)):
            raise ConflictError(
                f"Shift code '{shift_type.code}' is referenced by patterns or matrices and cannot be renamed"
            )
        shift_type.code = code
        shift_type.name = name
        shift_type.start_time_local = start_time_local
        shift_type.end_time_local = end_time_local
        shift_type.is_active = payload.is_active

    db.commit()
    db.refresh(shift_type)
    logger.info(
        "shift_type_saved",
        extra={"shift_type_id": shift_type.id, "code": shift_type.code, "is_active": shift_type.is_active},
    )
    return shift_type


def delete_shift_type(db: Session, shift_type_id: int) -> None:
    shift_type = db.get(ShiftType, shift_type_id)
    if shift_type is None:
        raise NotFoundError("Shift type not found")

    references = find_shift_type_references(db, shift_type.code)
    if _is_referenced(references):
        raise ConflictError(
            f"Shift code '{shift_type.code}' is referenced by {len(references['patterns'])} pattern(s) "
            f"and {len(references['matrices'])} matrix(es); deactivate it instead"
        )

    db.delete(shift_type)
    db.commit()
    logger.info("shift_type_deleted", extra={"shift_type_id": shift_type_id, "code": shift_type.code})
