from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from shiftmatrix.errors import ConflictError, NotFoundError, ValidationError
from shiftmatrix.models import GroupShift, ShiftPattern
from shiftmatrix.schemas import GroupShiftUpsert

logger = logging.getLogger("shiftmatrix.groups")


def list_groups(db: Session, *, active_only: bool = True) -> list[GroupShift]:
    stmt = select(GroupShift).order_by(GroupShift.code.asc())
    if active_only:
        stmt = stmt.where(GroupShift.is_active.is_(True))
    return list(db.scalars(stmt).all())


def get_group(db: Session, group_id: int) -> GroupShift:
    group = db.get(GroupShift, group_id)
    if group is None:
        raise NotFoundError("Group shift not found")
    return group


def _validate_pattern_binding(db: Session, payload: GroupShiftUpsert) -> None:
    if payload.pattern_id is None:
        return
    if payload.pattern_reference_date is None:
        raise ValidationError("pattern_reference_date is required when a pattern is bound")
    pattern = db.get(ShiftPattern, payload.pattern_id)
    if pattern is None:
        raise NotFoundError("Shift pattern not found")
    if not pattern.is_active:
        raise ValidationError("Cannot bind an inactive shift pattern")


def upsert_group(
    db: Session,
    *,
    payload: GroupShiftUpsert,
    group_id: int | None = None,
) -> GroupShift:
    code = payload.code.strip()
    name = payload.name.strip()
    if not code or not name:
        raise ValidationError("Group code and name are required")
    _validate_pattern_binding(db, payload)

    existing_conflict = db.scalar(select(GroupShift).where(GroupShift.code == code))
    if existing_conflict is not None and (group_id is None or existing_conflict.id != group_id):
        raise ConflictError(f"Group code '{code}' already exists")

    if group_id is None:
        group = GroupShift(
            code=code,
            name=name,
            is_active=payload.is_active,
            pattern_id=payload.pattern_id,
            pattern_reference_date=payload.pattern_reference_date,
        )
        db.add(group)
    else:
        group = get_group(db, group_id)
        group.code = code
        group.name = name
        group.is_active = payload.is_active
        group.pattern_id = payload.pattern_id
        group.pattern_reference_date = payload.pattern_reference_date

    db.commit()
    db.refresh(group)
    logger.info(
        "group_shift_saved",
        extra={
            "group_shift_id": group.id,
            "pattern_id": group.pattern_id,
            "pattern_reference_date": group.pattern_reference_date,
        },
    )
    return group


def deactivate_group(db: Session, group_id: int) -> GroupShift:
    group = get_group(db, group_id)
    # Matrices stay; a deactivated group keeps its history.
    group.is_active = False
    db.commit()
    logger.info("group_shift_deactivated", extra={"group_shift_id": group.id})
    return group
