from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from shiftmatrix.errors import ConflictError, NotFoundError, ValidationError
from shiftmatrix.models import OFF_CODE, GroupShift, ShiftPattern
from shiftmatrix.schemas import ShiftPatternUpsert
from shiftmatrix.services.shift_types import is_off_token, load_shift_types_by_code, normalize_code

logger = logging.getLogger("shiftmatrix.patterns")


def parse_pattern_tokens(raw: str | list[str] | None) -> list[str]:
    """Normalize a token list or the legacy ``"S1,S1,OFF"`` string form."""
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    tokens: list[str] = []
    for item in items:
        token = normalize_code(item)
        if not token:
            raise ValidationError("Pattern tokens must not be blank")
        tokens.append(OFF_CODE if is_off_token(token) else token)
    return tokens


def validate_pattern_sequence(db: Session, tokens: list[str]) -> list[str]:
    if not tokens:
        raise ValidationError("Pattern sequence must contain at least one token")

    active_types = load_shift_types_by_code(db, tokens, active_only=True)
    unknown = sorted({token for token in tokens if token != OFF_CODE and token not in active_types})
    if unknown:
        raise ValidationError(f"Unknown or inactive shift code(s) in pattern: {', '.join(unknown)}")
    return tokens


def list_patterns(db: Session, *, active_only: bool = False) -> list[ShiftPattern]:
    stmt = select(ShiftPattern).order_by(ShiftPattern.name.asc())
    if active_only:
        stmt = stmt.where(ShiftPattern.is_active.is_(True))
    return list(db.scalars(stmt).all())


def get_pattern(db: Session, pattern_id: int) -> ShiftPattern:
    pattern = db.get(ShiftPattern, pattern_id)
    if pattern is None:
        raise NotFoundError("Shift pattern not found")
    return pattern


def upsert_pattern(
    db: Session,
    *,
    payload: ShiftPatternUpsert,
    pattern_id: int | None = None,
) -> ShiftPattern:
    name = payload.name.strip()
    if not name:
        raise ValidationError("Pattern name is required")
    sequence = validate_pattern_sequence(db, parse_pattern_tokens(payload.sequence))

    existing_conflict = db.scalar(select(ShiftPattern).where(ShiftPattern.name == name))
    if existing_conflict is not None and (pattern_id is None or existing_conflict.id != pattern_id):
        raise ConflictError(f"Pattern name '{name}' already exists")

    if pattern_id is None:
        pattern = ShiftPattern(
            name=name,
            description=payload.description,
            sequence=sequence,
            is_active=payload.is_active,
        )
        db.add(pattern)
    else:
        pattern = get_pattern(db, pattern_id)
        # Already generated matrices are snapshots; editing the sequence does not touch them.
        pattern.name = name
        pattern.description = payload.description
        pattern.sequence = sequence
        pattern.is_active = payload.is_active

    db.commit()
    db.refresh(pattern)
    logger.info(
        "shift_pattern_saved",
        extra={"pattern_id": pattern.id, "cycle_length": len(sequence), "is_active": pattern.is_active},
    )
    return pattern


def delete_pattern(db: Session, pattern_id: int) -> None:
    pattern = get_pattern(db, pattern_id)
    referencing_groups = list(
        db.scalars(select(GroupShift).where(GroupShift.pattern_id == pattern_id)).all()
    )
    if referencing_groups:
        codes = ", ".join(group.code for group in referencing_groups)
        raise ConflictError(f"Pattern is bound to group(s) {codes}; unbind it first")

    db.delete(pattern)
    db.commit()
    logger.info("shift_pattern_deleted", extra={"pattern_id": pattern_id})
