#!/usr/bin/env python
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.orm import Session

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from shiftmatrix.db import SessionLocal
from shiftmatrix.logging_utils import setup_json_logging
from shiftmatrix.models import ShiftPattern, ShiftType
from shiftmatrix.schemas import ShiftPatternUpsert, ShiftTypeUpsert
from shiftmatrix.services.patterns import upsert_pattern
from shiftmatrix.services.shift_types import upsert_shift_type

logger = logging.getLogger("shiftmatrix.seed")

DEFAULT_SHIFT_TYPES = [
    ShiftTypeUpsert(code="S1", name="Shift 1 (morning)", start_time_local="07:00", end_time_local="15:00"),
    ShiftTypeUpsert(code="S2", name="Shift 2 (afternoon)", start_time_local="15:00", end_time_local="23:00"),
    ShiftTypeUpsert(code="S3", name="Shift 3 (night)", start_time_local="23:00", end_time_local="07:00"),
    ShiftTypeUpsert(code="LS1", name="Long shift 1", start_time_local="07:00", end_time_local="19:00"),
    ShiftTypeUpsert(code="LS2", name="Long shift 2", start_time_local="19:00", end_time_local="07:00"),
]

DEFAULT_PATTERNS = [
    ShiftPatternUpsert(
        name="Two-shift weekly rotation",
        description="One week S1, one week S2, weekends off",
        sequence="S1,S1,S1,S1,S1,OFF,OFF,S2,S2,S2,S2,S2,OFF,OFF",
    ),
    ShiftPatternUpsert(
        name="Three-shift weekly rotation",
        description="One week each of S3, S2 and S1 with weekends off",
        sequence="S3,S3,S3,S3,S3,OFF,OFF,S2,S2,S2,S2,S2,OFF,OFF,S1,S1,S1,S1,S1,OFF,OFF",
    ),
    ShiftPatternUpsert(
        name="Office week (5-2)",
        description="Monday to Friday S1, weekends off",
        sequence="S1,S1,S1,S1,S1,OFF,OFF",
    ),
    ShiftPatternUpsert(
        name="Long shift rotation (14 days)",
        description="One week LS1, one week LS2, weekends off",
        sequence="LS1,LS1,LS1,LS1,LS1,OFF,OFF,LS2,LS2,LS2,LS2,LS2,OFF,OFF",
    ),
]


def seed(db: Session) -> dict[str, list[str]]:
    """Create the default shift types and patterns that do not exist yet."""
    created_types: list[str] = []
    for payload in DEFAULT_SHIFT_TYPES:
        if db.scalar(select(ShiftType).where(ShiftType.code == payload.code)) is not None:
            continue
        upsert_shift_type(db, payload=payload)
        created_types.append(payload.code)

    created_patterns: list[str] = []
    for payload in DEFAULT_PATTERNS:
        if db.scalar(select(ShiftPattern).where(ShiftPattern.name == payload.name)) is not None:
            continue
        upsert_pattern(db, payload=payload)
        created_patterns.append(payload.name)

    return {"shift_types": created_types, "patterns": created_patterns}


def main() -> int:
    setup_json_logging()
    with SessionLocal() as db:
        created = seed(db)
    logger.info("seed_completed", extra=created)
    print(json.dumps(created, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
