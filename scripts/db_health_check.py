#!/usr/bin/env python
from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import create_engine, text

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from shiftmatrix.models import MATRIX_SLOT_COUNT, OFF_CODE
from shiftmatrix.settings import get_settings

EXPECTED_HEAD = "0001_initial"
REQUIRED_TABLES = [
    "shift_types",
    "shift_patterns",
    "group_shifts",
    "monthly_matrices",
    "employees",
    "employee_schedule_days",
]


def run() -> dict:
    database_url = get_settings().database_url
    engine = create_engine(database_url)
    report: dict = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "database_url": engine.url.render_as_string(hide_password=True),
        "checks": [],
    }

    def add(name: str, status: str, details: dict) -> None:
        report["checks"].append({"name": name, "status": status, "details": details})

    with engine.connect() as conn:
        tables = set(
            conn.execute(
                text(
                    """
                    select table_name
                    from information_schema.tables
                    where table_schema='public'
                    """
                )
            ).scalars()
        )

        current_versions: list[str] = []
        if "alembic_version" in tables:
            current_versions = [
                row[0]
                for row in conn.execute(text("select version_num from alembic_version")).fetchall()
            ]
        add("alembic_version", "ok" if current_versions else "fail", {"current": current_versions})
        add(
            "migration_up_to_date",
            "ok" if EXPECTED_HEAD in current_versions else "warn",
            {"expected_head": EXPECTED_HEAD, "current": current_versions},
        )

        missing_tables = [table for table in REQUIRED_TABLES if table not in tables]
        add("missing_tables", "fail" if missing_tables else "ok", {"tables": missing_tables})
        if missing_tables:
            return report

        unanchored_groups = conn.execute(
            text(
                """
                select id, code
                from group_shifts
                where pattern_id is not null and pattern_reference_date is null
                """
            )
        ).fetchall()
        add(
            "group_pattern_without_reference_date",
            "fail" if unanchored_groups else "ok",
            {"rows": [list(row) for row in unanchored_groups]},
        )

        known_codes = set(conn.execute(text("select code from shift_types")).scalars())
        bad_length: list[int] = []
        unknown_codes: dict[int, list[str]] = {}
        for matrix_id, slots in conn.execute(text("select id, slots from monthly_matrices")).fetchall():
            slots = slots if isinstance(slots, list) else json.loads(slots or "[]")
            if len(slots) != MATRIX_SLOT_COUNT:
                bad_length.append(matrix_id)
            unknown = sorted({slot for slot in slots if slot and slot != OFF_CODE and slot not in known_codes})
            if unknown:
                unknown_codes[matrix_id] = unknown
        add("matrix_slot_count", "fail" if bad_length else "ok", {"sample_ids": bad_length[:20]})
        add("matrix_unknown_shift_codes", "warn" if unknown_codes else "ok", {"matrices": unknown_codes})

        orphan_days = conn.execute(
            text(
                """
                select d.id
                from employee_schedule_days d
                left join employees e on e.id = d.employee_id
                where e.id is null
                limit 20
                """
            )
        ).fetchall()
        add(
            "schedule_day_orphan_employee",
            "fail" if orphan_days else "ok",
            {"sample_ids": [row[0] for row in orphan_days]},
        )

    return report


if __name__ == "__main__":
    print(json.dumps(run(), ensure_ascii=False, indent=2))
