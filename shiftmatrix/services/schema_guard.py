from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("shiftmatrix.schema_guard")


@dataclass(frozen=True, slots=True)
class SchemaGuardResult:
    ok: bool
    checked_at_utc: datetime
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "checked_at_utc": self.checked_at_utc.isoformat(),
            "issues": list(self.issues),
            "warnings": list(self.warnings),
        }


REQUIRED_TABLE_COLUMNS: dict[str, set[str]] = {
    "shift_types": {"id", "code", "start_time_local", "end_time_local", "is_active"},
    "shift_patterns": {"id", "name", "sequence", "is_active"},
    "group_shifts": {"id", "code", "pattern_id", "pattern_reference_date"},
    "monthly_matrices": {"id", "group_shift_id", "period", "slots", "source", "version"},
    "employees": {"id", "group_shift_id", "is_active"},
    "employee_schedule_days": {
        "employee_id",
        "day_date",
        "shift_code",
        "standard_in",
        "standard_out",
        "actual_in",
        "actual_out",
        "status_code",
    },
    "alembic_version": {"version_num"},
}

REQUIRED_ENUM_VALUES: dict[str, set[str]] = {
    "monthly_matrix_source": {"MANUAL", "PATTERN"},
}


def _check_columns(inspector: Any, issues: list[str]) -> None:
    existing_tables = set(inspector.get_table_names())
    for table_name, required_columns in REQUIRED_TABLE_COLUMNS.items():
        if table_name not in existing_tables:
            issues.append(f"MISSING_TABLE:{table_name}")
            continue
        column_names = {str(item.get("name")) for item in inspector.get_columns(table_name)}
        missing_columns = sorted(required_columns - column_names)
        if missing_columns:
            issues.append(f"MISSING_COLUMNS:{table_name}:{','.join(missing_columns)}")


def _check_enums(inspector: Any, issues: list[str], warnings: list[str]) -> None:
    get_enums = getattr(inspector, "get_enums", None)
    if get_enums is None:
        # Non-PostgreSQL dialects store the enum as VARCHAR.
        warnings.append("ENUM_INSPECTION_UNSUPPORTED")
        return

    labels_by_name = {
        str(item.get("name")): {str(label) for label in item.get("labels") or []}
        for item in get_enums() or []
        if item.get("name")
    }
    for enum_name, required_values in REQUIRED_ENUM_VALUES.items():
        if enum_name not in labels_by_name:
            warnings.append(f"ENUM_NOT_FOUND:{enum_name}")
            continue
        missing_values = sorted(required_values - labels_by_name[enum_name])
        if missing_values:
            issues.append(f"MISSING_ENUM_VALUES:{enum_name}:{','.join(missing_values)}")


def verify_runtime_schema(engine: Engine) -> SchemaGuardResult:
    issues: list[str] = []
    warnings: list[str] = []
    checked_at_utc = datetime.now(timezone.utc)

    try:
        inspector = inspect(engine)
        _check_columns(inspector, issues)
        _check_enums(inspector, issues, warnings)
    except SQLAlchemyError as exc:
        logger.warning("schema_inspection_failed", extra={"error": exc.__class__.__name__})
        issues.append(f"SCHEMA_INSPECTION_FAILED:{exc.__class__.__name__}")
        return SchemaGuardResult(ok=False, checked_at_utc=checked_at_utc, issues=issues, warnings=warnings)

    if "MISSING_TABLE:alembic_version" not in issues:
        try:
            with engine.connect() as connection:
                row = connection.execute(text("SELECT version_num FROM alembic_version LIMIT 1")).scalar()
        except SQLAlchemyError as exc:
            issues.append(f"ALEMBIC_VERSION_CHECK_FAILED:{exc.__class__.__name__}")
        else:
            if not (str(row).strip() if row is not None else ""):
                issues.append("ALEMBIC_VERSION_EMPTY")

    return SchemaGuardResult(
        ok=not issues,
        checked_at_utc=checked_at_utc,
        issues=issues,
        warnings=warnings,
    )
