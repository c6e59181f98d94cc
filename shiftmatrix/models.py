from __future__ import annotations

import enum
from datetime import date, datetime, time, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Time,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shiftmatrix.db import Base

OFF_CODE = "OFF"
MATRIX_SLOT_COUNT = 31

# JSONB on PostgreSQL, plain JSON elsewhere.
JsonList = JSON().with_variant(JSONB(), "postgresql")


class MatrixSource(str, enum.Enum):
    MANUAL = "MANUAL"
    PATTERN = "PATTERN"


class ShiftType(Base):
    __tablename__ = "shift_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(16), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_time_local: Mapped[time] = mapped_column(Time(timezone=False), nullable=False)
    end_time_local: Mapped[time] = mapped_column(Time(timezone=False), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class ShiftPattern(Base):
    __tablename__ = "shift_patterns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    sequence: Mapped[list[str]] = mapped_column(JsonList, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    groups: Mapped[list[GroupShift]] = relationship(back_populates="pattern")

    @property
    def cycle_length(self) -> int:
        return len(self.sequence or [])


class GroupShift(Base):
    __tablename__ = "group_shifts"
    __table_args__ = (
        CheckConstraint(
            "pattern_id IS NULL OR pattern_reference_date IS NOT NULL",
            name="ck_group_shifts_pattern_reference_date",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    pattern_id: Mapped[int | None] = mapped_column(
        ForeignKey("shift_patterns.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    pattern_reference_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    pattern: Mapped[ShiftPattern | None] = relationship(back_populates="groups")
    matrices: Mapped[list[MonthlyMatrix]] = relationship(back_populates="group_shift")
    employees: Mapped[list[Employee]] = relationship(back_populates="group_shift")


class MonthlyMatrix(Base):
    __tablename__ = "monthly_matrices"
    __table_args__ = (
        UniqueConstraint("group_shift_id", "period", name="uq_monthly_matrices_group_period"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    group_shift_id: Mapped[int] = mapped_column(
        ForeignKey("group_shifts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    period: Mapped[str] = mapped_column(String(6), nullable=False, index=True)
    slots: Mapped[list[str | None]] = mapped_column(JsonList, nullable=False, default=list)
    source: Mapped[MatrixSource] = mapped_column(
        Enum(MatrixSource, name="monthly_matrix_source"),
        nullable=False,
        default=MatrixSource.MANUAL,
        server_default=text("'MANUAL'"),
    )
    pattern_id: Mapped[int | None] = mapped_column(
        ForeignKey("shift_patterns.id", ondelete="SET NULL"),
        nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default=text("1"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    group_shift: Mapped[GroupShift] = relationship(back_populates="matrices")


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    group_shift_id: Mapped[int | None] = mapped_column(
        ForeignKey("group_shifts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))

    group_shift: Mapped[GroupShift | None] = relationship(back_populates="employees")
    schedule_days: Mapped[list[EmployeeScheduleDay]] = relationship(back_populates="employee")


class EmployeeScheduleDay(Base):
    __tablename__ = "employee_schedule_days"
    __table_args__ = (
        UniqueConstraint("employee_id", "day_date", name="uq_employee_schedule_days_employee_day"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    day_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    period: Mapped[str] = mapped_column(String(6), nullable=False, index=True)

    # Standard (planned) fields, written by matrix sync.
    group_shift_id: Mapped[int | None] = mapped_column(
        ForeignKey("group_shifts.id", ondelete="SET NULL"),
        nullable=True,
    )
    shift_code: Mapped[str | None] = mapped_column(String(16), nullable=True)
    is_working_day: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
    )
    standard_in: Mapped[time | None] = mapped_column(Time(timezone=False), nullable=True)
    standard_out: Mapped[time | None] = mapped_column(Time(timezone=False), nullable=True)

    # Actual fields, owned by attendance ingestion. Sync never writes these.
    actual_in: Mapped[time | None] = mapped_column(Time(timezone=False), nullable=True)
    actual_out: Mapped[time | None] = mapped_column(Time(timezone=False), nullable=True)
    status_code: Mapped[str | None] = mapped_column(String(4), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    employee: Mapped[Employee] = relationship(back_populates="schedule_days")
