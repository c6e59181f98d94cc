"""Initial shift matrix schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

monthly_matrix_source = postgresql.ENUM(
    "MANUAL",
    "PATTERN",
    name="monthly_matrix_source",
    create_type=False,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    monthly_matrix_source.create(bind, checkfirst=True)

    op.create_table(
        "shift_types",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=16), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("start_time_local", sa.Time(timezone=False), nullable=False),
        sa.Column("end_time_local", sa.Time(timezone=False), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_shift_types_code", "shift_types", ["code"], unique=True)

    op.create_table(
        "shift_patterns",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("sequence", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_shift_patterns_name"),
    )

    op.create_table(
        "group_shifts",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=10), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("pattern_id", sa.Integer(), nullable=True),
        sa.Column("pattern_reference_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["pattern_id"], ["shift_patterns.id"], ondelete="RESTRICT"),
        sa.CheckConstraint(
            "pattern_id IS NULL OR pattern_reference_date IS NOT NULL",
            name="ck_group_shifts_pattern_reference_date",
        ),
    )
    op.create_index("ix_group_shifts_code", "group_shifts", ["code"], unique=True)
    op.create_index("ix_group_shifts_pattern_id", "group_shifts", ["pattern_id"], unique=False)

    op.create_table(
        "monthly_matrices",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("group_shift_id", sa.Integer(), nullable=False),
        sa.Column("period", sa.String(length=6), nullable=False),
        sa.Column("slots", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("source", monthly_matrix_source, nullable=False, server_default=sa.text("'MANUAL'")),
        sa.Column("pattern_id", sa.Integer(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["group_shift_id"], ["group_shifts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["pattern_id"], ["shift_patterns.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("group_shift_id", "period", name="uq_monthly_matrices_group_period"),
    )
    op.create_index("ix_monthly_matrices_group_shift_id", "monthly_matrices", ["group_shift_id"], unique=False)
    op.create_index("ix_monthly_matrices_period", "monthly_matrices", ["period"], unique=False)

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("group_shift_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.ForeignKeyConstraint(["group_shift_id"], ["group_shifts.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_employees_group_shift_id", "employees", ["group_shift_id"], unique=False)

    op.create_table(
        "employee_schedule_days",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("day_date", sa.Date(), nullable=False),
        sa.Column("period", sa.String(length=6), nullable=False),
        sa.Column("group_shift_id", sa.Integer(), nullable=True),
        sa.Column("shift_code", sa.String(length=16), nullable=True),
        sa.Column("is_working_day", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("standard_in", sa.Time(timezone=False), nullable=True),
        sa.Column("standard_out", sa.Time(timezone=False), nullable=True),
        sa.Column("actual_in", sa.Time(timezone=False), nullable=True),
        sa.Column("actual_out", sa.Time(timezone=False), nullable=True),
        sa.Column("status_code", sa.String(length=4), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["group_shift_id"], ["group_shifts.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("employee_id", "day_date", name="uq_employee_schedule_days_employee_day"),
    )
    op.create_index(
        "ix_employee_schedule_days_employee_id",
        "employee_schedule_days",
        ["employee_id"],
        unique=False,
    )
    op.create_index("ix_employee_schedule_days_day_date", "employee_schedule_days", ["day_date"], unique=False)
    op.create_index("ix_employee_schedule_days_period", "employee_schedule_days", ["period"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_employee_schedule_days_period", table_name="employee_schedule_days")
    op.drop_index("ix_employee_schedule_days_day_date", table_name="employee_schedule_days")
    op.drop_index("ix_employee_schedule_days_employee_id", table_name="employee_schedule_days")
    op.drop_table("employee_schedule_days")
    op.drop_index("ix_employees_group_shift_id", table_name="employees")
    op.drop_table("employees")
    op.drop_index("ix_monthly_matrices_period", table_name="monthly_matrices")
    op.drop_index("ix_monthly_matrices_group_shift_id", table_name="monthly_matrices")
    op.drop_table("monthly_matrices")
    op.drop_index("ix_group_shifts_pattern_id", table_name="group_shifts")
    op.drop_index("ix_group_shifts_code", table_name="group_shifts")
    op.drop_table("group_shifts")
    op.drop_table("shift_patterns")
    op.drop_index("ix_shift_types_code", table_name="shift_types")
    op.drop_table("shift_types")

    bind = op.get_bind()
    monthly_matrix_source.drop(bind, checkfirst=True)
