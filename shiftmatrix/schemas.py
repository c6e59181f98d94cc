from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from shiftmatrix.models import MATRIX_SLOT_COUNT, MatrixSource


class ShiftTypeUpsert(BaseModel):
    code: str = Field(min_length=1, max_length=16)
    name: str = Field(min_length=1, max_length=100)
    start_time_local: str = Field(pattern=r"^\d{2}:\d{2}$")
    end_time_local: str = Field(pattern=r"^\d{2}:\d{2}$")
    is_active: bool = True


class ShiftTypeRead(BaseModel):
    id: int
    code: str
    name: str
    start_time_local: str
    end_time_local: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ShiftPatternUpsert(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    # Either ["S1", "S1", "OFF"] or the legacy "S1,S1,OFF" string.
    sequence: list[str] | str
    is_active: bool = True


class ShiftPatternRead(BaseModel):
    id: int
    name: str
    description: str | None
    sequence: list[str]
    cycle_length: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GroupShiftUpsert(BaseModel):
    code: str = Field(min_length=1, max_length=10)
    name: str = Field(min_length=1, max_length=255)
    is_active: bool = True
    pattern_id: int | None = Field(default=None, ge=1)
    pattern_reference_date: date | None = None

    @model_validator(mode="after")
    def validate_pattern_reference(self) -> "GroupShiftUpsert":
        if self.pattern_id is not None and self.pattern_reference_date is None:
            raise ValueError("pattern_reference_date is required when pattern_id is set")
        return self


class GroupShiftRead(BaseModel):
    id: int
    code: str
    name: str
    is_active: bool
    pattern_id: int | None
    pattern_reference_date: date | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MatrixSaveRequest(BaseModel):
    slots: list[str | None] = Field(max_length=MATRIX_SLOT_COUNT)


class MatrixRead(BaseModel):
    id: int
    group_shift_id: int
    period: str
    days_in_month: int
    slots: list[str | None]
    source: MatrixSource
    pattern_id: int | None
    version: int
    created_at: datetime
    updated_at: datetime


class SyncErrorRead(BaseModel):
    employee_id: int
    code: str
    message: str


class SyncReportRead(BaseModel):
    group_shift_id: int
    period: str
    employees_total: int
    updated: int
    skipped: int
    changed_with_actuals: int
    partial_failure: bool
    errors: list[SyncErrorRead] = Field(default_factory=list)
    duration_ms: float


class EmployeeDayShiftRead(BaseModel):
    employee_id: int
    day_date: date
    group_shift_id: int | None
    shift_code: str | None
    shift_name: str | None = None
    is_working_day: bool
    start_time_local: str | None = None
    end_time_local: str | None = None


class AttendanceDayRead(BaseModel):
    day_date: date
    shift_code: str | None
    is_working_day: bool
    standard_in: str | None
    standard_out: str | None
    actual_in: str | None
    actual_out: str | None
    status_raw: str | None
    status: str | None
    late_minutes: int
    early_minutes: int


class SoftDeleteResponse(BaseModel):
    ok: bool
    id: int
