import asyncio

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from shiftmatrix.db import SessionLocal, get_db
from shiftmatrix.models import MATRIX_SLOT_COUNT, MonthlyMatrix, ShiftType
from shiftmatrix.schemas import (
    GroupShiftRead,
    GroupShiftUpsert,
    MatrixRead,
    MatrixSaveRequest,
    ShiftPatternRead,
    ShiftPatternUpsert,
    ShiftTypeRead,
    ShiftTypeUpsert,
    SoftDeleteResponse,
    SyncReportRead,
)
from shiftmatrix.services.collaborators import (
    AttendanceStore,
    EmployeeRoster,
    SqlAttendanceStore,
    SqlEmployeeRoster,
)
from shiftmatrix.services.exports import XLSX_MEDIA_TYPE, build_matrix_xlsx_bytes
from shiftmatrix.services.groups import deactivate_group, list_groups, upsert_group
from shiftmatrix.services.matrices import apply_manual_edit, get_matrix, regenerate_from_pattern
from shiftmatrix.services.patterns import delete_pattern, list_patterns, upsert_pattern
from shiftmatrix.services.periods import parse_period
from shiftmatrix.services.shift_types import (
    delete_shift_type,
    format_hhmm,
    list_shift_types,
    upsert_shift_type,
)
from shiftmatrix.services.sync import prepare_sync_plan, run_sync
from shiftmatrix.settings import get_sync_limits

router = APIRouter(tags=["shifts"])


def get_employee_roster() -> EmployeeRoster:
    return SqlEmployeeRoster(SessionLocal)


def get_attendance_store() -> AttendanceStore:
    return SqlAttendanceStore(SessionLocal)


def _to_shift_type_read(shift_type: ShiftType) -> ShiftTypeRead:
    return ShiftTypeRead(
        id=shift_type.id,
        code=shift_type.code,
        name=shift_type.name,
        start_time_local=format_hhmm(shift_type.start_time_local) or "",
        end_time_local=format_hhmm(shift_type.end_time_local) or "",
        is_active=shift_type.is_active,
        created_at=shift_type.created_at,
        updated_at=shift_type.updated_at,
    )


def _to_matrix_read(matrix: MonthlyMatrix) -> MatrixRead:
    period = parse_period(matrix.period)
    slots = list(matrix.slots or [])
    slots.extend([None] * (MATRIX_SLOT_COUNT - len(slots)))
    return MatrixRead(
        id=matrix.id,
        group_shift_id=matrix.group_shift_id,
        period=period.key,
        days_in_month=period.days_in_month,
        slots=slots,
        source=matrix.source,
        pattern_id=matrix.pattern_id,
        version=matrix.version,
        created_at=matrix.created_at,
        updated_at=matrix.updated_at,
    )


@router.get("/api/shift-types", response_model=list[ShiftTypeRead])
def list_shift_types_endpoint(
    active_only: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> list[ShiftTypeRead]:
    return [_to_shift_type_read(item) for item in list_shift_types(db, active_only=active_only)]


@router.post("/api/shift-types", response_model=ShiftTypeRead, status_code=201)
def create_shift_type_endpoint(
    payload: ShiftTypeUpsert,
    db: Session = Depends(get_db),
) -> ShiftTypeRead:
    return _to_shift_type_read(upsert_shift_type(db, payload=payload))


@router.put("/api/shift-types/{shift_type_id}", response_model=ShiftTypeRead)
def update_shift_type_endpoint(
    shift_type_id: int,
    payload: ShiftTypeUpsert,
    db: Session = Depends(get_db),
) -> ShiftTypeRead:
    return _to_shift_type_read(upsert_shift_type(db, payload=payload, shift_type_id=shift_type_id))


@router.delete("/api/shift-types/{shift_type_id}", response_model=SoftDeleteResponse)
def delete_shift_type_endpoint(
    shift_type_id: int,
    db: Session = Depends(get_db),
) -> SoftDeleteResponse:
    delete_shift_type(db, shift_type_id)
    return SoftDeleteResponse(ok=True, id=shift_type_id)


@router.get("/api/shift-patterns", response_model=list[ShiftPatternRead])
def list_shift_patterns_endpoint(
    active_only: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> list[ShiftPatternRead]:
    return [ShiftPatternRead.model_validate(item) for item in list_patterns(db, active_only=active_only)]


@router.post("/api/shift-patterns", response_model=ShiftPatternRead, status_code=201)
def create_shift_pattern_endpoint(
    payload: ShiftPatternUpsert,
    db: Session = Depends(get_db),
) -> ShiftPatternRead:
    return ShiftPatternRead.model_validate(upsert_pattern(db, payload=payload))


@router.put("/api/shift-patterns/{pattern_id}", response_model=ShiftPatternRead)
def update_shift_pattern_endpoint(
    pattern_id: int,
    payload: ShiftPatternUpsert,
    db: Session = Depends(get_db),
) -> ShiftPatternRead:
    return ShiftPatternRead.model_validate(upsert_pattern(db, payload=payload, pattern_id=pattern_id))


@router.delete("/api/shift-patterns/{pattern_id}", response_model=SoftDeleteResponse)
def delete_shift_pattern_endpoint(
    pattern_id: int,
    db: Session = Depends(get_db),
) -> SoftDeleteResponse:
    delete_pattern(db, pattern_id)
    return SoftDeleteResponse(ok=True, id=pattern_id)


@router.get("/api/group-shifts", response_model=list[GroupShiftRead])
def list_group_shifts_endpoint(
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> list[GroupShiftRead]:
    groups = list_groups(db, active_only=not include_inactive)
    return [GroupShiftRead.model_validate(item) for item in groups]


@router.post("/api/group-shifts", response_model=GroupShiftRead, status_code=201)
def create_group_shift_endpoint(
    payload: GroupShiftUpsert,
    db: Session = Depends(get_db),
) -> GroupShiftRead:
    return GroupShiftRead.model_validate(upsert_group(db, payload=payload))


@router.put("/api/group-shifts/{group_id}", response_model=GroupShiftRead)
def update_group_shift_endpoint(
    group_id: int,
    payload: GroupShiftUpsert,
    db: Session = Depends(get_db),
) -> GroupShiftRead:
    return GroupShiftRead.model_validate(upsert_group(db, payload=payload, group_id=group_id))


@router.delete("/api/group-shifts/{group_id}", response_model=SoftDeleteResponse)
def deactivate_group_shift_endpoint(
    group_id: int,
    db: Session = Depends(get_db),
) -> SoftDeleteResponse:
    group = deactivate_group(db, group_id)
    return SoftDeleteResponse(ok=True, id=group.id)


@router.get("/api/shift-matrices/{group_id}/{period}", response_model=MatrixRead)
def read_matrix_endpoint(
    group_id: int,
    period: str,
    db: Session = Depends(get_db),
) -> MatrixRead:
    return _to_matrix_read(get_matrix(db, group_id=group_id, period_key=period))


@router.put("/api/shift-matrices/{group_id}/{period}", response_model=MatrixRead)
def save_matrix_endpoint(
    group_id: int,
    period: str,
    payload: MatrixSaveRequest,
    db: Session = Depends(get_db),
) -> MatrixRead:
    matrix = apply_manual_edit(db, group_id=group_id, period_key=period, slots=payload.slots)
    return _to_matrix_read(matrix)


@router.post("/api/shift-matrices/{group_id}/{period}/generate", response_model=MatrixRead)
def generate_matrix_endpoint(
    group_id: int,
    period: str,
    confirm_overwrite: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> MatrixRead:
    matrix = regenerate_from_pattern(
        db,
        group_id=group_id,
        period_key=period,
        allow_overwrite=confirm_overwrite,
    )
    return _to_matrix_read(matrix)


@router.post("/api/shift-matrices/{group_id}/{period}/sync", response_model=SyncReportRead)
async def sync_matrix_endpoint(
    group_id: int,
    period: str,
    db: Session = Depends(get_db),
    roster: EmployeeRoster = Depends(get_employee_roster),
    store: AttendanceStore = Depends(get_attendance_store),
) -> SyncReportRead:
    plan = await asyncio.to_thread(prepare_sync_plan, db, group_id=group_id, period_key=period)
    max_workers, employee_timeout_seconds, roster_timeout_seconds = get_sync_limits()
    report = await run_sync(
        plan,
        roster=roster,
        store=store,
        max_workers=max_workers,
        employee_timeout_seconds=employee_timeout_seconds,
        roster_timeout_seconds=roster_timeout_seconds,
    )
    return SyncReportRead.model_validate(report.to_dict())


@router.get("/api/shift-matrices/{group_id}/{period}/export.xlsx")
def export_matrix_xlsx(
    group_id: int,
    period: str,
    db: Session = Depends(get_db),
) -> Response:
    period_key = parse_period(period).key
    payload = build_matrix_xlsx_bytes(db, group_id=group_id, period_key=period_key)
    return Response(
        content=payload,
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="shift-matrix-{group_id}-{period_key}.xlsx"',
        },
    )
