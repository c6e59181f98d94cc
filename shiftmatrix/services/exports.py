from __future__ import annotations

from collections.abc import Sequence
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet
from sqlalchemy import select
from sqlalchemy.orm import Session

from shiftmatrix.models import OFF_CODE, Employee, GroupShift, MonthlyMatrix, ShiftType
from shiftmatrix.services.groups import get_group
from shiftmatrix.services.matrices import get_matrix
from shiftmatrix.services.periods import Period, parse_period
from shiftmatrix.services.shift_types import format_hhmm, load_shift_types_by_code

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

HEADER_FILL = PatternFill(fill_type="solid", fgColor="0B4F73")
META_LABEL_FILL = PatternFill(fill_type="solid", fgColor="EAF4F9")
META_VALUE_FILL = PatternFill(fill_type="solid", fgColor="F8FCFF")
GROUP_ROW_FILL = PatternFill(fill_type="solid", fgColor="DCEBF3")
WEEKEND_FILL = PatternFill(fill_type="solid", fgColor="F1F5F9")
OFF_FILL = PatternFill(fill_type="solid", fgColor="FFF3CD")

HEADER_FONT = Font(bold=True, color="FFFFFF")
BOLD_FONT = Font(bold=True, color="0F172A")
TITLE_FONT = Font(bold=True, color="0B4F73", size=14)
MUTED_FONT = Font(color="334155")

THIN_SIDE = Side(style="thin", color="D5E2EC")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)

# Rows 1-6: title + metadata, row 8: day numbers, row 9: weekday names.
_HEADER_ROW = 8
_FIRST_DAY_COL = 3


def _style_header(ws: Worksheet, row: int) -> None:
    for cell in ws[row]:
        if cell.value is None:
            continue
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER


def _auto_width(ws: Worksheet) -> None:
    for column_cells in ws.iter_cols(min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column):
        max_len = 0
        col_letter = get_column_letter(column_cells[0].column)
        for cell in column_cells:
            if cell.coordinate in ws.merged_cells:
                continue
            value = "" if cell.value is None else str(cell.value)
            max_len = max(max_len, len(value))
        ws.column_dimensions[col_letter].width = min(max_len + 2, 40)


def _merge_title(ws: Worksheet, row: int, text: str, *, width: int) -> None:
    ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=max(width, 4))
    cell = ws.cell(row=row, column=1, value=text)
    cell.font = TITLE_FONT
    cell.alignment = Alignment(horizontal="left", vertical="center")


def _write_metadata(ws: Worksheet, rows: list[tuple[str, object]], *, start_row: int) -> None:
    for offset, (label, value) in enumerate(rows):
        label_cell = ws.cell(row=start_row + offset, column=1, value=label)
        value_cell = ws.cell(row=start_row + offset, column=2, value=value)
        label_cell.font = BOLD_FONT
        label_cell.fill = META_LABEL_FILL
        label_cell.border = THIN_BORDER
        value_cell.font = MUTED_FONT
        value_cell.fill = META_VALUE_FILL
        value_cell.border = THIN_BORDER


def _write_day_row(
    ws: Worksheet,
    *,
    row: int,
    label: str,
    name: str,
    period: Period,
    slots: Sequence[str | None],
    fill: PatternFill | None = None,
) -> None:
    ws.cell(row=row, column=1, value=label)
    ws.cell(row=row, column=2, value=name)
    for day_date in period.days():
        slot = slots[day_date.day - 1] if day_date.day <= len(slots) else None
        ws.cell(row=row, column=_FIRST_DAY_COL + day_date.day - 1, value=slot)

    last_col = _FIRST_DAY_COL + period.days_in_month - 1
    for col_idx in range(1, last_col + 1):
        cell = ws.cell(row=row, column=col_idx)
        cell.border = THIN_BORDER
        if col_idx < _FIRST_DAY_COL:
            cell.alignment = Alignment(horizontal="left", vertical="center")
            if fill is not None:
                cell.fill = fill
                cell.font = BOLD_FONT
            continue
        cell.alignment = Alignment(horizontal="center", vertical="center")
        day_date = period.day(col_idx - _FIRST_DAY_COL + 1)
        if cell.value == OFF_CODE:
            cell.fill = OFF_FILL
        elif fill is not None:
            cell.fill = fill
        elif day_date.weekday() >= 5:
            cell.fill = WEEKEND_FILL


def _write_matrix_sheet(
    ws: Worksheet,
    *,
    group: GroupShift,
    matrix: MonthlyMatrix,
    period: Period,
    employees: Sequence[Employee],
) -> None:
    last_col = _FIRST_DAY_COL + period.days_in_month - 1
    _merge_title(ws, 1, f"Shift matrix {group.code} - {period.year}-{period.month:02d}", width=last_col)
    _write_metadata(
        ws,
        [
            ("Group", f"{group.code} {group.name}"),
            ("Period", period.key),
            ("Source", getattr(matrix.source, "value", matrix.source)),
            ("Version", matrix.version),
            ("Members", len(employees)),
        ],
        start_row=2,
    )

    ws.cell(row=_HEADER_ROW, column=1, value="Row")
    ws.cell(row=_HEADER_ROW, column=2, value="Name")
    for day_date in period.days():
        col_idx = _FIRST_DAY_COL + day_date.day - 1
        ws.cell(row=_HEADER_ROW, column=col_idx, value=day_date.day)
        ws.cell(row=_HEADER_ROW + 1, column=col_idx, value=WEEKDAY_LABELS[day_date.weekday()])
    _style_header(ws, _HEADER_ROW)
    _style_header(ws, _HEADER_ROW + 1)

    slots = list(matrix.slots or [])
    row = _HEADER_ROW + 2
    _write_day_row(ws, row=row, label=group.code, name=group.name, period=period, slots=slots, fill=GROUP_ROW_FILL)
    for employee in employees:
        row += 1
        _write_day_row(ws, row=row, label=str(employee.id), name=employee.full_name, period=period, slots=slots)

    ws.freeze_panes = ws.cell(row=_HEADER_ROW + 2, column=_FIRST_DAY_COL).coordinate
    _auto_width(ws)
    for day_number in range(1, period.days_in_month + 1):
        ws.column_dimensions[get_column_letter(_FIRST_DAY_COL + day_number - 1)].width = 6


def _write_legend_sheet(ws: Worksheet, shift_types: Sequence[ShiftType]) -> None:
    ws.append(["Code", "Name", "Start", "End", "Active"])
    _style_header(ws, 1)
    ws.append([OFF_CODE, "Day off", None, None, "yes"])
    for shift_type in shift_types:
        ws.append(
            [
                shift_type.code,
                shift_type.name,
                format_hhmm(shift_type.start_time_local),
                format_hhmm(shift_type.end_time_local),
                "yes" if shift_type.is_active else "no",
            ]
        )
    for row in ws.iter_rows(min_row=2, max_row=ws.max_row):
        for cell in row:
            cell.border = THIN_BORDER
    ws.freeze_panes = "A2"
    _auto_width(ws)


def render_matrix_workbook(
    *,
    group: GroupShift,
    matrix: MonthlyMatrix,
    employees: Sequence[Employee],
    shift_types: Sequence[ShiftType],
) -> bytes:
    period = parse_period(matrix.period)
    wb = Workbook()
    matrix_ws = wb.active
    matrix_ws.title = f"Matrix {period.key}"
    _write_matrix_sheet(matrix_ws, group=group, matrix=matrix, period=period, employees=employees)
    _write_legend_sheet(wb.create_sheet(title="Shift types"), shift_types)

    stream = BytesIO()
    wb.save(stream)
    return stream.getvalue()


def build_matrix_xlsx_bytes(db: Session, *, group_id: int, period_key: str) -> bytes:
    group = get_group(db, group_id)
    matrix = get_matrix(db, group_id=group_id, period_key=period_key)
    employees = list(
        db.scalars(
            select(Employee)
            .where(Employee.group_shift_id == group_id, Employee.is_active.is_(True))
            .order_by(Employee.full_name.asc(), Employee.id.asc())
        ).all()
    )
    shift_types = load_shift_types_by_code(db, [slot for slot in (matrix.slots or []) if slot])
    return render_matrix_workbook(
        group=group,
        matrix=matrix,
        employees=employees,
        shift_types=sorted(shift_types.values(), key=lambda item: item.code),
    )
