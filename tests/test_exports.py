from __future__ import annotations

import unittest
from datetime import time
from io import BytesIO

from openpyxl import load_workbook

from shiftmatrix.errors import NotFoundError
from shiftmatrix.models import Employee, GroupShift, MatrixSource, MonthlyMatrix, ShiftType
from shiftmatrix.services.exports import build_matrix_xlsx_bytes, render_matrix_workbook


class _EmptyDB:
    def get(self, _model, _object_id):  # type: ignore[no-untyped-def]
        return None

    def scalar(self, _statement):  # type: ignore[no-untyped-def]
        return None


class MatrixExportTests(unittest.TestCase):
    def _render(self) -> bytes:
        group = GroupShift(id=2, code="01", name="Line A", is_active=True)
        matrix = MonthlyMatrix(
            id=8,
            group_shift_id=2,
            period="202502",
            slots=["S1", "OFF"] * 14 + [None, None, None],
            source=MatrixSource.PATTERN,
            version=5,
        )
        employees = [
            Employee(id=21, full_name="Dewi", group_shift_id=2, is_active=True),
            Employee(id=22, full_name="Budi", group_shift_id=2, is_active=True),
        ]
        shift_types = [
            ShiftType(id=1, code="S1", name="Shift 1", start_time_local=time(7, 0), end_time_local=time(15, 0), is_active=True),
        ]
        return render_matrix_workbook(group=group, matrix=matrix, employees=employees, shift_types=shift_types)

    def test_matrix_sheet_has_group_and_member_rows(self) -> None:
        workbook = load_workbook(BytesIO(self._render()))

        self.assertEqual(workbook.sheetnames, ["Matrix 202502", "Shift types"])
        ws = workbook["Matrix 202502"]
        self.assertIn("01", ws["A1"].value)
        self.assertEqual(ws["B3"].value, "202502")
        self.assertEqual(ws["B4"].value, "PATTERN")
        self.assertEqual(ws["B5"].value, 5)

        header = [ws.cell(row=8, column=col).value for col in range(1, 32)]
        self.assertEqual(header[:3], ["Row", "Name", 1])
        self.assertEqual(header[29], 28)
        self.assertIsNone(ws.cell(row=8, column=31).value)
        self.assertEqual(ws.cell(row=9, column=3).value, "Sat")  # 2025-02-01

        self.assertEqual(ws.cell(row=10, column=1).value, "01")
        self.assertEqual(ws.cell(row=11, column=2).value, "Dewi")
        self.assertEqual(ws.cell(row=12, column=2).value, "Budi")
        self.assertEqual(ws.cell(row=11, column=3).value, "S1")
        self.assertEqual(ws.cell(row=11, column=4).value, "OFF")

    def test_legend_sheet_lists_off_and_shift_types(self) -> None:
        ws = load_workbook(BytesIO(self._render()))["Shift types"]

        rows = [tuple(cell.value for cell in row) for row in ws.iter_rows(min_row=1, max_row=ws.max_row)]
        self.assertEqual(rows[0], ("Code", "Name", "Start", "End", "Active"))
        self.assertEqual(rows[1][0], "OFF")
        self.assertEqual(rows[2], ("S1", "Shift 1", "07:00", "15:00", "yes"))

    def test_export_for_unknown_group_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            build_matrix_xlsx_bytes(_EmptyDB(), group_id=99, period_key="202502")  # type: ignore[arg-type]


if __name__ == "__main__":
    unittest.main()
