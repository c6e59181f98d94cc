from __future__ import annotations

from contextlib import nullcontext
from datetime import date, time
import unittest

from shiftmatrix.models import EmployeeScheduleDay
from shiftmatrix.services.collaborators import SqlAttendanceStore, SqlEmployeeRoster, StandardSchedule


class _ScalarRows:
    def __init__(self, rows):
        self._rows = rows

    def all(self):
        return self._rows


class _FakeSession:
    def __init__(self, *, scalar_value=None, scalars_value=None):
        self._scalar_value = scalar_value
        self._scalars_value = scalars_value or []
        self.added: list[object] = []
        self.begin_calls = 0

    def __enter__(self):  # type: ignore[no-untyped-def]
        return self

    def __exit__(self, exc_type, exc, tb):  # type: ignore[no-untyped-def]
        return False

    def begin(self):  # type: ignore[no-untyped-def]
        self.begin_calls += 1
        return nullcontext()

    def scalar(self, _statement):  # type: ignore[no-untyped-def]
        return self._scalar_value

    def scalars(self, _statement):  # type: ignore[no-untyped-def]
        return _ScalarRows(self._scalars_value)

    def add(self, value) -> None:  # type: ignore[no-untyped-def]
        self.added.append(value)


def _schedule(**overrides) -> StandardSchedule:
    values = {
        "day_date": date(2025, 1, 6),
        "period": "202501",
        "group_shift_id": 3,
        "shift_code": "S1",
        "is_working_day": True,
        "clock_in": time(7, 0),
        "clock_out": time(15, 0),
    }
    values.update(overrides)
    return StandardSchedule(**values)


class SqlAttendanceStoreTests(unittest.TestCase):
    def test_missing_row_is_inserted(self) -> None:
        session = _FakeSession(scalar_value=None)
        store = SqlAttendanceStore(lambda: session)

        changed = store.upsert_standard_schedule(5, _schedule())

        self.assertTrue(changed)
        self.assertEqual(session.begin_calls, 1)
        self.assertEqual(len(session.added), 1)
        row = session.added[0]
        self.assertIsInstance(row, EmployeeScheduleDay)
        self.assertEqual(row.employee_id, 5)
        self.assertEqual(row.standard_in, time(7, 0))
        self.assertIsNone(row.actual_in)

    def test_identical_row_is_skipped(self) -> None:
        row = EmployeeScheduleDay(
            employee_id=5,
            day_date=date(2025, 1, 6),
            period="202501",
            group_shift_id=3,
            shift_code="S1",
            is_working_day=True,
            standard_in=time(7, 0),
            standard_out=time(15, 0),
        )
        store = SqlAttendanceStore(lambda: _FakeSession(scalar_value=row))

        self.assertFalse(store.upsert_standard_schedule(5, _schedule()))

    def test_changed_row_keeps_actual_fields(self) -> None:
        row = EmployeeScheduleDay(
            employee_id=5,
            day_date=date(2025, 1, 6),
            period="202501",
            group_shift_id=3,
            shift_code="S2",
            is_working_day=True,
            standard_in=time(15, 0),
            standard_out=time(23, 0),
            actual_in=time(14, 58),
            actual_out=time(23, 1),
            status_code="H",
        )
        session = _FakeSession(scalar_value=row)
        store = SqlAttendanceStore(lambda: session)

        changed = store.upsert_standard_schedule(5, _schedule(shift_code="OFF", is_working_day=False, clock_in=None, clock_out=None))

        self.assertTrue(changed)
        self.assertEqual(session.added, [])
        self.assertEqual(row.shift_code, "OFF")
        self.assertFalse(row.is_working_day)
        self.assertIsNone(row.standard_in)
        self.assertEqual((row.actual_in, row.actual_out, row.status_code), (time(14, 58), time(23, 1), "H"))

    def test_get_actual_reads_recorded_punches(self) -> None:
        row = EmployeeScheduleDay(employee_id=5, day_date=date(2025, 1, 6), actual_in=time(7, 3), status_code="H")
        store = SqlAttendanceStore(lambda: _FakeSession(scalar_value=row))

        actual = store.get_actual(5, date(2025, 1, 6))

        self.assertIsNotNone(actual)
        self.assertEqual(actual.clock_in, time(7, 3))
        self.assertIsNone(actual.clock_out)
        self.assertEqual(actual.status, "H")
        self.assertIsNone(SqlAttendanceStore(lambda: _FakeSession()).get_actual(5, date(2025, 1, 7)))


class SqlEmployeeRosterTests(unittest.TestCase):
    def test_active_members_are_returned_as_ids(self) -> None:
        roster = SqlEmployeeRoster(lambda: _FakeSession(scalars_value=[4, 9]))

        self.assertEqual(roster.active_members_of(2), [4, 9])


if __name__ == "__main__":
    unittest.main()
