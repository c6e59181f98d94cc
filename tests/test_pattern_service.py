from __future__ import annotations

from datetime import date, time
import unittest

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.dialects import postgresql

from shiftmatrix.errors import ConflictError, NotFoundError, ValidationError
from shiftmatrix.models import GroupShift, ShiftPattern, ShiftType
from shiftmatrix.schemas import GroupShiftUpsert, ShiftPatternUpsert, ShiftTypeUpsert
from shiftmatrix.services.groups import deactivate_group, upsert_group
from shiftmatrix.services.patterns import delete_pattern, parse_pattern_tokens, upsert_pattern
from shiftmatrix.services.shift_types import (
    delete_shift_type,
    find_shift_type_references,
    parse_hhmm,
    upsert_shift_type,
)


class _ScalarRows:
    def __init__(self, rows):
        self._rows = rows

    def all(self):
        return self._rows


class _FakeDB:
    def __init__(self, *, objects=None, scalar_values=None, scalars_values=None):
        self._objects = objects or {}
        self._scalar_values = list(scalar_values or [])
        self._scalars_values = list(scalars_values or [])
        self.added: list[object] = []
        self.deleted: list[object] = []
        self.statements: list[object] = []
        self.commits = 0

    def get(self, model, object_id):  # type: ignore[no-untyped-def]
        return self._objects.get((model, object_id))

    def scalar(self, _statement):  # type: ignore[no-untyped-def]
        if not self._scalar_values:
            return None
        return self._scalar_values.pop(0)

    def scalars(self, statement):  # type: ignore[no-untyped-def]
        self.statements.append(statement)
        if not self._scalars_values:
            return _ScalarRows([])
        return _ScalarRows(self._scalars_values.pop(0))

    def add(self, value) -> None:  # type: ignore[no-untyped-def]
        self.added.append(value)

    def delete(self, value) -> None:  # type: ignore[no-untyped-def]
        self.deleted.append(value)

    def commit(self) -> None:
        self.commits += 1

    def refresh(self, _value) -> None:  # type: ignore[no-untyped-def]
        return None


def _shift_type(code: str, *, is_active: bool = True) -> ShiftType:
    return ShiftType(id=1, code=code, name=code, start_time_local=time(7, 0), end_time_local=time(15, 0), is_active=is_active)


class PatternTokenTests(unittest.TestCase):
    def test_comma_string_and_aliases_are_normalized(self) -> None:
        self.assertEqual(parse_pattern_tokens("s1, S1,0,off"), ["S1", "S1", "OFF", "OFF"])
        self.assertEqual(parse_pattern_tokens(["S2", "Off"]), ["S2", "OFF"])
        self.assertEqual(parse_pattern_tokens(None), [])

    def test_blank_token_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            parse_pattern_tokens("S1,,S2")


class PatternServiceTests(unittest.TestCase):
    def test_create_pattern_with_known_codes(self) -> None:
        db = _FakeDB(scalars_values=[[_shift_type("S1"), _shift_type("S2")]], scalar_values=[None])
        payload = ShiftPatternUpsert(name="Two shift", sequence="S1,S1,OFF,S2,S2,OFF")

        pattern = upsert_pattern(db, payload=payload)  # type: ignore[arg-type]

        self.assertEqual(pattern.sequence, ["S1", "S1", "OFF", "S2", "S2", "OFF"])
        self.assertEqual(pattern.cycle_length, 6)
        self.assertEqual(db.commits, 1)

    def test_all_off_pattern_is_allowed(self) -> None:
        db = _FakeDB(scalar_values=[None])

        pattern = upsert_pattern(db, payload=ShiftPatternUpsert(name="Idle", sequence=["OFF"]))  # type: ignore[arg-type]

        self.assertEqual(pattern.sequence, ["OFF"])

    def test_empty_sequence_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            upsert_pattern(_FakeDB(), payload=ShiftPatternUpsert(name="Empty", sequence=[]))  # type: ignore[arg-type]

    def test_inactive_code_is_rejected(self) -> None:
        db = _FakeDB(scalars_values=[[]])

        with self.assertRaises(ValidationError):
            upsert_pattern(db, payload=ShiftPatternUpsert(name="Night", sequence=["S3", "OFF"]))  # type: ignore[arg-type]

    def test_duplicate_name_is_conflict(self) -> None:
        db = _FakeDB(scalars_values=[[_shift_type("S1")]], scalar_values=[ShiftPattern(id=9, name="Office", sequence=["S1"])])

        with self.assertRaises(ConflictError):
            upsert_pattern(db, payload=ShiftPatternUpsert(name="Office", sequence=["S1"]))  # type: ignore[arg-type]

    def test_delete_bound_pattern_is_conflict(self) -> None:
        pattern = ShiftPattern(id=4, name="Office", sequence=["S1"])
        group = GroupShift(id=2, code="01", name="Line A", pattern_id=4, pattern_reference_date=date(2025, 1, 6))
        db = _FakeDB(objects={(ShiftPattern, 4): pattern}, scalars_values=[[group]])

        with self.assertRaises(ConflictError):
            delete_pattern(db, 4)  # type: ignore[arg-type]
        self.assertEqual(db.deleted, [])

    def test_delete_unbound_pattern(self) -> None:
        pattern = ShiftPattern(id=4, name="Office", sequence=["S1"])
        db = _FakeDB(objects={(ShiftPattern, 4): pattern}, scalars_values=[[]])

        delete_pattern(db, 4)  # type: ignore[arg-type]

        self.assertEqual(db.deleted, [pattern])


class ShiftTypeServiceTests(unittest.TestCase):
    def test_parse_hhmm_rejects_out_of_range(self) -> None:
        self.assertEqual(parse_hhmm("23:59"), time(23, 59))
        with self.assertRaises(ValidationError):
            parse_hhmm("24:00")

    def test_reserved_code_is_rejected(self) -> None:
        payload = ShiftTypeUpsert(code="off", name="Day off", start_time_local="00:00", end_time_local="00:00")
        with self.assertRaises(ValidationError):
            upsert_shift_type(_FakeDB(), payload=payload)  # type: ignore[arg-type]

    def test_create_normalizes_code(self) -> None:
        db = _FakeDB(scalar_values=[None])
        payload = ShiftTypeUpsert(code=" ls1 ", name="Long shift", start_time_local="07:00", end_time_local="19:00")

        shift_type = upsert_shift_type(db, payload=payload)  # type: ignore[arg-type]

        self.assertEqual(shift_type.code, "LS1")
        self.assertEqual(shift_type.end_time_local, time(19, 0))

    def test_rename_of_referenced_code_is_conflict(self) -> None:
        existing = _shift_type("S1")
        db = _FakeDB(objects={(ShiftType, 1): existing}, scalar_values=[None], scalars_values=[[4], []])
        payload = ShiftTypeUpsert(code="M1", name="Morning", start_time_local="07:00", end_time_local="15:00")

        with self.assertRaises(ConflictError):
            upsert_shift_type(db, payload=payload, shift_type_id=1)  # type: ignore[arg-type]

    def test_delete_referenced_by_matrix_is_conflict(self) -> None:
        existing = _shift_type("S2")
        db = _FakeDB(objects={(ShiftType, 1): existing}, scalars_values=[[], [8]])

        with self.assertRaises(ConflictError) as ctx:
            delete_shift_type(db, 1)  # type: ignore[arg-type]
        self.assertIn("1 matrix", ctx.exception.message)
        self.assertEqual(db.deleted, [])

    def test_reference_lookup_filters_in_sql(self) -> None:
        db = _FakeDB(scalars_values=[[], []])

        references = find_shift_type_references(db, "S2")  # type: ignore[arg-type]

        self.assertEqual(references, {"patterns": [], "matrices": []})
        compiled = [str(stmt.compile(dialect=postgresql.dialect())) for stmt in db.statements]
        self.assertIn("shift_patterns.sequence @>", compiled[0])
        self.assertIn("SELECT shift_patterns.id", compiled[0])
        self.assertIn("monthly_matrices.slots @>", compiled[1])
        self.assertIn("SELECT monthly_matrices.id", compiled[1])

    def test_delete_unreferenced(self) -> None:
        existing = _shift_type("S9")
        db = _FakeDB(objects={(ShiftType, 1): existing}, scalars_values=[[], []])

        delete_shift_type(db, 1)  # type: ignore[arg-type]

        self.assertEqual(db.deleted, [existing])

    def test_delete_missing_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            delete_shift_type(_FakeDB(), 1)  # type: ignore[arg-type]


class GroupServiceTests(unittest.TestCase):
    def test_pattern_requires_reference_date(self) -> None:
        with self.assertRaises(PydanticValidationError):
            GroupShiftUpsert(code="01", name="Line A", pattern_id=4)

    def test_bind_inactive_pattern_is_rejected(self) -> None:
        pattern = ShiftPattern(id=4, name="Office", sequence=["S1"], is_active=False)
        db = _FakeDB(objects={(ShiftPattern, 4): pattern})
        payload = GroupShiftUpsert(code="01", name="Line A", pattern_id=4, pattern_reference_date=date(2025, 1, 6))

        with self.assertRaises(ValidationError):
            upsert_group(db, payload=payload)  # type: ignore[arg-type]

    def test_create_group_with_reference_date_only(self) -> None:
        db = _FakeDB(scalar_values=[None])
        payload = GroupShiftUpsert(code="02", name="Line B", pattern_reference_date=date(2025, 1, 6))

        group = upsert_group(db, payload=payload)  # type: ignore[arg-type]

        self.assertIsNone(group.pattern_id)
        self.assertEqual(group.pattern_reference_date, date(2025, 1, 6))

    def test_deactivate_keeps_row(self) -> None:
        group = GroupShift(id=2, code="01", name="Line A", is_active=True)
        db = _FakeDB(objects={(GroupShift, 2): group})

        deactivate_group(db, 2)  # type: ignore[arg-type]

        self.assertFalse(group.is_active)
        self.assertEqual(db.commits, 1)


if __name__ == "__main__":
    unittest.main()
