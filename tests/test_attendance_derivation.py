from __future__ import annotations

from datetime import time
import unittest

from shiftmatrix.services.attendance_derivation import (
    derive_day,
    earliness,
    lateness,
    parse_hhmm_minutes,
    sanitize_status,
)


class AttendanceDerivationTests(unittest.TestCase):
    def test_lateness_boundaries(self) -> None:
        self.assertEqual(lateness("08:00", "08:00"), 0)
        self.assertEqual(lateness("08:00", "08:05"), 5)
        self.assertEqual(lateness("08:00", "07:55"), 0)

    def test_earliness_boundaries(self) -> None:
        self.assertEqual(earliness("17:00", "17:00"), 0)
        self.assertEqual(earliness("17:00", "16:45"), 15)
        self.assertEqual(earliness("17:00", "17:30"), 0)

    def test_missing_or_malformed_times_give_zero(self) -> None:
        for actual in (None, "", "--:--", "8", "ab:cd", "08:00:00", "0²:00", "08:٣٠", 42):
            with self.subTest(actual=actual):
                self.assertEqual(lateness("08:00", actual), 0)  # type: ignore[arg-type]
                self.assertEqual(earliness("17:00", actual), 0)  # type: ignore[arg-type]
        self.assertEqual(lateness(None, "09:00"), 0)

    def test_time_objects_are_accepted(self) -> None:
        self.assertEqual(parse_hhmm_minutes(time(7, 30)), 450)
        self.assertEqual(lateness(time(7, 0), time(7, 12)), 12)

    def test_present_without_any_punch_becomes_absent(self) -> None:
        self.assertEqual(sanitize_status("H", "--:--", ""), "A")
        self.assertEqual(sanitize_status("H", None, None), "A")

    def test_present_with_single_punch_stays_present(self) -> None:
        self.assertEqual(sanitize_status("H", "08:00", ""), "H")
        self.assertEqual(sanitize_status("H", "--:--", "17:00"), "H")

    def test_other_statuses_pass_through(self) -> None:
        self.assertEqual(sanitize_status("C", None, None), "C")
        self.assertEqual(sanitize_status("S", "--:--", "--:--"), "S")
        self.assertIsNone(sanitize_status(None, None, None))

    def test_derive_day_bundles_all_values(self) -> None:
        derived = derive_day(
            standard_in=time(7, 0),
            standard_out=time(15, 0),
            actual_in="07:20",
            actual_out="14:50",
            status="H",
        )

        self.assertEqual(derived.late_minutes, 20)
        self.assertEqual(derived.early_minutes, 10)
        self.assertEqual(derived.status, "H")


if __name__ == "__main__":
    unittest.main()
