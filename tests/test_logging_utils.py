from __future__ import annotations

import json
import logging
import sys
import unittest
from datetime import date

from shiftmatrix.logging_utils import JsonFormatter


class JsonFormatterTests(unittest.TestCase):
    def test_extras_are_flattened_into_payload(self) -> None:
        record = logging.LogRecord("shiftmatrix.sync", logging.INFO, __file__, 1, "sync_completed", None, None)
        record.group_shift_id = 7
        record.period = "202501"
        record.reference_date = date(2025, 1, 6)

        payload = json.loads(JsonFormatter().format(record))

        self.assertEqual(payload["event"], "sync_completed")
        self.assertEqual(payload["level"], "INFO")
        self.assertEqual(payload["logger"], "shiftmatrix.sync")
        self.assertEqual(payload["group_shift_id"], 7)
        self.assertEqual(payload["reference_date"], "2025-01-06")
        self.assertNotIn("msg", payload)
        self.assertNotIn("exception", payload)

    def test_exception_is_rendered(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        payload = json.loads(JsonFormatter().format(record))

        self.assertIn("RuntimeError: boom", payload["exception"])


if __name__ == "__main__":
    unittest.main()
