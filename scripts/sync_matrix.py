#!/usr/bin/env python
"""Stamp a group's monthly matrix onto its members' planned schedules.

Exit codes: 0 all employees synced, 2 partial failure, 1 the sync could not run.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from shiftmatrix.db import SessionLocal
from shiftmatrix.errors import ApiError, PartialBatchFailure
from shiftmatrix.logging_utils import setup_json_logging
from shiftmatrix.services.collaborators import SqlAttendanceStore, SqlEmployeeRoster
from shiftmatrix.services.sync import SyncReport, sync_group_matrix
from shiftmatrix.settings import get_settings, get_sync_limits

logger = logging.getLogger("shiftmatrix.cli")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PARTIAL = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--group-id", type=int, required=True)
    parser.add_argument("--period", required=True, help="YYYYMM or YYYY-MM")
    parser.add_argument("--max-workers", type=int, default=None)
    return parser.parse_args(argv)


async def run(group_id: int, period: str, *, max_workers: int | None = None) -> SyncReport:
    default_workers, employee_timeout_seconds, roster_timeout_seconds = get_sync_limits()
    with SessionLocal() as db:
        return await sync_group_matrix(
            db,
            group_id=group_id,
            period_key=period,
            roster=SqlEmployeeRoster(SessionLocal),
            store=SqlAttendanceStore(SessionLocal),
            max_workers=max_workers or default_workers,
            employee_timeout_seconds=employee_timeout_seconds,
            roster_timeout_seconds=roster_timeout_seconds,
        )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_json_logging(get_settings().log_level)
    try:
        report = asyncio.run(run(args.group_id, args.period, max_workers=args.max_workers))
    except ApiError as exc:
        logger.error("sync_failed", extra={"code": exc.code, "detail": exc.message})
        return EXIT_FAILED

    print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
    try:
        report.raise_for_errors()
    except PartialBatchFailure as exc:
        logger.warning("sync_partial_failure", extra={"detail": exc.message, "failed": len(exc.report.errors)})
        return EXIT_PARTIAL
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
