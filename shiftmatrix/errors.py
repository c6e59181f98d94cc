from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import Request
from fastapi.responses import JSONResponse

if TYPE_CHECKING:
    from shiftmatrix.services.sync import SyncReport


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


class ValidationError(ApiError):
    """Rejected input: bad pattern sequence, bad matrix slot, bad period, ..."""

    def __init__(self, message: str):
        super().__init__(422, "VALIDATION_ERROR", message)


class ConflictError(ApiError):
    def __init__(self, message: str):
        super().__init__(409, "CONFLICT", message)


class NotFoundError(ApiError):
    def __init__(self, message: str):
        super().__init__(404, "NOT_FOUND", message)


class InvalidConfigurationError(ApiError):
    """The group is not set up for the requested operation (e.g. no pattern bound)."""

    def __init__(self, message: str):
        super().__init__(422, "INVALID_CONFIGURATION", message)


class PartialBatchFailure(ApiError):
    def __init__(self, report: SyncReport):
        failed = len(report.errors)
        super().__init__(
            207,
            "PARTIAL_BATCH_FAILURE",
            f"Sync finished with {failed} failed employee(s) out of {report.employees_total}.",
        )
        self.report = report


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    payload: dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
        }
    }
    if details:
        payload["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=payload)
