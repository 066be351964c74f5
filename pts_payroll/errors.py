from __future__ import annotations

from typing import Any


class PayrollError(Exception):
    code = "PAYROLL_ERROR"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message}}


class PayrollValidationError(PayrollError):
    code = "VALIDATION_ERROR"


class PeriodNotFoundError(PayrollError):
    code = "PERIOD_NOT_FOUND"


class LeaveRequestNotFoundError(PayrollError):
    code = "LEAVE_REQUEST_NOT_FOUND"


class PeriodStateConflictError(PayrollError):
    code = "PERIOD_STATE_CONFLICT"
