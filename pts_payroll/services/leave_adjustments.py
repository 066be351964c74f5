from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from pts_payroll.errors import LeaveRequestNotFoundError
from pts_payroll.models import LeaveRequest
from pts_payroll.schemas import LeaveAdjustmentRequest

logger = logging.getLogger("pts_payroll.leave_adjustments")


def _ensure_leave_exists(db: Session, leave_id: int) -> LeaveRequest:
    leave = db.get(LeaveRequest, leave_id)
    if leave is None:
        raise LeaveRequestNotFoundError(f"Leave request {leave_id} not found")
    return leave


def _append_officer_note(remark: str | None, note: str | None) -> str | None:
    note = (note or "").strip()
    if not note:
        return remark
    tag = f"[Edited by Officer: {note}]"
    return f"{remark} {tag}" if remark else tag


def adjust_leave_request(
    db: Session,
    leave_id: int,
    payload: LeaveAdjustmentRequest,
    *,
    officer: str | None = None,
) -> LeaveRequest:
    """Override the dates and duration an officer verified for a leave request.

    The requested values stay untouched; deductions read the manual ones once
    ``is_adjusted`` is set.
    """
    leave = _ensure_leave_exists(db, leave_id)
    leave.manual_start_date = payload.manual_start_date
    leave.manual_end_date = payload.manual_end_date
    leave.manual_duration_days = payload.manual_duration_days
    leave.is_adjusted = True
    leave.remark = _append_officer_note(leave.remark, payload.remark)
    db.commit()
    db.refresh(leave)

    logger.info(
        "payroll_leave_adjusted",
        extra={
            "leave_id": leave_id,
            "citizen_id": leave.citizen_id,
            "officer": officer,
            "manual_start_date": leave.manual_start_date,
            "manual_end_date": leave.manual_end_date,
            "manual_duration_days": leave.manual_duration_days,
        },
    )
    return leave
