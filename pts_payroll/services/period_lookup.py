from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from pts_payroll.errors import PeriodNotFoundError
from pts_payroll.models import PayrollPeriod


def get_period_by_month(db: Session, year: int, month: int) -> PayrollPeriod | None:
    return db.scalar(
        select(PayrollPeriod).where(
            PayrollPeriod.period_year == year,
            PayrollPeriod.period_month == month,
        )
    )


def require_period(db: Session, period_id: int, *, for_update: bool = False) -> PayrollPeriod:
    stmt = select(PayrollPeriod).where(PayrollPeriod.id == period_id)
    if for_update:
        stmt = stmt.with_for_update()
    period = db.scalar(stmt)
    if period is None:
        raise PeriodNotFoundError(f"Period {period_id} not found")
    return period
