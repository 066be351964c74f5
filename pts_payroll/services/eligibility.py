from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from pts_payroll.models import EmployeeEligibility
from pts_payroll.services.calendar_math import iter_days

logger = logging.getLogger("pts_payroll.eligibility")


@dataclass(frozen=True, slots=True)
class RateSpan:
    eligibility_id: int | None
    master_rate_id: int | None
    amount: Decimal
    start: date
    end: date


@dataclass(frozen=True, slots=True)
class RateResolution:
    spans: list[RateSpan]
    ambiguous_days: frozenset[date]


def record_applies_on(record: EmployeeEligibility, day: date) -> bool:
    if not record.is_active:
        return False
    if record.effective_date > day:
        return False
    return record.expiry_date is None or record.expiry_date >= day


def candidates_for_day(records: list[EmployeeEligibility], day: date) -> list[EmployeeEligibility]:
    """Records in force on ``day`` that share the latest effective date."""
    applicable = [record for record in records if record_applies_on(record, day)]
    if not applicable:
        return []
    latest = max(record.effective_date for record in applicable)
    return [record for record in applicable if record.effective_date == latest]


def resolve_rate_for_day(records: list[EmployeeEligibility], day: date) -> EmployeeEligibility | None:
    candidates = candidates_for_day(records, day)
    if len(candidates) != 1:
        return None
    return candidates[0]


def _rate_amount(record: EmployeeEligibility) -> Decimal:
    if record.master_rate is None:
        return Decimal("0")
    return Decimal(record.master_rate.amount)


def resolve_rate_spans(
    records: list[EmployeeEligibility],
    month_start: date,
    month_end: date,
) -> RateResolution:
    spans: list[RateSpan] = []
    ambiguous: set[date] = set()
    current: EmployeeEligibility | None = None
    span_start: date | None = None
    previous_day: date | None = None

    def _close(record: EmployeeEligibility, start: date, end: date) -> None:
        spans.append(
            RateSpan(
                eligibility_id=record.id,
                master_rate_id=record.master_rate_id,
                amount=_rate_amount(record),
                start=start,
                end=end,
            )
        )

    for day in iter_days(month_start, month_end):
        candidates = candidates_for_day(records, day)
        record = candidates[0] if len(candidates) == 1 else None
        if len(candidates) > 1:
            ambiguous.add(day)

        if record is not current:
            if current is not None and span_start is not None and previous_day is not None:
                _close(current, span_start, previous_day)
            current = record
            span_start = day
        previous_day = day

    if current is not None and span_start is not None and previous_day is not None:
        _close(current, span_start, previous_day)

    if ambiguous:
        logger.warning(
            "payroll_eligibility_ambiguous",
            extra={
                "citizen_id": records[0].citizen_id if records else None,
                "ambiguous_days": len(ambiguous),
                "first_ambiguous_day": min(ambiguous).isoformat(),
            },
        )

    return RateResolution(spans=spans, ambiguous_days=frozenset(ambiguous))


def list_eligibility_records(db: Session, citizen_id: str) -> list[EmployeeEligibility]:
    return list(
        db.scalars(
            select(EmployeeEligibility)
            .options(selectinload(EmployeeEligibility.master_rate))
            .where(
                EmployeeEligibility.citizen_id == citizen_id,
                EmployeeEligibility.is_active.is_(True),
            )
            .order_by(EmployeeEligibility.effective_date.asc(), EmployeeEligibility.id.asc())
        ).all()
    )
