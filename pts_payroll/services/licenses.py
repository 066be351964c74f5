from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from pts_payroll.constants import LIFETIME_LICENSE_KEYWORDS
from pts_payroll.models import EmployeeLicense
from pts_payroll.services.calendar_math import clip_range, iter_days

VALID_LICENSE_STATUSES = frozenset({"", "ACTIVE"})


def is_lifetime_license(
    record: EmployeeLicense,
    keywords: Sequence[str] = LIFETIME_LICENSE_KEYWORDS,
) -> bool:
    haystacks = [value for value in (record.occupation_name, record.license_name) if value]
    return any(keyword in haystack for haystack in haystacks for keyword in keywords)


def _status_is_valid(record: EmployeeLicense) -> bool:
    return (record.status or "").strip().upper() in VALID_LICENSE_STATUSES


def license_valid_days(
    records: list[EmployeeLicense],
    month_start: date,
    month_end: date,
    *,
    keywords: Sequence[str] = LIFETIME_LICENSE_KEYWORDS,
) -> frozenset[date]:
    """Union of every license interval overlapping the month.

    Overlapping records never count a day twice. A lifetime occupation stays
    valid from its start date on, whatever its recorded expiry or status.
    """
    valid: set[date] = set()
    for record in records:
        if is_lifetime_license(record, keywords):
            window = clip_range(record.valid_from, month_end, month_start, month_end)
        elif _status_is_valid(record):
            window = clip_range(record.valid_from, record.valid_until or month_end, month_start, month_end)
        else:
            continue
        if window is None:
            continue
        valid.update(iter_days(*window))
    return frozenset(valid)


def list_licenses(db: Session, citizen_id: str) -> list[EmployeeLicense]:
    return list(
        db.scalars(
            select(EmployeeLicense)
            .where(EmployeeLicense.citizen_id == citizen_id)
            .order_by(EmployeeLicense.valid_from.asc(), EmployeeLicense.id.asc())
        ).all()
    )
