from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from pts_payroll.constants import RETRO_DIFF_THRESHOLD
from pts_payroll.errors import PayrollValidationError
from pts_payroll.models import Payout, PayoutItem, PayoutItemType, PayrollPeriod, PeriodStatus
from pts_payroll.schemas import RetroactiveResult, RetroDetail
from pts_payroll.services.calendar_math import shift_month
from pts_payroll.services.monthly import build_monthly_result, round_money, validate_calculation_request
from pts_payroll.services.period_lookup import get_period_by_month
from pts_payroll.settings import get_retro_lookback_months

logger = logging.getLogger("pts_payroll.retroactive")

ZERO = Decimal("0")
_RETRO_SIGN = {
    PayoutItemType.RETROACTIVE_ADD: Decimal("1"),
    PayoutItemType.RETROACTIVE_DEDUCT: Decimal("-1"),
}


def _original_paid(db: Session, citizen_id: str, period_id: int) -> Decimal:
    amount = db.scalar(
        select(Payout.calculated_amount).where(
            Payout.citizen_id == citizen_id,
            Payout.period_id == period_id,
        )
    )
    return Decimal(amount) if amount is not None else ZERO


def ledgered_adjustment(
    db: Session,
    citizen_id: str,
    *,
    reference_year: int,
    reference_month: int,
    exclude_period_id: int | None = None,
) -> Decimal:
    """Net of retroactive items already paid against a historical month."""
    stmt = (
        select(PayoutItem.item_type, PayoutItem.amount)
        .join(Payout, PayoutItem.payout_id == Payout.id)
        .where(
            Payout.citizen_id == citizen_id,
            PayoutItem.reference_month == reference_month,
            PayoutItem.reference_year == reference_year,
            PayoutItem.item_type.in_(list(_RETRO_SIGN)),
        )
    )
    if exclude_period_id is not None:
        stmt = stmt.where(Payout.period_id != exclude_period_id)

    total = ZERO
    for item_type, amount in db.execute(stmt).all():
        total += _RETRO_SIGN[item_type] * Decimal(amount)
    return total


def paid_amount_for(
    db: Session,
    citizen_id: str,
    period: PayrollPeriod,
    *,
    exclude_period_id: int | None = None,
) -> Decimal:
    return _original_paid(db, citizen_id, period.id) + ledgered_adjustment(
        db,
        citizen_id,
        reference_year=period.period_year,
        reference_month=period.period_month,
        exclude_period_id=exclude_period_id,
    )


def calculate_retroactive(
    db: Session,
    citizen_id: str,
    year: int,
    month: int,
    look_back_months: int | None = None,
) -> RetroactiveResult:
    citizen_id, year, month = validate_calculation_request(citizen_id, year, month)
    if look_back_months is None:
        look_back_months = get_retro_lookback_months()
    if isinstance(look_back_months, bool) or not isinstance(look_back_months, int) or look_back_months < 0:
        raise PayrollValidationError("look_back_months must be a non-negative integer")

    current_period = get_period_by_month(db, year, month)
    exclude_period_id = current_period.id if current_period is not None else None

    total_retro = ZERO
    details: list[RetroDetail] = []

    for offset in range(1, look_back_months + 1):
        target_year, target_month = shift_month(year, month, -offset)
        period = get_period_by_month(db, target_year, target_month)
        if period is None or period.status != PeriodStatus.CLOSED:
            continue

        paid = paid_amount_for(db, citizen_id, period, exclude_period_id=exclude_period_id)
        should_be = build_monthly_result(db, citizen_id, target_year, target_month).net_payment
        diff = round_money(should_be - paid)
        if abs(diff) <= RETRO_DIFF_THRESHOLD:
            continue

        total_retro += diff
        details.append(
            RetroDetail(
                month=target_month,
                year=target_year,
                paid_amount=round_money(paid),
                should_be_amount=should_be,
                diff=diff,
                remark=f"Adjustment for {target_month}/{target_year}",
            )
        )
        logger.info(
            "payroll_retro_diff",
            extra={
                "citizen_id": citizen_id,
                "year": year,
                "month": month,
                "reference_year": target_year,
                "reference_month": target_month,
                "paid_amount": paid,
                "should_be_amount": should_be,
                "diff": diff,
            },
        )

    return RetroactiveResult(total_retro=round_money(total_retro), retro_details=details)
