from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from pts_payroll.errors import PeriodStateConflictError
from pts_payroll.models import Payout, PayoutItem, PayoutItemType, PeriodStatus
from pts_payroll.schemas import CalculationResult, RetroactiveResult
from pts_payroll.services.monthly import round_money
from pts_payroll.services.period_lookup import require_period

logger = logging.getLogger("pts_payroll.payouts")

ZERO = Decimal("0")


def _retro_items(retro: RetroactiveResult | None) -> list[PayoutItem]:
    if retro is None:
        return []
    items: list[PayoutItem] = []
    for detail in retro.retro_details:
        if detail.diff == ZERO:
            continue
        item_type = PayoutItemType.RETROACTIVE_ADD if detail.diff > ZERO else PayoutItemType.RETROACTIVE_DEDUCT
        items.append(
            PayoutItem(
                reference_month=detail.month,
                reference_year=detail.year,
                item_type=item_type,
                amount=abs(detail.diff),
                description=detail.remark[:255],
            )
        )
    return items


def delete_payout(db: Session, *, period_id: int, citizen_id: str) -> None:
    payout_ids = select(Payout.id).where(Payout.period_id == period_id, Payout.citizen_id == citizen_id)
    db.execute(delete(PayoutItem).where(PayoutItem.payout_id.in_(payout_ids)))
    db.execute(delete(Payout).where(Payout.period_id == period_id, Payout.citizen_id == citizen_id))


def delete_period_payouts(db: Session, period_id: int) -> None:
    payout_ids = select(Payout.id).where(Payout.period_id == period_id)
    db.execute(delete(PayoutItem).where(PayoutItem.payout_id.in_(payout_ids)))
    db.execute(delete(Payout).where(Payout.period_id == period_id))


def save_payout(
    db: Session,
    *,
    period_id: int,
    result: CalculationResult,
    retro: RetroactiveResult | None = None,
) -> Payout:
    """Replace the payout row of ``(period, citizen)`` and its retroactive ledger items.

    Nothing is committed here; the caller owns the transaction so the delete,
    the insert and the ledger items land together or not at all.
    """
    period = require_period(db, period_id)
    if period.status == PeriodStatus.CLOSED:
        raise PeriodStateConflictError(f"Period {period.period_month}/{period.period_year} is closed")

    retro_total = retro.total_retro if retro is not None else ZERO
    delete_payout(db, period_id=period_id, citizen_id=result.citizen_id)
    db.flush()

    payout = Payout(
        period_id=period_id,
        citizen_id=result.citizen_id,
        master_rate_id=result.master_rate_id,
        rate_snapshot=result.rate_snapshot,
        calculated_amount=result.net_payment,
        retroactive_amount=retro_total,
        total_payable=round_money(result.net_payment + retro_total),
        eligible_days=Decimal(result.eligible_days),
        deducted_days=result.deducted_days,
        remark=result.remark or None,
    )
    payout.items = _retro_items(retro)
    db.add(payout)
    db.flush()

    logger.info(
        "payroll_payout_saved",
        extra={
            "period_id": period_id,
            "citizen_id": result.citizen_id,
            "calculated_amount": payout.calculated_amount,
            "retroactive_amount": payout.retroactive_amount,
            "total_payable": payout.total_payable,
            "ledger_items": len(payout.items),
        },
    )
    return payout
