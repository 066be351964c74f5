from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from pts_payroll.errors import PayrollValidationError, PeriodStateConflictError
from pts_payroll.models import (
    Employee,
    EmployeeEligibility,
    Payout,
    PayrollPeriod,
    PeriodAction,
    PeriodStatus,
)
from pts_payroll.schemas import (
    BatchItemError,
    BatchResult,
    OnDemandResult,
    PeriodCalculationSummary,
    PeriodPayoutRow,
    PeriodRead,
    PeriodStatusChange,
)
from pts_payroll.services.calendar_math import month_bounds
from pts_payroll.services.monthly import (
    build_monthly_result,
    calculate_monthly,
    round_money,
    validate_calculation_request,
)
from pts_payroll.services.payouts import delete_period_payouts, save_payout
from pts_payroll.services.period_lookup import get_period_by_month, require_period
from pts_payroll.services.retroactive import calculate_retroactive
from pts_payroll.settings import get_retro_lookback_months

logger = logging.getLogger("pts_payroll.periods")

ZERO = Decimal("0")

_TRANSITIONS: dict[PeriodAction, tuple[PeriodStatus, PeriodStatus]] = {
    PeriodAction.SUBMIT: (PeriodStatus.OPEN, PeriodStatus.WAITING_HR),
    PeriodAction.APPROVE_HR: (PeriodStatus.WAITING_HR, PeriodStatus.WAITING_HEAD_FINANCE),
    PeriodAction.APPROVE_HEAD_FINANCE: (PeriodStatus.WAITING_HEAD_FINANCE, PeriodStatus.WAITING_DIRECTOR),
    PeriodAction.APPROVE_DIRECTOR: (PeriodStatus.WAITING_DIRECTOR, PeriodStatus.CLOSED),
}


def get_or_create_period(db: Session, year: int, month: int) -> PayrollPeriod:
    if isinstance(year, bool) or not isinstance(year, int) or not 1900 <= year <= 3000:
        raise PayrollValidationError("year must be a valid number")
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise PayrollValidationError("month must be between 1-12")

    period = get_period_by_month(db, year, month)
    if period is not None:
        return period

    period = PayrollPeriod(period_year=year, period_month=month, status=PeriodStatus.OPEN)
    db.add(period)
    db.commit()
    db.refresh(period)
    return period


def get_period(db: Session, period_id: int) -> PayrollPeriod:
    return require_period(db, period_id)


def list_periods(db: Session) -> list[PeriodRead]:
    rows = db.scalars(
        select(PayrollPeriod).order_by(PayrollPeriod.period_year.desc(), PayrollPeriod.period_month.desc())
    ).all()
    return [PeriodRead.model_validate(row) for row in rows]


def _next_status(action: PeriodAction, current: PeriodStatus) -> PeriodStatus:
    if action == PeriodAction.REJECT:
        if current == PeriodStatus.CLOSED:
            raise PeriodStateConflictError("A closed period cannot be rejected")
        return PeriodStatus.OPEN

    expected, target = _TRANSITIONS[action]
    if current != expected:
        raise PeriodStateConflictError(f"Invalid action '{action.value}' for status '{current.value}'")
    return target


def update_period_status(
    db: Session,
    period_id: int,
    action: PeriodAction | str,
    actor_id: int | str | None = None,
) -> PeriodStatusChange:
    try:
        action = PeriodAction(action)
    except ValueError as exc:
        raise PayrollValidationError(f"Unknown period action '{action}'") from exc

    try:
        period = require_period(db, period_id, for_update=True)
        previous = period.status
        period.status = _next_status(action, previous)
        if period.status == PeriodStatus.CLOSED:
            period.closed_at = datetime.now(timezone.utc)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "payroll_period_status_changed",
        extra={
            "period_id": period_id,
            "action": action.value,
            "previous_status": previous.value,
            "status": period.status.value,
            "actor_id": actor_id,
        },
    )
    return PeriodStatusChange(
        period_id=period_id,
        action=action,
        previous_status=previous,
        status=period.status,
    )


def list_eligible_citizens(db: Session, year: int, month: int) -> list[str]:
    _, month_end, _ = month_bounds(year, month)
    stmt = (
        select(EmployeeEligibility.citizen_id)
        .outerjoin(Employee, Employee.citizen_id == EmployeeEligibility.citizen_id)
        .where(
            EmployeeEligibility.is_active.is_(True),
            EmployeeEligibility.effective_date <= month_end,
            or_(Employee.citizen_id.is_(None), Employee.is_active.is_(True)),
        )
        .distinct()
        .order_by(EmployeeEligibility.citizen_id.asc())
    )
    return list(db.scalars(stmt).all())


def process_period_calculation(db: Session, period_id: int) -> PeriodCalculationSummary:
    """Recompute every eligible citizen of an OPEN period inside one transaction."""
    look_back = get_retro_lookback_months()
    try:
        period = require_period(db, period_id, for_update=True)
        if period.status != PeriodStatus.OPEN:
            raise PeriodStateConflictError(
                f"Period {period.period_month}/{period.period_year} is not OPEN ({period.status.value})"
            )
        year, month = period.period_year, period.period_month

        delete_period_payouts(db, period_id)

        total_amount = ZERO
        head_count = 0
        for citizen_id in list_eligible_citizens(db, year, month):
            current = build_monthly_result(db, citizen_id, year, month)
            retro = calculate_retroactive(db, citizen_id, year, month, look_back)
            grand_total = current.net_payment + retro.total_retro
            if grand_total <= ZERO and current.net_payment <= ZERO:
                continue
            save_payout(db, period_id=period_id, result=current, retro=retro)
            total_amount += grand_total
            head_count += 1

        period.total_amount = round_money(total_amount)
        period.total_headcount = head_count
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "payroll_period_calculated",
        extra={"period_id": period_id, "head_count": head_count, "total_amount": total_amount},
    )
    return PeriodCalculationSummary(
        period_id=period_id,
        head_count=head_count,
        total_amount=round_money(total_amount),
    )


def calculate_on_demand(db: Session, year: int, month: int, citizen_id: str) -> OnDemandResult:
    current = calculate_monthly(db, citizen_id, year, month)
    retro = calculate_retroactive(db, current.citizen_id, year, month)
    return OnDemandResult(
        **current.model_dump(),
        retroactive_total=retro.total_retro,
        retro_details=retro.retro_details,
        total_payable=round_money(current.net_payment + retro.total_retro),
    )


def calculate_batch(
    db: Session,
    year: int,
    month: int,
    citizen_ids: list[str] | None = None,
) -> BatchResult:
    """Recompute and store payouts with one transaction per citizen.

    A failing citizen is rolled back and reported; citizens already committed
    keep their results.
    """
    period = get_or_create_period(db, year, month)
    if period.status != PeriodStatus.OPEN:
        raise PeriodStateConflictError(f"Period {month}/{year} is not OPEN ({period.status.value})")
    period_id = period.id

    targets = citizen_ids if citizen_ids is not None else list_eligible_citizens(db, year, month)
    result = BatchResult(period_id=period_id, total=len(targets))

    for raw_citizen_id in targets:
        try:
            citizen_id, _, _ = validate_calculation_request(raw_citizen_id, year, month)
            current = build_monthly_result(db, citizen_id, year, month)
            retro = calculate_retroactive(db, citizen_id, year, month)
            save_payout(db, period_id=period_id, result=current, retro=retro)
            db.commit()
            result.success += 1
        except Exception as exc:
            db.rollback()
            result.failed += 1
            result.errors.append(BatchItemError(citizen_id=str(raw_citizen_id), error=str(exc)))
            logger.exception(
                "payroll_batch_item_failed",
                extra={"period_id": period_id, "citizen_id": str(raw_citizen_id)},
            )

    return result


def list_period_payouts(db: Session, period_id: int) -> list[PeriodPayoutRow]:
    require_period(db, period_id)
    rows = db.execute(
        select(Payout, Employee)
        .outerjoin(Employee, Employee.citizen_id == Payout.citizen_id)
        .where(Payout.period_id == period_id)
        .order_by(Employee.first_name.asc(), Employee.last_name.asc(), Payout.citizen_id.asc())
    ).all()
    return [
        PeriodPayoutRow(
            payout_id=payout.id,
            citizen_id=payout.citizen_id,
            first_name=employee.first_name if employee else None,
            last_name=employee.last_name if employee else None,
            position_name=employee.position_name if employee else None,
            eligible_days=payout.eligible_days,
            deducted_days=payout.deducted_days,
            rate=payout.rate_snapshot,
            calculated_amount=payout.calculated_amount,
            retroactive_amount=payout.retroactive_amount,
            total_payable=payout.total_payable,
            remark=payout.remark,
        )
        for payout, employee in rows
    ]
