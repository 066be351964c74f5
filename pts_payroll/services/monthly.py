from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from pts_payroll.constants import MONEY_QUANT
from pts_payroll.errors import PayrollValidationError, PeriodStateConflictError
from pts_payroll.models import (
    EmployeeEligibility,
    EmployeeLicense,
    EmployeeMovement,
    LeaveQuota,
    LeaveRequest,
    PeriodStatus,
)
from pts_payroll.schemas import CalculationResult, RateBreakdownItem
from pts_payroll.services.calendar_math import count_calendar_days, iter_days, month_bounds, thai_fiscal_year
from pts_payroll.services.eligibility import list_eligibility_records, resolve_rate_spans
from pts_payroll.services.leave_deductions import (
    calculate_deductions,
    list_holidays,
    list_leave_quotas,
    list_leave_requests,
)
from pts_payroll.services.licenses import license_valid_days, list_licenses
from pts_payroll.services.movements import build_movement_timeline, list_movements
from pts_payroll.services.period_lookup import get_period_by_month

logger = logging.getLogger("pts_payroll.monthly")

ZERO = Decimal("0")

REMARK_NO_RATE = "No eligibility rate assigned for this month"
REMARK_STUDY_FULL_MONTH = "Study leave: no pay for the whole month"


@dataclass(frozen=True, slots=True)
class MonthlyInputs:
    citizen_id: str
    year: int
    month: int
    eligibilities: list[EmployeeEligibility]
    movements: list[EmployeeMovement] = field(default_factory=list)
    licenses: list[EmployeeLicense] = field(default_factory=list)
    leaves: list[LeaveRequest] = field(default_factory=list)
    quotas: list[LeaveQuota] = field(default_factory=list)
    holidays: frozenset[date] = frozenset()


def validate_calculation_request(citizen_id: object, year: object, month: object) -> tuple[str, int, int]:
    if not isinstance(citizen_id, str) or not citizen_id.strip():
        raise PayrollValidationError("citizen_id is required")
    if isinstance(year, bool) or not isinstance(year, int) or not 1900 <= year <= 3000:
        raise PayrollValidationError("year must be a valid number")
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise PayrollValidationError("month must be between 1-12")
    return citizen_id.strip(), year, month


def round_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def _days_label(value: Decimal | int) -> str:
    normalized = Decimal(value).normalize()
    if normalized == normalized.to_integral_value():
        normalized = normalized.quantize(Decimal("1"))
    return f"{normalized} day(s)"


def compute_monthly_result(inputs: MonthlyInputs) -> CalculationResult:
    month_start, month_end, days_in_month = month_bounds(inputs.year, inputs.month)
    result = CalculationResult(
        citizen_id=inputs.citizen_id,
        year=inputs.year,
        month=inputs.month,
        days_in_month=days_in_month,
    )

    resolution = resolve_rate_spans(inputs.eligibilities, month_start, month_end)
    if not resolution.spans:
        result.remark = REMARK_NO_RATE
        if resolution.ambiguous_days:
            result.remark = (
                f"Ambiguous eligibility on {_days_label(len(resolution.ambiguous_days))}; manual review required"
            )
            result.requires_review = True
        return result

    current_span = resolution.spans[-1]
    result.master_rate_id = current_span.master_rate_id
    result.rate_snapshot = current_span.amount

    timeline = build_movement_timeline(inputs.movements, month_start, month_end)
    if len(timeline.study_days) == days_in_month:
        result.remark = REMARK_STUDY_FULL_MONTH
        return result

    license_days = license_valid_days(inputs.licenses, month_start, month_end)
    deductions = calculate_deductions(inputs.leaves, inputs.quotas, inputs.holidays, month_start, month_end)

    breakdown: list[RateBreakdownItem] = []
    unrounded_total = ZERO
    total_eligible = 0
    total_deducted = ZERO
    invariant_broken = False

    for span in resolution.spans:
        span_days = set(iter_days(span.start, span.end))
        eligible = span_days & timeline.active_days & license_days
        deducted = sum((deductions.get(day, ZERO) for day in eligible), ZERO)
        payable = Decimal(len(eligible)) - deducted
        if payable < ZERO:
            invariant_broken = True
        amount = span.amount * payable / Decimal(days_in_month)
        unrounded_total += amount
        total_eligible += len(eligible)
        total_deducted += deducted
        breakdown.append(
            RateBreakdownItem(
                master_rate_id=span.master_rate_id,
                rate=span.amount,
                start_date=span.start,
                end_date=span.end,
                eligible_days=len(eligible),
                deducted_days=deducted,
                amount=round_money(amount),
            )
        )

    if len(resolution.spans) == 1 and total_eligible == days_in_month and total_deducted == ZERO:
        net_payment = current_span.amount
    else:
        net_payment = unrounded_total

    if net_payment < ZERO or total_deducted > total_eligible:
        invariant_broken = True
    if invariant_broken:
        logger.warning(
            "payroll_invariant_violation",
            extra={
                "citizen_id": inputs.citizen_id,
                "year": inputs.year,
                "month": inputs.month,
                "eligible_days": total_eligible,
                "deducted_days": total_deducted,
                "net_payment": net_payment,
            },
        )
        net_payment = max(ZERO, net_payment)

    result.eligible_days = total_eligible
    result.deducted_days = total_deducted
    result.payable_days = max(ZERO, Decimal(total_eligible) - total_deducted)
    result.valid_license_days = len(license_days)
    result.net_payment = round_money(net_payment)
    result.rate_breakdown = breakdown
    result.requires_review = invariant_broken or bool(resolution.ambiguous_days)
    result.remark = _build_remark(
        study_ranges=timeline.study_ranges(),
        rate_changes=len(resolution.spans) - 1,
        deducted=total_deducted,
        ambiguous_days=len(resolution.ambiguous_days),
        invariant_broken=invariant_broken,
    )
    return result


def _build_remark(
    *,
    study_ranges: list[tuple[date, date]],
    rate_changes: int,
    deducted: Decimal,
    ambiguous_days: int,
    invariant_broken: bool,
) -> str:
    parts: list[str] = []
    if study_ranges:
        study_days = sum(count_calendar_days(start, end) for start, end in study_ranges)
        spans = ", ".join(f"{start.isoformat()} to {end.isoformat()}" for start, end in study_ranges)
        parts.append(f"Study leave {_days_label(study_days)} (no pay: {spans})")
    if rate_changes > 0:
        parts.append("Rate changed mid-month")
    if deducted > ZERO:
        parts.append(f"Leave deduction {_days_label(deducted)}")
    if ambiguous_days:
        parts.append(f"Ambiguous eligibility on {_days_label(ambiguous_days)}; manual review required")
    if invariant_broken:
        parts.append("Deductions exceed eligible days; manual review required")
    return "; ".join(parts)


def load_monthly_inputs(db: Session, citizen_id: str, year: int, month: int) -> MonthlyInputs:
    month_start, month_end, _ = month_bounds(year, month)
    fiscal_year = thai_fiscal_year(year, month)
    leaves = list_leave_requests(
        db,
        citizen_id,
        fiscal_year=fiscal_year,
        month_start=month_start,
        month_end=month_end,
    )
    holiday_start = min([month_start, *(leave.start_date for leave in leaves)])
    holiday_end = max([month_end, *(leave.end_date for leave in leaves)])
    # Adjusted leaves may stretch past the requested dates.
    holiday_start -= timedelta(days=366)
    holiday_end += timedelta(days=366)

    return MonthlyInputs(
        citizen_id=citizen_id,
        year=year,
        month=month,
        eligibilities=list_eligibility_records(db, citizen_id),
        movements=list_movements(db, citizen_id),
        licenses=list_licenses(db, citizen_id),
        leaves=leaves,
        quotas=list_leave_quotas(db, citizen_id, {fiscal_year, *(leave.fiscal_year for leave in leaves)}),
        holidays=list_holidays(db, holiday_start, holiday_end),
    )


def build_monthly_result(db: Session, citizen_id: str, year: int, month: int) -> CalculationResult:
    """Recompute a month from current master data without any period-status check."""
    result = compute_monthly_result(load_monthly_inputs(db, citizen_id, year, month))
    logger.debug(
        "payroll_monthly_calculated",
        extra={
            "citizen_id": citizen_id,
            "year": year,
            "month": month,
            "eligible_days": result.eligible_days,
            "deducted_days": result.deducted_days,
            "net_payment": result.net_payment,
        },
    )
    return result


def calculate_monthly(db: Session, citizen_id: str, year: int, month: int) -> CalculationResult:
    citizen_id, year, month = validate_calculation_request(citizen_id, year, month)
    period = get_period_by_month(db, year, month)
    if period is not None and period.status == PeriodStatus.CLOSED:
        raise PeriodStateConflictError(
            f"Period {month}/{year} is closed; corrections go through retroactive reconciliation"
        )
    return build_monthly_result(db, citizen_id, year, month)
