"""Per-day leave deductions for one payroll month.

Leave requests are folded in start-date order through an immutable
:class:`DeductionState`. The state carries usage per (fiscal year, leave type)
and the deduction weight of every day already charged. Each request is held
to the quota of the fiscal year it is filed under, even where it runs into
the next one. Only days inside the target month ever receive a weight; days
outside it still consume quota.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from functools import reduce
from types import MappingProxyType

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from pts_payroll.constants import (
    DEFAULT_LEAVE_QUOTAS,
    FULL_DAY,
    HALF_DAY,
    LEAVE_RULES,
    QUOTA_COLUMN_BY_LEAVE_TYPE,
    LeaveQuotaDefaults,
    LeaveRule,
    LeaveRuleType,
    LeaveUnit,
)
from pts_payroll.models import Holiday, LeaveQuota, LeaveRequest
from pts_payroll.services.calendar_math import (
    count_business_days,
    count_calendar_days,
    is_non_working_day,
    iter_days,
    thai_fiscal_year,
)

ZERO = Decimal("0")

DayPredicate = Callable[[date], bool]


@dataclass(frozen=True, slots=True)
class LeaveSpan:
    leave_id: int | None
    leave_type: str
    start: date
    end: date
    duration: Decimal
    fiscal_year: int
    is_no_pay: bool = False

    @property
    def is_half_day(self) -> bool:
        return ZERO < self.duration < FULL_DAY


@dataclass(frozen=True, slots=True)
class DeductionContext:
    rules_by_fiscal_year: Mapping[int, Mapping[str, LeaveRule]]
    holidays: frozenset[date]
    month_start: date
    month_end: date
    default_rules: Mapping[str, LeaveRule] = field(default_factory=lambda: resolve_leave_rules(None))

    def rules_for(self, fiscal_year: int) -> Mapping[str, LeaveRule]:
        return self.rules_by_fiscal_year.get(fiscal_year, self.default_rules)

    def in_month(self, day: date) -> bool:
        return self.month_start <= day <= self.month_end


@dataclass(frozen=True, slots=True)
class DeductionState:
    usage: Mapping[tuple[int, str], Decimal] = field(default_factory=lambda: MappingProxyType({}))
    weights: Mapping[date, Decimal] = field(default_factory=lambda: MappingProxyType({}))

    def with_usage(self, key: tuple[int, str], amount: Decimal) -> DeductionState:
        usage = dict(self.usage)
        usage[key] = usage.get(key, ZERO) + amount
        return DeductionState(usage=MappingProxyType(usage), weights=self.weights)

    def with_weights(self, days: Iterable[date], weight: Decimal) -> DeductionState:
        weights = dict(self.weights)
        for day in days:
            # max, never a sum: overlapping requests must not charge a day twice.
            weights[day] = min(FULL_DAY, max(weights.get(day, ZERO), weight))
        return DeductionState(usage=self.usage, weights=MappingProxyType(weights))


def resolve_leave_rules(
    quota: LeaveQuota | None,
    *,
    defaults: LeaveQuotaDefaults = DEFAULT_LEAVE_QUOTAS,
    base_rules: Mapping[str, LeaveRule] = LEAVE_RULES,
) -> Mapping[str, LeaveRule]:
    rules = dict(base_rules)
    if quota is None:
        for leave_type, limit in defaults.as_mapping().items():
            rule = rules.get(leave_type)
            if rule is not None:
                rules[leave_type] = LeaveRule(limit=limit, unit=rule.unit, rule_type=rule.rule_type)
        return MappingProxyType(rules)

    for leave_type, column in QUOTA_COLUMN_BY_LEAVE_TYPE.items():
        value = getattr(quota, column, None)
        rule = rules.get(leave_type)
        if value is None or rule is None:
            continue
        rules[leave_type] = LeaveRule(limit=Decimal(value), unit=rule.unit, rule_type=rule.rule_type)
    return MappingProxyType(rules)


def leave_span_from_request(leave: LeaveRequest) -> LeaveSpan:
    start = leave.start_date
    end = leave.end_date
    duration = Decimal(leave.duration_days)
    if leave.is_adjusted:
        start = leave.manual_start_date or start
        end = leave.manual_end_date or end
        if leave.manual_duration_days is not None:
            duration = Decimal(leave.manual_duration_days)
    fiscal_year = leave.fiscal_year
    if fiscal_year is None:
        fiscal_year = thai_fiscal_year(leave.start_date.year, leave.start_date.month)
    return LeaveSpan(
        leave_id=leave.id,
        leave_type=(leave.leave_type or "").strip().lower(),
        start=start,
        end=end,
        duration=duration,
        fiscal_year=fiscal_year,
        is_no_pay=bool(leave.is_no_pay),
    )


def chargeable_predicate(rule: LeaveRule, holidays: frozenset[date]) -> DayPredicate:
    if rule.unit == LeaveUnit.CALENDAR_DAYS:
        return lambda _day: True
    return lambda day: not is_non_working_day(day, holidays)


def find_exceed_date(
    start: date,
    end: date,
    remaining: Decimal,
    is_chargeable: DayPredicate,
) -> date | None:
    """First day after ``remaining`` chargeable days of ``[start, end]`` are used up.

    Returns ``start`` when nothing remains and ``None`` when the span never
    exhausts the remaining quota.
    """
    if remaining <= ZERO:
        return start
    found = 0
    for day in iter_days(start, end):
        if not is_chargeable(day):
            continue
        found += 1
        if found >= remaining:
            return day + timedelta(days=1)
    return None


def leave_usage(span: LeaveSpan, rule: LeaveRule, holidays: frozenset[date]) -> Decimal:
    if span.is_half_day:
        if is_non_working_day(span.start, holidays):
            return ZERO
        return HALF_DAY
    if rule.unit == LeaveUnit.BUSINESS_DAYS:
        return Decimal(count_business_days(span.start, span.end, holidays))
    return Decimal(count_calendar_days(span.start, span.end))


def exceed_date_for(
    span: LeaveSpan,
    rule: LeaveRule,
    *,
    remaining: Decimal,
    usage: Decimal,
    holidays: frozenset[date],
) -> date | None:
    if span.is_half_day:
        if usage > ZERO and remaining < HALF_DAY:
            return span.start
        return None
    if rule.unit == LeaveUnit.CALENDAR_DAYS:
        return span.start + timedelta(days=math.floor(remaining))
    return find_exceed_date(span.start, span.end, remaining, chargeable_predicate(rule, holidays))


def penalty_days(span: LeaveSpan, exceed_date: date, rule: LeaveRule, context: DeductionContext) -> list[date]:
    is_chargeable = chargeable_predicate(rule, context.holidays)
    return [
        day
        for day in iter_days(exceed_date, span.end)
        if is_chargeable(day) and context.in_month(day)
    ]


def apply_leave(state: DeductionState, span: LeaveSpan, context: DeductionContext) -> DeductionState:
    if span.is_no_pay:
        no_pay_days = [day for day in iter_days(span.start, span.end) if context.in_month(day)]
        return state.with_weights(no_pay_days, FULL_DAY)

    rule = context.rules_for(span.fiscal_year).get(span.leave_type)
    if rule is None:
        return state

    usage_key = (span.fiscal_year, span.leave_type)
    usage = leave_usage(span, rule, context.holidays)
    used_before = state.usage.get(usage_key, ZERO)
    next_state = state.with_usage(usage_key, usage) if rule.rule_type == LeaveRuleType.CUMULATIVE else state

    if rule.limit is None or used_before + usage <= rule.limit:
        return next_state

    remaining = max(ZERO, rule.limit - used_before)
    exceed_date = exceed_date_for(span, rule, remaining=remaining, usage=usage, holidays=context.holidays)
    if exceed_date is None:
        return next_state

    weight = HALF_DAY if span.is_half_day else FULL_DAY
    return next_state.with_weights(penalty_days(span, exceed_date, rule, context), weight)


def fold_deductions(spans: Iterable[LeaveSpan], context: DeductionContext) -> DeductionState:
    ordered = sorted(spans, key=lambda span: (span.start, span.leave_id or 0))
    return reduce(lambda state, span: apply_leave(state, span, context), ordered, DeductionState())


def calculate_deductions(
    leaves: Iterable[LeaveRequest],
    quotas: Iterable[LeaveQuota],
    holidays: Iterable[date],
    month_start: date,
    month_end: date,
    *,
    defaults: LeaveQuotaDefaults = DEFAULT_LEAVE_QUOTAS,
) -> dict[date, Decimal]:
    """Deduction weight per day of the month; fiscal years without a quota row use ``defaults``."""
    context = DeductionContext(
        rules_by_fiscal_year=MappingProxyType(
            {quota.fiscal_year: resolve_leave_rules(quota, defaults=defaults) for quota in quotas}
        ),
        holidays=frozenset(holidays),
        month_start=month_start,
        month_end=month_end,
        default_rules=resolve_leave_rules(None, defaults=defaults),
    )
    state = fold_deductions((leave_span_from_request(leave) for leave in leaves), context)
    return {day: weight for day, weight in sorted(state.weights.items()) if weight > ZERO}


def list_leave_requests(
    db: Session,
    citizen_id: str,
    *,
    fiscal_year: int,
    month_start: date,
    month_end: date,
) -> list[LeaveRequest]:
    """Every request of each fiscal year that touches the month.

    A request overlapping the month from an earlier fiscal year brings that
    whole year along, so its quota usage is complete.
    """
    overlaps_month = (LeaveRequest.start_date <= month_end) & (LeaveRequest.end_date >= month_start)
    overlapping_years = db.scalars(
        select(LeaveRequest.fiscal_year)
        .where(LeaveRequest.citizen_id == citizen_id, overlaps_month)
        .distinct()
    ).all()
    fiscal_years = sorted({fiscal_year, *overlapping_years})
    return list(
        db.scalars(
            select(LeaveRequest)
            .where(
                LeaveRequest.citizen_id == citizen_id,
                or_(LeaveRequest.fiscal_year.in_(fiscal_years), overlaps_month),
            )
            .order_by(LeaveRequest.start_date.asc(), LeaveRequest.id.asc())
        ).all()
    )


def list_leave_quotas(db: Session, citizen_id: str, fiscal_years: Iterable[int]) -> list[LeaveQuota]:
    return list(
        db.scalars(
            select(LeaveQuota)
            .where(
                LeaveQuota.citizen_id == citizen_id,
                LeaveQuota.fiscal_year.in_(sorted(set(fiscal_years))),
            )
            .order_by(LeaveQuota.fiscal_year.asc())
        ).all()
    )


def list_holidays(db: Session, start: date | None = None, end: date | None = None) -> frozenset[date]:
    stmt = select(Holiday.holiday_date)
    if start is not None:
        stmt = stmt.where(Holiday.holiday_date >= start)
    if end is not None:
        stmt = stmt.where(Holiday.holiday_date <= end)
    return frozenset(db.scalars(stmt).all())
