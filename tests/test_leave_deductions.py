from __future__ import annotations

from datetime import date
from decimal import Decimal
import unittest

from pts_payroll.models import LeaveQuota, LeaveRequest
from pts_payroll.services.leave_deductions import (
    calculate_deductions,
    find_exceed_date,
    leave_span_from_request,
    resolve_leave_rules,
)

JAN_START = date(2025, 1, 1)
JAN_END = date(2025, 1, 31)
FEB_START = date(2025, 2, 1)
FEB_END = date(2025, 2, 28)


def _leave(
    leave_id: int,
    leave_type: str,
    start: date,
    end: date,
    duration: str,
    *,
    is_no_pay: bool = False,
    fiscal_year: int = 2568,
) -> LeaveRequest:
    return LeaveRequest(
        id=leave_id,
        citizen_id="1100000000001",
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        duration_days=Decimal(duration),
        fiscal_year=fiscal_year,
        is_no_pay=is_no_pay,
        is_adjusted=False,
    )


def _zero_quota(fiscal_year: int = 2568) -> LeaveQuota:
    return LeaveQuota(
        citizen_id="1100000000001",
        fiscal_year=fiscal_year,
        quota_sick=Decimal("0"),
        quota_personal=Decimal("0"),
        quota_vacation=Decimal("0"),
    )


def _total(weights: dict[date, Decimal]) -> Decimal:
    return sum(weights.values(), Decimal("0"))


class LeaveRuleResolutionTests(unittest.TestCase):
    def test_defaults_apply_without_quota_row(self) -> None:
        rules = resolve_leave_rules(None)
        self.assertEqual(rules["sick"].limit, Decimal("60"))
        self.assertEqual(rules["personal"].limit, Decimal("45"))
        self.assertIsNone(rules["vacation"].limit)

    def test_quota_row_overrides_only_non_null_columns(self) -> None:
        quota = LeaveQuota(citizen_id="x", fiscal_year=2568, quota_sick=Decimal("10"), quota_personal=None)
        rules = resolve_leave_rules(quota)
        self.assertEqual(rules["sick"].limit, Decimal("10"))
        self.assertEqual(rules["personal"].limit, Decimal("45"))


class FindExceedDateTests(unittest.TestCase):
    def test_returns_day_after_quota_is_used(self) -> None:
        result = find_exceed_date(date(2025, 1, 6), date(2025, 1, 10), Decimal("2"), lambda _day: True)
        self.assertEqual(result, date(2025, 1, 8))

    def test_returns_start_when_nothing_remains(self) -> None:
        result = find_exceed_date(date(2025, 1, 6), date(2025, 1, 10), Decimal("0"), lambda _day: True)
        self.assertEqual(result, date(2025, 1, 6))

    def test_returns_none_when_span_fits(self) -> None:
        result = find_exceed_date(date(2025, 1, 6), date(2025, 1, 10), Decimal("10"), lambda _day: True)
        self.assertIsNone(result)


class LeaveDeductionTests(unittest.TestCase):
    def test_within_quota_has_no_deduction(self) -> None:
        leaves = [_leave(1, "sick", date(2025, 1, 6), date(2025, 1, 10), "5")]
        self.assertEqual(calculate_deductions(leaves, [], set(), JAN_START, JAN_END), {})

    def test_weekend_inside_leave_is_not_charged(self) -> None:
        # Friday to Monday.
        leaves = [_leave(1, "sick", date(2025, 1, 10), date(2025, 1, 13), "2")]
        weights = calculate_deductions(leaves, [_zero_quota()], set(), JAN_START, JAN_END)
        self.assertEqual(sorted(weights), [date(2025, 1, 10), date(2025, 1, 13)])

    def test_holiday_inside_leave_is_not_charged(self) -> None:
        leaves = [_leave(1, "sick", date(2025, 1, 6), date(2025, 1, 10), "4")]
        weights = calculate_deductions(leaves, [_zero_quota()], {date(2025, 1, 8)}, JAN_START, JAN_END)
        self.assertEqual(_total(weights), Decimal("4"))
        self.assertNotIn(date(2025, 1, 8), weights)

    def test_cross_month_leave_splits_deductions_by_month(self) -> None:
        leaves = [_leave(1, "personal", date(2025, 1, 29), date(2025, 2, 4), "5")]
        january = calculate_deductions(leaves, [_zero_quota()], set(), JAN_START, JAN_END)
        february = calculate_deductions(leaves, [_zero_quota()], set(), FEB_START, FEB_END)
        self.assertEqual(_total(january), Decimal("3"))
        self.assertEqual(_total(february), Decimal("2"))

    def test_leave_starting_last_month_counts_only_this_month(self) -> None:
        leaves = [_leave(1, "sick", date(2024, 6, 25), date(2024, 7, 5), "9")]
        weights = calculate_deductions(leaves, [_zero_quota()], set(), date(2024, 7, 1), date(2024, 7, 31))
        self.assertEqual(sorted(weights), [date(2024, 7, day) for day in range(1, 6)])

    def test_separate_requests_do_not_bridge_holiday_weekend(self) -> None:
        # Friday and the following Monday, with Saturday and Sunday also marked as holidays.
        leaves = [
            _leave(1, "sick", date(2025, 1, 10), date(2025, 1, 10), "1"),
            _leave(2, "sick", date(2025, 1, 13), date(2025, 1, 13), "1"),
        ]
        holidays = {date(2025, 1, 11), date(2025, 1, 12)}
        weights = calculate_deductions(leaves, [_zero_quota()], holidays, JAN_START, JAN_END)
        self.assertEqual(_total(weights), Decimal("2"))

    def test_overlapping_requests_never_charge_a_day_twice(self) -> None:
        leaves = [
            _leave(1, "sick", date(2025, 1, 6), date(2025, 1, 10), "5"),
            _leave(2, "personal", date(2025, 1, 8), date(2025, 1, 10), "3"),
        ]
        weights = calculate_deductions(leaves, [_zero_quota()], set(), JAN_START, JAN_END)
        self.assertEqual(_total(weights), Decimal("5"))
        self.assertTrue(all(weight == Decimal("1") for weight in weights.values()))

    def test_cumulative_usage_exceeds_on_later_request(self) -> None:
        quota = LeaveQuota(citizen_id="x", fiscal_year=2568, quota_sick=Decimal("3"))
        leaves = [
            _leave(1, "sick", date(2025, 1, 6), date(2025, 1, 7), "2"),
            _leave(2, "sick", date(2025, 1, 13), date(2025, 1, 15), "3"),
        ]
        weights = calculate_deductions(leaves, [quota], set(), JAN_START, JAN_END)
        self.assertEqual(sorted(weights), [date(2025, 1, 14), date(2025, 1, 15)])

    def test_leave_is_held_to_the_quota_of_its_fiscal_year(self) -> None:
        leaves = [_leave(1, "sick", date(2024, 9, 30), date(2024, 10, 2), "3", fiscal_year=2567)]
        generous = LeaveQuota(citizen_id="x", fiscal_year=2568, quota_sick=Decimal("60"))
        october = (date(2024, 10, 1), date(2024, 10, 31))

        exhausted = calculate_deductions(leaves, [_zero_quota(2567), generous], set(), *october)
        defaulted = calculate_deductions(leaves, [_zero_quota(2568)], set(), *october)

        self.assertEqual(sorted(exhausted), [date(2024, 10, 1), date(2024, 10, 2)])
        self.assertEqual(defaulted, {})

    def test_usage_is_counted_per_fiscal_year(self) -> None:
        quotas = [
            LeaveQuota(citizen_id="x", fiscal_year=2567, quota_sick=Decimal("2")),
            LeaveQuota(citizen_id="x", fiscal_year=2568, quota_sick=Decimal("2")),
        ]
        leaves = [
            _leave(1, "sick", date(2024, 9, 26), date(2024, 9, 27), "2", fiscal_year=2567),
            _leave(2, "sick", date(2024, 10, 7), date(2024, 10, 8), "2", fiscal_year=2568),
        ]
        self.assertEqual(calculate_deductions(leaves, quotas, set(), date(2024, 10, 1), date(2024, 10, 31)), {})

    def test_maternity_within_limit_is_free(self) -> None:
        leaves = [_leave(1, "maternity", date(2025, 1, 1), date(2025, 3, 31), "90")]
        self.assertEqual(calculate_deductions(leaves, [], set(), JAN_START, JAN_END), {})
        self.assertEqual(calculate_deductions(leaves, [], set(), date(2025, 3, 1), date(2025, 3, 31)), {})

    def test_education_leave_exceeds_in_january(self) -> None:
        leaves = [_leave(1, "education", date(2024, 11, 30), date(2025, 3, 28), "119")]
        weights = calculate_deductions(leaves, [], set(), JAN_START, JAN_END)
        self.assertEqual(sorted(weights), [date(2025, 1, 29), date(2025, 1, 30), date(2025, 1, 31)])

    def test_half_day_over_quota_costs_half(self) -> None:
        leaves = [_leave(1, "sick", date(2025, 1, 6), date(2025, 1, 6), "0.5")]
        weights = calculate_deductions(leaves, [_zero_quota()], set(), JAN_START, JAN_END)
        self.assertEqual(weights, {date(2025, 1, 6): Decimal("0.5")})

    def test_no_pay_leave_charges_every_day(self) -> None:
        leaves = [_leave(1, "personal", date(2025, 1, 4), date(2025, 1, 6), "1", is_no_pay=True)]
        weights = calculate_deductions(leaves, [], set(), JAN_START, JAN_END)
        self.assertEqual(_total(weights), Decimal("3"))

    def test_unknown_leave_type_is_ignored(self) -> None:
        leaves = [_leave(1, "sabbatical", date(2025, 1, 6), date(2025, 1, 10), "5")]
        self.assertEqual(calculate_deductions(leaves, [_zero_quota()], set(), JAN_START, JAN_END), {})

    def test_adjusted_leave_uses_manual_dates(self) -> None:
        leave = _leave(1, "sick", date(2025, 1, 6), date(2025, 1, 10), "5")
        leave.is_adjusted = True
        leave.manual_start_date = date(2025, 1, 6)
        leave.manual_end_date = date(2025, 1, 7)
        leave.manual_duration_days = Decimal("2")

        span = leave_span_from_request(leave)
        weights = calculate_deductions([leave], [_zero_quota()], set(), JAN_START, JAN_END)

        self.assertEqual((span.start, span.end, span.duration), (date(2025, 1, 6), date(2025, 1, 7), Decimal("2")))
        self.assertEqual(_total(weights), Decimal("2"))


if __name__ == "__main__":
    unittest.main()
