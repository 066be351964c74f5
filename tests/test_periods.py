from __future__ import annotations

from datetime import date
from decimal import Decimal
import unittest
from unittest.mock import patch

from sqlalchemy import select

from pts_payroll.errors import PayrollValidationError, PeriodNotFoundError, PeriodStateConflictError
from pts_payroll.models import Payout, PayoutItem, PeriodAction, PeriodStatus
from pts_payroll.services import periods as periods_service
from pts_payroll.services.periods import (
    calculate_batch,
    calculate_on_demand,
    get_or_create_period,
    get_period,
    list_period_payouts,
    list_periods,
    process_period_calculation,
    update_period_status,
)
from tests.helpers import (
    add_eligibility,
    add_employee,
    add_license,
    add_payout,
    add_period,
    add_rate,
    make_session,
)

NURSE = "1100000000001"
PHARMACIST = "1100000000002"
UNLICENSED = "1100000000003"


class PeriodWorkflowTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()

    def tearDown(self) -> None:
        self.db.close()

    def test_get_or_create_period_is_idempotent(self) -> None:
        first = get_or_create_period(self.db, 2025, 1)
        second = get_or_create_period(self.db, 2025, 1)

        self.assertEqual(first.id, second.id)
        self.assertEqual(first.status, PeriodStatus.OPEN)
        periods = list_periods(self.db)
        self.assertEqual(len(periods), 1)
        self.assertEqual((periods[0].period_year, periods[0].period_month), (2025, 1))
        self.assertEqual(periods[0].status, PeriodStatus.OPEN)
        self.assertEqual(get_period(self.db, first.id).period_month, 1)
        with self.assertRaises(PeriodNotFoundError):
            get_period(self.db, first.id + 1)

    def test_full_approval_chain_closes_period(self) -> None:
        period = get_or_create_period(self.db, 2025, 1)
        actions = [
            PeriodAction.SUBMIT,
            PeriodAction.APPROVE_HR,
            PeriodAction.APPROVE_HEAD_FINANCE,
            PeriodAction.APPROVE_DIRECTOR,
        ]

        statuses = [update_period_status(self.db, period.id, action, actor_id=7).status for action in actions]

        self.assertEqual(
            statuses,
            [
                PeriodStatus.WAITING_HR,
                PeriodStatus.WAITING_HEAD_FINANCE,
                PeriodStatus.WAITING_DIRECTOR,
                PeriodStatus.CLOSED,
            ],
        )
        self.assertIsNotNone(period.closed_at)

    def test_reject_returns_period_to_open(self) -> None:
        period = add_period(self.db, 2025, 1, PeriodStatus.WAITING_DIRECTOR)

        change = update_period_status(self.db, period.id, "REJECT")

        self.assertEqual(change.previous_status, PeriodStatus.WAITING_DIRECTOR)
        self.assertEqual(change.status, PeriodStatus.OPEN)

    def test_out_of_order_action_is_rejected(self) -> None:
        period = get_or_create_period(self.db, 2025, 1)

        with self.assertRaises(PeriodStateConflictError):
            update_period_status(self.db, period.id, PeriodAction.APPROVE_HR)
        self.assertEqual(period.status, PeriodStatus.OPEN)

    def test_closed_period_cannot_be_reopened(self) -> None:
        period = add_period(self.db, 2025, 1, PeriodStatus.CLOSED)

        with self.assertRaises(PeriodStateConflictError):
            update_period_status(self.db, period.id, PeriodAction.REJECT)

    def test_unknown_action_and_period(self) -> None:
        period = get_or_create_period(self.db, 2025, 1)

        with self.assertRaises(PayrollValidationError):
            update_period_status(self.db, period.id, "REOPEN")
        with self.assertRaises(PeriodNotFoundError) as ctx:
            update_period_status(self.db, 999, PeriodAction.SUBMIT)
        self.assertEqual(ctx.exception.to_dict()["error"]["code"], "PERIOD_NOT_FOUND")


class PeriodCalculationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        add_employee(self.db, NURSE, first_name="Anong")
        add_employee(self.db, PHARMACIST, first_name="Boonmee")
        add_eligibility(self.db, NURSE, add_rate(self.db, 5000), date(2024, 1, 1))
        add_eligibility(self.db, PHARMACIST, add_rate(self.db, 3000), date(2024, 1, 1))
        add_eligibility(self.db, UNLICENSED, add_rate(self.db, 2000), date(2024, 1, 1))
        add_license(self.db, NURSE)
        add_license(self.db, PHARMACIST)

    def tearDown(self) -> None:
        self.db.close()

    def test_process_period_stores_payouts_and_totals(self) -> None:
        period = get_or_create_period(self.db, 2025, 1)

        summary = process_period_calculation(self.db, period.id)

        self.assertEqual(summary.head_count, 2)
        self.assertEqual(summary.total_amount, Decimal("8000.00"))
        self.assertEqual(period.total_headcount, 2)
        rows = list_period_payouts(self.db, period.id)
        self.assertEqual([row.first_name for row in rows], ["Anong", "Boonmee"])
        self.assertEqual([row.total_payable for row in rows], [Decimal("5000.00"), Decimal("3000.00")])

    def test_process_period_twice_gives_same_result(self) -> None:
        period = get_or_create_period(self.db, 2025, 1)

        process_period_calculation(self.db, period.id)
        summary = process_period_calculation(self.db, period.id)

        self.assertEqual(summary.total_amount, Decimal("8000.00"))
        self.assertEqual(len(self.db.scalars(select(Payout)).all()), 2)

    def test_process_period_includes_retroactive_difference(self) -> None:
        december = add_period(self.db, 2024, 12)
        add_payout(self.db, december, NURSE, 0)
        add_payout(self.db, december, PHARMACIST, 3000)
        period = get_or_create_period(self.db, 2025, 1)

        summary = process_period_calculation(self.db, period.id)
        process_period_calculation(self.db, period.id)

        self.assertEqual(summary.total_amount, Decimal("13000.00"))
        items = self.db.scalars(select(PayoutItem)).all()
        self.assertEqual([(item.reference_year, item.reference_month) for item in items], [(2024, 12)])

    def test_process_period_requires_open_status(self) -> None:
        period = add_period(self.db, 2025, 1, PeriodStatus.WAITING_HR)

        with self.assertRaises(PeriodStateConflictError):
            process_period_calculation(self.db, period.id)

    def test_on_demand_refuses_closed_month(self) -> None:
        add_period(self.db, 2025, 1, PeriodStatus.CLOSED)

        with self.assertRaises(PeriodStateConflictError):
            calculate_on_demand(self.db, 2025, 1, NURSE)

    def test_batch_isolates_failing_citizen(self) -> None:
        real_build = periods_service.build_monthly_result

        def _build(db, citizen_id, year, month):  # type: ignore[no-untyped-def]
            if citizen_id == PHARMACIST:
                raise RuntimeError("master data unreadable")
            return real_build(db, citizen_id, year, month)

        with patch("pts_payroll.services.periods.build_monthly_result", side_effect=_build):
            with self.assertLogs("pts_payroll.periods", level="ERROR"):
                result = calculate_batch(self.db, 2025, 1, [NURSE, PHARMACIST, ""])

        self.assertEqual((result.total, result.success, result.failed), (3, 1, 2))
        self.assertEqual([error.citizen_id for error in result.errors], [PHARMACIST, ""])
        self.assertIn("master data unreadable", result.errors[0].error)
        payouts = self.db.scalars(select(Payout)).all()
        self.assertEqual([payout.citizen_id for payout in payouts], [NURSE])

    def test_batch_without_list_uses_eligible_citizens(self) -> None:
        result = calculate_batch(self.db, 2025, 1)

        self.assertEqual(result.total, 3)
        self.assertEqual(result.success, 3)
        self.assertEqual(result.failed, 0)

    def test_batch_refuses_closed_period(self) -> None:
        add_period(self.db, 2025, 1, PeriodStatus.CLOSED)

        with self.assertRaises(PeriodStateConflictError):
            calculate_batch(self.db, 2025, 1, [NURSE])


if __name__ == "__main__":
    unittest.main()
