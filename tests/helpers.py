from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session, sessionmaker

from pts_payroll import models  # noqa: F401
from pts_payroll.db import Base, build_engine
from pts_payroll.models import (
    Employee,
    EmployeeEligibility,
    EmployeeLicense,
    EmployeeMovement,
    Holiday,
    LeaveQuota,
    LeaveRequest,
    MasterRate,
    Payout,
    PayoutItem,
    PayoutItemType,
    PayrollPeriod,
    PeriodStatus,
)
from pts_payroll.services.calendar_math import thai_fiscal_year


def make_session() -> Session:
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()


def add_employee(db: Session, citizen_id: str, first_name: str = "Somchai", last_name: str = "Jaidee") -> Employee:
    employee = Employee(citizen_id=citizen_id, first_name=first_name, last_name=last_name, is_active=True)
    db.add(employee)
    db.commit()
    return employee


def add_rate(db: Session, amount: str | int) -> MasterRate:
    rate = MasterRate(amount=Decimal(str(amount)), is_active=True)
    db.add(rate)
    db.commit()
    return rate


def add_eligibility(
    db: Session,
    citizen_id: str,
    rate: MasterRate,
    effective_date: date,
    expiry_date: date | None = None,
) -> EmployeeEligibility:
    record = EmployeeEligibility(
        citizen_id=citizen_id,
        master_rate_id=rate.id,
        effective_date=effective_date,
        expiry_date=expiry_date,
        is_active=True,
    )
    db.add(record)
    db.commit()
    return record


def add_license(
    db: Session,
    citizen_id: str,
    valid_from: date = date(2000, 1, 1),
    valid_until: date | None = None,
    *,
    status: str = "ACTIVE",
    occupation_name: str | None = None,
) -> EmployeeLicense:
    record = EmployeeLicense(
        citizen_id=citizen_id,
        valid_from=valid_from,
        valid_until=valid_until,
        status=status,
        occupation_name=occupation_name,
    )
    db.add(record)
    db.commit()
    return record


def add_movement(db: Session, citizen_id: str, movement_type: str, effective_date: date) -> EmployeeMovement:
    record = EmployeeMovement(citizen_id=citizen_id, movement_type=movement_type, effective_date=effective_date)
    db.add(record)
    db.commit()
    return record


def add_leave(
    db: Session,
    citizen_id: str,
    leave_type: str,
    start_date: date,
    end_date: date,
    duration_days: str | int,
    *,
    is_no_pay: bool = False,
) -> LeaveRequest:
    record = LeaveRequest(
        citizen_id=citizen_id,
        leave_type=leave_type,
        start_date=start_date,
        end_date=end_date,
        duration_days=Decimal(str(duration_days)),
        fiscal_year=thai_fiscal_year(start_date.year, start_date.month),
        is_no_pay=is_no_pay,
        is_adjusted=False,
    )
    db.add(record)
    db.commit()
    return record


def add_quota(db: Session, citizen_id: str, fiscal_year: int, **quotas: str | int | None) -> LeaveQuota:
    record = LeaveQuota(
        citizen_id=citizen_id,
        fiscal_year=fiscal_year,
        **{key: (Decimal(str(value)) if value is not None else None) for key, value in quotas.items()},
    )
    db.add(record)
    db.commit()
    return record


def add_holiday(db: Session, holiday_date: date, name: str = "Holiday") -> Holiday:
    record = Holiday(holiday_date=holiday_date, name=name)
    db.add(record)
    db.commit()
    return record


def add_period(db: Session, year: int, month: int, status: PeriodStatus = PeriodStatus.CLOSED) -> PayrollPeriod:
    period = PayrollPeriod(period_year=year, period_month=month, status=status)
    db.add(period)
    db.commit()
    return period


def add_payout(
    db: Session,
    period: PayrollPeriod,
    citizen_id: str,
    calculated_amount: str | int,
    *,
    retro_items: list[tuple[int, int, str | int]] | None = None,
) -> Payout:
    """``retro_items`` holds ``(reference_year, reference_month, signed_amount)``."""
    amount = Decimal(str(calculated_amount))
    payout = Payout(
        period_id=period.id,
        citizen_id=citizen_id,
        rate_snapshot=amount,
        calculated_amount=amount,
        retroactive_amount=Decimal("0"),
        total_payable=amount,
        eligible_days=Decimal("0"),
        deducted_days=Decimal("0"),
    )
    for reference_year, reference_month, signed_amount in retro_items or []:
        value = Decimal(str(signed_amount))
        payout.items.append(
            PayoutItem(
                reference_year=reference_year,
                reference_month=reference_month,
                item_type=PayoutItemType.RETROACTIVE_ADD if value > 0 else PayoutItemType.RETROACTIVE_DEDUCT,
                amount=abs(value),
            )
        )
        payout.retroactive_amount += value
        payout.total_payable += value
    db.add(payout)
    db.commit()
    return payout
