from __future__ import annotations

import enum
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pts_payroll.db import Base


class PeriodStatus(str, enum.Enum):
    OPEN = "OPEN"
    WAITING_HR = "WAITING_HR"
    WAITING_HEAD_FINANCE = "WAITING_HEAD_FINANCE"
    WAITING_DIRECTOR = "WAITING_DIRECTOR"
    CLOSED = "CLOSED"


class PeriodAction(str, enum.Enum):
    SUBMIT = "SUBMIT"
    APPROVE_HR = "APPROVE_HR"
    APPROVE_HEAD_FINANCE = "APPROVE_HEAD_FINANCE"
    APPROVE_DIRECTOR = "APPROVE_DIRECTOR"
    REJECT = "REJECT"


class MovementType(str, enum.Enum):
    ENTRY = "ENTRY"
    TRANSFER_IN = "TRANSFER_IN"
    RETURN = "RETURN"
    RESIGN = "RESIGN"
    TRANSFER_OUT = "TRANSFER_OUT"
    RETIRE = "RETIRE"
    DEATH = "DEATH"
    STUDY = "STUDY"


class PayoutItemType(str, enum.Enum):
    RETROACTIVE_ADD = "RETROACTIVE_ADD"
    RETROACTIVE_DEDUCT = "RETROACTIVE_DEDUCT"


class MasterRate(Base):
    __tablename__ = "pts_master_rates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    profession_code: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    group_no: Mapped[int | None] = mapped_column(Integer, nullable=True)
    item_no: Mapped[str | None] = mapped_column(String(20), nullable=True)
    condition_desc: Mapped[str | None] = mapped_column(String(500), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))

    eligibilities: Mapped[list[EmployeeEligibility]] = relationship(back_populates="master_rate")


class Employee(Base):
    __tablename__ = "pts_employees"

    citizen_id: Mapped[str] = mapped_column(String(20), primary_key=True)
    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    position_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    department: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))


class EmployeeEligibility(Base):
    __tablename__ = "pts_employee_eligibility"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    citizen_id: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    master_rate_id: Mapped[int] = mapped_column(
        ForeignKey("pts_master_rates.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=text("true"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    master_rate: Mapped[MasterRate] = relationship(back_populates="eligibilities")


class EmployeeMovement(Base):
    __tablename__ = "pts_employee_movements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    citizen_id: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    # Kept as free text: HR feeds carry movement codes the engine does not act on.
    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    remark: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )


class EmployeeLicense(Base):
    __tablename__ = "pts_employee_licenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    citizen_id: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    valid_from: Mapped[date] = mapped_column(Date, nullable=False)
    valid_until: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    license_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    license_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    occupation_name: Mapped[str | None] = mapped_column(String(255), nullable=True)


class LeaveRequest(Base):
    __tablename__ = "pts_leave_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    citizen_id: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    leave_type: Mapped[str] = mapped_column(String(50), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    duration_days: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    is_no_pay: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    manual_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    manual_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    manual_duration_days: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    is_adjusted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    remark: Mapped[str | None] = mapped_column(Text, nullable=True)


class LeaveQuota(Base):
    __tablename__ = "pts_leave_quotas"
    __table_args__ = (UniqueConstraint("citizen_id", "fiscal_year", name="uq_pts_leave_quotas_citizen_fy"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    citizen_id: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)
    quota_vacation: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    quota_personal: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    quota_sick: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)


class Holiday(Base):
    __tablename__ = "pts_holidays"

    holiday_date: Mapped[date] = mapped_column(Date, primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)


class PayrollPeriod(Base):
    __tablename__ = "pts_periods"
    __table_args__ = (UniqueConstraint("period_year", "period_month", name="uq_pts_periods_year_month"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_month: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[PeriodStatus] = mapped_column(
        Enum(PeriodStatus, name="pts_period_status"),
        nullable=False,
        default=PeriodStatus.OPEN,
        server_default=text("'OPEN'"),
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
        default=Decimal("0"),
        server_default=text("0"),
    )
    total_headcount: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    payouts: Mapped[list[Payout]] = relationship(back_populates="period")


class Payout(Base):
    __tablename__ = "pts_payouts"
    __table_args__ = (UniqueConstraint("period_id", "citizen_id", name="uq_pts_payouts_period_citizen"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    period_id: Mapped[int] = mapped_column(ForeignKey("pts_periods.id", ondelete="CASCADE"), nullable=False, index=True)
    citizen_id: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    master_rate_id: Mapped[int | None] = mapped_column(
        ForeignKey("pts_master_rates.id", ondelete="RESTRICT"),
        nullable=True,
    )
    rate_snapshot: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    calculated_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    retroactive_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
        server_default=text("0"),
    )
    total_payable: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    eligible_days: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    deducted_days: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    remark: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    period: Mapped[PayrollPeriod] = relationship(back_populates="payouts")
    items: Mapped[list[PayoutItem]] = relationship(
        back_populates="payout",
        cascade="all, delete-orphan",
    )


class PayoutItem(Base):
    __tablename__ = "pts_payout_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    payout_id: Mapped[int] = mapped_column(ForeignKey("pts_payouts.id", ondelete="CASCADE"), nullable=False, index=True)
    reference_month: Mapped[int] = mapped_column(Integer, nullable=False)
    reference_year: Mapped[int] = mapped_column(Integer, nullable=False)
    item_type: Mapped[PayoutItemType] = mapped_column(
        Enum(PayoutItemType, name="pts_payout_item_type"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    payout: Mapped[Payout] = relationship(back_populates="items")
