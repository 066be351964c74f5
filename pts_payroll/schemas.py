from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pts_payroll.models import PeriodAction, PeriodStatus


class RateBreakdownItem(BaseModel):
    master_rate_id: int | None = None
    rate: Decimal
    start_date: date
    end_date: date
    eligible_days: int
    deducted_days: Decimal
    amount: Decimal


class CalculationResult(BaseModel):
    citizen_id: str
    year: int
    month: int
    days_in_month: int
    eligible_days: int = 0
    deducted_days: Decimal = Decimal("0")
    payable_days: Decimal = Decimal("0")
    valid_license_days: int = 0
    net_payment: Decimal = Decimal("0")
    master_rate_id: int | None = None
    rate_snapshot: Decimal = Decimal("0")
    remark: str = ""
    requires_review: bool = False
    rate_breakdown: list[RateBreakdownItem] = Field(default_factory=list)


class RetroDetail(BaseModel):
    month: int
    year: int
    paid_amount: Decimal
    should_be_amount: Decimal
    diff: Decimal
    remark: str


class RetroactiveResult(BaseModel):
    total_retro: Decimal = Decimal("0")
    retro_details: list[RetroDetail] = Field(default_factory=list)


class OnDemandResult(CalculationResult):
    retroactive_total: Decimal = Decimal("0")
    retro_details: list[RetroDetail] = Field(default_factory=list)
    total_payable: Decimal = Decimal("0")


class PeriodRead(BaseModel):
    id: int
    period_year: int
    period_month: int
    status: PeriodStatus
    total_amount: Decimal
    total_headcount: int
    created_at: datetime
    closed_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class PeriodStatusChange(BaseModel):
    period_id: int
    action: PeriodAction
    previous_status: PeriodStatus
    status: PeriodStatus


class PeriodCalculationSummary(BaseModel):
    period_id: int
    head_count: int
    total_amount: Decimal


class PeriodPayoutRow(BaseModel):
    payout_id: int
    citizen_id: str
    first_name: str | None = None
    last_name: str | None = None
    position_name: str | None = None
    eligible_days: Decimal
    deducted_days: Decimal
    rate: Decimal
    calculated_amount: Decimal
    retroactive_amount: Decimal
    total_payable: Decimal
    remark: str | None = None


class BatchItemError(BaseModel):
    citizen_id: str
    error: str


class BatchResult(BaseModel):
    period_id: int
    total: int = 0
    success: int = 0
    failed: int = 0
    errors: list[BatchItemError] = Field(default_factory=list)


class LeaveAdjustmentRequest(BaseModel):
    manual_start_date: date
    manual_end_date: date
    manual_duration_days: Decimal = Field(gt=0, le=366)
    remark: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def validate_range(self) -> "LeaveAdjustmentRequest":
        if self.manual_end_date < self.manual_start_date:
            raise ValueError("manual_end_date must be greater than or equal to manual_start_date")
        return self
