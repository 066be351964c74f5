"""Initial supplemental pay schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-09-01 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

period_status = postgresql.ENUM(
    "OPEN",
    "WAITING_HR",
    "WAITING_HEAD_FINANCE",
    "WAITING_DIRECTOR",
    "CLOSED",
    name="pts_period_status",
    create_type=False,
)
payout_item_type = postgresql.ENUM(
    "RETROACTIVE_ADD",
    "RETROACTIVE_DEDUCT",
    name="pts_payout_item_type",
    create_type=False,
)


def upgrade() -> None:
    bind = op.get_bind()
    period_status.create(bind, checkfirst=True)
    payout_item_type.create(bind, checkfirst=True)

    op.create_table(
        "pts_master_rates",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("profession_code", sa.String(length=20), nullable=True),
        sa.Column("group_no", sa.Integer(), nullable=True),
        sa.Column("item_no", sa.String(length=20), nullable=True),
        sa.Column("condition_desc", sa.String(length=500), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )
    op.create_index("ix_pts_master_rates_profession_code", "pts_master_rates", ["profession_code"], unique=False)

    op.create_table(
        "pts_employees",
        sa.Column("citizen_id", sa.String(length=20), primary_key=True, nullable=False),
        sa.Column("first_name", sa.String(length=255), nullable=True),
        sa.Column("last_name", sa.String(length=255), nullable=True),
        sa.Column("position_name", sa.String(length=255), nullable=True),
        sa.Column("department", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )

    op.create_table(
        "pts_employee_eligibility",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("citizen_id", sa.String(length=20), nullable=False),
        sa.Column("master_rate_id", sa.Integer(), nullable=False),
        sa.Column("effective_date", sa.Date(), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["master_rate_id"], ["pts_master_rates.id"], ondelete="RESTRICT"),
    )
    op.create_index(
        "ix_pts_employee_eligibility_citizen_id",
        "pts_employee_eligibility",
        ["citizen_id"],
        unique=False,
    )
    op.create_index(
        "ix_pts_employee_eligibility_master_rate_id",
        "pts_employee_eligibility",
        ["master_rate_id"],
        unique=False,
    )

    op.create_table(
        "pts_employee_movements",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("citizen_id", sa.String(length=20), nullable=False),
        sa.Column("movement_type", sa.String(length=20), nullable=False),
        sa.Column("effective_date", sa.Date(), nullable=False),
        sa.Column("remark", sa.String(length=500), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_pts_employee_movements_citizen_id", "pts_employee_movements", ["citizen_id"], unique=False)

    op.create_table(
        "pts_employee_licenses",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("citizen_id", sa.String(length=20), nullable=False),
        sa.Column("valid_from", sa.Date(), nullable=False),
        sa.Column("valid_until", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=True),
        sa.Column("license_name", sa.String(length=255), nullable=True),
        sa.Column("license_type", sa.String(length=255), nullable=True),
        sa.Column("occupation_name", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_pts_employee_licenses_citizen_id", "pts_employee_licenses", ["citizen_id"], unique=False)

    op.create_table(
        "pts_leave_requests",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("citizen_id", sa.String(length=20), nullable=False),
        sa.Column("leave_type", sa.String(length=50), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("duration_days", sa.Numeric(5, 2), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("is_no_pay", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("remark", sa.Text(), nullable=True),
    )
    op.create_index("ix_pts_leave_requests_citizen_id", "pts_leave_requests", ["citizen_id"], unique=False)
    op.create_index("ix_pts_leave_requests_fiscal_year", "pts_leave_requests", ["fiscal_year"], unique=False)

    op.create_table(
        "pts_leave_quotas",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("citizen_id", sa.String(length=20), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("quota_vacation", sa.Numeric(5, 2), nullable=True),
        sa.Column("quota_personal", sa.Numeric(5, 2), nullable=True),
        sa.Column("quota_sick", sa.Numeric(5, 2), nullable=True),
        sa.UniqueConstraint("citizen_id", "fiscal_year", name="uq_pts_leave_quotas_citizen_fy"),
    )
    op.create_index("ix_pts_leave_quotas_citizen_id", "pts_leave_quotas", ["citizen_id"], unique=False)

    op.create_table(
        "pts_holidays",
        sa.Column("holiday_date", sa.Date(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
    )

    op.create_table(
        "pts_periods",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("period_year", sa.Integer(), nullable=False),
        sa.Column("period_month", sa.Integer(), nullable=False),
        sa.Column("status", period_status, nullable=False, server_default=sa.text("'OPEN'")),
        sa.Column("total_amount", sa.Numeric(15, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total_headcount", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("period_year", "period_month", name="uq_pts_periods_year_month"),
    )

    op.create_table(
        "pts_payouts",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("period_id", sa.Integer(), nullable=False),
        sa.Column("citizen_id", sa.String(length=20), nullable=False),
        sa.Column("master_rate_id", sa.Integer(), nullable=True),
        sa.Column("rate_snapshot", sa.Numeric(12, 2), nullable=False),
        sa.Column("calculated_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("retroactive_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total_payable", sa.Numeric(12, 2), nullable=False),
        sa.Column("eligible_days", sa.Numeric(5, 2), nullable=False),
        sa.Column("deducted_days", sa.Numeric(5, 2), nullable=False),
        sa.Column("remark", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.ForeignKeyConstraint(["period_id"], ["pts_periods.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["master_rate_id"], ["pts_master_rates.id"], ondelete="RESTRICT"),
        sa.UniqueConstraint("period_id", "citizen_id", name="uq_pts_payouts_period_citizen"),
    )
    op.create_index("ix_pts_payouts_period_id", "pts_payouts", ["period_id"], unique=False)
    op.create_index("ix_pts_payouts_citizen_id", "pts_payouts", ["citizen_id"], unique=False)

    op.create_table(
        "pts_payout_items",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("payout_id", sa.Integer(), nullable=False),
        sa.Column("reference_month", sa.Integer(), nullable=False),
        sa.Column("reference_year", sa.Integer(), nullable=False),
        sa.Column("item_type", payout_item_type, nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["payout_id"], ["pts_payouts.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_pts_payout_items_payout_id", "pts_payout_items", ["payout_id"], unique=False)
    op.create_index(
        "ix_pts_payout_items_reference",
        "pts_payout_items",
        ["reference_year", "reference_month"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_pts_payout_items_reference", table_name="pts_payout_items")
    op.drop_index("ix_pts_payout_items_payout_id", table_name="pts_payout_items")
    op.drop_table("pts_payout_items")
    op.drop_index("ix_pts_payouts_citizen_id", table_name="pts_payouts")
    op.drop_index("ix_pts_payouts_period_id", table_name="pts_payouts")
    op.drop_table("pts_payouts")
    op.drop_table("pts_periods")
    op.drop_table("pts_holidays")
    op.drop_index("ix_pts_leave_quotas_citizen_id", table_name="pts_leave_quotas")
    op.drop_table("pts_leave_quotas")
    op.drop_index("ix_pts_leave_requests_fiscal_year", table_name="pts_leave_requests")
    op.drop_index("ix_pts_leave_requests_citizen_id", table_name="pts_leave_requests")
    op.drop_table("pts_leave_requests")
    op.drop_index("ix_pts_employee_licenses_citizen_id", table_name="pts_employee_licenses")
    op.drop_table("pts_employee_licenses")
    op.drop_index("ix_pts_employee_movements_citizen_id", table_name="pts_employee_movements")
    op.drop_table("pts_employee_movements")
    op.drop_index("ix_pts_employee_eligibility_master_rate_id", table_name="pts_employee_eligibility")
    op.drop_index("ix_pts_employee_eligibility_citizen_id", table_name="pts_employee_eligibility")
    op.drop_table("pts_employee_eligibility")
    op.drop_table("pts_employees")
    op.drop_index("ix_pts_master_rates_profession_code", table_name="pts_master_rates")
    op.drop_table("pts_master_rates")

    bind = op.get_bind()
    payout_item_type.drop(bind, checkfirst=True)
    period_status.drop(bind, checkfirst=True)
