"""Add officer adjustment columns to leave requests

Revision ID: 0002_leave_adjustments
Revises: 0001_initial
Create Date: 2026-09-20 10:30:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0002_leave_adjustments"
down_revision: Union[str, None] = "0001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("pts_leave_requests", sa.Column("manual_start_date", sa.Date(), nullable=True))
    op.add_column("pts_leave_requests", sa.Column("manual_end_date", sa.Date(), nullable=True))
    op.add_column("pts_leave_requests", sa.Column("manual_duration_days", sa.Numeric(5, 2), nullable=True))
    op.add_column(
        "pts_leave_requests",
        sa.Column("is_adjusted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
    )


def downgrade() -> None:
    op.drop_column("pts_leave_requests", "is_adjusted")
    op.drop_column("pts_leave_requests", "manual_duration_days")
    op.drop_column("pts_leave_requests", "manual_end_date")
    op.drop_column("pts_leave_requests", "manual_start_date")
