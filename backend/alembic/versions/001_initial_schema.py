"""Initial schema: vendors, customers, tickets, system_logs, configurations.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "vendors",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("tickets_per_release", sa.Integer(), nullable=False, server_default=sa.text("5")),
        sa.Column("release_interval", sa.Integer(), nullable=False, server_default=sa.text("1000")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_vendors_id", "vendors", ["id"])
    op.create_index("ix_vendors_email", "vendors", ["email"], unique=True)

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("retrieval_interval", sa.Integer(), nullable=False, server_default=sa.text("2000")),
        sa.Column("priority_level", sa.String(20), nullable=False, server_default=sa.text("'standard'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_customers_id", "customers", ["id"])
    op.create_index("ix_customers_email", "customers", ["email"], unique=True)

    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("ticket_number", sa.String(100), nullable=False),
        sa.Column("vendor_id", sa.Integer(), sa.ForeignKey("vendors.id"), nullable=False),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id"), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default=sa.text("50.00")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'available'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("sold_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('available', 'sold')", name="check_ticket_status"),
        sa.CheckConstraint("price > 0", name="check_ticket_price_positive"),
        # A sold row always names its buyer and sale time; an available row names neither.
        sa.CheckConstraint(
            "(status = 'sold' AND customer_id IS NOT NULL AND sold_at IS NOT NULL)"
            " OR (status = 'available' AND customer_id IS NULL AND sold_at IS NULL)",
            name="check_ticket_sold_fields",
        ),
    )
    op.create_index("ix_tickets_id", "tickets", ["id"])
    op.create_index("ix_tickets_vendor_id", "tickets", ["vendor_id"])
    op.create_index("ix_tickets_customer_id", "tickets", ["customer_id"])
    # Allocator lookup: lowest-id row WHERE status = 'available', and the live count.
    op.create_index("ix_tickets_status_id", "tickets", ["status", "id"])
    # Purchase history: WHERE customer_id = ? ORDER BY sold_at DESC
    op.create_index("ix_tickets_customer_sold_at", "tickets", ["customer_id", "sold_at"])

    op.create_table(
        "system_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("actor_type", sa.String(20), nullable=False, server_default=sa.text("'system'")),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "actor_type IN ('vendor', 'customer', 'admin', 'system')",
            name="check_system_log_actor_type",
        ),
    )
    op.create_index("ix_system_logs_id", "system_logs", ["id"])
    op.create_index("ix_system_logs_timestamp", "system_logs", ["timestamp"])

    op.create_table(
        "configurations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("total_tickets", sa.Integer(), nullable=False),
        sa.Column("ticket_release_rate", sa.Integer(), nullable=False),
        sa.Column("customer_retrieval_rate", sa.Integer(), nullable=False),
        sa.Column("max_ticket_capacity", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_configurations_id", "configurations", ["id"])


def downgrade() -> None:
    op.drop_table("configurations")
    op.drop_table("system_logs")
    op.drop_table("tickets")
    op.drop_table("customers")
    op.drop_table("vendors")
