"""initial router schema

Revision ID: 0001_router
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_router"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "currencies",
        sa.Column("code", sa.String(length=10), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("decimal_places", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint("code"),
    )
    op.create_index("ix_currencies_is_active", "currencies", ["is_active"])

    op.create_table(
        "payment_methods",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("min_amount", sa.Numeric(24, 8), nullable=False),
        sa.Column("max_amount", sa.Numeric(24, 8), nullable=False),
        sa.Column("avg_settlement_hours", sa.Numeric(10, 2), nullable=False),
        sa.Column("fee_percentage", sa.Numeric(8, 6), nullable=False),
        sa.Column("source_currencies", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("target_currencies", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index("ix_payment_methods_type", "payment_methods", ["type"])
    op.create_index("ix_payment_methods_is_active", "payment_methods", ["is_active"])

    op.create_table(
        "quotes",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("source_currency", sa.String(length=10), nullable=False),
        sa.Column("target_currency", sa.String(length=10), nullable=False),
        sa.Column("source_amount", sa.Numeric(24, 8), nullable=False),
        sa.Column("exchange_rate", sa.Numeric(24, 8), nullable=False),
        sa.Column("target_amount", sa.Numeric(24, 8), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["source_currency"], ["currencies.code"]),
        sa.ForeignKeyConstraint(["target_currency"], ["currencies.code"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_quotes_status", "quotes", ["status"])
    op.create_index("ix_quotes_expires_at", "quotes", ["expires_at"])

    op.create_table(
        "quote_routes",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("quote_id", sa.String(), nullable=False),
        sa.Column("payment_method_id", sa.Integer(), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("estimated_cost", sa.Numeric(24, 8), nullable=False),
        sa.Column("estimated_time_hours", sa.Numeric(10, 2), nullable=False),
        sa.Column("score", sa.Numeric(6, 2), nullable=False),
        sa.ForeignKeyConstraint(["quote_id"], ["quotes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["payment_method_id"], ["payment_methods.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("quote_id", "payment_method_id", name="uq_quote_route_method"),
    )
    op.create_index("ix_quote_routes_quote_id", "quote_routes", ["quote_id"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("quote_id", sa.String(), nullable=False),
        sa.Column("source_currency", sa.String(length=10), nullable=False),
        sa.Column("target_currency", sa.String(length=10), nullable=False),
        sa.Column("source_amount", sa.Numeric(24, 8), nullable=False),
        sa.Column("target_amount", sa.Numeric(24, 8), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("provider_reference", sa.String(), nullable=True),
        sa.Column("message", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["quote_id"], ["quotes.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_transactions_quote_id", "transactions", ["quote_id"])
    op.create_index("ix_transactions_status", "transactions", ["status"])

    op.create_table(
        "routes",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("transaction_id", sa.String(), nullable=False),
        sa.Column("payment_method_id", sa.Integer(), nullable=False),
        sa.Column("estimated_cost", sa.Numeric(24, 8), nullable=False),
        sa.Column("estimated_time_hours", sa.Numeric(10, 2), nullable=False),
        sa.Column("exchange_rate", sa.Numeric(24, 8), nullable=False),
        sa.Column("score", sa.Numeric(6, 2), nullable=False),
        sa.Column("is_selected", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(["transaction_id"], ["transactions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["payment_method_id"], ["payment_methods.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("transaction_id"),
    )


def downgrade() -> None:
    op.drop_table("routes")
    op.drop_index("ix_transactions_status", table_name="transactions")
    op.drop_index("ix_transactions_quote_id", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_quote_routes_quote_id", table_name="quote_routes")
    op.drop_table("quote_routes")
    op.drop_index("ix_quotes_expires_at", table_name="quotes")
    op.drop_index("ix_quotes_status", table_name="quotes")
    op.drop_table("quotes")
    op.drop_index("ix_payment_methods_is_active", table_name="payment_methods")
    op.drop_index("ix_payment_methods_type", table_name="payment_methods")
    op.drop_table("payment_methods")
    op.drop_index("ix_currencies_is_active", table_name="currencies")
    op.drop_table("currencies")
