"""initial schema

Revision ID: 3b9e1c7a5d20
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "3b9e1c7a5d20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True) -> list:
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()))
    return cols


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="INVESTOR"),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("state", sa.String(length=120), nullable=True),
        sa.Column("country", sa.String(length=120), nullable=True),
        sa.Column("zip_code", sa.String(length=20), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "verification_tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token_type", sa.String(length=32), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("user_id", "token_type", name="uq_verification_tokens_user_type"),
    )
    op.create_index("ix_verification_tokens_user_id", "verification_tokens", ["user_id"])

    op.create_table(
        "media",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("url", sa.String(length=1024), nullable=False),
        sa.Column("secure_url", sa.String(length=1024), nullable=False),
        sa.Column("storage_id", sa.String(length=255), nullable=False),
        sa.Column("byte_size", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("format", sa.String(length=32), nullable=True),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_media_storage_id", "media", ["storage_id"], unique=True)

    op.create_table(
        "portfolios",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=16), nullable=False, server_default="PROPERTY"),
        sa.Column("featured_image_id", sa.Integer(), sa.ForeignKey("media.id", ondelete="SET NULL"), nullable=True),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("shares", sa.Integer(), nullable=False),
        sa.Column("share_price", sa.Float(), nullable=False),
        sa.Column("remaining_shares", sa.Integer(), nullable=False),
        sa.Column("remaining_investment", sa.Float(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("remaining_shares >= 0", name="ck_portfolios_remaining_shares_non_negative"),
        sa.CheckConstraint("remaining_shares <= shares", name="ck_portfolios_remaining_shares_le_shares"),
    )
    op.create_index("ix_portfolios_slug", "portfolios", ["slug"], unique=True)

    op.create_table(
        "portfolio_gallery_images",
        sa.Column("portfolio_id", sa.Integer(), sa.ForeignKey("portfolios.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("media_id", sa.Integer(), sa.ForeignKey("media.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "investments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("investor_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("portfolio_id", sa.Integer(), sa.ForeignKey("portfolios.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("shares", sa.Integer(), nullable=False),
        sa.Column("share_price", sa.Float(), nullable=False),
        sa.Column("total_investment", sa.Float(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("ix_investments_investor_id", "investments", ["investor_id"])
    op.create_index("ix_investments_portfolio_id", "investments", ["portfolio_id"])

    op.create_table(
        "plaid_banks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("account_id", sa.String(length=128), nullable=False),
        sa.Column("bank_name", sa.String(length=255), nullable=False),
        sa.Column("bank_type", sa.String(length=64), nullable=True),
        sa.Column("access_token", sa.String(length=255), nullable=False),
        sa.Column("item_id", sa.String(length=255), nullable=True),
        sa.Column("bank_data", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_plaid_banks_user_id", "plaid_banks", ["user_id"])
    op.create_index("ix_plaid_banks_account_id", "plaid_banks", ["account_id"], unique=True)

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("portfolio_id", sa.Integer(), sa.ForeignKey("portfolios.id", ondelete="SET NULL"), nullable=True),
        sa.Column("provider", sa.String(length=16), nullable=False),
        sa.Column("transaction_id", sa.String(length=128), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("fee", sa.Float(), nullable=True),
        sa.Column("net_amount", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("invested_shares", sa.Integer(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("provider", "transaction_id", name="uq_payments_provider_transaction"),
    )
    op.create_index("ix_payments_user_id", "payments", ["user_id"])
    op.create_index("ix_payments_portfolio_id", "payments", ["portfolio_id"])

    op.create_table(
        "carts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("portfolio_id", sa.Integer(), sa.ForeignKey("portfolios.id", ondelete="CASCADE"), nullable=False),
        sa.Column("shares", sa.Integer(), nullable=False),
        sa.Column("bank_account_id", sa.Integer(), sa.ForeignKey("plaid_banks.id", ondelete="SET NULL"), nullable=True),
        sa.Column("bank_account_details", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_carts_user_id", "carts", ["user_id"], unique=True)

    op.create_table(
        "checkout_intents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("portfolio_id", sa.Integer(), sa.ForeignKey("portfolios.id", ondelete="SET NULL"), nullable=True),
        sa.Column("provider", sa.String(length=16), nullable=False),
        sa.Column("provider_ref", sa.String(length=128), nullable=False),
        sa.Column("shares", sa.Integer(), nullable=False),
        sa.Column("share_price", sa.Float(), nullable=False),
        sa.Column("amount", sa.String(length=32), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
        sa.Column("bank_account_id", sa.Integer(), sa.ForeignKey("plaid_banks.id", ondelete="SET NULL"), nullable=True),
        sa.Column("state", sa.String(length=32), nullable=False, server_default="INTENT_CREATED"),
        sa.Column("failure_reason", sa.Text(), nullable=True),
        sa.Column("payment_id", sa.Integer(), sa.ForeignKey("payments.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("provider", "provider_ref", name="uq_checkout_intents_provider_ref"),
    )
    op.create_index("ix_checkout_intents_user_id", "checkout_intents", ["user_id"])
    op.create_index("ix_checkout_intents_portfolio_id", "checkout_intents", ["portfolio_id"])

    op.create_table(
        "checkouts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("portfolio_id", sa.Integer(), sa.ForeignKey("portfolios.id", ondelete="SET NULL"), nullable=True),
        sa.Column("payment_id", sa.Integer(), sa.ForeignKey("payments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("provider", sa.String(length=16), nullable=False),
        sa.Column("shares", sa.Integer(), nullable=False),
        sa.Column("portfolio_details", sa.JSON(), nullable=False),
        sa.Column("bank_account_id", sa.Integer(), nullable=True),
        sa.Column("bank_account_details", sa.JSON(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_checkouts_user_id", "checkouts", ["user_id"])
    op.create_index("ix_checkouts_portfolio_id", "checkouts", ["portfolio_id"])

    op.create_table(
        "portfolio_dividends",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("portfolio_id", sa.Integer(), sa.ForeignKey("portfolios.id", ondelete="SET NULL"), nullable=True),
        sa.Column("net_rental_income", sa.Float(), nullable=False),
        sa.Column("expenses", sa.Float(), nullable=False),
        sa.Column("total_revenue", sa.Float(), nullable=False),
        sa.Column("per_share_dividend", sa.Float(), nullable=False),
        sa.Column("distributed_total", sa.Float(), nullable=False, server_default="0"),
        sa.Column("investor_count", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(updated=False),
    )
    op.create_index("ix_portfolio_dividends_portfolio_id", "portfolio_dividends", ["portfolio_id"])

    op.create_table(
        "user_dividends",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("portfolio_id", sa.Integer(), sa.ForeignKey("portfolios.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "portfolio_dividend_id",
            sa.Integer(),
            sa.ForeignKey("portfolio_dividends.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("total_shares", sa.Integer(), nullable=False),
        sa.Column("dividend", sa.Float(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("ix_user_dividends_user_id", "user_dividends", ["user_id"])
    op.create_index("ix_user_dividends_portfolio_id", "user_dividends", ["portfolio_id"])

    op.create_table(
        "wallet",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("remaining_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("balance_type", sa.String(length=8), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_wallet_user_id", "wallet", ["user_id"])

    op.create_table(
        "wallet_accounts",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("balance", sa.Float(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    for table in (
        "wallet_accounts",
        "wallet",
        "user_dividends",
        "portfolio_dividends",
        "checkouts",
        "checkout_intents",
        "carts",
        "payments",
        "plaid_banks",
        "investments",
        "portfolio_gallery_images",
        "portfolios",
        "media",
        "verification_tokens",
        "users",
    ):
        op.drop_table(table)
