from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base
from models.enums import CheckoutState
from utils.common_helpers import utcnow


class Cart(Base):
    __tablename__ = "carts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True)
    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id", ondelete="CASCADE"), index=True)
    shares: Mapped[int] = mapped_column(Integer, nullable=False)
    bank_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("plaid_banks.id", ondelete="SET NULL"), nullable=True
    )
    bank_account_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )

    user = relationship("User", back_populates="cart")
    portfolio = relationship("Portfolio")


class CheckoutIntent(Base):
    """
    One provider-side payment attempt for a cart.

    The amount and share price are frozen here when the intent is created, and
    ``(provider, provider_ref)`` is the idempotency key for settlement.
    """

    __tablename__ = "checkout_intents"
    __table_args__ = (
        UniqueConstraint("provider", "provider_ref", name="uq_checkout_intents_provider_ref"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    portfolio_id: Mapped[int | None] = mapped_column(
        ForeignKey("portfolios.id", ondelete="SET NULL"), nullable=True, index=True
    )
    provider: Mapped[str] = mapped_column(String(16))  # PLAID | PAYPAL
    provider_ref: Mapped[str] = mapped_column(String(128))
    shares: Mapped[int] = mapped_column(Integer, nullable=False)
    share_price: Mapped[float] = mapped_column(Float, nullable=False)
    amount: Mapped[str] = mapped_column(String(32))  # "500.00", exactly as sent to the provider
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    bank_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("plaid_banks.id", ondelete="SET NULL"), nullable=True
    )
    state: Mapped[str] = mapped_column(String(32), default=CheckoutState.INTENT_CREATED, nullable=False)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    payment_id: Mapped[int | None] = mapped_column(ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )

    portfolio = relationship("Portfolio")
    payment = relationship("Payment")


class Checkout(Base):
    """Immutable audit row written at settlement."""

    __tablename__ = "checkouts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    portfolio_id: Mapped[int | None] = mapped_column(
        ForeignKey("portfolios.id", ondelete="SET NULL"), nullable=True, index=True
    )
    payment_id: Mapped[int] = mapped_column(ForeignKey("payments.id", ondelete="CASCADE"), index=True)
    provider: Mapped[str] = mapped_column(String(16))
    shares: Mapped[int] = mapped_column(Integer, nullable=False)
    portfolio_details: Mapped[dict] = mapped_column(JSON, nullable=False)
    bank_account_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bank_account_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
