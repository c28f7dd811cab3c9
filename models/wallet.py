from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from database import Base
from utils.common_helpers import utcnow


class WalletEntry(Base):
    """
    Append-only wallet ledger.

    ``remaining_amount`` is the balance after this entry. The seed row written
    when the wallet is opened has ``balance_type = NULL`` and zero amounts.
    """

    __tablename__ = "wallet"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    remaining_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    balance_type: Mapped[str | None] = mapped_column(String(8), nullable=True)  # CREDIT | DEBIT | NULL (seed)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class WalletAccount(Base):
    """Materialised balance, updated in the same transaction as every ledger insert."""

    __tablename__ = "wallet_accounts"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    balance: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )
