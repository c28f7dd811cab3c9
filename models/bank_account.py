from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base
from utils.common_helpers import utcnow


class BankAccount(Base):
    """A bank account linked through Plaid Link. ``access_token`` never leaves the server."""

    __tablename__ = "plaid_banks"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    account_id: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    bank_name: Mapped[str] = mapped_column(String(255))
    bank_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    access_token: Mapped[str] = mapped_column(String(255))
    item_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bank_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
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

    user = relationship("User", back_populates="bank_accounts")
