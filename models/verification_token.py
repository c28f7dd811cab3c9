from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from database import Base
from utils.common_helpers import utcnow


class VerificationToken(Base):
    """One live OTP per (user, purpose); re-issuing overwrites the row."""

    __tablename__ = "verification_tokens"
    __table_args__ = (
        UniqueConstraint("user_id", "token_type", name="uq_verification_tokens_user_type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    token_type: Mapped[str] = mapped_column(String(32))  # EMAIL_VERIFICATION | LOGIN_OTP | PASSWORD_RESET
    token_hash: Mapped[str] = mapped_column(String(64))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
