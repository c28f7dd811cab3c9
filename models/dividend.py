from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base
from utils.common_helpers import utcnow


class PortfolioDividend(Base):
    __tablename__ = "portfolio_dividends"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    portfolio_id: Mapped[int | None] = mapped_column(
        ForeignKey("portfolios.id", ondelete="SET NULL"), nullable=True, index=True
    )
    net_rental_income: Mapped[float] = mapped_column(Float, nullable=False)
    expenses: Mapped[float] = mapped_column(Float, nullable=False)
    total_revenue: Mapped[float] = mapped_column(Float, nullable=False)
    per_share_dividend: Mapped[float] = mapped_column(Float, nullable=False)
    distributed_total: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    investor_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    portfolio = relationship("Portfolio")
    user_dividends = relationship("UserDividend", back_populates="portfolio_dividend")


class UserDividend(Base):
    __tablename__ = "user_dividends"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    portfolio_id: Mapped[int | None] = mapped_column(
        ForeignKey("portfolios.id", ondelete="SET NULL"), nullable=True, index=True
    )
    portfolio_dividend_id: Mapped[int] = mapped_column(
        ForeignKey("portfolio_dividends.id", ondelete="CASCADE"), index=True
    )
    total_shares: Mapped[int] = mapped_column(Integer, nullable=False)
    dividend: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    portfolio = relationship("Portfolio")
    user = relationship("User")
    portfolio_dividend = relationship("PortfolioDividend", back_populates="user_dividends")
