from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base
from models.enums import Category
from utils.common_helpers import utcnow


class Portfolio(Base):
    __tablename__ = "portfolios"
    __table_args__ = (
        CheckConstraint("remaining_shares >= 0", name="ck_portfolios_remaining_shares_non_negative"),
        CheckConstraint("remaining_shares <= shares", name="ck_portfolios_remaining_shares_le_shares"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255))
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(16), default=Category.PROPERTY, nullable=False)  # PROPERTY | FUND
    featured_image_id: Mapped[int | None] = mapped_column(
        ForeignKey("media.id", ondelete="SET NULL"), nullable=True
    )
    author_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    price: Mapped[float] = mapped_column(Float, nullable=False)
    shares: Mapped[int] = mapped_column(Integer, nullable=False)
    share_price: Mapped[float] = mapped_column(Float, nullable=False)
    remaining_shares: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining_investment: Mapped[float] = mapped_column(Float, nullable=False)

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

    featured_image = relationship("Media", foreign_keys=[featured_image_id])
    gallery = relationship(
        "PortfolioGalleryImage",
        back_populates="portfolio",
        cascade="all, delete-orphan",
        order_by="PortfolioGalleryImage.display_order",
    )

    @property
    def sold_shares(self) -> int:
        return self.shares - self.remaining_shares


class PortfolioGalleryImage(Base):
    __tablename__ = "portfolio_gallery_images"

    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id", ondelete="CASCADE"), primary_key=True)
    media_id: Mapped[int] = mapped_column(ForeignKey("media.id", ondelete="CASCADE"), primary_key=True)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    portfolio = relationship("Portfolio", back_populates="gallery")
    media = relationship("Media")


class Investment(Base):
    """Append-only purchase record; the input to dividend eligibility."""

    __tablename__ = "investments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    investor_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id", ondelete="RESTRICT"), index=True)
    shares: Mapped[int] = mapped_column(Integer, nullable=False)
    share_price: Mapped[float] = mapped_column(Float, nullable=False)
    total_investment: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    portfolio = relationship("Portfolio")
    investor = relationship("User")
