from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from config.settings import DIVIDEND_VESTING_DAYS
from models.dividend import PortfolioDividend, UserDividend
from models.portfolio import Investment, Portfolio
from services import wallet_service
from services.errors import NotFoundError, ValidationError
from utils.common_helpers import to_float, utcnow
from utils.pagination import PageParams, day_bounds, paginate

logger = logging.getLogger(__name__)


def eligible_holdings(db: Session, portfolio_id: int, vesting_days: int = DIVIDEND_VESTING_DAYS) -> list[tuple[int, int]]:
    """(investor_id, shares) for investments held at least ``vesting_days``, one row per investor."""
    cutoff = utcnow() - timedelta(days=vesting_days)
    rows = (
        db.query(Investment.investor_id, func.sum(Investment.shares).label("shares"))
        .filter(Investment.portfolio_id == portfolio_id, Investment.created_at <= cutoff)
        .group_by(Investment.investor_id)
        .order_by(Investment.investor_id.asc())
        .all()
    )
    return [(row.investor_id, int(row.shares or 0)) for row in rows if row.shares]


def create_portfolio_dividend(
    db: Session,
    portfolio_id: int,
    *,
    net_rental_income: float,
    expenses: float,
) -> PortfolioDividend:
    """
    Split ``net_rental_income - expenses`` across every vested share.

    The per-share figure divides by the portfolio's total share count, so
    unsold shares simply receive nothing. Payouts are not rounded; the
    distributed total is stored next to ``total_revenue``.
    """
    portfolio = db.get(Portfolio, portfolio_id)
    if not portfolio:
        raise NotFoundError("Portfolio not found")

    total_revenue = to_float(net_rental_income) - to_float(expenses)
    if total_revenue <= 0:
        raise ValidationError("Total revenue must be greater than zero")

    holdings = eligible_holdings(db, portfolio_id)
    if not holdings:
        raise NotFoundError("No investments were found for this portfolio")

    per_share = total_revenue / portfolio.shares

    try:
        event = PortfolioDividend(
            portfolio_id=portfolio_id,
            net_rental_income=net_rental_income,
            expenses=expenses,
            total_revenue=total_revenue,
            per_share_dividend=per_share,
        )
        db.add(event)
        db.flush()

        distributed = 0.0
        for investor_id, shares in holdings:
            payout = per_share * shares
            db.add(
                UserDividend(
                    user_id=investor_id,
                    portfolio_id=portfolio_id,
                    portfolio_dividend_id=event.id,
                    total_shares=shares,
                    dividend=payout,
                )
            )
            wallet_service.credit(db, investor_id, payout, f"Dividend from {portfolio.title}")
            distributed += payout

        event.distributed_total = distributed
        event.investor_count = len(holdings)
        db.commit()
    except Exception:
        db.rollback()
        raise

    vested_shares = sum(shares for _, shares in holdings)
    expected = per_share * vested_shares
    if not math.isclose(distributed, expected, rel_tol=1e-9, abs_tol=1e-6):
        logger.warning(
            "dividend_drift dividend_id=%s expected=%.6f distributed=%.6f",
            event.id, expected, distributed,
        )
    logger.info(
        "dividend_distributed dividend_id=%s portfolio_id=%s investors=%s total_revenue=%.2f distributed=%.2f",
        event.id, portfolio_id, len(holdings), total_revenue, distributed,
    )
    db.refresh(event)
    return event


def list_portfolio_dividends(db: Session, params: PageParams) -> dict[str, Any]:
    query = db.query(PortfolioDividend).options(selectinload(PortfolioDividend.portfolio))
    if params.search:
        query = query.join(Portfolio, Portfolio.id == PortfolioDividend.portfolio_id).filter(
            Portfolio.title.ilike(f"%{params.search.strip()}%")
        )
    start, end = day_bounds(params.date_from, params.date_to)
    if start is not None:
        query = query.filter(PortfolioDividend.created_at >= start)
    if end is not None:
        query = query.filter(PortfolioDividend.created_at < end)
    query = query.order_by(PortfolioDividend.created_at.desc(), PortfolioDividend.id.desc())
    return paginate(query, params)


def list_dividends_for_portfolio(db: Session, portfolio_id: int) -> list[PortfolioDividend]:
    if not db.query(Portfolio.id).filter(Portfolio.id == portfolio_id).first():
        raise NotFoundError("Portfolio not found")
    return (
        db.query(PortfolioDividend)
        .options(selectinload(PortfolioDividend.user_dividends).selectinload(UserDividend.user))
        .filter(PortfolioDividend.portfolio_id == portfolio_id)
        .order_by(PortfolioDividend.created_at.desc(), PortfolioDividend.id.desc())
        .all()
    )


def list_user_dividends(db: Session, user_id: int, params: PageParams) -> dict[str, Any]:
    query = (
        db.query(UserDividend)
        .options(selectinload(UserDividend.portfolio))
        .filter(UserDividend.user_id == user_id)
    )
    if params.search:
        query = query.join(Portfolio, Portfolio.id == UserDividend.portfolio_id).filter(
            Portfolio.title.ilike(f"%{params.search.strip()}%")
        )
    start, end = day_bounds(params.date_from, params.date_to)
    if start is not None:
        query = query.filter(UserDividend.created_at >= start)
    if end is not None:
        query = query.filter(UserDividend.created_at < end)
    query = query.order_by(UserDividend.created_at.desc(), UserDividend.id.desc())
    return paginate(query, params)


def user_total_dividend(db: Session, user_id: int) -> float:
    total = (
        db.query(func.coalesce(func.sum(UserDividend.dividend), 0.0))
        .filter(UserDividend.user_id == user_id)
        .scalar()
    )
    return to_float(total)
