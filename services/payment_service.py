from __future__ import annotations

from datetime import timedelta
from typing import Any, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, selectinload

from models.enums import PaymentStatus
from models.payment import Payment
from models.portfolio import Portfolio
from models.user import User
from services.errors import NotFoundError, ValidationError
from utils.common_helpers import safe_div, to_float, utcnow
from utils.pagination import PageParams, day_bounds, paginate

_SORTABLE = {
    "amount": Payment.amount,
    "invested_shares": Payment.invested_shares,
    "status": Payment.status,
    "created_at": Payment.created_at,
}


def _base_query(db: Session) -> Query:
    return (
        db.query(Payment)
        .outerjoin(Portfolio, Portfolio.id == Payment.portfolio_id)
        .join(User, User.id == Payment.user_id)
        .options(
            selectinload(Payment.portfolio).selectinload(Portfolio.featured_image),
            selectinload(Payment.user),
        )
    )


def _apply_filters(query: Query, params: PageParams, *, search_users: bool = False) -> Query:
    if params.search:
        term = f"%{params.search.strip()}%"
        clauses = [Portfolio.title.ilike(term), Payment.transaction_id.ilike(term)]
        if search_users:
            clauses.append(User.name.ilike(term))
        query = query.filter(or_(*clauses))
    start, end = day_bounds(params.date_from, params.date_to)
    if start is not None:
        query = query.filter(Payment.created_at >= start)
    if end is not None:
        query = query.filter(Payment.created_at < end)

    column = _SORTABLE.get(params.sort_by or "created_at", Payment.created_at)
    order = column.asc() if params.sort_order == "asc" else column.desc()
    return query.order_by(order, Payment.id.desc())


def get_user_payment(db: Session, user_id: int, payment_id: int) -> Payment:
    payment = _base_query(db).filter(Payment.id == payment_id, Payment.user_id == user_id).first()
    if not payment:
        raise NotFoundError("Payment not found")
    return payment


def list_user_transactions(db: Session, user_id: int, params: PageParams) -> dict[str, Any]:
    query = _base_query(db).filter(Payment.user_id == user_id)
    return paginate(_apply_filters(query, params), params)


def list_user_portfolios(db: Session, user_id: int, params: PageParams) -> dict[str, Any]:
    """Completed purchases, newest first, with the portfolio each one bought into."""
    query = _base_query(db).filter(Payment.user_id == user_id, Payment.status == PaymentStatus.COMPLETED)
    return paginate(_apply_filters(query, params), params)


def list_admin_transactions(
    db: Session, params: PageParams, status: Optional[str] = None
) -> dict[str, Any]:
    query = _base_query(db)
    if status:
        if status not in PaymentStatus.ALL:
            raise ValidationError(f"Unknown payment status: {status}")
        query = query.filter(Payment.status == status)
    return paginate(_apply_filters(query, params, search_users=True), params)


def list_recent_portfolio_payments(db: Session, months: int = 3) -> list[Payment]:
    since = utcnow() - timedelta(days=30 * months)
    return (
        _base_query(db)
        .filter(Payment.created_at >= since)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )


def capital_rows(db: Session, params: PageParams) -> dict[str, Any]:
    """One row per payment: who holds how many shares and what fraction of the portfolio that is."""
    query = _apply_filters(
        _base_query(db).filter(Payment.status == PaymentStatus.COMPLETED), params, search_users=True
    )
    page = paginate(query, params)
    page["items"] = [
        {
            "payment_id": p.id,
            "portfolio_id": p.portfolio_id,
            "portfolio_title": p.portfolio.title if p.portfolio else None,
            "investor_name": p.user.name if p.user else "Unknown",
            "total_share_owned": p.invested_shares,
            "percentage_ownership": (safe_div(p.invested_shares, p.portfolio.shares) or 0.0) * 100
            if p.portfolio
            else 0.0,
        }
        for p in page["items"]
    ]
    return page


def user_portfolio_value(db: Session, user_id: int) -> float:
    total = (
        db.query(func.coalesce(func.sum(Payment.amount), 0.0))
        .filter(Payment.user_id == user_id, Payment.status == PaymentStatus.COMPLETED)
        .scalar()
    )
    return to_float(total)


def user_number_of_shares(db: Session, user_id: int) -> int:
    total = (
        db.query(func.coalesce(func.sum(Payment.invested_shares), 0))
        .filter(Payment.user_id == user_id, Payment.status == PaymentStatus.COMPLETED)
        .scalar()
    )
    return int(total or 0)


def completed_totals(db: Session) -> tuple[float, int]:
    """(amount raised, shares sold) across every completed payment."""
    row = (
        db.query(
            func.coalesce(func.sum(Payment.amount), 0.0),
            func.coalesce(func.sum(Payment.invested_shares), 0),
        )
        .filter(Payment.status == PaymentStatus.COMPLETED)
        .one()
    )
    return to_float(row[0]), int(row[1] or 0)
