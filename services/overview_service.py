from __future__ import annotations

from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.enums import Role
from models.portfolio import Portfolio
from models.user import User
from services import dividend_service, payment_service, wallet_service
from utils.common_helpers import safe_div


def _share_totals(db: Session) -> dict[str, int]:
    _, sold = payment_service.completed_totals(db)
    unsold = int(db.query(func.coalesce(func.sum(Portfolio.remaining_shares), 0)).scalar() or 0)
    return {"amount": sold + unsold, "sold": sold, "unsold": unsold}


def user_overview(db: Session, user_id: int) -> dict[str, Any]:
    return {
        "wallet": wallet_service.wallet_summary(db, user_id),
        "portfolio_value": payment_service.user_portfolio_value(db, user_id),
        "number_of_shares": payment_service.user_number_of_shares(db, user_id),
        "total_dividend": dividend_service.user_total_dividend(db, user_id),
        "total_shares": _share_totals(db),
    }


def admin_overview(db: Session) -> dict[str, Any]:
    amount_raised, shares_sold = payment_service.completed_totals(db)
    investors = db.query(func.count(User.id)).filter(User.role == Role.INVESTOR).scalar() or 0
    totals = _share_totals(db)
    return {
        "amount_raised": amount_raised,
        "number_of_shares_sold": shares_sold,
        "number_of_investors": int(investors),
        "average_investment": safe_div(amount_raised, investors) or 0.0,
        "unsold_shares": totals["unsold"],
        "total_shares": totals,
    }
