from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.enums import BalanceType
from models.wallet import WalletAccount, WalletEntry
from services.errors import ValidationError
from utils.common_helpers import to_float, utcnow
from utils.pagination import PageParams, day_bounds, paginate

logger = logging.getLogger(__name__)


def open_wallet(db: Session, user_id: int) -> WalletAccount:
    """
    Create the user's wallet: the account row plus a zero seed entry with no
    balance type. Safe to call twice. Does not commit.
    """
    account = db.get(WalletAccount, user_id)
    if account is not None:
        return account
    account = WalletAccount(user_id=user_id, balance=0.0)
    db.add(account)
    db.add(WalletEntry(user_id=user_id, amount=0.0, remaining_amount=0.0, balance_type=None))
    db.flush()
    return account


def _lock_account(db: Session, user_id: int) -> WalletAccount:
    account = (
        db.query(WalletAccount)
        .filter(WalletAccount.user_id == user_id)
        .with_for_update()
        .first()
    )
    if account is None:
        account = open_wallet(db, user_id)
    return account


def latest_entry(db: Session, user_id: int) -> Optional[WalletEntry]:
    return (
        db.query(WalletEntry)
        .filter(WalletEntry.user_id == user_id)
        .order_by(WalletEntry.created_at.desc(), WalletEntry.id.desc())
        .first()
    )


def current_balance(db: Session, user_id: int) -> float:
    """Balance is the ``remaining_amount`` of the most recent ledger row, not a sum."""
    entry = latest_entry(db, user_id)
    return to_float(entry.remaining_amount) if entry else 0.0


def _post(db: Session, user_id: int, amount: float, balance_type: str, description: Optional[str]) -> WalletEntry:
    if amount is None or amount <= 0:
        raise ValidationError("Amount must be greater than zero")

    account = _lock_account(db, user_id)
    prior = to_float(account.balance)
    if balance_type == BalanceType.DEBIT and amount > prior:
        raise ValidationError("Insufficient wallet balance")

    remaining = prior + amount if balance_type == BalanceType.CREDIT else prior - amount
    entry = WalletEntry(
        user_id=user_id,
        amount=amount,
        remaining_amount=remaining,
        balance_type=balance_type,
        description=description,
    )
    db.add(entry)
    account.balance = remaining
    db.flush()
    logger.info("wallet_%s user_id=%s amount=%.2f", balance_type.lower(), user_id, amount)
    return entry


def credit(db: Session, user_id: int, amount: float, description: Optional[str] = None) -> WalletEntry:
    """Does not commit; the caller owns the transaction."""
    return _post(db, user_id, amount, BalanceType.CREDIT, description)


def debit(db: Session, user_id: int, amount: float, description: Optional[str] = None) -> WalletEntry:
    """Does not commit; the caller owns the transaction."""
    return _post(db, user_id, amount, BalanceType.DEBIT, description)


def _sum_by_type(db: Session, user_id: int, balance_type: str) -> float:
    total = (
        db.query(func.coalesce(func.sum(WalletEntry.amount), 0.0))
        .filter(WalletEntry.user_id == user_id, WalletEntry.balance_type == balance_type)
        .scalar()
    )
    return to_float(total)


def wallet_summary(db: Session, user_id: int) -> dict[str, float]:
    # cash_in/cash_out are full sums while balance is the latest snapshot;
    # they need not reconcile.
    return {
        "balance": current_balance(db, user_id),
        "cash_in": _sum_by_type(db, user_id, BalanceType.CREDIT),
        "cash_out": _sum_by_type(db, user_id, BalanceType.DEBIT),
    }


def list_wallet_entries(db: Session, user_id: int, params: PageParams) -> dict[str, Any]:
    query = db.query(WalletEntry).filter(
        WalletEntry.user_id == user_id,
        WalletEntry.balance_type.isnot(None),
    )
    if params.search:
        query = query.filter(WalletEntry.description.ilike(f"%{params.search.strip()}%"))
    start, end = day_bounds(params.date_from, params.date_to)
    if start is not None:
        query = query.filter(WalletEntry.created_at >= start)
    if end is not None:
        query = query.filter(WalletEntry.created_at < end)
    query = query.order_by(WalletEntry.created_at.desc(), WalletEntry.id.desc())
    return paginate(query, params)


def recent_wallet_entries(db: Session, user_id: int, months: int = 3) -> list[WalletEntry]:
    if months not in (3, 6):
        raise ValidationError("months must be 3 or 6")
    since = utcnow() - timedelta(days=30 * months)
    return (
        db.query(WalletEntry)
        .filter(
            WalletEntry.user_id == user_id,
            WalletEntry.balance_type.isnot(None),
            WalletEntry.created_at >= since,
        )
        .order_by(WalletEntry.created_at.desc(), WalletEntry.id.desc())
        .all()
    )
