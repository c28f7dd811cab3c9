from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session, selectinload

from models.bank_account import BankAccount
from models.order import Cart
from models.portfolio import Portfolio
from services.errors import NotFoundError, ValidationError
from utils.common_helpers import mask_account_id

logger = logging.getLogger(__name__)

INCREMENT = "INCREMENT"
DECREMENT = "DECREMENT"


def get_cart(db: Session, user_id: int) -> Optional[Cart]:
    return (
        db.query(Cart)
        .options(selectinload(Cart.portfolio))
        .filter(Cart.user_id == user_id)
        .first()
    )


def require_cart(db: Session, user_id: int) -> Cart:
    cart = get_cart(db, user_id)
    if not cart:
        raise NotFoundError("Cart not found")
    return cart


def add_or_replace(db: Session, user_id: int, portfolio_id: int, shares: int) -> Cart:
    """Last write wins: a user holds at most one portfolio selection."""
    if not db.query(Portfolio.id).filter(Portfolio.id == portfolio_id).first():
        raise NotFoundError("Portfolio not found")

    cart = db.query(Cart).filter(Cart.user_id == user_id).first()
    if cart:
        cart.portfolio_id = portfolio_id
        cart.shares = shares
    else:
        cart = Cart(user_id=user_id, portfolio_id=portfolio_id, shares=shares)
        db.add(cart)
    db.commit()
    return require_cart(db, user_id)


def update_quantity(db: Session, user_id: int, delta: int, mode: str) -> Cart:
    cart = require_cart(db, user_id)
    if mode not in (INCREMENT, DECREMENT):
        raise ValidationError("mode must be INCREMENT or DECREMENT")

    new_shares = cart.shares + delta if mode == INCREMENT else cart.shares - delta
    if new_shares <= 0:
        raise ValidationError("Shares must be at least 1")
    if new_shares > cart.portfolio.remaining_shares:
        raise ValidationError(f"Only {cart.portfolio.remaining_shares} shares are available")

    cart.shares = new_shares
    db.commit()
    return require_cart(db, user_id)


def bank_snapshot(bank: BankAccount) -> dict[str, Any]:
    """Bank row without secrets, as stored on the cart and the checkout audit row."""
    return {
        "id": bank.id,
        "account_id": mask_account_id(bank.account_id),
        "bank_name": bank.bank_name,
        "bank_type": bank.bank_type,
    }


def attach_bank_account(db: Session, user_id: int, bank_account_id: int) -> Cart:
    cart = require_cart(db, user_id)
    bank = (
        db.query(BankAccount)
        .filter(BankAccount.id == bank_account_id, BankAccount.user_id == user_id)
        .first()
    )
    if not bank:
        raise NotFoundError("Bank account not found")
    cart.bank_account_id = bank.id
    cart.bank_account_details = bank_snapshot(bank)
    db.commit()
    return require_cart(db, user_id)


def remove(db: Session, user_id: int) -> None:
    cart = require_cart(db, user_id)
    db.delete(cart)
    db.commit()
