"""
Checkout and settlement.

A checkout moves through::

    cart -> INTENT_CREATED -> AWAITING_CONFIRMATION -> SETTLED
                                                    \\-> FAILED

The amount is computed from the live share price when the intent is created
and frozen on the ``CheckoutIntent``. Settlement is keyed by
``(provider, provider_ref)``: confirming an intent that already settled
returns the recorded payment and changes nothing.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.settings import DEFAULT_CURRENCY
from models.bank_account import BankAccount
from models.enums import CheckoutState, PaymentStatus
from models.order import Cart, Checkout, CheckoutIntent
from models.payment import Payment
from models.portfolio import Portfolio
from models.user import User
from services import cart_service, portfolio_service
from services.errors import NotFoundError, UpstreamProviderError, ValidationError
from services.payments.base import IntentRequest, PaymentProvider, ProviderIntent, ProviderSettlement, format_amount

logger = logging.getLogger(__name__)

ORDER_FAILED = "Order failed"


@dataclass
class CheckoutStart:
    intent: CheckoutIntent
    authorization: dict[str, Any]


@dataclass
class SettlementResult:
    state: str
    intent: CheckoutIntent
    payment: Optional[Payment] = None
    replayed: bool = False

    @property
    def settled(self) -> bool:
        return self.state == CheckoutState.SETTLED


def compute_amount(shares: int, share_price: float) -> str:
    return format_amount(Decimal(str(share_price)) * shares)


def _resolve_bank(db: Session, user_id: int, bank_account_id: Optional[int]) -> Optional[BankAccount]:
    if bank_account_id is None:
        return None
    bank = (
        db.query(BankAccount)
        .filter(BankAccount.id == bank_account_id, BankAccount.user_id == user_id)
        .first()
    )
    if not bank:
        raise NotFoundError("Bank account not found")
    return bank


async def start_checkout(
    db: Session,
    user: User,
    provider: PaymentProvider,
    bank_account_id: Optional[int] = None,
) -> CheckoutStart:
    cart = cart_service.require_cart(db, user.id)
    portfolio = db.get(Portfolio, cart.portfolio_id)
    if not portfolio:
        raise NotFoundError("Portfolio not found")
    if cart.shares <= 0:
        raise ValidationError("Cart is empty")
    if cart.shares > portfolio.remaining_shares:
        raise ValidationError(f"Only {portfolio.remaining_shares} shares are available")

    bank = _resolve_bank(db, user.id, bank_account_id if bank_account_id is not None else cart.bank_account_id)
    amount = compute_amount(cart.shares, portfolio.share_price)
    request = IntentRequest(
        user_id=user.id,
        portfolio_id=portfolio.id,
        portfolio_title=portfolio.title,
        shares=cart.shares,
        share_price=portfolio.share_price,
        amount=amount,
        currency=DEFAULT_CURRENCY,
        bank_account_id=bank.account_id if bank else None,
        bank_access_token=bank.access_token if bank else None,
        user_name=user.name,
        user_email=user.email,
    )

    provider_intent: ProviderIntent = await provider.create_intent(request)

    intent = CheckoutIntent(
        user_id=user.id,
        portfolio_id=portfolio.id,
        provider=provider.name,
        provider_ref=provider_intent.reference,
        shares=cart.shares,
        share_price=portfolio.share_price,
        amount=amount,
        currency=DEFAULT_CURRENCY,
        bank_account_id=bank.id if bank else None,
        state=CheckoutState.INTENT_CREATED,
    )
    db.add(intent)
    db.commit()
    db.refresh(intent)

    try:
        authorization = await provider.authorize(provider_intent, request)
    except UpstreamProviderError as exc:
        _mark_failed(db, intent, exc.detail or ORDER_FAILED)
        raise

    intent.state = CheckoutState.AWAITING_CONFIRMATION
    db.commit()
    db.refresh(intent)
    logger.info(
        "checkout_started intent_id=%s provider=%s portfolio_id=%s shares=%s amount=%s",
        intent.id, intent.provider, intent.portfolio_id, intent.shares, intent.amount,
    )
    return CheckoutStart(intent=intent, authorization=authorization)


def _mark_failed(db: Session, intent: CheckoutIntent, reason: str) -> None:
    intent.state = CheckoutState.FAILED
    intent.failure_reason = reason
    db.commit()
    logger.warning("checkout_failed intent_id=%s provider=%s reason=%s", intent.id, intent.provider, reason)


def get_intent(db: Session, provider_name: str, reference: str, user_id: Optional[int] = None) -> CheckoutIntent:
    intent = (
        db.query(CheckoutIntent)
        .filter(CheckoutIntent.provider == provider_name, CheckoutIntent.provider_ref == reference)
        .first()
    )
    if not intent or (user_id is not None and intent.user_id != user_id):
        raise NotFoundError("Order not found")
    return intent


def _replay(db: Session, intent: CheckoutIntent) -> SettlementResult:
    payment = db.get(Payment, intent.payment_id) if intent.payment_id else None
    logger.info("settlement_replayed intent_id=%s provider=%s", intent.id, intent.provider)
    return SettlementResult(state=CheckoutState.SETTLED, intent=intent, payment=payment, replayed=True)


async def settle(
    db: Session,
    provider: PaymentProvider,
    reference: str,
    user_id: Optional[int] = None,
) -> SettlementResult:
    """
    Confirm the provider payment for ``reference`` and apply its effects once.

    Still-pending payments return ``AWAITING_CONFIRMATION`` with no writes.
    A failed payment (or one whose confirmed amount differs from the intent)
    marks the intent FAILED and leaves the cart alone.
    """
    intent = get_intent(db, provider.name, reference, user_id)
    if intent.state == CheckoutState.SETTLED:
        return _replay(db, intent)
    if intent.state == CheckoutState.FAILED:
        raise ValidationError(ORDER_FAILED)

    settlement = await provider.finalize(reference)

    if settlement.pending:
        return SettlementResult(state=CheckoutState.AWAITING_CONFIRMATION, intent=intent)
    if not settlement.succeeded:
        _mark_failed(db, intent, settlement.failure_reason or "payment was not completed")
        raise ValidationError(ORDER_FAILED)
    if format_amount(settlement.amount) != intent.amount:
        _mark_failed(
            db,
            intent,
            f"confirmed amount {format_amount(settlement.amount)} does not match {intent.amount}",
        )
        raise ValidationError(ORDER_FAILED)

    return apply_settlement(db, intent, settlement)


def _portfolio_snapshot(portfolio: Portfolio) -> dict[str, Any]:
    return {
        "id": portfolio.id,
        "title": portfolio.title,
        "slug": portfolio.slug,
        "category": portfolio.category,
        "price": portfolio.price,
        "shares": portfolio.shares,
        "share_price": portfolio.share_price,
        "remaining_shares": portfolio.remaining_shares,
        "remaining_investment": portfolio.remaining_investment,
    }


def apply_settlement(db: Session, intent: CheckoutIntent, settlement: ProviderSettlement) -> SettlementResult:
    """
    Record payment, deduct inventory, write the audit row, clear the cart and
    mark the intent SETTLED, all in one transaction.
    """
    intent_id, provider_name = intent.id, intent.provider
    try:
        intent = (
            db.query(CheckoutIntent)
            .filter(CheckoutIntent.id == intent_id)
            .with_for_update()
            .populate_existing()
            .one()
        )
        if intent.state == CheckoutState.SETTLED:
            db.rollback()
            return _replay(db, intent)

        portfolio = db.get(Portfolio, intent.portfolio_id) if intent.portfolio_id else None
        if not portfolio:
            raise NotFoundError("Portfolio not found")

        payment = Payment(
            user_id=intent.user_id,
            portfolio_id=intent.portfolio_id,
            provider=intent.provider,
            transaction_id=settlement.transaction_id,
            status=PaymentStatus.COMPLETED,
            amount=settlement.amount,
            fee=settlement.fee,
            net_amount=settlement.net_amount,
            currency=settlement.currency or intent.currency,
            description=f"Investment in {portfolio.title}",
            invested_shares=intent.shares,
            provider_metadata=jsonable_encoder(settlement.raw),
        )
        db.add(payment)
        db.flush()

        portfolio_service.deduct_inventory(
            db, intent.user_id, intent.portfolio_id, intent.shares, intent.share_price
        )

        cart = db.query(Cart).filter(Cart.user_id == intent.user_id).first()
        bank = db.get(BankAccount, intent.bank_account_id) if intent.bank_account_id else None
        db.add(
            Checkout(
                user_id=intent.user_id,
                portfolio_id=intent.portfolio_id,
                payment_id=payment.id,
                provider=intent.provider,
                shares=intent.shares,
                portfolio_details=_portfolio_snapshot(portfolio),
                bank_account_id=bank.id if bank else None,
                bank_account_details=cart_service.bank_snapshot(bank) if bank else None,
            )
        )

        # A cart switched to another portfolio after checkout started is not this order's cart.
        if cart is not None and cart.portfolio_id == intent.portfolio_id:
            db.delete(cart)

        intent.state = CheckoutState.SETTLED
        intent.payment_id = payment.id
        intent.failure_reason = None
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = (
            db.query(Payment)
            .filter(Payment.provider == provider_name, Payment.transaction_id == settlement.transaction_id)
            .first()
        )
        if existing is None:
            raise
        intent = db.get(CheckoutIntent, intent_id)
        logger.info("settlement_duplicate intent_id=%s payment_id=%s", intent_id, existing.id)
        return SettlementResult(state=CheckoutState.SETTLED, intent=intent, payment=existing, replayed=True)
    except Exception:
        db.rollback()
        raise

    db.refresh(intent)
    db.refresh(payment)
    logger.info(
        "checkout_settled intent_id=%s payment_id=%s portfolio_id=%s shares=%s",
        intent.id, payment.id, intent.portfolio_id, intent.shares,
    )
    return SettlementResult(state=CheckoutState.SETTLED, intent=intent, payment=payment)

