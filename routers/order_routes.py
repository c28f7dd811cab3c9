from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas.common import MessageOut
from schemas.order import (
    CartBankIn,
    CartIn,
    CartOut,
    CartQuantityIn,
    CheckoutIn,
    CheckoutIntentOut,
    CheckoutOut,
    CompleteOrderIn,
)
from schemas.payment import PaymentOut, SettlementOut
from services import cart_service, checkout_service
from services.auth import get_current_user
from services.checkout_service import SettlementResult
from services.errors import NotFoundError
from services.payments.base import PaymentProvider
from services.payments.registry import get_plaid_provider

router = APIRouter()


def settlement_response(result: SettlementResult, response: Response) -> SettlementOut:
    if not result.settled:
        response.status_code = status.HTTP_202_ACCEPTED
    return SettlementOut(
        state=result.state,
        replayed=result.replayed,
        intent_id=result.intent.id,
        payment=PaymentOut.model_validate(result.payment) if result.payment else None,
    )


@router.get("/cart", response_model=CartOut)
def get_cart(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    cart = cart_service.get_cart(db, user.id)
    if not cart:
        raise NotFoundError("Cart not found")
    return cart


@router.post("/cart", response_model=CartOut)
def add_to_cart(payload: CartIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return cart_service.add_or_replace(db, user.id, payload.portfolio_id, payload.shares)


@router.put("/cart/update", response_model=CartOut)
def update_cart(payload: CartQuantityIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return cart_service.update_quantity(db, user.id, payload.shares, payload.mode)


@router.put("/cart/bank", response_model=CartOut)
def attach_bank(payload: CartBankIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return cart_service.attach_bank_account(db, user.id, payload.bank_account_id)


@router.delete("/cart", response_model=MessageOut)
def remove_cart(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    cart_service.remove(db, user.id)
    return MessageOut(message="Cart removed")


@router.post("/checkout", response_model=CheckoutOut)
async def checkout(
    payload: CheckoutIn,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    provider: PaymentProvider = Depends(get_plaid_provider),
):
    started = await checkout_service.start_checkout(db, user, provider, payload.bank_account_id)
    return CheckoutOut(intent=CheckoutIntentOut.model_validate(started.intent), authorization=started.authorization)


@router.post("/complete", response_model=SettlementOut)
async def complete_order(
    payload: CompleteOrderIn,
    response: Response,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    provider: PaymentProvider = Depends(get_plaid_provider),
):
    result = await checkout_service.settle(db, provider, payload.intent_id, user_id=user.id)
    return settlement_response(result, response)
