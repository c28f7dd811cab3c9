from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from config.settings import APP_URL
from database import get_db
from models.user import User
from schemas.order import CheckoutIntentOut, CheckoutOut, PaypalCompleteIn
from schemas.payment import SettlementOut
from services import checkout_service
from services.auth import get_current_user
from services.errors import AppError
from services.payments.base import PaymentProvider
from services.payments.registry import get_paypal_provider
from routers.order_routes import settlement_response

router = APIRouter()


@router.post("/order", response_model=CheckoutOut)
async def create_order(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    provider: PaymentProvider = Depends(get_paypal_provider),
):
    started = await checkout_service.start_checkout(db, user, provider)
    return CheckoutOut(intent=CheckoutIntentOut.model_validate(started.intent), authorization=started.authorization)


@router.post("/order/complete", response_model=SettlementOut)
async def complete_order(
    payload: PaypalCompleteIn,
    response: Response,
    db: Session = Depends(get_db),
    provider: PaymentProvider = Depends(get_paypal_provider),
):
    # The approved order id identifies the buyer; no session is needed on the return leg.
    result = await checkout_service.settle(db, provider, payload.order_id)
    return settlement_response(result, response)


@router.get("/order/complete")
async def complete_order_redirect(
    token: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    provider: PaymentProvider = Depends(get_paypal_provider),
):
    """PayPal's return URL: capture, then send the buyer back to the web app."""
    try:
        result = await checkout_service.settle(db, provider, token)
        outcome = "success" if result.settled else "pending"
    except AppError:
        outcome = "failed"
    return RedirectResponse(url=f"{APP_URL}/checkout/{outcome}", status_code=303)


@router.get("/order/cancel")
def cancel_order():
    return RedirectResponse(url=f"{APP_URL}/checkout/cancelled", status_code=303)
