from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas.common import Page, page_params
from schemas.payment import CapitalOut, PaymentOut
from services import payment_service
from services.auth import get_current_user, require_admin
from utils.pagination import PageParams

router = APIRouter()


@router.get("/transactions", response_model=Page[PaymentOut])
def user_transactions(
    db: Session = Depends(get_db),
    params: PageParams = Depends(page_params),
    user: User = Depends(get_current_user),
):
    return payment_service.list_user_transactions(db, user.id, params)


@router.get("/transactions/{payment_id}", response_model=PaymentOut)
def user_transaction(payment_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return payment_service.get_user_payment(db, user.id, payment_id)


@router.get("/portfolios", response_model=Page[PaymentOut])
def user_portfolios(
    db: Session = Depends(get_db),
    params: PageParams = Depends(page_params),
    user: User = Depends(get_current_user),
):
    return payment_service.list_user_portfolios(db, user.id, params)


@router.get("/admin/transactions", response_model=Page[PaymentOut])
def admin_transactions(
    status: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    params: PageParams = Depends(page_params),
    admin: User = Depends(require_admin),
):
    return payment_service.list_admin_transactions(db, params, status=status)


@router.get("/admin/portfolios", response_model=List[PaymentOut])
def admin_recent_portfolios(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return payment_service.list_recent_portfolio_payments(db, months=3)


@router.get("/capital", response_model=Page[CapitalOut])
def capital(
    db: Session = Depends(get_db),
    params: PageParams = Depends(page_params),
    admin: User = Depends(require_admin),
):
    return payment_service.capital_rows(db, params)
