from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas.common import Page, page_params
from schemas.dividend import (
    DividendCreate,
    DividendTotalOut,
    PortfolioDividendDetailOut,
    PortfolioDividendOut,
    UserDividendOut,
)
from services import dividend_service
from services.auth import get_current_user, require_admin
from utils.pagination import PageParams

router = APIRouter()


@router.post("/admin/create", response_model=PortfolioDividendOut, status_code=status.HTTP_201_CREATED)
def create_dividend(
    payload: DividendCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return dividend_service.create_portfolio_dividend(
        db,
        payload.portfolio_id,
        net_rental_income=payload.net_rental_income,
        expenses=payload.expenses,
    )


@router.get("/admin", response_model=Page[PortfolioDividendOut])
def list_dividends(
    db: Session = Depends(get_db),
    params: PageParams = Depends(page_params),
    admin: User = Depends(require_admin),
):
    return dividend_service.list_portfolio_dividends(db, params)


@router.get("/admin/{portfolio_id}", response_model=List[PortfolioDividendDetailOut])
def portfolio_dividends(
    portfolio_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return dividend_service.list_dividends_for_portfolio(db, portfolio_id)


@router.get("/user", response_model=Page[UserDividendOut])
def user_dividends(
    db: Session = Depends(get_db),
    params: PageParams = Depends(page_params),
    user: User = Depends(get_current_user),
):
    return dividend_service.list_user_dividends(db, user.id, params)


@router.get("/user/total", response_model=DividendTotalOut)
def user_dividend_total(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return DividendTotalOut(total_dividend=dividend_service.user_total_dividend(db, user.id))
