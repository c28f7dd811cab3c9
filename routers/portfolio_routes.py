from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas.common import Page, page_params
from schemas.portfolio import PortfolioCreate, PortfolioOption, PortfolioOut, PortfolioUpdate
from services import portfolio_service
from services.auth import require_admin
from utils.pagination import PageParams

router = APIRouter()


@router.get("", response_model=Page[PortfolioOut])
def list_portfolios(db: Session = Depends(get_db), params: PageParams = Depends(page_params)):
    return portfolio_service.list_portfolios(db, params)


@router.get("/options", response_model=List[PortfolioOption])
def portfolio_options(db: Session = Depends(get_db)):
    return portfolio_service.list_portfolio_options(db)


@router.get("/{identifier}", response_model=PortfolioOut)
def get_portfolio(identifier: str, db: Session = Depends(get_db)):
    return portfolio_service.get_portfolio(db, identifier)


@router.post("", response_model=PortfolioOut, status_code=status.HTTP_201_CREATED)
def create_portfolio(
    payload: PortfolioCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return portfolio_service.create_portfolio(db, admin.id, **payload.model_dump())


@router.put("/{portfolio_id}", response_model=PortfolioOut)
def update_portfolio(
    portfolio_id: int,
    payload: PortfolioUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return portfolio_service.update_portfolio(db, portfolio_id, payload.model_dump(exclude_unset=True))


@router.delete("/{portfolio_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_portfolio(
    portfolio_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    portfolio_service.delete_portfolio(db, portfolio_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
