from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas.common import Page, page_params
from schemas.wallet import WalletEntryOut, WalletSummaryOut
from services import wallet_service
from services.auth import get_current_user
from utils.pagination import PageParams

router = APIRouter()


@router.get("", response_model=Page[WalletEntryOut])
def wallet_entries(
    db: Session = Depends(get_db),
    params: PageParams = Depends(page_params),
    user: User = Depends(get_current_user),
):
    return wallet_service.list_wallet_entries(db, user.id, params)


@router.get("/balance", response_model=WalletSummaryOut)
def wallet_balance(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return wallet_service.wallet_summary(db, user.id)


@router.get("/recent", response_model=List[WalletEntryOut])
def recent_entries(
    months: int = Query(default=3),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return wallet_service.recent_wallet_entries(db, user.id, months)
