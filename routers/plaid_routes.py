from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas.bank import BankAddIn, BankOut, LinkTokenIn, LinkTokenOut
from services.auth import get_current_user
from services.plaid import plaid_service

router = APIRouter()


# ----------- LINK TOKEN ----------------

@router.post("/link-token", response_model=LinkTokenOut)
async def create_link_token(payload: LinkTokenIn, user: User = Depends(get_current_user)):
    return LinkTokenOut(link_token=await plaid_service.create_link_token(user, payload.product))


# ----------- BANK ACCOUNTS ----------------

@router.post("/bank/add", response_model=BankOut, status_code=status.HTTP_201_CREATED)
async def add_bank(payload: BankAddIn, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    bank = await plaid_service.add_bank(db, user.id, **payload.model_dump())
    return plaid_service.format_bank(bank)


@router.get("/bank", response_model=List[BankOut])
def list_banks(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return [plaid_service.format_bank(b) for b in plaid_service.list_bank_accounts(db, user.id)]


@router.get("/bank/{bank_id}", response_model=BankOut)
def get_bank(bank_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return plaid_service.format_bank(plaid_service.get_bank_account(db, user.id, bank_id))


@router.delete("/bank/{bank_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_bank(bank_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    await plaid_service.remove_bank_account(db, user.id, bank_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
