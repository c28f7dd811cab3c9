# services/plaid/plaid_service.py

import asyncio
import logging
from typing import Any, Dict, List, Optional

from plaid.model.country_code import CountryCode
from plaid.model.item_public_token_exchange_request import ItemPublicTokenExchangeRequest
from plaid.model.item_remove_request import ItemRemoveRequest
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.products import Products
from sqlalchemy.orm import Session

from config.settings import PLAID_CLIENT_NAME, PROVIDER_TIMEOUT_SECONDS
from models.bank_account import BankAccount
from models.enums import PaymentProviderName
from models.user import User
from services.errors import NotFoundError, UpstreamProviderError
from services.payments.base import bounded
from utils.common_helpers import mask_account_id

logger = logging.getLogger(__name__)


def _client(client: Any = None):
    if client is not None:
        return client
    from services.plaid.plaid_config import client as default_client

    return default_client


async def call_plaid(operation: str, fn, request, timeout_s: float = PROVIDER_TIMEOUT_SECONDS) -> Dict[str, Any]:
    # plaid-python is blocking; keep it off the event loop.
    response = await bounded(PaymentProviderName.PLAID, operation, asyncio.to_thread(fn, request), timeout_s)
    return response.to_dict() if hasattr(response, "to_dict") else dict(response)


def format_bank(bank: BankAccount) -> Dict[str, Any]:
    return {
        "id": bank.id,
        "bank_name": bank.bank_name,
        "bank_type": bank.bank_type,
        "account_id": mask_account_id(bank.account_id),
        "created_at": bank.created_at,
    }


async def create_link_token(user: User, product: str = "auth", client: Any = None) -> str:
    request = LinkTokenCreateRequest(
        user=LinkTokenCreateRequestUser(client_user_id=str(user.id), email_address=user.email),
        products=[Products(product)],
        client_name=PLAID_CLIENT_NAME,
        language="en",
        country_codes=[CountryCode("US")],
    )
    data = await call_plaid("link_token_create", _client(client).link_token_create, request)
    return data["link_token"]


async def add_bank(
    db: Session,
    user_id: int,
    *,
    public_token: str,
    account_id: str,
    bank_name: str,
    bank_type: Optional[str] = None,
    bank_data: Optional[Dict[str, Any]] = None,
    client: Any = None,
) -> BankAccount:
    """Exchange the Link public token and store the account. A known account id returns the existing row."""
    existing = db.query(BankAccount).filter(BankAccount.account_id == account_id).first()
    if existing:
        if existing.user_id != user_id:
            raise NotFoundError("Bank account not found")
        return existing

    data = await call_plaid(
        "item_public_token_exchange",
        _client(client).item_public_token_exchange,
        ItemPublicTokenExchangeRequest(public_token=public_token),
    )
    bank = BankAccount(
        user_id=user_id,
        account_id=account_id,
        bank_name=bank_name,
        bank_type=bank_type,
        access_token=data["access_token"],
        item_id=data.get("item_id"),
        bank_data=bank_data,
    )
    db.add(bank)
    db.commit()
    db.refresh(bank)
    logger.info("bank_linked bank_id=%s", bank.id)
    return bank


def list_bank_accounts(db: Session, user_id: int) -> List[BankAccount]:
    return (
        db.query(BankAccount)
        .filter(BankAccount.user_id == user_id)
        .order_by(BankAccount.created_at.desc(), BankAccount.id.desc())
        .all()
    )


def get_bank_account(db: Session, user_id: int, bank_id: int) -> BankAccount:
    bank = db.query(BankAccount).filter_by(id=bank_id, user_id=user_id).first()
    if not bank:
        raise NotFoundError("Bank account not found")
    return bank


async def remove_bank_account(db: Session, user_id: int, bank_id: int, client: Any = None) -> None:
    bank = get_bank_account(db, user_id, bank_id)

    # Revoke the item on Plaid's side (best-effort)
    try:
        await call_plaid("item_remove", _client(client).item_remove, ItemRemoveRequest(access_token=bank.access_token))
    except UpstreamProviderError:
        logger.warning("Plaid item_remove failed for bank %s; continuing local cleanup", bank_id)

    db.delete(bank)
    db.commit()
