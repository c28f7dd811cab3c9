"""
Bank-debit rail: Plaid Transfer UI.

Flow: ``transfer_intent_create`` -> hosted Link token bound to the intent ->
the user authorises in Link -> ``transfer_intent_get`` until the intent
leaves PENDING.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from plaid.model.ach_class import ACHClass
from plaid.model.country_code import CountryCode
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_transfer import LinkTokenCreateRequestTransfer
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.products import Products
from plaid.model.transfer_intent_create_mode import TransferIntentCreateMode
from plaid.model.transfer_intent_create_network import TransferIntentCreateNetwork
from plaid.model.transfer_intent_create_request import TransferIntentCreateRequest
from plaid.model.transfer_intent_get_request import TransferIntentGetRequest
from plaid.model.transfer_metadata import TransferMetadata
from plaid.model.transfer_user_in_request import TransferUserInRequest

from config.settings import PLAID_CLIENT_NAME, PROVIDER_TIMEOUT_SECONDS
from models.enums import PaymentProviderName
from services.errors import UpstreamProviderError
from services.payments.base import (
    FAILED,
    PENDING,
    SUCCEEDED,
    IntentRequest,
    PaymentProvider,
    ProviderIntent,
    ProviderSettlement,
)
from services.plaid.plaid_service import call_plaid
from utils.common_helpers import to_float

logger = logging.getLogger(__name__)

_STATUS_MAP = {
    "SUCCEEDED": SUCCEEDED,
    "FAILED": FAILED,
}


def _default_client():
    from services.plaid.plaid_config import client

    return client


class PlaidPaymentProvider(PaymentProvider):
    name = PaymentProviderName.PLAID

    def __init__(self, client: Any = None, timeout_s: float = PROVIDER_TIMEOUT_SECONDS):
        self._client = client
        self.timeout_s = timeout_s

    @property
    def client(self):
        if self._client is None:
            self._client = _default_client()
        return self._client

    async def _call(self, operation: str, fn, request) -> dict[str, Any]:
        return await call_plaid(operation, fn, request, timeout_s=self.timeout_s)

    @staticmethod
    def build_intent_request(request: IntentRequest) -> TransferIntentCreateRequest:
        user: dict[str, Any] = {"legal_name": request.user_name or "Investor"}
        if request.user_email:
            user["email_address"] = request.user_email
        kwargs: dict[str, Any] = dict(
            mode=TransferIntentCreateMode("PAYMENT"),
            amount=request.amount,
            description="Investment",
            ach_class=ACHClass("web"),
            iso_currency_code=request.currency,
            network=TransferIntentCreateNetwork("same-day-ach"),
            user=TransferUserInRequest(**user),
            metadata=TransferMetadata(
                portfolioId=str(request.portfolio_id),
                portfolioName=request.portfolio_title,
                portfolioShares=str(request.shares),
                portfolioSharePrice=str(request.share_price),
                portfolioTotalInvestment=request.amount,
            ),
        )
        if request.bank_account_id:
            kwargs["account_id"] = request.bank_account_id
        return TransferIntentCreateRequest(**kwargs)

    async def create_intent(self, request: IntentRequest) -> ProviderIntent:
        data = await self._call(
            "transfer_intent_create",
            self.client.transfer_intent_create,
            self.build_intent_request(request),
        )
        intent = data.get("transfer_intent") or {}
        intent_id = intent.get("id")
        if not intent_id:
            raise UpstreamProviderError(self.name, "transfer intent response had no id")
        logger.info("plaid_intent_created portfolio_id=%s amount=%s", request.portfolio_id, request.amount)
        return ProviderIntent(reference=str(intent_id), raw=intent)

    def build_link_token_request(
        self, intent_id: str, user_id: int, legal_name: Optional[str], access_token: Optional[str]
    ) -> LinkTokenCreateRequest:
        kwargs: dict[str, Any] = dict(
            user=LinkTokenCreateRequestUser(client_user_id=str(user_id), legal_name=legal_name or "Investor"),
            products=[Products("transfer")],
            transfer=LinkTokenCreateRequestTransfer(intent_id=intent_id),
            client_name=PLAID_CLIENT_NAME,
            language="en",
            country_codes=[CountryCode("US")],
        )
        if access_token:
            kwargs["access_token"] = access_token
        return LinkTokenCreateRequest(**kwargs)

    async def authorize(self, intent: ProviderIntent, request: IntentRequest) -> dict[str, Any]:
        data = await self._call(
            "link_token_create",
            self.client.link_token_create,
            self.build_link_token_request(
                intent.reference, request.user_id, request.user_name, request.bank_access_token
            ),
        )
        return {"link_token": data.get("link_token"), "intent_id": intent.reference}

    async def finalize(self, reference: str) -> ProviderSettlement:
        data = await self._call(
            "transfer_intent_get",
            self.client.transfer_intent_get,
            TransferIntentGetRequest(transfer_intent_id=reference),
        )
        intent = data.get("transfer_intent") or {}
        raw_status = str(intent.get("status") or "").upper()
        status = _STATUS_MAP.get(raw_status, PENDING)
        amount = to_float(intent.get("amount"))
        failure = intent.get("failure_reason")
        return ProviderSettlement(
            status=status,
            reference=reference,
            transaction_id=str(intent.get("id") or reference),
            amount=amount,
            fee=0.0,
            net_amount=amount,
            currency=str(intent.get("iso_currency_code") or "USD"),
            raw=intent,
            failure_reason=str(failure) if failure else None,
        )
