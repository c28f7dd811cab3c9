"""
Card/wallet rail: PayPal Orders v2.

Flow: client-credentials token -> ``POST /v2/checkout/orders`` (intent CAPTURE)
-> the buyer approves on PayPal and is sent back to our return URL ->
``POST /v2/checkout/orders/{id}/capture``. A capture retried after PayPal
already took the money reads the order with ``GET /v2/checkout/orders/{id}``.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from config.settings import (
    API_URL,
    PAYPAL_API_URL,
    PAYPAL_BRAND_NAME,
    PAYPAL_CLIENT_ID,
    PAYPAL_CLIENT_SECRET,
    PROVIDER_TIMEOUT_SECONDS,
)
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
    format_amount,
)
from utils.common_helpers import to_float

logger = logging.getLogger(__name__)


def _already_captured(response: httpx.Response) -> bool:
    if response.status_code != 422:
        return False
    try:
        body = response.json()
    except ValueError:
        return False
    return any(d.get("issue") == "ORDER_ALREADY_CAPTURED" for d in body.get("details") or [])


class PaypalPaymentProvider(PaymentProvider):
    name = PaymentProviderName.PAYPAL

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        *,
        base_url: str = PAYPAL_API_URL,
        client_id: str = PAYPAL_CLIENT_ID,
        client_secret: str = PAYPAL_CLIENT_SECRET,
        timeout_s: float = PROVIDER_TIMEOUT_SECONDS,
    ):
        self._client = client
        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout_s = timeout_s

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        if self._client is not None:
            r = await self._client.request(method, url, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=self.timeout_s) as c:
                r = await c.request(method, url, **kwargs)
        r.raise_for_status()
        return r.json()

    async def _access_token(self) -> str:
        data = await self._request(
            "POST",
            "/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(self.client_id, self.client_secret),
        )
        token = data.get("access_token")
        if not token:
            raise UpstreamProviderError(self.name, "oauth response had no access_token")
        return token

    async def _authorized(self, method: str, path: str, payload: Optional[dict] = None) -> dict[str, Any]:
        token = await self._access_token()
        return await self._request(
            method,
            path,
            json=payload,
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
        )

    @staticmethod
    def build_order_payload(request: IntentRequest, return_url: str, cancel_url: str) -> dict[str, Any]:
        unit = {"currency_code": request.currency, "value": format_amount(request.share_price)}
        total = {"currency_code": request.currency, "value": request.amount}
        return {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "reference_id": str(request.portfolio_id),
                    "items": [
                        {
                            "name": request.portfolio_title,
                            "description": request.portfolio_title,
                            "quantity": str(request.shares),
                            "unit_amount": unit,
                        }
                    ],
                    "amount": {**total, "breakdown": {"item_total": dict(total)}},
                }
            ],
            "application_context": {
                "return_url": return_url,
                "cancel_url": cancel_url,
                "shipping_preference": "NO_SHIPPING",
                "user_action": "PAY_NOW",
                "brand_name": PAYPAL_BRAND_NAME,
            },
        }

    async def create_intent(self, request: IntentRequest) -> ProviderIntent:
        payload = self.build_order_payload(
            request,
            return_url=f"{API_URL}/paypal/order/complete",
            cancel_url=f"{API_URL}/paypal/order/cancel",
        )
        data = await self._bounded("create_order", self._authorized("POST", "/v2/checkout/orders", payload))
        order_id = data.get("id")
        if not order_id:
            raise UpstreamProviderError(self.name, "order response had no id")
        logger.info("paypal_order_created portfolio_id=%s amount=%s", request.portfolio_id, request.amount)
        return ProviderIntent(reference=str(order_id), raw=data)

    async def authorize(self, intent: ProviderIntent, request: IntentRequest) -> dict[str, Any]:
        approve_url = None
        for link in intent.raw.get("links") or []:
            if link.get("rel") in ("approve", "payer-action"):
                approve_url = link.get("href")
                break
        return {"order_id": intent.reference, "approve_url": approve_url}

    async def _capture(self, reference: str) -> dict[str, Any]:
        try:
            return await self._authorized("POST", f"/v2/checkout/orders/{reference}/capture")
        except httpx.HTTPStatusError as exc:
            if not _already_captured(exc.response):
                raise
        # Captured on an earlier attempt that never settled here; read the order back.
        logger.warning("paypal_order_already_captured order_id=%s", reference)
        return await self._authorized("GET", f"/v2/checkout/orders/{reference}")

    async def finalize(self, reference: str) -> ProviderSettlement:
        data = await self._bounded("capture_order", self._capture(reference))
        return self.parse_capture(reference, data)

    @staticmethod
    def parse_capture(reference: str, data: dict[str, Any]) -> ProviderSettlement:
        order_status = str(data.get("status") or "").upper()
        units = data.get("purchase_units") or [{}]
        captures = ((units[0].get("payments") or {}).get("captures")) or [{}]
        capture = captures[0]
        breakdown = capture.get("seller_receivable_breakdown") or {}

        gross = breakdown.get("gross_amount") or capture.get("amount") or {}
        fee = breakdown.get("paypal_fee") or {}
        net = breakdown.get("net_amount") or gross

        if order_status == "COMPLETED":
            status = SUCCEEDED
        elif order_status in ("VOIDED", "DECLINED") or str(capture.get("status") or "").upper() == "DECLINED":
            status = FAILED
        else:
            status = PENDING

        return ProviderSettlement(
            status=status,
            reference=reference,
            transaction_id=str(data.get("id") or reference),
            amount=to_float(gross.get("value")),
            fee=to_float(fee.get("value")) if fee else None,
            net_amount=to_float(net.get("value")),
            currency=str(gross.get("currency_code") or "USD"),
            raw=data,
            failure_reason=None if status != FAILED else f"PayPal order {order_status.lower() or 'failed'}",
        )
