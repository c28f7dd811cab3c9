import asyncio
import json
import unittest

import httpx

from tests.factories import make_cart, make_portfolio, make_user, reset_db

from models.enums import CheckoutState
from models.payment import Payment
from models.portfolio import Portfolio
from services import checkout_service
from services.errors import ConflictError, UpstreamProviderError
from services.payments.base import FAILED, PENDING, SUCCEEDED, IntentRequest, ProviderIntent
from services.payments.paypal_provider import PaypalPaymentProvider


def _request(**overrides):
    values = dict(
        user_id=1,
        portfolio_id=7,
        portfolio_title="Downtown Loft",
        shares=10,
        share_price=50.0,
        amount="500.00",
        currency="USD",
    )
    values.update(overrides)
    return IntentRequest(**values)


def _capture(status="COMPLETED", gross="500.00", fee="17.90", net="482.10"):
    return {
        "id": "ORDER-1",
        "status": status,
        "purchase_units": [
            {
                "payments": {
                    "captures": [
                        {
                            "id": "CAPTURE-1",
                            "status": status,
                            "seller_receivable_breakdown": {
                                "gross_amount": {"currency_code": "USD", "value": gross},
                                "paypal_fee": {"currency_code": "USD", "value": fee},
                                "net_amount": {"currency_code": "USD", "value": net},
                            },
                        }
                    ]
                }
            }
        ],
    }


class PaypalPayloadTests(unittest.TestCase):
    def test_order_payload_matches_amount_and_items(self):
        payload = PaypalPaymentProvider.build_order_payload(
            _request(), return_url="https://api/paypal/order/complete", cancel_url="https://api/paypal/order/cancel"
        )
        unit = payload["purchase_units"][0]

        self.assertEqual(payload["intent"], "CAPTURE")
        self.assertEqual(unit["amount"]["value"], "500.00")
        self.assertEqual(unit["amount"]["breakdown"]["item_total"]["value"], "500.00")
        self.assertEqual(unit["items"][0]["quantity"], "10")
        self.assertEqual(unit["items"][0]["unit_amount"]["value"], "50.00")
        self.assertEqual(payload["application_context"]["shipping_preference"], "NO_SHIPPING")
        self.assertEqual(payload["application_context"]["user_action"], "PAY_NOW")

    def test_parse_completed_capture(self):
        settlement = PaypalPaymentProvider.parse_capture("ORDER-1", _capture())
        self.assertEqual(settlement.status, SUCCEEDED)
        self.assertEqual(settlement.amount, 500.0)
        self.assertEqual(settlement.fee, 17.9)
        self.assertEqual(settlement.net_amount, 482.1)
        self.assertEqual(settlement.transaction_id, "ORDER-1")

    def test_parse_declined_and_pending(self):
        self.assertEqual(PaypalPaymentProvider.parse_capture("O", _capture(status="DECLINED")).status, FAILED)
        self.assertEqual(PaypalPaymentProvider.parse_capture("O", _capture(status="APPROVED")).status, PENDING)


class PaypalTransportTests(unittest.TestCase):
    def _provider(self, handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return PaypalPaymentProvider(
            client, base_url="https://paypal.test", client_id="id", client_secret="secret", timeout_s=2
        )

    def test_create_authorize_and_capture(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path))
            if request.url.path == "/v1/oauth2/token":
                self.assertTrue(request.headers["Authorization"].startswith("Basic "))
                return httpx.Response(200, json={"access_token": "tok"})
            self.assertEqual(request.headers["Authorization"], "Bearer tok")
            if request.url.path == "/v2/checkout/orders":
                body = json.loads(request.content)
                self.assertEqual(body["purchase_units"][0]["amount"]["value"], "500.00")
                return httpx.Response(
                    201,
                    json={
                        "id": "ORDER-1",
                        "status": "CREATED",
                        "links": [{"rel": "approve", "href": "https://paypal.test/approve/ORDER-1"}],
                    },
                )
            if request.url.path == "/v2/checkout/orders/ORDER-1/capture":
                return httpx.Response(201, json=_capture())
            return httpx.Response(404)

        provider = self._provider(handler)

        async def run():
            intent = await provider.create_intent(_request())
            auth = await provider.authorize(intent, _request())
            settlement = await provider.finalize(intent.reference)
            return intent, auth, settlement

        intent, auth, settlement = asyncio.run(run())

        self.assertEqual(intent.reference, "ORDER-1")
        self.assertEqual(auth, {"order_id": "ORDER-1", "approve_url": "https://paypal.test/approve/ORDER-1"})
        self.assertTrue(settlement.succeeded)
        self.assertIn(("POST", "/v2/checkout/orders/ORDER-1/capture"), seen)

    def test_http_error_becomes_upstream_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "invalid_client"})

        provider = self._provider(handler)
        with self.assertRaises(UpstreamProviderError) as ctx:
            asyncio.run(provider.create_intent(_request()))
        self.assertEqual(ctx.exception.message, "Order failed")

    def test_authorize_without_links(self):
        provider = PaypalPaymentProvider(client=None, base_url="https://paypal.test")
        auth = asyncio.run(provider.authorize(ProviderIntent(reference="ORDER-2", raw={}), _request()))
        self.assertEqual(auth, {"order_id": "ORDER-2", "approve_url": None})


class _CapturedOnceTransport:
    """PayPal stand-in: the first capture succeeds, later ones get ORDER_ALREADY_CAPTURED."""

    def __init__(self, order_id="ORDER-1", amount="500.00"):
        self.order_id = order_id
        self.amount = amount
        self.captured = False
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))
        path = request.url.path
        if path == "/v1/oauth2/token":
            return httpx.Response(200, json={"access_token": "tok"})
        if request.method == "POST" and path == "/v2/checkout/orders":
            return httpx.Response(201, json={"id": self.order_id, "status": "CREATED", "links": []})
        captured_order = dict(_capture(gross=self.amount, net=self.amount), id=self.order_id)
        if path == f"/v2/checkout/orders/{self.order_id}/capture":
            if self.captured:
                return httpx.Response(
                    422,
                    json={
                        "name": "UNPROCESSABLE_ENTITY",
                        "details": [{"issue": "ORDER_ALREADY_CAPTURED"}],
                    },
                )
            self.captured = True
            return httpx.Response(201, json=captured_order)
        if request.method == "GET" and path == f"/v2/checkout/orders/{self.order_id}":
            return httpx.Response(200, json=captured_order)
        return httpx.Response(404)


class PaypalRecaptureTests(unittest.TestCase):
    def _provider(self, handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return PaypalPaymentProvider(
            client, base_url="https://paypal.test", client_id="id", client_secret="secret", timeout_s=2
        )

    def test_already_captured_order_is_read_back(self):
        transport = _CapturedOnceTransport()
        provider = self._provider(transport)

        async def run():
            first = await provider.finalize("ORDER-1")
            second = await provider.finalize("ORDER-1")
            return first, second

        first, second = asyncio.run(run())

        self.assertTrue(first.succeeded)
        self.assertTrue(second.succeeded)
        self.assertEqual(second.amount, 500.0)
        self.assertEqual(second.transaction_id, "ORDER-1")
        self.assertIn(("GET", "/v2/checkout/orders/ORDER-1"), transport.calls)

    def test_other_unprocessable_capture_still_fails(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/v1/oauth2/token":
                return httpx.Response(200, json={"access_token": "tok"})
            return httpx.Response(
                422, json={"name": "UNPROCESSABLE_ENTITY", "details": [{"issue": "ORDER_NOT_APPROVED"}]}
            )

        provider = self._provider(handler)
        with self.assertRaises(UpstreamProviderError):
            asyncio.run(provider.finalize("ORDER-1"))

    def test_settlement_retry_after_failed_apply_records_payment(self):
        db = reset_db()
        self.addCleanup(db.close)
        user = make_user(db)
        portfolio = make_portfolio(db, shares=1000, share_price=50)
        make_cart(db, user, portfolio, 10)
        provider = self._provider(_CapturedOnceTransport())

        started = asyncio.run(checkout_service.start_checkout(db, user, provider))
        reference = started.intent.provider_ref

        # Someone else buys the remaining shares between approval and capture.
        portfolio.remaining_shares = 5
        db.commit()
        with self.assertRaises(ConflictError):
            asyncio.run(checkout_service.settle(db, provider, reference, user.id))
        self.assertEqual(db.query(Payment).count(), 0)

        portfolio = db.get(Portfolio, portfolio.id)
        portfolio.remaining_shares = 1000
        db.commit()
        result = asyncio.run(checkout_service.settle(db, provider, reference, user.id))

        self.assertEqual(result.state, CheckoutState.SETTLED)
        self.assertEqual(db.query(Payment).count(), 1)
        self.assertEqual(result.payment.transaction_id, "ORDER-1")
        self.assertEqual(db.get(Portfolio, portfolio.id).remaining_shares, 990)


if __name__ == "__main__":
    unittest.main()
