import unittest
from unittest.mock import patch

from tests.factories import (
    PASSWORD,
    FakeProvider,
    make_cart,
    make_investment,
    make_portfolio,
    make_user,
    reset_db,
)

from fastapi.testclient import TestClient

from main import app
from models.enums import PaymentProviderName, Role
from services.auth import token_for_user
from services.payments.base import PENDING
from services.payments.registry import get_paypal_provider, get_plaid_provider


def _auth(user):
    return {"Authorization": f"Bearer {token_for_user(user)}"}


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.db = reset_db()
        self.client = TestClient(app, raise_server_exceptions=False)

    def tearDown(self):
        app.dependency_overrides.clear()
        self.db.close()


class AuthRoutesTests(ApiTestCase):
    def test_register_verify_login_me(self):
        body = {"name": "Ada", "username": "ada", "email": "ada@example.com", "password": PASSWORD}
        with patch("services.otp_service.generate_otp", return_value="123456"):
            r = self.client.post("/auth/register", json=body)
        self.assertEqual(r.status_code, 201, r.text)

        r = self.client.post("/auth/login", json={"username": "ada", "password": PASSWORD})
        self.assertEqual(r.status_code, 401)
        self.assertEqual(r.json()["status"], 401)

        r = self.client.post("/auth/verify", json={"username": "ada", "otp": "123456"})
        self.assertEqual(r.status_code, 200, r.text)
        self.assertIsNotNone(r.json()["email_verified_at"])

        r = self.client.post("/auth/login", json={"username": "ada", "password": PASSWORD})
        self.assertEqual(r.status_code, 200, r.text)
        self.assertIn("auth_token", r.cookies)

        r = self.client.get("/auth/me")
        self.assertEqual(r.status_code, 200, r.text)
        self.assertEqual(r.json()["user"]["username"], "ada")
        self.assertEqual(r.json()["wallet_balance"], 0.0)

    def test_register_validation_error_shape(self):
        r = self.client.post(
            "/auth/register", json={"name": "", "username": "a", "email": "nope", "password": "short"}
        )
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["status"], 400)
        self.assertIsInstance(r.json()["message"], str)

    def test_me_requires_auth(self):
        r = self.client.get("/auth/me")
        self.assertEqual(r.status_code, 401)
        self.assertEqual(r.json(), {"status": 401, "message": "Not authenticated"})

    def test_unknown_route_uses_error_shape(self):
        r = self.client.get("/nope")
        self.assertEqual(r.status_code, 404)
        self.assertEqual(r.json()["status"], 404)

    def test_password_reset_flow(self):
        user = make_user(self.db)
        with patch("services.otp_service.generate_otp", return_value="654321"):
            r = self.client.post("/auth/reset-password", json={"email": user.email})
        self.assertEqual(r.status_code, 200, r.text)

        r = self.client.post("/auth/reset-password/otp-check", json={"email": user.email, "otp": "000000"})
        self.assertEqual(r.status_code, 400)
        r = self.client.post("/auth/reset-password/otp-check", json={"email": user.email, "otp": "654321"})
        self.assertEqual(r.status_code, 200, r.text)

        r = self.client.post(
            "/auth/reset-password/confirm",
            json={"email": user.email, "otp": "654321", "password": "brand-new-pass"},
        )
        self.assertEqual(r.status_code, 200, r.text)

        r = self.client.post("/auth/login", json={"username": user.username, "password": "brand-new-pass"})
        self.assertEqual(r.status_code, 200, r.text)

    def test_change_password_requires_current(self):
        user = make_user(self.db)
        r = self.client.post(
            "/auth/change-password",
            json={"old_password": "wrong-password", "new_password": "brand-new-pass"},
            headers=_auth(user),
        )
        self.assertEqual(r.status_code, 400)

        r = self.client.post(
            "/auth/change-password",
            json={"old_password": PASSWORD, "new_password": "brand-new-pass"},
            headers=_auth(user),
        )
        self.assertEqual(r.status_code, 200, r.text)

    def test_profile_read_and_update(self):
        user = make_user(self.db)
        r = self.client.put(
            "/auth/profile",
            json={"city": "Austin", "phone_number": "+1 512-555-0100", "date_of_birth": "1990-05-01"},
            headers=_auth(user),
        )
        self.assertEqual(r.status_code, 200, r.text)

        r = self.client.get("/auth/profile", headers=_auth(user))
        self.assertEqual(r.status_code, 200, r.text)
        self.assertEqual(r.json()["city"], "Austin")
        self.assertEqual(r.json()["date_of_birth"], "1990-05-01")
        self.assertEqual(r.json()["username"], user.username)

        r = self.client.put("/auth/profile", json={"phone_number": "call me"}, headers=_auth(user))
        self.assertEqual(r.status_code, 400)


class PortfolioRoutesTests(ApiTestCase):
    def test_admin_only_create_and_public_read(self):
        admin = make_user(self.db, role=Role.ADMIN)
        investor = make_user(self.db)
        body = {"title": "Downtown Loft", "price": 50000, "shares": 1000, "share_price": 50}

        self.assertEqual(self.client.post("/portfolio", json=body, headers=_auth(investor)).status_code, 403)

        r = self.client.post("/portfolio", json=body, headers=_auth(admin))
        self.assertEqual(r.status_code, 201, r.text)
        self.assertEqual(r.json()["slug"], "downtown-loft")

        r = self.client.post("/portfolio", json=body, headers=_auth(admin))
        self.assertEqual(r.json()["slug"], "downtown-loft-1")

        r = self.client.get("/portfolio/downtown-loft")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["remaining_shares"], 1000)

        r = self.client.get("/portfolio", params={"page": 1, "limit": 1, "sortBy": "title", "sortingMethod": "asc"})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["total"], 2)
        self.assertEqual(r.json()["pages"], 2)


class OrderRoutesTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.user = make_user(self.db)
        self.portfolio = make_portfolio(self.db, title="Downtown Loft", shares=1000, share_price=50)

    def test_cart_decrement_below_one(self):
        self.client.post(
            "/order/cart", json={"portfolio_id": self.portfolio.id, "shares": 1}, headers=_auth(self.user)
        )
        r = self.client.put(
            "/order/cart/update", json={"shares": 1, "mode": "DECREMENT"}, headers=_auth(self.user)
        )
        self.assertEqual(r.status_code, 400)
        self.assertEqual(self.client.get("/order/cart", headers=_auth(self.user)).json()["shares"], 1)

    def test_plaid_checkout_and_complete(self):
        provider = FakeProvider()
        app.dependency_overrides[get_plaid_provider] = lambda: provider
        make_cart(self.db, self.user, self.portfolio, 10)

        r = self.client.post("/order/checkout", json={}, headers=_auth(self.user))
        self.assertEqual(r.status_code, 200, r.text)
        intent = r.json()["intent"]
        self.assertEqual(intent["amount"], "500.00")
        self.assertEqual(r.json()["authorization"]["link_token"], "link-sandbox-1")

        r = self.client.post("/order/complete", json={"intent_id": intent["provider_ref"]}, headers=_auth(self.user))
        self.assertEqual(r.status_code, 200, r.text)
        self.assertEqual(r.json()["state"], "SETTLED")
        self.assertEqual(r.json()["payment"]["invested_shares"], 10)

        r = self.client.post("/order/complete", json={"intent_id": intent["provider_ref"]}, headers=_auth(self.user))
        self.assertTrue(r.json()["replayed"])

        r = self.client.get("/users/overview", headers=_auth(self.user))
        self.assertEqual(r.json()["number_of_shares"], 10)
        self.assertEqual(r.json()["portfolio_value"], 500.0)

    def test_pending_complete_returns_accepted(self):
        provider = FakeProvider(status=PENDING)
        app.dependency_overrides[get_plaid_provider] = lambda: provider
        make_cart(self.db, self.user, self.portfolio, 2)

        ref = self.client.post("/order/checkout", json={}, headers=_auth(self.user)).json()["intent"]["provider_ref"]
        r = self.client.post("/order/complete", json={"intent_id": ref}, headers=_auth(self.user))
        self.assertEqual(r.status_code, 202)
        self.assertEqual(r.json()["state"], "AWAITING_CONFIRMATION")

    def test_paypal_return_redirects(self):
        provider = FakeProvider()
        provider.name = PaymentProviderName.PAYPAL
        app.dependency_overrides[get_paypal_provider] = lambda: provider
        make_cart(self.db, self.user, self.portfolio, 4)

        r = self.client.post("/paypal/order", headers=_auth(self.user))
        self.assertEqual(r.status_code, 200, r.text)
        ref = r.json()["intent"]["provider_ref"]

        r = self.client.get("/paypal/order/complete", params={"token": ref}, follow_redirects=False)
        self.assertEqual(r.status_code, 303)
        self.assertTrue(r.headers["location"].endswith("/checkout/success"))

        r = self.client.get("/paypal/order/complete", params={"token": "unknown"}, follow_redirects=False)
        self.assertTrue(r.headers["location"].endswith("/checkout/failed"))


class DividendRoutesTests(ApiTestCase):
    def test_admin_distributes_and_investor_sees_it(self):
        admin = make_user(self.db, role=Role.ADMIN)
        investor = make_user(self.db)
        portfolio = make_portfolio(self.db, shares=1000, share_price=50)
        make_investment(self.db, investor, portfolio, 10)

        r = self.client.post(
            "/dividend/admin/create",
            json={"portfolio_id": portfolio.id, "net_rental_income": 6000, "expenses": 1000},
            headers=_auth(admin),
        )
        self.assertEqual(r.status_code, 201, r.text)

        r = self.client.get("/dividend/user/total", headers=_auth(investor))
        self.assertEqual(r.json()["total_dividend"], 50.0)

        r = self.client.get("/wallet/balance", headers=_auth(investor))
        self.assertEqual(r.json()["balance"], 50.0)

    def test_revenue_must_be_positive(self):
        admin = make_user(self.db, role=Role.ADMIN)
        portfolio = make_portfolio(self.db)
        r = self.client.post(
            "/dividend/admin/create",
            json={"portfolio_id": portfolio.id, "net_rental_income": 100, "expenses": 100},
            headers=_auth(admin),
        )
        self.assertEqual(r.status_code, 400)


if __name__ == "__main__":
    unittest.main()
