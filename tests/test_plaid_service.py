import asyncio
import time
import unittest

from tests.factories import make_bank, make_user, reset_db

from models.bank_account import BankAccount
from services.errors import NotFoundError, UpstreamProviderError
from services.plaid import plaid_service


class _Response:
    def __init__(self, data):
        self._data = data

    def to_dict(self):
        return self._data


class FakePlaidClient:
    def __init__(self, fail_remove=False):
        self.fail_remove = fail_remove
        self.exchanged = 0

    def link_token_create(self, request):
        return _Response({"link_token": "link-sandbox-xyz"})

    def item_public_token_exchange(self, request):
        self.exchanged += 1
        return _Response({"access_token": "access-sandbox-1", "item_id": "item-9"})

    def item_remove(self, request):
        if self.fail_remove:
            raise RuntimeError("ITEM_NOT_FOUND")
        return _Response({})


class PlaidServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = reset_db()
        self.user = make_user(self.db)

    def tearDown(self):
        self.db.close()

    def _add(self, client, account_id="acct-00005678", user=None):
        return asyncio.run(
            plaid_service.add_bank(
                self.db,
                (user or self.user).id,
                public_token="public-sandbox-1",
                account_id=account_id,
                bank_name="Chase",
                bank_type="checking",
                client=client,
            )
        )

    def test_add_bank_exchanges_token_once(self):
        client = FakePlaidClient()
        bank = self._add(client)
        again = self._add(client)

        self.assertEqual(bank.id, again.id)
        self.assertEqual(bank.access_token, "access-sandbox-1")
        self.assertEqual(bank.item_id, "item-9")
        self.assertEqual(client.exchanged, 1)

    def test_account_owned_by_someone_else(self):
        stranger = make_user(self.db)
        self._add(FakePlaidClient(), user=stranger)
        with self.assertRaises(NotFoundError):
            self._add(FakePlaidClient())

    def test_format_bank_masks_account_and_hides_token(self):
        bank = make_bank(self.db, self.user, account_id="acct-00001234")
        out = plaid_service.format_bank(bank)
        self.assertEqual(out["account_id"], "****1234")
        self.assertNotIn("access_token", out)

    def test_remove_survives_plaid_failure(self):
        bank = make_bank(self.db, self.user)
        asyncio.run(plaid_service.remove_bank_account(self.db, self.user.id, bank.id, client=FakePlaidClient(True)))
        self.assertIsNone(self.db.get(BankAccount, bank.id))

    def test_link_token(self):
        token = asyncio.run(plaid_service.create_link_token(self.user, client=FakePlaidClient()))
        self.assertEqual(token, "link-sandbox-xyz")


class CallPlaidTests(unittest.TestCase):
    def test_returns_plain_dict(self):
        data = asyncio.run(plaid_service.call_plaid("link_token_create", FakePlaidClient().link_token_create, None))
        self.assertEqual(data, {"link_token": "link-sandbox-xyz"})

    def test_client_errors_become_upstream_errors(self):
        client = FakePlaidClient(fail_remove=True)
        with self.assertRaises(UpstreamProviderError) as ctx:
            asyncio.run(plaid_service.call_plaid("item_remove", client.item_remove, None))
        self.assertEqual(ctx.exception.detail, "ITEM_NOT_FOUND")

    def test_slow_calls_time_out(self):
        def slow(request):
            time.sleep(0.3)
            return _Response({})

        with self.assertRaises(UpstreamProviderError) as ctx:
            asyncio.run(plaid_service.call_plaid("item_get", slow, None, timeout_s=0.05))
        self.assertEqual(ctx.exception.detail, "item_get timed out")


if __name__ == "__main__":
    unittest.main()
