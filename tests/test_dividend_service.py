import unittest

from tests.factories import make_investment, make_portfolio, make_user, reset_db

from models.dividend import PortfolioDividend, UserDividend
from models.wallet import WalletEntry
from services import dividend_service, wallet_service
from services.errors import NotFoundError, ValidationError
from utils.pagination import PageParams


class DividendServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = reset_db()
        self.portfolio = make_portfolio(self.db, title="Downtown Loft", shares=1000, share_price=50)
        self.alice = make_user(self.db, name="Alice")
        self.bob = make_user(self.db, name="Bob")

    def tearDown(self):
        self.db.close()

    def test_per_share_split_over_total_shares(self):
        make_investment(self.db, self.alice, self.portfolio, 10)

        event = dividend_service.create_portfolio_dividend(
            self.db, self.portfolio.id, net_rental_income=6000, expenses=1000
        )

        self.assertEqual(event.total_revenue, 5000)
        self.assertAlmostEqual(event.per_share_dividend, 5.0)
        self.assertAlmostEqual(event.distributed_total, 50.0)
        self.assertEqual(event.investor_count, 1)

        row = self.db.query(UserDividend).filter(UserDividend.user_id == self.alice.id).one()
        self.assertEqual(row.total_shares, 10)
        self.assertAlmostEqual(row.dividend, 50.0)
        self.assertAlmostEqual(wallet_service.current_balance(self.db, self.alice.id), 50.0)
        latest = wallet_service.latest_entry(self.db, self.alice.id)
        self.assertEqual(latest.description, "Dividend from Downtown Loft")

    def test_purchases_are_grouped_per_investor(self):
        make_investment(self.db, self.alice, self.portfolio, 10)
        make_investment(self.db, self.alice, self.portfolio, 5)
        make_investment(self.db, self.bob, self.portfolio, 20)

        event = dividend_service.create_portfolio_dividend(
            self.db, self.portfolio.id, net_rental_income=1000, expenses=0
        )

        self.assertEqual(event.investor_count, 2)
        shares = {
            d.user_id: d.total_shares
            for d in self.db.query(UserDividend).filter(UserDividend.portfolio_dividend_id == event.id)
        }
        self.assertEqual(shares, {self.alice.id: 15, self.bob.id: 20})
        self.assertAlmostEqual(wallet_service.current_balance(self.db, self.bob.id), 20.0)

    def test_fully_vested_portfolio_distributes_all_revenue(self):
        carol = make_user(self.db, name="Carol")
        for shares, revenue, holdings in (
            (3, 1000, {self.alice: 1, self.bob: 1, carol: 1}),
            (7, 100, {self.alice: 2, self.bob: 2, carol: 3}),
        ):
            portfolio = make_portfolio(self.db, shares=shares, share_price=50)
            for user, held in holdings.items():
                make_investment(self.db, user, portfolio, held)

            event = dividend_service.create_portfolio_dividend(
                self.db, portfolio.id, net_rental_income=revenue, expenses=0
            )

            tolerance = 1e-9 * len(holdings)
            paid = sum(
                d.dividend
                for d in self.db.query(UserDividend).filter(UserDividend.portfolio_dividend_id == event.id)
            )
            self.assertEqual(event.investor_count, len(holdings))
            self.assertAlmostEqual(event.distributed_total, revenue, delta=tolerance)
            self.assertAlmostEqual(paid, event.total_revenue, delta=tolerance)

    def test_recent_purchases_are_not_yet_eligible(self):
        make_investment(self.db, self.alice, self.portfolio, 10, days_ago=40)
        make_investment(self.db, self.bob, self.portfolio, 10, days_ago=5)

        dividend_service.create_portfolio_dividend(self.db, self.portfolio.id, net_rental_income=1000, expenses=0)

        self.assertEqual(self.db.query(UserDividend).filter(UserDividend.user_id == self.bob.id).count(), 0)
        self.assertEqual(wallet_service.current_balance(self.db, self.bob.id), 0.0)

    def test_no_eligible_investors_persists_nothing(self):
        make_investment(self.db, self.alice, self.portfolio, 10, days_ago=1)

        with self.assertRaises(NotFoundError):
            dividend_service.create_portfolio_dividend(
                self.db, self.portfolio.id, net_rental_income=1000, expenses=0
            )

        self.assertEqual(self.db.query(PortfolioDividend).count(), 0)
        self.assertEqual(self.db.query(WalletEntry).filter(WalletEntry.balance_type.isnot(None)).count(), 0)

    def test_non_positive_revenue_is_rejected(self):
        make_investment(self.db, self.alice, self.portfolio, 10)
        with self.assertRaises(ValidationError):
            dividend_service.create_portfolio_dividend(
                self.db, self.portfolio.id, net_rental_income=500, expenses=500
            )
        self.assertEqual(self.db.query(PortfolioDividend).count(), 0)

    def test_unknown_portfolio(self):
        with self.assertRaises(NotFoundError):
            dividend_service.create_portfolio_dividend(self.db, 9999, net_rental_income=10, expenses=0)

    def test_reads(self):
        make_investment(self.db, self.alice, self.portfolio, 10)
        dividend_service.create_portfolio_dividend(self.db, self.portfolio.id, net_rental_income=2000, expenses=0)
        dividend_service.create_portfolio_dividend(self.db, self.portfolio.id, net_rental_income=1000, expenses=0)

        self.assertAlmostEqual(dividend_service.user_total_dividend(self.db, self.alice.id), 30.0)
        self.assertEqual(dividend_service.list_user_dividends(self.db, self.alice.id, PageParams())["total"], 2)
        self.assertEqual(dividend_service.list_portfolio_dividends(self.db, PageParams(search="loft"))["total"], 2)
        events = dividend_service.list_dividends_for_portfolio(self.db, self.portfolio.id)
        self.assertEqual(len(events), 2)
        self.assertEqual(events[0].user_dividends[0].user.name, "Alice")


if __name__ == "__main__":
    unittest.main()
