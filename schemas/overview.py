from __future__ import annotations

from pydantic import BaseModel

from schemas.wallet import WalletSummaryOut


class ShareTotals(BaseModel):
    amount: int
    sold: int
    unsold: int


class UserOverviewOut(BaseModel):
    wallet: WalletSummaryOut
    portfolio_value: float
    number_of_shares: int
    total_dividend: float
    total_shares: ShareTotals


class AdminOverviewOut(BaseModel):
    amount_raised: float
    number_of_shares_sold: int
    number_of_investors: int
    average_investment: float
    unsold_shares: int
    total_shares: ShareTotals
