from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from schemas.portfolio import PortfolioSummaryOut


class DividendCreate(BaseModel):
    portfolio_id: Optional[int] = None
    net_rental_income: float = Field(ge=0)
    expenses: float = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_revenue(self) -> "DividendCreate":
        if self.net_rental_income - self.expenses <= 0:
            raise ValueError("net rental income must exceed expenses")
        return self


class UserDividendOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    portfolio_id: Optional[int] = None
    portfolio_dividend_id: int
    total_shares: int
    dividend: float
    created_at: datetime
    portfolio: Optional[PortfolioSummaryOut] = None


class PortfolioDividendOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    portfolio_id: Optional[int] = None
    net_rental_income: float
    expenses: float
    total_revenue: float
    per_share_dividend: float
    distributed_total: float
    investor_count: int
    created_at: datetime
    portfolio: Optional[PortfolioSummaryOut] = None


class PortfolioDividendDetailOut(PortfolioDividendOut):
    user_dividends: List[UserDividendOut] = Field(default_factory=list)


class DividendTotalOut(BaseModel):
    total_dividend: float
