from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from schemas.portfolio import PortfolioSummaryOut


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    portfolio_id: Optional[int] = None
    provider: str
    transaction_id: str
    status: str
    amount: float
    fee: Optional[float] = None
    net_amount: float
    currency: str
    description: Optional[str] = None
    invested_shares: int
    created_at: datetime
    portfolio: Optional[PortfolioSummaryOut] = None


class CapitalOut(BaseModel):
    payment_id: int
    portfolio_id: Optional[int] = None
    portfolio_title: Optional[str] = None
    investor_name: str
    total_share_owned: int
    percentage_ownership: float


class SettlementOut(BaseModel):
    state: str
    replayed: bool = False
    intent_id: int
    payment: Optional[PaymentOut] = None
