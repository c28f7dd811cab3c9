from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.portfolio import PortfolioSummaryOut


class CartIn(BaseModel):
    portfolio_id: int
    shares: int = Field(gt=0)


class CartQuantityIn(BaseModel):
    shares: int = Field(gt=0)
    mode: Literal["INCREMENT", "DECREMENT"]


class CartBankIn(BaseModel):
    bank_account_id: int


class CartOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    portfolio_id: int
    shares: int
    bank_account_id: Optional[int] = None
    bank_account_details: Optional[Dict[str, Any]] = None
    portfolio: PortfolioSummaryOut
    updated_at: datetime


class CheckoutIn(BaseModel):
    bank_account_id: Optional[int] = None


class CheckoutIntentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    provider: str
    provider_ref: str
    portfolio_id: Optional[int] = None
    shares: int
    share_price: float
    amount: str
    currency: str
    state: str
    failure_reason: Optional[str] = None
    payment_id: Optional[int] = None


class CheckoutOut(BaseModel):
    intent: CheckoutIntentOut
    authorization: Dict[str, Any]


class CompleteOrderIn(BaseModel):
    intent_id: str = Field(min_length=1)


class PaypalCompleteIn(BaseModel):
    order_id: str = Field(min_length=1)
