from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class WalletEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: float
    remaining_amount: float
    balance_type: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime


class WalletSummaryOut(BaseModel):
    balance: float
    cash_in: float
    cash_out: float
