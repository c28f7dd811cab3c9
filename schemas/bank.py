from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class LinkTokenIn(BaseModel):
    product: str = "auth"


class LinkTokenOut(BaseModel):
    link_token: str


class BankAddIn(BaseModel):
    public_token: str
    account_id: str
    bank_name: str = Field(min_length=1, max_length=255)
    bank_type: Optional[str] = None
    bank_data: Optional[Dict[str, Any]] = None


class BankOut(BaseModel):
    id: int
    bank_name: str
    bank_type: Optional[str] = None
    account_id: str  # masked
    created_at: datetime
