"""
Payment provider capability.

Checkout talks to every payment rail through ``PaymentProvider``; nothing
downstream branches on which rail was used.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Awaitable, Optional, TypeVar

from services.errors import UpstreamProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SUCCEEDED = "SUCCEEDED"
PENDING = "PENDING"
FAILED = "FAILED"


def format_amount(value: Any) -> str:
    """Two-decimal string as payment networks expect: 500 -> "500.00"."""
    return str(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


async def bounded(provider: str, operation: str, awaitable: Awaitable[T], timeout_s: float) -> T:
    """Run one provider call under ``timeout_s``; any failure becomes UpstreamProviderError."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_s)
    except UpstreamProviderError:
        raise
    except asyncio.TimeoutError:
        logger.error("provider_timeout provider=%s op=%s timeout_s=%s", provider, operation, timeout_s)
        raise UpstreamProviderError(provider, f"{operation} timed out")
    except Exception as exc:
        logger.error(
            "provider_error provider=%s op=%s error=%s detail=%s",
            provider, operation, type(exc).__name__, exc,
        )
        raise UpstreamProviderError(provider, str(exc)) from exc


@dataclass
class IntentRequest:
    user_id: int
    portfolio_id: int
    portfolio_title: str
    shares: int
    share_price: float
    amount: str
    currency: str
    bank_account_id: Optional[str] = None
    bank_access_token: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None


@dataclass
class ProviderIntent:
    reference: str
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderSettlement:
    status: str
    reference: str
    transaction_id: str
    amount: float
    fee: Optional[float]
    net_amount: float
    currency: str
    raw: dict[str, Any] = field(default_factory=dict)
    failure_reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED

    @property
    def pending(self) -> bool:
        return self.status == PENDING


class PaymentProvider(ABC):
    name: str
    timeout_s: float

    @abstractmethod
    async def create_intent(self, request: IntentRequest) -> ProviderIntent:
        """Create the provider-side payment object for ``request.amount``."""

    @abstractmethod
    async def authorize(self, intent: ProviderIntent, request: IntentRequest) -> dict[str, Any]:
        """Payload the client needs to authorise the payment (link token, approval URL)."""

    @abstractmethod
    async def finalize(self, reference: str) -> ProviderSettlement:
        """Confirm the payment identified by ``reference``."""

    async def _bounded(self, operation: str, awaitable: Awaitable[T]) -> T:
        return await bounded(self.name, operation, awaitable, self.timeout_s)
