from __future__ import annotations

from functools import lru_cache

from models.enums import PaymentProviderName
from services.errors import ValidationError
from services.payments.base import PaymentProvider
from services.payments.paypal_provider import PaypalPaymentProvider
from services.payments.plaid_provider import PlaidPaymentProvider


@lru_cache(maxsize=None)
def get_provider(name: str) -> PaymentProvider:
    if name == PaymentProviderName.PLAID:
        return PlaidPaymentProvider()
    if name == PaymentProviderName.PAYPAL:
        return PaypalPaymentProvider()
    raise ValidationError(f"Unsupported payment provider: {name}")


def get_plaid_provider() -> PaymentProvider:
    return get_provider(PaymentProviderName.PLAID)


def get_paypal_provider() -> PaymentProvider:
    return get_provider(PaymentProviderName.PAYPAL)
