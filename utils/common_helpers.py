from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_float(x: Any) -> float:
    if x is None:
        return 0.0
    if isinstance(x, Decimal):
        return float(x)
    try:
        return float(x)
    except (TypeError, ValueError):
        return 0.0


def safe_div(n, d):
    try:
        return (n / d) if (n is not None and d not in (None, 0)) else None
    except ZeroDivisionError:
        return None


def mask_account_id(account_id: Optional[str]) -> Optional[str]:
    """Show only the last four characters: ``"****1234"``."""
    if not account_id:
        return account_id
    return "****" + str(account_id)[-4:]


def is_int_like(value: Any) -> bool:
    try:
        int(str(value))
        return True
    except (TypeError, ValueError):
        return False
