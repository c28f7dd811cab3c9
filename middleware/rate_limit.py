"""
Rate limiting configuration using slowapi.

Usage in route files:
    from middleware.rate_limit import limiter

    @router.post("/login")
    @limiter.limit(RATE_LIMIT_AUTH)
    def login(request: Request, ...):
        ...
"""
import logging

from fastapi import Request
from jose import JWTError, jwt
from slowapi import Limiter
from slowapi.util import get_remote_address

from config.settings import AUTH_COOKIE_NAME, RATE_LIMIT_DEFAULT, RATE_LIMIT_ENABLED, REDIS_URL

logger = logging.getLogger(__name__)


def _get_rate_limit_key(request: Request) -> str:
    """
    Identify the caller for rate-limiting.

    Strategy:
      1. If the request carries a JWT (cookie or bearer), use its ``sub`` claim
         so the limit is per-user regardless of IP.
      2. Otherwise, fall back to client IP.
    """
    token = request.cookies.get(AUTH_COOKIE_NAME)
    if not token:
        auth = request.headers.get("Authorization", "")
        if auth.lower().startswith("bearer "):
            token = auth.split(" ", 1)[1].strip()
    if token:
        try:
            # Unverified read is enough to bucket the limit; auth is enforced by the route dependency.
            sub = jwt.get_unverified_claims(token).get("sub")
            if sub:
                return f"user:{sub}"
        except JWTError:
            pass

    return get_remote_address(request)


limiter = Limiter(
    key_func=_get_rate_limit_key,
    default_limits=[RATE_LIMIT_DEFAULT],
    storage_uri=REDIS_URL,
    strategy="fixed-window",
    enabled=RATE_LIMIT_ENABLED,
)
