"""
Environment-driven settings.

Every value is read once at import time from the process environment
(``.env`` is loaded first via python-dotenv). Modules import the constants
they need instead of calling ``os.getenv`` themselves.
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _bool(name: str, default: str = "0") -> bool:
    return (os.getenv(name, default) or "").strip().lower() in ("1", "true", "yes")


def _csv(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default) or ""
    return [part.strip() for part in raw.split(",") if part.strip()]


# ─── Database ──────────────────────────────────────────────────────
DATABASE_URL = os.getenv("DATABASE_URL")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "1800"))

# ─── Auth ──────────────────────────────────────────────────────────
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-prod")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))
AUTH_COOKIE_NAME = os.getenv("AUTH_COOKIE_NAME", "auth_token")
COOKIE_SECURE = _bool("COOKIE_SECURE")
OTP_EXPIRE_MINUTES = int(os.getenv("OTP_EXPIRE_MINUTES", "5"))

# ─── HTTP surface ──────────────────────────────────────────────────
API_URL = (os.getenv("API_URL") or "http://localhost:8000").rstrip("/")
APP_URL = (os.getenv("APP_URL") or "http://localhost:3000").rstrip("/")
CORS_ORIGINS = _csv("CORS_ORIGINS", "http://localhost:3000")
RATE_LIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "60/minute")
RATE_LIMIT_AUTH = os.getenv("RATE_LIMIT_AUTH", "10/minute")
RATE_LIMIT_ENABLED = _bool("RATE_LIMIT_ENABLED", "1")
REDIS_URL = os.getenv("REDIS_URL", "memory://")

# ─── Payment providers ─────────────────────────────────────────────
PLAID_ENV = (os.getenv("PLAID_ENV") or "sandbox").strip().lower()
PLAID_CLIENT_ID = os.getenv("PLAID_CLIENT_ID")
PLAID_SECRET = os.getenv("PLAID_SECRET")
PLAID_CLIENT_NAME = os.getenv("PLAID_CLIENT_NAME", "Homevest")

PAYPAL_API_URL = (os.getenv("PAYPAL_API_URL") or "https://api-m.sandbox.paypal.com").rstrip("/")
PAYPAL_CLIENT_ID = os.getenv("PAYPAL_CLIENT_ID", "")
PAYPAL_CLIENT_SECRET = os.getenv("PAYPAL_CLIENT_SECRET", "")
PAYPAL_BRAND_NAME = os.getenv("PAYPAL_BRAND_NAME", "Homevest.io")

PROVIDER_TIMEOUT_SECONDS = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "15"))
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")

# ─── Business rules ────────────────────────────────────────────────
DIVIDEND_VESTING_DAYS = int(os.getenv("DIVIDEND_VESTING_DAYS", "30"))

# ─── Notifications ─────────────────────────────────────────────────
EMAIL_WEBHOOK_URL = os.getenv("EMAIL_WEBHOOK_URL", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "no-reply@homevest.io")
EMAIL_TIMEOUT_SECONDS = float(os.getenv("EMAIL_TIMEOUT_SECONDS", "10"))
