from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import timedelta

from sqlalchemy.orm import Session

from config.settings import OTP_EXPIRE_MINUTES
from models.verification_token import VerificationToken
from services.errors import ValidationError
from utils.common_helpers import utcnow


def _hash(otp: str) -> str:
    return hashlib.sha256(otp.encode("utf-8")).hexdigest()


def generate_otp() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def issue_otp(db: Session, user_id: int, token_type: str) -> str:
    """Store a fresh OTP for (user, purpose), replacing any previous one, and return it. Does not commit."""
    otp = generate_otp()
    expires_at = utcnow() + timedelta(minutes=OTP_EXPIRE_MINUTES)
    row = (
        db.query(VerificationToken)
        .filter(VerificationToken.user_id == user_id, VerificationToken.token_type == token_type)
        .first()
    )
    if row:
        row.token_hash = _hash(otp)
        row.expires_at = expires_at
    else:
        db.add(
            VerificationToken(
                user_id=user_id,
                token_type=token_type,
                token_hash=_hash(otp),
                expires_at=expires_at,
            )
        )
    db.flush()
    return otp


def _matching_row(db: Session, user_id: int, token_type: str, otp: str) -> VerificationToken:
    row = (
        db.query(VerificationToken)
        .filter(VerificationToken.user_id == user_id, VerificationToken.token_type == token_type)
        .first()
    )
    if not row or not hmac.compare_digest(row.token_hash, _hash(otp or "")):
        raise ValidationError("Invalid OTP")

    expires_at = row.expires_at
    if expires_at.tzinfo is None:
        # SQLite hands back naive datetimes
        expires_at = expires_at.replace(tzinfo=utcnow().tzinfo)
    if expires_at < utcnow():
        db.delete(row)
        db.flush()
        raise ValidationError("OTP has expired")
    return row


def check_otp(db: Session, user_id: int, token_type: str, otp: str) -> None:
    """Check the OTP and leave it in place for a later ``consume_otp``."""
    _matching_row(db, user_id, token_type, otp)


def consume_otp(db: Session, user_id: int, token_type: str, otp: str) -> None:
    """Check and burn the OTP. Does not commit."""
    row = _matching_row(db, user_id, token_type, otp)
    db.delete(row)
    db.flush()
