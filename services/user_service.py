from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models.enums import Role, TokenType
from models.user import User
from services import otp_service, wallet_service
from services.auth import get_password_hash, verify_password
from services.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from utils.common_helpers import utcnow
from utils.pagination import PageParams, paginate

logger = logging.getLogger(__name__)


def find_by_login(db: Session, login: str) -> User | None:
    value = (login or "").strip()
    return (
        db.query(User)
        .filter(or_(User.username == value, User.email == value.lower()))
        .first()
    )


def register_user(
    db: Session,
    *,
    name: str,
    username: str,
    email: str,
    password: str,
    role: str = Role.INVESTOR,
) -> tuple[User, str]:
    """Create the account and its wallet; returns the user and the email-verification OTP."""
    email = email.strip().lower()
    username = username.strip()
    if db.query(User.id).filter(User.username == username).first():
        raise ConflictError("Username is already taken")
    if db.query(User.id).filter(User.email == email).first():
        raise ConflictError("Email is already registered")

    user = User(
        name=name.strip(),
        username=username,
        email=email,
        hashed_password=get_password_hash(password),
        role=role,
    )
    db.add(user)
    db.flush()

    wallet_service.open_wallet(db, user.id)
    otp = otp_service.issue_otp(db, user.id, TokenType.EMAIL_VERIFICATION)
    db.commit()
    db.refresh(user)
    logger.info("user_registered user_id=%s", user.id)
    return user, otp


def resend_verification(db: Session, login: str) -> tuple[User, str]:
    user = find_by_login(db, login)
    if not user:
        raise NotFoundError("User not found")
    if user.is_verified:
        raise ConflictError("Account is already verified")
    otp = otp_service.issue_otp(db, user.id, TokenType.EMAIL_VERIFICATION)
    db.commit()
    return user, otp


def verify_account(db: Session, login: str, otp: str) -> User:
    user = find_by_login(db, login)
    if not user:
        raise NotFoundError("User not found")
    if user.is_verified:
        return user
    otp_service.consume_otp(db, user.id, TokenType.EMAIL_VERIFICATION, otp)
    user.email_verified_at = utcnow()
    db.commit()
    db.refresh(user)
    logger.info("user_verified user_id=%s", user.id)
    return user


def authenticate(db: Session, login: str, password: str) -> User:
    user = find_by_login(db, login)
    if not user or not verify_password(password, user.hashed_password):
        raise UnauthorizedError("Invalid credentials")
    if not user.is_verified:
        raise UnauthorizedError("Please verify your account before logging in")
    return user


def request_login_otp(db: Session, login: str, password: str) -> tuple[User, str]:
    user = authenticate(db, login, password)
    otp = otp_service.issue_otp(db, user.id, TokenType.LOGIN_OTP)
    db.commit()
    return user, otp


def authenticate_with_otp(db: Session, login: str, password: str, otp: str) -> User:
    user = authenticate(db, login, password)
    otp_service.consume_otp(db, user.id, TokenType.LOGIN_OTP, otp)
    db.commit()
    return user


def _find_by_email(db: Session, email: str) -> User:
    user = db.query(User).filter(User.email == (email or "").strip().lower()).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def request_password_reset(db: Session, email: str) -> tuple[User, str]:
    user = _find_by_email(db, email)
    otp = otp_service.issue_otp(db, user.id, TokenType.PASSWORD_RESET)
    db.commit()
    logger.info("password_reset_requested user_id=%s", user.id)
    return user, otp


def check_password_reset_otp(db: Session, email: str, otp: str) -> User:
    """Validate a reset code without spending it, so the client can move on to the new-password step."""
    user = _find_by_email(db, email)
    if not user.is_verified:
        raise UnauthorizedError("Please verify your account before resetting the password")
    otp_service.check_otp(db, user.id, TokenType.PASSWORD_RESET, otp)
    return user


def confirm_password_reset(db: Session, email: str, otp: str, password: str) -> User:
    user = _find_by_email(db, email)
    otp_service.consume_otp(db, user.id, TokenType.PASSWORD_RESET, otp)
    user.hashed_password = get_password_hash(password)
    db.commit()
    logger.info("password_reset user_id=%s", user.id)
    return user


def change_password(db: Session, user: User, old_password: str, new_password: str) -> User:
    if not verify_password(old_password, user.hashed_password):
        raise ValidationError("Current password is incorrect")
    if old_password == new_password:
        raise ValidationError("New password must differ from the current one")
    user.hashed_password = get_password_hash(new_password)
    db.commit()
    db.refresh(user)
    logger.info("password_changed user_id=%s", user.id)
    return user


def update_profile(db: Session, user: User, changes: dict[str, Any]) -> User:
    if "name" in changes and not changes["name"]:
        raise ValidationError("Name cannot be empty")
    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


def list_investors(db: Session, params: PageParams) -> dict[str, Any]:
    query = db.query(User).filter(User.role == Role.INVESTOR)
    if params.search:
        term = f"%{params.search.strip()}%"
        query = query.filter(or_(User.name.ilike(term), User.username.ilike(term), User.email.ilike(term)))
    query = query.order_by(User.created_at.desc(), User.id.desc())
    return paginate(query, params)

