from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Cookie, Depends, Request
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from config.settings import ACCESS_TOKEN_EXPIRE_MINUTES, AUTH_COOKIE_NAME, JWT_SECRET_KEY
from database import get_db
from models.user import User
from services.errors import ForbiddenError, UnauthorizedError

# ========================
# Config
# ========================

SECRET_KEY = JWT_SECRET_KEY
ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# ========================
# Password helpers
# ========================

def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

# ========================
# JWT helpers
# ========================

def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"iat": int(now.timestamp()), "exp": int(expire.timestamp())})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode & verify JWT. Raises UnauthorizedError on failure.
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise UnauthorizedError("Invalid or expired token")

def token_for_user(user: User) -> str:
    return create_access_token({"sub": str(user.id), "role": user.role})

# ========================
# User dependencies
# ========================

def _get_user_by_sub(db: Session, sub: Any) -> User:
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid token subject")
    user = db.get(User, user_id)
    if not user:
        raise UnauthorizedError("User not found")
    return user

def _bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return None

def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    auth_token: Optional[str] = Cookie(default=None, alias=AUTH_COOKIE_NAME),
) -> User:
    """Cookie first (browser), then ``Authorization: Bearer`` (API clients)."""
    token = auth_token or _bearer_token(request)
    if not token:
        raise UnauthorizedError()
    payload = decode_access_token(token)
    sub = payload.get("sub")
    if not sub:
        raise UnauthorizedError("Invalid token payload")
    return _get_user_by_sub(db, sub)


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise ForbiddenError()
    return user
