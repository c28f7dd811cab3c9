from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

_USERNAME = re.compile(r"^[A-Za-z0-9_.-]{3,64}$")
_PHONE = re.compile(r"^\+?[0-9 ()-]{7,20}$")


def _check_password(value: str) -> str:
    if len(value or "") < 8:
        raise ValueError("password must be at least 8 characters")
    return value


class RegisterIn(BaseModel):
    name: str
    username: str
    email: EmailStr
    password: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        name = (value or "").strip()
        if not name or len(name) > 120:
            raise ValueError("name must be 1-120 characters")
        return name

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        username = (value or "").strip()
        if not _USERNAME.match(username):
            raise ValueError("username must be 3-64 letters, digits, '.', '_' or '-'")
        return username

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password(value)


class LoginIn(BaseModel):
    username: str  # username or email
    password: str


class LoginOtpIn(LoginIn):
    otp: str


class VerifyIn(BaseModel):
    username: str
    otp: str


class ResendIn(BaseModel):
    username: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    username: str
    email: str
    role: str
    email_verified_at: Optional[datetime] = None
    created_at: datetime


class SessionOut(BaseModel):
    user: UserOut
    wallet_balance: float
    total_dividend: float


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class ProfileOut(UserOut):
    phone_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None
    date_of_birth: Optional[date] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None
    date_of_birth: Optional[date] = None

    @field_validator("name", "address", "city", "state", "country", "zip_code")
    @classmethod
    def strip_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("profile fields cannot be blank")
        return value

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _PHONE.match(value.strip()):
            raise ValueError("phone number is not valid")
        return value.strip() if value else value

    @field_validator("date_of_birth")
    @classmethod
    def validate_birth_date(cls, value: Optional[date]) -> Optional[date]:
        if value is not None and value >= date.today():
            raise ValueError("date of birth must be in the past")
        return value


class PasswordResetIn(BaseModel):
    email: EmailStr


class PasswordResetOtpIn(PasswordResetIn):
    otp: str


class PasswordResetConfirmIn(PasswordResetOtpIn):
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password(value)


class ChangePasswordIn(BaseModel):
    old_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, value: str) -> str:
        return _check_password(value)
