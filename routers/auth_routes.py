from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from sqlalchemy.orm import Session

from config.settings import ACCESS_TOKEN_EXPIRE_MINUTES, AUTH_COOKIE_NAME, COOKIE_SECURE, RATE_LIMIT_AUTH
from database import get_db
from middleware.rate_limit import limiter
from models.user import User
from schemas.auth import (
    ChangePasswordIn,
    LoginIn,
    LoginOtpIn,
    PasswordResetConfirmIn,
    PasswordResetIn,
    PasswordResetOtpIn,
    ProfileOut,
    ProfileUpdate,
    RegisterIn,
    ResendIn,
    SessionOut,
    TokenOut,
    UserOut,
    VerifyIn,
)
from schemas.common import MessageOut
from services import dividend_service, user_service, wallet_service
from services.auth import get_current_user, token_for_user
from services.notifications import otp_email, send_email

router = APIRouter()


def _queue_otp(background: BackgroundTasks, user: User, otp: str, purpose: str) -> None:
    subject, html = otp_email(user.name, otp, purpose)
    background.add_task(send_email, user.email, subject, html)


def _login_response(response: Response, user: User) -> TokenOut:
    token = token_for_user(user)
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return TokenOut(access_token=token, user=UserOut.model_validate(user))


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT_AUTH)
def register(
    request: Request,
    payload: RegisterIn,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
):
    user, otp = user_service.register_user(
        db,
        name=payload.name,
        username=payload.username,
        email=payload.email,
        password=payload.password,
    )
    _queue_otp(background, user, otp, "verify")
    return user


@router.post("/verify", response_model=UserOut)
@limiter.limit(RATE_LIMIT_AUTH)
def verify(request: Request, payload: VerifyIn, db: Session = Depends(get_db)):
    return user_service.verify_account(db, payload.username, payload.otp)


@router.post("/verify/resend", response_model=MessageOut)
@limiter.limit(RATE_LIMIT_AUTH)
def resend_verification(
    request: Request,
    payload: ResendIn,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
):
    user, otp = user_service.resend_verification(db, payload.username)
    _queue_otp(background, user, otp, "verify")
    return MessageOut(message="Verification code sent")


@router.post("/login", response_model=TokenOut)
@limiter.limit(RATE_LIMIT_AUTH)
def login(request: Request, payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    user = user_service.authenticate(db, payload.username, payload.password)
    return _login_response(response, user)


@router.post("/login/otp/request", response_model=MessageOut)
@limiter.limit(RATE_LIMIT_AUTH)
def request_login_otp(
    request: Request,
    payload: LoginIn,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
):
    user, otp = user_service.request_login_otp(db, payload.username, payload.password)
    _queue_otp(background, user, otp, "login")
    return MessageOut(message="Login code sent")


@router.post("/login/otp", response_model=TokenOut)
@limiter.limit(RATE_LIMIT_AUTH)
def login_with_otp(request: Request, payload: LoginOtpIn, response: Response, db: Session = Depends(get_db)):
    user = user_service.authenticate_with_otp(db, payload.username, payload.password, payload.otp)
    return _login_response(response, user)


@router.post("/logout", response_model=MessageOut)
def logout(response: Response):
    response.delete_cookie(AUTH_COOKIE_NAME)
    return MessageOut(message="Logged out")


@router.get("/me", response_model=SessionOut)
def me(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return SessionOut(
        user=UserOut.model_validate(current_user),
        wallet_balance=wallet_service.current_balance(db, current_user.id),
        total_dividend=dividend_service.user_total_dividend(db, current_user.id),
    )


@router.get("/profile", response_model=ProfileOut)
def get_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/profile", response_model=ProfileOut)
def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return user_service.update_profile(db, current_user, payload.model_dump(exclude_unset=True))


@router.post("/reset-password", response_model=MessageOut)
@limiter.limit(RATE_LIMIT_AUTH)
def reset_password(
    request: Request,
    payload: PasswordResetIn,
    background: BackgroundTasks,
    db: Session = Depends(get_db),
):
    user, otp = user_service.request_password_reset(db, payload.email)
    _queue_otp(background, user, otp, "reset")
    return MessageOut(message="Password reset code sent")


@router.post("/reset-password/otp-check", response_model=MessageOut)
@limiter.limit(RATE_LIMIT_AUTH)
def reset_password_otp_check(request: Request, payload: PasswordResetOtpIn, db: Session = Depends(get_db)):
    user_service.check_password_reset_otp(db, payload.email, payload.otp)
    return MessageOut(message="OTP verified")


@router.post("/reset-password/confirm", response_model=MessageOut)
@limiter.limit(RATE_LIMIT_AUTH)
def reset_password_confirm(request: Request, payload: PasswordResetConfirmIn, db: Session = Depends(get_db)):
    user_service.confirm_password_reset(db, payload.email, payload.otp, payload.password)
    return MessageOut(message="Password has been reset")


@router.post("/change-password", response_model=MessageOut)
def change_password(
    payload: ChangePasswordIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user_service.change_password(db, current_user, payload.old_password, payload.new_password)
    return MessageOut(message="Password changed")
