# snooker_api/api/v1/endpoints/auth.py
import logging
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from snooker_api import crud, schemas
from snooker_api.api import deps
from snooker_api.auth import AuthService
from snooker_api.core.errors import RateLimitedError, SnookerError
from snooker_api.core.timeutils import ensure_aware, utcnow
from snooker_api.db.models.one_time_passcode import OTPPurpose
from snooker_api.db.models.user import User
from snooker_api.db.models.user_session import UserSession
from snooker_api.services.notification_service import send_otp_email

logger = logging.getLogger(__name__)

router = APIRouter()


def _device_info(request: Request) -> dict:
    return AuthService.parse_device_info(
        request.headers.get("user-agent"),
        request.client.host if request.client else None,
        request.headers.get("x-platform"),
    )


def _issue_otp(db: Session, background_tasks: BackgroundTasks, user: User, purpose: OTPPurpose) -> None:
    code = crud.otp.create(db, email=user.email, purpose=purpose)
    background_tasks.add_task(send_otp_email, user.email, code.code, purpose, user.first_name)


def _open_session(db: Session, request: Request, user: User, remember_me: bool) -> schemas.Token:
    auth_session, token = crud.user_session.create(
        db, user_id=user.id, device_info=_device_info(request), remember_me=remember_me
    )
    return schemas.Token(access_token=token, session_id=auth_session.session_id)


def _session_out(auth_session: UserSession, current_session_id: str) -> schemas.AuthSession:
    out = schemas.AuthSession.model_validate(auth_session)
    out.is_current = auth_session.session_id == current_session_id
    return out


@router.post("/signup", response_model=schemas.SignupResponse, status_code=status.HTTP_201_CREATED)
def signup(
    *,
    db: Session = Depends(deps.get_db),
    user_in: schemas.UserCreate,
    background_tasks: BackgroundTasks,
) -> Any:
    """
    Register a new owner account.
    A signup code is e-mailed; the account stays unverified until it is confirmed.
    """
    try:
        user = crud.user.create(db, obj_in=user_in)
        _issue_otp(db, background_tasks, user, OTPPurpose.SIGNUP)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    logger.info(f"New user signed up: {user.email}")
    return schemas.SignupResponse(
        message="User created successfully. Please verify your email with the OTP sent.",
        user_id=user.id,
        email=user.email,
        otp_sent=True,
    )


@router.post("/login", response_model=schemas.LoginResponse)
def login(
    *,
    db: Session = Depends(deps.get_db),
    login_in: schemas.LoginRequest,
    request: Request,
    background_tasks: BackgroundTasks,
) -> Any:
    """
    Password login.
    Unverified accounts get a fresh verification code instead of a token.
    """
    try:
        user = crud.user.authenticate(db, email=login_in.email, password=login_in.password)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    if not user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email or password")

    if not user.is_email_verified:
        otp_sent = True
        try:
            crud.otp.ensure_can_send(db, email=user.email, purpose=OTPPurpose.EMAIL_VERIFICATION)
            _issue_otp(db, background_tasks, user, OTPPurpose.EMAIL_VERIFICATION)
        except RateLimitedError:
            otp_sent = False
        return schemas.LoginResponse(
            message="Please verify your email address. A verification code has been sent.",
            requires_verification=True,
            email=user.email,
            otp_sent=otp_sent,
        )

    user = crud.user.reset_failed_attempts(db, user=user, login=True)
    token = _open_session(db, request, user, login_in.remember_me)
    logger.info(f"User logged in: {user.email}")
    return schemas.LoginResponse(message="Login successful", token=token, user=schemas.User.model_validate(user))


@router.post("/verify-otp", response_model=schemas.LoginResponse)
def verify_otp(
    *,
    db: Session = Depends(deps.get_db),
    otp_in: schemas.OTPVerify,
    request: Request,
) -> Any:
    """
    Confirm a signup, e-mail verification or login code and open an auth session.
    """
    if otp_in.purpose == OTPPurpose.PASSWORD_RESET:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Use reset-password for this code")
    user = crud.user.get_by_email(db, email=otp_in.email)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    try:
        crud.otp.verify(db, email=user.email, code=otp_in.otp, purpose=otp_in.purpose)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    if otp_in.purpose in (OTPPurpose.SIGNUP, OTPPurpose.EMAIL_VERIFICATION):
        user = crud.user.mark_email_verified(db, user=user)
        message = "Email verified successfully"
    else:
        user = crud.user.reset_failed_attempts(db, user=user, login=True)
        message = "Login successful"
    token = _open_session(db, request, user, otp_in.remember_me)
    return schemas.LoginResponse(message=message, token=token, user=schemas.User.model_validate(user))


@router.post("/resend-otp", response_model=schemas.OTPSentResponse)
def resend_otp(
    *,
    db: Session = Depends(deps.get_db),
    resend_in: schemas.OTPResend,
    background_tasks: BackgroundTasks,
) -> Any:
    user = crud.user.get_by_email(db, email=resend_in.email)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if resend_in.purpose in (OTPPurpose.SIGNUP, OTPPurpose.EMAIL_VERIFICATION) and user.is_email_verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email is already verified")
    try:
        crud.otp.ensure_can_send(db, email=user.email, purpose=resend_in.purpose)
        _issue_otp(db, background_tasks, user, resend_in.purpose)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    return schemas.OTPSentResponse(message="OTP sent successfully", email=user.email, otp_sent=True)


@router.post("/forgot-password", response_model=schemas.OTPSentResponse)
def forgot_password(
    *,
    db: Session = Depends(deps.get_db),
    email_in: schemas.EmailRequest,
    background_tasks: BackgroundTasks,
) -> Any:
    """
    Send a password reset code. The answer is the same whether or not the account exists.
    """
    user = crud.user.get_by_email(db, email=email_in.email)
    if user:
        try:
            crud.otp.ensure_can_send(db, email=user.email, purpose=OTPPurpose.PASSWORD_RESET)
            _issue_otp(db, background_tasks, user, OTPPurpose.PASSWORD_RESET)
        except RateLimitedError as e:
            raise HTTPException(status_code=e.status_code, detail=e.detail)
    return schemas.OTPSentResponse(message="If an account exists with this email, a reset code has been sent")


@router.post("/reset-password", response_model=schemas.MessageResponse)
def reset_password(
    *,
    db: Session = Depends(deps.get_db),
    reset_in: schemas.PasswordReset,
) -> Any:
    user = crud.user.get_by_email(db, email=reset_in.email)
    if not user:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired OTP")
    try:
        crud.otp.verify(db, email=user.email, code=reset_in.otp, purpose=OTPPurpose.PASSWORD_RESET)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    crud.user.set_password(db, user=user, new_password=reset_in.new_password)
    crud.user_session.invalidate_all(db, user_id=user.id)
    logger.info(f"Password reset for {user.email}")
    return schemas.MessageResponse(message="Password reset successfully. Please log in with your new password")


@router.get("/me", response_model=schemas.Me)
def read_me(auth_session: UserSession = Depends(deps.get_current_auth_session)) -> Any:
    """
    Current user and the auth session the request came in on.
    """
    return schemas.Me(
        user=schemas.User.model_validate(auth_session.user),
        session=_session_out(auth_session, auth_session.session_id),
    )


@router.post("/logout", response_model=schemas.MessageResponse)
def logout(
    db: Session = Depends(deps.get_db),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    crud.user_session.deactivate(db, db_obj=auth_session)
    logger.info(f"User {auth_session.user_id} logged out")
    return schemas.MessageResponse(message="Logged out successfully")


@router.get("/sessions", response_model=schemas.AuthSessionList)
def read_sessions(
    db: Session = Depends(deps.get_db),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    """
    Every live login of the current user, newest activity first.
    """
    sessions = crud.user_session.get_active_for_user(db, user_id=auth_session.user_id)
    recent = utcnow() - timedelta(hours=24)
    return schemas.AuthSessionList(
        sessions=[_session_out(s, auth_session.session_id) for s in sessions],
        current_session_id=auth_session.session_id,
        statistics={
            "total": len(sessions),
            "remember_me": sum(1 for s in sessions if s.remember_me),
            "recently_active": sum(1 for s in sessions if ensure_aware(s.last_activity) > recent),
        },
    )


@router.post("/logout-session", response_model=schemas.MessageResponse)
def logout_session(
    *,
    db: Session = Depends(deps.get_db),
    logout_in: schemas.LogoutSessionRequest,
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    try:
        crud.user_session.invalidate(db, user_id=auth_session.user_id, session_id=logout_in.session_id)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    return schemas.MessageResponse(message="Session logged out successfully")


@router.post("/logout-others", response_model=schemas.MessageResponse)
def logout_others(
    db: Session = Depends(deps.get_db),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    count = crud.user_session.invalidate_all(
        db, user_id=auth_session.user_id, except_session_id=auth_session.session_id
    )
    return schemas.MessageResponse(message=f"Logged out from {count} other sessions", count=count)


@router.post("/logout-all", response_model=schemas.MessageResponse)
def logout_all(
    db: Session = Depends(deps.get_db),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    count = crud.user_session.invalidate_all(db, user_id=auth_session.user_id)
    return schemas.MessageResponse(message=f"Logged out from all {count} sessions", count=count)


@router.post("/extend-session", response_model=schemas.ExtendSessionResponse)
def extend_session(
    *,
    db: Session = Depends(deps.get_db),
    extend_in: schemas.ExtendSessionRequest = schemas.ExtendSessionRequest(),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    auth_session = crud.user_session.extend(db, db_obj=auth_session, hours=extend_in.hours)
    return schemas.ExtendSessionResponse(
        message="Session extended successfully",
        new_expires_at=auth_session.expires_at,
        hours_extended=extend_in.hours,
    )


@router.get("/session-info", response_model=schemas.SessionInfo)
def session_info(auth_session: UserSession = Depends(deps.get_current_auth_session)) -> Any:
    remaining = ensure_aware(auth_session.expires_at) - utcnow()
    hours_left = max(0, int(remaining.total_seconds() // 3600))
    return schemas.SessionInfo(
        session=_session_out(auth_session, auth_session.session_id),
        user=schemas.User.model_validate(auth_session.user),
        hours_left=hours_left,
        is_expiring_soon=hours_left < 24,
    )
