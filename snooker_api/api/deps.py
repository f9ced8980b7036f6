# snooker_api/api/deps.py
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from snooker_api import crud, schemas
from snooker_api.auth import AuthService
from snooker_api.core.config import settings
from snooker_api.core.errors import AuthenticationError, NotFoundError
from snooker_api.database import get_db
from snooker_api.db.models.snooker_house import SnookerHouse
from snooker_api.db.models.user import User
from snooker_api.db.models.user_session import UserSession

reusable_oauth2 = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

CREDENTIALS_HEADERS = {"WWW-Authenticate": "Bearer"}


def get_current_auth_session(
    db: Session = Depends(get_db),
    token: str = Depends(reusable_oauth2),
) -> UserSession:
    """Resolve the bearer token to a live auth session and refresh its activity."""
    try:
        token_data = schemas.TokenPayload(**AuthService.decode_token(token))
    except AuthenticationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail, headers=CREDENTIALS_HEADERS)

    auth_session = crud.user_session.get_active_by_token(db, token=token)
    if not auth_session or auth_session.session_id != token_data.sid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired or invalid",
            headers=CREDENTIALS_HEADERS,
        )
    if auth_session.is_expired():
        crud.user_session.deactivate(db, db_obj=auth_session)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired",
            headers=CREDENTIALS_HEADERS,
        )
    user = auth_session.user
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if user.is_locked():
        raise HTTPException(status_code=status.HTTP_423_LOCKED, detail="Account is temporarily locked")
    return crud.user_session.touch(db, db_obj=auth_session)


def get_current_user(auth_session: UserSession = Depends(get_current_auth_session)) -> User:
    return auth_session.user


def get_current_verified_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_email_verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Please verify your email address first",
        )
    return current_user


def get_current_house(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_verified_user),
) -> SnookerHouse:
    """The caller's venue; most business endpoints need one."""
    try:
        return crud.snooker_house.get_required_by_owner(db, owner=current_user)
    except NotFoundError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
