# snooker_api/api/v1/endpoints/users.py
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from snooker_api import crud, schemas
from snooker_api.api import deps
from snooker_api.core.errors import SnookerError
from snooker_api.db.models.user import User
from snooker_api.db.models.user_session import UserSession

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/profile", response_model=schemas.User)
def read_profile(current_user: User = Depends(deps.get_current_user)) -> Any:
    return current_user


@router.put("/profile", response_model=schemas.User)
def update_profile(
    *,
    db: Session = Depends(deps.get_db),
    user_in: schemas.UserUpdate,
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """
    Update name and profile picture.
    """
    return crud.user.update(db, db_obj=current_user, obj_in=user_in)


@router.put("/change-password", response_model=schemas.MessageResponse)
def change_password(
    *,
    db: Session = Depends(deps.get_db),
    password_in: schemas.PasswordChange,
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    """
    Change the password and sign out every other device.
    """
    try:
        crud.user.change_password(
            db,
            user=auth_session.user,
            current_password=password_in.current_password,
            new_password=password_in.new_password,
        )
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    count = crud.user_session.invalidate_all(
        db, user_id=auth_session.user_id, except_session_id=auth_session.session_id
    )
    logger.info(f"Password changed for user {auth_session.user_id}")
    return schemas.MessageResponse(message="Password changed successfully", count=count)


@router.delete("/account", response_model=schemas.MessageResponse)
def delete_account(
    *,
    db: Session = Depends(deps.get_db),
    delete_in: schemas.AccountDelete,
    current_user: User = Depends(deps.get_current_user),
) -> Any:
    """
    Delete the account with its snooker house, tables, products, sessions and sales.
    """
    try:
        crud.user.remove(db, user=current_user, password=delete_in.password)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    return schemas.MessageResponse(message="Account deleted successfully")
