# snooker_api/crud/crud_user.py
import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, Optional, Union

from sqlalchemy.orm import Session

from snooker_api.auth import AuthService
from snooker_api.core.config import settings
from snooker_api.core.errors import AccountLockedError, InvalidStateError, ValidationFailedError
from snooker_api.core.timeutils import utcnow
from snooker_api.db.models.user import User
from snooker_api.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class CRUDUser:
    def get(self, db: Session, id: uuid.UUID) -> Optional[User]:
        return db.query(User).filter(User.id == id).first()

    def get_by_email(self, db: Session, *, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.lower()).first()

    def create(self, db: Session, *, obj_in: UserCreate) -> User:
        if self.get_by_email(db, email=obj_in.email):
            raise InvalidStateError("User already exists with this email")
        db_obj = User(
            first_name=obj_in.first_name.strip(),
            last_name=obj_in.last_name.strip(),
            email=obj_in.email.lower(),
            hashed_password=AuthService.get_password_hash(obj_in.password),
            is_email_verified=False,
            failed_attempts=0,
            account_locked=False,
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def update(self, db: Session, *, db_obj: User, obj_in: Union[UserUpdate, Dict[str, Any]]) -> User:
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)

        for field in update_data:
            if hasattr(db_obj, field):
                setattr(db_obj, field, update_data[field])

        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def authenticate(self, db: Session, *, email: str, password: str) -> Optional[User]:
        """
        Check credentials and maintain the failed-attempt counter.

        Returns None for an unknown email or a wrong password; raises
        AccountLockedError while the account is locked.
        """
        user = self.get_by_email(db, email=email)
        if not user:
            logger.warning(f"Login attempt with non-existent email: {email}")
            return None
        if user.is_locked():
            raise AccountLockedError("Account is temporarily locked due to too many failed attempts")
        if not AuthService.verify_password(password, user.hashed_password):
            logger.warning(f"Invalid password attempt for user: {email}")
            self.register_failed_attempt(db, user=user)
            return None
        return user

    def register_failed_attempt(self, db: Session, *, user: User) -> User:
        user.failed_attempts = (user.failed_attempts or 0) + 1
        if user.failed_attempts >= settings.MAX_FAILED_ATTEMPTS:
            user.account_locked = True
            user.lock_until = utcnow() + timedelta(minutes=settings.ACCOUNT_LOCK_MINUTES)
            logger.warning(f"Account locked after {user.failed_attempts} failed attempts: {user.email}")
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    def reset_failed_attempts(self, db: Session, *, user: User, login: bool = False) -> User:
        user.failed_attempts = 0
        user.account_locked = False
        user.lock_until = None
        if login:
            user.last_login = utcnow()
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    def mark_email_verified(self, db: Session, *, user: User) -> User:
        user.is_email_verified = True
        return self.reset_failed_attempts(db, user=user, login=True)

    def set_password(self, db: Session, *, user: User, new_password: str) -> User:
        user.hashed_password = AuthService.get_password_hash(new_password)
        return self.reset_failed_attempts(db, user=user)

    def change_password(self, db: Session, *, user: User, current_password: str, new_password: str) -> User:
        if not AuthService.verify_password(current_password, user.hashed_password):
            raise ValidationFailedError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationFailedError("New password must be different from the current password")
        return self.set_password(db, user=user, new_password=new_password)

    def remove(self, db: Session, *, user: User, password: str) -> None:
        """Delete the account together with its venue tree and auth sessions."""
        if not AuthService.verify_password(password, user.hashed_password):
            raise ValidationFailedError("Password is incorrect")
        if user.snooker_house is not None:
            db.delete(user.snooker_house)
        db.delete(user)
        db.commit()
        logger.info(f"Account deleted: {user.email}")


user = CRUDUser()
