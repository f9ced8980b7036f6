# snooker_api/crud/crud_user_session.py
import logging
import uuid
from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from snooker_api.auth import AuthService
from snooker_api.core.config import settings
from snooker_api.core.errors import NotFoundError
from snooker_api.core.timeutils import utcnow
from snooker_api.db.models.user_session import UserSession

logger = logging.getLogger(__name__)


class CRUDUserSession:
    def get_by_session_id(self, db: Session, *, session_id: str) -> Optional[UserSession]:
        return db.query(UserSession).filter(UserSession.session_id == session_id).first()

    def get_active_by_token(self, db: Session, *, token: str) -> Optional[UserSession]:
        token_hash = AuthService.hash_token(token)
        return (
            db.query(UserSession)
            .filter(UserSession.token_hash == token_hash, UserSession.is_active.is_(True))
            .first()
        )

    def get_active_for_user(self, db: Session, *, user_id: uuid.UUID) -> List[UserSession]:
        now = utcnow()
        return (
            db.query(UserSession)
            .filter(
                UserSession.user_id == user_id,
                UserSession.is_active.is_(True),
                UserSession.expires_at > now,
            )
            .order_by(UserSession.last_activity.desc())
            .all()
        )

    def create(
        self,
        db: Session,
        *,
        user_id: uuid.UUID,
        device_info: dict,
        remember_me: bool = False,
    ) -> Tuple[UserSession, str]:
        """Open an auth session and return it with its freshly signed bearer token."""
        lifetime = AuthService.session_lifetime(remember_me)
        session_id = AuthService.generate_session_id()
        token = AuthService.create_access_token(user_id, session_id, lifetime)
        now = utcnow()
        db_obj = UserSession(
            user_id=user_id,
            session_id=session_id,
            token_hash=AuthService.hash_token(token),
            is_active=True,
            remember_me=remember_me,
            last_activity=now,
            expires_at=now + lifetime,
            **device_info,
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        logger.info(f"Auth session {session_id[:8]} opened for user {user_id}")
        return db_obj, token

    def touch(self, db: Session, *, db_obj: UserSession) -> UserSession:
        db_obj.last_activity = utcnow()
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def deactivate(self, db: Session, *, db_obj: UserSession) -> UserSession:
        db_obj.is_active = False
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def invalidate(self, db: Session, *, user_id: uuid.UUID, session_id: str) -> UserSession:
        db_obj = self.get_by_session_id(db, session_id=session_id)
        if not db_obj or db_obj.user_id != user_id or not db_obj.is_active:
            raise NotFoundError("Session not found")
        return self.deactivate(db, db_obj=db_obj)

    def invalidate_all(self, db: Session, *, user_id: uuid.UUID, except_session_id: Optional[str] = None) -> int:
        query = db.query(UserSession).filter(UserSession.user_id == user_id, UserSession.is_active.is_(True))
        if except_session_id:
            query = query.filter(UserSession.session_id != except_session_id)
        count = query.update({UserSession.is_active: False}, synchronize_session=False)
        db.commit()
        logger.info(f"Invalidated {count} auth sessions for user {user_id}")
        return count

    def extend(self, db: Session, *, db_obj: UserSession, hours: int) -> UserSession:
        db_obj.expires_at = utcnow() + timedelta(hours=hours)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def cleanup_expired(self, db: Session) -> int:
        """Delete expired sessions and inactive ones past the retention window."""
        now = utcnow()
        retention = now - timedelta(days=settings.INACTIVE_SESSION_RETENTION_DAYS)
        count = (
            db.query(UserSession)
            .filter(
                or_(
                    UserSession.expires_at < now,
                    (UserSession.is_active.is_(False)) & (UserSession.updated_at < retention),
                )
            )
            .delete(synchronize_session=False)
        )
        db.commit()
        if count:
            logger.info(f"Cleaned up {count} expired auth sessions")
        return count


user_session = CRUDUserSession()
