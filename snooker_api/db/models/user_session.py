# snooker_api/db/models/user_session.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from snooker_api.core.timeutils import ensure_aware, utcnow
from snooker_api.db.base_class import Base


class UserSession(Base):
    """A login on one device. Not to be confused with a table GameSession."""

    user_id = Column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(String(64), nullable=False, unique=True, index=True)
    token_hash = Column(String(64), nullable=False, index=True)

    user_agent = Column(String, nullable=True)
    ip = Column(String, nullable=True)
    platform = Column(String, nullable=True)
    browser = Column(String, nullable=True)
    os = Column(String, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    remember_me = Column(Boolean, default=False, nullable=False)
    last_activity = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    user = relationship("User", back_populates="auth_sessions")

    def is_expired(self) -> bool:
        return ensure_aware(self.expires_at) < utcnow()

    @property
    def device_info(self) -> dict:
        return {
            "user_agent": self.user_agent,
            "ip": self.ip,
            "platform": self.platform,
            "browser": self.browser,
            "os": self.os,
        }
