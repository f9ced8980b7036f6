# snooker_api/db/models/user.py
from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from snooker_api.core.timeutils import ensure_aware, utcnow
from snooker_api.db.base_class import Base


class User(Base):
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    hashed_password = Column(String, nullable=False)
    is_email_verified = Column(Boolean, default=False, nullable=False)
    profile_picture = Column(String, nullable=True)

    failed_attempts = Column(Integer, default=0, nullable=False)
    account_locked = Column(Boolean, default=False, nullable=False)
    lock_until = Column(DateTime(timezone=True), nullable=True)
    last_login = Column(DateTime(timezone=True), nullable=True)

    auth_sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    snooker_house = relationship("SnookerHouse", back_populates="owner", uselist=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def is_locked(self) -> bool:
        return bool(self.account_locked and self.lock_until and ensure_aware(self.lock_until) > utcnow())
