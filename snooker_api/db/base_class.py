import re
import uuid

from sqlalchemy import Column, DateTime, Uuid, func
from sqlalchemy.orm import as_declarative, declared_attr

from snooker_api.core.timeutils import utcnow


@as_declarative()
class Base:
    """
    Base class which provides automated table name,
    surrogate UUID primary key and audit timestamps.
    """

    @declared_attr
    def __tablename__(cls) -> str:
        # GameSession -> game_sessions
        return re.sub(r"(?<!^)(?=[A-Z])", "_", cls.__name__).lower() + "s"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
