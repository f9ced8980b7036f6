# snooker_api/db/models/snooker_house.py
from sqlalchemy import Column, ForeignKey, String
from sqlalchemy.orm import relationship

from snooker_api.db.base_class import Base


class SnookerHouse(Base):
    owner_id = Column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False)
    address = Column(String(200), nullable=False)
    profile_picture = Column(String, nullable=True)

    owner = relationship("User", back_populates="snooker_house")
    tables = relationship(
        "SnookerTable", back_populates="snooker_house",
        cascade="all, delete-orphan", order_by="SnookerTable.table_number",
    )
    products = relationship("Product", back_populates="snooker_house", cascade="all, delete-orphan")
    sessions = relationship("GameSession", back_populates="snooker_house", cascade="all, delete-orphan")
    sales = relationship("Sale", back_populates="snooker_house", cascade="all, delete-orphan")
