# snooker_api/db/models/snooker_table.py
import enum

from sqlalchemy import Boolean, Column, Enum as SAEnum, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from snooker_api.db.base_class import Base


class TableStatus(str, enum.Enum):
    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    INACTIVE = "inactive"


class PricingMethod(str, enum.Enum):
    PER_MINUTE = "per_minute"
    FRAME_KITTI = "frame_kitti"


def _fmt_rate(value) -> str:
    # 150.00 -> "150", 12.50 -> "12.5"
    if value is None:
        return "0"
    text = f"{value:f}"
    return text.rstrip("0").rstrip(".") if "." in text else text


class SnookerTable(Base):
    __table_args__ = (UniqueConstraint("snooker_house_id", "table_number", name="uq_table_number_per_house"),)

    table_number = Column(Integer, nullable=False)
    name = Column(String(50), nullable=False)
    description = Column(String(200), default="", nullable=False)
    snooker_house_id = Column(ForeignKey("snooker_houses.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_id = Column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(SAEnum(TableStatus), default=TableStatus.ACTIVE, nullable=False)
    pricing_method = Column(SAEnum(PricingMethod), default=PricingMethod.PER_MINUTE, nullable=False)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    frame_rate = Column(Numeric(10, 2), nullable=True)
    kitti_rate = Column(Numeric(10, 2), nullable=True)

    is_occupied = Column(Boolean, default=False, nullable=False)
    # Plain column: a FK here would make a cycle with game_sessions.table_id
    current_session_id = Column(String(36), nullable=True)

    snooker_house = relationship("SnookerHouse", back_populates="tables")
    sessions = relationship("GameSession", back_populates="table")

    @property
    def pricing_info(self) -> dict:
        if self.pricing_method == PricingMethod.PER_MINUTE:
            return {
                "method": PricingMethod.PER_MINUTE.value,
                "hourly_rate": self.hourly_rate,
                "display_text": f"NPR {_fmt_rate(self.hourly_rate)}/hour",
            }
        return {
            "method": PricingMethod.FRAME_KITTI.value,
            "frame_rate": self.frame_rate,
            "kitti_rate": self.kitti_rate,
            "display_text": f"Frame: NPR {_fmt_rate(self.frame_rate)} | Kitti: NPR {_fmt_rate(self.kitti_rate)}",
        }
