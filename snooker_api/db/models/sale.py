# snooker_api/db/models/sale.py
import enum
from decimal import Decimal

from sqlalchemy import Column, DateTime, Enum as SAEnum, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from snooker_api.core.timeutils import utcnow
from snooker_api.db.base_class import Base


class SalePaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    MOBILE = "mobile"
    CREDIT = "credit"


class SaleItem(Base):
    sale_id = Column(ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_name = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False)
    cost_price = Column(Numeric(10, 2), nullable=False)
    selling_price = Column(Numeric(10, 2), nullable=False)
    total_cost = Column(Numeric(10, 2), nullable=False)
    total_revenue = Column(Numeric(10, 2), nullable=False)
    profit = Column(Numeric(10, 2), nullable=False)

    sale = relationship("Sale", back_populates="items")


class Sale(Base):
    __table_args__ = (UniqueConstraint("snooker_house_id", "sale_number", name="uq_sale_number_per_house"),)

    sale_number = Column(String(20), nullable=False, index=True)
    snooker_house_id = Column(ForeignKey("snooker_houses.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_id = Column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(ForeignKey("game_sessions.id", ondelete="SET NULL"), nullable=True)

    total_items = Column(Integer, default=0, nullable=False)
    total_cost = Column(Numeric(10, 2), default=0, nullable=False)
    total_revenue = Column(Numeric(10, 2), default=0, nullable=False)
    total_profit = Column(Numeric(10, 2), default=0, nullable=False)

    payment_method = Column(SAEnum(SalePaymentMethod), default=SalePaymentMethod.CASH, nullable=False)
    customer_name = Column(String(100), default="", nullable=False)
    customer_phone = Column(String(20), default="", nullable=False)
    notes = Column(String(500), default="", nullable=False)
    created_by_session = Column(String(64), nullable=True)
    sale_date = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    snooker_house = relationship("SnookerHouse", back_populates="sales")
    items = relationship("SaleItem", back_populates="sale", cascade="all, delete-orphan")

    def calculate_totals(self) -> None:
        self.total_items = sum(i.quantity for i in self.items)
        self.total_cost = sum((Decimal(i.total_cost) for i in self.items), Decimal("0.00"))
        self.total_revenue = sum((Decimal(i.total_revenue) for i in self.items), Decimal("0.00"))
        self.total_profit = self.total_revenue - self.total_cost
