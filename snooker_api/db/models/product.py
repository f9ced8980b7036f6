# snooker_api/db/models/product.py
import enum
from decimal import Decimal

from sqlalchemy import Column, Enum as SAEnum, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from snooker_api.core.errors import ValidationFailedError
from snooker_api.db.base_class import Base


class ProductCategory(str, enum.Enum):
    SNACKS = "snacks"
    DRINKS = "drinks"
    CIGARETTES = "cigarettes"
    ACCESSORIES = "accessories"
    OTHER = "other"


class ProductUnit(str, enum.Enum):
    PIECE = "piece"
    PACKET = "packet"
    BOTTLE = "bottle"
    CAN = "can"
    BOX = "box"
    KG = "kg"
    LITRE = "litre"


class ProductStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"


class StockOperation(str, enum.Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    SET = "set"


class Product(Base):
    __table_args__ = (
        UniqueConstraint("snooker_house_id", "name", name="uq_product_name_per_house"),
        UniqueConstraint("snooker_house_id", "barcode", name="uq_product_barcode_per_house"),
    )

    snooker_house_id = Column(ForeignKey("snooker_houses.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_id = Column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    description = Column(String(500), default="", nullable=False)
    barcode = Column(String(50), nullable=True)
    category = Column(SAEnum(ProductCategory), default=ProductCategory.OTHER, nullable=False)
    unit = Column(SAEnum(ProductUnit), default=ProductUnit.PIECE, nullable=False)
    status = Column(SAEnum(ProductStatus), default=ProductStatus.ACTIVE, nullable=False)

    cost_price = Column(Numeric(10, 2), nullable=False)
    selling_price = Column(Numeric(10, 2), nullable=False)
    current_stock = Column(Integer, default=0, nullable=False)
    min_stock_level = Column(Integer, default=5, nullable=False)

    snooker_house = relationship("SnookerHouse", back_populates="products")

    @property
    def profit_per_unit(self) -> Decimal:
        return Decimal(self.selling_price or 0) - Decimal(self.cost_price or 0)

    @property
    def profit_percentage(self) -> float:
        cost = Decimal(self.cost_price or 0)
        if cost <= 0:
            return 0.0
        return round(float(self.profit_per_unit / cost * 100), 2)

    @property
    def stock_value(self) -> Decimal:
        return Decimal(self.cost_price or 0) * (self.current_stock or 0)

    @property
    def potential_revenue(self) -> Decimal:
        return Decimal(self.selling_price or 0) * (self.current_stock or 0)

    @property
    def is_low_stock(self) -> bool:
        return (self.current_stock or 0) <= (self.min_stock_level or 0)

    def update_stock(self, quantity: int, operation="subtract") -> int:
        """Apply a stock movement. Stock never goes below zero."""
        try:
            operation = StockOperation(operation)
        except ValueError:
            raise ValidationFailedError(f"Invalid stock operation '{operation}'. Use add, subtract or set")
        current = self.current_stock or 0
        if operation == StockOperation.ADD:
            self.current_stock = current + quantity
        elif operation == StockOperation.SUBTRACT:
            self.current_stock = max(0, current - quantity)
        else:
            self.current_stock = max(0, quantity)
        return self.current_stock
