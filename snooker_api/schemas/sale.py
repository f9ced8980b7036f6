# snooker_api/schemas/sale.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from snooker_api.db.models.sale import SalePaymentMethod


class SaleItemIn(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(..., ge=1)


class SaleCreate(BaseModel):
    items: List[SaleItemIn] = Field(..., min_length=1)
    payment_method: SalePaymentMethod = SalePaymentMethod.CASH
    customer_name: Optional[str] = Field("", max_length=100)
    customer_phone: Optional[str] = Field("", max_length=20)
    notes: Optional[str] = Field("", max_length=500)
    session_id: Optional[uuid.UUID] = None


class SaleItem(BaseModel):
    id: uuid.UUID
    product_id: Optional[uuid.UUID] = None
    product_name: str
    quantity: int
    cost_price: Decimal
    selling_price: Decimal
    total_cost: Decimal
    total_revenue: Decimal
    profit: Decimal

    class Config:
        from_attributes = True


class Sale(BaseModel):
    id: uuid.UUID
    sale_number: str
    snooker_house_id: uuid.UUID
    owner_id: uuid.UUID
    session_id: Optional[uuid.UUID] = None
    items: List[SaleItem]
    total_items: int
    total_cost: Decimal
    total_revenue: Decimal
    total_profit: Decimal
    payment_method: SalePaymentMethod
    customer_name: str
    customer_phone: str
    notes: str
    sale_date: datetime

    class Config:
        from_attributes = True


class SaleStatistics(BaseModel):
    total_sales: int
    today_sales: int
    month_sales: int
    returned: int
    total_revenue: float
    total_profit: float
    total_cost: float
    average_sale: float


class SalesPagination(BaseModel):
    limit: int
    skip: int
    has_more: bool


class SaleHistory(BaseModel):
    sales: List[Sale]
    statistics: SaleStatistics
    pagination: SalesPagination
