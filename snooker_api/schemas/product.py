# snooker_api/schemas/product.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from snooker_api.db.models.product import ProductCategory, ProductStatus, ProductUnit, StockOperation


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field("", max_length=500)
    barcode: Optional[str] = Field(None, max_length=50)
    category: ProductCategory = ProductCategory.OTHER
    unit: ProductUnit = ProductUnit.PIECE
    cost_price: Decimal = Field(..., ge=0)
    selling_price: Decimal = Field(..., ge=0)
    current_stock: int = Field(0, ge=0)
    min_stock_level: int = Field(5, ge=0)


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    barcode: Optional[str] = Field(None, max_length=50)
    category: Optional[ProductCategory] = None
    unit: Optional[ProductUnit] = None
    status: Optional[ProductStatus] = None
    cost_price: Optional[Decimal] = Field(None, ge=0)
    selling_price: Optional[Decimal] = Field(None, ge=0)
    min_stock_level: Optional[int] = Field(None, ge=0)


class StockUpdate(BaseModel):
    quantity: int = Field(..., ge=0)
    operation: StockOperation = StockOperation.ADD


class ProductInDBBase(ProductBase):
    id: uuid.UUID
    snooker_house_id: uuid.UUID
    owner_id: uuid.UUID
    status: ProductStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Product(ProductInDBBase):
    profit_per_unit: Decimal
    profit_percentage: float
    stock_value: Decimal
    potential_revenue: Decimal
    is_low_stock: bool


class ProductStatistics(BaseModel):
    total: int
    active: int
    low_stock: int
    returned: int
    total_stock_value: float
    total_potential_revenue: float
    total_potential_profit: float


class ProductPagination(BaseModel):
    limit: int
    skip: int
    has_more: bool


class ProductList(BaseModel):
    products: List[Product]
    statistics: ProductStatistics
    pagination: ProductPagination


class ProductSearchResult(BaseModel):
    products: List[Product]
    total: int
    query: str


class StockUpdateResult(BaseModel):
    product: Product
    previous_stock: int
    new_stock: int
    operation: StockOperation


class InventoryStats(BaseModel):
    products: Dict[str, int]
    inventory_value: Dict[str, float]
    sales: Dict[str, float]
    categories: List[Dict]
