# snooker_api/schemas/table.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from snooker_api.db.models.snooker_table import PricingMethod, TableStatus
from snooker_api.schemas.snooker_house import Pagination, SnookerHouseSummary


class TableBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field("", max_length=200)
    pricing_method: PricingMethod = PricingMethod.PER_MINUTE
    hourly_rate: Optional[Decimal] = Field(None, ge=0)
    frame_rate: Optional[Decimal] = Field(None, ge=0)
    kitti_rate: Optional[Decimal] = Field(None, ge=0)


class TableCreate(TableBase):
    table_number: Optional[int] = Field(None, ge=1)

    @model_validator(mode="after")
    def check_rates(self):
        if self.pricing_method == PricingMethod.PER_MINUTE and self.hourly_rate is None:
            raise ValueError("Hourly rate is required for per-minute pricing")
        if self.pricing_method == PricingMethod.FRAME_KITTI and (self.frame_rate is None or self.kitti_rate is None):
            raise ValueError("Frame rate and kitti rate are required for frame & kitti pricing")
        return self


class TableUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    status: Optional[TableStatus] = None
    pricing_method: Optional[PricingMethod] = None
    hourly_rate: Optional[Decimal] = Field(None, ge=0)
    frame_rate: Optional[Decimal] = Field(None, ge=0)
    kitti_rate: Optional[Decimal] = Field(None, ge=0)


class PricingInfo(BaseModel):
    method: PricingMethod
    hourly_rate: Optional[Decimal] = None
    frame_rate: Optional[Decimal] = None
    kitti_rate: Optional[Decimal] = None
    display_text: str


class TableInDBBase(BaseModel):
    id: uuid.UUID
    table_number: int
    name: str
    description: Optional[str] = ""
    snooker_house_id: uuid.UUID
    owner_id: uuid.UUID
    status: TableStatus
    pricing_method: PricingMethod
    hourly_rate: Optional[Decimal] = None
    frame_rate: Optional[Decimal] = None
    kitti_rate: Optional[Decimal] = None
    is_occupied: bool
    current_session_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Table(TableInDBBase):
    pricing_info: PricingInfo
    snooker_house: Optional[SnookerHouseSummary] = None


class MyTables(BaseModel):
    tables: List[Table]
    total_tables: int
    snooker_house: SnookerHouseSummary


class HouseTables(BaseModel):
    tables: List[Table]
    pagination: Pagination


class PricingMethodCounts(BaseModel):
    per_minute: int
    frame_kitti: int


class AverageRates(BaseModel):
    per_minute: int
    frame: int
    kitti: int


class TableStats(BaseModel):
    total_tables: int
    active_tables: int
    occupied_tables: int
    maintenance_tables: int
    available_tables: int
    occupancy_rate: float
    pricing_methods: PricingMethodCounts
    average_rates: AverageRates
