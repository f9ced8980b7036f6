# snooker_api/schemas/snooker_house.py
import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from snooker_api.schemas.validators import validate_image_url


class SnookerHouseBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=200)
    profile_picture: Optional[str] = None

    @field_validator("profile_picture")
    @classmethod
    def check_picture(cls, v: Optional[str]) -> Optional[str]:
        return validate_image_url(v)


class SnookerHouseCreate(SnookerHouseBase):
    pass


class SnookerHouseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = Field(None, min_length=1, max_length=200)
    profile_picture: Optional[str] = None

    @field_validator("profile_picture")
    @classmethod
    def check_picture(cls, v: Optional[str]) -> Optional[str]:
        return validate_image_url(v)


class SnookerHouseInDBBase(SnookerHouseBase):
    id: uuid.UUID
    owner_id: uuid.UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SnookerHouse(SnookerHouseInDBBase):
    pass


class SnookerHouseSummary(BaseModel):
    id: uuid.UUID
    name: str
    address: Optional[str] = None

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total: int
    has_next: bool
    has_prev: bool


class SnookerHouseList(BaseModel):
    snooker_houses: List[SnookerHouse]
    pagination: Pagination


class SnookerHouseStats(BaseModel):
    total_houses: int
    recent_houses: int
    last_updated: datetime
