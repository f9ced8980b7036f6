# snooker_api/schemas/game_session.py
import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from snooker_api.db.models.game_session import PaymentStatus, SessionPaymentMethod, SessionStatus
from snooker_api.db.models.snooker_table import PricingMethod


class SessionStart(BaseModel):
    table_id: uuid.UUID
    customer_name: Optional[str] = Field("Guest", max_length=100)
    customer_phone: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = Field("", max_length=500)


class SessionAction(str, enum.Enum):
    PAUSE = "pause"
    RESUME = "resume"
    UPDATE_FRAMES_KITTIS = "update_frames_kittis"
    ADD_NOTES = "add_notes"


class SessionUpdate(BaseModel):
    action: SessionAction
    frames: Optional[int] = Field(None, ge=0)
    kittis: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=500)


class ItemAdd(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(1, ge=1)


class ConfirmPayment(BaseModel):
    payment_status: PaymentStatus
    payment_method: Optional[SessionPaymentMethod] = None
    transaction_id: Optional[str] = Field(None, max_length=100)
    payment_notes: Optional[str] = Field(None, max_length=500)


class EndSession(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)


class BulkActionType(str, enum.Enum):
    CANCEL = "cancel"
    DELETE = "delete"
    EXPORT = "export"


class BulkAction(BaseModel):
    session_ids: List[uuid.UUID] = Field(..., min_length=1)
    action: BulkActionType


class SessionItem(BaseModel):
    id: uuid.UUID
    product_id: Optional[uuid.UUID] = None
    product_name: str
    quantity: int
    cost_price: Decimal
    selling_price: Decimal
    total_cost: Decimal
    total_revenue: Decimal
    profit: Decimal
    added_at: datetime

    class Config:
        from_attributes = True


class SessionPayment(BaseModel):
    id: uuid.UUID
    method: SessionPaymentMethod
    amount: Decimal
    paid_at: datetime
    transaction_id: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class TableBrief(BaseModel):
    id: uuid.UUID
    table_number: int
    name: str

    class Config:
        from_attributes = True


class GameSession(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    table_id: Optional[uuid.UUID] = None
    snooker_house_id: uuid.UUID
    table: Optional[TableBrief] = None
    customer_name: str
    customer_phone: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    paused_at: Optional[datetime] = None
    total_paused_seconds: float
    status: SessionStatus
    pricing_method: PricingMethod
    hourly_rate: Optional[Decimal] = None
    minute_rate: Optional[Decimal] = None
    frame_rate: Optional[Decimal] = None
    kitti_rate: Optional[Decimal] = None
    frames: int
    kittis: int
    items: List[SessionItem] = []
    total_items: int
    total_items_cost: Decimal
    total_items_revenue: Decimal
    total_items_profit: Decimal
    game_cost: Decimal
    total_cost: Decimal
    payments: List[SessionPayment] = []
    payment_status: PaymentStatus
    payment_method: Optional[SessionPaymentMethod] = None
    payment_method_label: Optional[str] = None
    total_paid_amount: Decimal
    remaining_amount: Decimal
    payment_completed_at: Optional[datetime] = None
    payment_notes: Optional[str] = None
    notes: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    current_cost: Optional[Decimal] = None
    duration_minutes: Optional[int] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_session(cls, session, now: Optional[datetime] = None) -> "GameSession":
        """Serialize a session together with its live cost and duration."""
        live = {
            "current_cost": session.calculate_current_cost(now),
            "duration_minutes": session.duration_minutes(now),
        }
        data = {name: getattr(session, name) for name in cls.model_fields if name not in live}
        return cls.model_validate({**data, **live}, from_attributes=True)


class MySessionsStatistics(BaseModel):
    total_sessions: int
    active_sessions: int
    paused_sessions: int
    today_sessions: int
    returned: int
    payment_breakdown: Dict[str, int]


class MySessionsPagination(BaseModel):
    limit: int
    skip: int
    has_more: bool


class MySessions(BaseModel):
    sessions: List[GameSession]
    statistics: MySessionsStatistics
    pagination: MySessionsPagination


class TableHistoryPagination(BaseModel):
    total: int
    limit: int
    skip: int
    has_more: bool


class TableHistory(BaseModel):
    table: TableBrief
    sessions: List[Dict[str, Any]]
    pagination: TableHistoryPagination


class BulkResult(BaseModel):
    session_id: uuid.UUID
    success: bool
    message: str


class BulkActionResponse(BaseModel):
    action: BulkActionType
    results: List[BulkResult] = []
    summary: Dict[str, int]
    data: Optional[List[Dict[str, Any]]] = None
