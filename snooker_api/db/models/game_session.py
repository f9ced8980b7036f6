# snooker_api/db/models/game_session.py
"""
Table game sessions: one occupancy/billing event for a snooker table.

The session keeps a pricing snapshot taken from the table when it starts, an
ordered list of purchased items (priced at the moment of purchase) and a
payment sub-ledger. Every derived total is a cache refreshed by
``update_total_cost``; callers must invoke it before persisting a mutation.
"""
import enum
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import Column, DateTime, Enum as SAEnum, Float, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from snooker_api.core.errors import (
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    PaymentConfirmationRequired,
    ValidationFailedError,
)
from snooker_api.core.timeutils import ensure_aware, utcnow
from snooker_api.db.base_class import Base
from snooker_api.db.models.snooker_table import PricingMethod

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


class SessionStatus(str, enum.Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


OPEN_STATUSES = (SessionStatus.ACTIVE, SessionStatus.PAUSED)


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    CREDIT = "credit"


class SessionPaymentMethod(str, enum.Enum):
    ESEWA = "esewa"
    ONLINE_BANKING = "online_banking"
    CASH = "cash"


PAYMENT_METHOD_LABELS = {
    SessionPaymentMethod.ESEWA: "eSewa",
    SessionPaymentMethod.ONLINE_BANKING: "Online Banking",
    SessionPaymentMethod.CASH: "Cash",
}

DEFAULT_CREDIT_NOTE = "Payment credited - to be collected later"
CANCELLED_PAYMENT_NOTE = "Session cancelled - payment reset"


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value) -> Decimal:
    return to_decimal(value).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def parse_payment_method(method) -> SessionPaymentMethod:
    try:
        return SessionPaymentMethod(method)
    except ValueError:
        allowed = ", ".join(m.value for m in SessionPaymentMethod)
        raise ValidationFailedError(f"Invalid payment method '{method}'. Allowed: {allowed}")


def derive_payment_status(
    total_paid: Decimal,
    total_cost: Decimal,
    confirmation: Optional[PaymentStatus] = None,
) -> PaymentStatus:
    """
    Single source of truth for a session's payment status.

    ``confirmation`` is the status the operator confirmed without money changing
    hands: ``credit`` (collection deferred) or ``paid`` for a session that costs
    nothing. It only matters while nothing has been paid.
    """
    if total_paid <= 0:
        if confirmation == PaymentStatus.CREDIT:
            return PaymentStatus.CREDIT
        if confirmation == PaymentStatus.PAID and total_cost <= 0:
            return PaymentStatus.PAID
        return PaymentStatus.PENDING
    if total_paid >= total_cost:
        return PaymentStatus.PAID
    return PaymentStatus.CREDIT


class SessionItem(Base):
    session_id = Column(ForeignKey("game_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    product_name = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False)
    cost_price = Column(Numeric(10, 2), nullable=False)
    selling_price = Column(Numeric(10, 2), nullable=False)
    total_cost = Column(Numeric(10, 2), nullable=False)
    total_revenue = Column(Numeric(10, 2), nullable=False)
    profit = Column(Numeric(10, 2), nullable=False)
    added_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    session = relationship("GameSession", back_populates="items")
    product = relationship("Product")

    @classmethod
    def from_product(cls, product, quantity: int, now: Optional[datetime] = None) -> "SessionItem":
        cost_price = money(product.cost_price)
        selling_price = money(product.selling_price)
        total_cost = money(cost_price * quantity)
        total_revenue = money(selling_price * quantity)
        return cls(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            cost_price=cost_price,
            selling_price=selling_price,
            total_cost=total_cost,
            total_revenue=total_revenue,
            profit=total_revenue - total_cost,
            added_at=now or utcnow(),
        )


class SessionPayment(Base):
    session_id = Column(ForeignKey("game_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    method = Column(SAEnum(SessionPaymentMethod), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    paid_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    transaction_id = Column(String(100), nullable=True)
    notes = Column(String(200), nullable=True)

    session = relationship("GameSession", back_populates="payments")


class GameSession(Base):
    owner_id = Column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    table_id = Column(ForeignKey("snooker_tables.id", ondelete="SET NULL"), nullable=True, index=True)
    snooker_house_id = Column(ForeignKey("snooker_houses.id", ondelete="CASCADE"), nullable=False, index=True)

    customer_name = Column(String(100), default="Guest", nullable=False)
    customer_phone = Column(String(20), nullable=True)

    start_time = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    paused_at = Column(DateTime(timezone=True), nullable=True)
    total_paused_seconds = Column(Float, default=0.0, nullable=False)
    status = Column(SAEnum(SessionStatus), default=SessionStatus.ACTIVE, nullable=False, index=True)

    # Pricing snapshot taken from the table at start
    pricing_method = Column(SAEnum(PricingMethod), nullable=False)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    minute_rate = Column(Numeric(10, 4), nullable=True)
    frame_rate = Column(Numeric(10, 2), nullable=True)
    kitti_rate = Column(Numeric(10, 2), nullable=True)

    frames = Column(Integer, default=0, nullable=False)
    kittis = Column(Integer, default=0, nullable=False)

    total_items = Column(Integer, default=0, nullable=False)
    total_items_cost = Column(Numeric(10, 2), default=ZERO, nullable=False)
    total_items_revenue = Column(Numeric(10, 2), default=ZERO, nullable=False)
    total_items_profit = Column(Numeric(10, 2), default=ZERO, nullable=False)
    game_cost = Column(Numeric(10, 2), default=ZERO, nullable=False)
    total_cost = Column(Numeric(10, 2), default=ZERO, nullable=False)

    payment_status = Column(SAEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False, index=True)
    payment_confirmation = Column(SAEnum(PaymentStatus), nullable=True)
    payment_method = Column(SAEnum(SessionPaymentMethod), nullable=True)
    payment_method_label = Column(String(50), nullable=True)
    total_paid_amount = Column(Numeric(10, 2), default=ZERO, nullable=False)
    remaining_amount = Column(Numeric(10, 2), default=ZERO, nullable=False)
    payment_completed_at = Column(DateTime(timezone=True), nullable=True)
    payment_notes = Column(String(500), nullable=True)

    notes = Column(Text, default="", nullable=False)
    last_modified_by_session = Column(String(64), nullable=True)

    table = relationship("SnookerTable", back_populates="sessions")
    snooker_house = relationship("SnookerHouse", back_populates="sessions")
    items = relationship(
        "SessionItem", back_populates="session",
        cascade="all, delete-orphan", order_by="SessionItem.added_at",
    )
    payments = relationship(
        "SessionPayment", back_populates="session",
        cascade="all, delete-orphan", order_by="SessionPayment.paid_at",
    )

    # Time and cost

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def paused_seconds(self, now: Optional[datetime] = None) -> float:
        now = now or utcnow()
        paused = self.total_paused_seconds or 0.0
        if self.status == SessionStatus.PAUSED and self.paused_at:
            paused += (now - ensure_aware(self.paused_at)).total_seconds()
        return paused

    def duration_minutes(self, now: Optional[datetime] = None) -> int:
        """Whole minutes of play, excluding every pause."""
        now = now or utcnow()
        end = ensure_aware(self.end_time) or now
        elapsed = (end - ensure_aware(self.start_time)).total_seconds() - self.paused_seconds(now)
        return max(0, int(elapsed // 60))

    def calculate_game_cost(self, now: Optional[datetime] = None) -> Decimal:
        """
        Table charge so far. Per-minute tables bill ``hourly_rate * minutes / 60``;
        the stored ``minute_rate`` is informational and only used when no hourly rate exists.
        """
        if self.pricing_method == PricingMethod.FRAME_KITTI:
            cost = (self.frames or 0) * to_decimal(self.frame_rate) + (self.kittis or 0) * to_decimal(self.kitti_rate)
            return money(cost)
        minutes = self.duration_minutes(now)
        if self.hourly_rate is not None:
            return money(to_decimal(self.hourly_rate) * minutes / 60)
        return money(to_decimal(self.minute_rate) * minutes)

    def calculate_current_cost(self, now: Optional[datetime] = None) -> Decimal:
        items_revenue = sum((to_decimal(i.total_revenue) for i in self.items), ZERO)
        return money(self.calculate_game_cost(now) + items_revenue)

    def update_item_totals(self) -> None:
        self.total_items = sum(i.quantity for i in self.items)
        self.total_items_cost = money(sum((to_decimal(i.total_cost) for i in self.items), ZERO))
        self.total_items_revenue = money(sum((to_decimal(i.total_revenue) for i in self.items), ZERO))
        self.total_items_profit = money(sum((to_decimal(i.profit) for i in self.items), ZERO))

    def update_payment_amounts(self, now: Optional[datetime] = None) -> None:
        total_paid = money(sum((to_decimal(p.amount) for p in self.payments), ZERO))
        total_cost = to_decimal(self.total_cost)
        self.total_paid_amount = total_paid
        self.remaining_amount = max(ZERO, money(total_cost - total_paid))
        self.payment_status = derive_payment_status(total_paid, total_cost, self.payment_confirmation)
        if self.payment_status == PaymentStatus.PAID and self.payment_completed_at is None:
            self.payment_completed_at = now or utcnow()

    def update_total_cost(self, now: Optional[datetime] = None) -> Decimal:
        """
        Refresh every derived field from the current state.

        A cancelled session keeps its reset payment fields.
        """
        self.update_item_totals()
        self.game_cost = self.calculate_game_cost(now)
        self.total_cost = money(to_decimal(self.game_cost) + to_decimal(self.total_items_revenue))
        if self.status != SessionStatus.CANCELLED:
            self.update_payment_amounts(now)
        return self.total_cost

    # State transitions

    def _require_open(self, action: str) -> None:
        if not self.is_open:
            raise InvalidStateError(f"Cannot {action}: session is {getattr(self.status, 'value', self.status)}")

    def pause(self, now: Optional[datetime] = None) -> None:
        if self.status != SessionStatus.ACTIVE:
            raise InvalidStateError("Session is not active")
        self.status = SessionStatus.PAUSED
        self.paused_at = now or utcnow()

    def resume(self, now: Optional[datetime] = None) -> None:
        if self.status != SessionStatus.PAUSED:
            raise InvalidStateError("Session is not paused")
        self._fold_pause(now or utcnow())
        self.status = SessionStatus.ACTIVE

    def _fold_pause(self, now: datetime) -> None:
        if self.paused_at:
            self.total_paused_seconds = (self.total_paused_seconds or 0.0) + (
                now - ensure_aware(self.paused_at)
            ).total_seconds()
            self.paused_at = None

    def update_frames_kittis(self, frames: Optional[int] = None, kittis: Optional[int] = None) -> None:
        self._require_open("update frames")
        if self.pricing_method != PricingMethod.FRAME_KITTI:
            raise InvalidStateError("Frames and kittis only apply to frame & kitti pricing")
        if frames is not None:
            self.frames = max(0, frames)
        if kittis is not None:
            self.kittis = max(0, kittis)

    def add_notes(self, notes: str) -> None:
        self.notes = notes

    # Items

    def add_item(self, product, quantity: int, now: Optional[datetime] = None) -> SessionItem:
        self._require_open("add items")
        if quantity < 1:
            raise ValidationFailedError("Quantity must be at least 1")
        if (product.current_stock or 0) < quantity:
            raise InsufficientStockError(
                f"Insufficient stock for {product.name}. Available: {product.current_stock}, Requested: {quantity}",
                available=product.current_stock,
                requested=quantity,
            )
        item = SessionItem.from_product(product, quantity, now)
        self.items.append(item)
        return item

    def remove_item(self, item_id) -> SessionItem:
        self._require_open("remove items")
        for item in self.items:
            if str(item.id) == str(item_id):
                self.items.remove(item)
                return item
        raise NotFoundError("Item not found in session")

    # Payments

    def record_payment(
        self,
        method,
        amount,
        transaction_id: Optional[str] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SessionPayment:
        method = parse_payment_method(method)
        amount = money(amount)
        if amount <= 0:
            raise ValidationFailedError("Payment amount must be positive")
        payment = SessionPayment(
            method=method,
            amount=amount,
            paid_at=now or utcnow(),
            transaction_id=transaction_id,
            notes=notes,
        )
        self.payments.append(payment)
        if self.payment_method is None:
            self.payment_method = method
            self.payment_method_label = PAYMENT_METHOD_LABELS[method]
        self.update_payment_amounts(now)
        return payment

    def mark_as_paid(
        self,
        method,
        transaction_id: Optional[str] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """Settle the remaining balance with a single payment."""
        method = parse_payment_method(method)
        paid = sum((to_decimal(p.amount) for p in self.payments), ZERO)
        remaining = money(to_decimal(self.total_cost) - paid)
        if notes:
            self.payment_notes = notes
        if remaining > 0:
            self.record_payment(method, remaining, transaction_id, notes, now)
            return
        if self.payment_method is None:
            self.payment_method = method
            self.payment_method_label = PAYMENT_METHOD_LABELS[method]
        self.payment_confirmation = PaymentStatus.PAID
        self.update_payment_amounts(now)

    def mark_as_credit(self, notes: Optional[str] = None, now: Optional[datetime] = None) -> None:
        self.payment_confirmation = PaymentStatus.CREDIT
        self.payment_notes = notes or DEFAULT_CREDIT_NOTE
        self.update_payment_amounts(now)

    def confirm_payment(
        self,
        payment_status,
        payment_method=None,
        transaction_id: Optional[str] = None,
        payment_notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self._require_open("confirm payment")
        try:
            payment_status = PaymentStatus(payment_status)
        except ValueError:
            raise ValidationFailedError("Payment status must be 'paid' or 'credit'")
        self.update_total_cost(now)
        if payment_status == PaymentStatus.PAID:
            if not payment_method:
                raise ValidationFailedError("Payment method is required when marking as paid")
            self.mark_as_paid(payment_method, transaction_id, payment_notes, now)
        elif payment_status == PaymentStatus.CREDIT:
            self.mark_as_credit(payment_notes, now)
        else:
            raise ValidationFailedError("Payment status must be 'paid' or 'credit'")

    def reset_payment(self, notes: Optional[str] = None) -> None:
        self.payments = []
        self.payment_status = PaymentStatus.PENDING
        self.payment_confirmation = None
        self.payment_method = None
        self.payment_method_label = None
        self.total_paid_amount = ZERO
        self.remaining_amount = ZERO
        self.payment_completed_at = None
        self.payment_notes = notes

    # Termination

    def end(self, notes: Optional[str] = None, now: Optional[datetime] = None) -> None:
        self._require_open("end session")
        now = now or utcnow()
        self.update_total_cost(now)
        if self.payment_status == PaymentStatus.PENDING:
            raise PaymentConfirmationRequired(
                "Payment confirmation required before ending the session",
                requires_payment_confirmation=True,
                session_cost=float(self.total_cost),
            )
        self._fold_pause(now)
        self.end_time = now
        self.status = SessionStatus.COMPLETED
        if notes:
            self.notes = notes
        self.update_total_cost(now)

    def cancel(self, now: Optional[datetime] = None) -> None:
        if self.status == SessionStatus.COMPLETED:
            raise InvalidStateError("Cannot cancel a completed session")
        if self.status == SessionStatus.CANCELLED:
            raise InvalidStateError("Session is already cancelled")
        now = now or utcnow()
        self._fold_pause(now)
        self.end_time = now
        self.update_item_totals()
        self.game_cost = self.calculate_game_cost(now)
        self.total_cost = money(to_decimal(self.game_cost) + to_decimal(self.total_items_revenue))
        self.status = SessionStatus.CANCELLED
        self.reset_payment(CANCELLED_PAYMENT_NOTE)
