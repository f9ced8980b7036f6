import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from snooker_api import schemas
from snooker_api.core.errors import (
    InsufficientStockError,
    InvalidStateError,
    PaymentConfirmationRequired,
    ValidationFailedError,
)
from snooker_api.db.models import GameSession, PaymentStatus, PricingMethod, Product, SessionStatus
from snooker_api.db.models.game_session import derive_payment_status

T0 = datetime(2024, 3, 15, 18, 0, tzinfo=timezone.utc)
ZERO = Decimal("0.00")


def _at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def _session(**overrides) -> GameSession:
    fields = dict(
        id=uuid.uuid4(),
        status=SessionStatus.ACTIVE,
        start_time=T0,
        total_paused_seconds=0.0,
        pricing_method=PricingMethod.PER_MINUTE,
        hourly_rate=Decimal("100.00"),
        minute_rate=Decimal("1.6667"),
        frames=0,
        kittis=0,
        payment_status=PaymentStatus.PENDING,
        total_paid_amount=ZERO,
        remaining_amount=ZERO,
        total_cost=ZERO,
        notes="",
    )
    fields.update(overrides)
    return GameSession(**fields)


def _product(stock: int = 10) -> Product:
    return Product(
        id=uuid.uuid4(),
        name="Cola",
        cost_price=Decimal("50.00"),
        selling_price=Decimal("80.00"),
        current_stock=stock,
        min_stock_level=5,
    )


def test_pauses_are_excluded_from_billed_time() -> None:
    session = _session()
    session.pause(_at(10))
    session.resume(_at(20))

    assert session.duration_minutes(_at(30)) == 20
    assert session.update_total_cost(_at(30)) == Decimal("33.33")

    session.confirm_payment("paid", "cash", now=_at(30))
    session.end(now=_at(30))
    assert session.status == SessionStatus.COMPLETED
    assert session.duration_minutes() == 20


def test_open_pause_is_excluded_until_resumed() -> None:
    session = _session()
    session.pause(_at(15))
    assert session.duration_minutes(_at(45)) == 15


def test_per_minute_cost_with_items() -> None:
    session = _session()
    session.add_item(_product(), 2, now=_at(5))

    assert session.update_total_cost(_at(30)) == Decimal("210.00")
    assert session.game_cost == Decimal("50.00")
    assert session.total_items == 2
    assert session.total_items_revenue == Decimal("160.00")
    assert session.total_items_profit == Decimal("60.00")


def test_frame_kitti_cost() -> None:
    session = _session(
        pricing_method=PricingMethod.FRAME_KITTI,
        hourly_rate=None,
        minute_rate=None,
        frame_rate=Decimal("50.00"),
        kitti_rate=Decimal("20.00"),
    )
    session.update_frames_kittis(frames=3, kittis=2)
    assert session.update_total_cost(_at(90)) == Decimal("190.00")


def test_frames_rejected_for_per_minute_tables() -> None:
    with pytest.raises(InvalidStateError):
        _session().update_frames_kittis(frames=1)


@pytest.mark.parametrize(
    "paid, total, expected",
    [
        ("0", "100", PaymentStatus.PENDING),
        ("40", "100", PaymentStatus.CREDIT),
        ("100", "100", PaymentStatus.PAID),
        ("150", "100", PaymentStatus.PAID),
    ],
)
def test_payment_status_derivation(paid, total, expected) -> None:
    assert derive_payment_status(Decimal(paid), Decimal(total)) == expected


def test_confirmation_only_matters_while_nothing_is_paid() -> None:
    assert derive_payment_status(ZERO, Decimal("100"), PaymentStatus.CREDIT) == PaymentStatus.CREDIT
    assert derive_payment_status(ZERO, Decimal("100"), PaymentStatus.PAID) == PaymentStatus.PENDING
    assert derive_payment_status(ZERO, ZERO, PaymentStatus.PAID) == PaymentStatus.PAID
    assert derive_payment_status(Decimal("100"), Decimal("100"), PaymentStatus.CREDIT) == PaymentStatus.PAID


def test_partial_payment_leaves_remaining_on_credit() -> None:
    session = _session()
    session.add_item(_product(), 1, now=_at(0))
    session.update_total_cost(_at(0))
    session.record_payment("cash", 30, now=_at(0))

    assert session.payment_status == PaymentStatus.CREDIT
    assert session.total_paid_amount == Decimal("30.00")
    assert session.remaining_amount == Decimal("50.00")
    assert session.payment_method_label == "Cash"


def test_invalid_payments_are_rejected() -> None:
    session = _session()
    with pytest.raises(ValidationFailedError):
        session.record_payment("cash", 0)
    with pytest.raises(ValidationFailedError):
        session.record_payment("cheque", 10)
    with pytest.raises(ValidationFailedError):
        session.confirm_payment("paid", None, now=_at(5))


def test_end_requires_payment_confirmation() -> None:
    session = _session()
    session.add_item(_product(), 1, now=_at(1))

    with pytest.raises(PaymentConfirmationRequired) as exc:
        session.end(now=_at(30))
    assert exc.value.status_code == 400
    assert exc.value.detail["requires_payment_confirmation"] is True
    assert exc.value.detail["session_cost"] == 130.0
    assert session.status == SessionStatus.ACTIVE

    session.confirm_payment("credit", now=_at(30))
    session.end(now=_at(30))
    assert session.status == SessionStatus.COMPLETED
    assert session.payment_status == PaymentStatus.CREDIT
    assert session.remaining_amount == Decimal("130.00")


def test_zero_cost_session_can_be_marked_paid() -> None:
    session = _session(
        pricing_method=PricingMethod.FRAME_KITTI,
        hourly_rate=None,
        minute_rate=None,
        frame_rate=Decimal("50.00"),
        kitti_rate=Decimal("20.00"),
    )
    session.confirm_payment("paid", "esewa", now=_at(5))
    assert session.payment_status == PaymentStatus.PAID
    assert session.payments == []
    session.end(now=_at(5))
    assert session.status == SessionStatus.COMPLETED


def test_cancel_resets_payment() -> None:
    session = _session()
    session.add_item(_product(), 3, now=_at(1))
    session.update_total_cost(_at(10))
    session.record_payment("cash", 100, now=_at(10))

    session.cancel(_at(20))

    assert session.status == SessionStatus.CANCELLED
    assert session.payment_status == PaymentStatus.PENDING
    assert session.total_paid_amount == ZERO
    assert session.payments == []
    assert session.end_time == _at(20)


def test_cancel_rejects_terminal_sessions() -> None:
    session = _session()
    session.cancel(_at(5))
    with pytest.raises(InvalidStateError):
        session.cancel(_at(6))


def test_recompute_is_idempotent() -> None:
    session = _session()
    session.add_item(_product(), 2, now=_at(3))
    session.record_payment("cash", 50, now=_at(10))

    first = session.update_total_cost(_at(45))
    snapshot = (session.game_cost, session.total_items_revenue, session.remaining_amount, session.payment_status)
    second = session.update_total_cost(_at(45))

    assert first == second
    assert snapshot == (session.game_cost, session.total_items_revenue, session.remaining_amount, session.payment_status)


def test_state_transitions_are_guarded() -> None:
    session = _session()
    with pytest.raises(InvalidStateError):
        session.resume(_at(1))
    session.pause(_at(1))
    with pytest.raises(InvalidStateError):
        session.pause(_at(2))

    session.resume(_at(3))
    session.cancel(_at(4))
    with pytest.raises(InvalidStateError):
        session.add_item(_product(), 1)
    with pytest.raises(InvalidStateError):
        session.end(now=_at(5))


def test_item_needs_enough_stock() -> None:
    session = _session()
    with pytest.raises(InsufficientStockError) as exc:
        session.add_item(_product(stock=1), 2)
    assert exc.value.detail["available"] == 1
    assert session.items == []


def test_remove_item_updates_totals() -> None:
    session = _session()
    item = session.add_item(_product(), 2, now=_at(0))
    item.id = uuid.uuid4()
    session.update_total_cost(_at(0))

    removed = session.remove_item(item.id)
    session.update_total_cost(_at(0))

    assert removed is item
    assert session.total_items == 0
    assert session.total_cost == ZERO


def test_product_stock_never_goes_negative() -> None:
    product = _product(stock=3)
    assert product.update_stock(5, "subtract") == 0
    assert product.update_stock(4, "add") == 4
    assert product.update_stock(2, "set") == 2
    with pytest.raises(ValidationFailedError):
        product.update_stock(1, "borrow")


def test_notes_after_cancel_keep_payment_reset() -> None:
    session = _session()
    session.record_payment("cash", 20, now=_at(10))
    session.cancel(_at(30))

    session.add_notes("late note")
    session.update_total_cost(_at(31))

    assert session.notes == "late note"
    assert session.payment_status == PaymentStatus.PENDING
    assert session.total_paid_amount == ZERO
    assert session.remaining_amount == ZERO


def test_session_response_carries_live_cost_and_duration() -> None:
    session = _session(owner_id=uuid.uuid4(), snooker_house_id=uuid.uuid4(), customer_name="Ram")
    session.add_item(_product(), 1, now=_at(0))
    session.items[0].id = uuid.uuid4()
    session.update_total_cost(_at(30))

    out = schemas.GameSession.from_session(session, _at(30))

    assert out.duration_minutes == 30
    assert out.current_cost == Decimal("130.00")
    assert out.items[0].product_name == "Cola"
