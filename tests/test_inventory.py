from datetime import datetime, timezone

import pytest

from snooker_api import crud
from snooker_api.core.errors import InsufficientStockError, InvalidStateError
from snooker_api.crud.crud_product import decrement_stock, restore_stock
from snooker_api.db.models import Sale
from snooker_api.schemas.sale import SaleCreate

NOON = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


def _sale(product, quantity: int) -> SaleCreate:
    return SaleCreate(items=[{"product_id": product.id, "quantity": quantity}])


def test_decrement_stock_refuses_to_oversell(db, cola) -> None:
    with pytest.raises(InsufficientStockError):
        decrement_stock(db, cola, 11)
    assert cola.current_stock == 10

    decrement_stock(db, cola, 4)
    assert cola.current_stock == 6


def test_restore_stock_skips_missing_products(db, cola) -> None:
    assert restore_stock(db, None, 3) is None
    restored = restore_stock(db, cola.id, 3)
    db.commit()
    assert restored.current_stock == 13


def test_sale_numbers_follow_the_daily_sequence(db, owner, house, cola) -> None:
    assert crud.sale.generate_sale_number(db, house_id=house.id, now=NOON) == "SL20240315001"

    first = crud.sale.create(db, obj_in=_sale(cola, 2), house=house, owner=owner, now=NOON)
    second = crud.sale.create(db, obj_in=_sale(cola, 1), house=house, owner=owner, now=NOON)

    assert first.sale_number == "SL20240315001"
    assert second.sale_number == "SL20240315002"
    assert first.total_items == 2
    assert float(first.total_revenue) == 160.0
    assert float(first.total_profit) == 60.0
    db.refresh(cola)
    assert cola.current_stock == 7


def test_oversold_sale_is_not_recorded(db, owner, house, cola) -> None:
    with pytest.raises(InsufficientStockError) as exc:
        crud.sale.create(db, obj_in=_sale(cola, 20), house=house, owner=owner, now=NOON)

    assert exc.value.detail["requested"] == 20
    assert db.query(Sale).count() == 0
    db.refresh(cola)
    assert cola.current_stock == 10


def test_products_with_sales_history_cannot_be_deleted(db, owner, house, cola) -> None:
    crud.sale.create(db, obj_in=_sale(cola, 1), house=house, owner=owner, now=NOON)
    with pytest.raises(InvalidStateError):
        crud.product.remove(db, db_obj=cola)


def test_inventory_stats(db, owner, house, cola) -> None:
    crud.sale.create(db, obj_in=_sale(cola, 6), house=house, owner=owner, now=NOON)

    stats = crud.product.get_inventory_stats(db, house_id=house.id, now=NOON)

    assert stats["products"] == {"total": 1, "active": 1, "low_stock": 1, "total_items": 4}
    assert stats["inventory_value"]["total_stock_value"] == 200
    assert stats["sales"]["total_sales"] == 1
    assert stats["sales"]["today_revenue"] == 480
    assert stats["categories"] == [{"category": "other", "count": 1, "total_stock": 4, "total_value": 200}]
