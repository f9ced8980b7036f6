# snooker_api/crud/crud_sale.py
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from snooker_api.core.errors import InsufficientStockError, NotFoundError
from snooker_api.core.permissions import ensure_owner
from snooker_api.core.timeutils import start_of_day, utcnow
from snooker_api.crud.crud_product import decrement_stock, product as crud_product
from snooker_api.db.models.game_session import GameSession, money
from snooker_api.db.models.sale import Sale, SaleItem, SalePaymentMethod
from snooker_api.db.models.snooker_house import SnookerHouse
from snooker_api.db.models.user import User
from snooker_api.schemas.sale import SaleCreate

logger = logging.getLogger(__name__)


class CRUDSale:
    def get(self, db: Session, id: uuid.UUID) -> Optional[Sale]:
        return db.query(Sale).filter(Sale.id == id).first()

    def generate_sale_number(self, db: Session, *, house_id: uuid.UUID, now: Optional[datetime] = None) -> str:
        """SL + YYYYMMDD + per-venue sequence of the day (001, 002, ...)."""
        now = now or utcnow()
        day_start = start_of_day(now)
        count = (
            db.query(func.count(Sale.id))
            .filter(
                Sale.snooker_house_id == house_id,
                Sale.sale_date >= day_start,
                Sale.sale_date < day_start + timedelta(days=1),
            )
            .scalar()
        )
        sequence = count + 1
        while True:
            number = f"SL{now:%Y%m%d}{sequence:03d}"
            taken = db.query(Sale.id).filter(Sale.snooker_house_id == house_id, Sale.sale_number == number).first()
            if not taken:
                return number
            sequence += 1

    def create(
        self, db: Session, *, obj_in: SaleCreate, house: SnookerHouse, owner: User,
        auth_session_id: Optional[str] = None, now: Optional[datetime] = None,
    ) -> Sale:
        """Record an over-the-counter sale; prices always come from the product."""
        now = now or utcnow()
        if obj_in.session_id:
            game_session = db.query(GameSession).filter(GameSession.id == obj_in.session_id).first()
            if not game_session:
                raise NotFoundError("Session not found")
            ensure_owner(owner, game_session)

        lines = []
        for line in obj_in.items:
            product = crud_product.get(db, line.product_id)
            if not product:
                raise NotFoundError(f"Product {line.product_id} not found")
            ensure_owner(owner, product, "Access denied. You can only sell your own products")
            if (product.current_stock or 0) < line.quantity:
                raise InsufficientStockError(
                    f"Insufficient stock for {product.name}. "
                    f"Available: {product.current_stock}, Requested: {line.quantity}",
                    available=product.current_stock,
                    requested=line.quantity,
                )
            lines.append((product, line.quantity))

        sale = Sale(
            sale_number=self.generate_sale_number(db, house_id=house.id, now=now),
            snooker_house_id=house.id,
            owner_id=owner.id,
            session_id=obj_in.session_id,
            payment_method=obj_in.payment_method,
            customer_name=(obj_in.customer_name or "").strip(),
            customer_phone=(obj_in.customer_phone or "").strip(),
            notes=(obj_in.notes or "").strip(),
            created_by_session=auth_session_id,
            sale_date=now,
        )
        for product, quantity in lines:
            cost_price = money(product.cost_price)
            selling_price = money(product.selling_price)
            total_cost = money(cost_price * quantity)
            total_revenue = money(selling_price * quantity)
            sale.items.append(
                SaleItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=quantity,
                    cost_price=cost_price,
                    selling_price=selling_price,
                    total_cost=total_cost,
                    total_revenue=total_revenue,
                    profit=total_revenue - total_cost,
                )
            )
        sale.calculate_totals()

        try:
            for product, quantity in lines:
                decrement_stock(db, product, quantity)
        except InsufficientStockError:
            db.rollback()
            raise

        db.add(sale)
        db.commit()
        db.refresh(sale)
        logger.info(f"Sale {sale.sale_number} recorded: {sale.total_items} items, revenue {sale.total_revenue}")
        return sale

    def get_history(
        self,
        db: Session,
        *,
        house_id: uuid.UUID,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        payment_method: Optional[SalePaymentMethod] = None,
        limit: int = 50,
        skip: int = 0,
    ) -> Tuple[List[Sale], Dict[str, Any]]:
        query = db.query(Sale).filter(Sale.snooker_house_id == house_id)
        if date_from:
            query = query.filter(Sale.sale_date >= date_from)
        if date_to:
            query = query.filter(Sale.sale_date <= date_to)
        if payment_method:
            query = query.filter(Sale.payment_method == payment_method)
        sales = query.order_by(Sale.sale_date.desc()).offset(skip).limit(limit).all()

        totals = query.with_entities(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_revenue), 0),
            func.coalesce(func.sum(Sale.total_profit), 0),
            func.coalesce(func.sum(Sale.total_cost), 0),
        ).one()
        count, revenue, profit, cost = totals
        now = utcnow()
        base = db.query(func.count(Sale.id)).filter(Sale.snooker_house_id == house_id)
        statistics = {
            "total_sales": base.scalar(),
            "today_sales": base.filter(Sale.sale_date >= start_of_day(now)).scalar(),
            "month_sales": base.filter(Sale.sale_date >= start_of_day(now).replace(day=1)).scalar(),
            "returned": len(sales),
            "total_revenue": round(float(revenue)),
            "total_profit": round(float(profit)),
            "total_cost": round(float(cost)),
            "average_sale": round(float(revenue) / count) if count else 0,
        }
        return sales, statistics


sale = CRUDSale()
