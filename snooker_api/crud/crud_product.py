# snooker_api/crud/crud_product.py
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from snooker_api.core.errors import InsufficientStockError, InvalidStateError, NotFoundError
from snooker_api.core.permissions import ensure_owner
from snooker_api.core.timeutils import start_of_day, utcnow
from snooker_api.db.models.product import Product, ProductCategory, ProductStatus, StockOperation
from snooker_api.db.models.sale import Sale, SaleItem
from snooker_api.db.models.snooker_house import SnookerHouse
from snooker_api.db.models.user import User
from snooker_api.schemas.product import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)


def decrement_stock(db: Session, product: Product, quantity: int) -> None:
    """
    Take ``quantity`` units out of stock in one conditional UPDATE.

    Two concurrent callers cannot both pass the check, so stock never
    goes negative. Does not commit.
    """
    result = db.execute(
        update(Product)
        .where(Product.id == product.id, Product.current_stock >= quantity)
        .values(current_stock=Product.current_stock - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.refresh(product)
        raise InsufficientStockError(
            f"Insufficient stock for {product.name}. Available: {product.current_stock}, Requested: {quantity}",
            available=product.current_stock,
            requested=quantity,
        )
    db.refresh(product)


def restore_stock(db: Session, product_id: Optional[uuid.UUID], quantity: int) -> Optional[Product]:
    """Put units back; a product deleted in the meantime is skipped. Does not commit."""
    if product_id is None:
        return None
    product = db.query(Product).filter(Product.id == product_id).first()
    if product:
        product.update_stock(quantity, StockOperation.ADD)
        db.add(product)
    return product


class CRUDProduct:
    def get(self, db: Session, id: uuid.UUID) -> Optional[Product]:
        return db.query(Product).filter(Product.id == id).first()

    def get_owned(self, db: Session, *, id: uuid.UUID, owner: User) -> Product:
        product = self.get(db, id)
        if not product:
            raise NotFoundError("Product not found")
        ensure_owner(owner, product, "Access denied. You can only access your own products")
        return product

    def _check_unique(
        self, db: Session, *, house_id: uuid.UUID, name: Optional[str], barcode: Optional[str],
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = db.query(Product).filter(Product.snooker_house_id == house_id)
        if exclude_id:
            query = query.filter(Product.id != exclude_id)
        if name and query.filter(func.lower(Product.name) == name.lower()).first():
            raise InvalidStateError("Product with this name already exists in your inventory")
        if barcode and query.filter(Product.barcode == barcode).first():
            raise InvalidStateError("Product with this barcode already exists")

    def create(self, db: Session, *, obj_in: ProductCreate, house: SnookerHouse, owner: User) -> Product:
        name = obj_in.name.strip()
        barcode = (obj_in.barcode or "").strip() or None
        self._check_unique(db, house_id=house.id, name=name, barcode=barcode)
        db_obj = Product(
            snooker_house_id=house.id,
            owner_id=owner.id,
            name=name,
            description=(obj_in.description or "").strip(),
            barcode=barcode,
            category=obj_in.category,
            unit=obj_in.unit,
            status=ProductStatus.ACTIVE,
            cost_price=obj_in.cost_price,
            selling_price=obj_in.selling_price,
            current_stock=obj_in.current_stock,
            min_stock_level=obj_in.min_stock_level,
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        logger.info(f"Product {db_obj.name} created in house {house.id}")
        return db_obj

    def get_multi_by_house(
        self,
        db: Session,
        *,
        house_id: uuid.UUID,
        category: Optional[ProductCategory] = None,
        status: Optional[ProductStatus] = None,
        low_stock: bool = False,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Product]:
        query = db.query(Product).filter(Product.snooker_house_id == house_id)
        if category:
            query = query.filter(Product.category == category)
        if status:
            query = query.filter(Product.status == status)
        if low_stock:
            query = query.filter(Product.current_stock <= Product.min_stock_level)
        if search:
            query = query.filter(self._search_clause(search))
        return query.order_by(Product.name).offset(skip).limit(limit).all()

    def _search_clause(self, text: str):
        pattern = f"%{text}%"
        return or_(Product.name.ilike(pattern), Product.barcode.ilike(pattern), Product.description.ilike(pattern))

    def search(
        self, db: Session, *, house_id: uuid.UUID, q: str, category: Optional[ProductCategory] = None, limit: int = 20
    ) -> List[Product]:
        query = db.query(Product).filter(
            Product.snooker_house_id == house_id,
            Product.status == ProductStatus.ACTIVE,
            self._search_clause(q),
        )
        if category:
            query = query.filter(Product.category == category)
        return query.order_by(Product.name).limit(limit).all()

    def get_low_stock(self, db: Session, *, house_id: uuid.UUID) -> List[Product]:
        return (
            db.query(Product)
            .filter(
                Product.snooker_house_id == house_id,
                Product.status == ProductStatus.ACTIVE,
                Product.current_stock <= Product.min_stock_level,
            )
            .order_by(Product.current_stock, Product.name)
            .all()
        )

    def get_statistics(self, db: Session, *, house_id: uuid.UUID) -> Dict[str, Any]:
        products = db.query(Product).filter(Product.snooker_house_id == house_id).all()
        stock_value = sum(float(p.stock_value) for p in products)
        potential_revenue = sum(float(p.potential_revenue) for p in products)
        return {
            "total": len(products),
            "active": sum(1 for p in products if p.status == ProductStatus.ACTIVE),
            "low_stock": sum(1 for p in products if p.is_low_stock),
            "total_items": sum(p.current_stock or 0 for p in products),
            "total_stock_value": round(stock_value),
            "total_potential_revenue": round(potential_revenue),
            "total_potential_profit": round(potential_revenue - stock_value),
            "products": products,
        }

    def get_inventory_stats(
        self, db: Session, *, house_id: uuid.UUID, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        now = now or utcnow()
        stats = self.get_statistics(db, house_id=house_id)
        sales = db.query(Sale).filter(Sale.snooker_house_id == house_id)
        total = sales.with_entities(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_revenue), 0),
            func.coalesce(func.sum(Sale.total_profit), 0),
        ).one()
        today = sales.filter(Sale.sale_date >= start_of_day(now)).with_entities(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_revenue), 0),
        ).one()

        categories: Dict[str, Dict[str, Any]] = {}
        for p in stats["products"]:
            entry = categories.setdefault(
                p.category.value, {"category": p.category.value, "count": 0, "total_stock": 0, "total_value": 0.0}
            )
            entry["count"] += 1
            entry["total_stock"] += p.current_stock or 0
            entry["total_value"] += float(p.stock_value)
        for entry in categories.values():
            entry["total_value"] = round(entry["total_value"])

        return {
            "products": {
                "total": stats["total"],
                "active": stats["active"],
                "low_stock": stats["low_stock"],
                "total_items": stats["total_items"],
            },
            "inventory_value": {
                "total_stock_value": stats["total_stock_value"],
                "total_potential_revenue": stats["total_potential_revenue"],
                "total_potential_profit": stats["total_potential_profit"],
            },
            "sales": {
                "total_sales": total[0],
                "total_revenue": round(float(total[1])),
                "total_profit": round(float(total[2])),
                "today_sales": today[0],
                "today_revenue": round(float(today[1])),
            },
            "categories": sorted(categories.values(), key=lambda c: c["category"]),
        }

    def update(self, db: Session, *, db_obj: Product, obj_in: ProductUpdate) -> Product:
        update_data = obj_in.model_dump(exclude_unset=True)
        if "name" in update_data and update_data["name"]:
            update_data["name"] = update_data["name"].strip()
        if "barcode" in update_data:
            update_data["barcode"] = (update_data["barcode"] or "").strip() or None
        self._check_unique(
            db,
            house_id=db_obj.snooker_house_id,
            name=update_data.get("name"),
            barcode=update_data.get("barcode"),
            exclude_id=db_obj.id,
        )

        for field in update_data:
            if hasattr(db_obj, field) and (update_data[field] is not None or field == "barcode"):
                setattr(db_obj, field, update_data[field])

        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def adjust_stock(self, db: Session, *, db_obj: Product, quantity: int, operation) -> Tuple[Product, int]:
        previous = db_obj.current_stock or 0
        db_obj.update_stock(quantity, operation)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        logger.info(f"Stock of {db_obj.name} adjusted ({operation}): {previous} -> {db_obj.current_stock}")
        return db_obj, previous

    def remove(self, db: Session, *, db_obj: Product) -> Product:
        in_sales = db.query(SaleItem).filter(SaleItem.product_id == db_obj.id).first()
        if in_sales:
            raise InvalidStateError("Cannot delete a product that has sales history. Set it inactive instead")
        db.delete(db_obj)
        db.commit()
        logger.info(f"Product {db_obj.name} deleted")
        return db_obj


product = CRUDProduct()
