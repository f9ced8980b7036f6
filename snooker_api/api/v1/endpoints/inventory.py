# snooker_api/api/v1/endpoints/inventory.py
import uuid
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from snooker_api import crud, schemas
from snooker_api.api import deps
from snooker_api.core.errors import SnookerError
from snooker_api.db.models.product import ProductCategory, ProductStatus
from snooker_api.db.models.sale import SalePaymentMethod
from snooker_api.db.models.snooker_house import SnookerHouse
from snooker_api.db.models.user import User
from snooker_api.db.models.user_session import UserSession

router = APIRouter()


def _get_product(db: Session, product_id: uuid.UUID, owner: User):
    try:
        return crud.product.get_owned(db, id=product_id, owner=owner)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.post("/products", response_model=schemas.Product, status_code=status.HTTP_201_CREATED)
def create_product(
    *,
    db: Session = Depends(deps.get_db),
    product_in: schemas.ProductCreate,
    current_user: User = Depends(deps.get_current_verified_user),
    house: SnookerHouse = Depends(deps.get_current_house),
) -> Any:
    """
    Add a product. Names and barcodes are unique within the house.
    """
    try:
        return crud.product.create(db, obj_in=product_in, house=house, owner=current_user)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.get("/products", response_model=schemas.ProductList)
def read_products(
    db: Session = Depends(deps.get_db),
    house: SnookerHouse = Depends(deps.get_current_house),
    category: Optional[ProductCategory] = None,
    product_status: Optional[ProductStatus] = Query(None, alias="status"),
    low_stock: bool = False,
    search: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    skip: int = Query(0, ge=0),
) -> Any:
    products = crud.product.get_multi_by_house(
        db,
        house_id=house.id,
        category=category,
        status=product_status,
        low_stock=low_stock,
        search=search,
        skip=skip,
        limit=limit,
    )
    stats = crud.product.get_statistics(db, house_id=house.id)
    return schemas.ProductList(
        products=[schemas.Product.model_validate(p) for p in products],
        statistics={
            "total": stats["total"],
            "active": stats["active"],
            "low_stock": stats["low_stock"],
            "returned": len(products),
            "total_stock_value": stats["total_stock_value"],
            "total_potential_revenue": stats["total_potential_revenue"],
            "total_potential_profit": stats["total_potential_profit"],
        },
        pagination={"limit": limit, "skip": skip, "has_more": len(products) == limit},
    )


@router.get("/products/search", response_model=schemas.ProductSearchResult)
def search_products(
    db: Session = Depends(deps.get_db),
    house: SnookerHouse = Depends(deps.get_current_house),
    q: str = Query(..., min_length=1),
    category: Optional[ProductCategory] = None,
    limit: int = Query(20, ge=1, le=100),
) -> Any:
    """
    Active products matching name, barcode or description.
    """
    products = crud.product.search(db, house_id=house.id, q=q, category=category, limit=limit)
    return schemas.ProductSearchResult(
        products=[schemas.Product.model_validate(p) for p in products],
        total=len(products),
        query=q,
    )


@router.get("/products/low-stock", response_model=List[schemas.Product])
def read_low_stock_products(
    db: Session = Depends(deps.get_db),
    house: SnookerHouse = Depends(deps.get_current_house),
) -> Any:
    return crud.product.get_low_stock(db, house_id=house.id)


@router.get("/products/{product_id}", response_model=schemas.Product)
def read_product(
    product_id: uuid.UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_verified_user),
) -> Any:
    return _get_product(db, product_id, current_user)


@router.put("/products/{product_id}", response_model=schemas.Product)
def update_product(
    *,
    db: Session = Depends(deps.get_db),
    product_id: uuid.UUID,
    product_in: schemas.ProductUpdate,
    current_user: User = Depends(deps.get_current_verified_user),
) -> Any:
    product = _get_product(db, product_id, current_user)
    try:
        return crud.product.update(db, db_obj=product, obj_in=product_in)
    except SnookerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.put("/products/{product_id}/stock", response_model=schemas.StockUpdateResult)
def update_stock(
    *,
    db: Session = Depends(deps.get_db),
    product_id: uuid.UUID,
    stock_in: schemas.StockUpdate,
    current_user: User = Depends(deps.get_current_verified_user),
) -> Any:
    """
    Add to, subtract from or set the stock level. Stock never drops below zero.
    """
    product = _get_product(db, product_id, current_user)
    try:
        product, previous = crud.product.adjust_stock(
            db, db_obj=product, quantity=stock_in.quantity, operation=stock_in.operation
        )
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    return schemas.StockUpdateResult(
        product=schemas.Product.model_validate(product),
        previous_stock=previous,
        new_stock=product.current_stock,
        operation=stock_in.operation,
    )


@router.delete("/products/{product_id}", response_model=schemas.MessageResponse)
def delete_product(
    product_id: uuid.UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_verified_user),
) -> Any:
    product = _get_product(db, product_id, current_user)
    try:
        crud.product.remove(db, db_obj=product)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    return schemas.MessageResponse(message="Product deleted successfully")


@router.post("/sales", response_model=schemas.Sale, status_code=status.HTTP_201_CREATED)
def create_sale(
    *,
    db: Session = Depends(deps.get_db),
    sale_in: schemas.SaleCreate,
    current_user: User = Depends(deps.get_current_verified_user),
    house: SnookerHouse = Depends(deps.get_current_house),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    """
    Record a counter sale. Stock for every line is taken in one transaction.
    """
    try:
        return crud.sale.create(
            db, obj_in=sale_in, house=house, owner=current_user, auth_session_id=auth_session.session_id
        )
    except SnookerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.get("/sales", response_model=schemas.SaleHistory)
def read_sales(
    db: Session = Depends(deps.get_db),
    house: SnookerHouse = Depends(deps.get_current_house),
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    payment_method: Optional[SalePaymentMethod] = None,
    limit: int = Query(50, ge=1, le=200),
    skip: int = Query(0, ge=0),
) -> Any:
    sales, statistics = crud.sale.get_history(
        db,
        house_id=house.id,
        date_from=date_from,
        date_to=date_to,
        payment_method=payment_method,
        limit=limit,
        skip=skip,
    )
    return schemas.SaleHistory(
        sales=[schemas.Sale.model_validate(s) for s in sales],
        statistics=statistics,
        pagination={"limit": limit, "skip": skip, "has_more": len(sales) == limit},
    )


@router.get("/stats", response_model=schemas.InventoryStats)
def read_inventory_stats(
    db: Session = Depends(deps.get_db),
    house: SnookerHouse = Depends(deps.get_current_house),
) -> Any:
    return crud.product.get_inventory_stats(db, house_id=house.id)
