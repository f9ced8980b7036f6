# snooker_api/api/v1/endpoints/tables.py
import uuid
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from snooker_api import crud, schemas
from snooker_api.api import deps
from snooker_api.core.errors import SnookerError
from snooker_api.db.models.snooker_house import SnookerHouse
from snooker_api.db.models.user import User

router = APIRouter()


@router.post("/create", response_model=schemas.Table, status_code=status.HTTP_201_CREATED)
def create_table(
    *,
    db: Session = Depends(deps.get_db),
    table_in: schemas.TableCreate,
    current_user: User = Depends(deps.get_current_verified_user),
    house: SnookerHouse = Depends(deps.get_current_house),
) -> Any:
    """
    Add a table to the caller's house.
    Without a table number the lowest free number is used.
    """
    try:
        return crud.table.create(db, obj_in=table_in, house=house, owner=current_user)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.get("/my-tables", response_model=schemas.MyTables)
def read_my_tables(
    db: Session = Depends(deps.get_db),
    house: SnookerHouse = Depends(deps.get_current_house),
) -> Any:
    tables = crud.table.get_multi_by_house(db, house_id=house.id)
    return schemas.MyTables(
        tables=[schemas.Table.model_validate(t) for t in tables],
        total_tables=len(tables),
        snooker_house={"id": house.id, "name": house.name, "address": house.address},
    )


@router.get("/stats/my-stats", response_model=schemas.TableStats)
def read_my_table_stats(
    db: Session = Depends(deps.get_db),
    house: SnookerHouse = Depends(deps.get_current_house),
) -> Any:
    return crud.table.get_stats(db, house_id=house.id)


@router.get("/snooker-house/{house_id}/tables", response_model=schemas.HouseTables)
def read_house_tables(
    house_id: uuid.UUID,
    db: Session = Depends(deps.get_db),
    table_status: str = Query("active", alias="status", pattern="^(active|maintenance|inactive|all)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> Any:
    """
    Public table list of one house. `status=all` returns every table.
    """
    if not crud.snooker_house.get(db, house_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Snooker house not found")
    tables, pagination = crud.table.get_public_by_house(
        db, house_id=house_id, status=table_status, page=page, limit=limit
    )
    return schemas.HouseTables(tables=[schemas.Table.model_validate(t) for t in tables], pagination=pagination)


@router.get("/{table_id}", response_model=schemas.Table)
def read_table(
    table_id: uuid.UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_verified_user),
) -> Any:
    try:
        return crud.table.get_owned(db, id=table_id, owner=current_user)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.put("/{table_id}", response_model=schemas.Table)
def update_table(
    *,
    db: Session = Depends(deps.get_db),
    table_id: uuid.UUID,
    table_in: schemas.TableUpdate,
    current_user: User = Depends(deps.get_current_verified_user),
) -> Any:
    """
    Update a table. Switching the pricing method clears the rates of the old one.
    """
    try:
        table = crud.table.get_owned(db, id=table_id, owner=current_user)
        return crud.table.update(db, db_obj=table, obj_in=table_in)
    except SnookerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.delete("/{table_id}", response_model=schemas.MessageResponse)
def delete_table(
    table_id: uuid.UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_verified_user),
) -> Any:
    try:
        table = crud.table.get_owned(db, id=table_id, owner=current_user)
        crud.table.remove(db, db_obj=table)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    return schemas.MessageResponse(message="Table deleted successfully")
