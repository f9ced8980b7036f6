# snooker_api/api/v1/endpoints/snooker_houses.py
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from snooker_api import crud, schemas
from snooker_api.api import deps
from snooker_api.core.errors import SnookerError
from snooker_api.db.models.snooker_house import SnookerHouse
from snooker_api.db.models.user import User

router = APIRouter()


@router.post("/create", response_model=schemas.SnookerHouse, status_code=status.HTTP_201_CREATED)
def create_snooker_house(
    *,
    db: Session = Depends(deps.get_db),
    house_in: schemas.SnookerHouseCreate,
    current_user: User = Depends(deps.get_current_verified_user),
) -> Any:
    """
    Create the caller's snooker house. Each owner runs exactly one.
    """
    try:
        return crud.snooker_house.create(db, obj_in=house_in, owner=current_user)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.get("/my-house", response_model=schemas.SnookerHouse)
def read_my_house(house: SnookerHouse = Depends(deps.get_current_house)) -> Any:
    return house


@router.put("/my-house", response_model=schemas.SnookerHouse)
def update_my_house(
    *,
    db: Session = Depends(deps.get_db),
    house_in: schemas.SnookerHouseUpdate,
    house: SnookerHouse = Depends(deps.get_current_house),
) -> Any:
    return crud.snooker_house.update(db, db_obj=house, obj_in=house_in)


@router.delete("/my-house", response_model=schemas.MessageResponse)
def delete_my_house(
    db: Session = Depends(deps.get_db),
    house: SnookerHouse = Depends(deps.get_current_house),
) -> Any:
    """
    Delete the house with its tables, products, sessions and sales.
    Refused while any table is occupied.
    """
    try:
        crud.snooker_house.remove(db, db_obj=house)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    return schemas.MessageResponse(message="Snooker house deleted successfully")


@router.get("/houses", response_model=schemas.SnookerHouseList)
def read_houses(
    db: Session = Depends(deps.get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
) -> Any:
    """
    Public directory of snooker houses.
    """
    houses, pagination = crud.snooker_house.get_multi(db, page=page, limit=limit, search=search)
    return schemas.SnookerHouseList(
        snooker_houses=[schemas.SnookerHouse.model_validate(h) for h in houses],
        pagination=pagination,
    )


@router.get("/houses/{house_id}", response_model=schemas.SnookerHouse)
def read_house(house_id: uuid.UUID, db: Session = Depends(deps.get_db)) -> Any:
    house = crud.snooker_house.get(db, house_id)
    if not house:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Snooker house not found")
    return house


@router.get("/stats", response_model=schemas.SnookerHouseStats)
def read_stats(db: Session = Depends(deps.get_db)) -> Any:
    return crud.snooker_house.get_stats(db)
