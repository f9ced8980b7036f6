# snooker_api/crud/crud_snooker_house.py
import logging
import math
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy import or_
from sqlalchemy.orm import Session

from snooker_api.core.errors import InvalidStateError, NotFoundError
from snooker_api.core.timeutils import utcnow
from snooker_api.db.models.snooker_house import SnookerHouse
from snooker_api.db.models.snooker_table import SnookerTable
from snooker_api.db.models.user import User
from snooker_api.schemas.snooker_house import SnookerHouseCreate, SnookerHouseUpdate

logger = logging.getLogger(__name__)

NO_HOUSE_MESSAGE = "No snooker house found. Please create a snooker house first"


class CRUDSnookerHouse:
    def get(self, db: Session, id: uuid.UUID) -> Optional[SnookerHouse]:
        return db.query(SnookerHouse).filter(SnookerHouse.id == id).first()

    def get_by_owner(self, db: Session, *, owner_id: uuid.UUID) -> Optional[SnookerHouse]:
        return db.query(SnookerHouse).filter(SnookerHouse.owner_id == owner_id).first()

    def get_required_by_owner(self, db: Session, *, owner: User) -> SnookerHouse:
        house = self.get_by_owner(db, owner_id=owner.id)
        if not house:
            raise NotFoundError(NO_HOUSE_MESSAGE)
        return house

    def get_multi(
        self, db: Session, *, page: int = 1, limit: int = 10, search: Optional[str] = None
    ) -> Tuple[List[SnookerHouse], Dict[str, Any]]:
        query = db.query(SnookerHouse)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(SnookerHouse.name.ilike(pattern), SnookerHouse.address.ilike(pattern)))
        total = query.count()
        houses = (
            query.order_by(SnookerHouse.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        total_pages = math.ceil(total / limit) if limit else 0
        pagination = {
            "current_page": page,
            "total_pages": total_pages,
            "total": total,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        }
        return houses, pagination

    def create(self, db: Session, *, obj_in: SnookerHouseCreate, owner: User) -> SnookerHouse:
        if self.get_by_owner(db, owner_id=owner.id):
            raise InvalidStateError("You already have a snooker house. Each user can only have one snooker house.")
        db_obj = SnookerHouse(
            owner_id=owner.id,
            name=obj_in.name.strip(),
            address=obj_in.address.strip(),
            profile_picture=obj_in.profile_picture,
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        logger.info(f"Snooker house {db_obj.id} created by {owner.email}")
        return db_obj

    def update(
        self, db: Session, *, db_obj: SnookerHouse, obj_in: Union[SnookerHouseUpdate, Dict[str, Any]]
    ) -> SnookerHouse:
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)

        for field in update_data:
            if hasattr(db_obj, field):
                setattr(db_obj, field, update_data[field])

        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def remove(self, db: Session, *, db_obj: SnookerHouse) -> SnookerHouse:
        occupied = (
            db.query(SnookerTable)
            .filter(SnookerTable.snooker_house_id == db_obj.id, SnookerTable.is_occupied.is_(True))
            .count()
        )
        if occupied:
            raise InvalidStateError("Cannot delete a snooker house while tables are occupied")
        db.delete(db_obj)
        db.commit()
        logger.info(f"Snooker house {db_obj.id} deleted")
        return db_obj

    def get_stats(self, db: Session) -> Dict[str, Any]:
        now = utcnow()
        return {
            "total_houses": db.query(SnookerHouse).count(),
            "recent_houses": db.query(SnookerHouse).filter(SnookerHouse.created_at >= now - timedelta(days=7)).count(),
            "last_updated": now,
        }


snooker_house = CRUDSnookerHouse()
