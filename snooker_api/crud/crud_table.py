# snooker_api/crud/crud_table.py
import logging
import math
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from snooker_api.core.errors import InvalidStateError, NotFoundError
from snooker_api.core.permissions import ensure_owner
from snooker_api.db.models.snooker_house import SnookerHouse
from snooker_api.db.models.snooker_table import PricingMethod, SnookerTable, TableStatus
from snooker_api.db.models.user import User
from snooker_api.schemas.table import TableCreate, TableUpdate

logger = logging.getLogger(__name__)


class CRUDTable:
    def get(self, db: Session, id: uuid.UUID) -> Optional[SnookerTable]:
        return db.query(SnookerTable).filter(SnookerTable.id == id).first()

    def get_owned(self, db: Session, *, id: uuid.UUID, owner: User) -> SnookerTable:
        table = self.get(db, id)
        if not table:
            raise NotFoundError("Table not found")
        ensure_owner(owner, table, "Access denied. You can only access your own tables")
        return table

    def get_by_number(self, db: Session, *, house_id: uuid.UUID, table_number: int) -> Optional[SnookerTable]:
        return (
            db.query(SnookerTable)
            .filter(SnookerTable.snooker_house_id == house_id, SnookerTable.table_number == table_number)
            .first()
        )

    def get_multi_by_house(self, db: Session, *, house_id: uuid.UUID) -> List[SnookerTable]:
        return (
            db.query(SnookerTable)
            .filter(SnookerTable.snooker_house_id == house_id)
            .order_by(SnookerTable.table_number)
            .all()
        )

    def get_public_by_house(
        self, db: Session, *, house_id: uuid.UUID, status: Optional[str] = "active", page: int = 1, limit: int = 20
    ) -> Tuple[List[SnookerTable], Dict[str, Any]]:
        query = db.query(SnookerTable).filter(SnookerTable.snooker_house_id == house_id)
        if status and status != "all":
            query = query.filter(SnookerTable.status == TableStatus(status))
        total = query.count()
        tables = query.order_by(SnookerTable.table_number).offset((page - 1) * limit).limit(limit).all()
        total_pages = math.ceil(total / limit) if limit else 0
        return tables, {
            "current_page": page,
            "total_pages": total_pages,
            "total": total,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        }

    def next_table_number(self, db: Session, *, house_id: uuid.UUID) -> int:
        """Lowest unused number, filling gaps left by deleted tables."""
        used = {n for (n,) in db.query(SnookerTable.table_number).filter(SnookerTable.snooker_house_id == house_id)}
        number = 1
        while number in used:
            number += 1
        return number

    def create(self, db: Session, *, obj_in: TableCreate, house: SnookerHouse, owner: User) -> SnookerTable:
        table_number = obj_in.table_number or self.next_table_number(db, house_id=house.id)
        if self.get_by_number(db, house_id=house.id, table_number=table_number):
            raise InvalidStateError(f"Table number {table_number} already exists in your snooker house")

        db_obj = SnookerTable(
            table_number=table_number,
            name=obj_in.name.strip(),
            description=(obj_in.description or "").strip(),
            snooker_house_id=house.id,
            owner_id=owner.id,
            status=TableStatus.ACTIVE,
            pricing_method=obj_in.pricing_method,
            is_occupied=False,
        )
        if obj_in.pricing_method == PricingMethod.PER_MINUTE:
            db_obj.hourly_rate = obj_in.hourly_rate
        else:
            db_obj.frame_rate = obj_in.frame_rate
            db_obj.kitti_rate = obj_in.kitti_rate
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        logger.info(f"Table {table_number} created in house {house.id}")
        return db_obj

    def update(self, db: Session, *, db_obj: SnookerTable, obj_in: TableUpdate) -> SnookerTable:
        update_data = obj_in.model_dump(exclude_unset=True)

        for field in ("name", "description", "status"):
            if update_data.get(field) is not None:
                setattr(db_obj, field, update_data[field])

        method = update_data.get("pricing_method")
        if method:
            db_obj.pricing_method = method
            if method == PricingMethod.PER_MINUTE:
                db_obj.frame_rate = None
                db_obj.kitti_rate = None
            else:
                db_obj.hourly_rate = None

        if db_obj.pricing_method == PricingMethod.PER_MINUTE:
            if update_data.get("hourly_rate") is not None:
                db_obj.hourly_rate = update_data["hourly_rate"]
            if db_obj.hourly_rate is None:
                raise InvalidStateError("Hourly rate is required for per-minute pricing")
        else:
            for field in ("frame_rate", "kitti_rate"):
                if update_data.get(field) is not None:
                    setattr(db_obj, field, update_data[field])
            if db_obj.frame_rate is None or db_obj.kitti_rate is None:
                raise InvalidStateError("Frame rate and kitti rate are required for frame & kitti pricing")

        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def remove(self, db: Session, *, db_obj: SnookerTable) -> SnookerTable:
        if db_obj.is_occupied:
            raise InvalidStateError("Cannot delete an occupied table. Please end the current session first")
        db.delete(db_obj)
        db.commit()
        logger.info(f"Table {db_obj.table_number} deleted from house {db_obj.snooker_house_id}")
        return db_obj

    def get_stats(self, db: Session, *, house_id: uuid.UUID) -> Dict[str, Any]:
        tables = self.get_multi_by_house(db, house_id=house_id)
        total = len(tables)
        active = sum(1 for t in tables if t.status == TableStatus.ACTIVE)
        occupied = sum(1 for t in tables if t.is_occupied)
        maintenance = sum(1 for t in tables if t.status == TableStatus.MAINTENANCE)
        per_minute = [t for t in tables if t.pricing_method == PricingMethod.PER_MINUTE]
        frame_kitti = [t for t in tables if t.pricing_method == PricingMethod.FRAME_KITTI]

        def _avg(values) -> int:
            values = [float(v or 0) for v in values]
            return round(sum(values) / len(values)) if values else 0

        return {
            "total_tables": total,
            "active_tables": active,
            "occupied_tables": occupied,
            "maintenance_tables": maintenance,
            "available_tables": active - occupied,
            "occupancy_rate": round(occupied / active * 100, 1) if active else 0.0,
            "pricing_methods": {"per_minute": len(per_minute), "frame_kitti": len(frame_kitti)},
            "average_rates": {
                "per_minute": _avg(t.hourly_rate for t in per_minute),
                "frame": _avg(t.frame_rate for t in frame_kitti),
                "kitti": _avg(t.kitti_rate for t in frame_kitti),
            },
        }


table = CRUDTable()
