# snooker_api/crud/crud_game_session.py
"""
Lifecycle of table game sessions.

The cost/payment rules live on the GameSession model; this module checks
ownership and table availability, moves stock, frees tables and commits
exactly once per operation.
"""
import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from snooker_api.core.errors import (
    ForbiddenError,
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
)
from snooker_api.core.permissions import ensure_owner
from snooker_api.core.timeutils import ensure_aware, period_start, start_of_day, utcnow
from snooker_api.crud.crud_product import decrement_stock, product as crud_product, restore_stock
from snooker_api.crud.crud_table import table as crud_table
from snooker_api.db.models.game_session import (
    OPEN_STATUSES,
    GameSession,
    PaymentStatus,
    SessionPaymentMethod,
    SessionStatus,
    to_decimal,
)
from snooker_api.db.models.snooker_table import PricingMethod, SnookerTable, TableStatus
from snooker_api.db.models.user import User
from snooker_api.schemas.game_session import BulkActionType, SessionAction, SessionStart, SessionUpdate

logger = logging.getLogger(__name__)

MINUTE_RATE_PLACES = Decimal("0.0001")


def _round(value) -> int:
    return round(float(value or 0))


class CRUDGameSession:
    def get(self, db: Session, id: uuid.UUID) -> Optional[GameSession]:
        return db.query(GameSession).filter(GameSession.id == id).first()

    def get_owned(self, db: Session, *, id: uuid.UUID, owner: User) -> GameSession:
        session = self.get(db, id)
        if not session:
            raise NotFoundError("Session not found")
        ensure_owner(owner, session, "Access denied. You can only manage your own sessions")
        return session

    def get_open_for_table(self, db: Session, *, table_id: uuid.UUID) -> Optional[GameSession]:
        return (
            db.query(GameSession)
            .filter(GameSession.table_id == table_id, GameSession.status.in_(OPEN_STATUSES))
            .order_by(GameSession.start_time.desc())
            .first()
        )

    def _save(self, db: Session, session: GameSession, auth_session_id: Optional[str]) -> GameSession:
        if auth_session_id:
            session.last_modified_by_session = auth_session_id
        db.add(session)
        db.commit()
        db.refresh(session)
        return session

    def _free_table(self, session: GameSession) -> None:
        table = session.table
        if table is not None:
            table.is_occupied = False
            table.current_session_id = None

    # Lifecycle

    def start(
        self, db: Session, *, obj_in: SessionStart, owner: User,
        auth_session_id: Optional[str] = None, now: Optional[datetime] = None,
    ) -> GameSession:
        now = now or utcnow()
        table = crud_table.get(db, obj_in.table_id)
        if not table:
            raise NotFoundError("Table not found")
        ensure_owner(owner, table, "Access denied. You can only manage your own tables")
        if table.status != TableStatus.ACTIVE:
            raise InvalidStateError("Table is not available for booking")
        if table.is_occupied:
            raise InvalidStateError("Table is already occupied")
        if self.get_open_for_table(db, table_id=table.id):
            raise InvalidStateError("Table already has an active session")

        session = GameSession(
            id=uuid.uuid4(),
            owner_id=owner.id,
            table_id=table.id,
            snooker_house_id=table.snooker_house_id,
            customer_name=(obj_in.customer_name or "").strip() or "Guest",
            customer_phone=obj_in.customer_phone,
            notes=obj_in.notes or "",
            start_time=now,
            created_at=now,
            status=SessionStatus.ACTIVE,
            payment_status=PaymentStatus.PENDING,
            total_paused_seconds=0.0,
            frames=0,
            kittis=0,
            pricing_method=table.pricing_method,
        )
        if table.pricing_method == PricingMethod.PER_MINUTE:
            session.hourly_rate = table.hourly_rate
            session.minute_rate = (to_decimal(table.hourly_rate) / 60).quantize(MINUTE_RATE_PLACES)
        else:
            session.frame_rate = table.frame_rate
            session.kitti_rate = table.kitti_rate
        session.table = table
        session.update_total_cost(now)

        table.is_occupied = True
        table.current_session_id = str(session.id)
        self._save(db, session, auth_session_id)
        logger.info(f"Session {session.id} started on table {table.table_number} for {session.customer_name}")
        return session

    def add_item(
        self, db: Session, *, session: GameSession, product_id: uuid.UUID, quantity: int, owner: User,
        auth_session_id: Optional[str] = None, now: Optional[datetime] = None,
    ) -> GameSession:
        now = now or utcnow()
        if not session.is_open:
            raise InvalidStateError("Can only add items to active or paused sessions")
        product = crud_product.get(db, product_id)
        if not product:
            raise NotFoundError("Product not found")
        ensure_owner(owner, product, "Access denied. You can only sell your own products")

        session.add_item(product, quantity, now)
        try:
            decrement_stock(db, product, quantity)
        except InsufficientStockError:
            db.rollback()
            raise
        session.update_total_cost(now)
        self._save(db, session, auth_session_id)
        logger.info(f"Added {quantity} x {product.name} to session {session.id}")
        return session

    def remove_item(
        self, db: Session, *, session: GameSession, item_id: uuid.UUID,
        auth_session_id: Optional[str] = None, now: Optional[datetime] = None,
    ) -> GameSession:
        item = session.remove_item(item_id)
        restore_stock(db, item.product_id, item.quantity)
        session.update_total_cost(now)
        self._save(db, session, auth_session_id)
        logger.info(f"Removed {item.quantity} x {item.product_name} from session {session.id}")
        return session

    def pause(
        self, db: Session, *, session: GameSession,
        auth_session_id: Optional[str] = None, now: Optional[datetime] = None,
    ) -> GameSession:
        session.pause(now)
        session.update_total_cost(now)
        self._save(db, session, auth_session_id)
        logger.info(f"Session {session.id} paused")
        return session

    def resume(
        self, db: Session, *, session: GameSession,
        auth_session_id: Optional[str] = None, now: Optional[datetime] = None,
    ) -> GameSession:
        session.resume(now)
        session.update_total_cost(now)
        self._save(db, session, auth_session_id)
        logger.info(f"Session {session.id} resumed")
        return session

    def update(
        self, db: Session, *, session: GameSession, obj_in: SessionUpdate,
        auth_session_id: Optional[str] = None, now: Optional[datetime] = None,
    ) -> GameSession:
        if obj_in.action == SessionAction.PAUSE:
            session.pause(now)
        elif obj_in.action == SessionAction.RESUME:
            session.resume(now)
        elif obj_in.action == SessionAction.UPDATE_FRAMES_KITTIS:
            session.update_frames_kittis(obj_in.frames, obj_in.kittis)
        else:
            session.add_notes(obj_in.notes or "")
        session.update_total_cost(now)
        self._save(db, session, auth_session_id)
        logger.info(f"Session {session.id} updated ({obj_in.action.value})")
        return session

    def confirm_payment(
        self,
        db: Session,
        *,
        session: GameSession,
        payment_status: PaymentStatus,
        payment_method: Optional[SessionPaymentMethod] = None,
        transaction_id: Optional[str] = None,
        payment_notes: Optional[str] = None,
        auth_session_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> GameSession:
        session.confirm_payment(payment_status, payment_method, transaction_id, payment_notes, now)
        self._save(db, session, auth_session_id)
        logger.info(
            f"Payment confirmed for session {session.id}: {session.payment_status.value}, "
            f"paid {session.total_paid_amount} of {session.total_cost}"
        )
        return session

    def end(
        self, db: Session, *, session: GameSession, notes: Optional[str] = None,
        auth_session_id: Optional[str] = None, now: Optional[datetime] = None,
    ) -> GameSession:
        session.end(notes, now)
        self._free_table(session)
        self._save(db, session, auth_session_id)
        logger.info(f"Session {session.id} ended: total {session.total_cost}, {session.payment_status.value}")
        return session

    def _cancel(self, db: Session, session: GameSession, now: Optional[datetime]) -> None:
        session.cancel(now)
        for item in session.items:
            restore_stock(db, item.product_id, item.quantity)
        self._free_table(session)

    def cancel(
        self, db: Session, *, session: GameSession,
        auth_session_id: Optional[str] = None, now: Optional[datetime] = None,
    ) -> GameSession:
        self._cancel(db, session, now)
        self._save(db, session, auth_session_id)
        logger.info(f"Session {session.id} cancelled, stock restored for {len(session.items)} items")
        return session

    # Queries

    def _house_query(
        self,
        db: Session,
        *,
        house_id: uuid.UUID,
        status: Optional[SessionStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        table_id: Optional[uuid.UUID] = None,
    ):
        query = db.query(GameSession).filter(GameSession.snooker_house_id == house_id)
        if status:
            query = query.filter(GameSession.status == status)
        if payment_status:
            query = query.filter(GameSession.payment_status == payment_status)
        if date_from:
            query = query.filter(GameSession.created_at >= date_from)
        if date_to:
            query = query.filter(GameSession.created_at <= date_to)
        if table_id:
            query = query.filter(GameSession.table_id == table_id)
        return query

    def get_multi_by_house(
        self, db: Session, *, house_id: uuid.UUID, skip: int = 0, limit: int = 50, **filters
    ) -> List[GameSession]:
        return (
            self._house_query(db, house_id=house_id, **filters)
            .order_by(GameSession.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def _count_by(self, db: Session, house_id: uuid.UUID, column) -> Dict[str, int]:
        rows = (
            db.query(column, func.count(GameSession.id))
            .filter(GameSession.snooker_house_id == house_id)
            .group_by(column)
            .all()
        )
        return {getattr(key, "value", key): count for key, count in rows}

    def get_my_sessions_statistics(
        self, db: Session, *, house_id: uuid.UUID, returned: int, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        now = now or utcnow()
        by_status = self._count_by(db, house_id, GameSession.status)
        by_payment = self._count_by(db, house_id, GameSession.payment_status)
        today = (
            db.query(func.count(GameSession.id))
            .filter(GameSession.snooker_house_id == house_id, GameSession.created_at >= start_of_day(now))
            .scalar()
        )
        return {
            "total_sessions": sum(by_status.values()),
            "active_sessions": by_status.get(SessionStatus.ACTIVE.value, 0),
            "paused_sessions": by_status.get(SessionStatus.PAUSED.value, 0),
            "today_sessions": today,
            "returned": returned,
            "payment_breakdown": {s.value: by_payment.get(s.value, 0) for s in PaymentStatus},
        }

    def get_stats(self, db: Session, *, house_id: uuid.UUID, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        sessions = db.query(GameSession).filter(GameSession.snooker_house_id == house_id).all()
        today = start_of_day(now)

        def created_since(start: datetime) -> int:
            return sum(1 for s in sessions if s.created_at and ensure_aware(s.created_at) >= start)

        completed = [s for s in sessions if s.status == SessionStatus.COMPLETED]
        completed_today = [s for s in completed if s.end_time and ensure_aware(s.end_time) >= today]

        def sum_of(rows, attr: str) -> float:
            return sum(float(getattr(s, attr) or 0) for s in rows)

        def paid_amount(rows) -> float:
            return sum(float(s.total_paid_amount or 0) for s in rows if s.payment_status == PaymentStatus.PAID)

        def credit_amount(rows) -> float:
            return sum(float(s.total_cost or 0) for s in rows if s.payment_status == PaymentStatus.CREDIT)

        methods = {m.value: {"count": 0, "amount": 0} for m in SessionPaymentMethod}
        for s in completed:
            if s.payment_status == PaymentStatus.PAID and s.payment_method:
                entry = methods[s.payment_method.value]
                entry["count"] += 1
                entry["amount"] += float(s.total_paid_amount or 0)
        for entry in methods.values():
            entry["amount"] = _round(entry["amount"])

        table_counts: Dict[Any, int] = {}
        for s in sessions:
            if s.table_id:
                table_counts[s.table_id] = table_counts.get(s.table_id, 0) + 1
        most_active = None
        if table_counts:
            table_id, count = max(table_counts.items(), key=lambda kv: kv[1])
            table = db.query(SnookerTable).filter(SnookerTable.id == table_id).first()
            most_active = {"name": table.name if table else "Unknown", "session_count": count}

        total_revenue = sum_of(completed, "total_cost")
        return {
            "sessions": {
                "total": len(sessions),
                "active": sum(1 for s in sessions if s.status == SessionStatus.ACTIVE),
                "paused": sum(1 for s in sessions if s.status == SessionStatus.PAUSED),
                "completed": len(completed),
                "cancelled": sum(1 for s in sessions if s.status == SessionStatus.CANCELLED),
                "today": created_since(today),
                "this_week": created_since(period_start("week", now)),
                "this_month": created_since(period_start("month", now)),
                "this_year": created_since(period_start("year", now)),
            },
            "revenue": {
                "total_game": _round(sum_of(completed, "game_cost")),
                "total_items": _round(sum_of(completed, "total_items_revenue")),
                "total_items_profit": _round(sum_of(completed, "total_items_profit")),
                "total_revenue": _round(total_revenue),
                "average": _round(total_revenue / len(completed)) if completed else 0,
                "today_game": _round(sum_of(completed_today, "game_cost")),
                "today_items": _round(sum_of(completed_today, "total_items_revenue")),
                "today_items_profit": _round(sum_of(completed_today, "total_items_profit")),
                "today_total": _round(sum_of(completed_today, "total_cost")),
            },
            "payments": {
                "paid": sum(1 for s in sessions if s.payment_status == PaymentStatus.PAID),
                "credit": sum(1 for s in sessions if s.payment_status == PaymentStatus.CREDIT),
                "pending": sum(1 for s in sessions if s.payment_status == PaymentStatus.PENDING),
                "total_paid_amount": _round(paid_amount(completed)),
                "total_credit_amount": _round(credit_amount(completed)),
                "total_outstanding": _round(sum_of(completed, "remaining_amount")),
                "today_paid_amount": _round(paid_amount(completed_today)),
                "today_credit_amount": _round(credit_amount(completed_today)),
                "payment_methods": methods,
            },
            "items": {
                "total_sold": sum(s.total_items or 0 for s in completed),
                "today_sold": sum(s.total_items or 0 for s in completed_today),
                "total_profit": _round(sum_of(completed, "total_items_profit")),
                "today_profit": _round(sum_of(completed_today, "total_items_profit")),
            },
            "tables": {"most_active": most_active},
        }

    def get_payment_summary(
        self, db: Session, *, house_id: uuid.UUID, period: str = "today", now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        now = now or utcnow()
        start = period_start(period, now)
        completed = (
            db.query(GameSession)
            .filter(
                GameSession.snooker_house_id == house_id,
                GameSession.status == SessionStatus.COMPLETED,
                GameSession.end_time >= start,
                GameSession.end_time <= now,
            )
            .all()
        )
        totals = {
            "paid": 0, "credit": 0, "pending": 0,
            "total_amount": 0.0, "paid_amount": 0.0, "credit_amount": 0.0, "outstanding_amount": 0.0,
        }
        methods = {m.value: {"count": 0, "amount": 0.0} for m in SessionPaymentMethod}
        for s in completed:
            totals[s.payment_status.value] += 1
            totals["total_amount"] += float(s.total_cost or 0)
            if s.payment_status == PaymentStatus.PAID:
                totals["paid_amount"] += float(s.total_paid_amount or 0)
                if s.payment_method:
                    methods[s.payment_method.value]["count"] += 1
                    methods[s.payment_method.value]["amount"] += float(s.total_paid_amount or 0)
            elif s.payment_status == PaymentStatus.CREDIT:
                totals["credit_amount"] += float(s.total_cost or 0)
                totals["outstanding_amount"] += float(s.remaining_amount or 0)
        for key in ("total_amount", "paid_amount", "credit_amount", "outstanding_amount"):
            totals[key] = _round(totals[key])
        for entry in methods.values():
            entry["amount"] = _round(entry["amount"])

        recent_credits = (
            db.query(GameSession)
            .filter(
                GameSession.snooker_house_id == house_id,
                GameSession.status == SessionStatus.COMPLETED,
                GameSession.payment_status == PaymentStatus.CREDIT,
            )
            .order_by(GameSession.end_time.desc())
            .limit(10)
            .all()
        )
        return {
            "period": period,
            "date_range": {"start_date": start, "end_date": now},
            "totals": totals,
            "payment_methods": methods,
            "credit_sessions": [
                {
                    "id": str(s.id),
                    "customer_name": s.customer_name,
                    "table_name": s.table.name if s.table else None,
                    "amount": float(s.total_cost or 0),
                    "remaining_amount": float(s.remaining_amount or 0),
                    "end_time": s.end_time,
                    "notes": s.payment_notes,
                }
                for s in recent_credits
            ],
        }

    def get_table_history(
        self,
        db: Session,
        *,
        table: SnookerTable,
        status: Optional[SessionStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        limit: int = 20,
        skip: int = 0,
        now: Optional[datetime] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        query = db.query(GameSession).filter(GameSession.table_id == table.id)
        if status:
            query = query.filter(GameSession.status == status)
        if payment_status:
            query = query.filter(GameSession.payment_status == payment_status)
        total = query.count()
        sessions = query.order_by(GameSession.created_at.desc()).offset(skip).limit(limit).all()
        rows = []
        for s in sessions:
            final_cost = s.total_cost if s.status == SessionStatus.COMPLETED else s.calculate_current_cost(now)
            rows.append({
                "id": str(s.id),
                "customer_name": s.customer_name,
                "status": s.status.value,
                "payment_status": s.payment_status.value,
                "start_time": s.start_time,
                "end_time": s.end_time,
                "total_items": s.total_items,
                "final_cost": float(final_cost or 0),
                "duration_minutes": s.duration_minutes(now),
            })
        return rows, total

    def export_row(self, session: GameSession, now: Optional[datetime] = None) -> Dict[str, Any]:
        table = session.table
        total_cost = (
            session.total_cost if session.status == SessionStatus.COMPLETED
            else session.calculate_current_cost(now)
        )
        return {
            "session_id": str(session.id),
            "table_name": table.name if table else "",
            "table_number": table.table_number if table else "",
            "customer_name": session.customer_name,
            "customer_phone": session.customer_phone or "",
            "status": session.status.value,
            "pricing_method": session.pricing_method.value,
            "start_time": session.start_time.isoformat() if session.start_time else "",
            "end_time": session.end_time.isoformat() if session.end_time else "",
            "duration_minutes": session.duration_minutes(now),
            "frames": session.frames or 0,
            "kittis": session.kittis or 0,
            "game_cost": float(session.game_cost or 0),
            "items_count": len(session.items),
            "items_revenue": float(session.total_items_revenue or 0),
            "items_profit": float(session.total_items_profit or 0),
            "total_cost": float(total_cost or 0),
            "payment_status": session.payment_status.value,
            "payment_method": session.payment_method_label or "",
            "total_paid_amount": float(session.total_paid_amount or 0),
            "remaining_amount": float(session.remaining_amount or 0),
            "payment_completed_at": session.payment_completed_at.isoformat() if session.payment_completed_at else "",
            "payment_notes": session.payment_notes or "",
            "notes": session.notes or "",
            "created_at": session.created_at.isoformat() if session.created_at else "",
        }

    def export(
        self, db: Session, *, house_id: uuid.UUID, now: Optional[datetime] = None, **filters
    ) -> List[Dict[str, Any]]:
        sessions = self._house_query(db, house_id=house_id, **filters).order_by(GameSession.created_at.desc()).all()
        return [self.export_row(s, now) for s in sessions]

    def bulk_action(
        self,
        db: Session,
        *,
        session_ids: List[uuid.UUID],
        action: BulkActionType,
        owner: User,
        auth_session_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        unique_ids = list(dict.fromkeys(session_ids))
        sessions = (
            db.query(GameSession)
            .filter(GameSession.id.in_(unique_ids), GameSession.owner_id == owner.id)
            .all()
        )
        if len(sessions) != len(unique_ids):
            raise ForbiddenError("Some sessions do not belong to you or do not exist")

        if action == BulkActionType.EXPORT:
            return {
                "action": action,
                "results": [],
                "summary": {"total": len(sessions), "successful": len(sessions), "failed": 0},
                "data": [self.export_row(s, now) for s in sessions],
            }

        results = []
        for s in sessions:
            if action == BulkActionType.CANCEL:
                if s.status in OPEN_STATUSES:
                    self._cancel(db, s, now)
                    if auth_session_id:
                        s.last_modified_by_session = auth_session_id
                    db.add(s)
                    results.append({"session_id": s.id, "success": True, "message": "Session cancelled"})
                else:
                    results.append({"session_id": s.id, "success": False, "message": "Already completed or cancelled"})
            elif s.status == SessionStatus.CANCELLED:
                db.delete(s)
                results.append({"session_id": s.id, "success": True, "message": "Session deleted"})
            else:
                results.append({"session_id": s.id, "success": False, "message": "Can only delete cancelled sessions"})
        db.commit()

        successful = sum(1 for r in results if r["success"])
        logger.info(f"Bulk {action.value}: {successful} successful, {len(results) - successful} failed")
        return {
            "action": action,
            "results": results,
            "summary": {"total": len(results), "successful": successful, "failed": len(results) - successful},
            "data": None,
        }


game_session = CRUDGameSession()
