# snooker_api/api/v1/endpoints/sessions.py
import csv
import io
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from snooker_api import crud, schemas
from snooker_api.api import deps
from snooker_api.core.errors import SnookerError
from snooker_api.core.timeutils import utcnow
from snooker_api.db.models.game_session import GameSession, PaymentStatus, SessionStatus
from snooker_api.db.models.snooker_house import SnookerHouse
from snooker_api.db.models.user import User
from snooker_api.db.models.user_session import UserSession
from snooker_api.services.redis_service import house_channel, redis_client

router = APIRouter()


def _publish(background_tasks: BackgroundTasks, session: GameSession, event: str) -> None:
    background_tasks.add_task(
        redis_client.publish_event,
        house_channel(session.snooker_house_id),
        event,
        {
            "session_id": str(session.id),
            "table_id": str(session.table_id) if session.table_id else None,
            "status": session.status.value,
            "payment_status": session.payment_status.value,
            "total_cost": session.total_cost,
        },
    )


def _get_session(db: Session, session_id: uuid.UUID, owner: User) -> GameSession:
    try:
        return crud.game_session.get_owned(db, id=session_id, owner=owner)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.post("/start", response_model=schemas.GameSession, status_code=status.HTTP_201_CREATED)
def start_session(
    *,
    db: Session = Depends(deps.get_db),
    session_in: schemas.SessionStart,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(deps.get_current_verified_user),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    """
    Start a session on a free table. Table rates are copied onto the session.
    """
    try:
        session = crud.game_session.start(
            db, obj_in=session_in, owner=current_user, auth_session_id=auth_session.session_id
        )
    except SnookerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    _publish(background_tasks, session, "session_started")
    return schemas.GameSession.from_session(session)


@router.get("/active/{table_id}", response_model=schemas.GameSession)
def read_active_session(
    table_id: uuid.UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_verified_user),
) -> Any:
    try:
        crud.table.get_owned(db, id=table_id, owner=current_user)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    session = crud.game_session.get_open_for_table(db, table_id=table_id)
    if not session:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active session found for this table")
    return schemas.GameSession.from_session(session)


@router.get("/my-sessions", response_model=schemas.MySessions)
def read_my_sessions(
    db: Session = Depends(deps.get_db),
    house: SnookerHouse = Depends(deps.get_current_house),
    session_status: Optional[SessionStatus] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatus] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    table_id: Optional[uuid.UUID] = None,
    limit: int = Query(50, ge=1, le=200),
    skip: int = Query(0, ge=0),
) -> Any:
    """
    Sessions of the caller's house, newest first, with live cost and duration.
    """
    now = utcnow()
    sessions = crud.game_session.get_multi_by_house(
        db,
        house_id=house.id,
        skip=skip,
        limit=limit,
        status=session_status,
        payment_status=payment_status,
        date_from=date_from,
        date_to=date_to,
        table_id=table_id,
    )
    statistics = crud.game_session.get_my_sessions_statistics(
        db, house_id=house.id, returned=len(sessions), now=now
    )
    return schemas.MySessions(
        sessions=[schemas.GameSession.from_session(s, now) for s in sessions],
        statistics=statistics,
        pagination={"limit": limit, "skip": skip, "has_more": len(sessions) == limit},
    )


@router.get("/stats", response_model=Dict[str, Any])
def read_session_stats(
    db: Session = Depends(deps.get_db),
    house: SnookerHouse = Depends(deps.get_current_house),
) -> Any:
    return crud.game_session.get_stats(db, house_id=house.id)


@router.get("/payment-summary", response_model=schemas.PaymentSummary)
def read_payment_summary(
    db: Session = Depends(deps.get_db),
    house: SnookerHouse = Depends(deps.get_current_house),
    period: schemas.ReportPeriod = schemas.ReportPeriod.TODAY,
) -> Any:
    """
    Payment totals of the sessions completed in the period, plus the latest credit sessions.
    """
    return crud.game_session.get_payment_summary(db, house_id=house.id, period=period.value)


@router.get("/export")
def export_sessions(
    db: Session = Depends(deps.get_db),
    house: SnookerHouse = Depends(deps.get_current_house),
    export_format: str = Query("json", alias="format", pattern="^(json|csv)$"),
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    session_status: Optional[SessionStatus] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatus] = None,
) -> Any:
    """
    Flat session rows as JSON or as a CSV download.
    """
    now = utcnow()
    rows = crud.game_session.export(
        db,
        house_id=house.id,
        now=now,
        status=session_status,
        payment_status=payment_status,
        date_from=date_from,
        date_to=date_to,
    )
    if export_format == "json":
        return {"sessions": rows, "total": len(rows), "exported_at": now}

    buffer = io.StringIO()
    if rows:
        writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)
    filename = f"sessions_{now:%Y-%m-%d}.csv"
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/bulk-action", response_model=schemas.BulkActionResponse)
def bulk_action(
    *,
    db: Session = Depends(deps.get_db),
    bulk_in: schemas.BulkAction,
    current_user: User = Depends(deps.get_current_verified_user),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    """
    Cancel, delete (cancelled only) or export several sessions at once.
    Every id must belong to the caller.
    """
    try:
        return crud.game_session.bulk_action(
            db,
            session_ids=bulk_in.session_ids,
            action=bulk_in.action,
            owner=current_user,
            auth_session_id=auth_session.session_id,
        )
    except SnookerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.get("/table/{table_id}/history", response_model=schemas.TableHistory)
def read_table_history(
    table_id: uuid.UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_verified_user),
    session_status: Optional[SessionStatus] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatus] = None,
    limit: int = Query(20, ge=1, le=200),
    skip: int = Query(0, ge=0),
) -> Any:
    try:
        table = crud.table.get_owned(db, id=table_id, owner=current_user)
    except SnookerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    rows, total = crud.game_session.get_table_history(
        db, table=table, status=session_status, payment_status=payment_status, limit=limit, skip=skip
    )
    return schemas.TableHistory(
        table={"id": table.id, "table_number": table.table_number, "name": table.name},
        sessions=rows,
        pagination={"total": total, "limit": limit, "skip": skip, "has_more": skip + len(rows) < total},
    )


@router.get("/{session_id}", response_model=schemas.GameSession)
def read_session(
    session_id: uuid.UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_verified_user),
) -> Any:
    session = _get_session(db, session_id, current_user)
    return schemas.GameSession.from_session(session)


@router.put("/{session_id}", response_model=schemas.GameSession)
def update_session(
    *,
    db: Session = Depends(deps.get_db),
    session_id: uuid.UUID,
    session_in: schemas.SessionUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(deps.get_current_verified_user),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    """
    Pause, resume, set frames/kittis or append notes.
    """
    session = _get_session(db, session_id, current_user)
    try:
        session = crud.game_session.update(
            db, session=session, obj_in=session_in, auth_session_id=auth_session.session_id
        )
    except SnookerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    _publish(background_tasks, session, "session_updated")
    return schemas.GameSession.from_session(session)


@router.post("/{session_id}/pause", response_model=schemas.GameSession)
def pause_session(
    session_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_verified_user),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    session = _get_session(db, session_id, current_user)
    try:
        session = crud.game_session.pause(db, session=session, auth_session_id=auth_session.session_id)
    except SnookerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    _publish(background_tasks, session, "session_paused")
    return schemas.GameSession.from_session(session)


@router.post("/{session_id}/resume", response_model=schemas.GameSession)
def resume_session(
    session_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_verified_user),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    session = _get_session(db, session_id, current_user)
    try:
        session = crud.game_session.resume(db, session=session, auth_session_id=auth_session.session_id)
    except SnookerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    _publish(background_tasks, session, "session_resumed")
    return schemas.GameSession.from_session(session)


@router.post("/{session_id}/items", response_model=schemas.GameSession)
def add_session_item(
    *,
    db: Session = Depends(deps.get_db),
    session_id: uuid.UUID,
    item_in: schemas.ItemAdd,
    current_user: User = Depends(deps.get_current_verified_user),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    """
    Sell a product into the session; stock is taken immediately.
    """
    session = _get_session(db, session_id, current_user)
    try:
        session = crud.game_session.add_item(
            db,
            session=session,
            product_id=item_in.product_id,
            quantity=item_in.quantity,
            owner=current_user,
            auth_session_id=auth_session.session_id,
        )
    except SnookerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    return schemas.GameSession.from_session(session)


@router.delete("/{session_id}/items/{item_id}", response_model=schemas.GameSession)
def remove_session_item(
    session_id: uuid.UUID,
    item_id: uuid.UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_verified_user),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    session = _get_session(db, session_id, current_user)
    try:
        session = crud.game_session.remove_item(
            db, session=session, item_id=item_id, auth_session_id=auth_session.session_id
        )
    except SnookerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    return schemas.GameSession.from_session(session)


@router.post("/{session_id}/confirm-payment", response_model=schemas.GameSession)
def confirm_payment(
    *,
    db: Session = Depends(deps.get_db),
    session_id: uuid.UUID,
    payment_in: schemas.ConfirmPayment,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(deps.get_current_verified_user),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    """
    Settle the session as paid (method required) or leave it on credit.
    """
    session = _get_session(db, session_id, current_user)
    try:
        session = crud.game_session.confirm_payment(
            db,
            session=session,
            payment_status=payment_in.payment_status,
            payment_method=payment_in.payment_method,
            transaction_id=payment_in.transaction_id,
            payment_notes=payment_in.payment_notes,
            auth_session_id=auth_session.session_id,
        )
    except SnookerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    _publish(background_tasks, session, "payment_confirmed")
    return schemas.GameSession.from_session(session)


@router.post("/{session_id}/end", response_model=schemas.GameSession)
def end_session(
    *,
    db: Session = Depends(deps.get_db),
    session_id: uuid.UUID,
    end_in: Optional[schemas.EndSession] = None,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(deps.get_current_verified_user),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    """
    End the session and free its table.
    A session whose payment is still pending is refused with the amount due.
    """
    session = _get_session(db, session_id, current_user)
    try:
        session = crud.game_session.end(
            db,
            session=session,
            notes=end_in.notes if end_in else None,
            auth_session_id=auth_session.session_id,
        )
    except SnookerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    _publish(background_tasks, session, "session_ended")
    return schemas.GameSession.from_session(session)


@router.delete("/{session_id}", response_model=schemas.GameSession)
def cancel_session(
    session_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_verified_user),
    auth_session: UserSession = Depends(deps.get_current_auth_session),
) -> Any:
    """
    Cancel the session: items go back to stock, payments are reset and the table is freed.
    """
    session = _get_session(db, session_id, current_user)
    try:
        session = crud.game_session.cancel(db, session=session, auth_session_id=auth_session.session_id)
    except SnookerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    _publish(background_tasks, session, "session_cancelled")
    return schemas.GameSession.from_session(session)
