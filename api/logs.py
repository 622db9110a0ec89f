"""
Medication Logs API Router
Endpoints for marking doses, today's status and live log updates
"""

import asyncio
import json
import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

import models
from models import MarkedBy
from actions.status_reconciler import summarize
from api.deps import get_db, get_current_account, get_role, services
from api.schemas.log import (
    MarkTakenRequest,
    UnmarkRequest,
    MedicationLogResponse,
    UnmarkResponse,
    DailyStatusEntry,
    DailyStatusSummary,
    TodayStatusResponse,
    OverdueEntry,
    RemindersResponse,
)
from errors import ServiceError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/logs", tags=["logs"])

# Seconds between keep-alive comments on the event stream
STREAM_KEEPALIVE_SECONDS = 15.0


@router.post("/mark", response_model=MedicationLogResponse)
async def mark_taken(
    request: MarkTakenRequest,
    account: models.Account = Depends(get_current_account),
    role: MarkedBy = Depends(get_role),
    db: Session = Depends(get_db)
):
    """
    Mark a medication slot taken

    - **medication_id**: Medication ID
    - **time_slot**: Slot label, e.g. "Morning"
    - **log_date**: Day to mark (defaults to today)
    - **proof_photo**: Optional base64 data URL of a proof photo
    """
    medication_service = services.get_medication_service()

    proof_photo_url = None
    if request.proof_photo:
        storage = services.get_proof_photo_storage()
        upload = await storage.upload_proof_photo(
            request.proof_photo, account.id, request.medication_id, request.time_slot
        )
        if not upload.ok:
            raise ServiceError(upload.kind, upload.error)
        proof_photo_url = upload.value

    return await medication_service.mark_taken(
        account.id,
        request.medication_id,
        request.time_slot,
        proof_photo_url=proof_photo_url,
        marked_by=role,
        log_date=request.log_date,
        db=db
    )


@router.post("/unmark", response_model=UnmarkResponse)
async def unmark_taken(
    request: UnmarkRequest,
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Revert a slot to pending
    """
    medication_service = services.get_medication_service()
    log_date = request.log_date or date.today()

    removed = await medication_service.unmark_taken(
        account.id, request.medication_id, request.time_slot, log_date=log_date, db=db
    )
    return UnmarkResponse(
        medication_id=request.medication_id,
        time_slot=request.time_slot,
        log_date=log_date,
        removed=removed
    )


@router.get("/today", response_model=TodayStatusResponse)
async def get_today_status(
    day: Optional[date] = Query(None, description="Day to reconcile (defaults to today)"),
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    One entry per active medication slot with its taken/pending status
    """
    medication_service = services.get_medication_service()
    day = day or date.today()

    items = await medication_service.get_today_status(account.id, today=day, db=db)
    return TodayStatusResponse(
        date=day,
        items=[DailyStatusEntry(**item.to_dict()) for item in items],
        summary=DailyStatusSummary(**summarize(items))
    )


@router.get("/reminders", response_model=RemindersResponse)
async def get_reminders(
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Pending slots whose deadline has already passed today
    """
    medication_service = services.get_medication_service()
    now = datetime.now()

    overdue = await medication_service.check_reminders(account.id, now=now, db=db)
    return RemindersResponse(
        checked_at=now,
        overdue=[OverdueEntry(**item.to_dict()) for item in overdue]
    )


@router.get("/stream")
async def stream_logs(
    request: Request,
    day: Optional[date] = Query(None, description="Only forward events for this day"),
    account: models.Account = Depends(get_current_account)
):
    """
    Server-sent events for log changes on this account
    """
    broadcaster = services.get_log_broadcaster()
    subscription = broadcaster.subscribe(account.id)

    async def event_source():
        try:
            yield ": connected\n\n"
            while not await request.is_disconnected():
                try:
                    event = await asyncio.wait_for(subscription.get(day), timeout=STREAM_KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield f"event: {event.action}\ndata: {json.dumps(event.to_dict())}\n\n"
        finally:
            subscription.close()
            logger.debug(f"Log stream closed for account {account.id}")

    return StreamingResponse(event_source(), media_type="text/event-stream")


@router.get("/", response_model=List[MedicationLogResponse])
async def get_logs(
    start_date: date = Query(..., description="First day, inclusive"),
    end_date: date = Query(..., description="Last day, inclusive"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Logs in a date range, newest day first
    """
    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before start_date"
        )
    medication_service = services.get_medication_service()
    return await medication_service.get_logs(account.id, start_date, end_date, limit=limit, db=db)
