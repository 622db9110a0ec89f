"""
Functions API Router
Server-side functions: the missed-medication email and the scheduled sweep
"""

from typing import Optional
from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from config import settings
import models
from api.deps import get_db, get_current_account, require_sweep_token, services
from errors import ErrorKind, ServiceError
from api.schemas.functions import (
    MissedMedicationEmailRequest,
    MissedMedicationEmailResponse,
    DispatchOutcomeResponse,
    SweepRequest,
    SweepResponse,
)


router = APIRouter(prefix="/functions", tags=["functions"])


@router.post("/send-missed-medication-email", response_model=MissedMedicationEmailResponse)
async def send_missed_medication_email(
    request: MissedMedicationEmailRequest,
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Email the account about a missed dose and record the notification

    - **account_id**: Must be the signed-in account
    - **medication_name**: Medication that was missed
    - **time_slot**: Slot label, optional
    - **timestamp**: When the miss was detected (defaults to now)
    """
    notification_service = services.get_notification_service()

    outcome = await notification_service.send_missed_medication_email(
        caller_account_id=account.id,
        account_id=request.account_id,
        medication_name=request.medication_name,
        time_slot=request.time_slot,
        timestamp=request.timestamp,
        db=db
    )

    if outcome.skipped:
        message = "Notification already sent for this dose today"
    elif outcome.email_sent:
        message = "Email sent successfully"
    else:
        message = outcome.error or "Notification recorded"

    return MissedMedicationEmailResponse(
        success=outcome.created or outcome.skipped or outcome.email_sent,
        message=message,
        outcome=DispatchOutcomeResponse(**outcome.to_dict())
    )


@router.post(
    "/check-missed-medications",
    response_model=SweepResponse,
    dependencies=[Depends(require_sweep_token)]
)
async def check_missed_medications(
    request: Optional[SweepRequest] = Body(None),
    db: Session = Depends(get_db)
):
    """
    Run the missed-dose sweep once; a no-op outside the window after a deadline

    Called by the scheduler with the `X-Sweep-Token` header. The `at` clock
    override is accepted only in debug mode.
    """
    at = request.at if request else None
    if at is not None and not settings.DEBUG:
        raise ServiceError(ErrorKind.VALIDATION, "The sweep clock can only be overridden in debug mode")

    sweep_service = services.get_sweep_service()
    report = await sweep_service.run_sweep(now=at, db=db)
    return SweepResponse(**report.to_dict())
