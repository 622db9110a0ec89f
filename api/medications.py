"""
Medications API Router
Endpoints for medication management
"""

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

import models
from api.deps import get_db, get_current_account, require_caretaker, services
from api.schemas.medication import (
    MedicationCreate,
    MedicationUpdate,
    MedicationResponse,
    MedicationList,
)


router = APIRouter(prefix="/medications", tags=["medications"])


@router.post(
    "/",
    response_model=MedicationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_caretaker)]
)
async def create_medication(
    medication_data: MedicationCreate,
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Add a new medication (caretaker only)

    - **name**: Medication name
    - **dosage**: Dosage (e.g., "500mg")
    - **time_slots**: One or more of Morning, Afternoon, Evening, Night
    - **food_timing**: before, after, with or empty
    """
    medication_service = services.get_medication_service()

    return await medication_service.add_medication(
        account_id=account.id,
        name=medication_data.name,
        dosage=medication_data.dosage,
        time_slots=[slot.value for slot in medication_data.time_slots],
        frequency=medication_data.frequency,
        food_timing=medication_data.food_timing,
        notes=medication_data.notes,
        db=db
    )


@router.get("/", response_model=MedicationList)
async def list_medications(
    active_only: bool = Query(True, description="Only return active medications"),
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Get medications for the signed-in account, newest first
    """
    medication_service = services.get_medication_service()

    medications = await medication_service.get_medications(account.id, active_only=active_only, db=db)
    return MedicationList(
        medications=[MedicationResponse.model_validate(m) for m in medications],
        total=len(medications)
    )


@router.get("/{medication_id}", response_model=MedicationResponse)
async def get_medication(
    medication_id: int,
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    medication_service = services.get_medication_service()
    return await medication_service.get_medication(account.id, medication_id, db=db)


@router.put(
    "/{medication_id}",
    response_model=MedicationResponse,
    dependencies=[Depends(require_caretaker)]
)
async def update_medication(
    medication_id: int,
    update_data: MedicationUpdate,
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Update medication details (caretaker only)
    """
    medication_service = services.get_medication_service()

    updates = update_data.model_dump(exclude_unset=True)
    if updates.get("time_slots") is not None:
        updates["time_slots"] = [slot.value for slot in update_data.time_slots]

    return await medication_service.update_medication(account.id, medication_id, updates, db=db)


@router.delete(
    "/{medication_id}",
    response_model=MedicationResponse,
    dependencies=[Depends(require_caretaker)]
)
async def delete_medication(
    medication_id: int,
    account: models.Account = Depends(get_current_account),
    db: Session = Depends(get_db)
):
    """
    Deactivate a medication (caretaker only); its logs are kept
    """
    medication_service = services.get_medication_service()
    return await medication_service.delete_medication(account.id, medication_id, db=db)
