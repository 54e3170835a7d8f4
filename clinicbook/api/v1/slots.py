from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import get_current_user, get_doctor_user, get_patient_user
from ...models.user import User
from ...services.slot_service import SlotService
from ...schemas.slot import SlotResponse

router = APIRouter(prefix="/slots", tags=["Slots"])

@router.get("", response_model=List[SlotResponse])
async def list_slots(
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user)
):
    """List every booked slot."""
    return SlotService(db).get_slot()

@router.get("/me", response_model=List[SlotResponse])
async def my_slots(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    """Booked slots of the calling doctor."""
    return SlotService(db).get_slots_by_doctor(current_user.id)

@router.get("/doctor", response_model=List[str])
async def booked_times(
    doctor_id: Optional[int] = None,
    slot_date: Optional[date] = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_patient_user)
):
    """Time labels already booked with a doctor on a given day."""
    return SlotService(db).get_booked_times(doctor_id, slot_date)

@router.get("/{slot_id}", response_model=SlotResponse)
async def get_slot(
    slot_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user)
):
    return SlotService(db).get_slot(slot_id)
