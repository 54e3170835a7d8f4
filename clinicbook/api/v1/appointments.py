from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...api.deps import get_current_user, get_admin_user, get_patient_user
from ...models.user import User
from ...services.appointment_service import AppointmentService
from ...schemas.appointment import (
    AppointmentCreate, AppointmentUpdate, AppointmentResponse,
    AppointmentDetail, MyAppointment, ReconcileReport
)

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.get("", response_model=List[AppointmentDetail])
async def list_appointments(
    db: Session = Depends(get_db),
    _: User = Depends(get_admin_user)
):
    """List every appointment with patient, doctor and slot resolved (admin only)."""
    return AppointmentService(db).list_appointments()

@router.get("/me", response_model=List[MyAppointment])
async def my_appointments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Appointments of the calling doctor or patient."""
    return AppointmentService(db).list_appointments_for_user(current_user)

@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    request: AppointmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_patient_user)
):
    """Book a slot with a doctor."""
    return AppointmentService(db).create_appointment(current_user, request)

@router.post("/reconcile", response_model=ReconcileReport)
async def reconcile(
    db: Session = Depends(get_db),
    _: User = Depends(get_admin_user)
):
    """Remove orphaned slots and report appointments without a slot (admin only)."""
    return AppointmentService(db).reconcile()

@router.put("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    request: AppointmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update purpose/status or reschedule an appointment."""
    service = AppointmentService(db)
    service.authorize(current_user, appointment_id)
    return service.update_appointment(appointment_id, request)

@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Cancel an appointment and release its slot."""
    service = AppointmentService(db)
    service.authorize(current_user, appointment_id)
    service.delete_appointment(appointment_id)
