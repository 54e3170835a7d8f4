from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

from ..models.appointment import AppointmentStatus

class AppointmentCreate(BaseModel):
    doctor_id: Optional[int] = None
    slot_date: Optional[date] = None
    slot_time: Optional[str] = None
    purpose: Optional[str] = None

class AppointmentUpdate(BaseModel):
    slot_date: Optional[date] = None
    slot_time: Optional[str] = None
    purpose: Optional[str] = None
    status: Optional[AppointmentStatus] = None

class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: Optional[int] = None
    doctor_id: Optional[int] = None
    slot_id: Optional[int] = None
    status: AppointmentStatus
    purpose: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class PersonSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str

class DoctorSummary(PersonSummary):
    specialization: Optional[str] = None

class SlotSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    slot_date: date
    slot_time: str

class AppointmentDetail(BaseModel):
    """Admin listing row; related records are None when dangling."""
    id: int
    status: AppointmentStatus
    purpose: Optional[str] = None
    patient: Optional[PersonSummary] = None
    doctor: Optional[DoctorSummary] = None
    slot: Optional[SlotSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class MyAppointment(BaseModel):
    id: int
    counterparty_name: str
    counterparty_email: str
    date: date
    time: str
    purpose: str
    status: AppointmentStatus

class ReconcileReport(BaseModel):
    orphaned_slots_removed: int
    dangling_appointments: List[int]
