from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..models.appointment import Appointment, AppointmentStatus
from ..models.slot import Slot
from ..models.user import User

class AppointmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def _with_relations(self):
        return self.db.query(Appointment).options(
            joinedload(Appointment.patient),
            joinedload(Appointment.doctor).joinedload(User.doctor_profile),
            joinedload(Appointment.slot)
        )

    def find_all(self) -> List[Appointment]:
        return self._with_relations().order_by(Appointment.id).all()

    def find_by_id(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(Appointment.id == appointment_id).first()

    def find_by_patient(self, patient_id: int) -> List[Appointment]:
        return self._with_relations().filter(
            Appointment.patient_id == patient_id
        ).order_by(Appointment.id).all()

    def find_by_doctor(self, doctor_id: int) -> List[Appointment]:
        return self._with_relations().filter(
            Appointment.doctor_id == doctor_id
        ).order_by(Appointment.id).all()

    def create(self, patient_id: int, doctor_id: int, slot: Slot, purpose: Optional[str]) -> Appointment:
        appointment = Appointment(
            patient_id=patient_id,
            doctor_id=doctor_id,
            slot_id=slot.id,
            purpose=purpose,
            status=AppointmentStatus.BOOKED
        )
        self.db.add(appointment)
        self.db.flush()
        return appointment

    def update(self, appointment: Appointment, **fields) -> Appointment:
        for key, value in fields.items():
            setattr(appointment, key, value)
        appointment.updated_at = func.now()
        self.db.flush()
        return appointment

    def delete(self, appointment: Appointment):
        self.db.delete(appointment)

    def find_dangling(self) -> List[Appointment]:
        """Appointments whose slot reference is null or points at no row."""
        return self.db.query(Appointment).outerjoin(
            Slot, Appointment.slot_id == Slot.id
        ).filter(Slot.id.is_(None)).order_by(Appointment.id).all()
