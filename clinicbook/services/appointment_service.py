from datetime import date, datetime, time
from typing import List
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..core.security import UserRole
from ..models.appointment import Appointment
from ..models.user import User
from ..repositories import AppointmentRepository, SlotRepository
from ..schemas.appointment import (
    AppointmentCreate, AppointmentUpdate, AppointmentDetail, MyAppointment,
    PersonSummary, DoctorSummary, SlotSummary, ReconcileReport
)

logger = logging.getLogger(__name__)

# Accepted spellings of a slot time label, tried in order
TIME_FORMATS = ("%I:%M %p", "%I:%M%p", "%H:%M", "%H:%M:%S")

# Stored form of every slot label, so one clock time has one spelling
SLOT_TIME_FORMAT = "%I:%M %p"

def parse_slot_time(label: str) -> time:
    text = label.strip().upper()
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"Invalid slot time '{label}'")

def normalize_slot_time(label: str) -> str:
    return parse_slot_time(label).strftime(SLOT_TIME_FORMAT)

def slot_datetime(slot_date: date, slot_time: str) -> datetime:
    """Combine a calendar day and a time label into the slot's start."""
    return datetime.combine(slot_date, parse_slot_time(slot_time))

class AppointmentService:
    """Booking engine: owns the slot/appointment pairing.

    Every appointment owns exactly one slot row. Slot rows are created only
    for a booking and removed when the booking moves away or is deleted, so
    "slot exists" and "time is taken" mean the same thing.
    """

    def __init__(self, db: Session):
        self.db = db
        self.appointments = AppointmentRepository(db)
        self.slots = SlotRepository(db)

    def create_appointment(self, actor: User, request: AppointmentCreate) -> Appointment:
        missing = [
            name for name in ("doctor_id", "slot_date", "slot_time")
            if getattr(request, name) in (None, "")
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        label = normalize_slot_time(request.slot_time)
        starts_at = self._future_slot(request.slot_date, label)

        doctor = self.db.query(User).filter(
            User.id == request.doctor_id,
            User.role == UserRole.DOCTOR
        ).first()
        if not doctor:
            raise NotFoundError("Doctor not found")

        if self.slots.find(doctor.id, request.slot_date, label):
            logger.warning(f"Booking conflict for doctor {doctor.id} at {request.slot_date} {label}")
            raise ConflictError("This slot is already booked")

        try:
            slot = self.slots.create(doctor.id, request.slot_date, label, starts_at)
            appointment = self.appointments.create(actor.id, doctor.id, slot, request.purpose)
            self.db.commit()
        except IntegrityError:
            # A concurrent booking won the uq_doctor_slot race
            self.db.rollback()
            logger.warning(f"Booking conflict for doctor {doctor.id} at {request.slot_date} {label}")
            raise ConflictError("This slot is already booked")

        self.db.refresh(appointment)
        logger.info(f"Booked appointment {appointment.id} (slot {slot.id}) for patient {actor.id}")
        return appointment

    def update_appointment(self, appointment_id: int, request: AppointmentUpdate) -> Appointment:
        """Partially update an appointment, rescheduling it when asked.

        A reschedule happens only when both slot_date and slot_time are given
        and name a different slot. On any failure nothing is changed.
        """
        appointment = self._get(appointment_id)
        current_slot = None
        if appointment.slot_id is not None:
            current_slot = self.slots.find_by_id(appointment.slot_id)

        fields = {}
        if request.slot_date is not None and request.slot_time:
            label = normalize_slot_time(request.slot_time)
            moved = (
                current_slot is None
                or current_slot.slot_date != request.slot_date
                or current_slot.slot_time != label
            )
            if moved:
                fields["slot_id"] = self._reschedule(appointment, current_slot, request.slot_date, label)

        if request.purpose is not None:
            fields["purpose"] = request.purpose
        if request.status is not None:
            fields["status"] = request.status

        try:
            self.appointments.update(appointment, **fields)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("The selected new slot is already booked")

        self.db.refresh(appointment)
        logger.info(f"Updated appointment {appointment.id}")
        return appointment

    def delete_appointment(self, appointment_id: int):
        """Cancel an appointment by deleting it together with its slot."""
        appointment = self._get(appointment_id)
        if appointment.slot_id is not None:
            slot = self.slots.find_by_id(appointment.slot_id)
            if slot:
                self.slots.delete(slot)
        self.appointments.delete(appointment)
        self.db.commit()
        logger.info(f"Deleted appointment {appointment_id} and released its slot")

    def list_appointments(self) -> List[AppointmentDetail]:
        result = []
        for appointment in self.appointments.find_all():
            doctor = None
            if appointment.doctor is not None:
                profile = appointment.doctor.doctor_profile
                doctor = DoctorSummary(
                    id=appointment.doctor.id,
                    first_name=appointment.doctor.first_name,
                    last_name=appointment.doctor.last_name,
                    specialization=profile.specialization if profile else None
                )
            result.append(AppointmentDetail(
                id=appointment.id,
                status=appointment.status,
                purpose=appointment.purpose,
                patient=PersonSummary.model_validate(appointment.patient) if appointment.patient else None,
                doctor=doctor,
                slot=SlotSummary.model_validate(appointment.slot) if appointment.slot else None,
                created_at=appointment.created_at,
                updated_at=appointment.updated_at
            ))
        return result

    def list_appointments_for_user(self, actor: User) -> List[MyAppointment]:
        """The caller's own appointments, seen from their side.

        Rows with a missing patient, doctor or slot are skipped.
        """
        if actor.role == UserRole.DOCTOR:
            appointments = self.appointments.find_by_doctor(actor.id)
            counterparty = lambda appointment: appointment.patient
        elif actor.role == UserRole.PATIENT:
            appointments = self.appointments.find_by_patient(actor.id)
            counterparty = lambda appointment: appointment.doctor
        else:
            raise ForbiddenError("Only doctors and patients have appointments")

        result = []
        for appointment in appointments:
            if appointment.patient is None or appointment.doctor is None or appointment.slot is None:
                continue
            person = counterparty(appointment)
            result.append(MyAppointment(
                id=appointment.id,
                counterparty_name=person.full_name,
                counterparty_email=person.email,
                date=appointment.slot.slot_date,
                time=appointment.slot.slot_time,
                purpose=appointment.purpose or "",
                status=appointment.status
            ))
        return result

    def authorize(self, actor: User, appointment_id: int) -> Appointment:
        """Admins and the appointment's own patient or doctor may modify it."""
        appointment = self._get(appointment_id)
        if actor.role == UserRole.ADMIN:
            return appointment
        if actor.id in (appointment.patient_id, appointment.doctor_id):
            return appointment
        raise ForbiddenError("Not allowed to modify this appointment")

    def reconcile(self) -> ReconcileReport:
        """Remove slots no appointment owns and report appointments without a slot."""
        orphaned = self.slots.find_unowned()
        for slot in orphaned:
            self.slots.delete(slot)
        dangling = [appointment.id for appointment in self.appointments.find_dangling()]
        self.db.commit()

        if orphaned or dangling:
            logger.warning(
                f"Reconciliation removed {len(orphaned)} orphaned slots; "
                f"{len(dangling)} appointments have no slot"
            )
        return ReconcileReport(
            orphaned_slots_removed=len(orphaned),
            dangling_appointments=dangling
        )

    def _get(self, appointment_id: int) -> Appointment:
        appointment = self.appointments.find_by_id(appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def _future_slot(self, slot_date: date, label: str) -> datetime:
        starts_at = slot_datetime(slot_date, label)
        if starts_at < datetime.now():
            raise ValidationError("The requested slot is older than current time, hence invalid")
        return starts_at

    def _reschedule(self, appointment: Appointment, current_slot, slot_date: date, label: str) -> int:
        if appointment.doctor_id is None:
            raise ValidationError("Appointment has no doctor and cannot be rescheduled")

        starts_at = self._future_slot(slot_date, label)
        if self.slots.find(appointment.doctor_id, slot_date, label):
            logger.warning(f"Reschedule conflict for appointment {appointment.id} at {slot_date} {label}")
            raise ConflictError("The selected new slot is already booked")

        try:
            if current_slot is not None:
                self.slots.delete(current_slot)
            new_slot = self.slots.create(appointment.doctor_id, slot_date, label, starts_at)
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("The selected new slot is already booked")

        logger.info(f"Rescheduled appointment {appointment.id} to slot {new_slot.id}")
        return new_slot.id
