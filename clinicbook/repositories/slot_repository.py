from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.appointment import Appointment
from ..models.slot import Slot

class SlotRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_all(self) -> List[Slot]:
        return self.db.query(Slot).order_by(Slot.slot_date, Slot.expire_at).all()

    def find_by_id(self, slot_id: int) -> Optional[Slot]:
        return self.db.query(Slot).filter(Slot.id == slot_id).first()

    def find(self, doctor_id: int, slot_date: date, slot_time: str) -> Optional[Slot]:
        return self.db.query(Slot).filter(
            Slot.doctor_id == doctor_id,
            Slot.slot_date == slot_date,
            Slot.slot_time == slot_time
        ).first()

    def find_by_doctor(self, doctor_id: int) -> List[Slot]:
        return self.db.query(Slot).filter(
            Slot.doctor_id == doctor_id
        ).order_by(Slot.slot_date, Slot.expire_at).all()

    def find_by_doctor_and_date(self, doctor_id: int, slot_date: date) -> List[Slot]:
        return self.db.query(Slot).filter(
            Slot.doctor_id == doctor_id,
            Slot.slot_date == slot_date
        ).order_by(Slot.expire_at).all()

    def create(self, doctor_id: int, slot_date: date, slot_time: str, expire_at: datetime) -> Slot:
        """Stage a new slot and flush it.

        The flush makes the uq_doctor_slot constraint fire here, so callers
        see an IntegrityError before anything else is written.
        """
        slot = Slot(
            doctor_id=doctor_id,
            slot_date=slot_date,
            slot_time=slot_time,
            expire_at=expire_at
        )
        self.db.add(slot)
        self.db.flush()
        return slot

    def delete(self, slot: Slot):
        self.db.delete(slot)

    def find_unowned(self) -> List[Slot]:
        owned = select(Appointment.slot_id).where(Appointment.slot_id.isnot(None))
        return self.db.query(Slot).filter(Slot.id.notin_(owned)).all()
