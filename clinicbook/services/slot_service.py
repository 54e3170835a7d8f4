from datetime import date
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundError, ValidationError
from ..models.slot import Slot
from ..repositories import SlotRepository

class SlotService:
    """Read-only queries over booked slots."""

    def __init__(self, db: Session):
        self.slots = SlotRepository(db)

    def get_slot(self, slot_id: Optional[int] = None) -> Union[Slot, List[Slot]]:
        """Return one slot by id, or every slot when no id is given."""
        if slot_id is None:
            return self.slots.find_all()

        slot = self.slots.find_by_id(slot_id)
        if not slot:
            raise NotFoundError("Invalid slot ID")
        return slot

    def get_slots_by_doctor(self, doctor_id: int) -> List[Slot]:
        return self.slots.find_by_doctor(doctor_id)

    def get_booked_times(self, doctor_id: Optional[int], slot_date: Optional[date]) -> List[str]:
        """Time labels already taken for a doctor on one day."""
        if doctor_id is None or slot_date is None:
            raise ValidationError("doctor_id and slot_date are required")
        return [slot.slot_time for slot in self.slots.find_by_doctor_and_date(doctor_id, slot_date)]
