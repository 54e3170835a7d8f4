from datetime import date, datetime
from pydantic import BaseModel, ConfigDict

class SlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    slot_date: date
    slot_time: str
    expire_at: datetime
