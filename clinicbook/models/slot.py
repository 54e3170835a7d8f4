from sqlalchemy import Column, Integer, String, ForeignKey, Date, DateTime, UniqueConstraint

from ..core.database import Base

class Slot(Base):
    """A booked (doctor, date, time) tuple.

    Rows exist only while an appointment owns them; the unique constraint is
    the authoritative guard against double booking.
    """
    __tablename__ = "slots"
    __table_args__ = (
        UniqueConstraint("doctor_id", "slot_date", "slot_time", name="uq_doctor_slot"),
    )

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    slot_date = Column(Date, nullable=False)
    slot_time = Column(String(20), nullable=False)
    expire_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<Slot(id={self.id}, doctor_id={self.doctor_id}, date='{self.slot_date}', time='{self.slot_time}')>"
