from sqlalchemy import Column, Integer, String, ForeignKey, Date
from sqlalchemy.orm import relationship

from ..core.database import Base

class PatientProfile(Base):
    __tablename__ = "patient_profiles"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    gender = Column(String(20), nullable=True)
    date_of_birth = Column(Date, nullable=True)

    user = relationship("User", back_populates="patient_profile")

    def __repr__(self):
        return f"<PatientProfile(patient_id={self.patient_id})>"
