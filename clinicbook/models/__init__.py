from .user import User
from .doctor import DoctorProfile
from .patient import PatientProfile
from .slot import Slot
from .appointment import Appointment, AppointmentStatus

__all__ = [
    "User", "DoctorProfile", "PatientProfile",
    "Slot", "Appointment", "AppointmentStatus",
]
