from .slot_repository import SlotRepository
from .appointment_repository import AppointmentRepository

__all__ = ["SlotRepository", "AppointmentRepository"]
