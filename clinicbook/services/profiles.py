"""Role-specific profile handling.

Each role gets one handler that knows which registration fields it needs and
how to create, update, describe and delete its profile record. Services look
the handler up with ``profile_for(role)`` instead of branching on the role.
"""
from typing import List

from sqlalchemy.orm import Session

from ..core.security import UserRole
from ..models.doctor import DoctorProfile
from ..models.patient import PatientProfile
from ..models.user import User


class RoleProfile:
    """Profile handler for roles without a profile record (admin)."""

    required_fields: tuple = ()

    def missing_fields(self, payload) -> List[str]:
        return [name for name in self.required_fields if not getattr(payload, name, None)]

    def create(self, db: Session, user: User, payload):
        pass

    def update(self, db: Session, user: User, payload):
        pass

    def describe(self, user: User) -> dict:
        return {}

    def delete(self, db: Session, user: User):
        pass


class DoctorProfileHandler(RoleProfile):
    required_fields = ("specialization",)

    def create(self, db: Session, user: User, payload):
        db.add(DoctorProfile(
            user=user,
            specialization=payload.specialization,
            bio=payload.bio
        ))

    def update(self, db: Session, user: User, payload):
        profile = user.doctor_profile
        if profile is None:
            return
        if payload.specialization is not None:
            profile.specialization = payload.specialization
        if payload.bio is not None:
            profile.bio = payload.bio

    def describe(self, user: User) -> dict:
        profile = user.doctor_profile
        if profile is None:
            return {}
        return {"specialization": profile.specialization, "bio": profile.bio}

    def delete(self, db: Session, user: User):
        if user.doctor_profile is not None:
            db.delete(user.doctor_profile)


class PatientProfileHandler(RoleProfile):
    required_fields = ("date_of_birth", "gender")

    def create(self, db: Session, user: User, payload):
        db.add(PatientProfile(
            user=user,
            gender=payload.gender,
            date_of_birth=payload.date_of_birth
        ))

    def update(self, db: Session, user: User, payload):
        profile = user.patient_profile
        if profile is None:
            return
        if payload.gender is not None:
            profile.gender = payload.gender
        if payload.date_of_birth is not None:
            profile.date_of_birth = payload.date_of_birth

    def describe(self, user: User) -> dict:
        profile = user.patient_profile
        if profile is None:
            return {}
        return {"gender": profile.gender, "date_of_birth": profile.date_of_birth}

    def delete(self, db: Session, user: User):
        if user.patient_profile is not None:
            db.delete(user.patient_profile)


_HANDLERS = {
    UserRole.ADMIN: RoleProfile(),
    UserRole.DOCTOR: DoctorProfileHandler(),
    UserRole.PATIENT: PatientProfileHandler(),
}


def profile_for(role) -> RoleProfile:
    return _HANDLERS[UserRole(role)]
