from datetime import date
from typing import Optional
from pydantic import BaseModel

from .auth import UserResponse

class UserUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    password: Optional[str] = None

    specialization: Optional[str] = None
    bio: Optional[str] = None

    gender: Optional[str] = None
    date_of_birth: Optional[date] = None

class UserDetail(UserResponse):
    """A user merged with the fields of its role profile."""
    specialization: Optional[str] = None
    bio: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
