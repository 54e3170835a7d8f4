from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from ..core.security import UserRole

class UserRegister(BaseModel):
    # Required fields are checked by AuthService so that a missing field is
    # reported as a ValidationError rather than a schema error.
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    role: Optional[UserRole] = None
    password: Optional[str] = None

    # Doctor profile
    specialization: Optional[str] = None
    bio: Optional[str] = None

    # Patient profile
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None

class UserLogin(BaseModel):
    email: str
    password: str

class RefreshTokenRequest(BaseModel):
    refresh_token: Optional[str] = None

class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    email: str
    phone_number: Optional[str] = None
    role: UserRole
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse

class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
