from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi.security import HTTPBearer
from pydantic import BaseModel, ValidationError as PayloadError
from enum import Enum

from .config import settings
from .exceptions import AuthError

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer header is optional: the access token may arrive as a cookie instead
security = HTTPBearer(auto_error=False)

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

class UserRole(str, Enum):
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"

class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int

class TokenPayload(BaseModel):
    id: int
    email: str
    role: UserRole
    exp: int
    token_type: str

    def claims(self) -> dict:
        return {"id": self.id, "email": self.email, "role": self.role.value}

# Password utilities
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """Generate password hash."""
    return pwd_context.hash(password)

# JWT utilities
def _secret_for(token_type: str) -> str:
    if token_type == REFRESH_TOKEN:
        return settings.JWT_REFRESH_SECRET
    return settings.JWT_SECRET

def _encode(data: dict, token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({
        "exp": datetime.now(timezone.utc) + expires_delta,
        "token_type": token_type
    })
    return jwt.encode(to_encode, _secret_for(token_type), algorithm=settings.ALGORITHM)

def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT access token."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(data, ACCESS_TOKEN, expires_delta)

def create_refresh_token(
    data: dict,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT refresh token."""
    if expires_delta is None:
        expires_delta = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(data, REFRESH_TOKEN, expires_delta)

def verify_token(token: Optional[str], token_type: str = ACCESS_TOKEN) -> TokenPayload:
    """Verify and decode a JWT of the given kind.

    Raises AuthError for a missing, malformed, tampered or expired token, and
    for a token minted for the other kind.
    """
    if not token:
        raise AuthError(f"No {token_type} token provided")

    try:
        payload = jwt.decode(
            token,
            _secret_for(token_type),
            algorithms=[settings.ALGORITHM]
        )
        token_payload = TokenPayload(**payload)
    except JWTError:
        raise AuthError(f"Invalid or expired {token_type} token")
    except PayloadError:
        raise AuthError(f"Malformed {token_type} token")

    if token_payload.token_type != token_type:
        raise AuthError("Invalid token type")

    return token_payload

def token_claims(user) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "role": UserRole(user.role).value
    }

def create_token_pair(user) -> Token:
    """Create both access and refresh tokens."""
    token_data = token_claims(user)

    return Token(
        access_token=create_access_token(token_data),
        refresh_token=create_refresh_token(token_data),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    )
