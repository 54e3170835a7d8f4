from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import logging

from ..models.user import User
from ..core.exceptions import AuthError, ConflictError, ValidationError
from ..core.security import (
    verify_password, get_password_hash, create_token_pair,
    create_access_token, verify_token, REFRESH_TOKEN
)
from ..schemas.auth import (
    UserRegister, TokenResponse, UserResponse, AccessTokenResponse
)
from ..core.config import settings
from .profiles import profile_for

logger = logging.getLogger(__name__)

REQUIRED_USER_FIELDS = ("first_name", "last_name", "email", "role", "password")

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register_user(self, user_data: UserRegister) -> TokenResponse:
        """Register a new user with its role profile and issue tokens.

        Every field is validated before anything is written, so a rejected
        registration leaves no rows behind.
        """
        missing = [name for name in REQUIRED_USER_FIELDS if not getattr(user_data, name)]
        if missing:
            raise ValidationError(f"Missing required user fields: {', '.join(missing)}")

        profile = profile_for(user_data.role)
        missing = profile.missing_fields(user_data)
        if missing:
            raise ValidationError(
                f"Missing required fields for {user_data.role.value}: {', '.join(missing)}"
            )

        # Check if user already exists
        existing_user = self.db.query(User).filter(
            User.email == user_data.email
        ).first()

        if existing_user:
            raise ConflictError("User with this email already exists")

        new_user = User(
            first_name=user_data.first_name,
            last_name=user_data.last_name,
            email=user_data.email,
            phone_number=user_data.phone_number,
            role=user_data.role,
            password_hash=get_password_hash(user_data.password)
        )
        self.db.add(new_user)
        profile.create(self.db, new_user, user_data)

        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            self.db.rollback()
            raise ConflictError("User with this email already exists")

        self.db.refresh(new_user)
        logger.info(f"Registered {new_user.role.value} user {new_user.id}")

        return self._token_response(new_user)

    def authenticate_user(self, email: str, password: str) -> TokenResponse:
        """Authenticate user and return tokens."""
        user = self.db.query(User).filter(User.email == email).first()

        if not user:
            logger.warning("Login failed: unknown email")
            raise AuthError("Invalid email")

        if not verify_password(password, user.password_hash):
            logger.warning(f"Login failed: wrong password for user {user.id}")
            raise AuthError("Invalid password")

        return self._token_response(user)

    def refresh_access_token(self, refresh_token: str) -> AccessTokenResponse:
        """Mint a new access token from a refresh token.

        Claims are copied from the refresh token; the user record is not
        re-read.
        """
        token_payload = verify_token(refresh_token, REFRESH_TOKEN)

        return AccessTokenResponse(
            access_token=create_access_token(token_payload.claims()),
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        )

    def _token_response(self, user: User) -> TokenResponse:
        tokens = create_token_pair(user)
        return TokenResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            expires_in=tokens.expires_in,
            user=UserResponse.model_validate(user)
        )
