from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.security import UserRole, get_password_hash
from ..models.user import User
from ..schemas.auth import UserResponse
from ..schemas.user import UserDetail, UserUpdate
from .profiles import profile_for

logger = logging.getLogger(__name__)

USER_FIELDS = ("first_name", "last_name", "email", "phone_number")
# Fields a user must always have; an update may change them but not blank them
REQUIRED_FIELDS = ("first_name", "last_name", "email")

class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_users(self, role: Optional[str] = None) -> List[UserDetail]:
        query = self.db.query(User)
        if role:
            try:
                role = UserRole(role)
            except ValueError:
                raise ValidationError(
                    f"role must be one of: {', '.join(r.value for r in UserRole)}"
                )
            query = query.filter(User.role == role)
        return [self._detail(user) for user in query.order_by(User.id).all()]

    def get_user(self, user_id: int) -> UserDetail:
        return self._detail(self._get(user_id))

    def update_user(self, user_id: int, payload: UserUpdate) -> UserDetail:
        """Apply a partial update; omitted fields keep their values."""
        user = self._get(user_id)

        blank = [
            name for name in REQUIRED_FIELDS
            if getattr(payload, name) is not None and not getattr(payload, name).strip()
        ]
        if blank:
            raise ValidationError(f"Fields cannot be empty: {', '.join(blank)}")

        if payload.email is not None and payload.email != user.email:
            taken = self.db.query(User).filter(User.email == payload.email).first()
            if taken:
                raise ConflictError("User with this email already exists")

        for name in USER_FIELDS:
            value = getattr(payload, name)
            if value is not None:
                setattr(user, name, value)
        if payload.password:
            user.password_hash = get_password_hash(payload.password)

        profile_for(user.role).update(self.db, user, payload)

        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Updated user {user.id}")
        return self._detail(user)

    def delete_user(self, user_id: int):
        """Delete a user together with its role profile.

        Appointments that referenced the user are left in place and drop out
        of listings as dangling references.
        """
        user = self._get(user_id)
        profile_for(user.role).delete(self.db, user)
        self.db.delete(user)
        self.db.commit()
        logger.info(f"Deleted user {user_id}")

    def _get(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def _detail(self, user: User) -> UserDetail:
        base = UserResponse.model_validate(user).model_dump()
        return UserDetail(**base, **profile_for(user.role).describe(user))
