from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import get_current_user, get_admin_user
from ...models.user import User
from ...services.user_service import UserService
from ...schemas.user import UserDetail, UserUpdate

router = APIRouter(prefix="/users", tags=["Users"])

@router.get("", response_model=List[UserDetail])
async def list_users(
    role: Optional[str] = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_admin_user)
):
    """List users, optionally filtered by role (admin only)."""
    return UserService(db).get_users(role)

@router.get("/me", response_model=UserDetail)
async def get_me(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return UserService(db).get_user(current_user.id)

@router.put("/me", response_model=UserDetail)
async def update_me(
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return UserService(db).update_user(current_user.id, payload)

@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_me(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    UserService(db).delete_user(current_user.id)

@router.get("/{user_id}", response_model=UserDetail)
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_admin_user)
):
    return UserService(db).get_user(user_id)

@router.put("/{user_id}", response_model=UserDetail)
async def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(get_admin_user)
):
    return UserService(db).update_user(user_id, payload)

@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_admin_user)
):
    UserService(db).delete_user(user_id)
