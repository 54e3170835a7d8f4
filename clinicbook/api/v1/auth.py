from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session
from typing import Optional

from ...core.config import settings
from ...core.database import get_db
from ...api.deps import rate_limit_check, ACCESS_COOKIE, REFRESH_COOKIE
from ...services.auth_service import AuthService
from ...schemas.auth import (
    UserLogin, UserRegister, TokenResponse, AccessTokenResponse, RefreshTokenRequest
)

router = APIRouter(prefix="/auth", tags=["Authentication"])

def _set_cookie(response: Response, name: str, value: str, max_age: int):
    response.set_cookie(
        name,
        value,
        max_age=max_age,
        httponly=True,
        secure=not (settings.DEBUG or settings.TESTING),
        samesite="strict"
    )

def _set_token_cookies(response: Response, tokens: TokenResponse):
    _set_cookie(response, ACCESS_COOKIE, tokens.access_token, tokens.expires_in)
    _set_cookie(
        response, REFRESH_COOKIE, tokens.refresh_token,
        settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60
    )

@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    response: Response,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Register a new user and its role profile."""
    tokens = AuthService(db).register_user(user_data)
    _set_token_cookies(response, tokens)
    return tokens

@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: UserLogin,
    response: Response,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Authenticate user and return access tokens."""
    tokens = AuthService(db).authenticate_user(login_data.email, login_data.password)
    _set_token_cookies(response, tokens)
    return tokens

@router.post("/refresh-token", response_model=AccessTokenResponse)
async def refresh_token(
    request: Request,
    response: Response,
    refresh_data: Optional[RefreshTokenRequest] = None,
    db: Session = Depends(get_db)
):
    """Mint a new access token from the refresh cookie (or request body)."""
    token = request.cookies.get(REFRESH_COOKIE)
    if not token and refresh_data is not None:
        token = refresh_data.refresh_token

    access = AuthService(db).refresh_access_token(token)
    _set_cookie(response, ACCESS_COOKIE, access.access_token, access.expires_in)
    return access

@router.post("/logout")
async def logout(response: Response):
    """Clear the token cookies."""
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)
    return {"message": "Successfully logged out"}
