"""Authentication routes"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.api.deps import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    get_access_claims,
    get_auth_service,
    get_current_user,
    get_refresh_claims,
    parse_refresh_claims,
)
from app.config import settings
from app.core.claims import AccessTokenClaims, RefreshTokenClaims
from app.core.database import get_db
from app.models.user import User
from app.schemas.response import APIResponse
from app.schemas.user import UserLogin, UserRegister, UserResponse
from app.services.auth_service import AuthService
from app.services.token_service import TokenPair

router = APIRouter()


def set_auth_cookies(response: Response, tokens: TokenPair) -> None:
    """Attach both tokens as http-only, same-site strict cookies"""
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=tokens.access_token,
        max_age=settings.ACCESS_COOKIE_MAX_AGE_SECONDS,
        domain=settings.COOKIE_DOMAIN,
        secure=settings.COOKIE_SECURE,
        httponly=True,
        samesite="strict",
    )
    response.set_cookie(
        key=REFRESH_TOKEN_COOKIE,
        value=tokens.refresh_token,
        max_age=settings.REFRESH_COOKIE_MAX_AGE_SECONDS,
        domain=settings.COOKIE_DOMAIN,
        secure=settings.COOKIE_SECURE,
        httponly=True,
        samesite="strict",
    )


def clear_auth_cookies(response: Response) -> None:
    for key in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(
            key,
            domain=settings.COOKIE_DOMAIN,
            secure=settings.COOKIE_SECURE,
            httponly=True,
            samesite="strict",
        )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: UserRegister,
    response: Response,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Self-registration - create a customer account and start a session

    Returns:
        Created user; tokens are set as cookies
    """
    result = auth_service.register(db, data)
    set_auth_cookies(response, result.tokens)
    return UserResponse.model_validate(result.user)


@router.post("/login", response_model=UserResponse, status_code=status.HTTP_200_OK)
def login(
    credentials: UserLogin,
    response: Response,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Login endpoint - authenticate user and set token cookies

    Args:
        credentials: Email and password
        db: Database session

    Returns:
        Logged in user
    """
    result = auth_service.login(db, credentials)
    set_auth_cookies(response, result.tokens)
    return UserResponse.model_validate(result.user)


@router.get("/self", response_model=UserResponse)
def get_self(current_user: User = Depends(get_current_user)):
    """Get the profile of the caller"""
    return UserResponse.model_validate(current_user)


@router.post("/refresh", response_model=UserResponse)
def refresh(
    response: Response,
    claims: RefreshTokenClaims = Depends(get_refresh_claims),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Rotate the refresh token and issue a new access token

    The presented refresh token stops working once this returns.
    """
    result = auth_service.refresh(db, claims)
    set_auth_cookies(response, result.tokens)
    return UserResponse.model_validate(result.user)


@router.post("/logout", response_model=APIResponse)
def logout(
    response: Response,
    access: AccessTokenClaims = Depends(get_access_claims),
    refresh_claims: RefreshTokenClaims = Depends(parse_refresh_claims),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Logout endpoint - delete the session's refresh token record and clear cookies
    """
    auth_service.logout(db, access, refresh_claims)
    clear_auth_cookies(response)
    return APIResponse(message="Logged out successfully", data={"id": access.user_id})
