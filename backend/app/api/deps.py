"""API dependencies - authentication and authorization"""

from functools import lru_cache
from typing import Iterable, Optional, Union

from fastapi import Cookie, Depends, Request
from sqlalchemy.orm import Session

from app.config import settings
from app.core.claims import AccessTokenClaims, RefreshTokenClaims
from app.core.database import get_db
from app.core.exceptions import AuthorizationError
from app.core.keys import KeyMaterial
from app.core.permissions import has_role
from app.models.user import User
from app.schemas.user import UserRole
from app.services.auth_service import AuthService
from app.services.token_service import TokenService

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"


@lru_cache()
def get_key_material() -> KeyMaterial:
    """Key material is loaded once and shared read-only by every request"""
    return KeyMaterial.from_settings(settings)


@lru_cache()
def get_token_service() -> TokenService:
    return TokenService(get_key_material())


def get_auth_service(tokens: TokenService = Depends(get_token_service)) -> AuthService:
    return AuthService(tokens)


def extract_access_token(request: Request) -> Optional[str]:
    """Bearer header first, then the access token cookie."""
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return request.cookies.get(ACCESS_TOKEN_COOKIE)


def validate_and_attach_identity(request: Request, tokens: TokenService) -> AccessTokenClaims:
    """
    Verify the request's access token and store its claims on ``request.state.auth``.

    Raises:
        AuthenticationError: If the token is missing or does not verify
    """
    claims = tokens.decode_access_token(extract_access_token(request))
    request.state.auth = claims
    return claims


def get_access_claims(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> AccessTokenClaims:
    """
    Claims of the caller's access token

    Access tokens are never checked against the refresh-token ledger.
    """
    return validate_and_attach_identity(request, tokens)


def get_refresh_claims(
    request: Request,
    refresh_token: Optional[str] = Cookie(None, alias=REFRESH_TOKEN_COOKIE),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> RefreshTokenClaims:
    """
    Claims of a refresh token that verifies and is still in the ledger

    Raises:
        AuthenticationError: If the token is invalid or revoked
    """
    claims = tokens.validate_refresh_token(db, refresh_token)
    request.state.refresh = claims
    return claims


def parse_refresh_claims(
    request: Request,
    refresh_token: Optional[str] = Cookie(None, alias=REFRESH_TOKEN_COOKIE),
    tokens: TokenService = Depends(get_token_service),
) -> RefreshTokenClaims:
    """
    Claims of a refresh token that verifies, without the ledger lookup

    Used by logout, which must succeed even if the record is already gone.
    """
    claims = tokens.decode_refresh_token(refresh_token)
    request.state.refresh = claims
    return claims


def get_current_user(
    claims: AccessTokenClaims = Depends(get_access_claims),
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    """
    Get current authenticated user from the access token

    Raises:
        AuthenticationError: If the token is invalid
        NotFoundError: If the user no longer exists
    """
    return auth_service.current_user(db, claims)


def require_role(allowed: Iterable[Union[UserRole, str]]):
    """
    Dependency factory gating a route on the caller's role claim.

    Use: Depends(require_role([UserRole.ADMIN]))

    Raises:
        AuthenticationError: If the access token is invalid (401)
        AuthorizationError: If the role is not allowed or unknown (403)
    """
    allowed_roles = tuple(allowed)

    def _checker(claims: AccessTokenClaims = Depends(get_access_claims)) -> AccessTokenClaims:
        if not has_role(claims.role, allowed_roles):
            raise AuthorizationError("User does not have enough permission")
        return claims

    return _checker
