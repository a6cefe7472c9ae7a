"""Access/refresh token issuance and validation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional
import logging

from jose import JWTError, jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.claims import AccessTokenClaims, RefreshTokenClaims
from app.core.exceptions import AuthenticationError
from app.core.keys import KeyMaterial
from app.models.user import User
from app.services.revocation_ledger import RevocationLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    """Freshly minted credentials for one session."""

    access_token: str
    refresh_token: str
    record_id: int


class TokenService:
    """
    Mint and verify the two token kinds.

    Access tokens are RSA-signed and stateless. Refresh tokens are HMAC-signed,
    carry the id of their ledger row as ``jti``, and are only accepted while
    that row exists.
    """

    def __init__(
        self,
        keys: KeyMaterial,
        access_ttl: Optional[timedelta] = None,
        refresh_ttl: Optional[timedelta] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.keys = keys
        self.access_ttl = access_ttl or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self.refresh_ttl = refresh_ttl or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        self._clock = clock

    def _registered_claims(self, ttl: timedelta) -> Dict[str, Any]:
        now = self._clock()
        return {"iss": self.keys.issuer, "iat": now, "exp": now + ttl}

    def issue_access_token(self, claims: AccessTokenClaims) -> str:
        """
        Sign an access token with the private key.

        Raises:
            ConfigurationError: If no private key is available
        """
        private_key = self.keys.require_private_key()
        to_encode = claims.to_payload()
        to_encode.update(self._registered_claims(self.access_ttl))
        return jwt.encode(to_encode, private_key, algorithm=self.keys.access_algorithm)

    def issue_refresh_token(self, claims: RefreshTokenClaims) -> str:
        """Sign a refresh token whose jti is the ledger record id."""
        secret = self.keys.require_refresh_secret()
        to_encode = claims.to_payload()
        to_encode.update(self._registered_claims(self.refresh_ttl))
        to_encode["jti"] = str(claims.record_id)
        return jwt.encode(to_encode, secret, algorithm=self.keys.refresh_algorithm)

    def decode_access_token(self, token: Optional[str]) -> AccessTokenClaims:
        """
        Verify signature, issuer and expiry of an access token.

        Raises:
            AuthenticationError: On any verification failure
        """
        if not token:
            raise AuthenticationError("Access token missing")
        public_key = self.keys.require_public_key()
        try:
            payload = jwt.decode(
                token,
                public_key,
                algorithms=[self.keys.access_algorithm],
                issuer=self.keys.issuer,
            )
            return AccessTokenClaims.from_payload(payload)
        except JWTError as exc:
            raise AuthenticationError(f"Invalid access token: {exc}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise AuthenticationError(f"Malformed access token claims: {exc}") from exc

    def decode_refresh_token(self, token: Optional[str]) -> RefreshTokenClaims:
        """
        Verify signature, issuer and expiry of a refresh token.

        Does not consult the ledger; see ``validate_refresh_token``.
        """
        if not token:
            raise AuthenticationError("Refresh token missing")
        secret = self.keys.require_refresh_secret()
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.keys.refresh_algorithm],
                issuer=self.keys.issuer,
            )
            return RefreshTokenClaims.from_payload(payload)
        except JWTError as exc:
            raise AuthenticationError(f"Invalid refresh token: {exc}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise AuthenticationError(f"Malformed refresh token claims: {exc}") from exc

    def validate_refresh_token(self, db: Session, token: Optional[str]) -> RefreshTokenClaims:
        """
        Verify a refresh token and confirm its ledger row still exists.

        Raises:
            AuthenticationError: If the token is invalid or has been revoked
        """
        claims = self.decode_refresh_token(token)
        try:
            record = RevocationLedger.find_by_id(db, claims.record_id, claims.user_id)
        except SQLAlchemyError as exc:
            logger.error("Error while getting refresh token record %s: %s", claims.record_id, exc)
            raise AuthenticationError("Refresh token lookup failed") from exc
        if record is None:
            raise AuthenticationError(f"Refresh token {claims.record_id} revoked")
        return claims

    def issue_token_pair(self, db: Session, user: User, role: Optional[str] = None) -> TokenPair:
        """
        Mint an access token, persist a ledger row and mint the matching refresh token.

        The access token is signed first so a missing private key fails the
        call before anything is written.
        """
        role = role or user.role
        access_token = self.issue_access_token(AccessTokenClaims(user_id=user.id, role=role))
        record = RevocationLedger.persist(db, user.id, self.refresh_ttl)
        refresh_token = self.issue_refresh_token(
            RefreshTokenClaims(user_id=user.id, role=role, record_id=record.id)
        )
        return TokenPair(access_token=access_token, refresh_token=refresh_token, record_id=record.id)
