"""Session lifecycle: register, login, refresh, logout."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from prometheus_client import Counter
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.claims import AccessTokenClaims, RefreshTokenClaims
from app.core.exceptions import (
    AuthenticationError,
    InvalidCredentialsError,
    NotFoundError,
)
from app.core.security import DUMMY_PASSWORD_HASH, verify_password
from app.models.user import User
from app.schemas.user import UserLogin, UserRegister
from app.services.revocation_ledger import RevocationLedger
from app.services.token_service import TokenPair, TokenService
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

AUTH_EVENTS = Counter(
    "auth_session_events_total",
    "Session lifecycle events",
    ["event", "outcome"],
)


@dataclass(frozen=True)
class SessionResult:
    """Outcome of a transition into the authenticated state."""

    user: User
    tokens: TokenPair


class AuthService:
    """Drive the anonymous/authenticated session state machine."""

    def __init__(self, tokens: TokenService):
        self.tokens = tokens

    def _open_session(self, db: Session, user: User, event: str) -> TokenPair:
        try:
            return self.tokens.issue_token_pair(db, user)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Failed to persist refresh token record on %s: %s", event, exc)
            AUTH_EVENTS.labels(event, "failure").inc()
            raise AuthenticationError("Unable to open session") from exc

    def register(self, db: Session, data: UserRegister) -> SessionResult:
        """
        Create a customer account and open a session for it.

        Raises:
            ConflictError: If the email is already registered
        """
        logger.debug("New request to register user")
        user = user_service.create_user(db, data)
        logger.info("User has been registered", extra={"user_id": user.id})
        pair = self._open_session(db, user, "register")
        AUTH_EVENTS.labels("register", "success").inc()
        return SessionResult(user=user, tokens=pair)

    def login(self, db: Session, credentials: UserLogin) -> SessionResult:
        """
        Authenticate by email and password.

        Unknown email and wrong password raise the same error.

        Raises:
            InvalidCredentialsError: If the email or password is wrong
            AuthenticationError: If the session record cannot be stored
        """
        user = user_service.get_user_by_email_with_password(db, credentials.email)
        if user is None:
            # Keep the response time of an unknown email close to a wrong password.
            verify_password(credentials.password, DUMMY_PASSWORD_HASH)
            AUTH_EVENTS.labels("login", "failure").inc()
            raise InvalidCredentialsError()

        if not verify_password(credentials.password, user.password_hash):
            AUTH_EVENTS.labels("login", "failure").inc()
            raise InvalidCredentialsError()

        pair = self._open_session(db, user, "login")
        logger.info("User has been logged in", extra={"user_id": user.id})
        AUTH_EVENTS.labels("login", "success").inc()
        return SessionResult(user=user, tokens=pair)

    def refresh(self, db: Session, claims: RefreshTokenClaims) -> SessionResult:
        """
        Rotate a validated refresh token.

        The new ledger row is written before the old one is removed, so a
        failure in between leaves an extra valid token rather than none.

        Raises:
            NotFoundError: If the user was deleted after the token was issued
        """
        access_token = self.tokens.issue_access_token(claims.access_claims())

        user = user_service.get_user_by_id(db, claims.user_id)
        if user is None:
            logger.error("Refresh for missing user", extra={"user_id": claims.user_id})
            AUTH_EVENTS.labels("refresh", "failure").inc()
            raise NotFoundError("User")

        try:
            record = RevocationLedger.persist(db, user.id, self.tokens.refresh_ttl)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Failed to persist rotated refresh token: %s", exc)
            AUTH_EVENTS.labels("refresh", "failure").inc()
            raise AuthenticationError("Unable to refresh session") from exc

        refresh_token = self.tokens.issue_refresh_token(
            RefreshTokenClaims(user_id=user.id, role=claims.role, record_id=record.id)
        )

        try:
            RevocationLedger.delete_by_id(db, claims.record_id)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning(
                "Old refresh token record %s was not deleted during rotation: %s",
                claims.record_id,
                exc,
            )

        AUTH_EVENTS.labels("refresh", "success").inc()
        return SessionResult(
            user=user,
            tokens=TokenPair(access_token=access_token, refresh_token=refresh_token, record_id=record.id),
        )

    def logout(self, db: Session, access: AccessTokenClaims, refresh: RefreshTokenClaims) -> None:
        """
        End the session named by the refresh token. Safe to repeat.

        Raises:
            AuthenticationError: If the two tokens belong to different users,
                or the session record cannot be deleted
        """
        if access.user_id != refresh.user_id:
            AUTH_EVENTS.labels("logout", "failure").inc()
            raise AuthenticationError("Access and refresh tokens belong to different users")

        try:
            deleted = RevocationLedger.delete_by_id(db, refresh.record_id)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Failed to delete refresh token record %s: %s", refresh.record_id, exc)
            AUTH_EVENTS.labels("logout", "failure").inc()
            raise AuthenticationError("Unable to end session") from exc

        logger.info(
            "Refresh token record has been deleted",
            extra={"record_id": refresh.record_id, "existed": bool(deleted)},
        )
        AUTH_EVENTS.labels("logout", "success").inc()

    def current_user(self, db: Session, claims: AccessTokenClaims) -> User:
        """Profile of the identity named by an access token."""
        user = user_service.get_user_by_id(db, claims.user_id)
        if user is None:
            raise NotFoundError("User")
        return user
