"""Refresh-token ledger: one row per live refresh token."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional
import logging

from sqlalchemy.orm import Session

from app.config import settings
from app.models.security import RefreshToken

logger = logging.getLogger(__name__)


class RevocationLedger:
    """
    Persistence for refresh-token records.

    A refresh token is acceptable only while its row exists; deleting the row
    is how a token is revoked.
    """

    @staticmethod
    def _default_ttl() -> timedelta:
        return timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    @staticmethod
    def persist(db: Session, user_id: int, ttl: Optional[timedelta] = None) -> RefreshToken:
        """
        Insert a new record owned by ``user_id``.

        Each call creates an independent row, so concurrent sessions for the
        same user never collide.
        """
        record = RefreshToken(
            user_id=user_id,
            expires_at=datetime.utcnow() + (ttl or RevocationLedger._default_ttl()),
        )
        db.add(record)
        db.commit()
        db.refresh(record)
        logger.debug("Persisted refresh token record %s for user %s", record.id, user_id)
        return record

    @staticmethod
    def find_by_id(db: Session, record_id: int, owner_id: int) -> Optional[RefreshToken]:
        """Return the live record matching both id and owner, if any."""
        return (
            db.query(RefreshToken)
            .filter(
                RefreshToken.id == record_id,
                RefreshToken.user_id == owner_id,
                RefreshToken.expires_at > datetime.utcnow(),
            )
            .first()
        )

    @staticmethod
    def delete_by_id(db: Session, record_id: int) -> int:
        """Delete a record. Deleting an unknown id is a no-op returning 0."""
        deleted = (
            db.query(RefreshToken)
            .filter(RefreshToken.id == record_id)
            .delete(synchronize_session=False)
        )
        db.commit()
        if deleted:
            logger.debug("Deleted refresh token record %s", record_id)
        return deleted

    @staticmethod
    def count_for_user(db: Session, user_id: int) -> int:
        return db.query(RefreshToken).filter(RefreshToken.user_id == user_id).count()

    @staticmethod
    def purge_expired(db: Session) -> int:
        """Remove rows whose refresh token can no longer verify anyway."""
        purged = (
            db.query(RefreshToken)
            .filter(RefreshToken.expires_at <= datetime.utcnow())
            .delete(synchronize_session=False)
        )
        db.commit()
        if purged:
            logger.info("Purged %d expired refresh token records", purged)
        return purged


revocation_ledger = RevocationLedger()
