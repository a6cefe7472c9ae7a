"""User service - identity persistence used by the session layer and admin routes"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, undefer
from typing import Optional
from app.models.tenant import Tenant
from app.models.user import User
from app.schemas.user import UserRegister, UserRole, UserUpdate
from app.core.security import get_password_hash
from app.core.exceptions import DuplicateEmailError, NotFoundError
import logging

logger = logging.getLogger(__name__)


class UserService:
    """Service for user management"""

    @staticmethod
    def _ensure_tenant(db: Session, tenant_id: Optional[int]) -> None:
        if tenant_id is not None and db.get(Tenant, tenant_id) is None:
            raise NotFoundError("Tenant")

    @staticmethod
    def create_user(
        db: Session,
        user_data: UserRegister,
        role: UserRole = UserRole.CUSTOMER,
        tenant_id: Optional[int] = None,
    ) -> User:
        """
        Create new user

        Args:
            db: Database session
            user_data: Profile fields and plain text password
            role: Role to assign (self-registration always uses the default)
            tenant_id: Optional tenant association

        Returns:
            Created user

        Raises:
            DuplicateEmailError: If the email is already registered
        """
        # Exact, case-sensitive match against the unique column
        existing = db.query(User).filter(User.email == user_data.email).first()
        if existing:
            raise DuplicateEmailError()

        UserService._ensure_tenant(db, tenant_id)

        user = User(
            email=user_data.email,
            first_name=user_data.first_name,
            last_name=user_data.last_name,
            password_hash=get_password_hash(user_data.password),
            role=UserRole(role).value,
            tenant_id=tenant_id,
        )

        db.add(user)
        try:
            db.commit()
        except IntegrityError as exc:
            # Lost a race against a concurrent registration for the same email
            db.rollback()
            raise DuplicateEmailError() from exc
        db.refresh(user)

        logger.info(f"Created user: {user.id} (role: {user.role})")
        return user

    @staticmethod
    def get_user_by_email_with_password(db: Session, email: str) -> Optional[User]:
        """Get user by email, loading the normally deferred password hash"""
        return (
            db.query(User)
            .options(undefer(User.password_hash))
            .filter(User.email == email)
            .first()
        )

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID, with tenant"""
        return (
            db.query(User)
            .options(joinedload(User.tenant))
            .filter(User.id == user_id)
            .first()
        )

    @staticmethod
    def update_user(db: Session, user_id: int, user_data: UserUpdate) -> User:
        """
        Update profile fields. Email and password are never touched here.

        Raises:
            NotFoundError: If the user or the referenced tenant does not exist
        """
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User")

        changes = user_data.model_dump(exclude_unset=True)
        if "tenant_id" in changes:
            UserService._ensure_tenant(db, changes["tenant_id"])
        if "role" in changes:
            changes["role"] = UserRole(changes["role"]).value

        for field, value in changes.items():
            setattr(user, field, value)

        db.commit()
        db.refresh(user)
        logger.info(f"Updated user: {user.id}")
        return user

    @staticmethod
    def delete_user_by_id(db: Session, user_id: int) -> bool:
        """
        Delete user

        Refresh token records go with the user through ON DELETE CASCADE.

        Raises:
            NotFoundError: If no such user exists
        """
        deleted = (
            db.query(User)
            .filter(User.id == user_id)
            .delete(synchronize_session=False)
        )
        db.commit()

        if not deleted:
            raise NotFoundError("User")

        logger.info(f"Deleted user: {user_id}")
        return True


# Singleton instance
user_service = UserService()
