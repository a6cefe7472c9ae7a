"""User management routes (admin only)"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import require_role
from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.schemas.response import APIResponse
from app.schemas.user import UserCreate, UserResponse, UserRole, UserUpdate
from app.services.user_service import user_service

router = APIRouter(dependencies=[Depends(require_role([UserRole.ADMIN]))])


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    user_data: UserCreate,
    db: Session = Depends(get_db)
):
    """
    Create new user with an explicit role and tenant (admin only)
    """
    user = user_service.create_user(
        db,
        user_data,
        role=user_data.role,
        tenant_id=user_data.tenant_id,
    )
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    db: Session = Depends(get_db)
):
    """Get a single user (admin only)"""
    user = user_service.get_user_by_id(db, user_id)
    if not user:
        raise NotFoundError("User")
    return UserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db)
):
    """Update profile fields of a user (admin only)"""
    user = user_service.update_user(db, user_id, user_data)
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", response_model=APIResponse)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db)
):
    """
    Delete user (admin only)

    Their refresh token records are removed with them.
    """
    user_service.delete_user_by_id(db, user_id)
    return APIResponse(message="User deleted successfully", data={"id": user_id})
