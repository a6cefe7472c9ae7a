"""Pydantic schemas for API validation"""

from app.schemas.user import (
    UserRole,
    UserLogin,
    UserRegister,
    UserCreate,
    UserUpdate,
    UserResponse,
    TenantResponse,
)
from app.schemas.response import APIResponse, ErrorResponse, HealthResponse

__all__ = [
    "UserRole", "UserLogin", "UserRegister", "UserCreate", "UserUpdate", "UserResponse", "TenantResponse",
    "APIResponse", "ErrorResponse", "HealthResponse",
]
