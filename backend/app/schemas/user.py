"""User schemas"""

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    """User role enumeration"""
    ADMIN = "admin"
    MANAGER = "manager"
    CUSTOMER = "customer"


def _validate_email(value: str) -> str:
    value = value.strip()
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValueError("Email should be valid") from exc
    # Stored as typed; lookups are exact matches.
    return value


def _required_name(value: str, label: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{label} is required")
    return value


class UserLogin(BaseModel):
    """User login schema"""
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)

    @field_validator('email')
    @classmethod
    def email_valid(cls, v):
        return _validate_email(v)

    @field_validator('password')
    @classmethod
    def password_trimmed(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Password is required')
        return v


class UserRegister(BaseModel):
    """Self-registration schema; role and tenant are never taken from the caller"""
    model_config = ConfigDict(extra="ignore")

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8, max_length=72)
    first_name: str = Field(..., max_length=100)
    last_name: str = Field(..., max_length=100)

    @field_validator('email')
    @classmethod
    def email_valid(cls, v):
        return _validate_email(v)

    @field_validator('first_name')
    @classmethod
    def first_name_present(cls, v):
        return _required_name(v, 'First name')

    @field_validator('last_name')
    @classmethod
    def last_name_present(cls, v):
        return _required_name(v, 'Last name')

    @field_validator('password')
    @classmethod
    def password_fits_bcrypt(cls, v):
        if len(v.encode('utf-8')) > 72:
            raise ValueError('Password must be at most 72 bytes')
        return v


class UserCreate(UserRegister):
    """Administrative creation schema"""
    role: UserRole = UserRole.CUSTOMER
    tenant_id: Optional[int] = None


class UserUpdate(BaseModel):
    """Profile update; email and password are not updatable"""
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    role: Optional[UserRole] = None
    tenant_id: Optional[int] = None

    @field_validator('first_name', 'last_name')
    @classmethod
    def name_not_blank(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return _required_name(v, info.field_name)

    @field_validator('role')
    @classmethod
    def role_not_null(cls, v):
        # Omit the field to keep the current role
        if v is None:
            raise ValueError("role cannot be null")
        return v


class TenantResponse(BaseModel):
    """Tenant summary embedded in user responses"""
    id: int
    name: str
    address: str

    model_config = ConfigDict(from_attributes=True)


class UserResponse(BaseModel):
    """User response schema (never includes the password hash)"""
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    tenant: Optional[TenantResponse] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
