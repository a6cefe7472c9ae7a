"""Custom exception classes for the application"""

from typing import Optional, Dict, Any


class BaseAPIException(Exception):
    """Base exception for all API errors"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        """Message safe to return to the caller"""
        return self.message


# Validation Errors
class ValidationError(BaseAPIException):
    """Malformed input"""
    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=400, details=details)


class InvalidCredentialsError(ValidationError):
    """Unknown email or wrong password; the two cases are indistinguishable"""
    def __init__(self):
        super().__init__("Incorrect email or password")


# Authentication Errors
class AuthenticationError(BaseAPIException):
    """Missing, invalid, expired or revoked token"""
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, status_code=401)

    @property
    def public_message(self) -> str:
        # Expired, forged and revoked tokens all look the same to the caller.
        return "Unauthorized"


# Authorization Errors
class AuthorizationError(BaseAPIException):
    """Insufficient permissions"""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, status_code=403)


# Resource Errors
class ConflictError(BaseAPIException):
    """Resource already exists"""
    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class DuplicateEmailError(ConflictError):
    """Email already registered"""
    def __init__(self):
        super().__init__("Email already exists")


class NotFoundError(BaseAPIException):
    """Resource not found"""
    def __init__(self, resource: str):
        super().__init__(f"{resource} not found", status_code=400)


# System Errors
class ConfigurationError(BaseAPIException):
    """Missing or unusable key material; fatal for the operation"""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)

    @property
    def public_message(self) -> str:
        return "Internal server error"
