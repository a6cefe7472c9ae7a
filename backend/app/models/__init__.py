"""Database models"""

from app.models.tenant import Tenant
from app.models.user import User
from app.models.security import RefreshToken

__all__ = ["Tenant", "User", "RefreshToken"]
