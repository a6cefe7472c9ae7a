"""Generic API response schemas"""

from pydantic import BaseModel, Field
from typing import Optional, Any, Dict, List, Union
from datetime import datetime


def _now_iso() -> str:
    return datetime.utcnow().isoformat()


class APIResponse(BaseModel):
    """Generic API success response"""
    success: bool = True
    message: str
    data: Optional[Any] = None
    timestamp: str = Field(default_factory=_now_iso)


class ErrorResponse(BaseModel):
    """Generic API error response"""
    success: bool = False
    error: str
    details: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None
    path: Optional[str] = None
    timestamp: str = Field(default_factory=_now_iso)


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    timestamp: str
