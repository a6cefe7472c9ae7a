"""Typed JWT claim sets, one per token kind"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Literal


@dataclass(frozen=True)
class AccessTokenClaims:
    """Claims carried by a stateless access token."""

    user_id: int
    role: str
    kind: Literal["access"] = "access"

    def to_payload(self) -> Dict[str, Any]:
        return {"sub": str(self.user_id), "role": self.role}

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AccessTokenClaims":
        """Raises ValueError/KeyError/TypeError on a payload of the wrong shape."""
        role = payload["role"]
        if not isinstance(role, str):
            raise TypeError("role claim must be a string")
        return cls(user_id=int(payload["sub"]), role=role)


@dataclass(frozen=True)
class RefreshTokenClaims:
    """Claims carried by a refresh token; record_id names its ledger row."""

    user_id: int
    role: str
    record_id: int
    kind: Literal["refresh"] = "refresh"

    def to_payload(self) -> Dict[str, Any]:
        return {"sub": str(self.user_id), "role": self.role, "id": str(self.record_id)}

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "RefreshTokenClaims":
        """Raises ValueError/KeyError/TypeError on a payload of the wrong shape."""
        role = payload["role"]
        if not isinstance(role, str):
            raise TypeError("role claim must be a string")
        record_id = int(payload["id"])
        if str(payload.get("jti")) != str(record_id):
            raise ValueError("jti does not match the record id")
        return cls(user_id=int(payload["sub"]), role=role, record_id=record_id)

    def access_claims(self) -> AccessTokenClaims:
        return AccessTokenClaims(user_id=self.user_id, role=self.role)
