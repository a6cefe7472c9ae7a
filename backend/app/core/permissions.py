"""Role checks over validated token claims"""

from typing import Iterable, Optional, Union

from app.schemas.user import UserRole


def parse_role(role: str) -> Optional[UserRole]:
    """Return the matching UserRole, or None for anything outside the closed set."""
    try:
        return UserRole(role)
    except ValueError:
        return None


def has_role(role: str, allowed: Iterable[Union[UserRole, str]]) -> bool:
    """
    True if ``role`` is a known role and is one of ``allowed``.

    Unknown role strings never match, whatever ``allowed`` contains.
    """
    parsed = parse_role(role)
    if parsed is None:
        return False
    return parsed in {parse_role(r) for r in allowed}
