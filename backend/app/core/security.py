"""Password hashing and verification"""

from typing import Optional

import bcrypt

from app.config import settings
from app.core.exceptions import ConfigurationError

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def get_password_hash(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password using bcrypt

    Args:
        password: Plain text password
        rounds: Cost factor, defaults to BCRYPT_ROUNDS

    Returns:
        str: Hashed password, salted per call
    """
    return bcrypt.hashpw(
        password.encode('utf-8'),
        bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    ).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password

    Returns:
        bool: True if password matches

    Raises:
        ConfigurationError: If the stored hash is not a bcrypt hash
    """
    password_bytes = plain_password.encode('utf-8')
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        # Could never have been hashed
        return False
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except ValueError as exc:
        raise ConfigurationError(f"Stored password hash is malformed: {exc}") from exc


# Checked against when the email is unknown so both login failures cost one bcrypt round.
DUMMY_PASSWORD_HASH = get_password_hash("dummy-password-for-timing")
