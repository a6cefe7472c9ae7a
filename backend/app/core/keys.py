"""Signing key material shared by the token issuer and validator"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from cryptography.hazmat.primitives import serialization

from app.config import Settings
from app.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _read_pem(path: str) -> Optional[str]:
    file = Path(path)
    if not file.is_file():
        return None
    return file.read_text(encoding="utf-8").strip() or None


def derive_public_key(private_key_pem: str) -> str:
    """Return the PEM encoded public half of an RSA private key."""
    try:
        private_key = serialization.load_pem_private_key(
            private_key_pem.encode("utf-8"), password=None
        )
    except (ValueError, TypeError) as exc:
        raise ConfigurationError(f"Private key could not be loaded: {exc}") from exc
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")


@dataclass(frozen=True)
class KeyMaterial:
    """
    Read-only key material, built once at startup.

    private_key: PEM RSA key used to sign access tokens, None if unavailable
    public_key: PEM RSA key used to verify access tokens
    refresh_secret: shared HMAC secret for refresh tokens
    """

    private_key: Optional[str]
    public_key: Optional[str]
    refresh_secret: str
    issuer: str = "auth-service"
    access_algorithm: str = "RS256"
    refresh_algorithm: str = "HS256"

    @classmethod
    def from_settings(cls, settings: Settings) -> "KeyMaterial":
        """
        Resolve keys from configuration, falling back to PEM files on disk.

        A missing private key is not an error here: it only becomes one when an
        access token has to be signed.
        """
        private_key = settings.PRIVATE_KEY or _read_pem(settings.get_private_key_file())
        if not private_key:
            logger.warning(
                "No private signing key configured and %s is missing",
                settings.get_private_key_file(),
            )

        public_key = settings.PUBLIC_KEY or None
        if not public_key and private_key:
            public_key = derive_public_key(private_key)
        if not public_key:
            public_key = _read_pem(settings.get_public_key_file())

        return cls(
            private_key=private_key,
            public_key=public_key,
            refresh_secret=settings.REFRESH_TOKEN_SECRET,
            issuer=settings.JWT_ISSUER,
            access_algorithm=settings.ACCESS_TOKEN_ALGORITHM,
            refresh_algorithm=settings.REFRESH_TOKEN_ALGORITHM,
        )

    def require_private_key(self) -> str:
        if not self.private_key:
            raise ConfigurationError("Private signing key is not set")
        return self.private_key

    def require_public_key(self) -> str:
        if not self.public_key:
            raise ConfigurationError("Public verification key is not set")
        return self.public_key

    def require_refresh_secret(self) -> str:
        if not self.refresh_secret:
            raise ConfigurationError("REFRESH_TOKEN_SECRET is not set")
        return self.refresh_secret
