"""Application configuration management"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, List, Optional
from urllib.parse import quote_plus

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

# Base directory: backend/
_BASE_DIR = Path(__file__).resolve().parent.parent

DEV_REFRESH_TOKEN_SECRET = "dev-refresh-secret-change-in-production-use-openssl-rand-hex-32"


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application
    APP_NAME: str = "Auth Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 5501
    WORKERS: int = 4

    # Database (PostgreSQL)
    DATABASE_URL: str = ""
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "auth_db"
    POSTGRES_USER: str = "auth"
    POSTGRES_PASSWORD: str = "auth"
    DATABASE_POOL_SIZE: int = 30
    DATABASE_MAX_OVERFLOW: int = 20

    # Token signing material
    PRIVATE_KEY: str = ""
    PRIVATE_KEY_FILE: str = ""
    PUBLIC_KEY: str = ""
    PUBLIC_KEY_FILE: str = ""
    REFRESH_TOKEN_SECRET: str = DEV_REFRESH_TOKEN_SECRET
    JWT_ISSUER: str = "auth-service"
    ACCESS_TOKEN_ALGORITHM: str = "RS256"
    REFRESH_TOKEN_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 365

    # Cookies
    COOKIE_DOMAIN: Optional[str] = "localhost"
    COOKIE_SECURE: bool = False
    ACCESS_COOKIE_MAX_AGE_SECONDS: int = 60 * 60
    REFRESH_COOKIE_MAX_AGE_SECONDS: int = 60 * 60 * 24 * 365

    # Password hashing
    BCRYPT_ROUNDS: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    # CORS
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:5173", "http://localhost:3000"]

    # Admin
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_PASSWORD: str = "admin12345"

    # Database initialization discipline
    DB_INIT_MODE: str = "migrate"  # migrate | create_all | off
    DB_REQUIRE_HEAD: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value: Any) -> Any:
        """
        Accept JSON array or comma-separated origins from env.

        Examples:
            CORS_ORIGINS=["http://localhost:3000","http://example.com"]
            CORS_ORIGINS=http://localhost:3000,http://example.com
        """
        if not isinstance(value, str):
            return value

        raw = value.strip()
        if not raw:
            return []

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None

        if isinstance(parsed, str):
            return [parsed]
        if isinstance(parsed, list):
            return [str(origin).strip() for origin in parsed if str(origin).strip()]

        return [origin.strip() for origin in raw.split(",") if origin.strip()]

    @field_validator("PRIVATE_KEY", "PUBLIC_KEY", mode="before")
    @classmethod
    def _unescape_pem(cls, value: Any) -> Any:
        """PEM blocks passed through a single-line env var use literal \\n."""
        if isinstance(value, str):
            return value.replace("\\n", "\n").strip()
        return value

    @field_validator("COOKIE_DOMAIN", mode="before")
    @classmethod
    def _empty_domain_is_host_only(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def _resolve_path(self, value: str, default: str) -> str:
        """Resolve path - use absolute if empty or relative"""
        if not value or value.startswith(".."):
            return str(_BASE_DIR.parent / default)
        return value

    def get_private_key_file(self) -> str:
        return self._resolve_path(self.PRIVATE_KEY_FILE, "certs/private.pem")

    def get_public_key_file(self) -> str:
        return self._resolve_path(self.PUBLIC_KEY_FILE, "certs/public.pem")

    def get_log_file(self) -> str:
        p = self.LOG_FILE
        if not p or p.startswith(".."):
            return str(_BASE_DIR.parent / "logs" / "app.log")
        return p

    def get_database_url(self) -> str:
        """
        Resolve database URL.

        Priority:
          1) Explicit DATABASE_URL
          2) Construct from POSTGRES_* parts with safe URL encoding
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        user = quote_plus(self.POSTGRES_USER)
        password = quote_plus(self.POSTGRES_PASSWORD)
        return (
            f"postgresql://{user}:{password}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    def validate_security_settings(self) -> None:
        """
        Validate runtime security defaults in production.

        Raises:
            ValueError: If insecure defaults are detected.
        """
        if self.ENVIRONMENT.lower() != "production":
            return

        insecure_secret_markers = {
            "",
            DEV_REFRESH_TOKEN_SECRET,
            "change-me",
        }
        insecure_admin_passwords = {
            "",
            "admin12345",
            "change_this_password_immediately",
        }

        if self.REFRESH_TOKEN_SECRET in insecure_secret_markers or len(self.REFRESH_TOKEN_SECRET) < 32:
            raise ValueError(
                "Insecure REFRESH_TOKEN_SECRET for production. Use a strong key (e.g. `openssl rand -hex 32`)."
            )

        if self.ADMIN_PASSWORD in insecure_admin_passwords or len(self.ADMIN_PASSWORD) < 10:
            raise ValueError(
                "Insecure ADMIN_PASSWORD for production. Set a strong admin password before startup."
            )

        if self.COOKIE_SECURE is False:
            raise ValueError("COOKIE_SECURE must be enabled in production.")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
