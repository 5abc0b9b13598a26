"""
Application configuration with environment-based settings.

This module uses Pydantic Settings for automatic environment variable loading
and validation.
"""

import os
import secrets
import tomllib
from base64 import urlsafe_b64encode
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import (
    AnyUrl,
    BeforeValidator,
    PostgresDsn,
    computed_field,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_list(v: Any) -> list[str] | str:
    """Parse a comma-separated string or list into a list of strings"""
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


def _load_app_version_from_pyproject() -> str:
    """Load application version from pyproject.toml"""
    try:
        pyproject_path = Path(__file__).parents[3] / "pyproject.toml"

        if not pyproject_path.exists():
            # Fallback for installed packages without the source tree
            return "0.0.0"

        with open(pyproject_path, "rb") as f:
            config = tomllib.load(f)
            version = config.get("project", {}).get("version")

            if not version:
                return "0.0.0"

            return version

    except (OSError, tomllib.TOMLDecodeError):
        return "0.0.0"


class Settings(BaseSettings):
    """
    Application settings with validation.

    All settings have sensible defaults for local development,
    allowing zero-config startup against the mock identity provider.
    """

    model_config = SettingsConfigDict(
        # Disable .env loading when TESTING=1 (set by conftest.py)
        env_file=None if os.getenv("TESTING") else ".env",
        env_ignore_empty=True,
        extra="ignore",
        case_sensitive=True,
    )

    # API Configuration
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "RentCalc"
    APP_VERSION: str = _load_app_version_from_pyproject()

    # Environment
    ENVIRONMENT: Literal["local", "development", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    # Frontend Configuration
    FRONTEND_HOST: str | None = None

    # CORS Configuration
    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_list)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        """Get all CORS origins including frontend host"""
        origins = [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]
        if self.FRONTEND_HOST:
            origins.append(self.FRONTEND_HOST.rstrip("/"))
        return origins

    # Database Configuration (PostgreSQL)
    # The app_user table is owned by the REST API server; this service only reads it.
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "app"
    POSTGRES_PASSWORD: str = "changethis"
    POSTGRES_DB: str = "app"

    # Identity provider (Supabase/GoTrue compatible auth server)
    #
    # Set IDENTITY_PROVIDER_URL="mock" to use the in-memory MockIdentityProvider
    IDENTITY_PROVIDER_URL: str = "mock"
    IDENTITY_PROVIDER_API_KEY: str | None = None  # anon/public API key
    OAUTH_PROVIDER: str = "google"

    # REST API server (rent, ledger, payments, role selection)
    REST_API_URL: str = "http://localhost:4000"

    # Routing
    SIGN_IN_PATH: str = "/login"
    USER_TYPE_SELECTION_PATH: str = "/user-type-selection"
    CLIENT_CALLBACK_PATH: str = "/auth/callback"
    SERVER_CALLBACK_PATH: str = "/api/auth/callback"
    PROTECTED_PATH_PREFIXES: Annotated[
        list[str] | str, BeforeValidator(parse_list)
    ] = ["/owner", "/tenant", "/user-type-selection"]

    # PKCE verifier cookie
    PKCE_COOKIE_NAME: str = "pkce_code_verifier"
    PKCE_COOKIE_MAX_AGE_SECONDS: int = 600

    # The provider may be configured to omit the verifier requirement for the
    # server-driven exchange; when True a missing cookie aborts the callback.
    SERVER_CALLBACK_REQUIRES_VERIFIER: bool = False

    # Session cookie
    # Auto-generated for local/dev (sessions won't survive key changes across restarts).
    # For production, set explicitly and persist:
    #   python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
    SESSION_ENCRYPTION_KEY: str = urlsafe_b64encode(secrets.token_bytes(32)).decode()
    SESSION_COOKIE_NAME: str = "rentcalc-auth-token"
    SESSION_COOKIE_MAX_AGE_SECONDS: int = 60 * 60 * 24 * 7
    # Refresh the access token this many seconds before it expires
    SESSION_REFRESH_LEEWAY_SECONDS: int = 60

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> PostgresDsn:
        """Build PostgreSQL connection string"""
        return PostgresDsn.build(
            scheme="postgresql+psycopg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )


# Create settings instance
settings = Settings()
