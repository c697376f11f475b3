"""Settings for the artigov service, read from the environment or ``.env``."""

from enum import Enum
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

INSECURE_DEFAULT_SECRET = "dev-insecure-key-change-me"


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """The settings are unsafe to run with in the current environment."""


class Settings(BaseSettings):
    """Service settings.

    Every field maps to an upper-case environment variable of the same name
    (``INCLUDE_EDITORS_AS_APPROVERS=true``). Values are validated on load,
    so a typo in a workflow setting fails at startup instead of at the first
    approval.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(default=Environment.DEVELOPMENT)

    # Storage
    database_url: str = Field(
        default="sqlite:///./artigov.db",
        description="SQLAlchemy URL; PostgreSQL in production, SQLite for local runs and tests"
    )
    db_pool_size: int = Field(default=5, ge=1)
    db_max_overflow: int = Field(default=10, ge=0)
    db_pool_timeout: int = Field(default=30, ge=1, description="Seconds to wait for a pooled connection")
    db_pool_recycle: int = Field(default=1800, description="Seconds before a pooled connection is replaced")

    # Caller identity
    # AUTH_ENABLED=false reads the caller from the X-User-Id header (local development only).
    jwt_secret_key: str = Field(default=INSECURE_DEFAULT_SECRET, description="HS256 signing secret")
    jwt_algorithm: str = Field(default="HS256")
    auth_enabled: bool = Field(default=False)

    # Approval workflow
    include_editors_as_approvers: bool = Field(
        default=False,
        description="Count project editors as approvers, in the pool and in requires-all quorums"
    )
    default_step_name: str = Field(
        default="Approval",
        description="Name of the step created for a project that has no steps configured"
    )

    # HTTP
    cors_allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed browser origins"
    )
    rate_limit_per_minute: int = Field(default=120, ge=0, description="Per-caller request cap; 0 disables")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="'json' or 'text'")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("log_format")
    @classmethod
    def _known_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")
        return fmt

    @field_validator("jwt_algorithm")
    @classmethod
    def _hs256_only(cls, v: str) -> str:
        if v != "HS256":
            raise ValueError("Only HS256 tokens are supported")
        return v

    @field_validator("default_step_name")
    @classmethod
    def _step_name_present(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("DEFAULT_STEP_NAME must not be blank")
        return v.strip()

    def get_cors_origins(self) -> List[str]:
        """Parsed CORS origins. A wildcard is refused outright."""
        origins = [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]
        if "*" in origins:
            raise ValueError("Wildcard CORS (*) is not allowed; list origins in CORS_ALLOWED_ORIGINS")
        return origins

    def insecure_settings(self) -> List[str]:
        """Human-readable list of settings that are unsafe outside development."""
        problems: List[str] = []
        if self.jwt_secret_key == INSECURE_DEFAULT_SECRET:
            problems.append("JWT_SECRET_KEY is the built-in default (generate one: openssl rand -hex 32)")
        if not self.auth_enabled:
            problems.append("AUTH_ENABLED is false, so any caller can claim any X-User-Id")
        local = [o for o in self.get_cors_origins() if "localhost" in o or "127.0.0.1" in o]
        if local:
            problems.append(f"CORS allows local origins: {local}")
        return problems

    def validate_production_config(self) -> None:
        """Refuse to start a production deployment with insecure settings.

        Raises:
            ConfigurationError: In production, when ``insecure_settings()`` is non-empty.
        """
        problems = self.insecure_settings()
        if problems and self.environment == Environment.PRODUCTION:
            raise ConfigurationError(
                "Production configuration is insecure:\n  - " + "\n  - ".join(problems)
            )


settings = Settings()
