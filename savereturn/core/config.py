"""Application configuration loaded from environment variables.

Settings for database, CORS, service token authentication and email token
lifetimes. Uses pydantic-settings for validation and .env file support.
"""

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "savereturn_dev_password"  # nosec B105

# Minimum length for SERVICE_TOKEN_SECRET when auth is enabled (256 bits)
_MIN_SERVICE_TOKEN_SECRET_LENGTH = 32

# 28 days, the longest save-and-return window offered to form users
_MAX_DURATION_MINUTES = 28 * 24 * 60


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "savereturn"
    database_user: str = "savereturn_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # CORS (Security)
    # Production: Set ALLOWED_ORIGINS to the publisher domain(s)
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Service token authentication
    # Publishers sign a short-lived HS256 JWT with the shared secret and send
    # it in the x-access-token header. Disabled for local development.
    auth_enabled: bool = False
    service_token_secret: SecretStr = SecretStr("")
    service_token_header: str = "x-access-token"
    service_token_leeway_seconds: int = 60

    # Email confirmation tokens
    email_token_default_duration_minutes: int = 30
    email_token_max_duration_minutes: int = _MAX_DURATION_MINUTES

    # Maintenance (scripts/purge_expired_tokens.py)
    purge_retention_days: int = 7

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_confirm: str = "10/minute"  # email/confirm
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for the application engine and Alembic."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate configuration invariants.

        Security: Prevents deployment with known insecure defaults.
        Checks:
        - Token durations must be positive and default <= maximum (all environments)
        - CORS must not use wildcard origin (all environments)
        - Database password must not be the default in production
        - SERVICE_TOKEN_SECRET must be set and >= 32 chars when auth is enabled
          in production
        """
        if self.email_token_default_duration_minutes <= 0:
            msg = (
                "EMAIL_TOKEN_DEFAULT_DURATION_MINUTES must be positive. "
                f"Got: {self.email_token_default_duration_minutes}"
            )
            raise ValueError(msg)
        if (
            self.email_token_default_duration_minutes
            > self.email_token_max_duration_minutes
        ):
            msg = (
                "EMAIL_TOKEN_DEFAULT_DURATION_MINUTES cannot exceed "
                "EMAIL_TOKEN_MAX_DURATION_MINUTES "
                f"({self.email_token_max_duration_minutes})."
            )
            raise ValueError(msg)

        if self.purge_retention_days < 0:
            msg = (
                "PURGE_RETENTION_DAYS cannot be negative. "
                f"Got: {self.purge_retention_days}"
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "List the publisher origins explicitly."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            if self.auth_enabled:
                secret_value = self.service_token_secret.get_secret_value()
                if not secret_value:
                    msg = (
                        "SERVICE_TOKEN_SECRET must be set when AUTH_ENABLED=true "
                        'in production. Generate with: python -c "import secrets; '
                        'print(secrets.token_hex(32))"'
                    )
                    raise ValueError(msg)
                if len(secret_value) < _MIN_SERVICE_TOKEN_SECRET_LENGTH:
                    msg = (
                        "SERVICE_TOKEN_SECRET must be at least "
                        f"{_MIN_SERVICE_TOKEN_SECRET_LENGTH} characters for "
                        "adequate security."
                    )
                    raise ValueError(msg)

        return self


settings = Settings()
