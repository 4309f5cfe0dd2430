"""Relay configuration using pydantic-settings.

This module defines the RelaySettings class that reads configuration from
environment variables once at startup. The resulting settings object is
frozen and passed explicitly to every component; nothing reads the
environment after startup.

Only AKKERIS_API_TOKEN is required. Every other variable has a default that
targets the shared Akkeris and TaaS deployments.
"""

from typing import Optional

from pydantic import ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.hookrelay.errors import StartupConfigError

MISSING_TOKEN_MESSAGE = "Missing AKKERIS_API_TOKEN environment variable."


class RelaySettings(BaseSettings):
    """Hook relay configuration from environment variables.

    Variables are unprefixed (e.g., AKKERIS_API_TOKEN, TAAS_URL) so the
    relay can be dropped into the same app config as its predecessor.

    Required fields (must be set via environment variables):
    - akkeris_api_token: Raw Authorization header value for Akkeris and TaaS
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        frozen=True,
    )

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    host: str = "0.0.0.0"

    port: int = 9000

    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # Akkeris Configuration
    # -------------------------------------------------------------------------
    # Sent verbatim as the Authorization header (no scheme prefix)
    akkeris_api_token: str

    akkeris_api_url: str = "https://controller-api.maru.octanner.io"

    # -------------------------------------------------------------------------
    # Hook Filtering
    # -------------------------------------------------------------------------
    ui_image_repo: str = "akkeris/ui"

    ui_image_tag_prefix: str = "release-"

    # Malformed hooks get a 400 when strict, a silent 200 otherwise
    strict_validation: bool = True

    # Acknowledge before resolving releases, or only after scheduling
    ack_before_processing: bool = True

    # -------------------------------------------------------------------------
    # TaaS Configuration
    # -------------------------------------------------------------------------
    taas_url: str = "https://taas-maru.octanner.io"

    taas_test_name: str = "ui-tests-taas"

    # -------------------------------------------------------------------------
    # Scheduling and Transport
    # -------------------------------------------------------------------------
    # Deployment sync cadence and the grace period after each cycle
    sync_period_seconds: int = 300

    sync_offset_seconds: int = 60

    http_timeout_seconds: float = 30.0

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("akkeris_api_token")
    @classmethod
    def validate_token(cls, v: str) -> str:
        """Validate that the API token is not blank."""
        if not v or not v.strip():
            raise ValueError("akkeris_api_token cannot be empty")
        return v

    @field_validator("akkeris_api_url", "taas_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL scheme and strip any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("taas_test_name")
    @classmethod
    def validate_test_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("taas_test_name cannot be empty")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("http_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be positive")
        return v

    @model_validator(mode="after")
    def validate_schedule(self) -> "RelaySettings":
        """Validate that the grace offset fits inside one sync period."""
        if self.sync_period_seconds < 1:
            raise ValueError("sync_period_seconds must be at least 1")
        if not 0 <= self.sync_offset_seconds < self.sync_period_seconds:
            raise ValueError(
                "sync_offset_seconds must be >= 0 and less than sync_period_seconds"
            )
        return self


def _token_missing(exc: ValidationError) -> bool:
    return any(
        error.get("loc") == ("akkeris_api_token",) for error in exc.errors()
    )


def load_settings(**overrides: object) -> RelaySettings:
    """Create and return a RelaySettings instance.

    Reads configuration from environment variables. Keyword overrides take
    precedence over the environment and are mainly useful in tests.

    Returns:
        RelaySettings: Validated, immutable settings.

    Raises:
        StartupConfigError: If the token is missing or any value is invalid.
    """
    try:
        return RelaySettings(**overrides)
    except ValidationError as exc:
        if _token_missing(exc):
            raise StartupConfigError(MISSING_TOKEN_MESSAGE) from exc
        raise StartupConfigError(f"Invalid configuration: {exc}") from exc


def redact_secret(value: Optional[str], visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters.

    Args:
        value: The secret value to redact.
        visible_chars: Number of characters to show at the start.

    Returns:
        Redacted string with asterisks replacing hidden characters.
    """
    if not value:
        return ""
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)
