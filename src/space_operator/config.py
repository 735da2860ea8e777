"""Configuration management with validation.

Configuration is validated at load time so that a bad endpoint or timeout
fails before any remote call is attempted.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Configuration constants with documented bounds
DEFAULT_HUB_ENDPOINT = "https://huggingface.co"

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30
MIN_REQUEST_TIMEOUT_SECONDS = 1
MAX_REQUEST_TIMEOUT_SECONDS = 600

DEFAULT_LOG_LEVEL = "INFO"

# File size limits for host-side inputs
MAX_SPEC_FILE_SIZE_BYTES = 1024 * 1024  # 1MB max spec file
MAX_STATE_FILE_SIZE_BYTES = 1024 * 1024  # 1MB max state file

# Input validation patterns
VALID_ENDPOINT_PATTERN = r"^https?://[A-Za-z0-9.-]+(:[0-9]{1,5})?(/[A-Za-z0-9._~/-]*)?$"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Config:
    """Operator configuration loaded from environment variables.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing at runtime.
    """

    endpoint: str = DEFAULT_HUB_ENDPOINT
    token: str | None = None

    # Timing
    request_timeout_seconds: int = DEFAULT_REQUEST_TIMEOUT_SECONDS

    # Behavior
    dry_run: bool = False

    # Logging
    enable_json_logging: bool = True
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.endpoint:
            errors.append("HF_ENDPOINT is required")
        elif not re.match(VALID_ENDPOINT_PATTERN, self.endpoint):
            errors.append(f"HF_ENDPOINT must be an http(s) URL: {self.endpoint}")

        if self.token is not None and not self.token.strip():
            errors.append("HF_TOKEN must not be blank when set")

        if not (
            MIN_REQUEST_TIMEOUT_SECONDS
            <= self.request_timeout_seconds
            <= MAX_REQUEST_TIMEOUT_SECONDS
        ):
            errors.append(
                f"REQUEST_TIMEOUT must be between {MIN_REQUEST_TIMEOUT_SECONDS} "
                f"and {MAX_REQUEST_TIMEOUT_SECONDS} seconds"
            )

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {list(VALID_LOG_LEVELS)}: {self.log_level}")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def log_level_number(self) -> int:
        """Numeric logging level for the configured LOG_LEVEL."""
        return logging.getLevelName(self.log_level.upper())

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            HF_ENDPOINT: Hub base URL (default: https://huggingface.co)
            HF_TOKEN: Access token; HUGGING_FACE_HUB_TOKEN is accepted as fallback
            REQUEST_TIMEOUT: Per-request timeout in seconds (default: 30)
            DRY_RUN: If "true", plan changes without applying (default: false)
            ENABLE_JSON_LOGGING: Emit JSON log lines (default: true)
            LOG_LEVEL: Root log level (default: INFO)
        """
        from .security import resolve_token

        def get_int(key: str, default: int) -> int:
            value = os.environ.get(key)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{key} must be an integer: {value}") from e

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        return cls(
            endpoint=os.environ.get("HF_ENDPOINT", DEFAULT_HUB_ENDPOINT).rstrip("/"),
            token=resolve_token(),
            request_timeout_seconds=get_int("REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT_SECONDS),
            dry_run=get_bool("DRY_RUN", False),
            enable_json_logging=get_bool("ENABLE_JSON_LOGGING", True),
            log_level=os.environ.get("LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )
