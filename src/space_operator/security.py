"""Credential handling and secret redaction.

SECURITY INVARIANTS:
1. The Hub token is read from the environment only, never from spec files
2. Secret values never reach a log line; payloads are redacted first
3. Tokens are masked whenever they are echoed back for diagnostics
"""

from __future__ import annotations

import logging
import os
from typing import Any

from azure.core.credentials import AzureKeyCredential

logger = logging.getLogger(__name__)

# Environment variables checked for the Hub token, in priority order
TOKEN_ENV_VARS: tuple[str, ...] = (
    "HF_TOKEN",
    "HUGGING_FACE_HUB_TOKEN",
)

# Payload keys whose values are always masked in logs
SENSITIVE_PAYLOAD_KEYS: frozenset[str] = frozenset({"value", "token", "password", "secret"})

REDACTED = "***REDACTED***"


def resolve_token() -> str | None:
    """Return the first configured Hub token, or None if unauthenticated."""
    for env_var in TOKEN_ENV_VARS:
        value = os.environ.get(env_var)
        if value:
            logger.debug("Using Hub token", extra={"env_var": env_var, "token": mask_token(value)})
            return value
    return None


def get_token_credential(token: str | None) -> AzureKeyCredential | None:
    """Wrap a Hub token for use by the HTTP pipeline.

    Returns:
        AzureKeyCredential, or None when no token is configured.
    """
    if not token:
        logger.warning("No Hub token configured, requests will be anonymous")
        return None
    return AzureKeyCredential(token)


def mask_token(token: str) -> str:
    """Mask all but the first four characters of a token."""
    if len(token) <= 8:
        return "***"
    return token[:4] + "..."


def redact(payload: Any) -> Any:
    """Return a copy of a request payload safe to log.

    Values stored under sensitive keys are replaced, recursively.
    """
    if isinstance(payload, dict):
        return {
            key: REDACTED if key in SENSITIVE_PAYLOAD_KEYS else redact(value)
            for key, value in payload.items()
        }
    if isinstance(payload, list):
        return [redact(item) for item in payload]
    return payload
