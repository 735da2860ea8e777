"""Error types raised by the space reconciliation core.

Every error names the operation that was executing ("update space hardware",
"add secret", ...) so that a failure can be diagnosed from the message alone.
When an Update pass aborts part way through, the controller attaches the
working state to the error as ``partial_state`` so the caller can persist
whatever converged before the failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ObservedState

# Response bodies are truncated in messages to keep log lines bounded
MAX_BODY_IN_MESSAGE = 2048


class SpaceOperationError(Exception):
    """Base class for all reconciliation errors."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"Unable to {operation}, {message}")
        self.operation = operation
        self.partial_state: ObservedState | None = None


class TransportError(SpaceOperationError):
    """No response was obtained (connection, DNS, timeout)."""

    def __init__(self, operation: str, cause: Exception) -> None:
        super().__init__(operation, f"got error: {cause}")
        self.cause = cause


class APIError(SpaceOperationError):
    """The remote API answered with a non-success status code."""

    def __init__(self, operation: str, status_code: int, body: str | None = None) -> None:
        message = f"got status code: {status_code}"
        if body:
            message += f", response body: {body[:MAX_BODY_IN_MESSAGE]}"
        super().__init__(operation, message)
        self.status_code = status_code
        self.body = body

    @property
    def not_found(self) -> bool:
        """True when the status means the space no longer exists."""
        return self.status_code == 404


class DecodeError(SpaceOperationError):
    """The response body could not be parsed as JSON."""

    def __init__(self, operation: str, cause: Exception) -> None:
        super().__init__(operation, f"could not decode response: {cause}")
        self.cause = cause


class ResponseShapeError(SpaceOperationError):
    """The response parsed but a required field is missing or mistyped."""

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(operation, f"unexpected response shape: {detail}")
        self.detail = detail
