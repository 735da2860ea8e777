"""HTTP client for the Hub spaces REST API.

The client is a thin transport: it builds requests for a fixed set of endpoint
templates, sends each one exactly once, and hands back the raw status code and
body. Deciding whether a status is acceptable is left to the caller, which
knows which operation it is performing.

SECURITY: Timeouts are enforced on every request to prevent indefinite hangs.
No retry policy is installed; a failed call is surfaced immediately.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar
from urllib.parse import quote

from azure.core import PipelineClient
from azure.core.exceptions import ServiceRequestError, ServiceResponseError
from azure.core.pipeline.policies import (
    AzureKeyCredentialPolicy,
    HeadersPolicy,
    NetworkTraceLoggingPolicy,
    RetryPolicy,
    UserAgentPolicy,
)
from azure.core.rest import HttpRequest
from pydantic import BaseModel, ValidationError

from .config import Config
from .errors import APIError, DecodeError, ResponseShapeError, TransportError
from .models import REPO_TYPE
from .security import get_token_credential, redact

logger = logging.getLogger(__name__)

USER_AGENT = "space-operator/0.1.0"

# Sub-collections exposed by the spaces API
SECRETS = "secrets"
VARIABLES = "variables"

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class ApiResponse:
    """Status code and raw body of one Hub response."""

    status_code: int
    content: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def raise_for_status(self, operation: str) -> ApiResponse:
        """Raise APIError naming ``operation`` unless the status is 2xx."""
        if not self.ok:
            raise APIError(operation, self.status_code, self.text or None)
        return self

    def json(self, operation: str) -> Any:
        """Decode the body as JSON, raising DecodeError on failure."""
        try:
            return json.loads(self.content)
        except (ValueError, UnicodeDecodeError) as e:
            raise DecodeError(operation, e) from e

    def parse(self, model: type[ModelT], operation: str) -> ModelT:
        """Decode the body into ``model``.

        Raises:
            DecodeError: Body is not JSON.
            ResponseShapeError: JSON does not match the model.
        """
        data = self.json(operation)
        if not isinstance(data, dict):
            raise ResponseShapeError(operation, f"expected a JSON object, got {type(data).__name__}")
        try:
            return model.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(x) for x in error['loc'])}: {error['msg']}" for error in e.errors()
            )
            raise ResponseShapeError(operation, problems) from e


class SpacesApi(Protocol):
    """Remote operations the reconciler depends on.

    ``HubClient`` is the production implementation; tests substitute an
    in-memory double.
    """

    def create_repo(self, payload: dict[str, Any]) -> ApiResponse: ...

    def get_space(self, space_id: str) -> ApiResponse: ...

    def update_settings(self, space_id: str, payload: dict[str, Any]) -> ApiResponse: ...

    def post_action(self, space_id: str, action: str, payload: dict[str, Any]) -> ApiResponse: ...

    def list_keys(self, collection: str, space_id: str) -> ApiResponse: ...

    def add_key(self, collection: str, space_id: str, key: str, value: str) -> ApiResponse: ...

    def delete_key(self, collection: str, space_id: str, key: str) -> ApiResponse: ...

    def move_repo(self, from_id: str, to_id: str) -> ApiResponse: ...

    def delete_repo(self, name: str) -> ApiResponse: ...


class HubClient:
    """SpacesApi implementation backed by an azure-core HTTP pipeline."""

    def __init__(self, config: Config) -> None:
        """Initialize the pipeline from configuration.

        Args:
            config: Validated operator configuration.
        """
        self._config = config
        self._endpoint = config.endpoint.rstrip("/")

        policies: list[Any] = [
            HeadersPolicy({"Accept": "application/json"}),
            UserAgentPolicy(base_user_agent=USER_AGENT),
            RetryPolicy.no_retries(),
        ]
        credential = get_token_credential(config.token)
        if credential is not None:
            policies.append(AzureKeyCredentialPolicy(credential, "Authorization", prefix="Bearer"))
        policies.append(NetworkTraceLoggingPolicy())

        self._client = PipelineClient(base_url=self._endpoint, policies=policies)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HubClient:
        return self

    def __exit__(self, *exc_details: Any) -> None:
        self.close()

    def _space_url(self, space_id: str, *suffix: str) -> str:
        path = "/".join(quote(part, safe="/") for part in (space_id, *suffix))
        return f"{self._endpoint}/api/spaces/{path}"

    def _send(
        self,
        operation: str,
        method: str,
        url: str,
        payload: dict[str, Any] | None = None,
    ) -> ApiResponse:
        """Send one request and return its status and body.

        Raises:
            TransportError: If no response was obtained.
        """
        logger.debug(
            "Sending Hub request",
            extra={
                "operation": operation,
                "method": method,
                "url": url,
                "payload": redact(payload),
            },
        )
        request = HttpRequest(method, url, json=payload)
        try:
            response = self._client.send_request(
                request,
                connection_timeout=self._config.request_timeout_seconds,
                read_timeout=self._config.request_timeout_seconds,
            )
        except (ServiceRequestError, ServiceResponseError) as e:
            raise TransportError(operation, e) from e

        result = ApiResponse(status_code=response.status_code, content=response.content or b"")
        logger.debug(
            "Received Hub response",
            extra={"operation": operation, "status_code": result.status_code},
        )
        return result

    def create_repo(self, payload: dict[str, Any]) -> ApiResponse:
        return self._send("create space", "POST", f"{self._endpoint}/api/repos/create", payload)

    def get_space(self, space_id: str) -> ApiResponse:
        return self._send("read space", "GET", self._space_url(space_id))

    def update_settings(self, space_id: str, payload: dict[str, Any]) -> ApiResponse:
        return self._send(
            "update space settings", "PUT", self._space_url(space_id, "settings"), payload
        )

    def post_action(self, space_id: str, action: str, payload: dict[str, Any]) -> ApiResponse:
        return self._send(
            f"update space {action}", "POST", self._space_url(space_id, action), payload
        )

    def list_keys(self, collection: str, space_id: str) -> ApiResponse:
        return self._send(f"retrieve {collection}", "GET", self._space_url(space_id, collection))

    def add_key(self, collection: str, space_id: str, key: str, value: str) -> ApiResponse:
        return self._send(
            f"add {collection}",
            "POST",
            self._space_url(space_id, collection),
            {"key": key, "value": value},
        )

    def delete_key(self, collection: str, space_id: str, key: str) -> ApiResponse:
        return self._send(
            f"delete {collection}",
            "DELETE",
            self._space_url(space_id, collection),
            {"key": key},
        )

    def move_repo(self, from_id: str, to_id: str) -> ApiResponse:
        return self._send(
            "rename space",
            "POST",
            f"{self._endpoint}/api/repos/move",
            {"fromRepo": from_id, "toRepo": to_id, "type": REPO_TYPE},
        )

    def delete_repo(self, name: str) -> ApiResponse:
        return self._send(
            "delete space",
            "DELETE",
            f"{self._endpoint}/api/repos/delete",
            {"type": REPO_TYPE, "name": name},
        )
