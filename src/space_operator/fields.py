"""Per-property reconcilers for the scalar attributes of a space.

Each reconciler compares one desired attribute with its observed value and,
when they differ, applies the desired value through the property's own
endpoint. On success the working state is updated in place; on any failure
the error propagates and the Update pass stops.

A desired value of None means the attribute is unmanaged and is never
reconciled.
"""

from __future__ import annotations

import logging
from typing import Any

from .client import ApiResponse, SpacesApi
from .models import ObservedState, SpaceSpec

logger = logging.getLogger(__name__)


class FieldReconciler:
    """Base reconciler for one scalar attribute.

    Subclasses provide ``_call`` which issues the remote request; the
    comparison and the state update are shared.
    """

    def __init__(self, attribute: str, operation: str) -> None:
        self.attribute = attribute
        self.operation = operation

    @property
    def step(self) -> str:
        return self.attribute

    def desired_value(self, desired: SpaceSpec) -> Any:
        return getattr(desired, self.attribute)

    def differs(self, desired: SpaceSpec, state: ObservedState) -> bool:
        """True when the attribute is managed and has drifted."""
        value = self.desired_value(desired)
        return value is not None and value != getattr(state, self.attribute)

    def apply(self, client: SpacesApi, desired: SpaceSpec, state: ObservedState) -> None:
        """Converge the attribute if it has drifted.

        Raises:
            SpaceOperationError: If the remote call fails.
        """
        if not self.differs(desired, state):
            return

        value = self.desired_value(desired)
        logger.info(
            "Applying drifted attribute",
            extra={
                "space_id": state.id,
                "attribute": self.attribute,
                "observed": getattr(state, self.attribute),
                "desired": value,
            },
        )
        response = self._call(client, state, value)
        response.raise_for_status(self.operation)
        self._after_success(response, state, value)

    def _call(self, client: SpacesApi, state: ObservedState, value: Any) -> ApiResponse:
        raise NotImplementedError("Subclasses must implement _call")

    def _after_success(self, response: ApiResponse, state: ObservedState, value: Any) -> None:
        setattr(state, self.attribute, value)


class RenameReconciler(FieldReconciler):
    """Moves the space to a new name inside its current namespace.

    Must run before every other step: on success the working identifier
    changes, and every later request is built from it.
    """

    def __init__(self) -> None:
        super().__init__("name", "rename space")

    @property
    def step(self) -> str:
        return "rename"

    def _call(self, client: SpacesApi, state: ObservedState, value: Any) -> ApiResponse:
        return client.move_repo(state.id, state.renamed_id(value))

    def _after_success(self, response: ApiResponse, state: ObservedState, value: Any) -> None:
        new_id = state.renamed_id(value)
        logger.info("Space renamed", extra={"from_id": state.id, "to_id": new_id})
        state.id = new_id
        state.name = value


class VisibilityReconciler(FieldReconciler):
    """Toggles the private flag through the settings endpoint."""

    def __init__(self) -> None:
        super().__init__("private", "update space visibility")

    @property
    def step(self) -> str:
        return "visibility"

    def _call(self, client: SpacesApi, state: ObservedState, value: Any) -> ApiResponse:
        return client.update_settings(state.id, {"private": value})


class ActionReconciler(FieldReconciler):
    """Applies a runtime setting via POST /spaces/{id}/{action}.

    Hardware, storage and sleep time share this shape and differ only in
    the action path and the body key carrying the value.
    """

    def __init__(self, attribute: str, operation: str, action: str, body_key: str) -> None:
        super().__init__(attribute, operation)
        self.action = action
        self.body_key = body_key

    def _call(self, client: SpacesApi, state: ObservedState, value: Any) -> ApiResponse:
        return client.post_action(state.id, self.action, {self.body_key: value})

    def _after_success(self, response: ApiResponse, state: ObservedState, value: Any) -> None:
        # Applied remotely once the status is 2xx, even if the echo is malformed
        super()._after_success(response, state, value)
        if response.content.strip():
            response.json(self.operation)


RENAME = RenameReconciler()
VISIBILITY = VisibilityReconciler()
HARDWARE = ActionReconciler("hardware", "update space hardware", "hardware", "flavor")
STORAGE = ActionReconciler("storage", "update space storage", "storage", "tier")
SLEEP_TIME = ActionReconciler("sleep_time", "update space sleep time", "sleeptime", "seconds")
