"""Lifecycle controller for a single space.

This module implements the desired-state reconciliation pattern:
1. Create: submit the creation payload, then seed secrets and variables
2. Read: refresh the observed state from the Hub
3. Update: converge drifted attributes, one remote call per attribute
4. Delete: remove the space

ORDERING:
Update runs its steps in a fixed order, rename first. A rename changes the
identifier every later request is built from, so every step after it must
see the new identifier. Steps never run concurrently.

FAILURE POLICY:
Fail fast. The first failed remote call aborts the pass; nothing is retried.
Steps that already succeeded stay applied remotely, and the working state
reflecting them is attached to the raised error as ``partial_state``.

The controller holds no state between calls: the caller hands in the observed
state and owns persistence of what is returned.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol, TypeVar

from .client import SECRETS, VARIABLES, SpacesApi
from .errors import SpaceOperationError
from .fields import HARDWARE, RENAME, SLEEP_TIME, STORAGE, VISIBILITY
from .models import CreateRepoResponse, ObservedState, SpaceInfo, SpaceSpec
from .subcollections import CollectionReconciler, add_entries

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UpdateStep(Protocol):
    """One reconciliation step of an Update pass."""

    @property
    def step(self) -> str: ...

    def differs(self, desired: SpaceSpec, state: ObservedState) -> bool: ...

    def apply(self, client: SpacesApi, desired: SpaceSpec, state: ObservedState) -> None: ...


# Order is part of the contract, see module docstring
UPDATE_STEPS: tuple[UpdateStep, ...] = (
    RENAME,
    VISIBILITY,
    CollectionReconciler(SECRETS),
    CollectionReconciler(VARIABLES),
    HARDWARE,
    STORAGE,
    SLEEP_TIME,
)


class SpaceReconciler:
    """Create, read, update and delete a space against the Hub API.

    The remote client is injected so tests can substitute an in-memory
    double; the reconciler never constructs one itself.
    """

    def __init__(self, client: SpacesApi) -> None:
        self._client = client

    @staticmethod
    def import_state(space_id: str) -> ObservedState:
        """Start tracking an existing space by identifier.

        Only the identifier (and the name derived from it) is populated;
        call ``read`` afterwards to fill in the remaining attributes.
        """
        if "/" not in space_id:
            raise ValueError(f"Space identifier must be 'namespace/name': {space_id!r}")
        return ObservedState(id=space_id, name=space_id.rsplit("/", 1)[-1])

    def create(self, desired: SpaceSpec) -> ObservedState:
        """Create a space and seed its secrets and variables.

        Returns:
            Observed state of the new space.

        Raises:
            SpaceOperationError: If creation or any seeding call fails.
        """
        payload = desired.to_create_payload()
        logger.info("Creating space", extra={"space_name": desired.name})

        response = self._client.create_repo(payload).raise_for_status("create space")
        created = response.parse(CreateRepoResponse, "create space")

        state = ObservedState(
            id=created.name,
            name=desired.name,
            private=bool(desired.private),
            sdk=desired.sdk,
            template=desired.template,
            hardware=desired.hardware,
            storage=desired.storage,
            sleep_time=desired.sleep_time,
        )

        # New space: nothing to clear, add every entry unconditionally
        try:
            for collection in (SECRETS, VARIABLES):
                entries = getattr(desired, collection)
                if entries is not None:
                    add_entries(self._client, collection, state.id, entries)
                    setattr(state, collection, dict(entries))
        except SpaceOperationError:
            logger.error(
                "Space created but seeding failed",
                extra={"space_id": state.id},
            )
            raise

        logger.info("Space created", extra={"space_id": state.id, "url": created.url})
        return state

    def read(self, space_id: str, prior: ObservedState | None = None) -> ObservedState:
        """Refresh observed state from the Hub.

        Secret values, variables and the creation template cannot be read
        back and are carried over from ``prior``.

        Raises:
            APIError: On a non-success status. Callers should treat
                ``APIError.not_found`` as the space having disappeared.
        """
        response = self._client.get_space(space_id).raise_for_status("read space")
        info = response.parse(SpaceInfo, "read space")

        state = ObservedState(
            id=info.id,
            name=info.name,
            private=info.private,
            sdk=info.sdk,
            template=prior.template if prior else None,
            hardware=_prefer(info.hardware, prior.hardware if prior else None),
            storage=_prefer(info.storage, prior.storage if prior else None),
            sleep_time=_prefer(
                info.runtime.sleep_time if info.runtime else None,
                prior.sleep_time if prior else None,
            ),
            secrets=prior.secrets if prior else None,
            variables=prior.variables if prior else None,
            author=info.author,
            last_modified=info.last_modified,
            likes=info.likes,
            tags=list(info.tags),
        )
        logger.debug("Space refreshed", extra={"space_id": state.id, "stage": _stage(info)})
        return state

    def plan(self, desired: SpaceSpec, observed: ObservedState) -> list[str]:
        """Names of the steps an Update would run, in execution order.

        No remote calls are made.
        """
        return [step.step for step in UPDATE_STEPS if step.differs(desired, observed)]

    def update(self, desired: SpaceSpec, observed: ObservedState) -> ObservedState:
        """Converge the space to ``desired``.

        Works on a copy of ``observed``; the argument is never mutated.

        Returns:
            New observed state after every drifted attribute was applied.

        Raises:
            SpaceOperationError: First failure, with ``partial_state`` set to
                the working state at the time of the failure.
        """
        state = observed.model_copy(deep=True)
        start = time.monotonic()
        applied: list[str] = []

        for step in UPDATE_STEPS:
            if not step.differs(desired, state):
                continue
            try:
                step.apply(self._client, desired, state)
            except SpaceOperationError as e:
                e.partial_state = state
                logger.error(
                    "Update aborted",
                    extra={
                        "space_id": state.id,
                        "failed_step": step.step,
                        "applied_steps": applied,
                        "error": str(e),
                    },
                )
                raise
            applied.append(step.step)

        logger.info(
            "Update complete",
            extra={
                "space_id": state.id,
                "applied_steps": applied,
                "duration_seconds": round(time.monotonic() - start, 3),
            },
        )
        return state

    def delete(self, observed: ObservedState) -> None:
        """Delete the space by name.

        Raises:
            SpaceOperationError: If the delete call fails.
        """
        name = observed.name or observed.id.rsplit("/", 1)[-1]
        self._client.delete_repo(name).raise_for_status("delete space")
        logger.info("Space deleted", extra={"space_id": observed.id})


def _stage(info: SpaceInfo) -> str | None:
    return info.runtime.stage if info.runtime else None


def _prefer(reported: T | None, fallback: T | None) -> T | None:
    return reported if reported is not None else fallback
