"""Replace-all reconciliation for the secrets and variables collections.

The Hub exposes no diff or patch primitive for these collections, only
"list all", "add one" and "delete one by key". Convergence therefore deletes
every key present remotely and then adds every desired pair. Between the two
phases the remote collection is briefly empty or partial; under concurrent
external modification it can end up matching neither the desired nor the
prior state. That window is accepted.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from .client import ApiResponse, SpacesApi
from .errors import ResponseShapeError
from .models import CollectionEntry, ObservedState, SpaceSpec

logger = logging.getLogger(__name__)


def _singular(collection: str) -> str:
    return collection[:-1] if collection.endswith("s") else collection


def remote_keys(response: ApiResponse, collection: str) -> list[str]:
    """Extract entry keys from a successful listing response.

    The Hub returns either an object keyed by entry key or a list of
    ``{"key": ...}`` objects.

    Raises:
        DecodeError: Body is not JSON.
        ResponseShapeError: JSON is neither shape.
    """
    operation = f"retrieve {collection}"
    data: Any = response.json(operation)
    if isinstance(data, dict):
        return list(data)
    if isinstance(data, list):
        try:
            return [CollectionEntry.model_validate(item).key for item in data]
        except ValidationError as e:
            raise ResponseShapeError(operation, f"{collection} entry without a string key") from e
    raise ResponseShapeError(operation, f"expected an object or list, got {type(data).__name__}")


def add_entries(
    client: SpacesApi,
    collection: str,
    space_id: str,
    entries: dict[str, str],
) -> None:
    """Add every entry, stopping at the first failure.

    Keys are added in sorted order so the call sequence is deterministic.
    """
    operation = f"add {_singular(collection)}"
    for key in sorted(entries):
        client.add_key(collection, space_id, key, entries[key]).raise_for_status(operation)
        logger.debug(
            "Added entry", extra={"collection": collection, "space_id": space_id, "key": key}
        )


def delete_remote_entries(client: SpacesApi, collection: str, space_id: str) -> int:
    """Delete every entry currently present remotely.

    A listing that fails with a non-success status is treated as an empty
    collection and nothing is deleted.

    Returns:
        Number of entries deleted.
    """
    listing = client.list_keys(collection, space_id)
    if not listing.ok:
        logger.warning(
            "Could not list remote entries, skipping deletion",
            extra={
                "collection": collection,
                "space_id": space_id,
                "status_code": listing.status_code,
            },
        )
        return 0

    operation = f"delete {_singular(collection)}"
    keys = remote_keys(listing, collection)
    for key in keys:
        client.delete_key(collection, space_id, key).raise_for_status(operation)
        logger.debug(
            "Deleted entry", extra={"collection": collection, "space_id": space_id, "key": key}
        )
    return len(keys)


class CollectionReconciler:
    """Converges one sub-collection of a space to its desired map."""

    def __init__(self, collection: str) -> None:
        self.collection = collection

    @property
    def step(self) -> str:
        return self.collection

    def differs(self, desired: SpaceSpec, state: ObservedState) -> bool:
        """True when the collection is managed and differs from the observed map."""
        wanted = getattr(desired, self.collection)
        return wanted is not None and wanted != getattr(state, self.collection)

    def apply(self, client: SpacesApi, desired: SpaceSpec, state: ObservedState) -> None:
        """Replace the remote collection with the desired map.

        Raises:
            SpaceOperationError: On the first failed delete or add.
        """
        if not self.differs(desired, state):
            return

        wanted: dict[str, str] = getattr(desired, self.collection)
        deleted = delete_remote_entries(client, self.collection, state.id)
        add_entries(client, self.collection, state.id, wanted)
        setattr(state, self.collection, dict(wanted))

        logger.info(
            "Replaced remote collection",
            extra={
                "space_id": state.id,
                "collection": self.collection,
                "deleted": deleted,
                "added": len(wanted),
            },
        )
