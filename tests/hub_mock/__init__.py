"""Hub API mock for integration testing.

Provides an in-memory implementation of the spaces REST API so lifecycle
operations can be tested without Hub connectivity.

Key Features:
- In-memory spaces with secrets and variables
- Call recording for ordering assertions
- Status code and transport error injection per endpoint

Usage:
    from hub_mock import MockSpacesClient

    client = MockSpacesClient(namespace="alice")
    reconciler = SpaceReconciler(client)
    state = reconciler.create(spec)

    assert client.paths()[0] == "POST /repos/create"
"""

from .spaces import MockSpace, MockSpacesClient, RecordedCall

__all__ = [
    "MockSpace",
    "MockSpacesClient",
    "RecordedCall",
]
