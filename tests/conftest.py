"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for hub_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from hub_mock import MockSpacesClient  # noqa: E402

from space_operator.models import ObservedState, SpaceSpec  # noqa: E402
from space_operator.reconciler import SpaceReconciler  # noqa: E402

# Environment variables read by Config.from_env
CONFIG_ENV_VARS = (
    "HF_ENDPOINT",
    "HF_TOKEN",
    "HUGGING_FACE_HUB_TOKEN",
    "REQUEST_TIMEOUT",
    "DRY_RUN",
    "ENABLE_JSON_LOGGING",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove every configuration variable from the environment."""
    for var in CONFIG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def hub() -> MockSpacesClient:
    """Empty in-memory Hub for the 'alice' namespace."""
    return MockSpacesClient(namespace="alice")


@pytest.fixture
def reconciler(hub: MockSpacesClient) -> SpaceReconciler:
    return SpaceReconciler(hub)


@pytest.fixture
def desired() -> SpaceSpec:
    """Spec matching the ``observed`` fixture exactly."""
    return SpaceSpec(
        name="demo",
        private=False,
        sdk="gradio",
        hardware="cpu-basic",
        storage="small",
        sleep_time=3600,
        secrets={"a": "1", "b": "2"},
        variables={"MODEL": "gpt2"},
    )


@pytest.fixture
def observed(hub: MockSpacesClient) -> ObservedState:
    """Tracked state of an existing alice/demo space, also present in ``hub``."""
    hub.add_space(
        "demo",
        sdk="gradio",
        hardware="cpu-basic",
        storage="small",
        sleep_time=3600,
        secrets={"a": "1", "b": "2"},
        variables={"MODEL": "gpt2"},
    )
    return ObservedState(
        id="alice/demo",
        name="demo",
        private=False,
        sdk="gradio",
        hardware="cpu-basic",
        storage="small",
        sleep_time=3600,
        secrets={"a": "1", "b": "2"},
        variables={"MODEL": "gpt2"},
    )
