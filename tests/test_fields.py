"""Tests for the scalar field reconcilers."""

from __future__ import annotations

import pytest
from hub_mock import MockSpacesClient

from space_operator.errors import APIError
from space_operator.fields import HARDWARE, RENAME, SLEEP_TIME, STORAGE, VISIBILITY
from space_operator.models import ObservedState, SpaceSpec


@pytest.fixture
def state(hub: MockSpacesClient) -> ObservedState:
    hub.add_space("demo", hardware="cpu-basic", storage="small", sleep_time=3600)
    return ObservedState(
        id="alice/demo",
        name="demo",
        private=False,
        hardware="cpu-basic",
        storage="small",
        sleep_time=3600,
    )


class TestDiffers:
    """Tests for drift detection."""

    def test_equal_values_do_not_differ(self, state: ObservedState) -> None:
        spec = SpaceSpec(name="demo", hardware="cpu-basic", storage="small", sleep_time=3600)
        for field in (RENAME, VISIBILITY, HARDWARE, STORAGE, SLEEP_TIME):
            assert field.differs(spec, state) is False

    def test_unset_values_never_differ(self, state: ObservedState) -> None:
        spec = SpaceSpec(name="demo")
        assert HARDWARE.differs(spec, state) is False
        assert STORAGE.differs(spec, state) is False
        assert SLEEP_TIME.differs(spec, state) is False

    def test_changed_value_differs(self, state: ObservedState) -> None:
        spec = SpaceSpec(name="demo", sleep_time=60)
        assert SLEEP_TIME.differs(spec, state) is True


class TestApply:
    """Tests for applying drifted fields."""

    def test_apply_without_drift_is_noop(
        self, hub: MockSpacesClient, state: ObservedState
    ) -> None:
        HARDWARE.apply(hub, SpaceSpec(name="demo", hardware="cpu-basic"), state)
        assert hub.calls == []

    def test_storage_applied(self, hub: MockSpacesClient, state: ObservedState) -> None:
        STORAGE.apply(hub, SpaceSpec(name="demo", storage="medium"), state)

        assert hub.paths() == ["POST /spaces/alice/demo/storage"]
        assert hub.calls[0].payload == {"tier": "medium"}
        assert state.storage == "medium"

    def test_failed_apply_leaves_value(self, hub: MockSpacesClient, state: ObservedState) -> None:
        """Test that the observed value only changes on success."""
        hub.fail("POST", "/sleeptime", status_code=400, body="bad seconds")

        with pytest.raises(APIError) as exc_info:
            SLEEP_TIME.apply(hub, SpaceSpec(name="demo", sleep_time=5), state)

        assert "update space sleep time" in str(exc_info.value)
        assert state.sleep_time == 3600

    def test_rename_updates_identifier(
        self, hub: MockSpacesClient, state: ObservedState
    ) -> None:
        RENAME.apply(hub, SpaceSpec(name="fresh"), state)

        assert state.id == "alice/fresh"
        assert state.name == "fresh"

    def test_rename_conflict(self, hub: MockSpacesClient, state: ObservedState) -> None:
        """Test that a taken target name leaves the identifier unchanged."""
        hub.add_space("taken")

        with pytest.raises(APIError) as exc_info:
            RENAME.apply(hub, SpaceSpec(name="taken"), state)

        assert exc_info.value.status_code == 409
        assert "rename space" in str(exc_info.value)
        assert state.id == "alice/demo"

    def test_visibility_uses_settings(self, hub: MockSpacesClient, state: ObservedState) -> None:
        VISIBILITY.apply(hub, SpaceSpec(name="demo", private=True), state)

        assert hub.calls[0].method == "PUT"
        assert hub.calls[0].payload == {"private": True}
        assert state.private is True
        assert hub.spaces["alice/demo"].private is True

    def test_empty_action_response_accepted(
        self, hub: MockSpacesClient, state: ObservedState
    ) -> None:
        """Test that an empty 200 body is not a decode error."""
        hub.fail("POST", "/hardware", status_code=200, body="")

        HARDWARE.apply(hub, SpaceSpec(name="demo", hardware="t4-small"), state)

        assert state.hardware == "t4-small"
