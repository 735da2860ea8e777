"""Pydantic models for space specifications, observed state and API responses.

These models provide:
1. Type-safe YAML parsing of the desired configuration
2. Validation at the boundary (fail fast, fail loudly)
3. Typed decoding of every Hub response the core consumes
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# Hub repository names: letters, digits, '.', '_' and '-', at most 96 characters
VALID_SPACE_NAME_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._-]{0,95}$"

# Hardware flavors are slugs such as "cpu-basic" or "a10g-small"
VALID_HARDWARE_PATTERN = r"^[a-z0-9][a-z0-9-]*$"

VALID_STORAGE_TIERS = frozenset({"small", "medium", "large"})

VALID_SDKS = frozenset({"gradio", "streamlit", "docker", "static"})

# Remote repository type for every request this operator issues
REPO_TYPE = "space"


# =============================================================================
# Desired configuration
# =============================================================================


class SpaceSpec(BaseModel):
    """Desired configuration of a space.

    Scalar fields left unset are unmanaged: the reconciler never touches
    them. ``secrets`` and ``variables`` follow the same rule, an unset map
    leaves the remote collection alone.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    name: Annotated[str, Field(pattern=VALID_SPACE_NAME_PATTERN)]
    private: bool | None = None
    sdk: str | None = None
    template: str | None = None
    hardware: Annotated[str, Field(pattern=VALID_HARDWARE_PATTERN)] | None = None
    storage: str | None = None
    sleep_time: Annotated[int, Field(ge=-1)] | None = Field(None, alias="sleepTime")
    secrets: dict[str, str] | None = None
    variables: dict[str, str] | None = None

    @field_validator("sdk")
    @classmethod
    def validate_sdk(cls, v: str | None) -> str | None:
        if v is not None and v not in VALID_SDKS:
            raise ValueError(f"sdk must be one of {sorted(VALID_SDKS)}")
        return v

    @field_validator("storage")
    @classmethod
    def validate_storage(cls, v: str | None) -> str | None:
        if v is not None and v not in VALID_STORAGE_TIERS:
            raise ValueError(f"storage must be one of {sorted(VALID_STORAGE_TIERS)}")
        return v

    @field_validator("secrets", "variables")
    @classmethod
    def validate_keys(cls, v: dict[str, str] | None) -> dict[str, str] | None:
        if v is not None:
            empty = [key for key in v if not key.strip()]
            if empty:
                raise ValueError("keys must not be empty")
        return v

    def to_create_payload(self) -> dict[str, Any]:
        """Build the body for POST /repos/create.

        Unset optional fields are omitted so the Hub applies its defaults. An
        unset ``private`` creates a public space.
        """
        payload: dict[str, Any] = {
            "type": REPO_TYPE,
            "name": self.name,
            "private": bool(self.private),
        }
        optional = {
            "sdk": self.sdk,
            "template": self.template,
            "hardware": self.hardware,
            "storage": self.storage,
            "sleepTime": self.sleep_time,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload


# =============================================================================
# Observed state
# =============================================================================


class ObservedState(BaseModel):
    """Last-known remote state of a space.

    ``id`` is ``{namespace}/{name}`` and is the only key used to build
    endpoint URLs. The trailing block holds attributes reported by the Hub
    that cannot be set through this operator.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str | None = None
    private: bool | None = None
    sdk: str | None = None
    template: str | None = None
    hardware: str | None = None
    storage: str | None = None
    sleep_time: int | None = None
    secrets: dict[str, str] | None = None
    variables: dict[str, str] | None = None

    # Read-only, reported by the Hub
    author: str | None = None
    last_modified: str | None = None
    likes: int | None = None
    tags: list[str] = Field(default_factory=list)

    @property
    def namespace(self) -> str:
        """Owner segment of the identifier."""
        return self.id.split("/", 1)[0]

    def renamed_id(self, new_name: str) -> str:
        """Identifier the space gets after renaming it within its namespace."""
        return f"{self.namespace}/{new_name}"


# =============================================================================
# Hub responses
# =============================================================================


class CreateRepoResponse(BaseModel):
    """Body returned by POST /repos/create."""

    model_config = ConfigDict(extra="ignore")

    name: str
    url: str | None = None


class SpaceHardwareInfo(BaseModel):
    """Current and requested hardware flavor."""

    model_config = ConfigDict(extra="ignore")

    current: str | None = None
    requested: str | None = None


class SpaceStorageInfo(BaseModel):
    """Current and requested persistent storage tier."""

    model_config = ConfigDict(extra="ignore")

    current: str | None = None
    requested: str | None = None


class SpaceRuntime(BaseModel):
    """Runtime block of the space info response."""

    model_config = ConfigDict(extra="ignore")

    stage: str | None = None
    hardware: SpaceHardwareInfo | None = None
    storage: SpaceStorageInfo | None = None
    sleep_time: int | None = Field(
        None, validation_alias=AliasChoices("gcTimeout", "sleep_time", "sleepTime")
    )


class SpaceInfo(BaseModel):
    """Body returned by GET /spaces/{id}."""

    model_config = ConfigDict(extra="ignore")

    id: str
    author: str | None = None
    sha: str | None = None
    last_modified: str | None = Field(None, alias="lastModified")
    private: bool = False
    disabled: bool = False
    tags: list[str] = Field(default_factory=list)
    likes: int = 0
    sdk: str | None = None
    runtime: SpaceRuntime | None = None
    created_at: str | None = Field(None, alias="createdAt")

    @property
    def name(self) -> str:
        """Trailing name segment of the identifier."""
        return self.id.rsplit("/", 1)[-1]

    @property
    def hardware(self) -> str | None:
        if self.runtime is None or self.runtime.hardware is None:
            return None
        return self.runtime.hardware.current or self.runtime.hardware.requested

    @property
    def storage(self) -> str | None:
        if self.runtime is None or self.runtime.storage is None:
            return None
        return self.runtime.storage.current or self.runtime.storage.requested


class CollectionEntry(BaseModel):
    """One entry of a secrets or variables listing returned as a list."""

    model_config = ConfigDict(extra="ignore")

    key: str
