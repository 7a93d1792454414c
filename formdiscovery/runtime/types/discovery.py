"""Discovery types: resources, lookup stages, results and capability sets.

Resources (storage accounts, function templates, binding definitions) are
parsed from the loosely-typed payloads returned by collaborators into frozen
dataclasses. A DiscoveryResult is immutable once constructed; the next
generation supersedes it wholesale.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from ._tags import GenerationTag


# =============================================================================
# Resources
# =============================================================================


class StorageKind:
    """Storage account kinds as reported by the resource manager."""

    STORAGE = "Storage"
    STORAGE_V2 = "StorageV2"
    BLOB_STORAGE = "BlobStorage"
    FILE_STORAGE = "FileStorage"


# Account kinds that can host blob containers.
BLOB_CAPABLE_KINDS = frozenset(
    {StorageKind.STORAGE, StorageKind.STORAGE_V2, StorageKind.BLOB_STORAGE}
)


class StorageMode(str, Enum):
    """Mutually exclusive storage mount types."""

    AZURE_BLOB = "AzureBlob"
    AZURE_FILES = "AzureFiles"


@dataclass(frozen=True)
class StorageAccount:
    """A storage account the user can pick."""

    id: str
    name: str
    kind: str = StorageKind.STORAGE_V2

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorageAccount":
        return cls(
            id=data["id"],
            name=data["name"],
            kind=data.get("kind") or StorageKind.STORAGE_V2,
        )


@dataclass(frozen=True)
class FunctionTemplate:
    """A function creation template.

    Attributes:
        id: Template identifier (the selection key).
        name: Display name.
        bindings: Declared bindings as raw dictionaries; each binding declares
            the properties (e.g. "connection", "path") a user may be prompted
            for.
        user_prompt: Names of the settings the user is prompted for on
            creation.
        default_function_name: Suggested function name.
    """

    id: str
    name: str = ""
    bindings: Tuple[Dict[str, Any], ...] = ()
    user_prompt: Tuple[str, ...] = ()
    default_function_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionTemplate":
        return cls(
            id=data["id"],
            name=data.get("name") or data["id"],
            bindings=tuple(data.get("bindings") or ()),
            user_prompt=tuple(data.get("userPrompt") or ()),
            default_function_name=data.get("defaultFunctionName"),
        )


@dataclass(frozen=True)
class BindingSettingOption:
    """One entry of an enum-valued binding setting."""

    value: str
    display: str


@dataclass(frozen=True)
class BindingSetting:
    """A configurable setting of a binding definition.

    ``value_type`` is the schema tag: "string", "int", "boolean", "enum" or
    "checkBoxList". ``resource`` names the resource type a picker targets
    (e.g. "Storage", "EventHub") when the setting is a connection.
    """

    name: str
    value_type: str = "string"
    label: str = ""
    default_value: Any = None
    required: bool = False
    options: Tuple[BindingSettingOption, ...] = ()
    resource: Optional[str] = None
    help: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BindingSetting":
        options = tuple(
            BindingSettingOption(
                value=str(opt.get("value")),
                display=str(opt.get("display") or opt.get("value")),
            )
            for opt in (data.get("enum") or [])
        )
        return cls(
            name=data["name"],
            value_type=data.get("value") or "string",
            label=data.get("label") or data["name"],
            default_value=data.get("defaultValue"),
            required=bool(data.get("required", False)),
            options=options,
            resource=data.get("resource"),
            help=data.get("help") or "",
        )


@dataclass(frozen=True)
class BindingDefinition:
    """Full definition of a binding type/direction pair."""

    type: str
    direction: str
    display_name: str = ""
    settings: Tuple[BindingSetting, ...] = ()

    @property
    def binding_id(self) -> str:
        return f"{self.type}-{self.direction}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BindingDefinition":
        return cls(
            type=data["type"],
            direction=str(data.get("direction") or "in").lower(),
            display_name=data.get("displayName") or data["type"],
            settings=tuple(BindingSetting.from_dict(s) for s in (data.get("settings") or [])),
        )


@dataclass(frozen=True)
class FunctionRecord:
    """An existing function of the target app."""

    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionRecord":
        props = data.get("properties") or {}
        name = props.get("name") or str(data.get("name", "")).split("/")[-1]
        return cls(name=name)


# =============================================================================
# Lookup stages
# =============================================================================


class StageStatus(str, Enum):
    """Outcome of one asynchronous lookup."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"  # Not applicable; reads as vacuous success


@dataclass(frozen=True)
class LookupStage:
    """One asynchronous call in a discovery pipeline.

    Attributes:
        name: Stage name ("credentials", "containers", "binding:blob-in").
        status: Outcome of the call.
        data: Payload on success (empty for skipped stages).
        error_detail: Collaborator error payload rendered as text.
        raised: True when the collaborator raised instead of returning a
            failure payload.
        duration_ms: Wall time spent awaiting the collaborator.
    """

    name: str
    status: StageStatus = StageStatus.PENDING
    data: Any = None
    error_detail: Optional[str] = None
    raised: bool = False
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status in (StageStatus.SUCCESS, StageStatus.SKIPPED)

    @property
    def failed(self) -> bool:
        return self.status == StageStatus.FAILED

    @classmethod
    def skipped(cls, name: str) -> "LookupStage":
        return cls(name=name, status=StageStatus.SKIPPED, data=[])


# =============================================================================
# Capability sets
# =============================================================================


@dataclass(frozen=True)
class StorageCapabilities:
    """Containers and shares discovered for a storage account."""

    blob_containers: Tuple[str, ...] = ()
    file_shares: Tuple[str, ...] = ()
    blob_skipped: bool = False
    files_skipped: bool = False
    access_key: Optional[str] = None

    def items_for(self, mode: StorageMode) -> Tuple[str, ...]:
        if mode == StorageMode.AZURE_BLOB:
            return self.blob_containers
        return self.file_shares


@dataclass(frozen=True)
class BindingCapabilities:
    """Bindings, existing functions and write permissions for a template."""

    bindings: Tuple[BindingDefinition, ...] = ()
    functions: Tuple[FunctionRecord, ...] = ()
    rg_write: bool = False
    sub_write: bool = False


CapabilitySet = Union[StorageCapabilities, BindingCapabilities]


# =============================================================================
# Discovery result
# =============================================================================


@dataclass(frozen=True)
class DiscoveryResult:
    """Completed outcomes of one pipeline run plus its generation tag.

    ``capabilities`` is None when the selection did not resolve to a known
    resource and no lookup was issued.
    """

    tag: GenerationTag
    stages: Tuple[LookupStage, ...] = ()
    capabilities: Optional[CapabilitySet] = None

    def stage(self, name: str) -> Optional[LookupStage]:
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    def stages_with_prefix(self, prefix: str) -> List[LookupStage]:
        return [s for s in self.stages if s.name.startswith(prefix)]

    def failed_stages(self) -> List[LookupStage]:
        return [s for s in self.stages if s.failed]

    def all_failed_or_empty(self) -> bool:
        """True when no stage produced usable data."""
        for stage in self.stages:
            if stage.status == StageStatus.SUCCESS and stage.data:
                return False
        return True


def lookup_stage_to_dict(stage: LookupStage) -> Dict[str, Any]:
    """Convert LookupStage to a dictionary for serialization."""
    return {
        "name": stage.name,
        "status": stage.status.value,
        "error_detail": stage.error_detail,
        "raised": stage.raised,
        "duration_ms": stage.duration_ms,
    }


def discovery_result_to_dict(result: DiscoveryResult) -> Dict[str, Any]:
    """Convert DiscoveryResult to a dictionary for serialization.

    Stage payloads are omitted; they can carry credentials.
    """
    return {
        "key": result.tag.key,
        "generation": result.tag.generation,
        "stages": [lookup_stage_to_dict(s) for s in result.stages],
    }
