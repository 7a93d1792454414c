"""
types - Core type definitions for discovery sessions

This package provides the data types shared by the discovery pipeline,
staleness guard, error classifier, fallback resolver and form projector.

All types use dataclasses with full type annotations. Results, stages and
capability sets are frozen; FieldState is mutable and owned by the projector.

Usage:
    from formdiscovery.runtime.types import (
        SelectionKey, GenerationTag,
        StorageKind, StorageMode, BLOB_CAPABLE_KINDS,
        StorageAccount, FunctionTemplate, FunctionRecord,
        BindingDefinition, BindingSetting, BindingSettingOption,
        StageStatus, LookupStage, DiscoveryResult,
        StorageCapabilities, BindingCapabilities, CapabilitySet,
        BannerCategory, ErrorBanner, NO_BANNER,
        FieldOption, FieldState, Notice, FormSnapshot,
        discovery_result_to_dict, form_snapshot_to_dict, error_banner_to_dict,
    )
"""

from __future__ import annotations

from ._tags import GenerationTag, SelectionKey
from .discovery import (
    BLOB_CAPABLE_KINDS,
    BindingCapabilities,
    BindingDefinition,
    BindingSetting,
    BindingSettingOption,
    CapabilitySet,
    DiscoveryResult,
    FunctionRecord,
    FunctionTemplate,
    LookupStage,
    StageStatus,
    StorageAccount,
    StorageCapabilities,
    StorageKind,
    StorageMode,
    discovery_result_to_dict,
    lookup_stage_to_dict,
)
from .form import (
    NO_BANNER,
    BannerCategory,
    ErrorBanner,
    FieldOption,
    FieldState,
    FormSnapshot,
    Notice,
    error_banner_to_dict,
    field_option_to_dict,
    form_snapshot_to_dict,
)

__all__ = [
    "SelectionKey",
    "GenerationTag",
    "BLOB_CAPABLE_KINDS",
    "StorageKind",
    "StorageMode",
    "StorageAccount",
    "FunctionTemplate",
    "FunctionRecord",
    "BindingDefinition",
    "BindingSetting",
    "BindingSettingOption",
    "StageStatus",
    "LookupStage",
    "DiscoveryResult",
    "StorageCapabilities",
    "BindingCapabilities",
    "CapabilitySet",
    "BannerCategory",
    "ErrorBanner",
    "NO_BANNER",
    "FieldOption",
    "FieldState",
    "Notice",
    "FormSnapshot",
    "lookup_stage_to_dict",
    "discovery_result_to_dict",
    "field_option_to_dict",
    "error_banner_to_dict",
    "form_snapshot_to_dict",
]
