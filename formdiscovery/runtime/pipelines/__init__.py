"""
Discovery pipelines.

- DiscoveryPipeline: abstract base with stage capture
- StorageDiscoveryPipeline: credentials -> containers + file shares
- BindingDiscoveryPipeline: required ids -> resource context -> definitions
"""

from .base import DiscoveryPipeline
from .bindings import (
    BINDING_STAGE_PREFIX,
    STAGE_FUNCTIONS,
    STAGE_REQUIRED_BINDINGS,
    STAGE_RG_PERMISSION,
    STAGE_SUB_PERMISSION,
    BindingDiscoveryPipeline,
    get_binding_direction,
    required_binding_ids,
)
from .storage import (
    STAGE_CONTAINERS,
    STAGE_CREDENTIALS,
    STAGE_FILE_SHARES,
    StorageDiscoveryPipeline,
    blob_stage_skipped,
    files_stage_skipped,
)

__all__ = [
    "DiscoveryPipeline",
    "StorageDiscoveryPipeline",
    "BindingDiscoveryPipeline",
    "STAGE_CREDENTIALS",
    "STAGE_CONTAINERS",
    "STAGE_FILE_SHARES",
    "STAGE_REQUIRED_BINDINGS",
    "STAGE_FUNCTIONS",
    "STAGE_RG_PERMISSION",
    "STAGE_SUB_PERMISSION",
    "BINDING_STAGE_PREFIX",
    "blob_stage_skipped",
    "files_stage_skipped",
    "get_binding_direction",
    "required_binding_ids",
]
