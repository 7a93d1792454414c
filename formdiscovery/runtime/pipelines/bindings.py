"""
bindings.py - Function template binding discovery.

Stage order:
1. required_bindings       - binding ids the template prompts for (pure)
2. functions               } resource context, loaded once per session
   permission:resourceGroup} and reused by later selections
   permission:subscription }
3. binding:<id> ...        - one definition fetch per required id, in order

A failed binding fetch does not stop the fetches after it.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..collaborators import (
    WRITE_SCOPE,
    BindingLookup,
    FunctionInventoryLookup,
    PermissionCheck,
    resource_group_scope,
    subscription_scope,
)
from ..types import (
    BindingCapabilities,
    BindingDefinition,
    DiscoveryResult,
    FunctionRecord,
    FunctionTemplate,
    GenerationTag,
    LookupStage,
    StageStatus,
)
from .base import DiscoveryPipeline

logger = logging.getLogger(__name__)

STAGE_REQUIRED_BINDINGS = "required_bindings"
STAGE_FUNCTIONS = "functions"
STAGE_RG_PERMISSION = "permission:resourceGroup"
STAGE_SUB_PERMISSION = "permission:subscription"
BINDING_STAGE_PREFIX = "binding:"


def get_binding_direction(binding: Dict[str, Any]) -> str:
    """Direction segment of a binding id: "trigger", "in" or "out"."""
    direction = str(binding.get("direction") or "").lower()
    binding_type = str(binding.get("type") or "").lower()
    if direction == "in":
        return "trigger" if "trigger" in binding_type else "in"
    if direction == "trigger":
        return "trigger"
    return "out"


def required_binding_ids(template: FunctionTemplate) -> List[str]:
    """Binding ids whose declared properties appear in the user-prompt list.

    Deduplicated, in order of first appearance (prompt order, then binding
    order within the template).
    """
    ids: List[str] = []
    for prompt in template.user_prompt:
        for binding in template.bindings:
            if binding.get(prompt):
                binding_id = f"{binding.get('type')}-{get_binding_direction(binding)}"
                if binding_id not in ids:
                    ids.append(binding_id)
    return ids


def _parse_definition(stage: LookupStage) -> Tuple[LookupStage, Optional[BindingDefinition]]:
    if not stage.succeeded:
        return stage, None
    properties = (stage.data or {}).get("properties") if isinstance(stage.data, dict) else None
    if not properties:
        return (
            dataclasses.replace(
                stage,
                status=StageStatus.FAILED,
                error_detail="Binding definition not found",
            ),
            None,
        )
    try:
        return stage, BindingDefinition.from_dict(properties[0])
    except (KeyError, TypeError, AttributeError) as e:
        return (
            dataclasses.replace(
                stage,
                status=StageStatus.FAILED,
                error_detail=f"Malformed binding definition: {e}",
            ),
            None,
        )


def _parse_functions(stage: LookupStage) -> LookupStage:
    """Replace a successful inventory payload with its FunctionRecords."""
    if not stage.succeeded:
        return stage
    data = stage.data if stage.data is not None else {}
    try:
        records = data.get("value") or []
        if not isinstance(records, list):
            raise TypeError(f"expected a list of functions, got {type(records).__name__}")
        functions = tuple(FunctionRecord.from_dict(r) for r in records)
    except (KeyError, TypeError, AttributeError) as e:
        return dataclasses.replace(
            stage,
            status=StageStatus.FAILED,
            error_detail=f"Malformed functions payload: {e}",
            raised=True,
        )
    return dataclasses.replace(stage, data=functions)


class BindingDiscoveryPipeline(DiscoveryPipeline):
    """Discovers the bindings a function template needs at creation time."""

    def __init__(
        self,
        resource_id: str,
        templates: Sequence[FunctionTemplate],
        bindings: BindingLookup,
        inventory: FunctionInventoryLookup,
        permissions: PermissionCheck,
        stage_timeout_s: Optional[float] = None,
    ):
        """Initialize the pipeline.

        Args:
            resource_id: Function app the form creates into.
            templates: Templates the selection key resolves against.
            bindings: Binding definition collaborator.
            inventory: Existing function listing collaborator.
            permissions: RBAC collaborator.
            stage_timeout_s: Per-call timeout override.
        """
        super().__init__(stage_timeout_s)
        self._resource_id = resource_id
        self._templates: Dict[str, FunctionTemplate] = {t.id: t for t in templates}
        self._bindings = bindings
        self._inventory = inventory
        self._permissions = permissions
        self._context_stages: Optional[Tuple[LookupStage, ...]] = None

    @property
    def pipeline_id(self) -> str:
        return "bindings"

    @property
    def resource_id(self) -> str:
        return self._resource_id

    def template(self, key: Optional[str]) -> Optional[FunctionTemplate]:
        return self._templates.get(key) if key else None

    def failure_result(self, tag: GenerationTag, error: BaseException) -> DiscoveryResult:
        return DiscoveryResult(
            tag=tag,
            stages=(self._raised_stage(STAGE_FUNCTIONS, error),),
            capabilities=BindingCapabilities(),
        )

    async def _resource_context(self) -> Tuple[LookupStage, ...]:
        """Inventory and permission stages, memoised once the inventory lookup succeeds."""
        if self._context_stages is not None:
            return self._context_stages

        rg_scope = resource_group_scope(self._resource_id)
        sub_scope = subscription_scope(self._resource_id)
        stages = await asyncio.gather(
            self._call_stage(
                STAGE_FUNCTIONS, lambda: self._inventory.get_functions(self._resource_id)
            ),
            self._call_stage(
                STAGE_RG_PERMISSION,
                lambda: self._permissions.has_permission(rg_scope, [WRITE_SCOPE]),
            ),
            self._call_stage(
                STAGE_SUB_PERMISSION,
                lambda: self._permissions.has_permission(sub_scope, [WRITE_SCOPE]),
            ),
        )
        functions_stage = _parse_functions(stages[0])
        stages[0] = functions_stage
        if functions_stage.failed:
            logger.warning(
                "getFunctionsInfo: Failed to get functions info: %s",
                functions_stage.error_detail,
            )
        else:
            self._context_stages = tuple(stages)
        return tuple(stages)

    async def run(self, tag: GenerationTag) -> DiscoveryResult:
        template = self.template(tag.key)
        if template is None:
            logger.debug("bindings: no template %s, nothing to discover", tag.key)
            return DiscoveryResult(tag=tag)

        ids = required_binding_ids(template)
        ids_stage = LookupStage(
            name=STAGE_REQUIRED_BINDINGS, status=StageStatus.SUCCESS, data=ids
        )
        context = await self._resource_context()

        binding_stages: List[LookupStage] = []
        definitions: List[BindingDefinition] = []
        for binding_id in ids:
            stage = await self._call_stage(
                f"{BINDING_STAGE_PREFIX}{binding_id}",
                lambda binding_id=binding_id: self._bindings.get_binding(
                    self._resource_id, binding_id
                ),
            )
            stage, definition = _parse_definition(stage)
            if definition is None:
                logger.warning(
                    "getBindings: Failed to get binding %s: %s", binding_id, stage.error_detail
                )
            else:
                definitions.append(definition)
            binding_stages.append(stage)

        by_name = {s.name: s for s in context}
        functions_stage = by_name[STAGE_FUNCTIONS]
        functions: Tuple[FunctionRecord, ...] = (
            functions_stage.data if functions_stage.succeeded else ()
        )

        capabilities = BindingCapabilities(
            bindings=tuple(definitions),
            functions=functions,
            rg_write=by_name[STAGE_RG_PERMISSION].data is True,
            sub_write=by_name[STAGE_SUB_PERMISSION].data is True,
        )
        logger.info(
            "bindings: %s discovered %d of %d binding(s)", tag, len(definitions), len(ids)
        )
        return DiscoveryResult(
            tag=tag,
            stages=(ids_stage, *context, *binding_stages),
            capabilities=capabilities,
        )
