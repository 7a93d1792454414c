"""
Tests for binding discovery.

These tests verify the BindingDiscoveryPipeline correctly handles:
- Required binding ids derived from the template's user-prompt list
- Sequential binding fetches with independently recorded outcomes
- Function inventory and permission lookups, loaded once per session
- Templates that prompt for nothing
"""

from __future__ import annotations

import asyncio

import pytest
from conftest import (
    APP_RESOURCE_ID,
    RESOURCE_GROUP_SCOPE,
    SUBSCRIPTION_SCOPE,
    FakeBindings,
    FakeInventory,
    binding_ok,
    BLOB_TRIGGER_DEFINITION,
)

from formdiscovery.runtime.collaborators import (
    WRITE_SCOPE,
    ApiResponse,
    resource_group_scope,
    subscription_scope,
)
from formdiscovery.runtime.pipelines import (
    BINDING_STAGE_PREFIX,
    STAGE_FUNCTIONS,
    STAGE_REQUIRED_BINDINGS,
    STAGE_RG_PERMISSION,
    STAGE_SUB_PERMISSION,
    BindingDiscoveryPipeline,
    get_binding_direction,
    required_binding_ids,
)
from formdiscovery.runtime.types import BindingCapabilities, FunctionTemplate, GenerationTag


def _pipeline(templates, bindings, inventory, permissions) -> BindingDiscoveryPipeline:
    return BindingDiscoveryPipeline(APP_RESOURCE_ID, templates, bindings, inventory, permissions)


class TestBindingIds:
    """Tests for required binding id derivation."""

    @pytest.mark.parametrize(
        "binding,expected",
        [
            ({"type": "blobTrigger", "direction": "in"}, "trigger"),
            ({"type": "blob", "direction": "in"}, "in"),
            ({"type": "timer", "direction": "trigger"}, "trigger"),
            ({"type": "blob", "direction": "out"}, "out"),
            ({"type": "http"}, "out"),
        ],
    )
    def test_direction(self, binding, expected):
        assert get_binding_direction(binding) == expected

    def test_ids_deduplicated_in_prompt_order(self, templates):
        assert required_binding_ids(templates[0]) == ["blobTrigger-trigger", "blob-out"]

    def test_prompt_order_drives_id_order(self):
        template = FunctionTemplate.from_dict(
            {
                "id": "t",
                "userPrompt": ["queueName", "path"],
                "bindings": [
                    {"type": "blob", "direction": "in", "path": "p"},
                    {"type": "queue", "direction": "out", "queueName": "q"},
                ],
            }
        )
        assert required_binding_ids(template) == ["queue-out", "blob-in"]

    def test_empty_prompt_requires_nothing(self, templates):
        assert required_binding_ids(templates[2]) == []


class TestScopes:
    """Tests for permission scope derivation."""

    def test_scopes_from_resource_id(self):
        assert resource_group_scope(APP_RESOURCE_ID) == RESOURCE_GROUP_SCOPE
        assert subscription_scope(APP_RESOURCE_ID) == SUBSCRIPTION_SCOPE


class TestBindingDiscovery:
    """Tests for binding discovery runs."""

    def test_discovers_bindings_functions_and_permissions(
        self, templates, bindings, inventory, permissions
    ):
        pipeline = _pipeline(templates, bindings, inventory, permissions)
        result = asyncio.run(pipeline.run(GenerationTag("BlobTrigger-Python", 1)))

        assert result.tag == GenerationTag("BlobTrigger-Python", 1)
        assert result.stage(STAGE_REQUIRED_BINDINGS).data == ["blobTrigger-trigger", "blob-out"]
        assert bindings.calls == ["blobTrigger-trigger", "blob-out"]

        caps = result.capabilities
        assert isinstance(caps, BindingCapabilities)
        assert [b.binding_id for b in caps.bindings] == ["blobTrigger-trigger", "blob-out"]
        assert [f.name for f in caps.functions] == ["BlobTrigger", "BlobTrigger1", "HttpTrigger"]
        assert caps.rg_write is True
        assert caps.sub_write is False

        assert sorted(permissions.calls) == sorted(
            [(RESOURCE_GROUP_SCOPE, [WRITE_SCOPE]), (SUBSCRIPTION_SCOPE, [WRITE_SCOPE])]
        )

    def test_binding_fetches_are_sequential(self, templates, inventory, permissions):
        in_flight = []
        peak = []

        class Tracking(FakeBindings):
            async def get_binding(self, resource_id, binding_id):
                in_flight.append(binding_id)
                peak.append(len(in_flight))
                await asyncio.sleep(0.01)
                in_flight.remove(binding_id)
                return binding_ok(BLOB_TRIGGER_DEFINITION)

        pipeline = _pipeline(templates, Tracking(), inventory, permissions)
        asyncio.run(pipeline.run(GenerationTag("BlobTrigger-Python", 1)))
        assert peak == [1, 1]

    def test_failed_binding_recorded_independently(self, templates, inventory, permissions):
        bindings = FakeBindings(
            {
                "blobTrigger-trigger": binding_ok(BLOB_TRIGGER_DEFINITION),
                "blob-out": ApiResponse.failure({"error": {"message": "Host unavailable"}}),
            }
        )
        pipeline = _pipeline(templates, bindings, inventory, permissions)
        result = asyncio.run(pipeline.run(GenerationTag("BlobTrigger-Python", 1)))

        trigger = result.stage(f"{BINDING_STAGE_PREFIX}blobTrigger-trigger")
        output = result.stage(f"{BINDING_STAGE_PREFIX}blob-out")
        assert trigger.succeeded
        assert output.failed
        assert output.error_detail == "Host unavailable"
        assert [b.binding_id for b in result.capabilities.bindings] == ["blobTrigger-trigger"]

    def test_missing_properties_fail_the_stage(self, templates, inventory, permissions):
        bindings = FakeBindings({"blob-out": ApiResponse.ok({"properties": []})})
        pipeline = _pipeline(templates, bindings, inventory, permissions)
        result = asyncio.run(pipeline.run(GenerationTag("BlobCopy-Python", 1)))

        assert result.stage(f"{BINDING_STAGE_PREFIX}blob-out").failed
        assert result.capabilities.bindings == ()

    def test_empty_prompt_fetches_no_bindings(self, templates, bindings, inventory, permissions):
        pipeline = _pipeline(templates, bindings, inventory, permissions)
        result = asyncio.run(pipeline.run(GenerationTag("HttpTrigger-Python", 1)))

        assert bindings.calls == []
        assert result.capabilities.bindings == ()
        assert result.stages_with_prefix(BINDING_STAGE_PREFIX) == []

    def test_unknown_template_issues_no_lookups(self, templates, bindings, inventory, permissions):
        pipeline = _pipeline(templates, bindings, inventory, permissions)
        result = asyncio.run(pipeline.run(GenerationTag("Missing", 1)))

        assert result.capabilities is None
        assert inventory.calls == 0


class TestResourceContext:
    """Tests for inventory/permission memoisation."""

    def test_inventory_loaded_once(self, templates, bindings, inventory, permissions):
        pipeline = _pipeline(templates, bindings, inventory, permissions)

        async def run_both():
            await pipeline.run(GenerationTag("BlobTrigger-Python", 1))
            await pipeline.run(GenerationTag("BlobCopy-Python", 2))

        asyncio.run(run_both())
        assert inventory.calls == 1
        assert len(permissions.calls) == 2

    def test_failed_inventory_is_retried(self, templates, bindings, permissions):
        inventory = FakeInventory(ApiResponse.failure("Forbidden"))
        pipeline = _pipeline(templates, bindings, inventory, permissions)

        async def run_both():
            first = await pipeline.run(GenerationTag("BlobTrigger-Python", 1))
            await pipeline.run(GenerationTag("BlobTrigger-Python", 2))
            return first

        first = asyncio.run(run_both())
        assert first.stage(STAGE_FUNCTIONS).failed
        assert first.capabilities.functions == ()
        assert inventory.calls == 2

    @pytest.mark.parametrize(
        "data",
        [
            {"value": ["fn1"]},
            {"value": {"name": "fn1"}},
            ["fn1"],
            {"value": [{"properties": "fn1"}]},
        ],
    )
    def test_malformed_inventory_fails_functions_stage(
        self, templates, bindings, permissions, data
    ):
        inventory = FakeInventory(ApiResponse.ok(data))
        pipeline = _pipeline(templates, bindings, inventory, permissions)

        async def run_both():
            first = await pipeline.run(GenerationTag("BlobTrigger-Python", 1))
            await pipeline.run(GenerationTag("BlobTrigger-Python", 2))
            return first

        first = asyncio.run(run_both())
        stage = first.stage(STAGE_FUNCTIONS)
        assert stage.failed
        assert stage.raised
        assert stage.error_detail.startswith("Malformed functions payload")
        assert first.capabilities.functions == ()
        assert inventory.calls == 2

    def test_inventory_parsed_into_records(self, templates, bindings, inventory, permissions):
        pipeline = _pipeline(templates, bindings, inventory, permissions)
        result = asyncio.run(pipeline.run(GenerationTag("BlobTrigger-Python", 1)))
        assert [f.name for f in result.capabilities.functions] == [
            "BlobTrigger",
            "BlobTrigger1",
            "HttpTrigger",
        ]

    def test_failure_result_fails_functions(self, templates, bindings, inventory, permissions):
        pipeline = _pipeline(templates, bindings, inventory, permissions)
        result = pipeline.failure_result(GenerationTag("BlobTrigger-Python", 4), KeyError("x"))

        stage = result.stage(STAGE_FUNCTIONS)
        assert stage.failed
        assert stage.raised
        assert result.capabilities == BindingCapabilities()

    def test_permission_stages_present(self, templates, bindings, inventory, permissions):
        pipeline = _pipeline(templates, bindings, inventory, permissions)
        result = asyncio.run(pipeline.run(GenerationTag("BlobTrigger-Python", 1)))
        assert result.stage(STAGE_RG_PERMISSION).data is True
        assert result.stage(STAGE_SUB_PERMISSION).data is False
