"""
Test fixtures and fakes for form discovery tests.

This module provides in-memory collaborators (credential lookup, capability
fetch, binding lookup, function inventory, permission check) with
configurable responses, delays and failures, plus storage account and
function template catalogs shared by the pipeline, session and API tests.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple, Union

import pytest

from formdiscovery.config import runtime_config
from formdiscovery.runtime.collaborators import (
    ApiResponse,
    BindingLookup,
    CapabilityFetch,
    CredentialLookup,
    FunctionInventoryLookup,
    PermissionCheck,
)
from formdiscovery.runtime.types import FunctionTemplate, StorageAccount, StorageKind

Reply = Union[ApiResponse, Exception, Any]

SUBSCRIPTION_SCOPE = "/subscriptions/sub1"
RESOURCE_GROUP_SCOPE = "/subscriptions/sub1/resourceGroups/rg1"
APP_RESOURCE_ID = f"{RESOURCE_GROUP_SCOPE}/providers/Microsoft.Web/sites/app1"


async def _reply(value: Reply, delay: float) -> Any:
    if delay:
        await asyncio.sleep(delay)
    if isinstance(value, Exception):
        raise value
    return value


def keys_ok(value: str = "key-1") -> ApiResponse:
    return ApiResponse.ok({"keys": [{"keyName": "key1", "value": value}]})


def items_ok(*names: str) -> ApiResponse:
    return ApiResponse.ok([{"name": n} for n in names])


# ============================================================================
# Storage fakes
# ============================================================================


class FakeCredentials(CredentialLookup):
    """Credential lookup answering from a per-account-id table."""

    def __init__(
        self,
        replies: Optional[Dict[str, Reply]] = None,
        delays: Optional[Dict[str, float]] = None,
        default: Reply = None,
    ):
        self._replies = replies or {}
        self._delays = delays or {}
        self._default = default if default is not None else keys_ok()
        self.calls: List[str] = []

    async def list_keys(self, account_id: str) -> ApiResponse:
        self.calls.append(account_id)
        reply = self._replies.get(account_id, self._default)
        return await _reply(reply, self._delays.get(account_id, 0.0))


class FakeCapabilities(CapabilityFetch):
    """Container and share listing answering from per-account tables."""

    def __init__(
        self,
        containers: Optional[Dict[str, Reply]] = None,
        shares: Optional[Dict[str, Reply]] = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        self._containers = containers or {}
        self._shares = shares or {}
        self._delays = delays or {}
        self.calls: List[Tuple[str, str, Dict[str, str]]] = []

    async def get_containers(self, account_name: str, payload: Dict[str, str]) -> ApiResponse:
        self.calls.append(("containers", account_name, dict(payload)))
        reply = self._containers.get(account_name, items_ok())
        return await _reply(reply, self._delays.get(account_name, 0.0))

    async def get_file_shares(self, account_name: str, payload: Dict[str, str]) -> ApiResponse:
        self.calls.append(("file_shares", account_name, dict(payload)))
        reply = self._shares.get(account_name, items_ok())
        return await _reply(reply, self._delays.get(account_name, 0.0))


def storage_account(name: str, kind: str = StorageKind.STORAGE_V2) -> StorageAccount:
    return StorageAccount(
        id=f"{RESOURCE_GROUP_SCOPE}/providers/Microsoft.Storage/storageAccounts/{name}",
        name=name,
        kind=kind,
    )


@pytest.fixture
def accounts() -> List[StorageAccount]:
    """Catalog with one account of each kind."""
    return [
        storage_account("acctv2", StorageKind.STORAGE_V2),
        storage_account("acctblob", StorageKind.BLOB_STORAGE),
        storage_account("acctfiles", StorageKind.FILE_STORAGE),
        storage_account("acctother", StorageKind.STORAGE_V2),
    ]


@pytest.fixture
def capabilities() -> FakeCapabilities:
    """acctv2 has both lists, acctblob containers, acctfiles shares."""
    return FakeCapabilities(
        containers={
            "acctv2": items_ok("c1", "c2"),
            "acctblob": items_ok("logs"),
        },
        shares={
            "acctv2": items_ok("s1"),
            "acctfiles": items_ok("share-a", "share-b"),
            "acctother": items_ok("other-share"),
        },
    )


@pytest.fixture
def credentials() -> FakeCredentials:
    return FakeCredentials()


# ============================================================================
# Function fakes
# ============================================================================


class FakeBindings(BindingLookup):
    """Binding lookup answering from a per-binding-id table."""

    def __init__(self, replies: Optional[Dict[str, Reply]] = None, delay: float = 0.0):
        self._replies = replies or {}
        self._delay = delay
        self.calls: List[str] = []

    async def get_binding(self, resource_id: str, binding_id: str) -> ApiResponse:
        self.calls.append(binding_id)
        reply = self._replies.get(binding_id, ApiResponse.failure("Not found"))
        return await _reply(reply, self._delay)


class FakeInventory(FunctionInventoryLookup):
    """Function inventory returning a fixed reply."""

    def __init__(self, reply: Reply = None, delay: float = 0.0):
        self._reply = reply if reply is not None else functions_ok()
        self._delay = delay
        self.calls = 0

    async def get_functions(self, resource_id: str) -> ApiResponse:
        self.calls += 1
        return await _reply(self._reply, self._delay)


class FakePermissions(PermissionCheck):
    """Permission check granting write on the listed scopes."""

    def __init__(self, granted: Optional[List[str]] = None):
        self._granted = set(granted or [])
        self.calls: List[Tuple[str, List[str]]] = []

    async def has_permission(self, scope_id: str, required_scopes: List[str]) -> bool:
        self.calls.append((scope_id, list(required_scopes)))
        return scope_id in self._granted


def functions_ok(*names: str) -> ApiResponse:
    return ApiResponse.ok(
        {"value": [{"name": f"app1/{n}", "properties": {"name": n}} for n in names]}
    )


def binding_ok(definition: Dict[str, Any]) -> ApiResponse:
    return ApiResponse.ok({"properties": [definition]})


BLOB_TRIGGER_DEFINITION: Dict[str, Any] = {
    "type": "blobTrigger",
    "direction": "trigger",
    "displayName": "Azure Blob Storage trigger",
    "settings": [
        {
            "name": "name",
            "value": "string",
            "label": "Blob parameter name",
            "defaultValue": "myblob",
            "required": True,
        },
        {
            "name": "path",
            "value": "string",
            "label": "Path",
            "defaultValue": "samples-workitems/{name}",
            "required": True,
        },
        {
            "name": "connection",
            "value": "string",
            "resource": "Storage",
            "label": "Storage account connection",
            "required": True,
        },
    ],
}

BLOB_OUTPUT_DEFINITION: Dict[str, Any] = {
    "type": "blob",
    "direction": "out",
    "displayName": "Azure Blob Storage output",
    "settings": [
        {"name": "path", "value": "string", "label": "Path", "required": True},
        {
            "name": "accessLevel",
            "value": "enum",
            "label": "Access level",
            "defaultValue": "private",
            "enum": [
                {"value": "private", "display": "Private"},
                {"value": "public", "display": "Public"},
            ],
        },
        {"name": "retries", "value": "int", "label": "Retries", "defaultValue": 3},
    ],
}


@pytest.fixture
def templates() -> List[FunctionTemplate]:
    """Blob trigger (two bindings), blob copy (enum prompt) and no-prompt templates."""
    return [
        FunctionTemplate.from_dict(
            {
                "id": "BlobTrigger-Python",
                "name": "Blob trigger",
                "defaultFunctionName": "BlobTrigger",
                "userPrompt": ["path", "connection"],
                "bindings": [
                    {
                        "type": "blobTrigger",
                        "direction": "in",
                        "name": "myblob",
                        "path": "samples-workitems/{name}",
                        "connection": "AzureWebJobsStorage",
                    },
                    {
                        "type": "blob",
                        "direction": "out",
                        "name": "outblob",
                        "path": "out/{name}",
                        "connection": "AzureWebJobsStorage",
                    },
                ],
            }
        ),
        FunctionTemplate.from_dict(
            {
                "id": "BlobCopy-Python",
                "name": "Blob copy",
                "userPrompt": ["accessLevel", "retries"],
                "bindings": [
                    {
                        "type": "blob",
                        "direction": "out",
                        "accessLevel": "private",
                        "retries": 3,
                    },
                ],
            }
        ),
        FunctionTemplate.from_dict(
            {
                "id": "HttpTrigger-Python",
                "name": "HTTP trigger",
                "defaultFunctionName": "HttpTrigger",
                "userPrompt": [],
                "bindings": [{"type": "httpTrigger", "direction": "in", "name": "req"}],
            }
        ),
    ]


@pytest.fixture
def bindings() -> FakeBindings:
    return FakeBindings(
        {
            "blobTrigger-trigger": binding_ok(BLOB_TRIGGER_DEFINITION),
            "blob-out": binding_ok(BLOB_OUTPUT_DEFINITION),
        }
    )


@pytest.fixture
def inventory() -> FakeInventory:
    return FakeInventory(functions_ok("BlobTrigger", "BlobTrigger1", "HttpTrigger"))


@pytest.fixture
def permissions() -> FakePermissions:
    return FakePermissions([RESOURCE_GROUP_SCOPE])


# ============================================================================
# Configuration isolation
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_runtime_config(monkeypatch):
    """Clear FORMDISCOVERY_* overrides and the config cache around each test."""
    for name in (
        "FORMDISCOVERY_STAGE_TIMEOUT_S",
        "FORMDISCOVERY_CANCEL_SUPERSEDED",
        "FORMDISCOVERY_BOTH_EMPTY_PRIORITY",
        "FORMDISCOVERY_SCENARIO_AZUREBLOBMOUNT",
        "FORMDISCOVERY_SCENARIO_SHOWAZURESTORAGEMOUNTWARNINGBANNER",
    ):
        monkeypatch.delenv(name, raising=False)
    runtime_config.reset_config()
    yield
    runtime_config.reset_config()
