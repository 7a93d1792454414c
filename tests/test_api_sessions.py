"""
Tests for the form discovery REST API.

These tests exercise the session endpoints through FastAPI's TestClient
with in-memory collaborators.
"""

from __future__ import annotations

import pytest
from conftest import APP_RESOURCE_ID
from fastapi.testclient import TestClient

from formdiscovery.api import FunctionBackend, SessionRegistry, StorageBackend, create_app


@pytest.fixture
def registry(accounts, credentials, capabilities, templates, bindings, inventory, permissions):
    return SessionRegistry(
        storage=StorageBackend(accounts, credentials, capabilities),
        functions=FunctionBackend(APP_RESOURCE_ID, templates, bindings, inventory, permissions),
    )


@pytest.fixture
def client(registry):
    with TestClient(create_app(registry)) as test_client:
        yield test_client


def _open(client: TestClient, kind: str, **extra) -> str:
    response = client.post("/api/sessions", json={"kind": kind, **extra})
    assert response.status_code == 201
    return response.json()["session_id"]


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["kinds"] == ["storage", "function"]
        assert body["sessions"] == 0


class TestStorageSessions:
    """Tests for storage sessions over HTTP."""

    def test_select_account(self, client):
        session_id = _open(client, "storage", site_kind="app,linux")
        response = client.put(f"/api/sessions/{session_id}/selection", json={"key": "acctblob"})
        assert response.status_code == 200

        body = response.json()
        snapshot = body["snapshot"]
        assert snapshot["selection"] == "acctblob"
        assert snapshot["pending"] is False
        assert snapshot["field_values"]["type"] == "AzureBlob"
        assert snapshot["field_visible"]["type"] is False
        assert [n["key"] for n in snapshot["notices"]] == ["readonlyBlobStorageWarning"]
        assert [s["name"] for s in body["discovery"]["stages"]] == [
            "credentials",
            "containers",
            "file_shares",
        ]

    def test_windows_site_has_no_blob_mounts(self, client):
        session_id = _open(client, "storage", site_kind="app")
        snapshot = client.get(f"/api/sessions/{session_id}").json()["snapshot"]
        assert [o["key"] for o in snapshot["field_options"]["accountName"]] == [
            "acctv2",
            "acctfiles",
            "acctother",
        ]

    def test_edit_and_validate_fields(self, client):
        session_id = _open(client, "storage", site_kind="app,linux")
        client.put(f"/api/sessions/{session_id}/selection", json={"key": "acctv2"})

        response = client.patch(f"/api/sessions/{session_id}/fields/type", json={"value": "AzureFiles"})
        assert response.status_code == 200
        options = response.json()["snapshot"]["field_options"]["shareName"]
        assert [o["key"] for o in options] == ["s1"]

        valid = client.post(f"/api/sessions/{session_id}/validate/shareName", json={"value": "s1"})
        invalid = client.post(f"/api/sessions/{session_id}/validate/shareName", json={"value": "c1"})
        assert valid.json() == {"field": "shareName", "valid": True, "error": None}
        assert invalid.json()["valid"] is False

    def test_patch_selection_field_runs_discovery(self, client):
        session_id = _open(client, "storage", site_kind="app,linux")
        response = client.patch(
            f"/api/sessions/{session_id}/fields/accountName", json={"value": "acctfiles"}
        )
        snapshot = response.json()["snapshot"]
        assert snapshot["selection"] == "acctfiles"
        assert snapshot["field_values"]["type"] == "AzureFiles"

    def test_unknown_field_is_404(self, client):
        session_id = _open(client, "storage")
        response = client.patch(f"/api/sessions/{session_id}/fields/bogus", json={"value": 1})
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "unknown_field"


class TestFunctionSessions:
    """Tests for function sessions over HTTP."""

    def test_select_template(self, client):
        session_id = _open(client, "function")
        response = client.put(
            f"/api/sessions/{session_id}/selection", json={"key": "BlobTrigger-Python"}
        )
        body = response.json()
        assert body["snapshot"]["field_values"]["functionName"] == "BlobTrigger2"
        generated = {f["name"]: f for f in body["generated_fields"]}
        assert list(generated) == ["path", "connection"]
        assert generated["connection"]["kind"] == "resource"
        assert generated["connection"]["allow_create"] is True


class TestSessionLifecycle:
    """Tests for session errors and teardown."""

    def test_invalid_kind_rejected(self, client):
        response = client.post("/api/sessions", json={"kind": "queue"})
        assert response.status_code == 422

    def test_unconfigured_kind_is_400(self, credentials, capabilities, accounts):
        registry = SessionRegistry(storage=StorageBackend(accounts, credentials, capabilities))
        with TestClient(create_app(registry)) as client:
            response = client.post("/api/sessions", json={"kind": "function"})
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "unsupported_session_kind"

    def test_unknown_session_is_404(self, client):
        response = client.get("/api/sessions/nope")
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "session_not_found"

    def test_delete_session(self, client, registry):
        session_id = _open(client, "storage")
        response = client.delete(f"/api/sessions/{session_id}")
        assert response.status_code == 200
        assert response.json() == {"session_id": session_id, "closed": True}
        assert registry.get(session_id) is None
        assert client.get(f"/api/sessions/{session_id}").status_code == 404
        assert client.delete(f"/api/sessions/{session_id}").status_code == 404
