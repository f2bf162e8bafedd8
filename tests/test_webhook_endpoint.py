"""
Webhook & Status Endpoint Tests
===============================
POST /webhooks/status, GET /webhooks/status, GET /status/{clientId}.
The process-wide store is replaced per test through dependency overrides.
"""
import json

import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient

from portal.services.status_mapper import map_event_status
from portal.services.status_store import InMemoryStatusStore, get_status_store
from portal.utils.signature import compute_signature

SECRET = "whsec-test"


@pytest.fixture
def store():
    return InMemoryStatusStore(ttl_seconds=3600)


@pytest.fixture
def client(store):
    from main import app
    app.dependency_overrides[get_status_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def unsigned_allowed():
    with patch("portal.api.webhooks.GITHUB_WEBHOOK_SECRET", None), \
         patch("portal.api.webhooks.WEBHOOK_ALLOW_UNSIGNED", True):
        yield


@pytest.fixture
def signed():
    with patch("portal.api.webhooks.GITHUB_WEBHOOK_SECRET", SECRET), \
         patch("portal.api.webhooks.WEBHOOK_ALLOW_UNSIGNED", False):
        yield


def _body(status="started", client_name="acme-1-abcdef", **extra):
    payload = {
        "status": status,
        "client_name": client_name,
        "message": f"Workflow {status}",
        "timestamp": "2024-01-01T00:00:00Z",
    }
    payload.update(extra)
    return json.dumps(payload).encode("utf-8")


def _post(client, body, signature=None):
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["X-Hub-Signature-256"] = signature
    return client.post("/webhooks/status", content=body, headers=headers)


# ===================================================================
# Webhook ingress
# ===================================================================
def test_webhook_then_query_matches_mapper(client, store, unsigned_allowed):
    resp = _post(client, _body("logo_processed"))
    assert resp.status_code == 200
    assert resp.text == "OK"

    data = client.get("/webhooks/status", params={"clientId": "acme-1-abcdef"}).json()
    mapped = map_event_status("logo_processed")
    assert data["status"] == mapped.status
    assert data["progress"] == mapped.progress
    assert data["currentStep"] == mapped.current_step
    assert data["steps"] == mapped.steps
    assert data["message"] == "Workflow logo_processed"
    assert data["estimatedTimeRemaining"] == 225


def test_second_webhook_fully_overwrites_first(client, unsigned_allowed):
    _post(client, _body("completed", preview_url="https://x.test", pr_url="https://pr.test"))
    _post(client, _body("started"))

    data = client.get("/status/acme-1-abcdef").json()
    assert data["status"] == "starting"
    assert data["progress"] == 10
    assert "previewUrl" not in data
    assert "repositoryUrl" not in data


def test_unrecognized_event_uses_default_row(client, unsigned_allowed):
    _post(client, _body("deploying"))
    data = client.get("/status/acme-1-abcdef").json()
    assert data["progress"] == 50
    assert data["currentStep"] == "generate-theme"


def test_failed_event_carries_error(client, unsigned_allowed):
    _post(client, _body("failed", error="Build broke"))
    data = client.get("/status/acme-1-abcdef").json()
    assert data["status"] == "error"
    assert data["currentStep"] == "error"
    assert data["error"] == "Build broke"


def test_valid_signature_accepted(client, store, signed):
    body = _body("started")
    resp = _post(client, body, compute_signature(SECRET, body))
    assert resp.status_code == 200
    assert store.get("acme-1-abcdef") is not None


def test_bad_signature_rejected_without_mutation(client, store, signed):
    body = _body("started")
    resp = _post(client, body, compute_signature("wrong", body))
    assert resp.status_code == 401
    assert resp.text == "Unauthorized"
    assert store.get("acme-1-abcdef") is None


def test_missing_signature_rejected_when_secret_set(client, store, signed):
    resp = _post(client, _body("started"))
    assert resp.status_code == 401
    assert len(store) == 0


def test_no_secret_accepts_any_signature_when_unsigned_allowed(client, store, unsigned_allowed):
    assert _post(client, _body("started"), "sha256=garbage").status_code == 200
    assert _post(client, _body("completed")).status_code == 200
    assert store.get("acme-1-abcdef").status == "completed"


def test_no_secret_rejects_by_default(client, store):
    with patch("portal.api.webhooks.GITHUB_WEBHOOK_SECRET", None), \
         patch("portal.api.webhooks.WEBHOOK_ALLOW_UNSIGNED", False):
        resp = _post(client, _body("started"))
    assert resp.status_code == 401
    assert len(store) == 0


@pytest.mark.parametrize("body", [
    b"not json",
    b"[]",
    json.dumps({"status": "started"}).encode(),
    json.dumps({
        "status": "started", "client_name": "c", "message": "m",
        "timestamp": "t", "unexpected": True,
    }).encode(),
])
def test_malformed_body_is_internal_error(client, store, unsigned_allowed, body):
    resp = _post(client, body)
    assert resp.status_code == 500
    assert resp.text == "Internal Server Error"
    assert len(store) == 0


def test_store_failure_is_internal_error(client, store, unsigned_allowed):
    with patch.object(store, "put", side_effect=RuntimeError("disk full")):
        resp = _post(client, _body("started"))
    assert resp.status_code == 500
    assert "disk full" not in resp.text


# ===================================================================
# Status query
# ===================================================================
def test_unknown_client_returns_default_without_storing(client, store):
    first = client.get("/webhooks/status", params={"clientId": "ghost"})
    second = client.get("/status/ghost")

    assert first.status_code == 200
    for resp in (first, second):
        data = resp.json()
        assert data["clientId"] == "ghost"
        assert data["status"] == "starting"
        assert data["progress"] == 0
        assert set(data["steps"].values()) == {"pending"}
    assert {k: v for k, v in first.json().items() if k != "updatedAt"} == \
           {k: v for k, v in second.json().items() if k != "updatedAt"}
    assert len(store) == 0


def test_missing_client_id_is_400(client):
    resp = client.get("/webhooks/status")
    assert resp.status_code == 400
    assert resp.json() == {"error": "clientId parameter is required"}

    resp = client.get("/webhooks/status", params={"clientId": ""})
    assert resp.status_code == 400


def test_status_responses_disable_caching(client):
    resp = client.get("/status/ghost")
    assert resp.headers["cache-control"] == "no-cache, no-store, must-revalidate"
    resp = client.get("/webhooks/status", params={"clientId": "ghost"})
    assert resp.headers["cache-control"] == "no-cache, no-store, must-revalidate"


def test_store_read_failure_is_500(client, store):
    with patch.object(store, "get", side_effect=RuntimeError("boom")):
        resp = client.get("/status/abc")
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


# ===================================================================
# CORS preflight
# ===================================================================
def test_options_handlers_are_permissive(client):
    for path in ("/webhooks/status", "/status/abc", "/generate"):
        resp = client.options(path)
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"


def test_browser_preflight_handled_by_cors_middleware(client):
    resp = client.options("/status/abc", headers={
        "Origin": "https://portal.example",
        "Access-Control-Request-Method": "GET",
    })
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"
