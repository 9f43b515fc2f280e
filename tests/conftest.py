"""Shared fixtures for the Assistants Gateway test suite."""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from assistants_gateway.clients.models import RequestContext, RequestUser
from assistants_gateway.config.settings import get_settings


@pytest.fixture
def request_user() -> RequestUser:
    return RequestUser(id="user-1", email="user1@example.com", name="User One")


@pytest.fixture
def request_context(request_user) -> RequestContext:
    return RequestContext(user=request_user)


@pytest.fixture
def azure_config_dict() -> dict:
    """Two Azure groups (structured + serverless) with assistants enabled."""
    return {
        "titleConvo": True,
        "titleModel": "gpt-4o-mini",
        "groups": [
            {
                "group": "group1",
                "apiKey": "${AZURE_API_KEY}",
                "instanceName": "acct",
                "version": "2024-05-01-preview",
                "baseURL": "https://acct.openai.azure.com/openai/deployments/${DEPLOYMENT_NAME}",
                "additionalHeaders": {"X-Region": "eastus"},
                "addParams": {"temperature": 0.2},
                "dropParams": ["top_p"],
                "assistants": True,
                "models": {
                    "gpt-4-group1": {"deploymentName": "dep1"},
                    "gpt-4o": {"deploymentName": "gpt4o-east", "version": "2024-07-01-preview"},
                },
            },
            {
                "group": "serverless-group",
                "apiKey": "serverless-key",
                "version": "2024-05-01-preview",
                "baseURL": "https://mistral.eastus.models.ai.azure.com",
                "serverless": True,
                "assistants": True,
                "models": {"mistral-large": True},
            },
            {
                "group": "default-url-group",
                "apiKey": "plain-key",
                "instanceName": "westacct",
                "version": "2024-02-15-preview",
                "deploymentName": "shared-dep",
                "models": {"gpt-35-turbo": True},
            },
        ],
    }


@pytest.fixture
def azure_config_file(tmp_path, azure_config_dict):
    path = tmp_path / "azure.json"
    path.write_text(json.dumps(azure_config_dict), encoding="utf-8")
    return str(path)


@pytest.fixture
def user_keys_file(tmp_path):
    """User key store file: one live key, one expired, one never-expiring."""
    now = datetime.now(timezone.utc)
    data = {
        "keys": [
            {
                "user_id": "user-1",
                "endpoint": "azureAssistants",
                "value": json.dumps({"apiKey": "sk-user-1", "baseURL": "https://user1.example.com/v1"}),
                "expires_at": (now + timedelta(days=1)).isoformat(),
            },
            {
                "user_id": "user-expired",
                "endpoint": "azureAssistants",
                "value": json.dumps({"apiKey": "sk-stale"}),
                "expires_at": (now - timedelta(hours=1)).isoformat(),
            },
            {
                "user_id": "user-forever",
                "endpoint": "azureAssistants",
                "value": {"apiKey": "sk-forever"},
                "expires_at": None,
            },
        ]
    }
    path = tmp_path / "user_keys.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(AZURE_ASSISTANTS_API_KEY="user_provided", PROXY="http://p:3128")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        get_settings.cache_clear()

    yield _override

    get_settings.cache_clear()


class FakeAssistantsAPI:
    """In-memory stand-in for the provider's vector store endpoints."""

    def __init__(self, stores: list[dict] | None = None, page_size: int | None = None):
        self.stores = list(stores or [])
        self.page_size = page_size
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and path.endswith("/vector_stores"):
            limit = int(request.url.params.get("limit", 100))
            if self.page_size:
                limit = min(limit, self.page_size)
            after = request.url.params.get("after")
            start = 0
            if after:
                start = next(i for i, s in enumerate(self.stores) if s["id"] == after) + 1
            page = self.stores[start:start + limit]
            return httpx.Response(200, json={
                "object": "list",
                "data": page,
                "has_more": start + limit < len(self.stores),
                "last_id": page[-1]["id"] if page else None,
            })

        if request.method == "POST" and path.endswith("/vector_stores"):
            body = json.loads(request.content)
            store = {
                "id": f"vs_{len(self.stores) + 1}",
                "object": "vector_store",
                "name": body["name"],
            }
            self.stores.append(store)
            return httpx.Response(200, json=store)

        if request.method == "DELETE" and "/vector_stores/" in path:
            vs_id = path.rsplit("/", 1)[-1]
            self.stores = [s for s in self.stores if s["id"] != vs_id]
            return httpx.Response(200, json={"id": vs_id, "object": "vector_store.deleted", "deleted": True})

        return httpx.Response(404, json={"error": {"message": f"No route for {request.method} {path}"}})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def count(self, method: str, path_suffix: str) -> int:
        return sum(
            1 for r in self.requests
            if r.method == method and r.url.path.endswith(path_suffix)
        )


@pytest.fixture
def fake_api() -> FakeAssistantsAPI:
    return FakeAssistantsAPI()
