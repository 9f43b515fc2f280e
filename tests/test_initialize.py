"""Tests for assistants_gateway/clients/initialize.py — end-to-end client resolution."""

from unittest.mock import AsyncMock, patch

import pytest

from assistants_gateway.clients.chat import ChatClient
from assistants_gateway.clients.initialize import initialize_client
from assistants_gateway.clients.models import RequestContext, RequestUser
from assistants_gateway.config.azure import GroupedEndpoint, ProviderConfig, UngroupedEndpoint
from assistants_gateway.config.settings import get_settings
from assistants_gateway.errors import (
    ExpiredUserKeyError,
    MissingApiKeyError,
    ModelNotConfiguredError,
    NoUserKeyError,
)
from assistants_gateway.providers.cache import VectorStoreCache
from assistants_gateway.user_keys.store import JSONUserKeyStore


@pytest.fixture
def key_store(user_keys_file):
    return JSONUserKeyStore(user_keys_file)


@pytest.fixture
def grouped(azure_config_dict) -> GroupedEndpoint:
    return GroupedEndpoint(config=ProviderConfig.from_dict(azure_config_dict))


def _context(model=None, user_id="user-1") -> RequestContext:
    body = {"model": model} if model else {}
    return RequestContext(user=RequestUser(id=user_id, email="u@example.com"), body=body)


async def _init(context, key_store, endpoint_config, **kwargs):
    return await initialize_client(
        context,
        settings=get_settings(),
        key_store=key_store,
        endpoint_config=endpoint_config,
        vector_store_cache=VectorStoreCache(),
        **kwargs,
    )


class TestOperatorSupplied:

    async def test_grouped_scenario(self, override_settings, monkeypatch, key_store, grouped):
        monkeypatch.setenv("AZURE_API_KEY", "sk-test")
        override_settings(AZURE_ASSISTANTS_API_KEY="sk-ignored", AZURE_ASSISTANTS_BASE_URL="")

        resolved = await _init(_context("gpt-4-group1"), key_store, grouped)
        client = resolved.provider_client

        assert resolved.api_key == "sk-test"
        assert client.base_url == "https://acct.openai.azure.com/openai/deployments/dep1"
        assert client.default_query == {"api-version": "2024-05-01-preview"}
        assert client.default_headers["api-key"] == "sk-test"
        assert client.default_headers["OpenAI-Beta"] == "assistants=v1"
        assert client.default_headers["X-Region"] == "eastus"
        assert client.azure_options.deployment_name == "dep1"
        assert resolved.app_client is None
        await client.close()

    async def test_ungrouped_uses_settings(self, override_settings, key_store):
        override_settings(
            AZURE_ASSISTANTS_API_KEY="sk-operator",
            AZURE_ASSISTANTS_BASE_URL="https://operator.example.com/v1",
            OPENAI_ORGANIZATION="org-9",
        )
        resolved = await _init(_context(), key_store, UngroupedEndpoint())
        client = resolved.provider_client
        assert resolved.api_key == "sk-operator"
        assert client.base_url == "https://operator.example.com/v1"
        assert client.default_headers["OpenAI-Organization"] == "org-9"
        assert client.azure_options is None

    async def test_default_model_is_first_assistant_model(self, override_settings, monkeypatch, key_store, grouped):
        monkeypatch.setenv("AZURE_API_KEY", "sk-test")
        override_settings(AZURE_ASSISTANTS_API_KEY="")
        resolved = await _init(_context(), key_store, grouped)
        assert resolved.provider_client.azure_options.deployment_name == "dep1"

    async def test_model_from_query(self, override_settings, key_store, grouped):
        override_settings(AZURE_ASSISTANTS_API_KEY="")
        context = RequestContext(user=RequestUser(id="user-1"), query={"model": "mistral-large"})
        resolved = await _init(context, key_store, grouped)
        assert resolved.provider_client.base_url == "https://mistral.eastus.models.ai.azure.com"

    async def test_unknown_model(self, override_settings, key_store, grouped):
        override_settings(AZURE_ASSISTANTS_API_KEY="sk")
        with pytest.raises(ModelNotConfiguredError):
            await _init(_context("nope"), key_store, grouped)

    async def test_missing_api_key(self, override_settings, key_store):
        override_settings(AZURE_ASSISTANTS_API_KEY="")
        with pytest.raises(MissingApiKeyError) as exc_info:
            await _init(_context(), key_store, UngroupedEndpoint())
        assert "API key not provided" in str(exc_info.value)
        assert exc_info.value.to_dict()["type"] == "missing_api_key"

    async def test_proxy_applied_to_transport(self, override_settings, key_store):
        override_settings(AZURE_ASSISTANTS_API_KEY="sk", PROXY="http://proxy.internal:3128")
        with patch("assistants_gateway.providers.client.httpx.AsyncClient") as http_cls:
            resolved = await _init(_context(), key_store, UngroupedEndpoint())
        assert http_cls.call_args.kwargs["proxy"] == "http://proxy.internal:3128"
        assert resolved.provider_client.proxy == "http://proxy.internal:3128"


class TestUserSupplied:

    async def test_stored_key_used(self, override_settings, key_store):
        override_settings(
            AZURE_ASSISTANTS_API_KEY="user_provided",
            AZURE_ASSISTANTS_BASE_URL="user_provided",
        )
        resolved = await _init(_context(), key_store, UngroupedEndpoint())
        assert resolved.api_key == "sk-user-1"
        assert resolved.provider_client.base_url == "https://user1.example.com/v1"

    async def test_no_stored_key(self, override_settings, key_store):
        override_settings(AZURE_ASSISTANTS_API_KEY="user_provided")
        with patch("assistants_gateway.clients.initialize.ProviderClient") as client_cls:
            with pytest.raises(NoUserKeyError) as exc_info:
                await _init(_context(user_id="user-u"), key_store, UngroupedEndpoint())
        assert exc_info.value.to_dict() == {
            "type": "no_user_key",
            "endpoint": "azureAssistants",
            "message": exc_info.value.message,
        }
        client_cls.assert_not_called()

    async def test_expired_key_fails_before_fetch(self, override_settings, key_store):
        override_settings(AZURE_ASSISTANTS_API_KEY="user_provided")
        with patch(
            "assistants_gateway.credentials.resolver.get_user_key_values",
            new_callable=AsyncMock,
        ) as fetch, patch("assistants_gateway.clients.initialize.ProviderClient") as client_cls:
            with pytest.raises(ExpiredUserKeyError):
                await _init(_context(user_id="user-expired"), key_store, UngroupedEndpoint())
        fetch.assert_not_awaited()
        client_cls.assert_not_called()

    async def test_stored_value_without_key(self, override_settings, tmp_path):
        override_settings(AZURE_ASSISTANTS_API_KEY="user_provided")
        path = tmp_path / "keys.json"
        path.write_text(
            '{"keys": [{"user_id": "user-1", "endpoint": "azureAssistants", '
            '"value": "{\\"baseURL\\": \\"https://x\\"}"}]}',
            encoding="utf-8",
        )
        with pytest.raises(NoUserKeyError):
            await _init(_context(), JSONUserKeyStore(str(path)), UngroupedEndpoint())


class TestApplicationClient:

    async def test_structured_group_options(self, override_settings, monkeypatch, key_store, grouped):
        monkeypatch.setenv("AZURE_API_KEY", "sk-test")
        override_settings(AZURE_ASSISTANTS_API_KEY="")
        resolved = await _init(
            _context("gpt-4-group1"), key_store, grouped,
            endpoint_option={"endpoint": "azureAssistants"}, init_app_client=True,
        )
        app = resolved.app_client
        assert isinstance(app, ChatClient)
        options = app.options
        assert options.title_convo is True
        assert options.title_model == "gpt-4o-mini"
        assert options.title_method == "completion"
        assert options.add_params == {"temperature": 0.2}
        assert options.drop_params == ["top_p"]
        assert options.azure is not None
        assert options.azure.deployment_name == "dep1"
        assert options.base_url == "https://acct.openai.azure.com/openai/deployments/dep1"
        assert app.azure is True

    async def test_serverless_never_azure(self, override_settings, key_store, grouped):
        override_settings(AZURE_ASSISTANTS_API_KEY="")
        resolved = await _init(
            _context("mistral-large"), key_store, grouped,
            endpoint_option={"endpoint": "azureAssistants"}, init_app_client=True,
        )
        options = resolved.app_client.options
        assert not options.azure
        assert options.headers["api-key"] == "serverless-key"
        assert options.default_query == {"api-version": "2024-05-01-preview"}

    async def test_no_app_client_without_endpoint_option(self, override_settings, key_store):
        override_settings(AZURE_ASSISTANTS_API_KEY="sk")
        resolved = await _init(_context(), key_store, UngroupedEndpoint(), init_app_client=True)
        assert resolved.app_client is None

    async def test_context_attached(self, override_settings, key_store):
        override_settings(AZURE_ASSISTANTS_API_KEY="sk")
        context = _context()
        response = object()
        resolved = await _init(context, key_store, UngroupedEndpoint(), response_context=response)
        assert resolved.provider_client.request_context is context
        assert resolved.provider_client.response_context is response
