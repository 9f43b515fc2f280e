"""Client initialization for the Azure Assistants endpoint.

Pipeline: resolve credentials -> (grouped config only) map the requested
model to its Azure group -> build the provider client and, optionally, the
application-level ChatClient. Any failure aborts the whole pipeline; no
partially configured client is returned.
"""

from typing import Any

import httpx

from assistants_gateway.clients.chat import ChatClient
from assistants_gateway.clients.models import (
    AzureOptions,
    ClientOptions,
    RequestContext,
    ResolvedClient,
)
from assistants_gateway.config.azure import (
    AZURE_ENDPOINT,
    EndpointConfig,
    GroupedEndpoint,
    get_azure_config_store,
)
from assistants_gateway.config.settings import Settings, get_settings
from assistants_gateway.credentials.resolver import (
    AZURE_ASSISTANTS_ENDPOINT,
    resolve_credentials,
)
from assistants_gateway.errors import ConfigurationError, MissingApiKeyError, NoUserKeyError
from assistants_gateway.logging.audit import get_audit_logger
from assistants_gateway.providers.azure import (
    DEFAULT_AZURE_URL,
    ServerlessRouting,
    construct_azure_url,
    map_model_to_azure_config,
    resolve_headers,
)
from assistants_gateway.providers.cache import VectorStoreCache
from assistants_gateway.providers.client import ProviderClient
from assistants_gateway.user_keys.factory import get_user_key_store
from assistants_gateway.user_keys.store import UserKeyStore


async def initialize_client(
    request_context: RequestContext,
    response_context: Any = None,
    version: str = "v1",
    endpoint_option: dict | None = None,
    init_app_client: bool = False,
    *,
    settings: Settings | None = None,
    key_store: UserKeyStore | None = None,
    endpoint_config: EndpointConfig | None = None,
    vector_store_cache: VectorStoreCache | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ResolvedClient:
    """Resolve credentials and routing for one request and build its clients.

    Args:
        request_context: Caller identity plus request body/query (for ``model``).
        response_context: Opaque handle attached to the provider client.
        version: Assistants API version used in the ``OpenAI-Beta`` header.
        endpoint_option: Endpoint options; required for an application client.
        init_app_client: Also build a ``ChatClient``.
        settings, key_store, endpoint_config, vector_store_cache, transport:
            Overrides for the process-wide defaults.

    Raises:
        CredentialError: Missing, expired or unreadable keys, unknown models.
    """
    settings = settings or get_settings()
    key_store = key_store or get_user_key_store()
    if endpoint_config is None:
        endpoint_config = get_azure_config_store().get_endpoint_config()

    credentials = await resolve_credentials(request_context.user.id, settings, key_store)
    api_key = credentials.api_key
    base_url = credentials.base_url

    client_options = ClientOptions(
        base_url=base_url,
        proxy=settings.proxy or None,
        organization=settings.openai_organization or None,
        model=(endpoint_option or {}).get("model"),
        endpoint_option=dict(endpoint_option or {}),
    )
    default_headers: dict[str, str] | None = None
    default_query: dict[str, str] | None = None
    azure_options: AzureOptions | None = None
    serverless = False

    if isinstance(endpoint_config, GroupedEndpoint):
        config = endpoint_config.config
        model_name = request_context.model
        if not model_name:
            if not config.assistant_models:
                raise ConfigurationError(AZURE_ENDPOINT, "No assistant models configured")
            model_name = config.assistant_models[0]

        routing = map_model_to_azure_config(model_name, config)
        serverless = isinstance(routing, ServerlessRouting)
        azure_options = routing.azure_options

        base_url = construct_azure_url(routing.base_url or DEFAULT_AZURE_URL, azure_options)
        api_key = azure_options.api_key
        if azure_options.api_version:
            default_query = {"api-version": azure_options.api_version}
        default_headers = resolve_headers(
            {
                **routing.headers,
                "api-key": api_key,
                "OpenAI-Beta": f"assistants={version}",
            },
            request_context.user,
        )

        if init_app_client:
            group = config.groups[routing.group]
            client_options.title_convo = config.title_convo
            client_options.title_model = config.title_model
            client_options.title_method = config.title_method
            client_options.add_params = dict(group.add_params)
            client_options.drop_params = list(group.drop_params)
            client_options.force_prompt = group.force_prompt
            client_options.model = azure_options.deployment_name or model_name
            client_options.base_url = base_url or client_options.base_url
            client_options.headers = dict(default_headers)
            if serverless:
                client_options.azure = None
                client_options.default_query = default_query
                client_options.headers["api-key"] = api_key
            else:
                client_options.azure = azure_options

    if credentials.user_provides_key and not api_key:
        raise NoUserKeyError(AZURE_ASSISTANTS_ENDPOINT)

    if not api_key:
        raise MissingApiKeyError(AZURE_ASSISTANTS_ENDPOINT)

    provider_client = ProviderClient(
        api_key=api_key,
        base_url=base_url,
        organization=client_options.organization,
        default_headers=default_headers,
        default_query=default_query,
        proxy=client_options.proxy,
        timeout=settings.upstream_timeout,
        azure_options=azure_options,
        vector_store_cache=vector_store_cache,
        transport=transport,
    )
    provider_client.request_context = request_context
    provider_client.response_context = response_context

    app_client = None
    if endpoint_option and init_app_client:
        app_client = ChatClient(api_key, client_options)

    get_audit_logger().info(
        "Client initialized",
        extra={"audit_data": {
            "user_id": request_context.user.id,
            "endpoint": AZURE_ASSISTANTS_ENDPOINT,
            "grouped": isinstance(endpoint_config, GroupedEndpoint),
            "serverless": serverless,
            "deployment": azure_options.deployment_name if azure_options else None,
            "proxied": bool(client_options.proxy),
            "app_client": app_client is not None,
        }},
    )

    return ResolvedClient(provider_client=provider_client, api_key=api_key, app_client=app_client)
