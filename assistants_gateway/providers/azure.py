"""Azure model-to-group routing, URL templating and header resolution."""

import os
import re
from dataclasses import dataclass, field

from assistants_gateway.clients.models import AzureOptions, RequestUser
from assistants_gateway.config.azure import AZURE_ENDPOINT, ProviderConfig
from assistants_gateway.errors import ConfigurationError, ModelNotConfiguredError

DEFAULT_AZURE_URL = "https://${INSTANCE_NAME}.openai.azure.com/openai"

_ENV_REF = re.compile(r"^\$\{(\w+)\}$")
_USER_PLACEHOLDERS = {
    "{{USER_ID}}": "id",
    "{{USER_EMAIL}}": "email",
    "{{USER_NAME}}": "name",
}


@dataclass(frozen=True)
class AzureRouting:
    """Structured Azure auth: instance + deployment + api version."""

    group: str
    azure_options: AzureOptions
    base_url: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    serverless: bool = False


@dataclass(frozen=True)
class ServerlessRouting:
    """Header-based auth against a fixed serverless base URL."""

    group: str
    azure_options: AzureOptions
    base_url: str
    headers: dict[str, str] = field(default_factory=dict)
    serverless: bool = True


Routing = AzureRouting | ServerlessRouting


def extract_env_variable(value: str) -> str:
    """Resolve a whole-value ``${VAR}`` reference from the environment."""
    match = _ENV_REF.match(value.strip()) if value else None
    if match:
        return os.environ.get(match.group(1), "")
    return value


def map_model_to_azure_config(model_name: str, config: ProviderConfig) -> Routing:
    """Resolve routing for ``model_name``. Defaults are the caller's job."""
    entry = config.model_group_map.get(model_name)
    if entry is None:
        raise ModelNotConfiguredError(AZURE_ENDPOINT, model_name)

    group = config.groups.get(entry.group)
    if group is None:
        raise ConfigurationError(
            AZURE_ENDPOINT, f"Group '{entry.group}' for model '{model_name}' not found"
        )

    api_key = extract_env_variable(group.api_key)
    headers = {k: extract_env_variable(v) for k, v in group.headers.items()}
    api_version = entry.version or group.version

    if group.serverless:
        if not group.base_url:
            raise ConfigurationError(
                AZURE_ENDPOINT, f"Serverless group '{group.group}' has no baseURL"
            )
        return ServerlessRouting(
            group=group.group,
            azure_options=AzureOptions(api_key=api_key, api_version=api_version),
            base_url=extract_env_variable(group.base_url),
            headers=headers,
        )

    deployment_name = entry.deployment_name or group.deployment_name or model_name
    return AzureRouting(
        group=group.group,
        azure_options=AzureOptions(
            api_key=api_key,
            api_version=api_version,
            deployment_name=deployment_name,
            instance_name=group.instance_name or None,
        ),
        base_url=extract_env_variable(group.base_url) if group.base_url else None,
        headers=headers,
    )


def construct_azure_url(base_url: str, azure_options: AzureOptions) -> str:
    """Fill ``${INSTANCE_NAME}`` / ``${DEPLOYMENT_NAME}`` in a URL template.

    A placeholder with no value is dropped together with its leading slash.
    """
    url = base_url
    for placeholder, value in (
        ("${INSTANCE_NAME}", azure_options.instance_name),
        ("${DEPLOYMENT_NAME}", azure_options.deployment_name),
    ):
        if value:
            url = url.replace(placeholder, value)
        else:
            url = url.replace("/" + placeholder, "").replace(placeholder, "")
    return url


def resolve_headers(headers: dict[str, str], user: RequestUser | None = None) -> dict[str, str]:
    """Substitute env references and user placeholders in header values."""
    resolved = {}
    for name, value in headers.items():
        value = extract_env_variable(value)
        if user is not None:
            for placeholder, attr in _USER_PLACEHOLDERS.items():
                if placeholder in value:
                    value = value.replace(placeholder, str(getattr(user, attr) or ""))
        resolved[name] = value
    return resolved
