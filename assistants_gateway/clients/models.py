"""Per-request client configuration models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from assistants_gateway.clients.chat import ChatClient
    from assistants_gateway.providers.client import ProviderClient


@dataclass(frozen=True)
class AzureOptions:
    api_key: str
    api_version: str = ""
    deployment_name: str | None = None
    instance_name: str | None = None


@dataclass
class RequestUser:
    id: str
    email: str = ""
    name: str = ""


@dataclass
class RequestContext:
    """The parts of an inbound request the resolver reads."""

    user: RequestUser
    body: dict = field(default_factory=dict)
    query: dict = field(default_factory=dict)

    @property
    def model(self) -> str | None:
        return self.body.get("model") or self.query.get("model")


@dataclass
class ClientOptions:
    base_url: str | None = None
    proxy: str | None = None
    organization: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    default_query: dict[str, str] | None = None
    model: str | None = None
    title_convo: bool = False
    title_model: str | None = None
    title_method: str = "completion"
    add_params: dict = field(default_factory=dict)
    drop_params: list[str] = field(default_factory=list)
    force_prompt: bool = False
    azure: AzureOptions | None = None  # None for serverless / non-Azure routing
    endpoint_option: dict[str, Any] = field(default_factory=dict)


@dataclass
class ResolvedClient:
    provider_client: ProviderClient
    api_key: str
    app_client: ChatClient | None = None
