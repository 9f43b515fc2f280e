"""Azure group/model routing configuration.

The config file groups Azure deployments that share credentials, base URL,
headers and parameter policy::

    {
      "titleConvo": true,
      "titleModel": "gpt-4o-mini",
      "groups": [
        {
          "group": "eastus",
          "apiKey": "${AZURE_API_KEY}",
          "instanceName": "acct",
          "version": "2024-05-01-preview",
          "assistants": true,
          "models": {"gpt-4o": {"deploymentName": "gpt4o-east"}, "gpt-4": true}
        }
      ]
    }

Loaded configs are exposed as a tagged union: ``UngroupedEndpoint`` when no
assistants-capable group exists, ``GroupedEndpoint`` otherwise.
"""

import json
import os
from dataclasses import dataclass, field

from assistants_gateway.config.settings import get_settings
from assistants_gateway.errors import ConfigurationError

AZURE_ENDPOINT = "azureOpenAI"


@dataclass(frozen=True)
class ModelDeployment:
    deployment_name: str | None = None
    version: str | None = None


@dataclass(frozen=True)
class GroupConfig:
    group: str
    api_key: str
    instance_name: str = ""
    version: str = ""
    base_url: str | None = None
    deployment_name: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    add_params: dict = field(default_factory=dict)
    drop_params: list[str] = field(default_factory=list)
    force_prompt: bool = False
    serverless: bool = False
    assistants: bool = False
    models: dict[str, ModelDeployment] = field(default_factory=dict)


@dataclass(frozen=True)
class ModelGroupEntry:
    group: str
    deployment_name: str | None = None
    version: str | None = None


@dataclass(frozen=True)
class ProviderConfig:
    groups: dict[str, GroupConfig]
    model_group_map: dict[str, ModelGroupEntry]
    assistant_models: list[str] = field(default_factory=list)
    assistants: bool = False
    title_convo: bool = False
    title_model: str | None = None
    title_method: str = "completion"

    @classmethod
    def from_dict(cls, data: dict) -> "ProviderConfig":
        groups: dict[str, GroupConfig] = {}
        model_group_map: dict[str, ModelGroupEntry] = {}
        assistant_models: list[str] = []

        for raw in data.get("groups", []):
            group = _parse_group(raw)
            if group.group in groups:
                raise ConfigurationError(AZURE_ENDPOINT, f"Duplicate group name: {group.group}")
            groups[group.group] = group

            for model_name, deployment in group.models.items():
                if model_name in model_group_map:
                    raise ConfigurationError(
                        AZURE_ENDPOINT,
                        f"Model '{model_name}' is configured in more than one group",
                    )
                model_group_map[model_name] = ModelGroupEntry(
                    group=group.group,
                    deployment_name=deployment.deployment_name,
                    version=deployment.version,
                )
                if group.assistants:
                    assistant_models.append(model_name)

        return cls(
            groups=groups,
            model_group_map=model_group_map,
            assistant_models=assistant_models,
            assistants=any(g.assistants for g in groups.values()),
            title_convo=bool(data.get("titleConvo", False)),
            title_model=data.get("titleModel"),
            title_method=data.get("titleMethod") or "completion",
        )


def _parse_headers(group: str, raw: dict) -> dict[str, str]:
    """Header values go on the wire as text; scalars are stringified."""
    headers = {}
    for key, value in raw.items():
        if isinstance(value, bool):
            headers[key] = "true" if value else "false"
        elif isinstance(value, (str, int, float)):
            headers[key] = str(value)
        else:
            raise ConfigurationError(
                AZURE_ENDPOINT, f"Group '{group}' header '{key}' must be a string"
            )
    return headers


def _parse_group(raw: dict) -> GroupConfig:
    name = raw.get("group")
    if not name:
        raise ConfigurationError(AZURE_ENDPOINT, "Every Azure group needs a 'group' name")
    if not raw.get("apiKey"):
        raise ConfigurationError(AZURE_ENDPOINT, f"Group '{name}' is missing 'apiKey'")

    serverless = bool(raw.get("serverless", False))
    if serverless and not raw.get("baseURL"):
        raise ConfigurationError(AZURE_ENDPOINT, f"Serverless group '{name}' requires 'baseURL'")
    if not serverless and not (raw.get("instanceName") or raw.get("baseURL")):
        raise ConfigurationError(
            AZURE_ENDPOINT, f"Group '{name}' requires 'instanceName' or 'baseURL'"
        )

    models: dict[str, ModelDeployment] = {}
    for model_name, spec in (raw.get("models") or {}).items():
        if isinstance(spec, dict):
            models[model_name] = ModelDeployment(
                deployment_name=spec.get("deploymentName"),
                version=spec.get("version"),
            )
        elif spec is True:
            models[model_name] = ModelDeployment()
        # `false` disables the model

    return GroupConfig(
        group=name,
        api_key=raw["apiKey"],
        instance_name=raw.get("instanceName", ""),
        version=raw.get("version", ""),
        base_url=raw.get("baseURL"),
        deployment_name=raw.get("deploymentName"),
        headers=_parse_headers(name, raw.get("additionalHeaders") or {}),
        add_params=dict(raw.get("addParams") or {}),
        drop_params=list(raw.get("dropParams") or []),
        force_prompt=bool(raw.get("forcePrompt", False)),
        serverless=serverless,
        assistants=bool(raw.get("assistants", False)),
        models=models,
    )


@dataclass(frozen=True)
class UngroupedEndpoint:
    """No Azure routing: credentials come straight from the resolver."""

    kind: str = "ungrouped"


@dataclass(frozen=True)
class GroupedEndpoint:
    config: ProviderConfig
    kind: str = "grouped"


EndpointConfig = UngroupedEndpoint | GroupedEndpoint


class AzureConfigStore:
    """File-backed Azure config. Reloads on mtime change."""

    def __init__(self, path: str):
        self._path = path
        self._config: ProviderConfig | None = None
        self._last_mtime: float = 0.0
        self._load()

    def _load(self) -> None:
        try:
            mtime = os.path.getmtime(self._path)
        except OSError:
            self._config = None
            self._last_mtime = 0.0
            return

        if mtime == self._last_mtime and self._config is not None:
            return

        with open(self._path, encoding="utf-8") as f:
            data = json.load(f)

        self._config = ProviderConfig.from_dict(data)
        self._last_mtime = mtime

    def get_endpoint_config(self) -> EndpointConfig:
        """Snapshot of the current routing config (reloads if the file changed)."""
        self._load()
        if self._config is None or not self._config.assistants:
            return UngroupedEndpoint()
        return GroupedEndpoint(config=self._config)


_store: AzureConfigStore | None = None


def get_azure_config_store() -> AzureConfigStore:
    """Get the process-wide Azure config store."""
    global _store
    if _store is None:
        _store = AzureConfigStore(get_settings().azure_config_path)
    return _store
