"""Credential resolution: operator-supplied vs user-supplied key and base URL."""

from dataclasses import dataclass
from enum import Enum

from assistants_gateway.config.settings import USER_PROVIDED, Settings
from assistants_gateway.logging.audit import get_audit_logger
from assistants_gateway.user_keys.service import (
    check_user_key_expiry,
    get_user_key_expiry,
    get_user_key_values,
)
from assistants_gateway.user_keys.store import UserKeyStore

AZURE_ASSISTANTS_ENDPOINT = "azureAssistants"


class CredentialSource(str, Enum):
    OPERATOR_SUPPLIED = "operator_supplied"
    USER_SUPPLIED = "user_supplied"


@dataclass
class Credentials:
    api_key: str | None
    base_url: str | None
    key_source: CredentialSource
    url_source: CredentialSource

    @property
    def user_provides_key(self) -> bool:
        return self.key_source is CredentialSource.USER_SUPPLIED


def is_user_provided(value: str | None) -> bool:
    return value == USER_PROVIDED


async def resolve_credentials(
    user_id: str,
    settings: Settings,
    store: UserKeyStore,
    endpoint: str = AZURE_ASSISTANTS_ENDPOINT,
) -> Credentials:
    """Resolve the api key and base URL for ``endpoint``.

    Each value comes from exactly one source. When either is marked as
    user-provided, the stored key's expiry is checked before its values are
    read; an expired or missing key raises and nothing else is fetched.
    """
    user_provides_key = is_user_provided(settings.azure_assistants_api_key)
    user_provides_url = is_user_provided(settings.azure_assistants_base_url)

    user_values: dict = {}
    if user_provides_key or user_provides_url:
        expires_at = await get_user_key_expiry(store, user_id, endpoint)
        check_user_key_expiry(expires_at, endpoint)
        user_values = await get_user_key_values(store, user_id, endpoint)

    key_source = CredentialSource.USER_SUPPLIED if user_provides_key else CredentialSource.OPERATOR_SUPPLIED
    url_source = CredentialSource.USER_SUPPLIED if user_provides_url else CredentialSource.OPERATOR_SUPPLIED

    api_key = user_values.get("apiKey") if user_provides_key else settings.azure_assistants_api_key
    base_url = user_values.get("baseURL") if user_provides_url else settings.azure_assistants_base_url

    get_audit_logger().info(
        "Credentials resolved",
        extra={"audit_data": {
            "user_id": user_id,
            "endpoint": endpoint,
            "key_source": key_source.value,
            "url_source": url_source.value,
            "has_api_key": bool(api_key),
            "has_base_url": bool(base_url),
        }},
    )

    return Credentials(
        api_key=api_key or None,
        base_url=base_url or None,
        key_source=key_source,
        url_source=url_source,
    )
