"""Read-side user key operations used by the credential resolver."""

import json
from datetime import datetime, timezone

from assistants_gateway.errors import (
    ExpiredUserKeyError,
    InvalidUserKeyError,
    NoUserKeyError,
)
from assistants_gateway.user_keys.store import UserKeyStore

# Reported expiry for keys stored without one
NEVER_EXPIRES = datetime.max.replace(tzinfo=timezone.utc)


async def get_user_key_expiry(store: UserKeyStore, user_id: str, endpoint: str) -> datetime | None:
    """Expiry of the user's stored key, or None if no key was ever stored."""
    record = await store.get(user_id, endpoint)
    if record is None:
        return None
    return record.expires_at or NEVER_EXPIRES


def check_user_key_expiry(expires_at: datetime | None, endpoint: str) -> None:
    """Raise unless a stored key exists and has not expired."""
    if expires_at is None:
        raise NoUserKeyError(endpoint)
    if expires_at <= datetime.now(timezone.utc):
        raise ExpiredUserKeyError(endpoint, expires_at)


async def get_user_key_values(store: UserKeyStore, user_id: str, endpoint: str) -> dict:
    """Decode the stored value into ``{"apiKey": ..., "baseURL": ...}``."""
    record = await store.get(user_id, endpoint)
    if record is None:
        raise NoUserKeyError(endpoint)

    try:
        values = json.loads(record.value)
    except (TypeError, json.JSONDecodeError):
        raise InvalidUserKeyError(endpoint)

    if not isinstance(values, dict):
        raise InvalidUserKeyError(endpoint)

    return {"apiKey": values.get("apiKey"), "baseURL": values.get("baseURL")}
