"""Caller authentication.

Validates the X-API-Key header against configured gateway keys and builds
the RequestUser from the identity headers set by the upstream auth layer.
"""

import hmac

from fastapi import Header, HTTPException, Security
from fastapi.security import APIKeyHeader

from assistants_gateway.clients.models import RequestUser
from assistants_gateway.config.settings import get_settings

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: str | None = Security(api_key_header)) -> str:
    """FastAPI dependency that validates the gateway API key."""
    if api_key is None:
        raise HTTPException(status_code=401, detail="Missing API key")

    matched = False
    for valid_key in get_settings().api_keys_list:
        # Compare against every key to keep timing constant
        if hmac.compare_digest(api_key, valid_key):
            matched = True

    if not matched:
        raise HTTPException(status_code=403, detail="Invalid API key")
    return api_key


async def get_current_user(
    api_key: str = Security(verify_api_key),
    x_user_id: str | None = Header(default=None),
    x_user_email: str = Header(default=""),
    x_user_name: str = Header(default=""),
) -> RequestUser:
    """Authenticated caller identity."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing user identity")
    return RequestUser(id=x_user_id, email=x_user_email, name=x_user_name)
