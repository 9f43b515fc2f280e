"""User key store abstraction + JSON file implementation."""

import json
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal

from assistants_gateway.errors import InvalidUserKeyError
from assistants_gateway.user_keys.models import UserKeyRecord


class UserKeyStore(ABC):
    """Abstract base for per-user credential lookups."""

    @abstractmethod
    async def get(self, user_id: str, endpoint: str) -> UserKeyRecord | None:
        """Fetch the stored key for a user/endpoint pair. Returns None if absent."""
        ...


def parse_expiry(raw, endpoint: str) -> datetime | None:
    """Parse a stored expiry into an aware UTC datetime.

    Accepts ISO-8601 strings (naive ones are taken as UTC, a trailing ``Z``
    is allowed) and numeric epoch seconds, which is how DynamoDB TTL
    attributes come back from boto3 (as ``Decimal``).
    """
    if raw is None or raw == "":
        return None
    try:
        if isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool):
            return datetime.fromtimestamp(float(raw), tz=timezone.utc)
        if not isinstance(raw, str):
            raise TypeError(f"unsupported expiry type: {type(raw).__name__}")
        text = raw.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        expires_at = datetime.fromisoformat(text)
    except (TypeError, ValueError, OverflowError, OSError) as e:
        raise InvalidUserKeyError(
            endpoint, f"Stored key expiry {raw!r} could not be read. Please provide the key again."
        ) from e

    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at


class JSONUserKeyStore(UserKeyStore):
    """File-backed user key store. Reloads on mtime change.

    Rows are kept raw and turned into records on lookup, so one malformed
    row only fails lookups for that user.
    """

    def __init__(self, path: str):
        self._path = path
        self._entries: dict[tuple[str, str], dict] = {}
        self._last_mtime: float = 0.0
        self._load()

    def _load(self) -> None:
        try:
            mtime = os.path.getmtime(self._path)
        except OSError:
            self._entries = {}
            return

        if mtime == self._last_mtime and self._entries:
            return

        with open(self._path, encoding="utf-8") as f:
            data = json.load(f)

        self._entries = {
            (entry["user_id"], entry["endpoint"]): entry for entry in data.get("keys", [])
        }
        self._last_mtime = mtime

    async def get(self, user_id: str, endpoint: str) -> UserKeyRecord | None:
        self._load()  # reload if file changed
        entry = self._entries.get((user_id, endpoint))
        if entry is None:
            return None

        value = entry.get("value", "")
        if isinstance(value, dict):
            value = json.dumps(value)
        return UserKeyRecord(
            user_id=user_id,
            endpoint=endpoint,
            value=value,
            expires_at=parse_expiry(entry.get("expires_at"), endpoint),
        )
