"""DynamoDB-backed user key store.

Records are read fresh on every call; nothing is cached.
"""

import asyncio

from assistants_gateway.user_keys.models import UserKeyRecord
from assistants_gateway.user_keys.store import UserKeyStore, parse_expiry


class DynamoDBUserKeyStore(UserKeyStore):
    """Looks up user keys in a table keyed on (user_id, endpoint)."""

    def __init__(self, table_name: str, region: str = "us-east-1"):
        self._table_name = table_name
        self._region = region
        self._table = None

    def _get_table(self):
        """Lazy-init boto3 Table resource."""
        if self._table is None:
            import boto3

            dynamodb = boto3.resource("dynamodb", region_name=self._region)
            self._table = dynamodb.Table(self._table_name)
        return self._table

    async def get(self, user_id: str, endpoint: str) -> UserKeyRecord | None:
        return await asyncio.to_thread(self._get_item, user_id, endpoint)

    def _get_item(self, user_id: str, endpoint: str) -> UserKeyRecord | None:
        table = self._get_table()
        resp = table.get_item(Key={"user_id": user_id, "endpoint": endpoint})

        item = resp.get("Item")
        if not item:
            return None

        return UserKeyRecord(
            user_id=item["user_id"],
            endpoint=item["endpoint"],
            value=item.get("value", ""),
            expires_at=parse_expiry(item.get("expires_at"), endpoint),
        )
