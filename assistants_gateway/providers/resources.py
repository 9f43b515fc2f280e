"""Assistant file and vector store REST namespaces.

Thin wrappers over ``ProviderClient``: each call injects the assistants beta
header, returns the parsed JSON body and raises ``UpstreamHttpError`` on
non-2xx responses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from assistants_gateway.providers.cache import VectorStoreCache

if TYPE_CHECKING:
    from assistants_gateway.providers.client import ProviderClient

ASSISTANTS_BETA_HEADER = {"OpenAI-Beta": "assistants=v1"}
LIST_PAGE_SIZE = 100


def _beta_headers(headers: dict | None = None) -> dict:
    return {**ASSISTANTS_BETA_HEADER, **(headers or {})}


async def list_all(client: ProviderClient, path: str, headers: dict | None = None) -> list[dict]:
    """Follow ``has_more``/``after`` cursors until the listing is exhausted."""
    items: list[dict] = []
    params = {"limit": LIST_PAGE_SIZE}
    while True:
        page = await client.get(path, params=params, headers=_beta_headers(headers))
        data = page.get("data") or []
        items.extend(data)
        if not page.get("has_more") or not data:
            return items
        params = {"limit": LIST_PAGE_SIZE, "after": page.get("last_id") or data[-1]["id"]}


class AssistantFiles:
    """Files attached to an assistant."""

    def __init__(self, client: ProviderClient):
        self._client = client

    async def create(self, assistant_id: str, body: dict, headers: dict | None = None) -> dict:
        return await self._client.post(
            f"/assistants/{assistant_id}/files", json=body, headers=_beta_headers(headers)
        )

    async def retrieve(self, assistant_id: str, file_id: str, headers: dict | None = None) -> dict:
        return await self._client.get(
            f"/assistants/{assistant_id}/files/{file_id}", headers=_beta_headers(headers)
        )

    async def delete(self, assistant_id: str, file_id: str, headers: dict | None = None) -> dict:
        return await self._client.delete(
            f"/assistants/{assistant_id}/files/{file_id}", headers=_beta_headers(headers)
        )


class VectorStoreFiles:
    """Files inside a vector store."""

    def __init__(self, client: ProviderClient):
        self._client = client

    async def create(self, vector_store_id: str, body: dict, headers: dict | None = None) -> dict:
        return await self._client.post(
            f"/vector_stores/{vector_store_id}/files", json=body, headers=_beta_headers(headers)
        )

    async def list(self, vector_store_id: str, headers: dict | None = None) -> list[dict]:
        return await list_all(self._client, f"/vector_stores/{vector_store_id}/files", headers)

    async def retrieve(self, vector_store_id: str, file_id: str, headers: dict | None = None) -> dict:
        return await self._client.get(
            f"/vector_stores/{vector_store_id}/files/{file_id}", headers=_beta_headers(headers)
        )

    async def delete(self, vector_store_id: str, file_id: str, headers: dict | None = None) -> dict:
        return await self._client.delete(
            f"/vector_stores/{vector_store_id}/files/{file_id}", headers=_beta_headers(headers)
        )


class VectorStores:
    """One vector store per assistant, found by its derived name."""

    def __init__(self, client: ProviderClient, cache: VectorStoreCache):
        self._client = client
        self._cache = cache
        self.files = VectorStoreFiles(client)

    @staticmethod
    def name(assistant_id: str) -> str:
        return f"{assistant_id}_vector_store"

    async def list(self, headers: dict | None = None) -> list[dict]:
        return await list_all(self._client, "/vector_stores", headers)

    async def _retrieve_for_assistant(self, assistant_id: str, headers: dict | None = None) -> dict | None:
        if assistant_id not in self._cache:
            name = self.name(assistant_id)
            stores = await self.list(headers)
            match = next((vs for vs in stores if vs.get("name") == name), None)
            self._cache.insert_if_absent(assistant_id, match)
        return self._cache.get(assistant_id)

    async def create(self, assistant_id: str, headers: dict | None = None) -> dict:
        """Ensure the assistant's vector store exists; create it only if missing."""
        async with self._cache.lock(assistant_id):
            existing = await self._retrieve_for_assistant(assistant_id, headers)
            if existing:
                return existing

            created = await self._client.post(
                "/vector_stores",
                json={"name": self.name(assistant_id)},
                headers=_beta_headers(headers),
            )
            self._cache.put(assistant_id, created)
            return created

    async def retrieve(self, assistant_id: str, headers: dict | None = None) -> dict:
        async with self._cache.lock(assistant_id):
            existing = await self._retrieve_for_assistant(assistant_id, headers)
        if existing:
            return existing

        return await self._client.get(
            f"/vector_stores/{self.name(assistant_id)}", headers=_beta_headers(headers)
        )

    async def delete(self, assistant_id: str, headers: dict | None = None) -> dict:
        async with self._cache.lock(assistant_id):
            existing = self._cache.get(assistant_id)
            target = existing["id"] if existing else self.name(assistant_id)
            result = await self._client.delete(
                f"/vector_stores/{target}", headers=_beta_headers(headers)
            )
            self._cache.put(assistant_id, None)
            return result
