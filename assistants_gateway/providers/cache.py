"""Assistant → vector store affinity cache.

Entries live for the process lifetime (no eviction, no TTL): assistant to
vector-store bindings are stable. A cached ``None`` records a lookup that
found nothing.
"""

import asyncio

_MISSING = object()


class VectorStoreCache:
    """Process-wide map of assistant id to its discovered vector store."""

    def __init__(self):
        self._entries: dict[str, dict | None] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def lock(self, assistant_id: str) -> asyncio.Lock:
        """Per-assistant lock serializing lookup-then-create."""
        return self._locks.setdefault(assistant_id, asyncio.Lock())

    def __contains__(self, assistant_id: str) -> bool:
        return assistant_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, assistant_id: str) -> dict | None:
        return self._entries.get(assistant_id)

    def put(self, assistant_id: str, vector_store: dict | None) -> None:
        self._entries[assistant_id] = vector_store

    def insert_if_absent(self, assistant_id: str, vector_store: dict | None) -> dict | None:
        """Store ``vector_store`` unless a store is already cached; return the winner."""
        current = self._entries.get(assistant_id, _MISSING)
        if current is _MISSING or current is None:
            self._entries[assistant_id] = vector_store
            return vector_store
        return current


_cache: VectorStoreCache | None = None


def get_vector_store_cache() -> VectorStoreCache:
    """Get the process-default cache singleton."""
    global _cache
    if _cache is None:
        _cache = VectorStoreCache()
    return _cache
