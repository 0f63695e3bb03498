"""Key-value store backed by a Supabase table.

Every platform entity (users, wallets, salas, resolutions) lives in a single
``key``/``value`` table, keyed by ``<kind>:<id>``. The in-memory store has the
same interface and is used for local runs and tests.
"""

import copy
import logging
from typing import Any, Iterable, Optional

from supabase import create_client, Client
from app.config import get_settings

logger = logging.getLogger(__name__)

_supabase_client: Client | None = None
_store: Optional["KVStore"] = None


def get_supabase() -> Client:
    """Get Supabase client instance (service role when available)."""
    global _supabase_client

    if _supabase_client is None:
        settings = get_settings()
        _supabase_client = create_client(
            settings.supabase_url,
            settings.supabase_service_key or settings.supabase_key
        )

    return _supabase_client


class KVStore:
    """Async key-value interface over JSON documents."""

    async def get(self, key: str) -> Optional[dict]:
        raise NotImplementedError

    async def set(self, key: str, value: dict) -> None:
        raise NotImplementedError

    async def get_by_prefix(self, prefix: str) -> list[dict]:
        raise NotImplementedError

    async def set_many(self, items: Iterable[tuple[str, dict]]) -> None:
        """Write several keys in a single atomic operation."""
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError


class SupabaseKVStore(KVStore):
    """Store backed by the ``kv_store`` table in Supabase."""

    def __init__(self, client: Client, table: str):
        self.client = client
        self.table = table

    async def get(self, key: str) -> Optional[dict]:
        result = self.client.table(self.table).select("value").eq(
            "key", key
        ).maybe_single().execute()

        # maybe_single() yields None or an empty payload when the row is absent
        if result is None or not result.data:
            return None
        return result.data["value"]

    async def set(self, key: str, value: dict) -> None:
        self.client.table(self.table).upsert({
            "key": key,
            "value": value
        }).execute()

    async def get_by_prefix(self, prefix: str) -> list[dict]:
        result = self.client.table(self.table).select("key, value").like(
            "key", f"{prefix}%"
        ).execute()
        return [row["value"] for row in result.data or []]

    async def set_many(self, items: Iterable[tuple[str, dict]]) -> None:
        rows = [{"key": key, "value": value} for key, value in items]
        if not rows:
            return
        # One bulk upsert is a single INSERT ... ON CONFLICT statement
        self.client.table(self.table).upsert(rows).execute()

    async def delete(self, key: str) -> None:
        self.client.table(self.table).delete().eq("key", key).execute()


class InMemoryKVStore(KVStore):
    """Dict-backed store. Values are copied in and out like a real document store."""

    def __init__(self, data: Optional[dict[str, dict]] = None):
        self.data: dict[str, dict] = {}
        for key, value in (data or {}).items():
            self.data[key] = copy.deepcopy(value)

    async def get(self, key: str) -> Optional[dict]:
        value = self.data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: dict) -> None:
        self.data[key] = copy.deepcopy(value)

    async def get_by_prefix(self, prefix: str) -> list[dict]:
        return [
            copy.deepcopy(value)
            for key, value in self.data.items()
            if key.startswith(prefix)
        ]

    async def set_many(self, items: Iterable[tuple[str, dict]]) -> None:
        staged = {key: copy.deepcopy(value) for key, value in items}
        self.data.update(staged)

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


def get_store() -> KVStore:
    """Get the configured key-value store (FastAPI dependency)."""
    global _store

    if _store is None:
        settings = get_settings()
        if settings.store_backend == "supabase" and settings.supabase_configured:
            _store = SupabaseKVStore(get_supabase(), settings.kv_table)
        else:
            if settings.store_backend == "supabase":
                logger.warning("Supabase not configured, using in-memory store")
            _store = InMemoryKVStore()

    return _store
