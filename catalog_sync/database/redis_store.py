"""
Redis-backed document store for production when REDIS_URL is set.
Implements the same interface as catalog_sync.database.memory (in-memory stub).

Each collection is one hash: field = document id, value = JSON document.
Blocking redis calls run in a worker thread so request handling is not stalled.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Mapping, Optional

import redis

from catalog_sync.integrations.contracts.interfaces import StoreAdapter


class RedisStore(StoreAdapter):
    def __init__(self, url: Optional[str] = None, prefix: str = "catalog", client: Optional[redis.Redis] = None) -> None:
        if client is None and not url:
            raise ValueError("RedisStore needs a url or a client")
        self._client = client or redis.from_url(url, decode_responses=True)
        self._prefix = prefix

    def _key(self, collection: str) -> str:
        return f"{self._prefix}:{collection}"

    async def list_ids(self, collection: str) -> List[str]:
        return list(await asyncio.to_thread(self._client.hkeys, self._key(collection)))

    async def upsert(self, collection: str, record_id: str, record: Mapping[str, Any]) -> None:
        payload = json.dumps(dict(record), default=str)
        await asyncio.to_thread(self._client.hset, self._key(collection), record_id, payload)

    async def delete(self, collection: str, record_id: str) -> None:
        await asyncio.to_thread(self._client.hdel, self._key(collection), record_id)

    async def get_all(self, collection: str) -> List[Dict[str, Any]]:
        raw = await asyncio.to_thread(self._client.hgetall, self._key(collection))
        return [doc for doc in (self._decode(value) for value in raw.values()) if doc is not None]

    async def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        raw = await asyncio.to_thread(self._client.hget, self._key(collection), record_id)
        return self._decode(raw) if raw else None

    @staticmethod
    def _decode(raw: str) -> Optional[Dict[str, Any]]:
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    def ping(self) -> bool:
        try:
            return self._client.ping()
        except Exception:
            return False
