"""Persisted consent store — one JSON-encoded ConsentRecord under a fixed key.

Missing or corrupt data loads as a fresh default record; that is the
normal first-run condition, not an error. Writes fail loudly with
SerializationFailure.

Key format: {namespace}:{key}  (default mobileads_consent:consent_string)
"""

from __future__ import annotations

from typing import Protocol

import redis.asyncio as aioredis
import structlog
from pydantic import ValidationError
from redis.exceptions import RedisError

from consentsync.errors import SerializationFailure
from consentsync.schemas.consent import ConsentRecord

logger = structlog.get_logger()


class KeyValueBackend(Protocol):
    """String get/set storage the record is persisted in."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class InMemoryBackend:
    """Dict-backed storage. Works for a single process only."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class RedisBackend:
    """Redis-backed storage, shared across processes of one installation."""

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self.redis: aioredis.Redis | None = None

    async def connect(self) -> None:
        self.redis = aioredis.from_url(self.redis_url, decode_responses=True)
        logger.info("consent_store_connected", backend="redis")

    async def close(self) -> None:
        if self.redis:
            await self.redis.aclose()

    def _client(self) -> aioredis.Redis:
        if not self.redis:
            raise RuntimeError("RedisBackend not connected. Call connect() first.")
        return self.redis

    async def get(self, key: str) -> str | None:
        return await self._client().get(key)

    async def set(self, key: str, value: str) -> None:
        await self._client().set(key, value)

    async def delete(self, key: str) -> None:
        await self._client().delete(key)


class ConsentStore:
    """Loads and saves the consent record as a whole."""

    def __init__(self, backend: KeyValueBackend, namespace: str, key: str):
        self.backend = backend
        self.storage_key = f"{namespace}:{key}"

    async def load(self) -> ConsentRecord:
        """Return the persisted record, or a default one. Never raises."""
        try:
            blob = await self.backend.get(self.storage_key)
        except RedisError as e:
            logger.error("consent_store_read_failed", key=self.storage_key, error=str(e))
            return ConsentRecord()
        except UnicodeDecodeError as e:
            logger.warning("consent_store_corrupt", key=self.storage_key, error=str(e))
            return ConsentRecord()

        if not blob:
            return ConsentRecord()

        try:
            return ConsentRecord.model_validate_json(blob)
        except ValidationError as e:
            logger.warning(
                "consent_store_corrupt",
                key=self.storage_key,
                errors=e.error_count(),
            )
            return ConsentRecord()

    async def save(self, record: ConsentRecord) -> None:
        try:
            blob = record.model_dump_json(by_alias=True)
        except ValueError as e:
            raise SerializationFailure(f"Could not encode consent record: {e}") from e

        try:
            await self.backend.set(self.storage_key, blob)
        except RedisError as e:
            raise SerializationFailure(f"Could not write consent record: {e}") from e

    async def clear(self) -> None:
        try:
            await self.backend.delete(self.storage_key)
        except RedisError as e:
            raise SerializationFailure(f"Could not clear consent record: {e}") from e
        logger.info("consent_store_cleared", key=self.storage_key)
