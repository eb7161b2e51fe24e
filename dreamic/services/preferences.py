"""Durable key-value preferences used to persist permission tracking state.

Every backend stores values as JSON text, so a bool written under a key is
read back as a bool and never confused with an int. Typed reads of a value
holding another type raise ``PreferenceTypeError``. Backend failures are
wrapped in ``PreferencesStoreError`` and propagated to the caller.
"""
from __future__ import annotations

import asyncio
import json
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable

import redis.asyncio as redis
from loguru import logger
from redis.exceptions import RedisError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dreamic.db.models.preference import PreferenceEntry
from dreamic.utils.exceptions import PreferencesStoreError, PreferenceTypeError


class PreferencesStore(ABC):
    """Async typed key-value store, optionally scoped to a namespace."""

    backend_name = "abstract"

    def __init__(self, namespace: str | None = None) -> None:
        self.namespace = namespace

    def _compose(self, key: str) -> str:
        if not self.namespace:
            return key
        return f"{self.namespace}:{key}"

    def _nested(self, namespace: str) -> str:
        return self._compose(namespace)

    @abstractmethod
    def with_namespace(self, namespace: str) -> "PreferencesStore":
        """Return a view of the same backend whose keys live under ``namespace``.

        Namespaces nest: the new view is scoped below this store's namespace.
        """

    @abstractmethod
    async def _read(self, full_key: str) -> str | None: ...

    @abstractmethod
    async def _write(self, full_key: str, payload: str) -> None: ...

    @abstractmethod
    async def _delete(self, full_key: str) -> None: ...

    async def _get(self, key: str, expected: type) -> Any | None:
        payload = await self._read(self._compose(key))
        if payload is None:
            return None
        try:
            value = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise PreferenceTypeError(
                "Stored preference is not valid JSON", {"key": key}
            ) from exc
        if (expected is int and isinstance(value, bool)) or not isinstance(value, expected):
            raise PreferenceTypeError(
                f"Preference {key!r} holds {type(value).__name__}, expected {expected.__name__}",
                {"key": key},
            )
        return value

    async def _set(self, key: str, value: Any) -> None:
        await self._write(self._compose(key), json.dumps(value))

    async def get_string(self, key: str) -> str | None:
        return await self._get(key, str)

    async def get_bool(self, key: str) -> bool | None:
        return await self._get(key, bool)

    async def get_int(self, key: str) -> int | None:
        return await self._get(key, int)

    async def set_string(self, key: str, value: str) -> None:
        await self._set(key, value)

    async def set_bool(self, key: str, value: bool) -> None:
        await self._set(key, bool(value))

    async def set_int(self, key: str, value: int) -> None:
        await self._set(key, int(value))

    async def contains(self, key: str) -> bool:
        return await self._read(self._compose(key)) is not None

    async def remove(self, key: str) -> None:
        """Delete ``key``. Removing an absent key is a no-op."""

        await self._delete(self._compose(key))


class InMemoryPreferencesStore(PreferencesStore):
    """Process-local store, used in tests and as the default backend."""

    backend_name = "memory"

    def __init__(
        self,
        namespace: str | None = None,
        *,
        _data: dict[str, str] | None = None,
        _lock: threading.Lock | None = None,
    ) -> None:
        super().__init__(namespace)
        self._data: dict[str, str] = _data if _data is not None else {}
        self._lock = _lock or threading.Lock()

    def with_namespace(self, namespace: str) -> "InMemoryPreferencesStore":
        return InMemoryPreferencesStore(self._nested(namespace), _data=self._data, _lock=self._lock)

    async def _read(self, full_key: str) -> str | None:
        with self._lock:
            return self._data.get(full_key)

    async def _write(self, full_key: str, payload: str) -> None:
        with self._lock:
            self._data[full_key] = payload

    async def _delete(self, full_key: str) -> None:
        with self._lock:
            self._data.pop(full_key, None)

    def clear(self) -> None:
        """Drop every key across all namespaces (test environments)."""

        with self._lock:
            self._data.clear()


class RedisPreferencesStore(PreferencesStore):
    """Store backed by Redis strings."""

    backend_name = "redis"

    def __init__(self, client: Any, namespace: str | None = None) -> None:
        super().__init__(namespace)
        self._redis = client

    @classmethod
    def from_url(cls, redis_url: str, namespace: str | None = None) -> "RedisPreferencesStore":
        client = redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=1.5,
        )
        return cls(client, namespace)

    def with_namespace(self, namespace: str) -> "RedisPreferencesStore":
        return RedisPreferencesStore(self._redis, self._nested(namespace))

    async def _read(self, full_key: str) -> str | None:
        try:
            return await self._redis.get(full_key)
        except RedisError as exc:
            raise PreferencesStoreError(
                "Failed to read preference from Redis", {"key": full_key, "backend": self.backend_name}
            ) from exc

    async def _write(self, full_key: str, payload: str) -> None:
        try:
            await self._redis.set(full_key, payload)
        except RedisError as exc:
            raise PreferencesStoreError(
                "Failed to write preference to Redis", {"key": full_key, "backend": self.backend_name}
            ) from exc

    async def _delete(self, full_key: str) -> None:
        try:
            await self._redis.delete(full_key)
        except RedisError as exc:
            raise PreferencesStoreError(
                "Failed to delete preference from Redis", {"key": full_key, "backend": self.backend_name}
            ) from exc


class SqlPreferencesStore(PreferencesStore):
    """Store backed by the ``preferences`` table.

    SQLAlchemy sessions are synchronous, so each operation runs in a worker
    thread.
    """

    backend_name = "sql"

    def __init__(self, session_factory: Callable[[], Session], namespace: str | None = None) -> None:
        super().__init__(namespace)
        self._session_factory = session_factory

    def with_namespace(self, namespace: str) -> "SqlPreferencesStore":
        return SqlPreferencesStore(self._session_factory, self._nested(namespace))

    def _run(self, action: str, full_key: str, operation: Callable[[Session], Any]) -> Any:
        db = self._session_factory()
        try:
            result = operation(db)
            db.commit()
            return result
        except SQLAlchemyError as exc:
            db.rollback()
            raise PreferencesStoreError(
                f"Failed to {action} preference in database",
                {"key": full_key, "backend": self.backend_name},
            ) from exc
        finally:
            db.close()

    async def _read(self, full_key: str) -> str | None:
        def operation(db: Session) -> str | None:
            return db.scalars(
                select(PreferenceEntry.value).where(PreferenceEntry.key == full_key)
            ).first()

        return await asyncio.to_thread(self._run, "read", full_key, operation)

    async def _write(self, full_key: str, payload: str) -> None:
        def operation(db: Session) -> None:
            entry = db.get(PreferenceEntry, full_key)
            if entry is None:
                db.add(PreferenceEntry(key=full_key, value=payload))
            else:
                entry.value = payload
                entry.updated_at = datetime.now(timezone.utc)

        await asyncio.to_thread(self._run, "write", full_key, operation)

    async def _delete(self, full_key: str) -> None:
        def operation(db: Session) -> None:
            db.execute(delete(PreferenceEntry).where(PreferenceEntry.key == full_key))

        await asyncio.to_thread(self._run, "delete", full_key, operation)


def build_preferences_store(
    backend: str,
    *,
    namespace: str | None = None,
    redis_url: str | None = None,
    session_factory: Callable[[], Session] | None = None,
) -> PreferencesStore:
    """Create the store selected by configuration."""

    if backend == "memory":
        store: PreferencesStore = InMemoryPreferencesStore(namespace)
    elif backend == "redis":
        if not redis_url:
            raise PreferencesStoreError("REDIS_URL is required for the redis backend", {"backend": backend})
        store = RedisPreferencesStore.from_url(redis_url, namespace)
    elif backend == "sql":
        if session_factory is None:
            raise PreferencesStoreError("A session factory is required for the sql backend", {"backend": backend})
        store = SqlPreferencesStore(session_factory, namespace)
    else:
        raise PreferencesStoreError(f"Unknown preferences backend {backend!r}", {"backend": backend})
    logger.info("Preferences store configured", backend=store.backend_name, namespace=namespace)
    return store


__all__ = [
    "InMemoryPreferencesStore",
    "PreferencesStore",
    "RedisPreferencesStore",
    "SqlPreferencesStore",
    "build_preferences_store",
]
