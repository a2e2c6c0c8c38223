"""
CacheMirror -- best-effort, read-optimised copy of station stock levels.

Responsibility:
    After an allocation unit of work commits, pushes the resulting stock
    count to a key/value cache so stock displays do not hit the database.
    The mirror is never authoritative; every reservation decision goes
    through InventoryStore.

Architecture position:
    Kernel > Services.  Called by RequestIssuer and RequestLifecycle strictly
    after commit (outbox order: authoritative write first, cache second).

Guarantees:
    - ``set()`` never blocks the caller on cache I/O and never raises; the
      write runs on a small thread pool.
    - A failed write is logged as ``cache_sync_failed`` and swallowed.
    - Writes are last-write-wins; a reader may briefly see stale stock.
      With a single worker (the default) writes reach the store in
      submission order.  More workers trade that ordering for throughput.

Stores:
    - RedisCacheStore: redis-py client, the production store.
    - InMemoryCacheStore: process-local dict for single-process runs and tests.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Protocol, runtime_checkable
from uuid import UUID

import redis

from tire_kernel.exceptions import CacheSyncError
from tire_kernel.logging_config import get_logger

logger = get_logger("services.cache_mirror")


@runtime_checkable
class CacheStore(Protocol):
    """Minimal key -> string store.  No transactional guarantee required."""

    def set(self, key: str, value: str) -> None: ...

    def get(self, key: str) -> str | None: ...


class InMemoryCacheStore:
    """Thread-safe dict-backed store."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)


class RedisCacheStore:
    """redis-py backed store.  Redis errors surface as CacheSyncError."""

    def __init__(self, client: redis.Redis, ttl_seconds: int | None = None):
        self._client = client
        self._ttl = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int | None = None) -> "RedisCacheStore":
        return cls(
            redis.Redis.from_url(url, decode_responses=True),
            ttl_seconds=ttl_seconds,
        )

    def set(self, key: str, value: str) -> None:
        try:
            self._client.set(key, value, ex=self._ttl)
        except redis.RedisError as exc:
            raise CacheSyncError(key, str(exc)) from exc

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(key)
        except redis.RedisError as exc:
            raise CacheSyncError(key, str(exc)) from exc


class CacheMirror:
    """
    Asynchronous stock mirror over a CacheStore.

    Usage:
        mirror = CacheMirror(RedisCacheStore.from_url("redis://localhost:6379/0"))
        mirror.set(station_id, tire_id, 7)   # returns immediately
        mirror.flush()                       # tests / shutdown only
    """

    def __init__(
        self,
        store: CacheStore,
        key_prefix: str = "stock",
        max_workers: int = 1,
    ):
        self._store = store
        self._key_prefix = key_prefix
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="cache-mirror"
        )
        self._pending: set[Future] = set()
        self._pending_lock = threading.Lock()

    @property
    def store(self) -> CacheStore:
        return self._store

    def key(self, station_id: UUID, tire_id: UUID) -> str:
        return f"{self._key_prefix}:{station_id}:{tire_id}"

    def _write(self, key: str, quantity: int) -> bool:
        try:
            self._store.set(key, str(quantity))
        except Exception:
            logger.warning(
                "cache_sync_failed",
                extra={"cache_key": key, "quantity": quantity},
                exc_info=True,
            )
            return False
        logger.debug("cache_synced", extra={"cache_key": key, "quantity": quantity})
        return True

    def _forget(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    def set(self, station_id: UUID, tire_id: UUID, quantity: int) -> Future | None:
        """
        Fire-and-forget write of the stock level for a pair.

        Returns the future of the write (resolves to True/False), or None if
        the mirror is already closed.
        """
        key = self.key(station_id, tire_id)
        try:
            future = self._executor.submit(self._write, key, quantity)
        except RuntimeError:
            logger.warning(
                "cache_sync_failed",
                extra={"cache_key": key, "quantity": quantity, "reason": "mirror_closed"},
            )
            return None
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def get(self, station_id: UUID, tire_id: UUID) -> int | None:
        """Advisory stock level; None on a miss or on any cache failure."""
        key = self.key(station_id, tire_id)
        try:
            value = self._store.get(key)
        except Exception:
            logger.warning("cache_read_failed", extra={"cache_key": key}, exc_info=True)
            return None
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("cache_value_malformed", extra={"cache_key": key})
            return None

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for pending writes.  Returns True if all completed in time."""
        with self._pending_lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self, wait_for_pending: bool = True) -> None:
        self._executor.shutdown(wait=wait_for_pending)
