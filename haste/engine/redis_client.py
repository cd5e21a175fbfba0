"""
Haste Redis Connection — Shared pooled client with circuit breaker.

One RedisConnection is built at process start and shared by every request;
redis-py keeps a thread-safe connection pool underneath, sized by
redis.max_connections. Socket and connect timeouts are set on the client.

Backend failures are raised as StoreUnavailableError. After
failure_threshold failures inside failure_window seconds the circuit opens
and calls fail fast until the window has passed. Breaker state is shared
by the server threadpool and guarded by a lock.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import redis

from haste.engine.errors import StoreUnavailableError

if TYPE_CHECKING:
    from haste.engine.config import RedisConfig

logger = logging.getLogger("haste.engine.redis_client")


class RedisConnection:
    """
    Redis client wrapper exposing the operations the document store needs.

    Values are str (decode_responses=True).
    """

    def __init__(
        self,
        client: Any,
        failure_threshold: int = 5,
        failure_window: int = 30,
    ):
        self._client = client

        # Circuit breaker state, guarded by _lock
        self._lock = threading.Lock()
        self._failure_count = 0
        self._failure_threshold = failure_threshold
        self._failure_window = failure_window
        self._first_failure_time = 0.0
        self._circuit_open = False

    @classmethod
    def from_config(cls, config: "RedisConfig") -> "RedisConnection":
        """Build the pooled client. No I/O happens until the first command."""
        client = redis.Redis.from_url(
            config.url,
            decode_responses=True,
            max_connections=config.max_connections,
            socket_timeout=config.socket_timeout,
            socket_connect_timeout=config.connect_timeout,
        )
        return cls(
            client,
            failure_threshold=config.failure_threshold,
            failure_window=config.failure_window,
        )

    # ── Circuit breaker ──

    def _check_circuit(self, operation: str) -> None:
        with self._lock:
            if not self._circuit_open:
                return
            if time.time() - self._first_failure_time > self._failure_window:
                logger.info("Redis circuit breaker half-open, retrying backend")
                self._circuit_open = False
                self._failure_count = 0
                return
        raise StoreUnavailableError(
            "Document store unavailable (circuit open)",
            operation=operation,
            circuit_open=True,
        )

    def _record_failure(self) -> bool:
        """Count one failure; returns whether the circuit is now open."""
        with self._lock:
            now = time.time()
            if self._failure_count == 0 or now - self._first_failure_time > self._failure_window:
                self._first_failure_time = now
                self._failure_count = 0

            self._failure_count += 1

            if self._failure_count >= self._failure_threshold and not self._circuit_open:
                elapsed = now - self._first_failure_time
                self._circuit_open = True
                logger.error(
                    f"Redis circuit breaker OPEN: {self._failure_count} failures in {elapsed:.1f}s"
                )
            return self._circuit_open

    def _record_success(self) -> None:
        with self._lock:
            self._failure_count = 0

    def _unavailable(self, operation: str, exc: Exception) -> StoreUnavailableError:
        circuit_open = self._record_failure()
        logger.warning(f"Redis {operation} failed: {exc}")
        return StoreUnavailableError(
            f"Document store unavailable: {exc}",
            operation=operation,
            circuit_open=circuit_open,
        )

    # ── Core Operations ──

    def get(self, name: str) -> Optional[str]:
        self._check_circuit("get")
        try:
            value = self._client.get(name)
        except redis.RedisError as e:
            raise self._unavailable("get", e) from e
        self._record_success()
        return value

    def mget(self, names: List[str]) -> List[Optional[str]]:
        self._check_circuit("mget")
        try:
            values = self._client.mget(names)
        except redis.RedisError as e:
            raise self._unavailable("mget", e) from e
        self._record_success()
        return list(values)

    def exists(self, name: str) -> bool:
        self._check_circuit("exists")
        try:
            found = self._client.exists(name)
        except redis.RedisError as e:
            raise self._unavailable("exists", e) from e
        self._record_success()
        return bool(found)

    def lrange(self, name: str, start: int, end: int) -> List[str]:
        self._check_circuit("lrange")
        try:
            values = self._client.lrange(name, start, end)
        except redis.RedisError as e:
            raise self._unavailable("lrange", e) from e
        self._record_success()
        return list(values)

    def mset_transaction(
        self,
        mapping: Dict[str, str],
        recent_list: Optional[str] = None,
        recent_value: Optional[str] = None,
        recent_limit: int = 0,
    ) -> None:
        """
        Write all keys in one MULTI/EXEC block.

        When recent_list is given, recent_value is moved to the head of that
        list and the list is trimmed to recent_limit entries, in the same
        transaction.
        """
        self._check_circuit("mset")
        try:
            pipe = self._client.pipeline(transaction=True)
            pipe.mset(mapping)
            if recent_list and recent_value is not None and recent_limit > 0:
                pipe.lrem(recent_list, 0, recent_value)
                pipe.lpush(recent_list, recent_value)
                pipe.ltrim(recent_list, 0, recent_limit - 1)
            pipe.execute()
        except redis.RedisError as e:
            raise self._unavailable("mset", e) from e
        self._record_success()

    # ── Health & Management ──

    def ping(self) -> bool:
        """Health check. Never raises."""
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def close(self) -> None:
        """
        Release pooled connections.

        The client object is kept: a later command reconnects, and backend
        failures still surface as StoreUnavailableError.
        """
        try:
            self._client.close()
        except redis.RedisError as e:
            logger.warning(f"Redis close failed: {e}")
        with self._lock:
            self._circuit_open = False
            self._failure_count = 0

    @property
    def is_circuit_open(self) -> bool:
        return self._circuit_open

    @property
    def failure_count(self) -> int:
        return self._failure_count
