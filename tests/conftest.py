"""
Haste Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v

Unit tests never touch a real Redis: the store is backed by InMemoryRedis,
a dict-based double covering the commands RedisConnection issues. Failure
paths use MagicMock clients raising redis exceptions.
"""

from __future__ import annotations

import random
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest


# ---------------------------------------------------------------------------
# In-memory Redis double
# ---------------------------------------------------------------------------

class InMemoryRedis:
    """String and list commands over plain dicts, str values only."""

    def __init__(self):
        self.strings: Dict[str, str] = {}
        self.lists: Dict[str, List[str]] = {}
        self.closed = False

    def get(self, name: str) -> Optional[str]:
        return self.strings.get(name)

    def mget(self, names: List[str]) -> List[Optional[str]]:
        return [self.strings.get(n) for n in names]

    def mset(self, mapping: Dict[str, str]) -> bool:
        self.strings.update(mapping)
        return True

    def exists(self, *names: str) -> int:
        return sum(1 for n in names if n in self.strings or n in self.lists)

    def lrem(self, name: str, count: int, value: str) -> int:
        items = self.lists.get(name, [])
        kept = [v for v in items if v != value]
        self.lists[name] = kept
        return len(items) - len(kept)

    def lpush(self, name: str, *values: str) -> int:
        items = self.lists.setdefault(name, [])
        for v in values:
            items.insert(0, v)
        return len(items)

    def ltrim(self, name: str, start: int, end: int) -> bool:
        items = self.lists.get(name, [])
        self.lists[name] = items[start:] if end == -1 else items[start:end + 1]
        return True

    def lrange(self, name: str, start: int, end: int) -> List[str]:
        items = self.lists.get(name, [])
        return list(items[start:] if end == -1 else items[start:end + 1])

    def pipeline(self, transaction: bool = True) -> "InMemoryPipeline":
        return InMemoryPipeline(self)

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        self.closed = True


class InMemoryPipeline:
    """Queues commands and applies them together on execute()."""

    def __init__(self, target: InMemoryRedis):
        self._target = target
        self._commands: List[tuple] = []

    def __getattr__(self, name: str) -> Any:
        def queue(*args, **kwargs):
            self._commands.append((name, args, kwargs))
            return self
        return queue

    def execute(self) -> List[Any]:
        results = [getattr(self._target, name)(*args, **kwargs) for name, args, kwargs in self._commands]
        self._commands = []
        return results


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_logging():
    """Make sure no test leaves the process JSON log queue running."""
    yield
    from haste.engine.logging import shutdown_logging

    shutdown_logging()


@pytest.fixture
def fake_redis():
    return InMemoryRedis()


@pytest.fixture
def connection(fake_redis):
    from haste.engine.redis_client import RedisConnection

    return RedisConnection(fake_redis)


@pytest.fixture
def store(connection):
    from haste.documents.store import DocumentStore

    return DocumentStore(connection, recent_limit=20)


@pytest.fixture
def codec():
    from haste.documents.codec import ContentCodec

    return ContentCodec()


@pytest.fixture
def key_generator():
    from haste.documents.keys import KeyGenerator

    return KeyGenerator(rng=random.Random(1234))


@pytest.fixture
def service(store, codec, key_generator):
    from haste.documents.service import PasteService

    return PasteService(store=store, codec=codec, key_generator=key_generator)


@pytest.fixture
def static_dir(tmp_path):
    """Static directory holding a landing page."""
    d = tmp_path / "static"
    d.mkdir()
    (d / "index.html").write_text("<html><body>haste</body></html>", encoding="utf-8")
    return d


@pytest.fixture
def config(tmp_path, static_dir):
    """HasteConfig with JSON logging off and the temp static directory."""
    from haste.engine.config import HasteConfig, LoggingConfig, ServerConfig

    return HasteConfig(
        server=ServerConfig(static_dir=str(static_dir)),
        logging=LoggingConfig(enabled=False, directory=str(tmp_path / "logs")),
    )


@pytest.fixture
def app(config, connection):
    from haste.server import create_app

    return create_app(config, connection=connection)


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture
def broken_redis():
    """A MagicMock Redis client whose every command fails to connect."""
    import redis

    client = MagicMock()
    error = redis.ConnectionError("Connection refused")
    for command in ("get", "mget", "exists", "lrange", "ping"):
        getattr(client, command).side_effect = error
    client.pipeline.return_value.execute.side_effect = error
    return client
