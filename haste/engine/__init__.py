"""Haste Engine — Configuration, errors, logging, Redis connection."""

from haste.engine.errors import HasteError  # noqa: F401
from haste.engine.redis_client import RedisConnection  # noqa: F401

__all__ = [
    "HasteError",
    "RedisConnection",
]
