"""
Haste Configuration — Load and validate haste.yaml at startup.

The loaded HasteConfig is passed explicitly to create_app() and from there
into each component; nothing reads configuration from module state.

Environment overrides (applied after the file):
    HOST       → server.host
    PORT       → server.port
    REDIS_URL  → redis.url

Usage:
    from haste.engine.config import load_config
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from haste.documents.keys import DEFAULT_DELIMITER, LOWERCASE, UPPERCASE
from haste.engine.errors import HasteConfigError

CONFIG_FILENAME = "haste.yaml"


# ---------------------------------------------------------------------------
# Pydantic models for haste.yaml
# ---------------------------------------------------------------------------

class ServerConfig(BaseModel):
    host: str = "localhost"
    port: int = Field(default=7777, gt=0, lt=65536)
    static_dir: str = "static"


class RedisConfig(BaseModel):
    url: str = "redis://localhost:6379/0"
    max_connections: int = Field(default=20, gt=0)
    socket_timeout: float = Field(default=5.0, gt=0)
    connect_timeout: float = Field(default=5.0, gt=0)
    failure_threshold: int = Field(default=5, gt=0)
    failure_window: int = Field(default=30, gt=0)


class KeyConfig(BaseModel):
    length: int = Field(default=10, gt=0)
    alphabets: List[str] = Field(default_factory=lambda: [UPPERCASE, LOWERCASE, LOWERCASE])
    check_collisions: bool = False
    max_attempts: int = Field(default=5, gt=0)

    @field_validator("alphabets")
    @classmethod
    def validate_alphabets(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("keys.alphabets must contain at least one alphabet")
        for alphabet in v:
            if not alphabet:
                raise ValueError("keys.alphabets must not contain an empty alphabet")
            # '.' separates a key from its extension in request paths
            if DEFAULT_DELIMITER in alphabet:
                raise ValueError(
                    f"keys.alphabets must not contain '{DEFAULT_DELIMITER}', got '{alphabet}'"
                )
        return v


class StorageConfig(BaseModel):
    max_length: Optional[int] = Field(default=None, gt=0)
    recent_limit: int = Field(default=20, ge=0)
    compression_level: int = Field(default=9, ge=0, le=9)


class LogRetentionConfig(BaseModel):
    documents: int = 30
    requests: int = 14
    system: int = 90


class LoggingConfig(BaseModel):
    level: str = "INFO"
    enabled: bool = True
    directory: str = ".haste/logs"
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000
    retention: LogRetentionConfig = LogRetentionConfig()
    compress_after_days: int = 7

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"logging.level must be a standard level name, got '{v}'")
        return level


class HasteConfig(BaseModel):
    """Root model for haste.yaml."""
    name: str = "Haste"
    version: str = "1.0.0"
    environment: str = "dev"

    server: ServerConfig = ServerConfig()
    redis: RedisConfig = RedisConfig()
    keys: KeyConfig = KeyConfig()
    storage: StorageConfig = StorageConfig()
    logging: LoggingConfig = LoggingConfig()
    documents: Dict[str, str] = Field(default_factory=dict)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v


# ---------------------------------------------------------------------------
# Config Loading
# ---------------------------------------------------------------------------

def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Walk up from *start* (default CWD) looking for haste.yaml."""
    current = start or Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    return None


def _apply_env_overrides(data: Dict, environ: Dict[str, str]) -> Dict:
    server = dict(data.get("server") or {})
    redis = dict(data.get("redis") or {})
    if environ.get("HOST"):
        server["host"] = environ["HOST"]
    if environ.get("PORT"):
        server["port"] = environ["PORT"]
    if environ.get("REDIS_URL"):
        redis["url"] = environ["REDIS_URL"]
    data["server"] = server
    data["redis"] = redis
    return data


def load_config(
    config_path: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None,
) -> HasteConfig:
    """
    Load and validate haste.yaml.

    Args:
        config_path: Explicit path to haste.yaml. If None, auto-discovers.
        environ: Environment mapping for overrides (defaults to os.environ).

    Returns:
        Validated HasteConfig instance. Defaults are used when no file exists.

    Raises:
        HasteConfigError: the file is unreadable YAML or fails validation.
    """
    environ = os.environ if environ is None else environ

    path: Optional[Path]
    if config_path is None:
        path = find_config_file()
    else:
        path = Path(config_path)

    raw: Dict = {}
    if path is not None and path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise HasteConfigError(f"Could not parse {path}: {e}") from e
        if not isinstance(raw, dict):
            raise HasteConfigError(f"{path} must contain a mapping at the top level")

    # haste.yaml may nest name/version/environment under "haste:"
    meta = raw.pop("haste", None) or {}
    for field in ("name", "version", "environment"):
        if field in meta and field not in raw:
            raw[field] = meta[field]

    raw = _apply_env_overrides(raw, environ)

    try:
        return HasteConfig(**raw)
    except ValidationError as e:
        raise HasteConfigError(
            f"Invalid configuration in {path or 'defaults'}: {e}",
            validation_errors=e.errors(),
        ) from e
