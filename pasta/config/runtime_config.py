"""Runtime configuration helpers for the paste service."""
from __future__ import annotations

import os
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from pasta.paste.service import DEFAULT_NAMESPACE, DEFAULT_TTL_SECONDS

DEFAULT_REDIS_URL = "redis://localhost:6379"
DEFAULT_BIND_HOST = "127.0.0.1"
DEFAULT_BIND_PORT = 3000
DEFAULT_POOL_SIZE = 10
DEFAULT_POOL_TIMEOUT = 30.0

STORE_BACKENDS = {"redis", "memory"}


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(name, default)


def _get_int(name: str, default: int) -> int:
    raw = _get_env(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _get_float(name: str, default: float) -> float:
    raw = _get_env(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def get_redis_url() -> str:
    return _get_env("PASTA_REDIS_URL") or DEFAULT_REDIS_URL


def get_bind_host() -> str:
    return _get_env("PASTA_BIND_HOST") or DEFAULT_BIND_HOST


def get_bind_port() -> int:
    return _get_int("PASTA_BIND_PORT", DEFAULT_BIND_PORT)


def get_pool_size() -> int:
    return _get_int("PASTA_POOL_SIZE", DEFAULT_POOL_SIZE)


def get_pool_timeout() -> float:
    return _get_float("PASTA_POOL_TIMEOUT", DEFAULT_POOL_TIMEOUT)


def get_ttl_seconds() -> int:
    return _get_int("PASTA_TTL_SECONDS", DEFAULT_TTL_SECONDS)


def get_namespace() -> str:
    return _get_env("PASTA_NAMESPACE") or DEFAULT_NAMESPACE


def get_store_backend() -> str:
    backend = (_get_env("PASTA_STORE_BACKEND") or "redis").lower()
    if backend not in STORE_BACKENDS:
        raise ValueError(f"PASTA_STORE_BACKEND must be one of {sorted(STORE_BACKENDS)}. Got: '{backend}'")
    return backend


class Settings(BaseModel):
    redis_url: str = DEFAULT_REDIS_URL
    bind_host: str = DEFAULT_BIND_HOST
    bind_port: int = Field(DEFAULT_BIND_PORT, ge=0, le=65535)
    pool_size: int = Field(DEFAULT_POOL_SIZE, gt=0)
    pool_timeout: float = Field(DEFAULT_POOL_TIMEOUT, ge=0)
    ttl_seconds: int = Field(DEFAULT_TTL_SECONDS, gt=0)
    namespace: str = DEFAULT_NAMESPACE
    store_backend: str = "redis"


def load_settings(argv: Optional[Sequence[str]] = None) -> Settings:
    """Build settings from the environment; a first positional argument overrides the Redis URL."""
    args: List[str] = list(argv or [])
    return Settings(
        redis_url=args[0] if args else get_redis_url(),
        bind_host=get_bind_host(),
        bind_port=get_bind_port(),
        pool_size=get_pool_size(),
        pool_timeout=get_pool_timeout(),
        ttl_seconds=get_ttl_seconds(),
        namespace=get_namespace(),
        store_backend=get_store_backend(),
    )
