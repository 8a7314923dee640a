"""Environment-backed runtime settings for the database pool and pagination."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


def _env_int(name: str, default: int) -> int:
    """Return an integer sourced from the environment when available."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    """Return an environment-backed boolean with sensible parsing."""
    raw = os.getenv(name)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


@dataclass(frozen=True)
class PoolSettings:
    """Connection pool sizing for the process-wide engine."""

    min_conns: int
    max_conns: int
    recycle_seconds: int
    timeout_seconds: int
    echo: bool

    @property
    def max_overflow(self) -> int:
        return max(self.max_conns - self.min_conns, 0)


@dataclass(frozen=True)
class PaginationSettings:
    default_limit: int
    min_limit: int
    max_limit: int
    store_default_limit: int


@lru_cache(maxsize=1)
def get_pool_settings() -> PoolSettings:
    """Read pool configuration from environment with caching."""

    min_conns = max(_env_int("DB_POOL_MIN_CONNS", 5), 1)
    max_conns = _env_int("DB_POOL_MAX_CONNS", 30)
    if max_conns < min_conns:
        max_conns = min_conns

    return PoolSettings(
        min_conns=min_conns,
        max_conns=max_conns,
        recycle_seconds=_env_int("DB_POOL_RECYCLE_SECONDS", 2 * 60 * 60),
        timeout_seconds=_env_int("DB_POOL_TIMEOUT_SECONDS", 30),
        echo=_env_bool("DB_ECHO", False),
    )


@lru_cache(maxsize=1)
def get_pagination_settings() -> PaginationSettings:
    """Read page-size bounds from environment with caching."""

    min_limit = max(_env_int("REGISTRY_PAGE_LIMIT_MIN", 1), 1)
    max_limit = _env_int("REGISTRY_PAGE_LIMIT_MAX", 100)
    if max_limit < min_limit:
        max_limit = min_limit
    default_limit = _env_int("REGISTRY_PAGE_LIMIT_DEFAULT", 30)
    default_limit = min(max(default_limit, min_limit), max_limit)

    return PaginationSettings(
        default_limit=default_limit,
        min_limit=min_limit,
        max_limit=max_limit,
        store_default_limit=max(_env_int("REGISTRY_STORE_DEFAULT_LIMIT", 10), 1),
    )


def refresh_settings_cache() -> None:
    """Clear cached settings (useful for tests)."""

    get_pool_settings.cache_clear()
    get_pagination_settings.cache_clear()
