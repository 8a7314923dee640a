import pytest

from server_registry.services.versioning import parse_semver
from server_registry.utils.settings import refresh_settings_cache

_SETTINGS_ENV = (
    "DB_POOL_MIN_CONNS",
    "DB_POOL_MAX_CONNS",
    "DB_POOL_RECYCLE_SECONDS",
    "DB_POOL_TIMEOUT_SECONDS",
    "DB_ECHO",
    "REGISTRY_PAGE_LIMIT_DEFAULT",
    "REGISTRY_PAGE_LIMIT_MIN",
    "REGISTRY_PAGE_LIMIT_MAX",
    "REGISTRY_STORE_DEFAULT_LIMIT",
)


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch):
    """Unit tests never see settings from the surrounding environment."""
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    refresh_settings_cache()
    parse_semver.cache_clear()
    yield
    refresh_settings_cache()
