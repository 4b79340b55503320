import pytest

from catalog_sync.database.memory import InMemoryStore
from catalog_sync.database.postgres_store import PostgresStore
from catalog_sync.integrations.clients.mocks.local_catalog import LocalCatalogClient
from catalog_sync.integrations.clients.real_http.square_catalog import SquareCatalogClient
from catalog_sync.sync.factory import build_catalog_client, build_store, resolve_catalog_mode
from catalog_sync.utils.config_loader import SyncConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CATALOG_MODE", "SQUARE_ACCESS_TOKEN", "DATABASE_URL", "REDIS_URL"):
        monkeypatch.delenv(name, raising=False)


def test_auto_mode_without_token_uses_local_fixture():
    cfg = SyncConfig()
    assert resolve_catalog_mode(cfg) == "mock"
    assert isinstance(build_catalog_client(cfg), LocalCatalogClient)


def test_auto_mode_with_token_uses_square(monkeypatch):
    monkeypatch.setenv("SQUARE_ACCESS_TOKEN", "tok")
    assert isinstance(build_catalog_client(SyncConfig()), SquareCatalogClient)


def test_env_mode_overrides_config(monkeypatch):
    monkeypatch.setenv("SQUARE_ACCESS_TOKEN", "tok")
    monkeypatch.setenv("CATALOG_MODE", "mock")
    assert resolve_catalog_mode(SyncConfig()) == "mock"


def test_unknown_mode_rejected(monkeypatch):
    monkeypatch.setenv("CATALOG_MODE", "live")
    with pytest.raises(ValueError):
        resolve_catalog_mode(SyncConfig())


def test_store_defaults_to_memory():
    assert isinstance(build_store(SyncConfig()), InMemoryStore)


def test_database_url_selects_sql_store(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'c.db'}")
    store = build_store(SyncConfig())
    assert isinstance(store, PostgresStore)
    assert store.ping() is True
