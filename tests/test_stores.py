import pytest

from catalog_sync.database.memory import InMemoryStore
from catalog_sync.database.postgres_store import PostgresStore, _normalize_connection_string


@pytest.fixture
def sqlite_store(tmp_path):
    store = PostgresStore(f"sqlite:///{tmp_path / 'catalog.db'}")
    store.create_tables()
    return store


@pytest.fixture(params=["memory", "sql"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryStore()
    store = PostgresStore(f"sqlite:///{tmp_path / 'catalog.db'}")
    store.create_tables()
    return store


@pytest.mark.asyncio
async def test_upsert_overwrites_whole_document(any_store):
    await any_store.upsert("products", "A", {"id": "A", "name": "Old", "stock": 3})
    await any_store.upsert("products", "A", {"id": "A", "name": "New"})

    assert await any_store.get("products", "A") == {"id": "A", "name": "New"}
    assert await any_store.list_ids("products") == ["A"]


@pytest.mark.asyncio
async def test_collections_are_isolated(any_store):
    await any_store.upsert("products", "X", {"id": "X"})
    await any_store.upsert("categories", "X", {"id": "X", "name": "Cat"})
    await any_store.delete("products", "X")

    assert await any_store.list_ids("products") == []
    assert await any_store.get("categories", "X") == {"id": "X", "name": "Cat"}


@pytest.mark.asyncio
async def test_delete_missing_id_is_noop(any_store):
    await any_store.delete("products", "NOPE")
    assert await any_store.get("products", "NOPE") is None


@pytest.mark.asyncio
async def test_get_all_returns_every_document(any_store):
    for record_id in ("A", "B", "C"):
        await any_store.upsert("products", record_id, {"id": record_id})
    assert sorted(d["id"] for d in await any_store.get_all("products")) == ["A", "B", "C"]


@pytest.mark.asyncio
async def test_memory_store_returns_copies():
    store = InMemoryStore()
    await store.upsert("products", "A", {"id": "A", "images": ["x"]})
    doc = await store.get("products", "A")
    doc["images"].append("y")
    assert (await store.get("products", "A"))["images"] == ["x"]


def test_sqlite_store_pings(sqlite_store):
    assert sqlite_store.ping() is True


def test_normalize_connection_string():
    assert _normalize_connection_string("psql 'postgresql://u:p@h/db'") == "postgresql://u:p@h/db"
    assert _normalize_connection_string('  "postgresql://h/db" ') == "postgresql://h/db"
