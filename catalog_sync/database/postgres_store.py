"""
Real Postgres-backed document store for production when DATABASE_URL is set.
Implements the same interface as catalog_sync.database.memory (in-memory stub).

Documents live in one table keyed by (collection, id) with a JSON body; each
write is its own transaction, there is no cross-document transaction.
"""

from __future__ import annotations

import asyncio
import re
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

from sqlalchemy import create_engine, delete, select, text
from sqlalchemy.orm import Session, sessionmaker

from catalog_sync.database.models import Base, CatalogDocument
from catalog_sync.integrations.contracts.interfaces import StoreAdapter


def _normalize_connection_string(s: str) -> str:
    """Strip common mistakes: 'psql \'...\'', extra quotes, whitespace."""
    s = s.strip()
    if re.match(r"^psql\s+", s, re.IGNORECASE):
        s = re.sub(r"^psql\s+", "", s, flags=re.IGNORECASE).strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in ("'", '"'):
        s = s[1:-1].strip()
    return s


class PostgresStore(StoreAdapter):
    """
    Document store using SQLAlchemy. Blocking calls are offloaded to a worker
    thread so the event loop keeps serving other requests.
    """

    def __init__(self, connection_string: str) -> None:
        connection_string = _normalize_connection_string(connection_string)
        engine_kwargs: Dict[str, Any] = {"pool_pre_ping": True}
        if not connection_string.startswith("sqlite"):
            engine_kwargs.update(pool_size=5, max_overflow=10)
        self.engine = create_engine(connection_string, **engine_kwargs)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine, expire_on_commit=False)

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            return False

    @contextmanager
    def _session(self) -> Iterator[Session]:
        s = self.SessionLocal()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    # ------------------------------------------------------------------ #
    # Blocking implementations
    # ------------------------------------------------------------------ #
    def _list_ids(self, collection: str) -> List[str]:
        with self._session() as s:
            stmt = select(CatalogDocument.id).where(CatalogDocument.collection == collection)
            return list(s.execute(stmt).scalars())

    def _upsert(self, collection: str, record_id: str, record: Dict[str, Any]) -> None:
        with self._session() as s:
            s.merge(CatalogDocument(collection=collection, id=record_id, data=record))

    def _delete(self, collection: str, record_id: str) -> None:
        with self._session() as s:
            s.execute(
                delete(CatalogDocument).where(
                    CatalogDocument.collection == collection, CatalogDocument.id == record_id
                )
            )

    def _get_all(self, collection: str) -> List[Dict[str, Any]]:
        with self._session() as s:
            stmt = select(CatalogDocument.data).where(CatalogDocument.collection == collection)
            return [dict(data) for data in s.execute(stmt).scalars()]

    def _get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._session() as s:
            doc = s.get(CatalogDocument, (collection, record_id))
            return dict(doc.data) if doc is not None else None

    # ------------------------------------------------------------------ #
    # StoreAdapter
    # ------------------------------------------------------------------ #
    async def list_ids(self, collection: str) -> List[str]:
        return await asyncio.to_thread(self._list_ids, collection)

    async def upsert(self, collection: str, record_id: str, record: Mapping[str, Any]) -> None:
        await asyncio.to_thread(self._upsert, collection, record_id, dict(record))

    async def delete(self, collection: str, record_id: str) -> None:
        await asyncio.to_thread(self._delete, collection, record_id)

    async def get_all(self, collection: str) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._get_all, collection)

    async def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._get, collection, record_id)
