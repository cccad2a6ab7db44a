"""
app/db/store.py

Purpose: Flat-record store used by every service

- One interface over named collections of plain dict records (load, find, insert, upsert, delete)
- MongoRecordStore: motor-backed, used in staging/production
- MemoryRecordStore: process-local, used for local runs and tests
- load() never raises; it logs and returns an empty list
"""

import asyncio
import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

Query = Dict[str, Any]
Record = Dict[str, Any]


class RecordStore(ABC):
    """Named collections of flat records."""

    @abstractmethod
    async def load(self, collection: str) -> List[Record]:
        """Returns every record in the collection, or [] when the read fails."""

    @abstractmethod
    async def save(self, collection: str, records: List[Record]) -> None:
        """Replaces the whole collection with the given records."""

    @abstractmethod
    async def find_one(self, collection: str, query: Query) -> Optional[Record]:
        ...

    @abstractmethod
    async def find(
        self,
        collection: str,
        query: Query,
        sort: Optional[Tuple[str, int]] = None,
        limit: Optional[int] = None,
    ) -> List[Record]:
        ...

    @abstractmethod
    async def insert(self, collection: str, record: Record) -> None:
        ...

    @abstractmethod
    async def upsert(self, collection: str, query: Query, fields: Record) -> None:
        """Sets fields on the first record matching query, creating it if missing."""

    @abstractmethod
    async def delete(self, collection: str, query: Query) -> int:
        """Removes every record matching query; returns how many were removed."""

    async def exists(self, collection: str, query: Query) -> bool:
        return await self.find_one(collection, query) is not None


class MongoRecordStore(RecordStore):
    """RecordStore over the motor database opened by app.db.mongo."""

    def _collection(self, name: str):
        from app.db.mongo import get_collection
        return get_collection(name)

    async def load(self, collection: str) -> List[Record]:
        try:
            cursor = self._collection(collection).find({}, {"_id": 0})
            return await cursor.to_list(length=None)
        except Exception as e:
            logger.error(f"❌ Failed to load collection '{collection}': {e}")
            return []

    async def save(self, collection: str, records: List[Record]) -> None:
        coll = self._collection(collection)
        await coll.delete_many({})
        if records:
            await coll.insert_many([dict(r) for r in records])

    async def find_one(self, collection: str, query: Query) -> Optional[Record]:
        return await self._collection(collection).find_one(query, {"_id": 0})

    async def find(self, collection, query, sort=None, limit=None):
        cursor = self._collection(collection).find(query, {"_id": 0})
        if sort:
            cursor = cursor.sort(sort[0], sort[1])
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=limit)

    async def insert(self, collection: str, record: Record) -> None:
        # insert_one mutates its argument with an _id
        await self._collection(collection).insert_one(dict(record))

    async def upsert(self, collection: str, query: Query, fields: Record) -> None:
        await self._collection(collection).update_one(
            query,
            {"$set": fields},
            upsert=True
        )

    async def delete(self, collection: str, query: Query) -> int:
        result = await self._collection(collection).delete_many(query)
        return result.deleted_count


class MemoryRecordStore(RecordStore):
    """
    In-process RecordStore.

    Queries are equality matches on top-level fields.
    """

    def __init__(self, seed: Optional[Dict[str, List[Record]]] = None):
        self._collections: Dict[str, List[Record]] = {}
        self._lock = asyncio.Lock()
        for name, records in (seed or {}).items():
            self._collections[name] = [copy.deepcopy(r) for r in records]

    @staticmethod
    def _matches(record: Record, query: Query) -> bool:
        return all(record.get(key) == value for key, value in query.items())

    async def load(self, collection: str) -> List[Record]:
        return [copy.deepcopy(r) for r in self._collections.get(collection, [])]

    async def save(self, collection: str, records: List[Record]) -> None:
        async with self._lock:
            self._collections[collection] = [copy.deepcopy(r) for r in records]

    async def find_one(self, collection: str, query: Query) -> Optional[Record]:
        for record in self._collections.get(collection, []):
            if self._matches(record, query):
                return copy.deepcopy(record)
        return None

    async def find(self, collection, query, sort=None, limit=None):
        found = [
            copy.deepcopy(r)
            for r in self._collections.get(collection, [])
            if self._matches(r, query)
        ]
        if sort:
            key, direction = sort
            found.sort(key=lambda r: (r.get(key) is None, r.get(key)), reverse=direction < 0)
        if limit:
            found = found[:limit]
        return found

    async def insert(self, collection: str, record: Record) -> None:
        async with self._lock:
            self._collections.setdefault(collection, []).append(copy.deepcopy(record))

    async def upsert(self, collection: str, query: Query, fields: Record) -> None:
        async with self._lock:
            records = self._collections.setdefault(collection, [])
            for record in records:
                if self._matches(record, query):
                    record.update(copy.deepcopy(fields))
                    return
            created = dict(query)
            created.update(copy.deepcopy(fields))
            records.append(created)

    async def delete(self, collection: str, query: Query) -> int:
        async with self._lock:
            records = self._collections.get(collection, [])
            kept = [r for r in records if not self._matches(r, query)]
            self._collections[collection] = kept
            return len(records) - len(kept)


_store: Optional[RecordStore] = None


def get_record_store() -> RecordStore:
    """
    Returns the configured record store (singleton).
    """
    global _store
    if _store is None:
        if settings.STORE_BACKEND == "memory":
            logger.warning("⚠️ Using in-memory record store; data is lost on restart")
            _store = MemoryRecordStore()
        else:
            _store = MongoRecordStore()
    return _store
