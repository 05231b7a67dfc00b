"""
Document store abstraction for Firestore and an in-memory test implementation.
"""

from __future__ import annotations

import copy
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Optional, Protocol, TypeVar

from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter

from shared.errors import NotFoundError

T = TypeVar("T")

# (field_path, operator, value); operators "==" and "in" are supported.
Filter = tuple[str, str, Any]


@dataclass
class DocumentRecord:
    id: str
    data: dict


class WriteBatch(Protocol):
    def set(self, path: str, data: dict, *, merge: bool = False) -> None:
        ...

    def update(self, path: str, data: dict) -> None:
        ...

    def delete(self, path: str) -> None:
        ...

    def commit(self) -> None:
        ...


class Transaction(Protocol):
    def get(self, path: str) -> Optional[dict]:
        ...

    def query(
        self,
        collection: str,
        *,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[DocumentRecord]:
        ...

    def set(self, path: str, data: dict, *, merge: bool = False) -> None:
        ...

    def update(self, path: str, data: dict) -> None:
        ...

    def delete(self, path: str) -> None:
        ...


class DocumentStore(Protocol):
    """Operations the services need from the document database."""

    def get(self, path: str) -> Optional[dict]:
        ...

    def set(self, path: str, data: dict, *, merge: bool = False) -> None:
        ...

    def update(self, path: str, data: dict) -> None:
        ...

    def delete(self, path: str) -> None:
        ...

    def new_id(self, collection: str) -> str:
        ...

    def query(
        self,
        collection: str,
        *,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[DocumentRecord]:
        ...

    def batch(self) -> WriteBatch:
        ...

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        ...


def doc_path(*segments: str) -> str:
    return "/".join(segments)


def _split_path(path: str) -> tuple[str, str]:
    collection, _, doc_id = path.rpartition("/")
    if not collection or not doc_id:
        raise ValueError(f"Not a document path: {path}")
    return collection, doc_id


def _resolve_sentinels(value: Any, now: datetime) -> Any:
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, dict):
        return {k: _resolve_sentinels(v, now) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_sentinels(v, now) for v in value]
    return value


def _deep_merge(target: dict, source: dict) -> dict:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value
    return target


def _get_field(data: dict, field_path: str) -> Any:
    current: Any = data
    for part in field_path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _set_field(data: dict, field_path: str, value: Any) -> None:
    parts = field_path.split(".")
    current = data
    for part in parts[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    current[parts[-1]] = value


class _Missing:
    pass


_MISSING = _Missing()


def _matches(data: dict, filters: Iterable[Filter]) -> bool:
    for field_path, op, expected in filters:
        actual = _get_field(data, field_path)
        if op == "==":
            if actual is _MISSING or actual != expected:
                return False
        elif op == "in":
            if actual is _MISSING or actual not in expected:
                return False
        else:
            raise ValueError(f"Unsupported filter operator: {op}")
    return True


def _sort_value(value: Any) -> tuple:
    # Firestore orders null < numbers < strings; mixed types are rare here.
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, (int, float)):
        return (2, value)
    if isinstance(value, datetime):
        return (3, value.timestamp())
    return (4, str(value))


class InMemoryDocumentStore:
    """Dict-backed document store for development and tests."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self._lock = threading.RLock()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.collections.clear()

    def get(self, path: str) -> Optional[dict]:
        collection, doc_id = _split_path(path)
        with self._lock:
            data = self.collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(data) if data is not None else None

    def set(self, path: str, data: dict, *, merge: bool = False) -> None:
        collection, doc_id = _split_path(path)
        now = datetime.now(timezone.utc)
        payload = _resolve_sentinels(copy.deepcopy(data), now)
        with self._lock:
            docs = self.collections.setdefault(collection, {})
            if merge and doc_id in docs:
                _deep_merge(docs[doc_id], payload)
            else:
                docs[doc_id] = payload

    def update(self, path: str, data: dict) -> None:
        collection, doc_id = _split_path(path)
        now = datetime.now(timezone.utc)
        with self._lock:
            existing = self.collections.get(collection, {}).get(doc_id)
            if existing is None:
                raise NotFoundError(f"No document to update: {path}")
            for field_path, value in data.items():
                _set_field(
                    existing, field_path, _resolve_sentinels(copy.deepcopy(value), now)
                )

    def delete(self, path: str) -> None:
        collection, doc_id = _split_path(path)
        with self._lock:
            self.collections.get(collection, {}).pop(doc_id, None)

    def new_id(self, collection: str) -> str:
        return uuid.uuid4().hex[:20]

    def query(
        self,
        collection: str,
        *,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[DocumentRecord]:
        filters = list(filters)
        with self._lock:
            docs = list(self.collections.get(collection, {}).items())
            matched = [
                DocumentRecord(id=doc_id, data=copy.deepcopy(data))
                for doc_id, data in docs
                if _matches(data, filters)
            ]
        if order_by:
            # Documents without the ordered field are excluded, as in Firestore.
            matched = [
                record
                for record in matched
                if _get_field(record.data, order_by) is not _MISSING
            ]
            matched.sort(
                key=lambda record: _sort_value(_get_field(record.data, order_by)),
                reverse=descending,
            )
        if limit is not None:
            matched = matched[:limit]
        return matched

    def batch(self) -> "InMemoryWriteBatch":
        return InMemoryWriteBatch(self)

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        with self._lock:
            transaction = InMemoryTransaction(self)
            result = fn(transaction)
            transaction.commit()
            return result


class InMemoryWriteBatch:
    def __init__(self, store: InMemoryDocumentStore):
        self._store = store
        self._writes: list[tuple[str, str, Optional[dict], bool]] = []

    def set(self, path: str, data: dict, *, merge: bool = False) -> None:
        self._writes.append(("set", path, data, merge))

    def update(self, path: str, data: dict) -> None:
        self._writes.append(("update", path, data, False))

    def delete(self, path: str) -> None:
        self._writes.append(("delete", path, None, False))

    def commit(self) -> None:
        store = self._store
        with store._lock:
            # All-or-nothing: updates on documents missing at that point of the
            # batch fail before any write.
            exists: dict[str, bool] = {}
            for op, path, _, _ in self._writes:
                if path not in exists:
                    exists[path] = store.get(path) is not None
                if op == "update" and not exists[path]:
                    raise NotFoundError(f"No document to update: {path}")
                exists[path] = op != "delete"
            for op, path, data, merge in self._writes:
                if op == "set":
                    store.set(path, data, merge=merge)
                elif op == "update":
                    store.update(path, data)
                else:
                    store.delete(path)
        self._writes = []


class InMemoryTransaction(InMemoryWriteBatch):
    """Reads go straight to the store; writes apply when the function returns."""

    def get(self, path: str) -> Optional[dict]:
        return self._store.get(path)

    def query(self, collection: str, **kwargs) -> list[DocumentRecord]:
        return self._store.query(collection, **kwargs)


def _build_query(client, collection: str, filters, order_by, descending, limit):
    from firebase_admin import firestore

    query = client.collection(collection)
    for field_path, op, value in filters:
        query = query.where(filter=FieldFilter(field_path, op, value))
    if order_by:
        direction = (
            firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
        )
        query = query.order_by(order_by, direction=direction)
    if limit is not None:
        query = query.limit(limit)
    return query


class FirestoreDocumentStore:
    """Firestore-backed implementation using the firebase_admin client."""

    def __init__(self, client=None):
        if client is None:
            from firebase_admin import firestore

            client = firestore.client()
        self.client = client

    def get(self, path: str) -> Optional[dict]:
        snapshot = self.client.document(path).get()
        return snapshot.to_dict() if snapshot.exists else None

    def set(self, path: str, data: dict, *, merge: bool = False) -> None:
        self.client.document(path).set(data, merge=merge)

    def update(self, path: str, data: dict) -> None:
        try:
            self.client.document(path).update(data)
        except google_exceptions.NotFound as e:
            raise NotFoundError(f"No document to update: {path}") from e

    def delete(self, path: str) -> None:
        self.client.document(path).delete()

    def new_id(self, collection: str) -> str:
        return self.client.collection(collection).document().id

    def query(
        self,
        collection: str,
        *,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[DocumentRecord]:
        query = _build_query(self.client, collection, filters, order_by, descending, limit)
        return [
            DocumentRecord(id=snapshot.id, data=snapshot.to_dict() or {})
            for snapshot in query.stream()
        ]

    def batch(self) -> "FirestoreWriteBatch":
        return FirestoreWriteBatch(self.client)

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        from firebase_admin import firestore

        client = self.client

        @firestore.transactional
        def _run(transaction):
            return fn(FirestoreTransaction(client, transaction))

        return _run(client.transaction())


class FirestoreWriteBatch:
    def __init__(self, client):
        self._client = client
        self._batch = client.batch()

    def set(self, path: str, data: dict, *, merge: bool = False) -> None:
        self._batch.set(self._client.document(path), data, merge=merge)

    def update(self, path: str, data: dict) -> None:
        self._batch.update(self._client.document(path), data)

    def delete(self, path: str) -> None:
        self._batch.delete(self._client.document(path))

    def commit(self) -> None:
        self._batch.commit()


class FirestoreTransaction:
    def __init__(self, client, transaction):
        self._client = client
        self._transaction = transaction

    def get(self, path: str) -> Optional[dict]:
        snapshot = self._client.document(path).get(transaction=self._transaction)
        return snapshot.to_dict() if snapshot.exists else None

    def query(
        self,
        collection: str,
        *,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[DocumentRecord]:
        query = _build_query(self._client, collection, filters, order_by, descending, limit)
        return [
            DocumentRecord(id=snapshot.id, data=snapshot.to_dict() or {})
            for snapshot in query.stream(transaction=self._transaction)
        ]

    def set(self, path: str, data: dict, *, merge: bool = False) -> None:
        self._transaction.set(self._client.document(path), data, merge=merge)

    def update(self, path: str, data: dict) -> None:
        self._transaction.update(self._client.document(path), data)

    def delete(self, path: str) -> None:
        self._transaction.delete(self._client.document(path))
