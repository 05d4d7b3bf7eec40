"""
In-memory stand-in for the Firestore clients, for workflow tests.

Covers the surface the ODM touches: collection/document references,
``where(filter=FieldFilter(...))``, ``order_by``, ``limit``/``offset``,
``stream``, the ``ArrayUnion``/``ArrayRemove``/``Increment``
transforms, the server timestamp sentinel and ``on_snapshot`` listeners.
Listeners are called synchronously on every write to their collection.
"""

import copy
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from google.api_core.exceptions import NotFound
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.transforms import (
    ArrayRemove,
    ArrayUnion,
    Increment,
    Sentinel,
)

_MISSING = object()


class FakeStore:
    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.watches: List["FakeWatch"] = []
        self.writes: List[tuple] = []
        self._ids = itertools.count(1)
        self._ticks = itertools.count(1)
        self._epoch = datetime(2024, 1, 1, tzinfo=timezone.utc)

    # -- helpers -----------------------------------------------------------
    def new_id(self) -> str:
        return f"doc{next(self._ids)}"

    def now(self) -> datetime:
        return self._epoch + timedelta(seconds=next(self._ticks))

    def documents(self, path: str) -> Dict[str, Dict[str, Any]]:
        return self.collections.setdefault(path, {})

    def data(self, path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        return self.collections.get(path, {}).get(doc_id)

    def _resolve(self, value):
        if isinstance(value, Sentinel):
            return self.now()
        if isinstance(value, dict):
            return {k: self._resolve(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._resolve(v) for v in value]
        return value

    # -- writes ------------------------------------------------------------
    def set(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.documents(path)[doc_id] = copy.deepcopy(self._resolve(data))
        self.writes.append(("set", path, doc_id))
        self._notify(path)

    def update(self, path: str, doc_id: str, updates: Dict[str, Any]) -> None:
        current = self.data(path, doc_id)
        if current is None:
            raise NotFound(f"No document to update: {path}/{doc_id}")
        for key, value in updates.items():
            *parents, leaf = key.split(".")
            target = current
            for part in parents:
                target = target.setdefault(part, {})
            existing = target.get(leaf, _MISSING)
            target[leaf] = self._transform(existing, value)
        self.writes.append(("update", path, doc_id))
        self._notify(path)

    def _transform(self, existing, value):
        if isinstance(value, ArrayUnion):
            result = list(existing) if existing is not _MISSING else []
            result.extend(v for v in value.values if v not in result)
            return result
        if isinstance(value, ArrayRemove):
            result = list(existing) if existing is not _MISSING else []
            return [v for v in result if v not in value.values]
        if isinstance(value, Increment):
            base = existing if existing is not _MISSING else 0
            return base + value.value
        return copy.deepcopy(self._resolve(value))

    def delete(self, path: str, doc_id: str) -> None:
        self.documents(path).pop(doc_id, None)
        self.writes.append(("delete", path, doc_id))
        self._notify(path)

    def _notify(self, path: str) -> None:
        for watch in list(self.watches):
            if watch.query.path == path:
                watch.fire()


def _lookup(data: Dict[str, Any], doc_id: str, field_path: str):
    if field_path == "__name__":
        return doc_id
    value: Any = data
    for part in field_path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _matches(value, op: str, operand) -> bool:
    if value is _MISSING:
        return False
    if op == "==":
        return value == operand
    if op == "!=":
        return value != operand
    if op == "<":
        return value < operand
    if op == "<=":
        return value <= operand
    if op == ">":
        return value > operand
    if op == ">=":
        return value >= operand
    if op == "in":
        return value in operand
    if op == "not-in":
        return value not in operand
    if op == "array_contains":
        return isinstance(value, list) and operand in value
    if op == "array_contains_any":
        return isinstance(value, list) and any(v in value for v in operand)
    raise ValueError(f"Unsupported operator {op}")


class FakeSnapshot:
    def __init__(self, reference: "FakeDocumentRef", data: Optional[Dict[str, Any]]):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._data)


class FakeDocumentRef:
    def __init__(self, store: FakeStore, path: str, doc_id: str):
        self._store = store
        self.parent_path = path
        self.id = doc_id

    @property
    def path(self) -> str:
        return f"{self.parent_path}/{self.id}"

    async def get(self) -> FakeSnapshot:
        return FakeSnapshot(self, self._store.data(self.parent_path, self.id))

    async def set(self, data: Dict[str, Any]) -> None:
        self._store.set(self.parent_path, self.id, data)

    async def update(self, data: Dict[str, Any]) -> None:
        self._store.update(self.parent_path, self.id, data)

    async def delete(self) -> None:
        self._store.delete(self.parent_path, self.id)


class FakeWatch:
    def __init__(self, query: "FakeQuery", callback: Callable):
        self.query = query
        self.callback = callback
        self.active = True

    def fire(self) -> None:
        self.callback(self.query.snapshots(), [], None)

    def unsubscribe(self) -> None:
        self.active = False
        if self in self.query._store.watches:
            self.query._store.watches.remove(self)


class FakeQuery:
    def __init__(self, store: FakeStore, path: str, filters=(), orders=(), limit=None, offset=None):
        self._store = store
        self.path = path
        self.filters = list(filters)
        self.orders = list(orders)
        self._limit = limit
        self._offset = offset

    def _copy(self, **changes) -> "FakeQuery":
        params = dict(
            filters=self.filters, orders=self.orders, limit=self._limit, offset=self._offset
        )
        params.update(changes)
        return FakeQuery(self._store, self.path, **params)

    def where(self, *, filter: FieldFilter) -> "FakeQuery":
        return self._copy(filters=[*self.filters, filter])

    def order_by(self, field_path: str, direction: str = "ASCENDING") -> "FakeQuery":
        return self._copy(orders=[*self.orders, (field_path, str(direction))])

    def limit(self, count: int) -> "FakeQuery":
        return self._copy(limit=count)

    def offset(self, num_to_skip: int) -> "FakeQuery":
        return self._copy(offset=num_to_skip)

    def select(self, field_paths) -> "FakeQuery":
        return self

    def snapshots(self) -> List[FakeSnapshot]:
        rows = []
        for doc_id, data in self._store.documents(self.path).items():
            if all(
                _matches(_lookup(data, doc_id, f.field_path), f.op_string, f.value)
                for f in self.filters
            ):
                rows.append((doc_id, data))
        for field_path, direction in reversed(self.orders):
            rows = [r for r in rows if _lookup(r[1], r[0], field_path) is not _MISSING]
            rows.sort(
                key=lambda r: _lookup(r[1], r[0], field_path),
                reverse=direction == "DESCENDING",
            )
        if self._offset:
            rows = rows[self._offset:]
        if self._limit is not None:
            rows = rows[: self._limit]
        return [
            FakeSnapshot(FakeDocumentRef(self._store, self.path, doc_id), data)
            for doc_id, data in rows
        ]

    async def stream(self):
        for snapshot in self.snapshots():
            yield snapshot

    async def get(self) -> List[FakeSnapshot]:
        return self.snapshots()

    def on_snapshot(self, callback: Callable) -> FakeWatch:
        watch = FakeWatch(self, callback)
        self._store.watches.append(watch)
        watch.fire()
        return watch


class FakeCollection(FakeQuery):
    def __init__(self, store: FakeStore, path: str):
        super().__init__(store, path)

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    def document(self, document_id: Optional[str] = None) -> FakeDocumentRef:
        return FakeDocumentRef(self._store, self.path, document_id or self._store.new_id())


class FakeClient:
    """Used for both the async client and the listener client."""

    def __init__(self, store: FakeStore):
        self.store = store

    def collection(self, path: str) -> FakeCollection:
        return FakeCollection(self.store, path.strip("/"))
