"""
Document store over sqlite.

Named collections of schemaless JSON documents with:
  - add / set / update (partial merge) / delete of single documents
  - atomic write batches (all-or-nothing, at most MAX_BATCH_WRITES writes)
  - field sentinels resolved at write time: server_timestamp(), increment(n)
  - named counters with atomic increment-and-read (next_sequence)
  - one CollectionFeed per collection, fanning snapshots out to listeners

Single-document writes are last-write-wins on the whole field set they touch.
Listeners are notified after a commit; a listener never sees a partial batch.
"""

from __future__ import annotations

import copy
import json
import logging
import operator
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Iterable, Iterator, Optional

from academy.db import q, x
from academy.errors import BatchTooLarge, DocumentNotFound, StoreError
from academy.utils import iso_now

logger = logging.getLogger(__name__)

MAX_BATCH_WRITES = 500

Filter = tuple[str, str, Any]
Listener = Callable[[list[dict]], None]


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "server_timestamp()"


_SERVER_TIMESTAMP = _ServerTimestamp()


def server_timestamp() -> _ServerTimestamp:
    """Placeholder replaced by the commit time of the write that carries it."""
    return _SERVER_TIMESTAMP


@dataclass(frozen=True)
class Increment:
    n: float


def increment(n: float) -> Increment:
    """Field-level atomic delta; a missing field counts as 0."""
    return Increment(n)


_OPS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda a, b: a in b,
}


def _matches(doc: dict, where: Iterable[Filter]) -> bool:
    for fld, op, value in where:
        if op not in _OPS:
            raise ValueError(f"Unsupported filter operator: {op!r}")
        # Documents without the field never match (like the hosted stores).
        if fld not in doc:
            return False
        try:
            if not _OPS[op](doc[fld], value):
                return False
        except TypeError:
            return False
    return True


def apply_query(
    docs: Iterable[dict],
    where: Optional[Iterable[Filter]] = None,
    order_by: Optional[str] = None,
    descending: bool = False,
) -> list[dict]:
    out = [d for d in docs if _matches(d, where or ())]
    if order_by:
        out.sort(key=lambda d: (d.get(order_by) is None, d.get(order_by)), reverse=descending)
    return [copy.deepcopy(d) for d in out]


def _json_default(v: Any) -> Any:
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    raise TypeError(f"Value of type {type(v).__name__} is not storable.")


def _resolve(fields: dict, current: Optional[dict], now: str) -> dict:
    out: dict[str, Any] = {}
    for k, v in fields.items():
        if k == "id":
            continue
        if v is _SERVER_TIMESTAMP:
            out[k] = now
        elif isinstance(v, Increment):
            base = (current or {}).get(k) or 0
            out[k] = base + v.n
        else:
            out[k] = copy.deepcopy(v)
    return out


@dataclass
class _Write:
    kind: str  # set / update / delete
    collection: str
    doc_id: str
    data: dict = field(default_factory=dict)
    merge: bool = False


class WriteBatch:
    """
    Collects writes and applies them in one sqlite transaction.

    Usable as a context manager: commits on a clean exit, discards on error.
    """

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self._writes: list[_Write] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._writes)

    def set(self, collection: str, doc_id: str, data: dict, *, merge: bool = False) -> "WriteBatch":
        self._writes.append(_Write("set", collection, str(doc_id), dict(data), merge))
        return self

    def update(self, collection: str, doc_id: str, fields: dict) -> "WriteBatch":
        self._writes.append(_Write("update", collection, str(doc_id), dict(fields)))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._writes.append(_Write("delete", collection, str(doc_id)))
        return self

    def commit(self) -> None:
        if self._committed:
            raise StoreError("Batch already committed.")
        self._committed = True
        self._store._commit(self._writes)

    def __enter__(self) -> "WriteBatch":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None and not self._committed:
            self.commit()


class Subscription:
    def __init__(self, feed: "CollectionFeed", token: int):
        self._feed = feed
        self._token = token
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._feed._remove(self._token)
            self.active = False


@dataclass
class _Listener:
    callback: Listener
    where: tuple[Filter, ...]
    order_by: Optional[str]
    descending: bool


class CollectionFeed:
    """
    The single live view of one collection.

    Keeps the latest snapshot in memory and hands a filtered copy to every
    registered listener after each committed write to the collection.
    """

    def __init__(self, store: "DocumentStore", collection: str):
        self._store = store
        self.collection = collection
        self._listeners: dict[int, _Listener] = {}
        self._next_token = 0
        self._docs: Optional[list[dict]] = None
        self._lock = threading.RLock()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def snapshot(
        self,
        where: Optional[Iterable[Filter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]:
        with self._lock:
            if self._docs is None:
                self._docs = self._store._load_collection(self.collection)
            return apply_query(self._docs, where, order_by, descending)

    def subscribe(
        self,
        callback: Listener,
        *,
        where: Optional[Iterable[Filter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Subscription:
        listener = _Listener(callback, tuple(where or ()), order_by, descending)
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners[token] = listener
            self._deliver(listener, self.snapshot(listener.where, order_by, descending))
        return Subscription(self, token)

    def refresh(self) -> None:
        with self._lock:
            self._docs = self._store._load_collection(self.collection)
            for listener in list(self._listeners.values()):
                self._deliver(
                    listener,
                    apply_query(self._docs, listener.where, listener.order_by, listener.descending),
                )

    def _remove(self, token: int) -> None:
        with self._lock:
            self._listeners.pop(token, None)

    def _deliver(self, listener: _Listener, docs: list[dict]) -> None:
        try:
            listener.callback(docs)
        except Exception:
            logger.exception("Listener on '%s' failed", self.collection)


class DocumentStore:
    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn
        self._lock = threading.RLock()
        self._feeds: dict[str, CollectionFeed] = {}

    # -------------------------
    # Reads
    # -------------------------

    def _load_collection(self, collection: str) -> list[dict]:
        with self._lock:
            rows = q(
                self._conn,
                "SELECT id, data FROM documents WHERE collection=? ORDER BY created_at, rowid",
                (collection,),
            )
        return [self._row_to_doc(r) for r in rows]

    @staticmethod
    def _row_to_doc(row: sqlite3.Row) -> dict:
        doc = json.loads(row["data"])
        doc["id"] = str(row["id"])
        return doc

    def _load_one(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            rows = q(
                self._conn,
                "SELECT id, data FROM documents WHERE collection=? AND id=?",
                (collection, str(doc_id)),
            )
        return self._row_to_doc(rows[0]) if rows else None

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        return self._load_one(collection, doc_id)

    def query(
        self,
        collection: str,
        where: Optional[Iterable[Filter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]:
        return apply_query(self._load_collection(collection), where, order_by, descending)

    def count(self, collection: str, where: Optional[Iterable[Filter]] = None) -> int:
        return len(self.query(collection, where))

    # -------------------------
    # Writes
    # -------------------------

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex[:20]

    def add(self, collection: str, data: dict) -> str:
        doc_id = self.new_id()
        self._commit([_Write("set", collection, doc_id, dict(data))])
        return doc_id

    def set(self, collection: str, doc_id: str, data: dict, *, merge: bool = False) -> None:
        self._commit([_Write("set", collection, str(doc_id), dict(data), merge)])

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        self._commit([_Write("update", collection, str(doc_id), dict(fields))])

    def delete(self, collection: str, doc_id: str) -> None:
        self._commit([_Write("delete", collection, str(doc_id))])

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def clear(self, *collections: str) -> None:
        try:
            with self._transaction():
                for c in collections:
                    x(self._conn, "DELETE FROM documents WHERE collection=?", (c,))
        except sqlite3.Error as e:
            logger.exception("Clearing %s failed", ", ".join(collections))
            raise StoreError(str(e)) from e
        self._notify(set(collections))

    def reset_counters(self, prefix: str = "") -> None:
        try:
            with self._transaction():
                x(self._conn, "DELETE FROM counters WHERE name LIKE ?", (prefix + "%",))
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    def next_sequence(self, name: str, *, seed: Optional[Callable[[], int]] = None) -> int:
        """
        Increment-and-read of a named counter inside one write transaction.

        When the counter does not exist yet it starts from seed() (default 0),
        so sequences can take over from records written before the counter.
        """
        try:
            with self._transaction():
                rows = q(self._conn, "SELECT value FROM counters WHERE name=?", (name,))
                if rows:
                    value = int(rows[0]["value"]) + 1
                else:
                    value = (int(seed()) if seed else 0) + 1
                x(
                    self._conn,
                    """
                    INSERT INTO counters (name, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(name) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                    """,
                    (name, int(value), iso_now()),
                )
        except sqlite3.Error as e:
            logger.exception("Sequence allocation for '%s' failed", name)
            raise StoreError(str(e)) from e
        logger.debug("Allocated %s=%s", name, value)
        return value

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        with self._lock:
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                yield
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            else:
                self._conn.execute("COMMIT")

    def _apply(self, w: _Write, now: str) -> None:
        if w.kind == "delete":
            x(self._conn, "DELETE FROM documents WHERE collection=? AND id=?", (w.collection, w.doc_id))
            return

        current = self._load_one(w.collection, w.doc_id)
        if w.kind == "update":
            if current is None:
                raise DocumentNotFound(w.collection, w.doc_id)
            current.pop("id", None)
            data = {**current, **_resolve(w.data, current, now)}
        elif w.merge and current is not None:
            current.pop("id", None)
            data = {**current, **_resolve(w.data, current, now)}
        else:
            data = _resolve(w.data, None, now)

        try:
            payload = json.dumps(data, default=_json_default)
        except TypeError as e:
            raise StoreError(str(e)) from e

        x(
            self._conn,
            """
            INSERT INTO documents (collection, id, data, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(collection, id) DO UPDATE SET data=excluded.data, updated_at=excluded.updated_at
            """,
            (w.collection, w.doc_id, payload, now, now),
        )

    def _commit(self, writes: list[_Write]) -> None:
        if not writes:
            return
        if len(writes) > MAX_BATCH_WRITES:
            raise BatchTooLarge(f"A batch holds at most {MAX_BATCH_WRITES} writes (got {len(writes)}).")

        now = iso_now()
        try:
            with self._transaction():
                for w in writes:
                    self._apply(w, now)
        except sqlite3.Error as e:
            logger.exception("Commit of %d write(s) failed", len(writes))
            raise StoreError(str(e)) from e

        self._notify({w.collection for w in writes})

    # -------------------------
    # Live feeds
    # -------------------------

    def feed(self, collection: str) -> CollectionFeed:
        with self._lock:
            if collection not in self._feeds:
                self._feeds[collection] = CollectionFeed(self, collection)
            return self._feeds[collection]

    def subscribe(
        self,
        collection: str,
        callback: Listener,
        *,
        where: Optional[Iterable[Filter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> Subscription:
        return self.feed(collection).subscribe(callback, where=where, order_by=order_by, descending=descending)

    def _notify(self, collections: set[str]) -> None:
        for c in sorted(collections):
            feed = self._feeds.get(c)
            if feed is not None:
                feed.refresh()
