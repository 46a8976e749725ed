"""Document store abstraction.

The progression engine never talks to a database directly.  It goes
through ``DocumentStore``, which offers exactly the primitives the
engine's guarantees depend on:

  conditional_create: create-if-absent, reports whether it won
  atomic_increment: add to a numeric field without read-modify-write
  transactional_update: read a fixed key set, run a mutator, commit all
    of its writes or none of them

Documents are plain JSON-compatible dicts addressed by slash-separated
keys (``progress/{student}/{course}``).  The first path segment is the
collection.

Two backends satisfy the protocol: ``InMemoryDocumentStore`` here (dev
and tests) and ``PgDocumentStore`` in pg_store.py (PostgreSQL).
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Callable, Iterable
from typing import Any, Protocol, TypeVar, runtime_checkable

Document = dict[str, Any]
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Key layout
# ---------------------------------------------------------------------------


def course_key(course_id: str) -> str:
    return f"courses/{course_id}"


def week_key(course_id: str, week_number: int) -> str:
    # Zero-padded so prefix listings come back in week order.
    return f"weeks/{course_id}/{week_number:03d}"


def progress_key(student_id: str, course_id: str) -> str:
    return f"progress/{student_id}/{course_id}"


def submission_key(student_id: str, course_id: str, week_number: int) -> str:
    return f"submissions/{student_id}/{course_id}/{week_number:03d}"


def mission_key(student_id: str, date_key: str) -> str:
    return f"missions/{student_id}/{date_key}"


def user_key(student_id: str) -> str:
    return f"users/{student_id}"


def collection_of(key: str) -> str:
    return key.split("/", 1)[0]


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class Transaction:
    """Buffered view over a locked key set.

    Reads see the transaction's own earlier writes.  Nothing reaches the
    store until the mutator returns; if it raises, the buffer is thrown
    away.  Touching a key outside the declared set is a programming
    error and raises KeyError.
    """

    def __init__(self, snapshot: dict[str, Document | None]) -> None:
        self._snapshot = snapshot
        self._writes: dict[str, Document] = {}

    def _check(self, key: str) -> None:
        if key not in self._snapshot:
            raise KeyError(f"key {key!r} is not part of this transaction")

    def get(self, key: str) -> Document | None:
        self._check(key)
        doc = self._writes.get(key, self._snapshot[key])
        return copy.deepcopy(doc) if doc is not None else None

    def exists(self, key: str) -> bool:
        self._check(key)
        return key in self._writes or self._snapshot[key] is not None

    def set(self, key: str, doc: Document) -> None:
        self._check(key)
        self._writes[key] = copy.deepcopy(doc)

    def create(self, key: str, doc: Document) -> bool:
        if self.exists(key):
            return False
        self.set(key, doc)
        return True

    def increment(self, key: str, field: str, delta: int) -> int:
        doc = self.get(key)
        if doc is None:
            raise KeyError(f"cannot increment {field!r} on missing document {key!r}")
        doc[field] = int(doc.get(field) or 0) + delta
        self._writes[key] = doc
        return doc[field]

    @property
    def writes(self) -> dict[str, Document]:
        return self._writes


Mutator = Callable[[Transaction], T]


@runtime_checkable
class DocumentStore(Protocol):
    async def get(self, key: str) -> Document | None: ...

    async def list_prefix(self, prefix: str) -> list[tuple[str, Document]]:
        """All documents whose key starts with ``prefix``, in key order."""
        ...

    async def conditional_create(self, key: str, doc: Document) -> bool:
        """Create ``key`` only if absent.  True if this call created it."""
        ...

    async def atomic_increment(self, key: str, field: str, delta: int) -> int:
        """Add ``delta`` to a numeric field; returns the new value."""
        ...

    async def transactional_update(
        self, keys: Iterable[str], mutator: Mutator[T]
    ) -> T: ...

    async def ping(self) -> bool: ...


class InMemoryDocumentStore:
    """Dict-backed store for dev and tests.

    Mutators are synchronous, so a transaction never yields to the event
    loop between its read and its commit.  The threading lock covers the
    TestClient, which drives the app from a portal thread.
    """

    def __init__(self) -> None:
        self._docs: dict[str, Document] = {}
        self._lock = threading.Lock()

    async def get(self, key: str) -> Document | None:
        with self._lock:
            doc = self._docs.get(key)
            return copy.deepcopy(doc) if doc is not None else None

    async def list_prefix(self, prefix: str) -> list[tuple[str, Document]]:
        with self._lock:
            return [
                (k, copy.deepcopy(v))
                for k, v in sorted(self._docs.items())
                if k.startswith(prefix)
            ]

    async def conditional_create(self, key: str, doc: Document) -> bool:
        with self._lock:
            if key in self._docs:
                return False
            self._docs[key] = copy.deepcopy(doc)
            return True

    async def atomic_increment(self, key: str, field: str, delta: int) -> int:
        with self._lock:
            doc = self._docs.get(key)
            if doc is None:
                raise KeyError(f"cannot increment {field!r} on missing document {key!r}")
            doc[field] = int(doc.get(field) or 0) + delta
            return doc[field]

    async def transactional_update(self, keys: Iterable[str], mutator: Mutator[T]) -> T:
        with self._lock:
            snapshot = {
                key: copy.deepcopy(self._docs[key]) if key in self._docs else None
                for key in keys
            }
            txn = Transaction(snapshot)
            result = mutator(txn)
            self._docs.update(txn.writes)
            return result

    async def ping(self) -> bool:
        return True

    def clear(self) -> None:
        with self._lock:
            self._docs.clear()
