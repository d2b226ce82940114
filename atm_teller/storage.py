"""
Storage Backend Module

Durable home for the teller's three record kinds: customers, debts and the
session pointer. Each record is a small JSON document addressed by
(kind, key). Backends offer point reads and writes, a field-equality select,
and `atomic()` so one command's writes land together or not at all.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any, Tuple, Union
import sqlite3
import json
import threading
from pathlib import Path
from contextlib import contextmanager


RECORD_KINDS = ("customers", "debts", "session")


class StorageInterface(ABC):
    """Abstract interface for ledger storage backends"""

    _in_transaction = False

    @abstractmethod
    def put(self, kind: str, key: str, data: Dict[str, Any]) -> None:
        """Insert or replace a record"""

    @abstractmethod
    def get(self, kind: str, key: str) -> Optional[Dict[str, Any]]:
        """Fetch a record, or None"""

    @abstractmethod
    def has(self, kind: str, key: str) -> bool:
        pass

    @abstractmethod
    def remove(self, kind: str, key: str) -> bool:
        """Delete a record; False if it was not there"""

    @abstractmethod
    def select(self, kind: str, field: str, value: Any) -> List[Dict[str, Any]]:
        """All records of `kind` whose `field` equals `value`, in no set order"""

    @abstractmethod
    def close(self) -> None:
        pass

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    @abstractmethod
    def begin_transaction(self) -> None:
        pass

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass

    @contextmanager
    def atomic(self):
        """
        Group writes into one transaction.

        Nested blocks join the outermost transaction; only the outermost
        block commits or rolls back.
        """
        if self.in_transaction:
            yield
            return

        self.begin_transaction()
        try:
            yield
            self.commit()
        except Exception:
            self.rollback()
            raise

    @staticmethod
    def _check_kind(kind: str) -> None:
        if kind not in RECORD_KINDS:
            raise ValueError(f"Unknown record kind: {kind}")


class InMemoryStorage(StorageInterface):
    """
    Keeps each record as its JSON text, so callers never share mutable state
    with the store and a transaction snapshot is a shallow dict copy.
    """

    def __init__(self):
        self._records: Dict[Tuple[str, str], str] = {}
        self._snapshot: Optional[Dict[Tuple[str, str], str]] = None
        self._lock = threading.RLock()
        self._in_transaction = False

    def put(self, kind: str, key: str, data: Dict[str, Any]) -> None:
        self._check_kind(kind)
        with self._lock:
            self._records[(kind, key)] = json.dumps(data)

    def get(self, kind: str, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            body = self._records.get((kind, key))
        return json.loads(body) if body is not None else None

    def has(self, kind: str, key: str) -> bool:
        with self._lock:
            return (kind, key) in self._records

    def remove(self, kind: str, key: str) -> bool:
        with self._lock:
            return self._records.pop((kind, key), None) is not None

    def select(self, kind: str, field: str, value: Any) -> List[Dict[str, Any]]:
        with self._lock:
            bodies = [body for (k, _), body in self._records.items() if k == kind]
        matches = []
        for body in bodies:
            record = json.loads(body)
            if record.get(field) == value:
                matches.append(record)
        return matches

    def begin_transaction(self) -> None:
        with self._lock:
            self._snapshot = dict(self._records)
            self._in_transaction = True

    def commit(self) -> None:
        with self._lock:
            self._snapshot = None
            self._in_transaction = False

    def rollback(self) -> None:
        with self._lock:
            if self._snapshot is not None:
                self._records = self._snapshot
            self._snapshot = None
            self._in_transaction = False

    def close(self) -> None:
        pass


class SQLiteStorage(StorageInterface):
    """
    One `records` table holding every kind. The connection runs in
    autocommit mode; `atomic()` wraps writes in an explicit BEGIN/COMMIT.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS records (
            kind TEXT NOT NULL,
            key  TEXT NOT NULL,
            body TEXT NOT NULL,
            PRIMARY KEY (kind, key)
        )
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        self._connection = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
        self._lock = threading.RLock()
        self._in_transaction = False

        with self._lock:
            if self.db_path != ":memory:":
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
            self._connection.execute(self.SCHEMA)

    def put(self, kind: str, key: str, data: Dict[str, Any]) -> None:
        self._check_kind(kind)
        with self._lock:
            self._connection.execute(
                "INSERT OR REPLACE INTO records (kind, key, body) VALUES (?, ?, ?)",
                (kind, key, json.dumps(data))
            )

    def get(self, kind: str, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._connection.execute(
                "SELECT body FROM records WHERE kind = ? AND key = ?", (kind, key)
            ).fetchone()
        return json.loads(row[0]) if row else None

    def has(self, kind: str, key: str) -> bool:
        with self._lock:
            row = self._connection.execute(
                "SELECT 1 FROM records WHERE kind = ? AND key = ?", (kind, key)
            ).fetchone()
        return row is not None

    def remove(self, kind: str, key: str) -> bool:
        with self._lock:
            cursor = self._connection.execute(
                "DELETE FROM records WHERE kind = ? AND key = ?", (kind, key)
            )
        return cursor.rowcount > 0

    def select(self, kind: str, field: str, value: Any) -> List[Dict[str, Any]]:
        with self._lock:
            rows = self._connection.execute(
                "SELECT body FROM records WHERE kind = ? AND json_extract(body, ?) = ?",
                (kind, f"$.{field}", value)
            ).fetchall()
        return [json.loads(row[0]) for row in rows]

    def begin_transaction(self) -> None:
        with self._lock:
            if not self._in_transaction:
                self._connection.execute("BEGIN")
                self._in_transaction = True

    def commit(self) -> None:
        with self._lock:
            if self._in_transaction:
                self._connection.execute("COMMIT")
                self._in_transaction = False

    def rollback(self) -> None:
        with self._lock:
            if self._in_transaction:
                self._connection.execute("ROLLBACK")
                self._in_transaction = False

    def close(self) -> None:
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


def open_storage(db_path: Union[str, Path]) -> StorageInterface:
    """Open the backend for a database path; ':memory:' gives a throwaway store"""
    if str(db_path) == ":memory:":
        return InMemoryStorage()
    return SQLiteStorage(db_path)
