"""
Test configuration and fixtures for the supplier API test suite.

Provides:
- FakeStore: in-memory stand-in for the supplier repo primitives, with the
  same ordering, conflict and locking behaviour as the Postgres queries
- FakeConn: the connection object handed to services/routes
- FastAPI TestClient fixture wired to the fake store
"""
import threading
import uuid
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

import psycopg
import pytest
from fastapi.testclient import TestClient

from apps.api.repos import suppliers as supplier_repo


class FakeConn:
    """Connection double; advisory locks are released when the transaction ends."""

    def __init__(self, store: "FakeStore"):
        self.store = store
        self.held_locks: list[threading.Lock] = []
        self.transactions = 0

    @contextmanager
    def transaction(self):
        self.transactions += 1
        try:
            yield self
        finally:
            while self.held_locks:
                self.held_locks.pop().release()


class FakeStore:
    def __init__(self):
        self.rows: list[dict] = []
        self.failing: set[str] = set()
        self.insert_attempts = 0
        self._mutex = threading.Lock()
        self._name_locks: dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    # -- helpers ----------------------------------------------------------

    def fail(self, *ops: str) -> None:
        """Make the named repo primitives raise a store error."""
        self.failing.update(ops)

    def _check(self, op: str) -> None:
        if op in self.failing:
            raise psycopg.OperationalError(f"simulated failure in {op}")

    def _tick(self) -> datetime:
        self._clock += timedelta(milliseconds=1)
        return self._clock

    def add(self, user_id: str, name: str, **fields) -> dict:
        with self._mutex:
            return self._new_row(user_id, name, **fields)

    def _new_row(self, user_id: str, name: str, **fields) -> dict:
        row = {
            "id": uuid.uuid4(),
            "user_id": user_id,
            "name": name,
            "normalized_name": supplier_repo.normalize_name(name),
            "status": "active",
            "performance_rating": 0,
            "total_spend": 0,
            "contact_email": None,
            "contact_phone": None,
            "contact_address": None,
            "tax_id": None,
            "website": None,
            "supplier_type": None,
            "payment_terms": None,
            "credit_limit": None,
            "notes": None,
            "created_at": self._tick(),
            "updated_at": None,
        }
        row.update(fields)
        self.rows.append(row)
        return self._public(row)

    @staticmethod
    def _public(row: dict) -> dict:
        return {k: v for k, v in row.items() if k != "normalized_name"}

    def for_user(self, user_id: str) -> list[dict]:
        return [self._public(r) for r in self.rows if r["user_id"] == user_id]

    # -- repo primitives --------------------------------------------------

    def lock_supplier_name(self, conn, user_id, normalized):
        self._check("lock_supplier_name")
        with self._mutex:
            lock = self._name_locks[f"{user_id}:{normalized}"]
        lock.acquire()
        conn.held_locks.append(lock)

    def find_matching_suppliers(self, conn, user_id, name):
        self._check("find_matching_suppliers")
        needle = name.lower()
        with self._mutex:
            found = [
                self._public(r) for r in self.rows
                if r["user_id"] == user_id and needle in r["name"].lower()
            ]
        return sorted(found, key=lambda r: (r["created_at"], str(r["id"])))

    def insert_supplier(self, conn, user_id, name):
        self._check("insert_supplier")
        normalized = supplier_repo.normalize_name(name)
        with self._mutex:
            self.insert_attempts += 1
            for r in self.rows:
                if r["user_id"] == user_id and r["normalized_name"] == normalized:
                    return self._public(r), False
            return self._new_row(user_id, name), True

    def get_supplier(self, conn, user_id, supplier_id):
        self._check("get_supplier")
        with self._mutex:
            for r in self.rows:
                if r["user_id"] == user_id and str(r["id"]) == str(supplier_id):
                    return self._public(r)
        return None

    def list_suppliers(self, conn, user_id, limit=100, offset=0):
        self._check("list_suppliers")
        rows = sorted(self.for_user(user_id), key=lambda r: (r["name"], str(r["id"])))
        return rows[offset:offset + limit]

    def search_suppliers(self, conn, user_id, term, limit=10, offset=0):
        self._check("search_suppliers")
        rows = [r for r in self.for_user(user_id) if term.lower() in r["name"].lower()]
        rows.sort(key=lambda r: (r["name"], str(r["id"])))
        return rows[offset:offset + limit]

    def update_supplier_fields(self, conn, user_id, supplier_id, fields):
        self._check("update_supplier_fields")
        unknown = set(fields) - supplier_repo.UPDATABLE_COLUMNS
        if unknown or not fields:
            raise ValueError("bad fields")
        with self._mutex:
            for r in self.rows:
                if r["user_id"] == user_id and str(r["id"]) == str(supplier_id):
                    r.update(fields)
                    if "name" in fields:
                        r["normalized_name"] = supplier_repo.normalize_name(fields["name"])
                    r["updated_at"] = self._tick()
                    return self._public(r)
        return None


REPO_PRIMITIVES = (
    "lock_supplier_name",
    "find_matching_suppliers",
    "insert_supplier",
    "get_supplier",
    "list_suppliers",
    "search_suppliers",
    "update_supplier_fields",
)


@pytest.fixture
def store(monkeypatch):
    fake = FakeStore()
    for name in REPO_PRIMITIVES:
        monkeypatch.setattr(supplier_repo, name, getattr(fake, name))
    return fake


@pytest.fixture
def conn(store):
    return FakeConn(store)


@pytest.fixture
def make_conn(store):
    return lambda: FakeConn(store)


@pytest.fixture
def client(store):
    from apps.api.db import get_conn
    from apps.api.main import app

    app.dependency_overrides[get_conn] = lambda: FakeConn(store)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
