"""Shared test fixtures for the casedesk test suite."""

from __future__ import annotations

import copy
from typing import Any

import pytest

from casedesk.config import CasedeskConfig
from casedesk.edit.fields import FieldMap, case_fields, client_fields
from casedesk.errors import CasedeskNotFoundError


class FakeTable:
    """In-memory stand-in for :class:`casedesk.store.TableAPI`.

    Records every call in ``calls``.  Set ``fail_update`` / ``fail_get`` /
    ``fail_find`` / ``fail_insert`` to an exception instance to make the
    next such call raise it.  ``on_update`` may rewrite the values the
    store persists (e.g. server-side trimming).
    """

    def __init__(self, table: str, rows: list[dict[str, Any]] | None = None) -> None:
        self.table = table
        self.rows: dict[Any, dict[str, Any]] = {r["id"]: copy.deepcopy(r) for r in rows or []}
        self.calls: list[tuple] = []
        self.fail_update: Exception | None = None
        self.fail_get: Exception | None = None
        self.fail_find: Exception | None = None
        self.fail_insert: Exception | None = None
        self.on_update = None
        self._next_id = max(self.rows, default=0) + 1

    def _raise(self, attr: str) -> None:
        exc = getattr(self, attr)
        if exc is not None:
            setattr(self, attr, None)
            raise exc

    def select(self, columns="*", *, filters=None, order=None, descending=False, limit=None):
        self.calls.append(("select", columns, filters))
        rows = [
            copy.deepcopy(r) for r in self.rows.values()
            if all(r.get(k) == v for k, v in (filters or {}).items())
        ]
        return rows[:limit] if limit is not None else rows

    def get(self, record_id, columns="*"):
        self.calls.append(("get", record_id))
        self._raise("fail_get")
        if record_id not in self.rows:
            raise CasedeskNotFoundError(
                message=f"No row in {self.table} with id={record_id}",
                context={"table": self.table, "record_id": record_id},
            )
        return copy.deepcopy(self.rows[record_id])

    def find(self, columns="*", **filters):
        self.calls.append(("find", filters))
        self._raise("fail_find")
        rows = self.select(columns, filters=filters, limit=1)
        self.calls.pop()
        return rows[0] if rows else None

    def insert(self, values):
        self.calls.append(("insert", copy.deepcopy(values)))
        self._raise("fail_insert")
        row = {"id": self._next_id, **values}
        self._next_id += 1
        self.rows[row["id"]] = row
        return copy.deepcopy(row)

    def update(self, record_id, values):
        self.calls.append(("update", record_id, copy.deepcopy(values)))
        self._raise("fail_update")
        persisted = self.on_update(values) if self.on_update else values
        self.rows[record_id].update(persisted)

    def delete(self, record_id):
        self.calls.append(("delete", record_id))
        self.rows.pop(record_id, None)

    def writes(self) -> list[tuple]:
        return [c for c in self.calls if c[0] == "update"]


class AsyncFakeTable:
    """Coroutine facade over a :class:`FakeTable`."""

    def __init__(self, inner: FakeTable) -> None:
        self.inner = inner
        self.table = inner.table

    async def select(self, *args, **kwargs):
        return self.inner.select(*args, **kwargs)

    async def get(self, *args, **kwargs):
        return self.inner.get(*args, **kwargs)

    async def find(self, *args, **kwargs):
        return self.inner.find(*args, **kwargs)

    async def insert(self, *args, **kwargs):
        return self.inner.insert(*args, **kwargs)

    async def update(self, *args, **kwargs):
        return self.inner.update(*args, **kwargs)

    async def delete(self, *args, **kwargs):
        return self.inner.delete(*args, **kwargs)


CASE_ROW: dict[str, Any] = {
    "id": 1,
    "client_name": "Anna Nowak",
    "public_case_id": "CASE-2024-001",
    "category": None,
    "status": "in_review",
    "decision": "pending",
    "deadline": "2024-06-30",
    "payment_received": False,
    "payment_amount": 1500,
    "notes": None,
    "created_at": "2024-05-01T10:00:00+00:00",
}

CLIENT_ROW: dict[str, Any] = {
    "id": 7,
    "telegram_id": 555001,
    "first_name": "Jan",
    "last_name": "Kowalski",
    "username": "jkow",
    "email": None,
    "preferred_lang": "pl",
    "role": "client",
    "is_active": True,
}


@pytest.fixture
def config() -> CasedeskConfig:
    """Default test configuration with a dummy key."""
    return CasedeskConfig(url="https://project.supabase.co", api_key="test_key_1234")


@pytest.fixture
def cases_map() -> FieldMap:
    return case_fields("PLN")


@pytest.fixture
def clients_map() -> FieldMap:
    return client_fields()


@pytest.fixture
def case_row() -> dict[str, Any]:
    return copy.deepcopy(CASE_ROW)


@pytest.fixture
def cases_table() -> FakeTable:
    second = {**CASE_ROW, "id": 2, "client_name": "Piotr Zielinski", "status": "new",
              "public_case_id": "CASE-2024-002", "payment_amount": None}
    return FakeTable("cases", [CASE_ROW, second])


@pytest.fixture
def users_table() -> FakeTable:
    return FakeTable("users", [CLIENT_ROW])
