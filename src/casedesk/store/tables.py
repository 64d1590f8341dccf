"""Table and RPC wrappers for the Supabase REST (PostgREST) API.

Provides :class:`TableAPI` (sync) and :class:`AsyncTableAPI` (async) thin
wrappers around ``/rest/v1/<table>``, plus :class:`RpcAPI` /
:class:`AsyncRpcAPI` for ``/rest/v1/rpc/<fn>``.  All HTTP concerns (auth,
retries, rate limiting) live in the transport.

Writes (insert, update, delete) are sent with a single attempt; reads use
the configured retry budget.
"""

from __future__ import annotations

from typing import Any

from casedesk.errors import CasedeskNotFoundError, CasedeskValidationError

from .transport import AsyncStoreTransport, StoreTransport

REST_PREFIX = "/rest/v1"

_RETURN_ROW = {"Prefer": "return=representation"}
_RETURN_NOTHING = {"Prefer": "return=minimal"}


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def filter_params(filters: dict[str, Any] | None) -> dict[str, str]:
    """Translate ``{column: value}`` into PostgREST query parameters.

    ``None`` becomes ``is.null``, a list or tuple becomes ``in.(...)``, and
    anything else an ``eq.`` match.

    >>> filter_params({"id": 3, "case_id": None, "status": ["new", "in_review"]})
    {'id': 'eq.3', 'case_id': 'is.null', 'status': 'in.(new,in_review)'}
    """
    params: dict[str, str] = {}
    for column, value in (filters or {}).items():
        if value is None:
            params[column] = "is.null"
        elif isinstance(value, (list, tuple)):
            params[column] = f"in.({','.join(_literal(v) for v in value)})"
        else:
            params[column] = f"eq.{_literal(value)}"
    return params


def _select_params(
    columns: str,
    filters: dict[str, Any] | None,
    order: str | None,
    descending: bool,
    limit: int | None,
) -> dict[str, str]:
    params = {"select": columns, **filter_params(filters)}
    if order:
        params["order"] = f"{order}.{'desc' if descending else 'asc'}"
    if limit is not None:
        params["limit"] = str(limit)
    return params


def _check_update(table: str, record_id: Any, values: dict[str, Any]) -> None:
    if not values:
        raise CasedeskValidationError(
            message=f"Refusing to send an empty update to {table} id={record_id}",
            context={"table": table, "record_id": record_id},
        )


def _single(table: str, record_id: Any, rows: Any) -> dict[str, Any]:
    if not rows:
        raise CasedeskNotFoundError(
            message=f"No row in {table} with id={record_id}",
            context={"table": table, "record_id": record_id},
        )
    return rows[0]


class TableAPI:
    """Synchronous wrapper for one PostgREST table.

    Parameters
    ----------
    transport:
        A configured :class:`StoreTransport` instance.
    table:
        Table (or view) name, e.g. ``"cases"``.
    """

    def __init__(self, transport: StoreTransport, table: str) -> None:
        self._transport = transport
        self.table = table
        self._path = f"{REST_PREFIX}/{table}"

    def select(
        self,
        columns: str = "*",
        *,
        filters: dict[str, Any] | None = None,
        order: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch rows.

        Parameters
        ----------
        columns:
            PostgREST select list; embedded joins use the
            ``"*, documents(original_name, size_bytes)"`` syntax.
        filters:
            Column filters, see :func:`filter_params`.
        order:
            Column to order by.
        descending:
            Reverse the order.
        limit:
            Maximum number of rows.
        """
        params = _select_params(columns, filters, order, descending, limit)
        return self._transport.request("GET", self._path, params=params) or []

    def get(self, record_id: Any, columns: str = "*") -> dict[str, Any]:
        """Fetch one row by ``id``; raise :class:`CasedeskNotFoundError` if absent."""
        rows = self.select(columns, filters={"id": record_id}, limit=1)
        return _single(self.table, record_id, rows)

    def find(self, columns: str = "*", **filters: Any) -> dict[str, Any] | None:
        """Return the first row matching *filters*, or ``None``."""
        rows = self.select(columns, filters=filters, limit=1)
        return rows[0] if rows else None

    def insert(self, values: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return it as stored."""
        rows = self._transport.request(
            "POST", self._path, json=values, headers=_RETURN_ROW, max_attempts=1,
        )
        return rows[0] if rows else {}

    def update(self, record_id: Any, values: dict[str, Any]) -> None:
        """Partially update the row with ``id == record_id``.

        Only the columns in *values* are sent; an empty mapping is rejected
        with :class:`CasedeskValidationError` before any request is made.
        """
        _check_update(self.table, record_id, values)
        self._transport.request(
            "PATCH",
            self._path,
            params=filter_params({"id": record_id}),
            json=values,
            headers=_RETURN_NOTHING,
            max_attempts=1,
        )

    def delete(self, record_id: Any) -> None:
        """Delete the row with ``id == record_id``."""
        self._transport.request(
            "DELETE",
            self._path,
            params=filter_params({"id": record_id}),
            headers=_RETURN_NOTHING,
            max_attempts=1,
        )


class AsyncTableAPI:
    """Asynchronous wrapper for one PostgREST table.

    Mirrors :class:`TableAPI` but all methods are coroutines.
    """

    def __init__(self, transport: AsyncStoreTransport, table: str) -> None:
        self._transport = transport
        self.table = table
        self._path = f"{REST_PREFIX}/{table}"

    async def select(
        self,
        columns: str = "*",
        *,
        filters: dict[str, Any] | None = None,
        order: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch rows (async).  See :meth:`TableAPI.select`."""
        params = _select_params(columns, filters, order, descending, limit)
        return await self._transport.request("GET", self._path, params=params) or []

    async def get(self, record_id: Any, columns: str = "*") -> dict[str, Any]:
        rows = await self.select(columns, filters={"id": record_id}, limit=1)
        return _single(self.table, record_id, rows)

    async def find(self, columns: str = "*", **filters: Any) -> dict[str, Any] | None:
        rows = await self.select(columns, filters=filters, limit=1)
        return rows[0] if rows else None

    async def insert(self, values: dict[str, Any]) -> dict[str, Any]:
        rows = await self._transport.request(
            "POST", self._path, json=values, headers=_RETURN_ROW, max_attempts=1,
        )
        return rows[0] if rows else {}

    async def update(self, record_id: Any, values: dict[str, Any]) -> None:
        """Partially update one row (async).  See :meth:`TableAPI.update`."""
        _check_update(self.table, record_id, values)
        await self._transport.request(
            "PATCH",
            self._path,
            params=filter_params({"id": record_id}),
            json=values,
            headers=_RETURN_NOTHING,
            max_attempts=1,
        )

    async def delete(self, record_id: Any) -> None:
        await self._transport.request(
            "DELETE",
            self._path,
            params=filter_params({"id": record_id}),
            headers=_RETURN_NOTHING,
            max_attempts=1,
        )


class RpcAPI:
    """Call Postgres functions exposed at ``/rest/v1/rpc/<fn>``."""

    def __init__(self, transport: StoreTransport) -> None:
        self._transport = transport

    def call(self, function: str, **args: Any) -> Any:
        return self._transport.request("POST", f"{REST_PREFIX}/rpc/{function}", json=args)


class AsyncRpcAPI:
    """Async counterpart of :class:`RpcAPI`."""

    def __init__(self, transport: AsyncStoreTransport) -> None:
        self._transport = transport

    async def call(self, function: str, **args: Any) -> Any:
        return await self._transport.request(
            "POST", f"{REST_PREFIX}/rpc/{function}", json=args,
        )
