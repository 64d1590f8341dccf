"""In-memory record lists backing the dashboard pages.

A :class:`RecordList` holds the entities fetched from one table, hands out
one edit session per record, deletes records on explicit request, and
derives simple statistics.  Periodic refreshes are skipped while any of its
records is being edited, so freshly fetched rows never overwrite a working
copy.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from casedesk.edit.fields import FieldMap
from casedesk.edit.session import AsyncRecordEditSession, RecordEditSession
from casedesk.errors import CasedeskEditStateError, CasedeskNotFoundError
from casedesk.models import Entity
from casedesk.observability import MetricsHook, fields, get_logger

log = get_logger("casedesk.records")


class _RecordListBase:
    def __init__(
        self,
        table: Any,
        field_map: FieldMap,
        *,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
        order: str | None = None,
        descending: bool = False,
        metrics: MetricsHook | None = None,
    ) -> None:
        self._table = table
        self._fields = field_map
        self._columns = columns
        self._filters = filters
        self._order = order
        self._descending = descending
        self._metrics = metrics
        self._entities: list[Entity] = []
        self._sessions: dict[Any, Any] = {}

    @property
    def entities(self) -> list[Entity]:
        return list(self._entities)

    def __len__(self) -> int:
        return len(self._entities)

    def get(self, record_id: Any) -> Entity:
        for entity in self._entities:
            if entity.get("id") == record_id:
                return entity
        raise CasedeskNotFoundError(
            message=f"Record {record_id} is not loaded from {self._fields.table}",
            context={"table": self._fields.table, "record_id": record_id},
        )

    def session(self, record_id: Any) -> Any:
        """The edit session for *record_id*, if one was ever started."""
        return self._sessions.get(record_id)

    def editing_ids(self) -> list[Any]:
        return [rid for rid, s in self._sessions.items() if s.editing]

    def filter(self, **criteria: Any) -> list[Entity]:
        """Entities whose fields equal every value in *criteria*."""
        return [
            e for e in self._entities
            if all(e.get(name) == value for name, value in criteria.items())
        ]

    def status_counts(self, field: str = "status") -> dict[Any, int]:
        """Number of loaded entities per value of *field*."""
        return dict(Counter(e.get(field) for e in self._entities))

    def _select_kwargs(self) -> dict[str, Any]:
        return {
            "filters": self._filters,
            "order": self._order,
            "descending": self._descending,
        }

    def _refresh_blocked(self) -> bool:
        editing = self.editing_ids()
        if editing:
            log.info(
                "refresh skipped while editing",
                extra=fields(op="refresh", table=self._fields.table, editing=editing),
            )
            return True
        return False

    def _replace(self, rows: list[dict[str, Any]]) -> None:
        self._entities = [self._fields.entity_from_row(row) for row in rows]
        live = {e.get("id") for e in self._entities}
        self._sessions = {rid: s for rid, s in self._sessions.items() if rid in live}

    def _session_for(self, record_id: Any, factory: type) -> Any:
        entity = self.get(record_id)
        session = self._sessions.get(record_id)
        if session is None:
            session = factory(self._table, self._fields, self._metrics)
            self._sessions[record_id] = session
        session.begin_edit(entity)
        return session

    def _check_deletable(self, record_id: Any) -> None:
        session = self._sessions.get(record_id)
        if session is not None and session.editing:
            raise CasedeskEditStateError(
                message=f"Record {record_id} is being edited; save or cancel before deleting",
                context={"record_id": record_id, "operation": "delete"},
            )

    def _forget(self, record_id: Any) -> None:
        self._entities = [e for e in self._entities if e.get("id") != record_id]
        self._sessions.pop(record_id, None)
        log.info(
            "record deleted",
            extra=fields(op="delete", table=self._fields.table, record_id=record_id),
        )


class RecordList(_RecordListBase):
    """Synchronous record list over a :class:`~casedesk.store.TableAPI`.

    Parameters
    ----------
    table:
        Table wrapper the records come from.
    field_map:
        Field mapping used to present rows and drive edit sessions.
    columns:
        PostgREST select list.
    filters:
        Column filters applied on every refresh.
    order, descending:
        Sort order of :meth:`refresh`.
    metrics:
        Optional metrics backend forwarded to edit sessions.
    """

    def refresh(self) -> bool:
        """Re-fetch every row; return ``False`` if skipped because of an edit."""
        if self._refresh_blocked():
            return False
        self._replace(self._table.select(self._columns, **self._select_kwargs()))
        return True

    def begin_edit(self, record_id: Any) -> RecordEditSession:
        """Start editing a loaded record and return its session.

        Raises
        ------
        CasedeskEditStateError
            If the record is already being edited.
        """
        return self._session_for(record_id, RecordEditSession)

    def delete(self, record_id: Any) -> None:
        """Delete the row from the store, then from this list."""
        self._check_deletable(record_id)
        self._table.delete(record_id)
        self._forget(record_id)


class AsyncRecordList(_RecordListBase):
    """Asynchronous record list over an :class:`~casedesk.store.AsyncTableAPI`."""

    async def refresh(self) -> bool:
        if self._refresh_blocked():
            return False
        self._replace(await self._table.select(self._columns, **self._select_kwargs()))
        return True

    def begin_edit(self, record_id: Any) -> AsyncRecordEditSession:
        return self._session_for(record_id, AsyncRecordEditSession)

    async def delete(self, record_id: Any) -> None:
        self._check_deletable(record_id)
        await self._table.delete(record_id)
        self._forget(record_id)
