"""Edit sessions: baseline snapshot, working copy, minimal save, resync.

A session moves between two states::

    VIEWING --begin_edit--> EDITING --set_field--> EDITING
    EDITING --save (ok / no changes) | cancel_edit--> VIEWING
    EDITING --save (write failed)--> EDITING

The working copy is the entity object the caller holds; the session keeps
a deep-copied baseline next to it.  ``save`` sends only the columns whose
normalized values differ from the baseline, then re-fetches the row so the
entity reflects exactly what the store persisted.

:class:`RecordEditSession` talks to a :class:`~casedesk.store.TableAPI`;
:class:`AsyncRecordEditSession` mirrors it over an
:class:`~casedesk.store.AsyncTableAPI`.
"""

from __future__ import annotations

import copy
from typing import Any

from casedesk.errors import (
    CasedeskEditStateError,
    CasedeskError,
    CasedeskStoreReadError,
    CasedeskStoreWriteError,
    CasedeskValidationError,
)
from casedesk.models import EditState, Entity, SaveOutcome, SaveResult
from casedesk.observability import MetricsHook, fields, get_logger, resolve_metrics

from .diff import changed_fields, compute_diff
from .fields import FieldMap

log = get_logger("casedesk.edit")


class _EditSessionBase:
    """State machine and bookkeeping shared by the sync and async sessions."""

    def __init__(
        self,
        table: Any,
        field_map: FieldMap,
        metrics: MetricsHook | None = None,
    ) -> None:
        self._table = table
        self._fields = field_map
        self._metrics = resolve_metrics(metrics)
        self._state = EditState.VIEWING
        self._entity: Entity | None = None
        self._baseline: Entity | None = None
        self._saving = False

    # -- introspection -------------------------------------------------------

    @property
    def state(self) -> EditState:
        return self._state

    @property
    def editing(self) -> bool:
        return self._state is EditState.EDITING

    @property
    def saving(self) -> bool:
        """``True`` while a save is waiting on the store."""
        return self._saving

    @property
    def entity(self) -> Entity | None:
        """The working copy while editing, else the last entity edited."""
        return self._entity

    @property
    def baseline(self) -> Entity | None:
        """A copy of the baseline snapshot, or ``None`` outside editing."""
        return copy.deepcopy(self._baseline)

    @property
    def field_map(self) -> FieldMap:
        return self._fields

    @property
    def record_id(self) -> Any:
        return None if self._entity is None else self._entity.get("id")

    def is_dirty(self) -> bool:
        return self.editing and bool(self.compute_diff())

    def changed_fields(self) -> list[str]:
        self._require_editing("changed_fields")
        return changed_fields(self._baseline, self._entity, self._fields)

    # -- transitions ---------------------------------------------------------

    def begin_edit(self, entity: Entity) -> Entity:
        """Snapshot *entity* as the baseline and return it as the working copy.

        Raises
        ------
        CasedeskEditStateError
            If the session is already editing; save or cancel first.
        """
        if self.editing:
            raise CasedeskEditStateError(
                message=f"Record {self.record_id} is already being edited",
                context={
                    "record_id": self.record_id,
                    "state": self._state.value,
                    "operation": "begin_edit",
                },
            )
        self._entity = entity
        self._baseline = copy.deepcopy(entity)
        self._state = EditState.EDITING
        log.debug(
            "edit started",
            extra=fields(op="begin_edit", table=self._fields.table, record_id=self.record_id),
        )
        return entity

    def set_field(self, name: str, value: Any) -> Entity:
        """Set one mapped field on the working copy, coercing *value*.

        Raises
        ------
        CasedeskUnknownFieldError
            If *name* is not in the field mapping table.
        CasedeskValidationError
            If *value* cannot be coerced to the field's kind, or the field
            is read-only (composed from other columns).
        """
        self._require_editing("set_field")
        spec = self._fields[name]
        if not spec.editable:
            raise CasedeskValidationError(
                message=f"{name!r} is read-only on {self._fields.table}",
                context={"field": name, "value": value, "constraint": "read-only"},
            )
        self._entity[name] = spec.coerce(value)
        return self._entity

    def compute_diff(self) -> dict[str, Any]:
        """Partial update that ``save`` would send right now."""
        self._require_editing("compute_diff")
        return compute_diff(self._baseline, self._entity, self._fields)

    def cancel_edit(self) -> Entity:
        """Restore the entity to the baseline and stop editing."""
        self._require_editing("cancel_edit")
        self._refuse_while_saving("cancel_edit")
        entity = self._entity
        entity.clear()
        entity.update(copy.deepcopy(self._baseline))
        self._end()
        log.debug(
            "edit cancelled",
            extra=fields(op="cancel_edit", table=self._fields.table, record_id=self.record_id),
        )
        return entity

    # -- save helpers ----------------------------------------------------------

    def _require_editing(self, operation: str) -> None:
        if not self.editing:
            raise CasedeskEditStateError(
                message=f"{operation} requires an active edit session",
                context={
                    "record_id": self.record_id,
                    "state": self._state.value,
                    "operation": operation,
                },
            )

    def _refuse_while_saving(self, operation: str) -> None:
        if self._saving:
            raise CasedeskEditStateError(
                message=f"{operation} is not allowed while a save is in flight",
                context={"record_id": self.record_id, "operation": operation},
            )

    def _start_save(self) -> dict[str, Any]:
        self._require_editing("save")
        self._refuse_while_saving("save")
        return self.compute_diff()

    def _no_changes(self) -> SaveResult:
        self._end()
        self._metrics.increment("casedesk.saves_total", tags={"outcome": SaveOutcome.NO_CHANGES.value})
        log.info(
            "save skipped, no changes",
            extra=fields(op="save", table=self._fields.table, record_id=self.record_id),
        )
        return SaveResult(outcome=SaveOutcome.NO_CHANGES, record_id=self.record_id)

    def _write_failed(self, changes: dict[str, Any], exc: CasedeskError) -> CasedeskStoreWriteError:
        self._metrics.increment("casedesk.saves_total", tags={"outcome": "write_failed"})
        log.warning(
            "save failed, record still in edit",
            extra=fields(
                op="save",
                table=self._fields.table,
                record_id=self.record_id,
                columns=sorted(changes),
                error=exc.message,
            ),
        )
        return CasedeskStoreWriteError(
            message=f"Could not update {self._fields.table} id={self.record_id}: {exc.message}",
            context={
                "table": self._fields.table,
                "record_id": self.record_id,
                "columns": sorted(changes),
            },
            cause=exc,
        )

    def _written(self, changes: dict[str, Any]) -> None:
        self._metrics.increment(
            "casedesk.fields_updated_total", len(changes), tags={"table": self._fields.table},
        )

    def _refresh_failed(self, changes: dict[str, Any], exc: CasedeskError) -> SaveResult:
        record_id = self.record_id
        error = CasedeskStoreReadError(
            message=(
                f"{self._fields.table} id={record_id} was updated but could not be "
                f"re-fetched: {exc.message}"
            ),
            context={"table": self._fields.table, "record_id": record_id},
            cause=exc,
        )
        self._end()
        self._metrics.increment(
            "casedesk.saves_total", tags={"outcome": SaveOutcome.SAVED_UNCONFIRMED.value},
        )
        log.warning(
            "record saved but refresh failed",
            extra=fields(op="save", table=self._fields.table, record_id=record_id, error=exc.message),
        )
        return SaveResult(
            outcome=SaveOutcome.SAVED_UNCONFIRMED,
            record_id=record_id,
            changes=changes,
            refresh_error=error,
        )

    def _refreshed(self, changes: dict[str, Any], row: dict[str, Any]) -> SaveResult:
        fresh = self._fields.entity_from_row(row)
        drift = compute_diff(fresh, self._entity, self._fields)
        if drift:
            log.warning(
                "store persisted different values than sent",
                extra=fields(
                    op="save", table=self._fields.table, record_id=self.record_id, drift=drift,
                ),
            )
        entity = self._entity
        entity.clear()
        entity.update(fresh)
        self._end()
        self._metrics.increment("casedesk.saves_total", tags={"outcome": SaveOutcome.SAVED.value})
        log.info(
            "record saved",
            extra=fields(
                op="save",
                table=self._fields.table,
                record_id=self.record_id,
                changed=len(changes),
            ),
        )
        return SaveResult(
            outcome=SaveOutcome.SAVED,
            record_id=self.record_id,
            changes=changes,
            drift=drift,
        )

    def _end(self) -> None:
        self._baseline = None
        self._state = EditState.VIEWING


class RecordEditSession(_EditSessionBase):
    """Synchronous edit session for one record.

    Parameters
    ----------
    table:
        A :class:`~casedesk.store.TableAPI` for the record's table.
    field_map:
        The table's field mapping.
    metrics:
        Optional metrics backend.
    """

    def save(self) -> SaveResult:
        """Send the minimal partial update and resynchronize.

        Returns
        -------
        SaveResult
            ``NO_CHANGES`` without touching the store, ``SAVED`` after a
            confirmed write, or ``SAVED_UNCONFIRMED`` when the write
            succeeded but the re-fetch did not.

        Raises
        ------
        CasedeskStoreWriteError
            When the partial update fails.  The session keeps editing and
            the working copy is left as it was.
        CasedeskEditStateError
            When not editing, or when another save is in flight.
        """
        changes = self._start_save()
        if not changes:
            return self._no_changes()

        self._saving = True
        try:
            try:
                self._table.update(self.record_id, changes)
            except CasedeskError as exc:
                raise self._write_failed(changes, exc) from exc
            self._written(changes)

            try:
                row = self._table.get(self.record_id)
            except CasedeskError as exc:
                return self._refresh_failed(changes, exc)
            return self._refreshed(changes, row)
        finally:
            self._saving = False


class AsyncRecordEditSession(_EditSessionBase):
    """Asynchronous edit session for one record.

    Mirrors :class:`RecordEditSession`; ``save`` is a coroutine and the
    table must be an :class:`~casedesk.store.AsyncTableAPI`.
    """

    async def save(self) -> SaveResult:
        """Send the minimal partial update and resynchronize (async).

        See :meth:`RecordEditSession.save`.
        """
        changes = self._start_save()
        if not changes:
            return self._no_changes()

        self._saving = True
        try:
            try:
                await self._table.update(self.record_id, changes)
            except CasedeskError as exc:
                raise self._write_failed(changes, exc) from exc
            self._written(changes)

            try:
                row = await self._table.get(self.record_id)
            except CasedeskError as exc:
                return self._refresh_failed(changes, exc)
            return self._refreshed(changes, row)
        finally:
            self._saving = False
