"""Notification bell fed by realtime insert events.

The host application subscribes to ``postgres_changes`` INSERT events on
``messages``, ``documents`` and ``questions`` and passes each payload to
:meth:`NotificationCenter.handle_event`.  The center turns them into
newest-first :class:`~casedesk.models.Notification` entries and tracks which
ones were read.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from casedesk.edit.fields import display_name
from casedesk.errors import CasedeskError
from casedesk.models import Notification, NotificationType
from casedesk.observability import MetricsHook, fields, get_logger, resolve_metrics

log = get_logger("casedesk.notifications")

USER_LOOKUP_RPC = "get_users_by_telegram_ids"
PREVIEW_LENGTH = 50
UNKNOWN_CLIENT = "Unknown Client"


def _preview(text: str) -> str:
    return text[:PREVIEW_LENGTH] + ("..." if len(text) > PREVIEW_LENGTH else "")


def _name_from_lookup(users: Any) -> str:
    if users:
        return display_name(users[0])
    return UNKNOWN_CLIENT


class _NotificationCenterBase:
    def __init__(self, rpc: Any | None = None, metrics: MetricsHook | None = None) -> None:
        self._rpc = rpc
        self._metrics = resolve_metrics(metrics)
        self._items: list[Notification] = []

    # -- reading -------------------------------------------------------------

    @property
    def notifications(self) -> list[Notification]:
        return list(self._items)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._items if not n.read)

    # -- state changes -------------------------------------------------------

    def mark_as_read(self, notification_id: str) -> None:
        for n in self._items:
            if n.id == notification_id:
                n.read = True

    def mark_all_as_read(self) -> None:
        for n in self._items:
            n.read = True

    def clear(self) -> None:
        self._items = []

    # -- event plumbing ------------------------------------------------------

    @staticmethod
    def _unpack(payload: dict[str, Any]) -> tuple[str, dict[str, Any]] | None:
        event = payload.get("eventType") or payload.get("type")
        if event != "INSERT":
            return None
        return payload.get("table", ""), payload.get("new") or payload.get("record") or {}

    def _push(self, notification: Notification) -> Notification:
        self._items.insert(0, notification)
        self._metrics.increment(
            "casedesk.notifications_total", tags={"type": notification.type.value},
        )
        return notification

    def _simple(self, table: str, record: dict[str, Any]) -> Notification | None:
        now = datetime.now(timezone.utc)
        if table == "messages":
            return Notification(
                id=f"message-{record.get('id')}",
                type=NotificationType.MESSAGE,
                title="New Message",
                description="New message from client",
                timestamp=now,
            )
        if table == "documents":
            return Notification(
                id=f"document-{record.get('id')}",
                type=NotificationType.DOCUMENT,
                title="New Document",
                description=f"{record.get('original_name') or 'Document'} uploaded",
                timestamp=now,
            )
        return None

    @staticmethod
    def _question(record: dict[str, Any], client_name: str) -> Notification:
        return Notification(
            id=f"question-{record.get('id')}",
            type=NotificationType.QUESTION,
            title="New Question",
            description=f"{client_name} asked: {_preview(record.get('text') or '')}",
            timestamp=datetime.now(timezone.utc),
        )

    @staticmethod
    def _lookup_failed(telegram_id: Any, exc: CasedeskError) -> str:
        log.warning(
            "client lookup for notification failed",
            extra=fields(op="notify", telegram_id=telegram_id, error=exc.message),
        )
        return UNKNOWN_CLIENT


class NotificationCenter(_NotificationCenterBase):
    """Synchronous notification center.

    Parameters
    ----------
    rpc:
        :class:`~casedesk.store.RpcAPI` used to resolve client names for
        question notifications.  Without one every asker is
        ``"Unknown Client"``.
    metrics:
        Optional metrics backend.
    """

    def handle_event(self, payload: dict[str, Any]) -> Notification | None:
        """Handle a realtime payload; non-INSERT events are ignored."""
        unpacked = self._unpack(payload)
        if unpacked is None:
            return None
        return self.handle_insert(*unpacked)

    def handle_insert(self, table: str, record: dict[str, Any]) -> Notification | None:
        """Turn one inserted row into a notification (``None`` if unrelated)."""
        if table == "questions":
            return self._push(self._question(record, self._client_name(record.get("telegram_id"))))
        notification = self._simple(table, record)
        return self._push(notification) if notification else None

    def _client_name(self, telegram_id: Any) -> str:
        if self._rpc is None or telegram_id is None:
            return UNKNOWN_CLIENT
        try:
            users = self._rpc.call(USER_LOOKUP_RPC, telegram_ids=[telegram_id])
        except CasedeskError as exc:
            return self._lookup_failed(telegram_id, exc)
        return _name_from_lookup(users)


class AsyncNotificationCenter(_NotificationCenterBase):
    """Asynchronous notification center; mirrors :class:`NotificationCenter`."""

    async def handle_event(self, payload: dict[str, Any]) -> Notification | None:
        unpacked = self._unpack(payload)
        if unpacked is None:
            return None
        return await self.handle_insert(*unpacked)

    async def handle_insert(self, table: str, record: dict[str, Any]) -> Notification | None:
        if table == "questions":
            name = await self._client_name(record.get("telegram_id"))
            return self._push(self._question(record, name))
        notification = self._simple(table, record)
        return self._push(notification) if notification else None

    async def _client_name(self, telegram_id: Any) -> str:
        if self._rpc is None or telegram_id is None:
            return UNKNOWN_CLIENT
        try:
            users = await self._rpc.call(USER_LOOKUP_RPC, telegram_ids=[telegram_id])
        except CasedeskError as exc:
            return self._lookup_failed(telegram_id, exc)
        return _name_from_lookup(users)
