"""Ingestion of Telegram bot updates.

Each incoming text message becomes a ``questions`` row.  The sender is
looked up in ``users`` by Telegram id and registered as a client on first
contact.  Handlers never raise: every outcome is a
:class:`~casedesk.models.WebhookResponse` the HTTP layer can return as-is.
"""

from __future__ import annotations

from typing import Any

from casedesk.errors import CasedeskError
from casedesk.models import QuestionStatus, WebhookResponse
from casedesk.observability import MetricsHook, fields, get_logger, resolve_metrics

log = get_logger("casedesk.webhook")

DEFAULT_LANG = "en"


class _Step(Exception):
    """A named ingestion step failed with a store error."""

    def __init__(self, reply: str, cause: CasedeskError) -> None:
        super().__init__(reply)
        self.reply = reply
        self.cause = cause


def _new_user(sender: dict[str, Any]) -> dict[str, Any]:
    return {
        "telegram_id": sender["id"],
        "first_name": sender.get("first_name"),
        "last_name": sender.get("last_name"),
        "username": sender.get("username"),
        "role": "client",
    }


def _question(telegram_id: Any, message: dict[str, Any]) -> dict[str, Any]:
    return {
        "telegram_id": telegram_id,
        "text": message.get("text") or "",
        "status": QuestionStatus.NEW.value,
        "lang": DEFAULT_LANG,
    }


class _WebhookBase:
    def __init__(self, users: Any, questions: Any, metrics: MetricsHook | None = None) -> None:
        self._users = users
        self._questions = questions
        self._metrics = resolve_metrics(metrics)

    def _reply(self, status: int, body: str) -> WebhookResponse:
        self._metrics.increment("casedesk.webhook_updates_total", tags={"status": str(status)})
        return WebhookResponse(status=status, body=body)

    def _failed(self, step: _Step, telegram_id: Any) -> WebhookResponse:
        log.error(
            step.reply,
            extra=fields(op="webhook", telegram_id=telegram_id, error=step.cause.message),
        )
        return self._reply(500, step.reply)

    def _crashed(self, telegram_id: Any) -> WebhookResponse:
        log.exception("webhook update crashed", extra=fields(op="webhook", telegram_id=telegram_id))
        return self._reply(500, "Internal server error")

    def _done(self, telegram_id: Any) -> WebhookResponse:
        log.info("question stored", extra=fields(op="webhook", telegram_id=telegram_id))
        return self._reply(200, "OK")


class TelegramWebhookHandler(_WebhookBase):
    """Turn Telegram updates into stored client questions.

    Parameters
    ----------
    users:
        :class:`~casedesk.store.TableAPI` for ``users``.
    questions:
        :class:`~casedesk.store.TableAPI` for ``questions``.
    metrics:
        Optional metrics backend.
    """

    def handle(self, update: dict[str, Any]) -> WebhookResponse:
        """Process one update payload and return the HTTP reply."""
        message = update.get("message")
        if not message:
            return self._reply(200, "No message in update")

        telegram_id = (message.get("from") or {}).get("id")
        try:
            self._ensure_user(message["from"])
            self._store_question(telegram_id, message)
        except _Step as step:
            return self._failed(step, telegram_id)
        except Exception:
            return self._crashed(telegram_id)
        return self._done(telegram_id)

    def _ensure_user(self, sender: dict[str, Any]) -> dict[str, Any]:
        try:
            user = self._users.find(telegram_id=sender["id"])
        except CasedeskError as exc:
            raise _Step("Error finding user", exc) from exc
        if user is not None:
            return user
        try:
            return self._users.insert(_new_user(sender))
        except CasedeskError as exc:
            raise _Step("Error creating user", exc) from exc

    def _store_question(self, telegram_id: Any, message: dict[str, Any]) -> None:
        try:
            self._questions.insert(_question(telegram_id, message))
        except CasedeskError as exc:
            raise _Step("Error storing question", exc) from exc


class AsyncTelegramWebhookHandler(_WebhookBase):
    """Async counterpart of :class:`TelegramWebhookHandler`."""

    async def handle(self, update: dict[str, Any]) -> WebhookResponse:
        message = update.get("message")
        if not message:
            return self._reply(200, "No message in update")

        telegram_id = (message.get("from") or {}).get("id")
        try:
            await self._ensure_user(message["from"])
            await self._store_question(telegram_id, message)
        except _Step as step:
            return self._failed(step, telegram_id)
        except Exception:
            return self._crashed(telegram_id)
        return self._done(telegram_id)

    async def _ensure_user(self, sender: dict[str, Any]) -> dict[str, Any]:
        try:
            user = await self._users.find(telegram_id=sender["id"])
        except CasedeskError as exc:
            raise _Step("Error finding user", exc) from exc
        if user is not None:
            return user
        try:
            return await self._users.insert(_new_user(sender))
        except CasedeskError as exc:
            raise _Step("Error creating user", exc) from exc

    async def _store_question(self, telegram_id: Any, message: dict[str, Any]) -> None:
        try:
            await self._questions.insert(_question(telegram_id, message))
        except CasedeskError as exc:
            raise _Step("Error storing question", exc) from exc
