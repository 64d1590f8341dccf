"""Tests for webhook.py: Telegram updates become client questions."""

from __future__ import annotations

import pytest
from conftest import AsyncFakeTable, FakeTable

from casedesk.errors import CasedeskNetworkError, CasedeskValidationError
from casedesk.webhook import AsyncTelegramWebhookHandler, TelegramWebhookHandler


def update(telegram_id: int = 555001, text: str | None = "Do I need a visa?") -> dict:
    message = {
        "message_id": 1,
        "from": {"id": telegram_id, "first_name": "Jan", "last_name": "Kowalski", "username": "jkow"},
        "chat": {"id": telegram_id, "type": "private"},
        "date": 1714550400,
    }
    if text is not None:
        message["text"] = text
    return {"update_id": 100, "message": message}


@pytest.fixture
def questions():
    return FakeTable("questions")


@pytest.fixture
def handler(users_table, questions):
    return TelegramWebhookHandler(users_table, questions)


class TestTelegramWebhookHandler:
    def test_no_message(self, handler, questions):
        response = handler.handle({"update_id": 1})
        assert (response.status, response.body) == (200, "No message in update")
        assert questions.calls == []

    def test_known_user(self, handler, users_table, questions):
        response = handler.handle(update())
        assert (response.status, response.body) == (200, "OK")
        assert not [c for c in users_table.calls if c[0] == "insert"]
        assert questions.calls == [("insert", {
            "telegram_id": 555001,
            "text": "Do I need a visa?",
            "status": "new",
            "lang": "en",
        })]

    def test_new_user_registered_as_client(self, handler, users_table):
        response = handler.handle(update(telegram_id=42))
        assert response.status == 200
        created = [c[1] for c in users_table.calls if c[0] == "insert"]
        assert created == [{
            "telegram_id": 42,
            "first_name": "Jan",
            "last_name": "Kowalski",
            "username": "jkow",
            "role": "client",
        }]

    def test_message_without_text(self, handler, questions):
        handler.handle(update(text=None))
        assert questions.calls[0][1]["text"] == ""

    def test_find_failure(self, handler, users_table, questions):
        users_table.fail_find = CasedeskNetworkError(message="down")
        response = handler.handle(update())
        assert (response.status, response.body) == (500, "Error finding user")
        assert questions.calls == []

    def test_create_failure(self, handler, users_table):
        users_table.fail_insert = CasedeskValidationError(message="bad row")
        response = handler.handle(update(telegram_id=42))
        assert (response.status, response.body) == (500, "Error creating user")

    def test_question_failure(self, handler, questions):
        questions.fail_insert = CasedeskNetworkError(message="down")
        response = handler.handle(update())
        assert (response.status, response.body) == (500, "Error storing question")

    def test_unexpected_error_never_raises(self, handler):
        response = handler.handle({"message": {"text": "no sender"}})
        assert (response.status, response.body) == (500, "Internal server error")


class TestAsyncTelegramWebhookHandler:
    @pytest.mark.asyncio
    async def test_stores_question(self, users_table, questions):
        handler = AsyncTelegramWebhookHandler(AsyncFakeTable(users_table), AsyncFakeTable(questions))
        response = await handler.handle(update(telegram_id=77))
        assert (response.status, response.body) == (200, "OK")
        assert len(questions.rows) == 1
        assert any(r["telegram_id"] == 77 for r in users_table.rows.values())

    @pytest.mark.asyncio
    async def test_failure(self, users_table, questions):
        questions.fail_insert = CasedeskNetworkError(message="down")
        handler = AsyncTelegramWebhookHandler(AsyncFakeTable(users_table), AsyncFakeTable(questions))
        response = await handler.handle(update())
        assert response.status == 500
