"""Tests for faq.py: published entries and language labels."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from casedesk.errors import CasedeskNetworkError
from casedesk.faq import AsyncFaqCatalog, FaqCatalog, to_faq_entry
from casedesk.models import FaqLanguage

ROWS = [
    {
        "id": 5,
        "question": "Czy mogę pracować podczas oczekiwania na decyzję?",
        "answer": "Tak.",
        "language": "pl",
        "category": "work",
        "is_published": True,
    },
    {
        "id": 2,
        "question": "Which documents are required?",
        "answer": "Passport, rental contract, proof of income.",
        "language": "en",
        "category": None,
        "is_published": True,
    },
]


class TestToFaqEntry:
    @pytest.mark.parametrize(
        ("language", "expected"),
        [
            ("pl", FaqLanguage.POLISH),
            ("en", FaqLanguage.ENGLISH),
            ("de", FaqLanguage.ENGLISH),
            (None, FaqLanguage.ENGLISH),
        ],
    )
    def test_language_label(self, language, expected):
        entry = to_faq_entry({"id": 1, "question": "q", "answer": "a", "language": language})
        assert entry.language is expected

    def test_fields(self):
        entry = to_faq_entry(ROWS[0])
        assert entry.id == 5
        assert entry.answer == "Tak."
        assert entry.category == "work"
        assert entry.language.value == "Polish"


class TestFaqCatalog:
    def test_published_newest_first(self):
        table = MagicMock()
        table.select.return_value = ROWS
        entries = FaqCatalog(table).published()
        table.select.assert_called_once_with(
            "*", filters={"is_published": True}, order="created_at", descending=True,
        )
        assert [e.id for e in entries] == [5, 2]

    def test_empty(self):
        table = MagicMock()
        table.select.return_value = []
        assert FaqCatalog(table).published() == []

    def test_store_errors_propagate(self):
        table = MagicMock()
        table.select.side_effect = CasedeskNetworkError(message="down")
        with pytest.raises(CasedeskNetworkError):
            FaqCatalog(table).published()


class TestAsyncFaqCatalog:
    @pytest.mark.asyncio
    async def test_published(self):
        table = MagicMock()
        table.select = AsyncMock(return_value=ROWS[1:])
        entries = await AsyncFaqCatalog(table).published()
        assert entries[0].question == "Which documents are required?"
        assert entries[0].language is FaqLanguage.ENGLISH
        table.select.assert_awaited_once()
