"""Published FAQ entries from the ``faq`` table."""

from __future__ import annotations

from typing import Any

from casedesk.models import FaqEntry, FaqLanguage

FAQ_TABLE = "faq"


def to_faq_entry(row: dict[str, Any]) -> FaqEntry:
    """``language == "pl"`` is Polish; anything else, ``None`` included, is English."""
    language = FaqLanguage.POLISH if row.get("language") == "pl" else FaqLanguage.ENGLISH
    return FaqEntry(
        id=row["id"],
        question=row.get("question") or "",
        answer=row.get("answer") or "",
        language=language,
        category=row.get("category"),
    )


_PUBLISHED_NEWEST_FIRST: dict[str, Any] = {
    "filters": {"is_published": True},
    "order": "created_at",
    "descending": True,
}


class FaqCatalog:
    """Read-only view of the published FAQ.

    Parameters
    ----------
    table:
        :class:`~casedesk.store.TableAPI` for ``faq``.
    """

    def __init__(self, table: Any) -> None:
        self._table = table

    def published(self) -> list[FaqEntry]:
        """Published entries, newest first."""
        rows = self._table.select("*", **_PUBLISHED_NEWEST_FIRST)
        return [to_faq_entry(row) for row in rows]


class AsyncFaqCatalog:
    """Asynchronous :class:`FaqCatalog`."""

    def __init__(self, table: Any) -> None:
        self._table = table

    async def published(self) -> list[FaqEntry]:
        rows = await self._table.select("*", **_PUBLISHED_NEWEST_FIRST)
        return [to_faq_entry(row) for row in rows]
