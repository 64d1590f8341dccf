"""Tests for documents.py: listing, approve/reject, open with signed-URL fallback."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from casedesk.documents import (
    FILE_COLUMNS,
    AsyncDocumentReview,
    DocumentReview,
    document_counts,
    format_file_size,
    to_submitted_document,
)
from casedesk.errors import CasedeskNetworkError, CasedeskNotFoundError, CasedeskValidationError
from casedesk.models import DocumentStatus

ROW = {
    "id": 11,
    "case_id": 1,
    "status": "pending",
    "comments": None,
    "created_at": "2024-05-02T08:00:00+00:00",
    "documents": {
        "original_name": "passport.pdf",
        "created_at": "2024-05-01T09:30:00+00:00",
        "size_bytes": 1572864,
    },
    "cases": {"id": 1, "client_name": "Anna Nowak"},
}

FILE_ROW = {
    "id": 11,
    "documents": {
        "storage_key": "cases/1/passport.pdf",
        "original_name": "passport.pdf",
        "mime_type": "application/pdf",
    },
}


@pytest.fixture
def table():
    t = MagicMock()
    t.select.return_value = [ROW]
    t.get.return_value = FILE_ROW
    return t


@pytest.fixture
def storage():
    s = MagicMock()
    s.download.return_value = b"%PDF"
    s.create_signed_url.return_value = "https://project.supabase.co/storage/v1/object/sign/x"
    return s


@pytest.fixture
def review(table, storage, config):
    return DocumentReview(table, storage, config)


class TestHelpers:
    def test_file_size(self):
        assert format_file_size(1572864) == "1.5 MB"
        assert format_file_size(0) is None
        assert format_file_size(None) is None

    def test_to_submitted_document(self):
        doc = to_submitted_document(ROW)
        assert doc.id == 11
        assert doc.client_name == "Anna Nowak"
        assert doc.document_name == "passport.pdf"
        assert doc.upload_date == "2024-05-01"
        assert doc.status is DocumentStatus.PENDING
        assert doc.file_size == "1.5 MB"

    def test_missing_joins_fall_back(self):
        doc = to_submitted_document({"id": 3, "status": "missing"})
        assert doc.client_name == "Unknown Client"
        assert doc.document_name == "Unknown Document"
        assert doc.status is DocumentStatus.PENDING
        assert doc.upload_date == ""

    def test_unknown_status_is_pending(self):
        assert to_submitted_document({"id": 3, "status": "weird"}).status is DocumentStatus.PENDING

    def test_counts_include_every_status(self):
        docs = [to_submitted_document(ROW), to_submitted_document({**ROW, "status": "approved"})]
        assert document_counts(docs) == {
            DocumentStatus.PENDING: 1,
            DocumentStatus.APPROVED: 1,
            DocumentStatus.REJECTED: 0,
        }


class TestDocumentReview:
    def test_list_for_case(self, review, table):
        docs = review.list_for_case(1)
        assert [d.id for d in docs] == [11]
        args, kwargs = table.select.call_args
        assert kwargs["filters"] == {"case_id": 1}
        assert kwargs["order"] == "created_at"
        assert kwargs["descending"] is True

    def test_approve(self, review, table):
        review.approve(11, reviewer_id=5)
        doc_id, values = table.update.call_args.args
        assert doc_id == 11
        assert values["status"] == "approved"
        assert values["reviewer_id"] == 5
        assert "reviewed_at" in values

    def test_reject_needs_reason(self, review, table):
        with pytest.raises(CasedeskValidationError):
            review.reject(11, "   ")
        table.update.assert_not_called()

    def test_reject(self, review, table):
        review.reject(11, " Blurry scan ")
        values = table.update.call_args.args[1]
        assert values["status"] == "rejected"
        assert values["comments"] == "Blurry scan"

    def test_open_downloads(self, review, table, storage):
        access = review.open(11)
        table.get.assert_called_once_with(11, FILE_COLUMNS)
        storage.download.assert_called_once_with("cases/1/passport.pdf")
        assert access.content == b"%PDF"
        assert access.signed_url is None
        assert access.filename == "passport.pdf"
        assert access.mime_type == "application/pdf"

    def test_open_falls_back_to_signed_url(self, review, storage):
        storage.download.side_effect = CasedeskNetworkError(message="reset")
        access = review.open(11)
        storage.create_signed_url.assert_called_once_with("cases/1/passport.pdf", 3600)
        assert access.content is None
        assert access.signed_url.endswith("/object/sign/x")

    def test_open_without_file(self, review, table, storage):
        table.get.return_value = {"id": 11, "documents": None}
        with pytest.raises(CasedeskNotFoundError):
            review.open(11)
        storage.download.assert_not_called()


class TestAsyncDocumentReview:
    @pytest.mark.asyncio
    async def test_flow(self, config):
        table = AsyncMock()
        table.select.return_value = [ROW]
        table.get.return_value = FILE_ROW
        storage = AsyncMock()
        storage.download.side_effect = CasedeskNotFoundError(message="gone")
        storage.create_signed_url.return_value = "https://signed"
        review = AsyncDocumentReview(table, storage, config)

        assert len(await review.list_for_case(1)) == 1
        await review.approve(11)
        await review.reject(11, "wrong file")
        access = await review.open(11)

        assert access.signed_url == "https://signed"
        assert table.update.await_count == 2
