"""Review of documents clients submitted through the bot.

Rows of ``user_documents`` link a case to an uploaded file in
``documents``.  Staff approve or reject them and open the underlying file:
a direct download from the storage bucket first, and a signed URL when the
download fails.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Any

from casedesk.config import CasedeskConfig
from casedesk.errors import CasedeskError, CasedeskNotFoundError, CasedeskValidationError
from casedesk.models import DocumentAccess, DocumentStatus, SubmittedDocument
from casedesk.observability import fields, get_logger

log = get_logger("casedesk.documents")

LIST_COLUMNS = (
    "*, documents(original_name, created_at, size_bytes), cases(id, client_name)"
)
FILE_COLUMNS = "id, documents(storage_key, original_name, mime_type)"

_REVIEWABLE = {DocumentStatus.PENDING, DocumentStatus.APPROVED, DocumentStatus.REJECTED}


def format_file_size(size_bytes: int | None) -> str | None:
    """``1572864`` -> ``"1.5 MB"``; unknown sizes stay ``None``."""
    if not size_bytes:
        return None
    return f"{size_bytes / 1024 / 1024:.1f} MB"


def to_submitted_document(row: dict[str, Any]) -> SubmittedDocument:
    """Flatten a ``user_documents`` row with its embedded joins."""
    document = row.get("documents") or {}
    case = row.get("cases") or {}
    try:
        status = DocumentStatus(row.get("status") or DocumentStatus.PENDING)
    except ValueError:
        status = DocumentStatus.PENDING
    if status not in _REVIEWABLE:
        status = DocumentStatus.PENDING
    uploaded = document.get("created_at") or row.get("created_at") or ""
    return SubmittedDocument(
        id=row["id"],
        case_id=row.get("case_id"),
        client_name=case.get("client_name") or "Unknown Client",
        document_name=document.get("original_name") or "Unknown Document",
        upload_date=uploaded[:10],
        status=status,
        file_size=format_file_size(document.get("size_bytes")),
        notes=row.get("comments"),
    )


def document_counts(documents: list[SubmittedDocument]) -> dict[DocumentStatus, int]:
    """Number of documents per review status (all three always present)."""
    counts = Counter(doc.status for doc in documents)
    return {status: counts.get(status, 0) for status in (
        DocumentStatus.PENDING, DocumentStatus.APPROVED, DocumentStatus.REJECTED,
    )}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _approval(reviewer_id: int | None) -> dict[str, Any]:
    return {
        "status": DocumentStatus.APPROVED.value,
        "reviewed_at": _now(),
        "reviewer_id": reviewer_id,
    }


def _rejection(doc_id: Any, reason: str, reviewer_id: int | None) -> dict[str, Any]:
    if not reason or not reason.strip():
        raise CasedeskValidationError(
            message="A rejection needs a reason",
            context={"field": "comments", "value": reason, "record_id": doc_id},
        )
    return {
        "status": DocumentStatus.REJECTED.value,
        "comments": reason.strip(),
        "reviewed_at": _now(),
        "reviewer_id": reviewer_id,
    }


def _file_info(doc_id: Any, row: dict[str, Any]) -> dict[str, Any]:
    document = row.get("documents") or {}
    if not document.get("storage_key"):
        raise CasedeskNotFoundError(
            message=f"Document {doc_id} has no file in storage",
            context={"table": "user_documents", "record_id": doc_id},
        )
    return document


def _access(document: dict[str, Any], **kwargs: Any) -> DocumentAccess:
    return DocumentAccess(
        filename=document.get("original_name") or "document",
        mime_type=document.get("mime_type") or "application/octet-stream",
        **kwargs,
    )


def _log_download_failure(doc_id: Any, key: str, exc: CasedeskError) -> None:
    log.warning(
        "download failed, falling back to signed URL",
        extra=fields(op="open_document", record_id=doc_id, storage_key=key, error=exc.message),
    )


class DocumentReview:
    """Synchronous document review.

    Parameters
    ----------
    table:
        :class:`~casedesk.store.TableAPI` for ``user_documents``.
    storage:
        :class:`~casedesk.store.StorageAPI` for the bot's bucket.
    config:
        Supplies the signed URL lifetime.
    """

    def __init__(self, table: Any, storage: Any, config: CasedeskConfig) -> None:
        self._table = table
        self._storage = storage
        self._config = config

    def list_for_case(self, case_id: int) -> list[SubmittedDocument]:
        """Documents of one case, newest first."""
        rows = self._table.select(
            LIST_COLUMNS, filters={"case_id": case_id}, order="created_at", descending=True,
        )
        return [to_submitted_document(row) for row in rows]

    def approve(self, doc_id: Any, reviewer_id: int | None = None) -> None:
        self._table.update(doc_id, _approval(reviewer_id))
        log.info("document approved", extra=fields(op="approve", record_id=doc_id))

    def reject(self, doc_id: Any, reason: str, reviewer_id: int | None = None) -> None:
        """Reject with a mandatory, non-blank *reason*."""
        self._table.update(doc_id, _rejection(doc_id, reason, reviewer_id))
        log.info("document rejected", extra=fields(op="reject", record_id=doc_id))

    def open(self, doc_id: Any) -> DocumentAccess:
        """Download the file, or return a signed URL if the download fails."""
        document = _file_info(doc_id, self._table.get(doc_id, FILE_COLUMNS))
        key = document["storage_key"]
        try:
            return _access(document, content=self._storage.download(key))
        except CasedeskError as exc:
            _log_download_failure(doc_id, key, exc)
        url = self._storage.create_signed_url(key, self._config.signed_url_ttl_seconds)
        return _access(document, signed_url=url)


class AsyncDocumentReview:
    """Asynchronous document review; mirrors :class:`DocumentReview`."""

    def __init__(self, table: Any, storage: Any, config: CasedeskConfig) -> None:
        self._table = table
        self._storage = storage
        self._config = config

    async def list_for_case(self, case_id: int) -> list[SubmittedDocument]:
        rows = await self._table.select(
            LIST_COLUMNS, filters={"case_id": case_id}, order="created_at", descending=True,
        )
        return [to_submitted_document(row) for row in rows]

    async def approve(self, doc_id: Any, reviewer_id: int | None = None) -> None:
        await self._table.update(doc_id, _approval(reviewer_id))
        log.info("document approved", extra=fields(op="approve", record_id=doc_id))

    async def reject(self, doc_id: Any, reason: str, reviewer_id: int | None = None) -> None:
        await self._table.update(doc_id, _rejection(doc_id, reason, reviewer_id))
        log.info("document rejected", extra=fields(op="reject", record_id=doc_id))

    async def open(self, doc_id: Any) -> DocumentAccess:
        document = _file_info(doc_id, await self._table.get(doc_id, FILE_COLUMNS))
        key = document["storage_key"]
        try:
            return _access(document, content=await self._storage.download(key))
        except CasedeskError as exc:
            _log_download_failure(doc_id, key, exc)
        url = await self._storage.create_signed_url(key, self._config.signed_url_ttl_seconds)
        return _access(document, signed_url=url)
