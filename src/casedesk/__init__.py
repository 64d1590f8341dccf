"""casedesk: Case-management dashboard core over Supabase.

Public re-exports
-----------------

* **Clients:** :class:`CasedeskClient`, :class:`AsyncCasedeskClient`
* **Configuration:** :class:`CasedeskConfig`
* **Editing:** :class:`RecordEditSession`, :class:`AsyncRecordEditSession`,
  field mapping tables and :func:`compute_diff`
* **Components:** record lists, document review, FAQ, document checklist,
  notifications, webhook
* **Errors:** Every :class:`CasedeskError` subclass and :class:`ErrorCode`
* **Models:** All result dataclasses and enums

Usage::

    from casedesk import CasedeskClient

    client = CasedeskClient(url="https://xyz.supabase.co", api_key="...")
    cases = client.cases()
    cases.refresh()
    session = cases.begin_edit(42)
    session.set_field("status", "in_review")
    result = session.save()
"""

from __future__ import annotations

from casedesk.async_client import AsyncCasedeskClient

# ── Clients ────────────────────────────────────────────────────────────
from casedesk.client import CasedeskClient

# ── Configuration ───────────────────────────────────────────────────────
from casedesk.config import DEFAULT_STORAGE_BUCKET, CasedeskConfig

# ── Components ──────────────────────────────────────────────────────────
from casedesk.checklist import AsyncDocumentChecklist, DocumentChecklist
from casedesk.documents import AsyncDocumentReview, DocumentReview, document_counts
from casedesk.faq import AsyncFaqCatalog, FaqCatalog

# ── Editing ─────────────────────────────────────────────────────────────
from casedesk.edit import (
    NOT_AVAILABLE,
    AsyncRecordEditSession,
    FieldKind,
    FieldMap,
    FieldSpec,
    RecordEditSession,
    case_fields,
    client_fields,
    compute_diff,
    parse_amount,
)

# ── Errors ──────────────────────────────────────────────────────────────
from casedesk.errors import (
    CasedeskAuthError,
    CasedeskConflictError,
    CasedeskEditStateError,
    CasedeskError,
    CasedeskNetworkError,
    CasedeskNotFoundError,
    CasedeskPermissionError,
    CasedeskRetryExhaustedError,
    CasedeskStoreReadError,
    CasedeskStoreWriteError,
    CasedeskUnknownFieldError,
    CasedeskValidationError,
    ErrorCode,
)

# ── Models ──────────────────────────────────────────────────────────────
from casedesk.models import (
    CaseStatus,
    Decision,
    DocumentAccess,
    DocumentRequirement,
    DocumentStatus,
    EditState,
    Entity,
    FaqEntry,
    FaqLanguage,
    Notification,
    NotificationType,
    QuestionStatus,
    RequirementCategory,
    SaveOutcome,
    SaveResult,
    SubmittedDocument,
    WebhookResponse,
)
from casedesk.notifications import AsyncNotificationCenter, NotificationCenter
from casedesk.records import AsyncRecordList, RecordList
from casedesk.webhook import AsyncTelegramWebhookHandler, TelegramWebhookHandler

# ── Public surface ──────────────────────────────────────────────────────

__all__ = [
    # Clients
    "CasedeskClient",
    "AsyncCasedeskClient",
    # Configuration
    "CasedeskConfig",
    "DEFAULT_STORAGE_BUCKET",
    # Editing
    "RecordEditSession",
    "AsyncRecordEditSession",
    "FieldMap",
    "FieldSpec",
    "FieldKind",
    "NOT_AVAILABLE",
    "case_fields",
    "client_fields",
    "compute_diff",
    "parse_amount",
    # Components
    "RecordList",
    "AsyncRecordList",
    "DocumentReview",
    "AsyncDocumentReview",
    "document_counts",
    "FaqCatalog",
    "AsyncFaqCatalog",
    "DocumentChecklist",
    "AsyncDocumentChecklist",
    "NotificationCenter",
    "AsyncNotificationCenter",
    "TelegramWebhookHandler",
    "AsyncTelegramWebhookHandler",
    # Error base + code enum
    "CasedeskError",
    "ErrorCode",
    # Transport errors
    "CasedeskValidationError",
    "CasedeskAuthError",
    "CasedeskPermissionError",
    "CasedeskNotFoundError",
    "CasedeskConflictError",
    "CasedeskRetryExhaustedError",
    "CasedeskNetworkError",
    # Editing errors
    "CasedeskStoreWriteError",
    "CasedeskStoreReadError",
    "CasedeskEditStateError",
    "CasedeskUnknownFieldError",
    # Models: results
    "SaveResult",
    "SaveOutcome",
    "EditState",
    "Entity",
    "SubmittedDocument",
    "DocumentAccess",
    "FaqEntry",
    "DocumentRequirement",
    "Notification",
    "WebhookResponse",
    # Models: enums
    "CaseStatus",
    "Decision",
    "DocumentStatus",
    "QuestionStatus",
    "NotificationType",
    "FaqLanguage",
    "RequirementCategory",
]
