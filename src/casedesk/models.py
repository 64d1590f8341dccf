"""Public data models for the casedesk SDK.

Every result type, enum, and supporting dataclass referenced by the public
API surface.  Entities themselves are plain ``dict`` objects keyed by the
logical field names of a :class:`~casedesk.edit.fields.FieldMap`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from casedesk.errors import CasedeskStoreReadError

Entity = dict[str, Any]
"""An in-memory case/client record keyed by logical field name."""


# ---------------------------------------------------------------------------
# Store enums
# ---------------------------------------------------------------------------

class CaseStatus(str, Enum):
    """Values of the ``case_status`` Postgres enum."""

    NEW = "new"
    AWAITING_DOCS = "awaiting_docs"
    IN_REVIEW = "in_review"
    SUBMITTED_TO_OFFICE = "submitted_to_office"
    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_MORE_INFO = "needs_more_info"
    ARCHIVED = "archived"


class Decision(str, Enum):
    """Outcome of a case as recorded by the lawyer."""

    PENDING = "pending"
    POSITIVE = "positive"
    NEGATIVE = "negative"


class DocumentStatus(str, Enum):
    """Values of the ``document_status`` Postgres enum."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    MISSING = "missing"


class QuestionStatus(str, Enum):
    """Values of the ``question_status`` Postgres enum."""

    NEW = "new"
    ASSIGNED = "assigned"
    ANSWERED = "answered"
    CLOSED = "closed"


# ---------------------------------------------------------------------------
# Edit session types
# ---------------------------------------------------------------------------

class EditState(str, Enum):
    """States of a :class:`~casedesk.edit.session.RecordEditSession`."""

    VIEWING = "viewing"
    EDITING = "editing"


class SaveOutcome(str, Enum):
    """What a call to ``save`` ended up doing."""

    NO_CHANGES = "no_changes"
    """The working copy matched the baseline; nothing was sent."""

    SAVED = "saved"
    """The partial update succeeded and the record was re-fetched."""

    SAVED_UNCONFIRMED = "saved_unconfirmed"
    """The partial update succeeded but re-fetching the record failed."""


@dataclass
class SaveResult:
    """Result of ``RecordEditSession.save``.

    Attributes
    ----------
    outcome:
        See :class:`SaveOutcome`.
    record_id:
        ID of the saved row.
    changes:
        The partial update that was sent, keyed by storage column.
    refresh_error:
        The read error raised while re-fetching, for ``SAVED_UNCONFIRMED``.
    drift:
        Columns whose re-fetched value differs from what was sent.
    """

    outcome: SaveOutcome
    record_id: Any
    changes: dict[str, Any] = field(default_factory=dict)
    refresh_error: CasedeskStoreReadError | None = None
    drift: dict[str, Any] = field(default_factory=dict)

    @property
    def fields_updated(self) -> int:
        return len(self.changes)

    @property
    def confirmed(self) -> bool:
        return self.outcome is not SaveOutcome.SAVED_UNCONFIRMED

    def summary(self) -> str:
        """Short human-readable report, e.g. ``"1 field updated"``."""
        if self.outcome is SaveOutcome.NO_CHANGES:
            return "no changes"
        noun = "field" if self.fields_updated == 1 else "fields"
        text = f"{self.fields_updated} {noun} updated"
        if self.outcome is SaveOutcome.SAVED_UNCONFIRMED:
            text += " (refresh failed)"
        return text


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

@dataclass
class SubmittedDocument:
    """A client document awaiting or having passed review."""

    id: int
    case_id: int | None
    client_name: str
    document_name: str
    upload_date: str
    status: DocumentStatus
    file_size: str | None = None
    notes: str | None = None


@dataclass
class DocumentAccess:
    """How a document can be opened.

    Exactly one of ``content`` (downloaded bytes) or ``signed_url``
    (fallback when the download failed) is set.
    """

    filename: str
    mime_type: str
    content: bytes | None = None
    signed_url: str | None = None


# ---------------------------------------------------------------------------
# Reference content: FAQ and document checklist
# ---------------------------------------------------------------------------

class FaqLanguage(str, Enum):
    """Display language of an FAQ entry."""

    ENGLISH = "English"
    POLISH = "Polish"


@dataclass
class FaqEntry:
    """A published question/answer pair shown to clients."""

    id: int
    question: str
    answer: str
    language: FaqLanguage
    category: str | None = None


class RequirementCategory(str, Enum):
    """Grouping of a required document on the checklist."""

    IDENTITY = "Identity"
    WORK = "Work"
    HOUSING = "Housing"
    FINANCIAL = "Financial"
    EDUCATION = "Education"
    PROCESS = "Process"


@dataclass
class DocumentRequirement:
    """One document a client must (or may) provide for a process.

    ``id`` is ``"<process id>-<index>"``, the position of the document in
    the process's ``required_documents`` list.
    """

    id: str
    name: str
    category: RequirementCategory
    required: bool
    description: str
    process_name: str | None = None


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class NotificationType(str, Enum):
    """Kind of insert event a notification was raised for."""

    MESSAGE = "message"
    DOCUMENT = "document"
    QUESTION = "question"


@dataclass
class Notification:
    """One entry in the dashboard notification bell."""

    id: str
    type: NotificationType
    title: str
    description: str
    timestamp: datetime
    read: bool = False


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------

@dataclass
class WebhookResponse:
    """HTTP status and plain-text body returned to the bot platform."""

    status: int
    body: str
