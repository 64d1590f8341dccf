"""Record editing: field mapping tables, minimal diffs and edit sessions.

Exports
-------
FieldMap, FieldSpec, FieldKind
    Typed mapping from logical fields to storage columns.
compute_diff
    Minimal ``{column: value}`` update between a baseline and working copy.
RecordEditSession, AsyncRecordEditSession
    Begin / set / save-or-cancel lifecycle for one record.
"""

from .diff import changed_fields, compute_diff
from .fields import (
    NOT_AVAILABLE,
    FieldKind,
    FieldMap,
    FieldSpec,
    case_fields,
    client_fields,
    format_amount,
    parse_amount,
)
from .session import AsyncRecordEditSession, RecordEditSession

__all__ = [
    "NOT_AVAILABLE",
    "AsyncRecordEditSession",
    "FieldKind",
    "FieldMap",
    "FieldSpec",
    "RecordEditSession",
    "case_fields",
    "changed_fields",
    "client_fields",
    "compute_diff",
    "format_amount",
    "parse_amount",
]
