"""Full error hierarchy for the casedesk SDK.

Every public error class inherits from CasedeskError. Each carries a
machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

Error codes are defined as a :class:`str` enum so that they serialise
naturally to JSON and can be matched with simple ``==`` comparisons.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error the SDK can raise."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    NETWORK_ERROR = "NETWORK_ERROR"
    STORE_WRITE_ERROR = "STORE_WRITE_ERROR"
    STORE_READ_ERROR = "STORE_READ_ERROR"
    EDIT_STATE_ERROR = "EDIT_STATE_ERROR"
    UNKNOWN_FIELD = "UNKNOWN_FIELD"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class CasedeskError(Exception):
    """Base exception for all casedesk errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
        Keys and expected types are documented per subclass.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


class _CodedError(CasedeskError):
    """Helper base: subclasses pin ``code`` through the class attribute."""

    error_code: ErrorCode = ErrorCode.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=self.error_code,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# API / transport errors
# ---------------------------------------------------------------------------

class CasedeskValidationError(_CodedError):
    """The store rejected the request payload (400), or a caller-supplied
    value failed validation before any request was made.

    Context keys: ``field``, ``value``, ``constraint``, ``status_code``.
    """

    error_code = ErrorCode.VALIDATION_ERROR


class CasedeskAuthError(_CodedError):
    """The store returned 401 -- the API key or access token is invalid.

    Context keys: ``status_code``, ``store_code``.
    """

    error_code = ErrorCode.AUTH_ERROR


class CasedeskPermissionError(_CodedError):
    """The store returned 403 -- row-level security denied the operation.

    Context keys: ``status_code``, ``operation``.
    """

    error_code = ErrorCode.PERMISSION_ERROR


class CasedeskNotFoundError(_CodedError):
    """The requested row, object or endpoint does not exist.

    Context keys: ``table``, ``record_id``, ``path``.
    """

    error_code = ErrorCode.NOT_FOUND


class CasedeskConflictError(_CodedError):
    """The store returned 409, typically a unique or foreign-key violation.

    Context keys: ``status_code``, ``store_code``.
    """

    error_code = ErrorCode.CONFLICT


class CasedeskRetryExhaustedError(_CodedError):
    """All retry attempts have been exhausted for a retryable request.

    Context keys: ``attempts``, ``last_status_code``.
    """

    error_code = ErrorCode.RETRY_EXHAUSTED


class CasedeskNetworkError(_CodedError):
    """A transport-level failure occurred (timeout, DNS, connection reset).

    Context keys: ``url``, ``attempt``.
    """

    error_code = ErrorCode.NETWORK_ERROR


# ---------------------------------------------------------------------------
# Edit session errors
# ---------------------------------------------------------------------------

class CasedeskStoreWriteError(_CodedError):
    """The partial update issued by a save failed.

    The edit session stays in the editing state and the working copy is
    left untouched so the save can be retried.

    Context keys: ``table``, ``record_id``, ``columns``.
    """

    error_code = ErrorCode.STORE_WRITE_ERROR


class CasedeskStoreReadError(_CodedError):
    """Re-fetching a record after a successful write failed.

    Not raised from ``save``; attached to the
    :class:`~casedesk.models.SaveResult` as ``refresh_error``.

    Context keys: ``table``, ``record_id``.
    """

    error_code = ErrorCode.STORE_READ_ERROR


class CasedeskEditStateError(_CodedError):
    """An operation was called in a state that does not allow it.

    Context keys: ``record_id``, ``state``, ``operation``.
    """

    error_code = ErrorCode.EDIT_STATE_ERROR


class CasedeskUnknownFieldError(_CodedError):
    """A field name is not part of the field mapping table.

    Context keys: ``field``, ``known_fields``.
    """

    error_code = ErrorCode.UNKNOWN_FIELD
