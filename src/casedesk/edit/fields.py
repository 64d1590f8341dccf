"""Field mapping tables: which logical fields are editable and how they map
to storage columns.

A :class:`FieldSpec` ties a logical field name to a storage column and a
:class:`FieldKind`.  The kind decides three things:

* how a row value is *presented* on an entity (amounts get a unit suffix,
  empty nullable text shows ``"N/A"``),
* how a user-supplied value is *coerced* by ``set_field``, and
* how both sides are *normalized* before comparison and sent to storage.

Fields without a column are presentation-only (composed from several
columns) and never take part in a diff.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from casedesk.errors import CasedeskUnknownFieldError, CasedeskValidationError
from casedesk.models import CaseStatus, Decision, Entity

NOT_AVAILABLE = "N/A"
"""Display sentinel for a missing value."""

_AMOUNT_RE = re.compile(r"([-+]?\d(?:[\d\s.,]*\d)?)\s*([^\d\s.,]*)")
_GROUPED_RE = re.compile(r"[-+]?\d{1,3}(?:,\d{3})+")

Number = int | float


class FieldKind(str, Enum):
    """How a field is coerced, presented and compared."""

    TEXT = "text"
    ENUM = "enum"
    DATE = "date"
    BOOLEAN = "boolean"
    AMOUNT = "amount"


# ---------------------------------------------------------------------------
# Amount helpers
# ---------------------------------------------------------------------------

def _is_blank(value: Any) -> bool:
    return value is None or (
        isinstance(value, str) and value.strip() in ("", NOT_AVAILABLE)
    )


def _decimal_text(digits: str) -> str:
    # With both separators present the last one is the decimal point.
    if "," in digits and "." in digits:
        if digits.rfind(",") > digits.rfind("."):
            return digits.replace(".", "").replace(",", ".")
        return digits.replace(",", "")
    if _GROUPED_RE.fullmatch(digits):
        return digits.replace(",", "")
    return digits.replace(",", ".")


def parse_amount(value: Any) -> Number | None:
    """Normalize a stored or displayed amount to a number.

    ``None``, ``""`` and ``"N/A"`` give ``None``; ``"1500 PLN"``, ``"1 500"``,
    ``"1,500"`` and ``1500.0`` give ``1500``; ``"99,50 PLN"`` gives ``99.5``.
    A comma followed by groups of exactly three digits is a thousands
    separator, otherwise it is a decimal comma.

    Raises
    ------
    CasedeskValidationError
        If *value* is not a number and does not look like one.
    """
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        raise CasedeskValidationError(
            message=f"Not an amount: {value!r}",
            context={"value": value, "constraint": "amount"},
        )
    if isinstance(value, (int, float, Decimal)):
        number = Decimal(str(value))
    else:
        match = _AMOUNT_RE.fullmatch(str(value).strip())
        if match is None:
            raise CasedeskValidationError(
                message=f"Not an amount: {value!r}",
                context={"value": value, "constraint": "amount"},
            )
        digits = _decimal_text(re.sub(r"\s", "", match.group(1)))
        try:
            number = Decimal(digits)
        except InvalidOperation as exc:
            raise CasedeskValidationError(
                message=f"Not an amount: {value!r}",
                context={"value": value, "constraint": "amount"},
                cause=exc,
            ) from exc
    if number == number.to_integral_value():
        return int(number)
    return float(number)


def format_amount(value: Any, unit: str) -> str:
    """Present an amount with its unit suffix, or ``"N/A"`` when missing."""
    number = parse_amount(value)
    if number is None:
        return NOT_AVAILABLE
    return f"{number} {unit}" if unit else str(number)


# ---------------------------------------------------------------------------
# Field specification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldSpec:
    """One row of a field mapping table.

    Attributes
    ----------
    name:
        Logical field name used on entities.
    column:
        Storage column name, or ``None`` for presentation-only fields.
    kind:
        The field's :class:`FieldKind`.
    choices:
        Allowed values for ``ENUM`` fields.
    nullable:
        For ``TEXT`` fields: ``None`` is presented as ``"N/A"`` and the
        sentinel maps back to ``None``.
    unit:
        Suffix for ``AMOUNT`` fields.
    compose:
        Builds the display value from the whole row (presentation-only
        fields).
    """

    name: str
    column: str | None
    kind: FieldKind = FieldKind.TEXT
    choices: tuple[str, ...] = ()
    nullable: bool = False
    unit: str = ""
    compose: Callable[[dict[str, Any]], Any] | None = None

    @property
    def editable(self) -> bool:
        return self.column is not None

    # -- row -> entity -------------------------------------------------------

    def present(self, row: dict[str, Any]) -> Any:
        """Return the display value of this field for a fetched row."""
        if self.compose is not None:
            return self.compose(row)
        raw = row.get(self.column) if self.column else None
        if self.kind is FieldKind.AMOUNT:
            return format_amount(raw, self.unit)
        if self.kind is FieldKind.TEXT and self.nullable and raw is None:
            return NOT_AVAILABLE
        if self.kind is FieldKind.DATE and isinstance(raw, str) and raw:
            return raw[:10]
        return raw

    # -- user input ----------------------------------------------------------

    def coerce(self, value: Any) -> Any:
        """Coerce a form value to the type this field holds on an entity."""
        if isinstance(value, Enum):
            value = value.value
        kind = self.kind
        if kind is FieldKind.BOOLEAN:
            return _coerce_bool(self.name, value)
        if kind is FieldKind.DATE:
            return _coerce_date(self.name, value)
        if kind is FieldKind.AMOUNT:
            if _is_blank(value):
                return NOT_AVAILABLE
            return format_amount(value, self.unit)
        if value is None:
            return NOT_AVAILABLE if self.nullable else None
        value = str(value)
        if kind is FieldKind.ENUM and self.choices and value not in self.choices:
            raise CasedeskValidationError(
                message=f"{value!r} is not a valid {self.name}",
                context={"field": self.name, "value": value, "constraint": self.choices},
            )
        return value

    # -- comparison / storage ------------------------------------------------

    def normalize(self, value: Any) -> Any:
        """Return the storage-ready form of an entity value.

        Two entity values are equal for diff purposes exactly when their
        normalized forms are equal.
        """
        if isinstance(value, Enum):
            value = value.value
        if self.kind is FieldKind.AMOUNT:
            return parse_amount(value)
        if self.kind is FieldKind.DATE:
            return _coerce_date(self.name, value)
        if self.kind is FieldKind.TEXT and self.nullable and _is_blank(value):
            return None
        return value

    def equal(self, left: Any, right: Any) -> bool:
        return self.normalize(left) == self.normalize(right)


def _coerce_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "on", "off", "1", "0"):
        return value.strip().lower() in ("true", "on", "1")
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise CasedeskValidationError(
        message=f"{value!r} is not a boolean for {name}",
        context={"field": name, "value": value, "constraint": "boolean"},
    )


def _coerce_date(name: str, value: Any) -> str | None:
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()[:10]
    try:
        return date.fromisoformat(text).isoformat()
    except ValueError as exc:
        raise CasedeskValidationError(
            message=f"{value!r} is not an ISO date for {name}",
            context={"field": name, "value": value, "constraint": "YYYY-MM-DD"},
            cause=exc,
        ) from exc


# ---------------------------------------------------------------------------
# Mapping table
# ---------------------------------------------------------------------------

class FieldMap:
    """Ordered, immutable field mapping table for one store table.

    Parameters
    ----------
    table:
        Store table the entities live in.
    specs:
        Field specifications in display order.
    id_column:
        Primary-key column, copied to every entity as ``"id"``.
    """

    def __init__(self, table: str, specs: list[FieldSpec], id_column: str = "id") -> None:
        names = [spec.name for spec in specs]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate field names in mapping for {table}")
        self.table = table
        self.id_column = id_column
        self._specs: dict[str, FieldSpec] = {spec.name: spec for spec in specs}

    def __getitem__(self, name: str) -> FieldSpec:
        try:
            return self._specs[name]
        except KeyError:
            raise CasedeskUnknownFieldError(
                message=f"{name!r} is not a field of {self.table}",
                context={"field": name, "known_fields": list(self._specs)},
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    def editable(self) -> Iterator[FieldSpec]:
        """Yield the fields that map to a storage column."""
        return (spec for spec in self._specs.values() if spec.editable)

    def entity_from_row(self, row: dict[str, Any]) -> Entity:
        """Build a presentation entity from a fetched row."""
        entity: Entity = {"id": row.get(self.id_column)}
        for spec in self._specs.values():
            entity[spec.name] = spec.present(row)
        return entity


# ---------------------------------------------------------------------------
# Built-in tables
# ---------------------------------------------------------------------------

def display_name(row: dict[str, Any]) -> str:
    """``"First Last"``, falling back to the username, then ``"Unknown Client"``."""
    full = f"{row.get('first_name') or ''} {row.get('last_name') or ''}".strip()
    return full or row.get("username") or "Unknown Client"


def case_fields(currency: str = "PLN") -> FieldMap:
    """Field mapping for the ``cases`` table."""
    return FieldMap("cases", [
        FieldSpec("name", "client_name"),
        FieldSpec("case_number", "public_case_id"),
        FieldSpec("category", "category", nullable=True),
        FieldSpec(
            "status", "status", FieldKind.ENUM,
            choices=tuple(s.value for s in CaseStatus),
        ),
        FieldSpec(
            "decision", "decision", FieldKind.ENUM,
            choices=tuple(d.value for d in Decision),
        ),
        FieldSpec("deadline", "deadline", FieldKind.DATE),
        FieldSpec("payment_received", "payment_received", FieldKind.BOOLEAN),
        FieldSpec("payment", "payment_amount", FieldKind.AMOUNT, unit=currency),
        FieldSpec("notes", "notes", nullable=True),
    ])


def client_fields() -> FieldMap:
    """Field mapping for client rows of the ``users`` table."""
    return FieldMap("users", [
        FieldSpec("display_name", None, compose=display_name),
        FieldSpec("first_name", "first_name", nullable=True),
        FieldSpec("last_name", "last_name", nullable=True),
        FieldSpec("email", "email", nullable=True),
        FieldSpec("preferred_lang", "preferred_lang", nullable=True),
        FieldSpec(
            "role", "role", FieldKind.ENUM,
            choices=("lawyer", "assistant", "client"),
        ),
        FieldSpec("is_active", "is_active", FieldKind.BOOLEAN),
    ])
