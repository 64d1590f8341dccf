"""Field-level diff between a baseline snapshot and a working copy.

Only fields listed in the :class:`~casedesk.edit.fields.FieldMap` with a
storage column are compared.  Each side is normalized by its field spec
before comparison, so presentational differences (``1500`` versus
``"1500 PLN"``, ``None`` versus ``"N/A"``) never register as a change.
"""

from __future__ import annotations

from typing import Any

from casedesk.models import Entity

from .fields import FieldMap


def compute_diff(baseline: Entity, working: Entity, field_map: FieldMap) -> dict[str, Any]:
    """Return ``{storage_column: storage_value}`` for every changed field.

    Parameters
    ----------
    baseline:
        Snapshot taken when editing began.
    working:
        The user-edited copy.
    field_map:
        The table's field mapping; the authority on which fields are
        editable.

    Returns
    -------
    dict
        Empty when every mapped field is equal under its field's rule.
        Fields missing from an entity compare as ``None``.
    """
    changes: dict[str, Any] = {}
    for spec in field_map.editable():
        before = spec.normalize(baseline.get(spec.name))
        after = spec.normalize(working.get(spec.name))
        if before != after:
            changes[spec.column] = after
    return changes


def changed_fields(baseline: Entity, working: Entity, field_map: FieldMap) -> list[str]:
    """Logical names of the fields :func:`compute_diff` would send."""
    return [
        spec.name
        for spec in field_map.editable()
        if not spec.equal(baseline.get(spec.name), working.get(spec.name))
    ]
