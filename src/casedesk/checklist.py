"""Document checklist derived from the ``processes`` table.

Each active process lists the documents it needs in
``required_documents``; the checklist flattens those lists into
:class:`~casedesk.models.DocumentRequirement` items.  Adding a requirement
creates a new single-document process.
"""

from __future__ import annotations

from typing import Any

from casedesk.errors import CasedeskValidationError
from casedesk.models import DocumentRequirement, RequirementCategory
from casedesk.observability import fields, get_logger

log = get_logger("casedesk.checklist")

PROCESSES_TABLE = "processes"
DEFAULT_DURATION_DAYS = 30


def requirements_from_process(process: dict[str, Any]) -> list[DocumentRequirement]:
    """Expand one ``processes`` row into ``"<id>-<index>"`` requirements."""
    name = process.get("name")
    return [
        DocumentRequirement(
            id=f"{process['id']}-{index}",
            name=document,
            category=RequirementCategory.PROCESS,
            required=True,
            description=f"Required for: {name}",
            process_name=name,
        )
        for index, document in enumerate(process.get("required_documents") or [])
    ]


def _category(value: RequirementCategory | str) -> RequirementCategory:
    try:
        return RequirementCategory(value)
    except ValueError as exc:
        raise CasedeskValidationError(
            message=f"{value!r} is not a document category",
            context={
                "field": "category",
                "value": value,
                "constraint": tuple(c.value for c in RequirementCategory),
            },
            cause=exc,
        ) from exc


def _new_process(name: str, description: str) -> dict[str, Any]:
    if not name or not name.strip():
        raise CasedeskValidationError(
            message="A document requirement needs a name",
            context={"field": "name", "value": name},
        )
    name = name.strip()
    return {
        "name": f"{name} Process",
        "description": description or f"Process for {name}",
        "required_documents": [name],
        "estimated_duration_days": DEFAULT_DURATION_DAYS,
        "is_active": True,
    }


def _added(
    row: dict[str, Any],
    values: dict[str, Any],
    category: RequirementCategory,
    required: bool,
    description: str,
) -> DocumentRequirement:
    process_name = row.get("name") or values["name"]
    log.info(
        "document requirement added",
        extra=fields(op="add_requirement", record_id=row.get("id"), process=process_name),
    )
    return DocumentRequirement(
        id=f"{row.get('id')}-0",
        name=values["required_documents"][0],
        category=category,
        required=required,
        description=description or f"Required for: {process_name}",
        process_name=process_name,
    )


class DocumentChecklist:
    """Synchronous document checklist.

    Parameters
    ----------
    table:
        :class:`~casedesk.store.TableAPI` for ``processes``.
    """

    def __init__(self, table: Any) -> None:
        self._table = table

    def requirements(self) -> list[DocumentRequirement]:
        """Requirements of all active processes, newest process first."""
        rows = self._table.select(
            "*", filters={"is_active": True}, order="created_at", descending=True,
        )
        return [req for row in rows for req in requirements_from_process(row)]

    def add_requirement(
        self,
        name: str,
        category: RequirementCategory | str = RequirementCategory.IDENTITY,
        required: bool = True,
        description: str = "",
    ) -> DocumentRequirement:
        """Create a single-document process for *name* and return its requirement.

        Raises
        ------
        CasedeskValidationError
            If *name* is blank or *category* is unknown; nothing is sent.
        """
        kind = _category(category)
        values = _new_process(name, description)
        row = self._table.insert(values)
        return _added(row, values, kind, required, description)


class AsyncDocumentChecklist:
    """Asynchronous :class:`DocumentChecklist`."""

    def __init__(self, table: Any) -> None:
        self._table = table

    async def requirements(self) -> list[DocumentRequirement]:
        rows = await self._table.select(
            "*", filters={"is_active": True}, order="created_at", descending=True,
        )
        return [req for row in rows for req in requirements_from_process(row)]

    async def add_requirement(
        self,
        name: str,
        category: RequirementCategory | str = RequirementCategory.IDENTITY,
        required: bool = True,
        description: str = "",
    ) -> DocumentRequirement:
        kind = _category(category)
        values = _new_process(name, description)
        row = await self._table.insert(values)
        return _added(row, values, kind, required, description)
