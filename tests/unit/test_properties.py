"""Property-based tests for casedesk using Hypothesis.

These tests verify invariants of the diff engine and the edit session over
randomly generated entities and edits:

* no-op idempotence: unchanged working copies produce an empty diff,
* minimality: the diff holds exactly the changed mapped columns,
* amount normalization: display formatting never registers as a change,
* cancel restores the baseline exactly,
* a saved record round-trips to an empty diff.
"""

from __future__ import annotations

import copy

from conftest import CASE_ROW, FakeTable
from hypothesis import given, settings
from hypothesis import strategies as st

from casedesk.edit.diff import compute_diff
from casedesk.edit.fields import NOT_AVAILABLE, case_fields, format_amount, parse_amount
from casedesk.edit.session import RecordEditSession
from casedesk.models import CaseStatus, Decision, SaveOutcome

CASES = case_fields("PLN")

# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

_text = st.text(
    alphabet=st.characters(whitelist_categories=("Lu", "Ll", "Nd"), whitelist_characters=" -"),
    min_size=1,
    max_size=30,
).filter(lambda s: s.strip() and s.strip() != NOT_AVAILABLE)

_amounts = st.one_of(st.none(), st.integers(min_value=0, max_value=1_000_000))

_dates = st.dates().map(lambda d: d.isoformat())

_rows = st.fixed_dictionaries({
    "id": st.integers(min_value=1, max_value=10_000),
    "client_name": _text,
    "public_case_id": _text,
    "category": st.one_of(st.none(), _text),
    "status": st.sampled_from([s.value for s in CaseStatus]),
    "decision": st.sampled_from([d.value for d in Decision]),
    "deadline": _dates,
    "payment_received": st.booleans(),
    "payment_amount": _amounts,
    "notes": st.one_of(st.none(), _text),
})

_edits = st.dictionaries(
    keys=st.sampled_from(["name", "status", "decision", "payment_received", "payment", "notes"]),
    values=st.none(),
    max_size=6,
)


def _edit_value(field: str, draw_int: int, draw_text: str):
    if field == "status":
        return list(CaseStatus)[draw_int % len(CaseStatus)].value
    if field == "decision":
        return list(Decision)[draw_int % len(Decision)].value
    if field == "payment_received":
        return bool(draw_int % 2)
    if field == "payment":
        return draw_int
    return draw_text


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


@given(row=_rows)
def test_unchanged_copy_has_empty_diff(row):
    baseline = CASES.entity_from_row(row)
    assert compute_diff(baseline, copy.deepcopy(baseline), CASES) == {}


@given(row=_rows, amount=st.integers(min_value=0, max_value=1_000_000))
def test_amount_formatting_is_not_a_change(row, amount):
    row["payment_amount"] = amount
    baseline = CASES.entity_from_row(row)
    working = copy.deepcopy(baseline)
    working["payment"] = amount
    assert compute_diff(baseline, working, CASES) == {}
    working["payment"] = f"{amount} PLN"
    assert compute_diff(baseline, working, CASES) == {}


@given(amount=st.integers(min_value=-10**9, max_value=10**9))
def test_format_then_parse_is_identity(amount):
    assert parse_amount(format_amount(amount, "PLN")) == amount


@given(row=_rows, edits=_edits, n=st.integers(min_value=0, max_value=1000), text=_text)
def test_diff_is_minimal(row, edits, n, text):
    baseline = CASES.entity_from_row(row)
    working = copy.deepcopy(baseline)
    for field in edits:
        working[field] = CASES[field].coerce(_edit_value(field, n, text))

    diff = compute_diff(baseline, working, CASES)

    for spec in CASES.editable():
        changed = not spec.equal(baseline[spec.name], working[spec.name])
        assert (spec.column in diff) == changed
    assert set(diff) <= {spec.column for spec in CASES.editable()}


@given(edits=_edits, n=st.integers(min_value=0, max_value=1000), text=_text)
def test_cancel_restores_baseline(edits, n, text):
    table = FakeTable("cases", [CASE_ROW])
    session = RecordEditSession(table, CASES)
    entity = CASES.entity_from_row(CASE_ROW)
    original = copy.deepcopy(entity)

    session.begin_edit(entity)
    for field in edits:
        session.set_field(field, _edit_value(field, n, text))
    session.cancel_edit()

    assert entity == original
    assert table.calls == []


@settings(max_examples=50)
@given(edits=_edits, n=st.integers(min_value=0, max_value=1000), text=_text)
def test_save_round_trips(edits, n, text):
    table = FakeTable("cases", [CASE_ROW])
    session = RecordEditSession(table, CASES)
    entity = CASES.entity_from_row(CASE_ROW)

    session.begin_edit(entity)
    for field in edits:
        session.set_field(field, _edit_value(field, n, text))
    saved = copy.deepcopy(entity)
    result = session.save()

    writes = table.writes()
    if result.outcome is SaveOutcome.NO_CHANGES:
        assert writes == []
    else:
        assert len(writes) == 1
        assert result.drift == {}
        assert compute_diff(CASES.entity_from_row(table.rows[1]), saved, CASES) == {}
