"""Tests for edit/diff.py."""

from __future__ import annotations

import copy

from casedesk.edit.diff import changed_fields, compute_diff
from casedesk.edit.fields import NOT_AVAILABLE


def _entity(cases_map, case_row):
    return cases_map.entity_from_row(case_row)


class TestComputeDiff:
    def test_identical_entities_give_empty_diff(self, cases_map, case_row):
        baseline = _entity(cases_map, case_row)
        assert compute_diff(baseline, copy.deepcopy(baseline), cases_map) == {}

    def test_single_change_maps_to_column(self, cases_map, case_row):
        baseline = _entity(cases_map, case_row)
        working = copy.deepcopy(baseline)
        working["payment"] = "2000 PLN"
        assert compute_diff(baseline, working, cases_map) == {"payment_amount": 2000}

    def test_presentational_difference_is_not_a_change(self, cases_map, case_row):
        baseline = _entity(cases_map, case_row)
        working = copy.deepcopy(baseline)
        working["payment"] = 1500
        working["notes"] = None
        assert compute_diff(baseline, working, cases_map) == {}

    def test_na_to_value_and_back_to_none(self, cases_map, case_row):
        baseline = _entity(cases_map, case_row)
        working = copy.deepcopy(baseline)
        working["notes"] = "Call back Monday"
        working["payment"] = NOT_AVAILABLE
        assert compute_diff(baseline, working, cases_map) == {
            "notes": "Call back Monday",
            "payment_amount": None,
        }

    def test_read_only_fields_are_ignored(self, clients_map):
        row = {"id": 7, "first_name": "Jan", "last_name": "K", "role": "client", "is_active": True}
        baseline = clients_map.entity_from_row(row)
        working = copy.deepcopy(baseline)
        working["display_name"] = "Someone Else"
        assert compute_diff(baseline, working, clients_map) == {}

    def test_unmapped_keys_are_ignored(self, cases_map, case_row):
        baseline = _entity(cases_map, case_row)
        working = copy.deepcopy(baseline)
        working["scratch"] = "ui-only"
        assert compute_diff(baseline, working, cases_map) == {}

    def test_missing_field_compares_as_none(self, cases_map, case_row):
        baseline = _entity(cases_map, case_row)
        working = copy.deepcopy(baseline)
        del working["category"]
        assert compute_diff(baseline, working, cases_map) == {}
        del working["decision"]
        assert compute_diff(baseline, working, cases_map) == {"decision": None}

    def test_multiple_changes(self, cases_map, case_row):
        baseline = _entity(cases_map, case_row)
        working = copy.deepcopy(baseline)
        working["status"] = "approved"
        working["decision"] = "positive"
        working["payment_received"] = True
        assert compute_diff(baseline, working, cases_map) == {
            "status": "approved",
            "decision": "positive",
            "payment_received": True,
        }


class TestChangedFields:
    def test_logical_names(self, cases_map, case_row):
        baseline = _entity(cases_map, case_row)
        working = copy.deepcopy(baseline)
        working["name"] = "Anna Nowak-Kowalska"
        working["payment"] = "1600"
        assert changed_fields(baseline, working, cases_map) == ["name", "payment"]
