"""Tests for the patch engine: atomicity, nested paths, remove, errors.

Driven through ``Duet.llm.apply_patch`` since that is how callers reach
the engine; pointer helpers are tested directly.
"""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from duet import JsonPatchOp, create_duet
from duet.engine.patch import parse_patch_text, parse_pointer

from tests.conftest import trip_fields
from tests.strategies import invalid_op, valid_budget, valid_op


class TestPointer:
    def test_leading_slash(self):
        assert parse_pointer("/contact/name") == ["contact", "name"]

    def test_without_leading_slash(self):
        assert parse_pointer("budget") == ["budget"]

    def test_escapes(self):
        assert parse_pointer("/a~1b/c~0d") == ["a/b", "c~d"]


class TestSingleField:
    def test_replace(self, trip):
        before = trip.state.snapshot()
        result = trip.llm.apply_patch([{"op": "replace", "path": "/budget", "value": 8000}])
        assert result.success
        assert result.applied == 1
        after = trip.state.snapshot()
        assert after["budget"] == 8000
        assert {k: v for k, v in after.items() if k != "budget"} == {
            k: v for k, v in before.items() if k != "budget"
        }

    def test_add_on_root_behaves_like_replace(self, trip):
        assert trip.llm.apply_patch([{"op": "add", "path": "/destination", "value": "Rome"}])
        assert trip.data["destination"] == "Rome"

    def test_accepts_model_instances(self, trip):
        op = JsonPatchOp(op="replace", path="/days", value=14)
        assert trip.llm.apply_patch([op]).applied == 1
        assert trip.data["days"] == 14

    def test_empty_batch(self, trip):
        result = trip.llm.apply_patch([])
        assert result.success
        assert result.applied == 0
        assert len(trip.llm.history()) == 1

    def test_null_value_is_a_present_value(self, trip):
        result = trip.llm.apply_patch([{"op": "replace", "path": "/budget", "value": None}])
        assert result.error == "Invalid value for budget: Expected number, received null"


class TestAtomicity:
    def test_invalid_second_op_rolls_back_first(self, form):
        before = form.state.snapshot()
        result = form.llm.apply_patch([
            {"op": "replace", "path": "/name", "value": "new"},
            {"op": "replace", "path": "/count", "value": 999},
        ])
        assert not result.success
        assert result.error == "Invalid value for count: Number must be less than or equal to 100"
        assert form.state.snapshot() == before

    def test_unknown_field_aborts(self, trip):
        before = trip.state.snapshot()
        result = trip.llm.apply_patch([
            {"op": "replace", "path": "/budget", "value": 1},
            {"op": "replace", "path": "/hotel", "value": "Hilton"},
        ])
        assert result.error == "Unknown field: hotel"
        assert trip.state.snapshot() == before

    def test_malformed_op_reports_index(self, trip):
        result = trip.llm.apply_patch([
            {"op": "replace", "path": "/budget", "value": 1},
            {"op": "move", "path": "/budget"},
        ])
        assert result.error.startswith("Invalid operation at index 1:")
        assert trip.data["budget"] == 5000

    def test_missing_value(self, trip):
        result = trip.llm.apply_patch([{"op": "replace", "path": "/budget"}])
        assert result.error.startswith("Invalid operation at index 0:")
        assert "value" in result.error

    def test_later_op_sees_earlier_candidate(self, form):
        result = form.llm.apply_patch([
            {"op": "replace", "path": "/contact/name", "value": "A"},
            {"op": "replace", "path": "/contact/email", "value": "a@x.io"},
        ])
        assert result.applied == 2
        assert form.data["contact"] == {"name": "A", "email": "a@x.io", "phone": ""}

    def test_listener_fires_once_per_batch(self, trip):
        calls = []
        trip.subscribe(lambda new, old: calls.append(new))
        trip.llm.apply_patch([
            {"op": "replace", "path": "/budget", "value": 1},
            {"op": "replace", "path": "/days", "value": 2},
        ])
        assert len(calls) == 1

    @settings(max_examples=50, deadline=None)
    @given(
        prefix=st.lists(valid_op, max_size=3),
        bad=invalid_op,
        suffix=st.lists(valid_op, max_size=3),
    )
    def test_any_invalid_op_leaves_state_untouched(self, prefix, bad, suffix):
        d = create_duet("TripBudget", trip_fields())
        d.set("budget", 1234)
        before = d.state.snapshot()
        result = d.llm.apply_patch(prefix + [bad] + suffix)
        assert not result.success
        assert d.state.snapshot() == before
        assert len(d.llm.history()) == 1

    @settings(max_examples=50, deadline=None)
    @given(value=valid_budget)
    def test_any_valid_budget_applies(self, value):
        d = create_duet("TripBudget", trip_fields())
        result = d.llm.apply_patch([{"op": "replace", "path": "/budget", "value": value}])
        assert result.applied == 1
        assert d.data["budget"] == value


class TestNested:
    def test_nested_replace_preserves_siblings(self, form):
        result = form.llm.apply_patch([{"op": "replace", "path": "/contact/name", "value": "John"}])
        assert result.applied == 1
        assert form.data["contact"] == {"name": "John", "email": "", "phone": ""}

    def test_nested_validation_is_whole_object(self, form):
        before = form.data["settings"]
        result = form.llm.apply_patch([{"op": "replace", "path": "/settings/count", "value": 999}])
        assert not result.success
        assert result.error.startswith("Invalid value for /settings/count: count: ")
        assert form.data["settings"] == before

    def test_refinement_enforced_on_leaf_write(self, form):
        form.set("rating", {"stars": ["*"] * 5})
        result = form.llm.apply_patch([{"op": "add", "path": "/rating/stars/-", "value": "*"}])
        assert result.error == "Invalid value for /rating/stars/-: At most 5 stars"
        assert len(form.data["rating"]["stars"]) == 5

    def test_array_append_and_insert(self, form):
        form.llm.apply_patch([{"op": "add", "path": "/rating/stars/-", "value": "b"}])
        form.llm.apply_patch([{"op": "add", "path": "/rating/stars/0", "value": "a"}])
        assert form.data["rating"]["stars"] == ["a", "b"]

    def test_array_replace_by_index(self, form):
        form.set("rating", {"stars": ["a", "b"]})
        form.llm.apply_patch([{"op": "replace", "path": "/rating/stars/1", "value": "z"}])
        assert form.data["rating"]["stars"] == ["a", "z"]

    def test_array_bad_index(self, form):
        result = form.llm.apply_patch([{"op": "replace", "path": "/rating/stars/5", "value": "z"}])
        assert result.error == "Invalid value for /rating/stars/5: Invalid array index: 5"

    @pytest.mark.parametrize("segment", ["²", "01", "+1", " 1"])
    def test_non_canonical_index_fails_replace(self, form, segment):
        form.set("rating", {"stars": ["a", "b"]})
        path = f"/rating/stars/{segment}"
        result = form.llm.apply_patch([{"op": "replace", "path": path, "value": "z"}])
        assert result.error == f"Invalid value for {path}: Invalid array index: {segment}"
        assert form.data["rating"]["stars"] == ["a", "b"]
        assert len(form.llm.history()) == 1

    @pytest.mark.parametrize("segment", ["²", "01"])
    def test_non_canonical_index_remove_is_noop(self, form, segment):
        form.set("rating", {"stars": ["a", "b"]})
        result = form.llm.apply_patch([{"op": "remove", "path": f"/rating/stars/{segment}"}])
        assert result.success
        assert form.data["rating"]["stars"] == ["a", "b"]
        assert len(form.llm.history()) == 1

    def test_missing_intermediate_objects_are_created(self, form):
        result = form.llm.apply_patch([{"op": "add", "path": "/settings/label", "value": "x"}])
        assert result.success
        assert form.data["settings"] == {"count": 1, "label": "x"}

    def test_undeclared_nested_key_is_stripped(self, form):
        result = form.llm.apply_patch([{"op": "add", "path": "/contact/fax", "value": "1"}])
        assert result.success
        assert "fax" not in form.data["contact"]

    def test_traverse_into_scalar_fails(self, trip):
        result = trip.llm.apply_patch([{"op": "replace", "path": "/budget/x", "value": 1}])
        assert not result.success
        assert result.error.startswith("Invalid value for /budget/x:")


class TestRemove:
    def test_root_remove_resets_to_default(self, trip):
        trip.set("budget", 1)
        trip.set("days", 30)
        result = trip.llm.apply_patch([{"op": "remove", "path": "/budget"}])
        assert result.applied == 1
        assert trip.data["budget"] == 5000
        assert trip.data["days"] == 30

    def test_nested_remove_of_optional_key(self, form):
        form.set("settings", {"count": 2, "label": "x"})
        result = form.llm.apply_patch([{"op": "remove", "path": "/settings/label"}])
        assert result.success
        assert form.data["settings"] == {"count": 2}

    def test_nested_remove_missing_path_is_noop(self, form):
        before = form.state.snapshot()
        result = form.llm.apply_patch([{"op": "remove", "path": "/contact/a/b/c"}])
        assert result.success
        assert form.state.snapshot() == before

    def test_nested_remove_of_required_key_fails_at_commit(self, form):
        before = form.state.snapshot()
        result = form.llm.apply_patch([{"op": "remove", "path": "/contact/email"}])
        assert result.error == "Failed to commit changes to store"
        assert form.state.snapshot() == before


class TestParseText:
    def test_bare_and_wrapped_are_equivalent(self):
        ops = '[{"op":"replace","path":"/budget","value":1}]'
        assert parse_patch_text(ops) == parse_patch_text('{"patch": %s}' % ops)

    def test_deeply_nested_text_is_a_parse_error(self):
        from duet.exceptions import MalformedPatchError

        with pytest.raises(MalformedPatchError, match="^JSON parse error"):
            parse_patch_text("[" * 100_000 + "]" * 100_000)

    def test_deeply_nested_text_through_bridge_is_not_audited(self, trip):
        before = trip.state.snapshot()
        result = trip.llm.apply_json("[" * 100_000 + "]" * 100_000)
        assert result.error.startswith("JSON parse error")
        assert trip.llm.history() == []
        assert trip.state.snapshot() == before
