"""
Tests for ExpansionState.
"""
import pytest

from hierarchy_pivot.tree import ExpansionState


@pytest.fixture
def state():
    return ExpansionState(root_ids={"le": "LE_ROOT", "year": "YEAR_ROOT"})


def test_root_defaults(state):
    state.set_row_dimensions(["le", "year"])

    assert state.is_expanded("le", "row", "LE_ROOT")
    assert not state.is_expanded("year", "row", "YEAR_ROOT")
    assert not state.is_expanded("le", "column", "LE_ROOT")
    assert not state.is_expanded("year", "column", "YEAR_ROOT")
    # Non-root nodes start collapsed everywhere
    assert not state.is_expanded("le", "row", "A100")


def test_column_root_policy():
    state = ExpansionState(root_ids={"year": "YEAR_ROOT"}, column_root_expanded=True)
    assert state.is_expanded("year", "column", "YEAR_ROOT")


def test_zones_are_independent(state):
    state.expand("le", "column", "EU")
    assert state.is_expanded("le", "column", "EU")
    assert not state.is_expanded("le", "row", "EU")


def test_toggle_and_version(state):
    version = state.version
    assert state.toggle("le", "row", "EU") is True
    assert state.toggle("le", "row", "EU") is False
    assert state.version == version + 2


def test_set_row_dimensions_only_touches_on_change(state):
    state.set_row_dimensions(["le"])
    version = state.version
    state.set_row_dimensions(["LE"])
    assert state.version == version
    state.set_row_dimensions(["year", "le"])
    assert state.version == version + 1
    assert not state.is_expanded("le", "row", "LE_ROOT")


def test_unknown_zone_rejected(state):
    with pytest.raises(ValueError):
        state.expand("le", "header", "EU")
    with pytest.raises(ValueError):
        state.is_expanded("le", "header", "EU")


def test_expand_all_and_collapse_all(state):
    state.expand_all("le", "row", ["EU", "US"])
    assert state.is_expanded("le", "row", "US")

    state.collapse_all("le")
    assert not state.is_expanded("le", "row", "US")
    assert not state.is_expanded("le", "row", "LE_ROOT")

    state.expand("year", "column", "YEAR_ROOT")
    state.collapse_all()
    assert not state.is_expanded("year", "column", "YEAR_ROOT")


def test_snapshot_changes_with_state(state):
    before = state.snapshot()
    state.expand("le", "row", "EU")
    assert state.snapshot() != before
    hash(state.snapshot())


def test_serialize_round_trip(state):
    state.set_row_dimensions(["le"])
    state.expand("le", "row", "EU")
    state.collapse("le", "row", "LE_ROOT")

    restored = ExpansionState.deserialize(state.serialize(), root_ids={"le": "LE_ROOT"})

    assert restored.is_expanded("le", "row", "EU")
    assert not restored.is_expanded("le", "row", "LE_ROOT")
    assert restored.version == state.version
    assert restored.snapshot() == state.snapshot()
