"""
Tests for building pivot results from hierarchies, expansion and facts.
"""
import pytest

from hierarchy_pivot.catalog import flat_hierarchy
from hierarchy_pivot.controller import PivotController
from hierarchy_pivot.diagnostics import DiagnosticCode
from hierarchy_pivot.matrix_builder import TOTAL_ROW_ID
from hierarchy_pivot.types.pivot_result import DEFAULT_COLUMN_ID
from hierarchy_pivot.types.pivot_spec import PivotRequest


def build(controller, **request):
    return controller.builder.build(PivotRequest(**request), controller.fact_data)


def test_single_row_dimension_with_expanded_root(simple_controller):
    result = build(simple_controller, rows=["DIM_LE"], measures=["COST_UNIT"])

    assert [r.id for r in result.rows] == ["A100", "B200"]
    assert [c.id for c in result.columns] == [DEFAULT_COLUMN_ID]
    assert result.value("A100", DEFAULT_COLUMN_ID, "COST_UNIT") == 10
    assert result.value("B200", DEFAULT_COLUMN_ID, "COST_UNIT") == 5


def test_collapsed_root_shows_single_total_row(simple_controller):
    simple_controller.expansion.collapse("le", "row", "LE_ROOT")
    result = build(simple_controller, rows=["DIM_LE"], measures=["COST_UNIT"])

    assert [r.id for r in result.rows] == ["LE_ROOT"]
    assert result.rows[0].label == "All Legal Entities"
    assert not result.rows[0].expanded
    assert result.value("LE_ROOT", DEFAULT_COLUMN_ID, "COST_UNIT") == 15


def test_no_measures_uses_default_measure(simple_controller):
    result = build(simple_controller, rows=["DIM_LE"])
    assert result.measures == ["COST_UNIT"]
    assert result.grand_total("A100", "COST_UNIT") == 10


def test_no_rows_gives_total_row(simple_controller):
    result = build(simple_controller, measures=["COST_UNIT"])
    assert [r.id for r in result.rows] == [TOTAL_ROW_ID]
    assert result.value(TOTAL_ROW_ID, DEFAULT_COLUMN_ID, "COST_UNIT") == 15


def test_column_leaves_partition_the_row_total(controller):
    controller.expansion.expand("year", "column", "YEAR_ROOT")
    result = build(controller, rows=["DIM_LE"], columns=["DIM_YEAR"], measures=["COST_UNIT", "QTY"])

    assert [c.id for c in result.columns] == ["YEAR_2023", "YEAR_2024", "YEAR_2025"]
    assert result.row_values("A100", "COST_UNIT") == [10, 4, 0]
    assert result.row_values("B200", "COST_UNIT") == [0, 5, 1.5]
    for row in result.rows:
        for measure in result.measures:
            assert sum(result.row_values(row.id, measure)) == pytest.approx(result.grand_total(row.id, measure))

    root_header = result.column_headers[0]
    assert root_header.node_id == "YEAR_ROOT"
    assert root_header.leaf_span == 3
    assert not root_header.is_visible_leaf


def test_collapsed_column_root_is_single_column(controller):
    result = build(controller, rows=["DIM_LE"], columns=["DIM_YEAR"], measures=["COST_UNIT"])

    assert [c.id for c in result.columns] == ["YEAR_ROOT"]
    assert result.value("A100", "YEAR_ROOT", "COST_UNIT") == 14


def test_several_column_dimensions_get_qualified_ids(controller):
    result = build(controller, columns=["DIM_LE", "DIM_YEAR"], measures=["COST_UNIT"])

    assert [c.id for c in result.columns] == ["le:LE_ROOT", "year:YEAR_ROOT"]
    assert result.value(TOTAL_ROW_ID, "le:LE_ROOT", "COST_UNIT") == 20.5


def test_composite_rows(controller):
    controller.expansion.set_row_dimensions(["le", "year"])
    controller.expansion.expand("year", "row", "YEAR_ROOT")
    result = build(controller, rows=["DIM_LE", "DIM_YEAR"], measures=["COST_UNIT"])

    assert len(result.rows) == 6
    assert result.value("A100|YEAR_2024", DEFAULT_COLUMN_ID, "COST_UNIT") == 4
    assert result.value("B200|YEAR_2023", DEFAULT_COLUMN_ID, "COST_UNIT") == 0
    composite = result.rows[0]
    assert [c.dimension for c in composite.components] == ["le", "year"]


def test_unknown_row_dimension_reported(simple_controller):
    result = build(simple_controller, rows=["DIM_REGION"], measures=["COST_UNIT"])

    assert [r.id for r in result.rows] == [TOTAL_ROW_ID]
    assert result.value(TOTAL_ROW_ID, DEFAULT_COLUMN_ID, "COST_UNIT") == 15
    assert [d.code for d in result.diagnostics] == [DiagnosticCode.UNKNOWN_DIMENSION]


def test_rows_carry_label_paths(controller):
    result = build(controller, rows=["DIM_LE"])
    assert result.rows[0].label_path == ("All Legal Entities", "A100")
    assert result.rows[0].is_leaf


def test_mixed_case_item_cost_types_partition_the_row_total(le_hierarchy, config):
    facts = [
        {"LE": "A100", "ITEM_COST_TYPE": "abc", "COST_UNIT": 1},
        {"LE": "B200", "ITEM_COST_TYPE": "ABC", "COST_UNIT": 2},
    ]
    ict = flat_hierarchy("item_cost_type", ["abc", "ABC"])
    controller = PivotController({"le": le_hierarchy, "item_cost_type": ict}, facts, config=config)
    controller.expansion.expand("item_cost_type", "column", ict.root)

    result = build(controller, rows=["DIM_LE"], columns=["DIM_ITEM_COST_TYPE"], measures=["COST_UNIT"])

    assert result.row_values("A100", "COST_UNIT") == [1, 0]
    assert result.row_values("B200", "COST_UNIT") == [0, 2]
    for row in result.rows:
        assert sum(result.row_values(row.id, "COST_UNIT")) == result.grand_total(row.id, "COST_UNIT")


def test_excluded_leaf_left_out_of_totals(simple_controller):
    simple_controller.expansion.collapse("le", "row", "LE_ROOT")
    result = build(simple_controller, rows=["DIM_LE"], measures=["COST_UNIT"], exclusions={"DIM_LE": ["B200"]})

    assert result.value("LE_ROOT", DEFAULT_COLUMN_ID, "COST_UNIT") == 10
    assert result.diagnostics == []


def test_excluded_parent_drops_every_leaf_below_it(le_regions, config):
    facts = [
        {"LE": "A100", "COST_UNIT": 10},
        {"LE": "A200", "COST_UNIT": 3},
        {"LE": "B200", "COST_UNIT": 5},
    ]
    controller = PivotController({"le": le_regions}, facts, config=config)
    controller.expansion.collapse("le", "row", "LE_ROOT")

    result = build(controller, rows=["DIM_LE"], measures=["COST_UNIT"], exclusions={"DIM_LE": ["EU"]})

    assert result.value("LE_ROOT", DEFAULT_COLUMN_ID, "COST_UNIT") == 5


def test_excluded_year_matches_int_and_text_keys(controller):
    result = build(controller, measures=["COST_UNIT"], exclusions={"DIM_YEAR": ["YEAR_2024"]})
    assert result.value(TOTAL_ROW_ID, DEFAULT_COLUMN_ID, "COST_UNIT") == 11.5


def test_unknown_excluded_node_reported(simple_controller):
    result = build(simple_controller, measures=["COST_UNIT"], exclusions={"DIM_LE": ["Z999"]})

    assert result.value(TOTAL_ROW_ID, DEFAULT_COLUMN_ID, "COST_UNIT") == 15
    assert [d.code for d in result.diagnostics] == [DiagnosticCode.UNKNOWN_NODE]


def test_exclusion_on_unknown_dimension_ignored(simple_controller):
    result = build(simple_controller, measures=["COST_UNIT"], exclusions={"DIM_REGION": ["EU"]})

    assert result.value(TOTAL_ROW_ID, DEFAULT_COLUMN_ID, "COST_UNIT") == 15
    assert [d.code for d in result.diagnostics] == [DiagnosticCode.UNKNOWN_DIMENSION]
