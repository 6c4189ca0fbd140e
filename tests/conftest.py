"""
Shared fixtures: small dimension hierarchies and fact tables.
"""
import pytest

from hierarchy_pivot.catalog import build_hierarchy, flat_hierarchy
from hierarchy_pivot.config import PivotEngineConfig
from hierarchy_pivot.controller import PivotController


LE_FLAT = {
    "root": "LE_ROOT",
    "nodes": [
        {"id": "LE_ROOT", "label": "All Legal Entities", "children": ["A100", "B200"]},
        {"id": "A100", "label": "A100", "fact_id": "A100"},
        {"id": "B200", "label": "B200", "fact_id": "B200"},
    ],
}

LE_REGIONS = {
    "root": "LE_ROOT",
    "nodes": [
        {"id": "LE_ROOT", "label": "All Legal Entities", "children": ["EU", "US"]},
        {"id": "EU", "label": "Europe", "children": ["A100", "A200"]},
        {"id": "US", "label": "Americas", "children": ["B200"]},
        {"id": "A100", "label": "A100", "fact_id": "A100"},
        {"id": "A200", "label": "A200", "fact_id": "A200"},
        {"id": "B200", "label": "B200", "fact_id": "B200"},
    ],
}

SIMPLE_FACTS = [
    {"LE": "A100", "COST_UNIT": 10},
    {"LE": "B200", "COST_UNIT": 5},
]

YEAR_FACTS = [
    {"LE": "A100", "ZYEAR": 2023, "COST_UNIT": 10, "QTY": 1},
    {"LE": "A100", "ZYEAR": 2024, "COST_UNIT": 4, "QTY": 3},
    {"LE": "B200", "ZYEAR": 2024, "COST_UNIT": 5, "QTY": 2},
    {"LE": "B200", "ZYEAR": 2025, "COST_UNIT": 1.5, "QTY": None},
]


@pytest.fixture
def le_hierarchy():
    return build_hierarchy("le", LE_FLAT)


@pytest.fixture
def le_regions():
    return build_hierarchy("le", LE_REGIONS)


@pytest.fixture
def year_hierarchy():
    return flat_hierarchy("year", [2023, 2024, 2025])


@pytest.fixture
def config():
    return PivotEngineConfig()


@pytest.fixture
def simple_controller(le_hierarchy, config):
    return PivotController({"le": le_hierarchy}, SIMPLE_FACTS, config=config)


@pytest.fixture
def controller(le_hierarchy, year_hierarchy, config):
    return PivotController({"le": le_hierarchy, "year": year_hierarchy}, YEAR_FACTS, config=config)


@pytest.fixture
def year_facts():
    return [dict(r) for r in YEAR_FACTS]


@pytest.fixture
def simple_facts():
    return [dict(r) for r in SIMPLE_FACTS]
