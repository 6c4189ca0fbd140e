"""
Types for pivot requests.
Plain dataclasses, no validation framework.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List


class Zone:
    ROW = "row"
    COLUMN = "column"

    ALL = (ROW, COLUMN)


# Dimension name -> fact table field holding its key
FACT_ID_FIELDS = {
    "le": "LE",
    "cost_element": "COST_ELEMENT",
    "smartcode": "ROOT_SMARTCODE",
    "gmid_display": "COMPONENT_GMID",
    "item_cost_type": "ITEM_COST_TYPE",
    "material_type": "COMPONENT_MATERIAL_TYPE",
    "year": "ZYEAR",
    "mc": "MC",
}


def dimension_name(field_id: str) -> str:
    """DIM_COST_ELEMENT -> cost_element"""
    if not field_id:
        return ""
    name = field_id[4:] if field_id.upper().startswith("DIM_") else field_id
    return name.lower()


def fact_id_field(dimension: str) -> str:
    return FACT_ID_FIELDS.get(dimension.lower())


def validate_zone(zone: str) -> str:
    if zone not in Zone.ALL:
        raise ValueError(f"Unknown zone: {zone!r}, expected one of {Zone.ALL}")
    return zone


@dataclass
class PivotRequest:
    rows: List[str] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)
    measures: List[str] = field(default_factory=list)
    # Field id -> node ids whose facts are left out before pivoting
    exclusions: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def row_dimensions(self) -> List[str]:
        return [dimension_name(f) for f in self.rows]

    @property
    def column_dimensions(self) -> List[str]:
        return [dimension_name(f) for f in self.columns]

    @staticmethod
    def from_dict(d: dict) -> "PivotRequest":
        return PivotRequest(
            rows=list(d.get("rows", [])),
            columns=list(d.get("columns", [])),
            measures=list(d.get("measures", [])),
            exclusions={k: list(v) for k, v in (d.get("exclusions") or {}).items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        # Used for hashing/caching
        return {
            "rows": list(self.rows),
            "columns": list(self.columns),
            "measures": list(self.measures),
            "exclusions": {k: sorted(v) for k, v in self.exclusions.items() if v},
        }
