"""
PivotResult - standardized response from the pivot matrix builder
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from ..diagnostics import Diagnostic

DEFAULT_COLUMN_ID = "default"

CellKey = Tuple[str, Optional[str], str]


@dataclass(frozen=True)
class RowDescriptor:
    id: str
    label: str
    dimension: Optional[str]
    level: int = 0
    path: Tuple[str, ...] = ()
    label_path: Tuple[str, ...] = ()
    is_leaf: bool = False
    has_children: bool = False
    expanded: bool = False
    # Per-dimension descriptors of a composite (multi-dimension) row
    components: Tuple["RowDescriptor", ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "id": self.id,
            "label": self.label,
            "dimension": self.dimension,
            "level": self.level,
            "path": list(self.path),
            "label_path": list(self.label_path),
            "is_leaf": self.is_leaf,
            "has_children": self.has_children,
            "expanded": self.expanded,
        }
        if self.components:
            d["components"] = [c.to_dict() for c in self.components]
        return d


@dataclass(frozen=True)
class ColumnDescriptor:
    id: str
    label: str
    dimension: Optional[str]
    node_id: Optional[str] = None
    level: int = 0
    depth: int = 0
    path: Tuple[str, ...] = ()
    label_path: Tuple[str, ...] = ()
    is_leaf: bool = False
    expanded: bool = False
    leaf_span: int = 1
    is_visible_leaf: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "dimension": self.dimension,
            "node_id": self.node_id,
            "level": self.level,
            "depth": self.depth,
            "path": list(self.path),
            "label_path": list(self.label_path),
            "is_leaf": self.is_leaf,
            "expanded": self.expanded,
            "leaf_span": self.leaf_span,
            "is_visible_leaf": self.is_visible_leaf,
        }


@dataclass
class PivotResult:
    rows: List[RowDescriptor]
    columns: List[ColumnDescriptor]
    measures: List[str]
    values: Dict[CellKey, float]
    column_headers: List[ColumnDescriptor] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list, compare=False)
    expansion_version: int = field(default=0, compare=False)
    generation: int = field(default=0, compare=False)

    def value(self, row_id: str, col_id: Optional[str], measure: str) -> float:
        return self.values.get((row_id, col_id, measure), 0.0)

    def grand_total(self, row_id: str, measure: str) -> float:
        return self.value(row_id, None, measure)

    def row_values(self, row_id: str, measure: str) -> List[float]:
        return [self.value(row_id, c.id, measure) for c in self.columns]

    def column_total(self, col_id: Optional[str], measure: str) -> float:
        return sum(self.value(r.id, col_id, measure) for r in self.rows)

    def copy(self, **changes: Any) -> "PivotResult":
        """Copy with its own values dict and lists; descriptors are immutable and shared."""
        fields = dict(
            rows=list(self.rows),
            columns=list(self.columns),
            measures=list(self.measures),
            values=dict(self.values),
            column_headers=list(self.column_headers),
            diagnostics=list(self.diagnostics),
        )
        fields.update(changes)
        return replace(self, **fields)

    def prune_empty(self) -> "PivotResult":
        """Copy without rows and columns whose every value is zero."""
        def row_is_empty(row_id: str) -> bool:
            return all(
                self.value(row_id, c.id, m) == 0 for c in self.columns for m in self.measures
            ) and all(self.grand_total(row_id, m) == 0 for m in self.measures)

        def column_is_empty(col_id: str) -> bool:
            return all(self.value(r.id, col_id, m) == 0 for r in self.rows for m in self.measures)

        rows = [r for r in self.rows if not row_is_empty(r.id)]
        columns = [c for c in self.columns if not column_is_empty(c.id)]
        row_ids = {r.id for r in rows}
        col_ids = {c.id for c in columns}
        values = {
            key: v for key, v in self.values.items()
            if key[0] in row_ids and (key[1] is None or key[1] in col_ids)
        }
        return replace(self, rows=rows, columns=columns, values=values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rows": [r.to_dict() for r in self.rows],
            "columns": [c.to_dict() for c in self.columns],
            "column_headers": [c.to_dict() for c in self.column_headers],
            "measures": list(self.measures),
            "values": [
                {"row": row_id, "column": col_id, "measure": measure, "value": value}
                for (row_id, col_id, measure), value in self.values.items()
            ],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "expansion_version": self.expansion_version,
            "generation": self.generation,
        }
