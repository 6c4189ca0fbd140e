"""
Multi-dimension row composition.

The matrix builder only relies on the RowCompositor contract. The
CartesianRowCompositor is the default implementation: every combination of
the visible rows of each requested dimension, in request order.
"""
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from .diagnostics import DiagnosticCode
from .filters.dimension_filter import DimensionFilterResolver
from .types.hierarchy import Node
from .types.pivot_spec import Zone, dimension_name
from .visible_leaves import VisibleLeafResolver

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]

COMPOSITE_ID_SEPARATOR = "|"


@dataclass(frozen=True)
class CompositeRow:
    """A row made of one node per row dimension"""
    dimensions: Tuple[Node, ...]

    @property
    def id(self) -> str:
        return COMPOSITE_ID_SEPARATOR.join(n.id for n in self.dimensions)

    @property
    def label(self) -> str:
        return " / ".join(n.label for n in self.dimensions)


class RowCompositor(Protocol):

    def compose(self, field_ids: Sequence[str], zone: str = Zone.ROW) -> List[CompositeRow]:
        ...

    def filter(self, records: Iterable[Record], row: CompositeRow) -> List[Record]:
        ...

    def is_visible(self, row: CompositeRow, all_rows: Optional[Sequence[CompositeRow]] = None) -> bool:
        ...


class CartesianRowCompositor:

    def __init__(self, visible: VisibleLeafResolver, resolver: DimensionFilterResolver):
        self.visible = visible
        self.resolver = resolver

    def compose(self, field_ids: Sequence[str], zone: str = Zone.ROW) -> List[CompositeRow]:
        per_dimension = []
        for field_id in field_ids:
            dim = dimension_name(field_id)
            root = self.visible.store.root(dim)
            if root is None:
                self.resolver.diagnostics.emit(
                    DiagnosticCode.UNKNOWN_DIMENSION,
                    f"No hierarchy for row field {field_id!r}, dimension skipped",
                    dimension=dim,
                )
                continue
            per_dimension.append(self.visible.visible_rows(root, zone))

        if not per_dimension:
            return []

        rows = [CompositeRow(tuple(combo)) for combo in itertools.product(*per_dimension)]
        logger.debug("Composed %d rows from %d dimensions", len(rows), len(per_dimension))
        return rows

    def filter(self, records: Iterable[Record], row: CompositeRow) -> List[Record]:
        """AND across all component dimensions"""
        result = list(records)
        for node in row.dimensions:
            result = self.resolver.filter(result, node)
        return result

    def is_visible(self, row: CompositeRow, all_rows: Optional[Sequence[CompositeRow]] = None) -> bool:
        """AND of each dimension's ancestor-expansion check"""
        if all_rows is not None and row not in all_rows:
            return False
        return all(self.visible.is_visible(node, Zone.ROW) for node in row.dimensions)
