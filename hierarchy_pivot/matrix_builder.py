"""
PivotMatrixBuilder - produces the full row x column x measure result.

Coordinates: HierarchyStore + ExpansionState -> VisibleLeafResolver ->
MeasureAggregator -> DimensionFilterResolver
"""
import logging
import time
from typing import Any, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from .aggregator import MeasureAggregator
from .compositor import CompositeRow, RowCompositor
from .config import PivotEngineConfig, get_config
from .diagnostics import DiagnosticCode
from .hierarchy_store import HierarchyStore
from .tree import ExpansionState
from .types.hierarchy import Node
from .types.pivot_result import (
    DEFAULT_COLUMN_ID,
    ColumnDescriptor,
    PivotResult,
    RowDescriptor,
)
from .types.pivot_spec import PivotRequest, Zone, dimension_name, fact_id_field
from .visible_leaves import VisibleLeafResolver

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]

TOTAL_ROW_ID = "total"


class PivotMatrixBuilder:
    """
    Builds a PivotResult for a request against the current expansion state.

    Rows are shown at whatever depth the row-zone expansion yields; columns
    are flattened to their visible leaves. Every build is a full rebuild.
    """

    def __init__(
        self,
        store: HierarchyStore,
        expansion: ExpansionState,
        visible: VisibleLeafResolver,
        aggregator: MeasureAggregator,
        compositor: Optional[RowCompositor] = None,
        config: Optional[PivotEngineConfig] = None,
    ):
        self.store = store
        self.expansion = expansion
        self.visible = visible
        self.aggregator = aggregator
        self.compositor = compositor
        self.config = config or get_config()

    @property
    def diagnostics(self):
        return self.store.diagnostics

    def build(self, request: PivotRequest, fact_data: Sequence[Record]) -> PivotResult:
        start = time.time()
        self.diagnostics.drain()
        self.expansion.set_row_dimensions(request.row_dimensions)
        fact_data = self.apply_exclusions(fact_data, request)
        self.aggregator.resolver.bind_facts(fact_data)

        measures = list(request.measures) or [self.config.default_measure]
        rows = self._resolve_rows(request)
        columns, headers = self._resolve_columns(request)

        values = {}
        for row_descriptor, row in rows:
            row_records = self.aggregator.filter_row(fact_data, row)
            for measure in measures:
                values[(row_descriptor.id, None, measure)] = self.aggregator.sum_field(row_records, measure)

            for col_descriptor, col in columns:
                cell_records = self.aggregator.filter_column(row_records, col)
                for measure in measures:
                    values[(row_descriptor.id, col_descriptor.id, measure)] = (
                        self.aggregator.sum_field(cell_records, measure)
                    )

        result = PivotResult(
            rows=[d for d, _ in rows],
            columns=[d for d, _ in columns],
            measures=measures,
            values=values,
            column_headers=headers,
            diagnostics=self.diagnostics.drain(),
            expansion_version=self.expansion.version,
        )
        logger.info(
            "Built pivot: %d rows x %d columns x %d measures in %.3fs",
            len(result.rows), len(result.columns), len(measures), time.time() - start,
        )
        return result

    # Exclusions

    def excluded_keys(self, dim: str, node_ids: Sequence[str]) -> Optional[FrozenSet[Any]]:
        """
        Fact keys covered by the given nodes (their own fact ids plus every
        leaf below them). Without a hierarchy the ids are taken as raw key
        values. None when the dimension has no fact field.
        """
        if fact_id_field(dim) is None:
            self.diagnostics.emit(
                DiagnosticCode.UNKNOWN_DIMENSION,
                f"No fact field for excluded dimension {dim!r}, exclusion ignored",
                dimension=dim,
            )
            return None

        if self.store.get_hierarchy(dim) is None:
            return frozenset(node_ids)

        keys = set()
        for node_id in node_ids:
            node = self.store.get_node(dim, node_id)
            if node is None:
                self.diagnostics.emit(
                    DiagnosticCode.UNKNOWN_NODE,
                    f"Excluded node {node_id!r} not found, ignored",
                    dimension=dim,
                    node_id=node_id,
                )
                continue
            keys.update(node.fact_ids())
            keys.update(self.store.coverage(node))
        return frozenset(keys)

    def apply_exclusions(self, fact_data: Sequence[Record], request: PivotRequest) -> List[Record]:
        """
        Drop fact records whose key falls under an excluded node. Records
        without the key field are dropped as well.
        """
        records = list(fact_data)
        for field_id, node_ids in request.exclusions.items():
            if not node_ids:
                continue
            dim = dimension_name(field_id)
            keys = self.excluded_keys(dim, node_ids)
            if keys is None:
                continue
            field = fact_id_field(dim)
            # Text comparison, as year keys may be loaded as int or str
            excluded = {str(k) for k in keys}
            before = len(records)
            records = [r for r in records if field in r and str(r[field]) not in excluded]
            logger.info("Exclusion on %s: %d -> %d records", dim, before, len(records))
        return records

    # Rows

    def _resolve_rows(self, request: PivotRequest) -> List[Tuple[RowDescriptor, Any]]:
        total_row = [(RowDescriptor(id=TOTAL_ROW_ID, label="Total", dimension=None), None)]
        if not request.rows:
            return total_row

        if len(request.rows) == 1 or self.compositor is None:
            if len(request.rows) > 1:
                logger.warning("No row compositor configured, using first row field only")
            dim = dimension_name(request.rows[0])
            root = self._root_or_diagnostic(dim, request.rows[0])
            if root is None:
                return total_row
            return [(self.row_descriptor(node), node) for node in self.visible.visible_rows(root, Zone.ROW)]

        composite_rows = self.compositor.compose(request.rows, Zone.ROW)
        if not composite_rows:
            return total_row
        return [(self.composite_descriptor(row), row) for row in composite_rows]

    def row_descriptor(self, node: Node) -> RowDescriptor:
        return RowDescriptor(
            id=node.id,
            label=node.label,
            dimension=node.dimension,
            level=node.level,
            path=node.path,
            label_path=self.store.label_path(node),
            is_leaf=node.is_leaf,
            has_children=node.has_children or bool(node.children),
            expanded=self.visible.is_expanded(node, Zone.ROW),
        )

    def composite_descriptor(self, row: CompositeRow) -> RowDescriptor:
        components = tuple(self.row_descriptor(n) for n in row.dimensions)
        return RowDescriptor(
            id=row.id,
            label=row.label,
            dimension=None,
            level=max((n.level for n in row.dimensions), default=0),
            label_path=tuple(c.label for c in components),
            is_leaf=all(n.is_leaf for n in row.dimensions),
            has_children=any(c.has_children for c in components),
            components=components,
        )

    # Columns

    def _resolve_columns(
        self, request: PivotRequest
    ) -> Tuple[List[Tuple[ColumnDescriptor, Optional[Node]]], List[ColumnDescriptor]]:
        columns: List[Tuple[ColumnDescriptor, Optional[Node]]] = []
        headers: List[ColumnDescriptor] = []
        qualify = len(request.columns) > 1

        for field_id in request.columns:
            dim = dimension_name(field_id)
            root = self._root_or_diagnostic(dim, field_id)
            if root is None:
                continue
            for cell in self.visible.header_tree([root], Zone.COLUMN):
                descriptor = self.column_descriptor(cell.node, qualify, cell.depth, cell.span, cell.is_visible_leaf)
                headers.append(descriptor)
                if cell.is_visible_leaf:
                    columns.append((descriptor, cell.node))

        if not columns:
            default = ColumnDescriptor(
                id=DEFAULT_COLUMN_ID,
                label=self.config.default_column_label,
                dimension=None,
                is_leaf=True,
            )
            return [(default, None)], [default]
        return columns, headers

    def column_descriptor(
        self, node: Node, qualify: bool, depth: int, span: int, is_visible_leaf: bool
    ) -> ColumnDescriptor:
        return ColumnDescriptor(
            id=f"{node.dimension}:{node.id}" if qualify else node.id,
            label=node.label,
            dimension=node.dimension,
            node_id=node.id,
            level=node.level,
            depth=depth,
            path=node.path,
            label_path=self.store.label_path(node),
            is_leaf=node.is_leaf,
            expanded=self.visible.is_expanded(node, Zone.COLUMN),
            leaf_span=span,
            is_visible_leaf=is_visible_leaf,
        )

    def _root_or_diagnostic(self, dim: str, field_id: str) -> Optional[Node]:
        root = self.store.root(dim)
        if root is None:
            self.diagnostics.emit(
                DiagnosticCode.UNKNOWN_DIMENSION,
                f"No hierarchy for field {field_id!r}",
                dimension=dim,
            )
        return root
