"""
Dimension filter resolution: translate a hierarchy node into the subset of
fact records it covers.

Each dimension family has its own matching policy. Filtering never raises;
when a node cannot be matched the records pass through unfiltered and a
diagnostic is recorded, so an unmapped node never hides data.
"""
import logging
import re
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from ..config import PivotEngineConfig, get_config
from ..diagnostics import DiagnosticCode, DiagnosticCollector
from ..hierarchy_store import HierarchyStore
from ..types.hierarchy import Node
from ..types.pivot_spec import fact_id_field

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]

NULL_SENTINEL = "null"
MATERIAL_TYPE_ID_PREFIX = "MATERIAL_TYPE_"

DIRECT_KEY_DIMENSIONS = ("le", "cost_element", "smartcode", "mc")
QUALIFIED_VALUE_DIMENSIONS = ("item_cost_type", "material_type", "year")
PATH_DIMENSIONS = ("gmid_display",)


def _match_any(records: Iterable[Record], field: str, values: FrozenSet[Any]) -> List[Record]:
    return [r for r in records if r.get(field) in values]


class DimensionFilterResolver:
    """
    Dispatches on the node's owning dimension.

    Direct-key dimensions (le, cost_element, smartcode, mc):
        leaf fact_id -> exact match; otherwise the dimension mapping is tried
        by label, by ancestor path, by description/code, then the node's
        tree coverage.
    Qualified-value dimensions (item_cost_type, material_type, year):
        root passes through; equality on fact_id with label fallback.
    Path dimension (gmid_display):
        fact_id on COMPONENT_GMID, then level_value on PATH_GMID segments,
        then segment values recovered from the node's path ids.
    """

    def __init__(
        self,
        store: HierarchyStore,
        diagnostics: Optional[DiagnosticCollector] = None,
        config: Optional[PivotEngineConfig] = None,
    ):
        self.store = store
        self.diagnostics = diagnostics if diagnostics is not None else store.diagnostics
        self.config = config or get_config()
        self._gmid_level_re = re.compile(self.config.gmid_level_pattern)
        self._fact_values: Dict[str, FrozenSet[Any]] = {}
        self._case_fallback: Dict[str, bool] = {}

        self._handlers: Dict[str, Callable[[List[Record], Node], List[Record]]] = {
            "item_cost_type": self.filter_by_item_cost_type,
            "material_type": self.filter_by_material_type,
            "year": self.filter_by_year,
            "gmid_display": self.filter_by_gmid_display,
        }
        for dim in DIRECT_KEY_DIMENSIONS:
            self._handlers[dim] = self.filter_by_direct_key

    def filter(self, records: Iterable[Record], node: Optional[Node]) -> List[Record]:
        records = list(records)
        if node is None:
            return records

        dim = (node.dimension or "").lower()
        handler = self._handlers.get(dim)
        if handler is None:
            self.diagnostics.emit(
                DiagnosticCode.UNKNOWN_DIMENSION,
                f"Unknown dimension {node.dimension!r}, node left unfiltered",
                dimension=node.dimension,
                node_id=node.id,
            )
            return records
        return handler(records, node)

    def bind_facts(self, records: Iterable[Record]):
        """
        Fix the fact set that per-node matching decisions are made against.
        Called once per build, before any filtering.
        """
        field = fact_id_field("item_cost_type")
        self._fact_values = {
            field: frozenset(r.get(field) for r in records if r.get(field) is not None),
        }
        self._case_fallback = {}

    def uses_case_fallback(self, node: Node, values: FrozenSet[Any]) -> bool:
        """
        Case-insensitive matching applies to a node only when none of its
        values occurs verbatim in the bound fact set. Without bound facts
        both forms match.
        """
        field = fact_id_field("item_cost_type")
        if field not in self._fact_values:
            return True
        if node.id not in self._case_fallback:
            self._case_fallback[node.id] = not (values & self._fact_values[field])
        return self._case_fallback[node.id]

    def _pass_through(self, records: List[Record], node: Node, reason: str) -> List[Record]:
        self.diagnostics.emit(
            DiagnosticCode.UNMAPPED_NODE,
            f"{reason} for node {node.label!r}, records left unfiltered",
            dimension=node.dimension,
            node_id=node.id,
        )
        return records

    # Direct-key dimensions

    def resolve_direct_keys(self, node: Node) -> FrozenSet[Any]:
        """Fact keys covered by a direct-key node, or an empty set if unmapped."""
        if node.is_leaf and node.fact_id is not None:
            return node.fact_ids()

        mapping = self.store.get_mapping(node.dimension)
        label = node.label or ""
        if mapping is not None and label:
            for lookup in (
                mapping.keys_for_label,
                mapping.keys_with_ancestor,
                mapping.keys_matching_description,
            ):
                keys = lookup(label)
                if keys:
                    return keys

        return self.store.coverage(node)

    def filter_by_direct_key(self, records: List[Record], node: Node) -> List[Record]:
        if self.store.is_root(node):
            return records

        field = fact_id_field(node.dimension)
        keys = self.resolve_direct_keys(node)
        if not keys:
            return self._pass_through(records, node, f"No matching {field} keys")
        return _match_any(records, field, keys)

    # Qualified-value dimensions

    def filter_by_item_cost_type(self, records: List[Record], node: Node) -> List[Record]:
        if self.store.is_root(node):
            return records

        if node.fact_id is not None:
            values = node.fact_ids()
        elif node.attributes.get("itemCostTypeCode") is not None:
            values = frozenset([node.attributes["itemCostTypeCode"]])
        elif node.label:
            values = frozenset([node.label])
        else:
            return self._pass_through(records, node, "No item cost type value")

        field = fact_id_field("item_cost_type")
        if not self.uses_case_fallback(node, values):
            return _match_any(records, field, values)

        folded = {str(v).casefold() for v in values}
        return [
            r for r in records
            if r.get(field) in values
            or (r.get(field) is not None and str(r.get(field)).casefold() in folded)
        ]

    def material_type_code(self, node: Node) -> Any:
        """Material type code of a node; None stands for the null material type."""
        if "materialTypeCode" in node.attributes:
            code = node.attributes["materialTypeCode"]
        elif node.fact_id is not None:
            code = node.fact_id
        elif node.id.startswith(MATERIAL_TYPE_ID_PREFIX):
            code = node.id[len(MATERIAL_TYPE_ID_PREFIX):]
        else:
            code = node.label
        return None if code == NULL_SENTINEL else code

    def filter_by_material_type(self, records: List[Record], node: Node) -> List[Record]:
        if self.store.is_root(node):
            return records

        field = fact_id_field("material_type")
        code = self.material_type_code(node)
        if code is None:
            return [r for r in records if r.get(field) is None or r.get(field) == NULL_SENTINEL]
        if isinstance(code, tuple):
            return _match_any(records, field, frozenset(code))
        return [r for r in records if r.get(field) == code]

    def filter_by_year(self, records: List[Record], node: Node) -> List[Record]:
        if self.store.is_root(node):
            return records

        if node.fact_id is not None:
            values = node.fact_ids()
        elif node.label:
            values = frozenset([node.label])
        else:
            return self._pass_through(records, node, "No year value")

        field = fact_id_field("year")
        # ZYEAR may be loaded as int or str
        wanted = {str(v) for v in values}
        return [r for r in records if r.get(field) is not None and str(r.get(field)) in wanted]

    # Path-structured dimension

    def _path_segments(self, record: Record) -> Sequence[str]:
        path = record.get("PATH_GMID")
        if not path:
            return ()
        return str(path).split(self.config.gmid_path_separator)

    def segment_candidates(self, node: Node) -> List[str]:
        """Segment values recovered from the node's path ids via the configured prefix rule."""
        root_id = node.path[0] if node.path else None
        values = []
        for node_id in node.path:
            if node_id == root_id or node_id == "ROOT":
                continue
            match = self._gmid_level_re.match(node_id)
            if match:
                values.append(match.group(1).replace("_", self.config.gmid_underscore_replacement))
        return values

    def filter_by_gmid_display(self, records: List[Record], node: Node) -> List[Record]:
        if self.store.is_root(node) or (node.label or "").startswith("All "):
            return records

        if node.fact_id is not None:
            return _match_any(records, fact_id_field("gmid_display"), node.fact_ids())

        if node.level_value:
            position = node.level - 1

            def level_matches(record: Record) -> bool:
                segments = self._path_segments(record)
                if not segments:
                    return False
                if 0 <= position < len(segments):
                    return segments[position] == node.level_value
                return node.level_value in segments

            return [r for r in records if level_matches(r)]

        candidates = set(self.segment_candidates(node))
        if candidates:
            return [
                r for r in records
                if any(segment in candidates for segment in self._path_segments(r))
            ]

        return self._pass_through(records, node, "No GMID filtering criteria")
