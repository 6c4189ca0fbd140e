"""
PivotController - entry point for hierarchical pivot requests.
Coordinates: ExpansionState -> PivotMatrixBuilder -> Cache

Holds the request and the last result. Any expansion change makes the
result stale; the next read rebuilds it in full.
"""
import hashlib
import json
import logging
from typing import Any, Dict, Mapping, Optional, Union

from .aggregator import MeasureAggregator
from .cache.memory_cache import MemoryCache
from .compositor import CartesianRowCompositor, RowCompositor
from .config import PivotEngineConfig, get_config
from .diagnostics import DiagnosticCollector
from .filters.dimension_filter import DimensionFilterResolver
from .hierarchy_store import HierarchyStore
from .matrix_builder import PivotMatrixBuilder
from .tree import ExpansionState
from .types.hierarchy import DimensionMapping, Hierarchy
from .types.pivot_result import PivotResult
from .types.pivot_spec import PivotRequest, dimension_name, validate_zone
from .util.arrow_utils import ensure_records
from .visible_leaves import VisibleLeafResolver

logger = logging.getLogger(__name__)


class UnknownNodeError(LookupError):
    """Raised when an expansion call names a node that no hierarchy holds"""


class PivotController:

    def __init__(
        self,
        hierarchies: Mapping[str, Hierarchy],
        fact_data: Any,
        mappings: Optional[Mapping[str, DimensionMapping]] = None,
        config: Optional[PivotEngineConfig] = None,
        compositor: Optional[RowCompositor] = None,
        cache: Optional[MemoryCache] = None,
    ):
        self.config = config or get_config()
        self.diagnostics = DiagnosticCollector()
        self.store = HierarchyStore(hierarchies, mappings, diagnostics=self.diagnostics)
        self.expansion = ExpansionState(
            root_ids={name: h.root for name, h in hierarchies.items()},
            column_root_expanded=self.config.column_root_expanded,
            first_row_dimension_expanded=self.config.first_row_dimension_expanded,
        )
        self.visible = VisibleLeafResolver(self.store, self.expansion)
        self.resolver = DimensionFilterResolver(self.store, self.diagnostics, self.config)
        self.compositor = compositor or CartesianRowCompositor(self.visible, self.resolver)
        self.aggregator = MeasureAggregator(self.resolver, self.compositor)
        self.builder = PivotMatrixBuilder(
            self.store, self.expansion, self.visible, self.aggregator, self.compositor, self.config
        )
        self.fact_data = ensure_records(fact_data)

        if cache is not None:
            self.cache = cache
        elif self.config.enable_result_cache:
            self.cache = MemoryCache(
                ttl=self.config.result_cache_ttl, max_entries=self.config.result_cache_max_entries
            )
        else:
            self.cache = None

        self.request: Optional[PivotRequest] = None
        self._result: Optional[PivotResult] = None
        self._result_version: Optional[int] = None
        self.generation = 0
        self._request_count = 0

    # Requests

    def run_pivot(
        self,
        request: Union[PivotRequest, Dict[str, Any]],
        force_refresh: bool = False,
    ) -> PivotResult:
        """Set the current request and build its result."""
        if isinstance(request, dict):
            request = PivotRequest.from_dict(request)
        self.request = request
        return self._rebuild(force_refresh)

    @property
    def is_stale(self) -> bool:
        return self._result is None or self._result_version != self.expansion.version

    @property
    def result(self) -> Optional[PivotResult]:
        """Current result, rebuilt first if expansion changed since the last build."""
        if self.request is None:
            return None
        if self.is_stale:
            return self._rebuild()
        return self._result

    def refresh(self) -> Optional[PivotResult]:
        return self.result

    def _rebuild(self, force_refresh: bool = False) -> PivotResult:
        self._request_count += 1
        # Row dimension order feeds the root expansion defaults, and the cache key
        self.expansion.set_row_dimensions(self.request.row_dimensions)
        cache_key = self._cache_key(self.request)

        result = None
        if self.cache is not None and not force_refresh:
            result = self.cache.get(cache_key)

        if result is None:
            result = self.builder.build(self.request, self.fact_data)
            if self.cache is not None:
                self.cache.set(cache_key, result)
        else:
            logger.debug("Pivot result served from cache")

        self.generation += 1
        # The cached result is never handed out; callers get their own copy
        self._result = result.copy(generation=self.generation, expansion_version=self.expansion.version)
        self._result_version = self.expansion.version
        return self._result

    def is_current(self, result: PivotResult) -> bool:
        """False for a result from an earlier build; consumers drop such results."""
        return result.generation == self.generation and not self.is_stale

    def _cache_key(self, request: PivotRequest) -> str:
        payload = {"request": request.to_dict(), "expansion": self.expansion.snapshot()}
        digest = hashlib.sha256(json.dumps(payload, sort_keys=True, default=str).encode()).hexdigest()
        return f"pivot:result:{digest[:32]}"

    # Expansion

    def _require_node(self, dim: str, node_id: str):
        if self.store.get_node(dim, node_id) is None:
            raise UnknownNodeError(f"Node {node_id!r} not found in hierarchy {dim!r}")

    def toggle_expansion(self, dim: str, zone: str, node_id: str) -> Dict[str, Any]:
        """Toggle a node's expansion; the current result becomes stale."""
        dim = dimension_name(dim)
        validate_zone(zone)
        self._require_node(dim, node_id)
        expanded = self.expansion.toggle(dim, zone, node_id)
        logger.info("Node %s/%s %s in %s zone", dim, node_id, "expanded" if expanded else "collapsed", zone)
        return {"dimension": dim, "zone": zone, "node_id": node_id, "expanded": expanded}

    def set_expansion(self, dim: str, zone: str, node_id: str, expanded: bool) -> Dict[str, Any]:
        dim = dimension_name(dim)
        self._require_node(dim, node_id)
        self.expansion.set_expanded(dim, zone, node_id, expanded)
        return {"dimension": dim, "zone": zone, "node_id": node_id, "expanded": bool(expanded)}

    def expand_all(self, dim: str, zone: str):
        dim = dimension_name(dim)
        node_ids = [n.id for n in self.store.iter_nodes(dim) if not n.is_leaf]
        self.expansion.expand_all(dim, zone, node_ids)
        logger.info("Expanded %d nodes of %s in %s zone", len(node_ids), dim, zone)

    def collapse_all(self, dim: Optional[str] = None, zone: Optional[str] = None):
        self.expansion.collapse_all(dimension_name(dim) if dim else None, zone)
        logger.info("Collapsed all nodes of %s", dim or "every dimension")

    def get_stats(self) -> Dict[str, Any]:
        return {
            "requests": self._request_count,
            "generation": self.generation,
            "expansion_version": self.expansion.version,
            "cache": self.cache.stats() if self.cache is not None else None,
            "fact_records": len(self.fact_data),
        }
