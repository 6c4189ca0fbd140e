"""
HierarchyStore - read-only access to dimension hierarchies and mappings.
"""
import logging
from typing import Any, Dict, FrozenSet, Iterator, List, Mapping, Optional, Tuple

from .diagnostics import DiagnosticCode, DiagnosticCollector
from .types.hierarchy import DimensionMapping, Hierarchy, Inline, Node

logger = logging.getLogger(__name__)


class HierarchyStore:
    """
    In-memory trees, one per dimension, plus optional mapping indices.

    Lookups never mutate nodes. Child references that cannot be resolved
    are dropped from traversal with an UNRESOLVED_CHILD diagnostic.
    """

    def __init__(
        self,
        hierarchies: Mapping[str, Hierarchy],
        mappings: Optional[Mapping[str, DimensionMapping]] = None,
        diagnostics: Optional[DiagnosticCollector] = None,
    ):
        self._hierarchies: Dict[str, Hierarchy] = {k.lower(): v for k, v in hierarchies.items()}
        self._mappings: Dict[str, DimensionMapping] = {
            k.lower(): v for k, v in (mappings or {}).items()
        }
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticCollector()
        self._coverage: Dict[Tuple[str, str], FrozenSet[Any]] = {}

    def dimensions(self) -> List[str]:
        return list(self._hierarchies)

    def get_hierarchy(self, dim: str) -> Optional[Hierarchy]:
        return self._hierarchies.get(dim.lower()) if dim else None

    def get_mapping(self, dim: str) -> Optional[DimensionMapping]:
        return self._mappings.get(dim.lower()) if dim else None

    def root(self, dim: str) -> Optional[Node]:
        hierarchy = self.get_hierarchy(dim)
        return hierarchy.root_node if hierarchy else None

    def get_node(self, dim: str, node_id: str) -> Optional[Node]:
        hierarchy = self.get_hierarchy(dim)
        if hierarchy is None:
            return None
        return hierarchy.get(node_id)

    def is_root(self, node: Node) -> bool:
        """True for the root of the node's hierarchy; parentless nodes count only without one."""
        hierarchy = self.get_hierarchy(node.dimension)
        if hierarchy is None:
            return node.is_root
        return node.id == hierarchy.root

    def iter_nodes(self, dim: str) -> Iterator[Node]:
        hierarchy = self.get_hierarchy(dim)
        return iter(hierarchy) if hierarchy else iter(())

    def get_children(self, node: Node) -> List[Node]:
        """Resolve a node's child references, in order."""
        children = []
        hierarchy = self.get_hierarchy(node.dimension)
        for ref in node.children:
            if isinstance(ref, Inline):
                # The hierarchy holds the copy with derived parent link and path
                registered = hierarchy.get(ref.node.id) if hierarchy else None
                children.append(registered or ref.node)
                continue
            child = hierarchy.get(ref.id) if hierarchy else None
            if child is None:
                self.diagnostics.emit(
                    DiagnosticCode.UNRESOLVED_CHILD,
                    f"Child {ref.id!r} of {node.id!r} not found in hierarchy",
                    dimension=node.dimension,
                    node_id=ref.id,
                )
                continue
            children.append(child)
        return children

    def get_path(self, node: Node) -> Tuple[str, ...]:
        return node.path

    def label_path(self, node: Node) -> Tuple[str, ...]:
        """Labels along the node's path; unknown ids fall back to the id itself."""
        labels = []
        for node_id in node.path:
            ancestor = self.get_node(node.dimension, node_id)
            labels.append(ancestor.label if ancestor else node_id)
        return tuple(labels)

    def coverage(self, node: Node) -> FrozenSet[Any]:
        """Union of fact_id values over the node's descendant leaves."""
        key = (node.dimension, node.id)
        cached = self._coverage.get(key)
        if cached is not None:
            return cached

        result = set()
        visited = set()
        stack = [node]
        while stack:
            current = stack.pop()
            if current.id in visited:
                continue
            visited.add(current.id)
            if current.is_leaf:
                result.update(current.fact_ids())
                continue
            stack.extend(self.get_children(current))

        covered = frozenset(result)
        self._coverage[key] = covered
        return covered
