"""
Visible-leaf resolution for hierarchical rows and columns.

A node is shown as a leaf when it is a true leaf or when it is collapsed
(a pseudo-leaf standing in for its whole subtree). Expanded nodes are
replaced by their children, in child order.
"""
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional

from .hierarchy_store import HierarchyStore
from .tree import ExpansionState
from .types.hierarchy import Node


@dataclass(frozen=True)
class HeaderCell:
    """One column header node with its depth and the number of visible leaves under it"""
    node: Node
    depth: int
    span: int
    is_visible_leaf: bool


class VisibleLeafResolver:

    def __init__(self, store: HierarchyStore, expansion: ExpansionState):
        self.store = store
        self.expansion = expansion

    def is_expanded(self, node: Node, zone: str) -> bool:
        return self.expansion.is_expanded(node.dimension, zone, node.id)

    def _expanded_children(self, node: Node, zone: str) -> Optional[List[Node]]:
        """Children to descend into, or None when the node is shown as itself."""
        if node.is_leaf or not self.is_expanded(node, zone):
            return None
        children = self.store.get_children(node)
        return children or None

    def visible_leaves(self, nodes: Iterable[Node], zone: str) -> List[Node]:
        result: List[Node] = []
        for node in nodes:
            self._collect_leaves(node, zone, result, frozenset())
        return result

    def _collect_leaves(self, node: Node, zone: str, out: List[Node], ancestors: FrozenSet[str]):
        children = self._expanded_children(node, zone)
        # A reference cycle is cut by showing the node itself
        if children is None or node.id in ancestors:
            out.append(node)
            return
        ancestors = ancestors | {node.id}
        for child in children:
            self._collect_leaves(child, zone, out, ancestors)

    def leaf_count(self, node: Node, zone: str) -> int:
        return self._count(node, zone, frozenset())

    def _count(self, node: Node, zone: str, ancestors: FrozenSet[str]) -> int:
        children = self._expanded_children(node, zone)
        if children is None or node.id in ancestors:
            return 1
        ancestors = ancestors | {node.id}
        return max(1, sum(self._count(child, zone, ancestors) for child in children))

    def visible_rows(self, root: Node, zone: str) -> List[Node]:
        """
        Pre-order flattening used for row headers: a node, then its children
        when it is expanded. An expanded root is left out; its total is the
        table grand total.
        """
        rows: List[Node] = []
        self._flatten(root, zone, rows, frozenset())
        if len(rows) > 1 and rows[0] is root:
            rows = rows[1:]
        return rows

    def _flatten(self, node: Node, zone: str, out: List[Node], ancestors: FrozenSet[str]):
        out.append(node)
        children = self._expanded_children(node, zone)
        if children is None or node.id in ancestors:
            return
        ancestors = ancestors | {node.id}
        for child in children:
            self._flatten(child, zone, out, ancestors)

    def is_visible(self, node: Node, zone: str) -> bool:
        """
        True when every strict ancestor on the node's path, other than the
        hierarchy root, is expanded in the zone.
        """
        for ancestor_id in node.path[1:-1]:
            if not self.expansion.is_expanded(node.dimension, zone, ancestor_id):
                return False
        return True

    def header_tree(self, nodes: Iterable[Node], zone: str) -> List[HeaderCell]:
        """Pre-order header cells for the column zone, with leaf spans."""
        cells: List[HeaderCell] = []
        for node in nodes:
            self._headers(node, zone, 0, cells, frozenset())
        return cells

    def _headers(self, node: Node, zone: str, depth: int, out: List[HeaderCell], ancestors: FrozenSet[str]):
        children = self._expanded_children(node, zone)
        shown_as_leaf = children is None or node.id in ancestors
        out.append(HeaderCell(
            node=node,
            depth=depth,
            span=self.leaf_count(node, zone),
            is_visible_leaf=shown_as_leaf,
        ))
        if shown_as_leaf:
            return
        ancestors = ancestors | {node.id}
        for child in children:
            self._headers(child, zone, depth + 1, out, ancestors)
