"""
Hierarchy types: nodes, child references, hierarchies and dimension mappings.

Nodes are immutable. Expansion is not a node attribute; it lives in
ExpansionState so the same tree can be shown in the row and column zones
at once.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, Iterator, Mapping, Optional, Tuple, Union


@dataclass(frozen=True)
class ById:
    """Child reference stored as a raw node id"""
    id: str


@dataclass(frozen=True)
class Inline:
    """Child reference stored as an inline node object"""
    node: "Node"


ChildRef = Union[ById, Inline]


def child_ref(value: Any) -> ChildRef:
    """Normalize a raw child entry (id string, Node, ChildRef) into a ChildRef."""
    if isinstance(value, (ById, Inline)):
        return value
    if isinstance(value, Node):
        return Inline(value)
    return ById(str(value))


@dataclass(frozen=True)
class Node:
    id: str
    label: str
    dimension: str
    level: int = 0
    parent_id: Optional[str] = None
    path: Tuple[str, ...] = ()
    children: Tuple[ChildRef, ...] = ()
    is_leaf: bool = False
    fact_id: Any = None
    has_children: bool = False
    level_value: Optional[str] = None
    attributes: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        # Accept lists of ids/nodes and normalize them to hashable tuples
        object.__setattr__(self, "children", tuple(child_ref(c) for c in self.children))
        object.__setattr__(self, "path", tuple(self.path) if self.path else (self.id,))
        if isinstance(self.fact_id, (list, set, frozenset)):
            object.__setattr__(self, "fact_id", tuple(self.fact_id))

    @property
    def is_root(self) -> bool:
        """No parent link. Hierarchy.root decides which node is the root of its tree."""
        return self.parent_id is None

    def fact_ids(self) -> FrozenSet[Any]:
        """The fact key values this node matches directly (empty for internal nodes)."""
        if self.fact_id is None:
            return frozenset()
        if isinstance(self.fact_id, tuple):
            return frozenset(self.fact_id)
        return frozenset([self.fact_id])


@dataclass
class Hierarchy:
    """Named tree for one dimension"""
    name: str
    root: str
    nodes_by_id: Dict[str, Node] = field(default_factory=dict)

    def __post_init__(self):
        # Inline children are registered so id lookups find them too
        pending = list(self.nodes_by_id.values())
        while pending:
            node = pending.pop()
            for ref in node.children:
                if isinstance(ref, Inline) and ref.node.id not in self.nodes_by_id:
                    self.nodes_by_id[ref.node.id] = ref.node
                    pending.append(ref.node)

        # Parent links and root-first paths for nodes built without them
        parents: Dict[str, str] = {}
        for node in self.nodes_by_id.values():
            for ref in node.children:
                parents.setdefault(ref.node.id if isinstance(ref, Inline) else ref.id, node.id)

        for node_id, node in list(self.nodes_by_id.items()):
            if node_id == self.root:
                continue
            parent_id = node.parent_id if node.parent_id is not None else parents.get(node_id)
            if parent_id is None or (parent_id == node.parent_id and len(node.path) > 1):
                continue
            path = self._root_path(node_id, parents) if len(node.path) == 1 else node.path
            self.nodes_by_id[node_id] = replace(
                node, parent_id=parent_id, path=path, level=node.level or len(path) - 1
            )

    def _root_path(self, node_id: str, parents: Mapping[str, str]) -> Tuple[str, ...]:
        path = [node_id]
        current = self.nodes_by_id.get(node_id)
        while current is not None:
            parent = current.parent_id if current.parent_id is not None else parents.get(current.id)
            if parent is None or parent in path:
                break
            path.append(parent)
            current = self.nodes_by_id.get(parent)
        return tuple(reversed(path))

    def get(self, node_id: str) -> Optional[Node]:
        return self.nodes_by_id.get(node_id)

    @property
    def root_node(self) -> Optional[Node]:
        return self.nodes_by_id.get(self.root)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes_by_id.values())

    def __len__(self) -> int:
        return len(self.nodes_by_id)


@dataclass
class DimensionMapping:
    """
    Auxiliary indices for a direct-key dimension.

    label_to_keys: hierarchy label -> fact key values under that label
    key_to_path: fact key -> ancestor labels, root first
    key_to_details: fact key -> details such as {"description": ...}
    """
    label_to_keys: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    key_to_path: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    key_to_details: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @staticmethod
    def from_dict(d: Mapping[str, Any], path_separator: str = "//") -> "DimensionMapping":
        """Build a mapping from plain dicts; string paths are split on path_separator."""
        key_to_path = {}
        for key, path in (d.get("key_to_path") or {}).items():
            key_to_path[key] = _split_path(path, path_separator)
        return DimensionMapping(
            label_to_keys={
                label: frozenset(keys) for label, keys in (d.get("label_to_keys") or {}).items()
            },
            key_to_path=key_to_path,
            key_to_details={k: dict(v) for k, v in (d.get("key_to_details") or {}).items()},
        )

    def keys_for_label(self, label: str) -> FrozenSet[str]:
        return self.label_to_keys.get(label, frozenset())

    def keys_with_ancestor(self, label: str) -> FrozenSet[str]:
        return frozenset(k for k, path in self.key_to_path.items() if label in path)

    def keys_matching_description(self, label: str) -> FrozenSet[str]:
        return frozenset(
            k for k, details in self.key_to_details.items()
            if k == label or details.get("description") == label
        )


def _split_path(path: Union[str, Iterable[str]], separator: str) -> Tuple[str, ...]:
    if isinstance(path, str):
        return tuple(s for s in path.split(separator) if s.strip())
    return tuple(path)
