"""
Dimension catalog loading from plain dicts (e.g. parsed JSON).

Hierarchy dict format:

    {
        "root": "ROOT",
        "nodes": [
            {"id": "ROOT", "label": "All Legal Entities", "children": ["EU", "US"]},
            {"id": "EU", "label": "Europe", "parent_id": "ROOT",
             "children": [{"id": "A100", "label": "A100", "fact_id": "A100"}]},
            ...
        ]
    }

Children may be ids or inline node dicts. Missing level, path and is_leaf
values are derived from parent links.
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .config import get_config
from .types.hierarchy import ById, DimensionMapping, Hierarchy, Inline, Node

logger = logging.getLogger(__name__)


def _node_from_dict(
    d: Mapping[str, Any],
    dimension: str,
    parent_id: Optional[str],
    parent_path: Optional[Tuple[str, ...]],
) -> Node:
    node_id = str(d["id"])
    path = tuple(d["path"]) if d.get("path") else (
        parent_path + (node_id,) if parent_path is not None else None
    )

    children = []
    for child in d.get("children") or []:
        if isinstance(child, Mapping):
            children.append(Inline(_node_from_dict(child, dimension, node_id, path)))
        else:
            children.append(ById(str(child)))

    return Node(
        id=node_id,
        label=str(d.get("label", node_id)),
        dimension=dimension,
        level=d.get("level", len(path) - 1 if path else 0),
        parent_id=d.get("parent_id", parent_id),
        path=path or (),
        children=tuple(children),
        is_leaf=d.get("is_leaf", not children),
        fact_id=d.get("fact_id"),
        has_children=d.get("has_children", bool(children)),
        level_value=d.get("level_value"),
        attributes=dict(d.get("attributes") or {}),
    )


def _derive_path(node_id: str, raw: Mapping[str, Mapping[str, Any]]) -> Tuple[str, ...]:
    path = [node_id]
    seen = {node_id}
    parent = raw[node_id].get("parent_id")
    while parent is not None and parent in raw and parent not in seen:
        path.append(parent)
        seen.add(parent)
        parent = raw[parent].get("parent_id")
    return tuple(reversed(path))


def build_hierarchy(name: str, data: Mapping[str, Any]) -> Hierarchy:
    """Build a Hierarchy from its dict form."""
    name = name.lower()
    raw = {str(n["id"]): n for n in data.get("nodes", [])}

    # Parent links given only as child lists
    parents: Dict[str, str] = {}
    for node_id, d in raw.items():
        for child in d.get("children") or []:
            if not isinstance(child, Mapping):
                parents.setdefault(str(child), node_id)
    for node_id, d in raw.items():
        if d.get("parent_id") is None and node_id in parents:
            raw[node_id] = dict(d, parent_id=parents[node_id])

    nodes = {}
    for node_id, d in raw.items():
        path = tuple(d["path"]) if d.get("path") else _derive_path(node_id, raw)
        node = _node_from_dict(dict(d, path=list(path)), name, d.get("parent_id"), path[:-1])
        nodes[node_id] = node

    root = str(data.get("root") or next(iter(raw), ""))
    hierarchy = Hierarchy(name=name, root=root, nodes_by_id=nodes)
    logger.debug("Built %s hierarchy with %d nodes", name, len(hierarchy))
    return hierarchy


def flat_hierarchy(
    name: str,
    values: Iterable[Any],
    root_id: Optional[str] = None,
    root_label: Optional[str] = None,
) -> Hierarchy:
    """Root plus one leaf per distinct value, in first-seen order."""
    name = name.lower()
    root_id = root_id or f"{name.upper()}_ROOT"
    distinct: List[Any] = []
    for value in values:
        if value not in distinct:
            distinct.append(value)

    leaves = [
        Node(
            id=f"{name.upper()}_{value}",
            label=str(value),
            dimension=name,
            level=1,
            parent_id=root_id,
            path=(root_id, f"{name.upper()}_{value}"),
            is_leaf=True,
            fact_id=value,
        )
        for value in distinct
    ]
    root = Node(
        id=root_id,
        label=root_label or f"All {name.replace('_', ' ').title()}",
        dimension=name,
        path=(root_id,),
        children=tuple(ById(leaf.id) for leaf in leaves),
        has_children=bool(leaves),
    )
    nodes = {root.id: root}
    nodes.update({leaf.id: leaf for leaf in leaves})
    return Hierarchy(name=name, root=root_id, nodes_by_id=nodes)


def load_catalog(data: Mapping[str, Any]) -> Tuple[Dict[str, Hierarchy], Dict[str, DimensionMapping]]:
    """Load {"hierarchies": {...}, "mappings": {...}} into engine types."""
    separator = get_config().mapping_path_separator
    hierarchies = {
        name.lower(): build_hierarchy(name, h) for name, h in (data.get("hierarchies") or {}).items()
    }
    mappings = {
        name.lower(): DimensionMapping.from_dict(m, path_separator=separator)
        for name, m in (data.get("mappings") or {}).items()
    }
    logger.info("Loaded catalog: %d hierarchies, %d mappings", len(hierarchies), len(mappings))
    return hierarchies, mappings
