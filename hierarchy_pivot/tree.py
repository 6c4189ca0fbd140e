"""
Tree Expansion State Management for Hierarchical Pivots

Tracks which hierarchy nodes are expanded, per dimension and per zone
(row or column). Nodes never carry their own expanded flag; this object is
the only place expansion lives.
"""

from typing import Dict, Any, Iterable, List, Mapping, Optional, Tuple
import time
import json

from .types.pivot_spec import Zone, validate_zone


class ExpansionState:
    """
    state[dimension][zone][node_id] -> bool

    Absent entries default to collapsed, except a dimension's root: it
    starts collapsed in the column zone, and in the row zone only the first
    row dimension starts expanded.
    """

    def __init__(
        self,
        root_ids: Optional[Mapping[str, str]] = None,
        column_root_expanded: bool = False,
        first_row_dimension_expanded: bool = True,
    ):
        self.root_ids: Dict[str, str] = {k.lower(): v for k, v in (root_ids or {}).items()}
        self.column_root_expanded = column_root_expanded
        self.first_row_dimension_expanded = first_row_dimension_expanded
        self._state: Dict[str, Dict[str, Dict[str, bool]]] = {}
        self._row_dimensions: List[str] = []
        self.version = 0
        self.timestamp = time.time()

    def _touch(self):
        self.version += 1
        self.timestamp = time.time()

    def _zone_map(self, dim: str, zone: str) -> Dict[str, bool]:
        validate_zone(zone)
        return self._state.setdefault(dim.lower(), {}).setdefault(zone, {})

    def set_row_dimensions(self, dims: Iterable[str]):
        """Record row dimension order; it decides which roots start expanded."""
        dims = [d.lower() for d in dims]
        if dims != self._row_dimensions:
            self._row_dimensions = dims
            self._touch()

    def _root_default(self, dim: str, zone: str) -> bool:
        if zone == Zone.COLUMN:
            return self.column_root_expanded
        if not self._row_dimensions or dim not in self._row_dimensions:
            return self.first_row_dimension_expanded
        if self._row_dimensions[0] == dim:
            return self.first_row_dimension_expanded
        return False

    def is_expanded(self, dim: str, zone: str, node_id: str) -> bool:
        """Check if a node is expanded in the zone"""
        dim = dim.lower()
        zone_map = self._state.get(dim, {}).get(validate_zone(zone), {})
        if node_id in zone_map:
            return zone_map[node_id]
        if self.root_ids.get(dim) == node_id:
            return self._root_default(dim, zone)
        return False

    def set_expanded(self, dim: str, zone: str, node_id: str, expanded: bool):
        self._zone_map(dim, zone)[node_id] = bool(expanded)
        self._touch()

    def expand(self, dim: str, zone: str, node_id: str):
        self.set_expanded(dim, zone, node_id, True)

    def collapse(self, dim: str, zone: str, node_id: str):
        self.set_expanded(dim, zone, node_id, False)

    def toggle(self, dim: str, zone: str, node_id: str) -> bool:
        new_value = not self.is_expanded(dim, zone, node_id)
        self.set_expanded(dim, zone, node_id, new_value)
        return new_value

    def expand_all(self, dim: str, zone: str, node_ids: Iterable[str]):
        zone_map = self._zone_map(dim, zone)
        for node_id in node_ids:
            zone_map[node_id] = True
        self._touch()

    def collapse_all(self, dim: Optional[str] = None, zone: Optional[str] = None):
        """Collapse every node of one dimension (or all of them), roots included."""
        dims = [dim.lower()] if dim else sorted(set(self._state) | set(self.root_ids))
        zones = [validate_zone(zone)] if zone else list(Zone.ALL)
        for d in dims:
            for z in zones:
                zone_map = self._zone_map(d, z)
                zone_map.clear()
                if d in self.root_ids:
                    zone_map[self.root_ids[d]] = False
        self._touch()

    def snapshot(self) -> Tuple:
        """Hashable view of the state, used as part of result cache keys."""
        entries = tuple(sorted(
            (dim, zone, node_id, value)
            for dim, zones in self._state.items()
            for zone, nodes in zones.items()
            for node_id, value in nodes.items()
        ))
        return (tuple(self._row_dimensions), entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expanded_nodes": {
                dim: {zone: dict(nodes) for zone, nodes in zones.items()}
                for dim, zones in self._state.items()
            },
            "row_dimensions": list(self._row_dimensions),
            "version": self.version,
            "timestamp": self.timestamp,
        }

    def serialize(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_dict(
        cls,
        obj: Mapping[str, Any],
        root_ids: Optional[Mapping[str, str]] = None,
        **policy: Any
    ) -> "ExpansionState":
        state = cls(root_ids=root_ids, **policy)
        for dim, zones in (obj.get("expanded_nodes") or {}).items():
            for zone, nodes in zones.items():
                state._zone_map(dim, zone).update({k: bool(v) for k, v in nodes.items()})
        state._row_dimensions = [d.lower() for d in obj.get("row_dimensions", [])]
        state.version = obj.get("version", 0)
        state.timestamp = obj.get("timestamp", time.time())
        return state

    @classmethod
    def deserialize(cls, data: str, root_ids: Optional[Mapping[str, str]] = None, **policy: Any) -> "ExpansionState":
        return cls.from_dict(json.loads(data), root_ids=root_ids, **policy)
