"""
Structured diagnostics for degraded-but-successful engine behaviour.

Nothing in a pivot build is fatal. When a node cannot be resolved or a
filter cannot be applied, the engine keeps going and records a Diagnostic
so callers and tests can see exactly which nodes were less filtered than
intended.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)


class DiagnosticCode(str, Enum):
    UNRESOLVED_CHILD = "unresolved_child"
    UNMAPPED_NODE = "unmapped_node"
    UNKNOWN_DIMENSION = "unknown_dimension"
    UNKNOWN_NODE = "unknown_node"


@dataclass(frozen=True)
class Diagnostic:
    code: DiagnosticCode
    dimension: Optional[str]
    node_id: Optional[str]
    message: str

    def to_dict(self):
        return {
            "code": self.code.value,
            "dimension": self.dimension,
            "node_id": self.node_id,
            "message": self.message,
        }


class DiagnosticCollector:
    """
    Collects diagnostics, deduplicated by (code, dimension, node_id).

    A node filtered once per cell would otherwise raise the same signal
    hundreds of times in one build. Each new entry is logged once.
    """

    def __init__(self):
        self._items: List[Diagnostic] = []
        self._seen: Set[Tuple[DiagnosticCode, Optional[str], Optional[str]]] = set()

    def emit(
        self,
        code: DiagnosticCode,
        message: str,
        dimension: Optional[str] = None,
        node_id: Optional[str] = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(code=code, dimension=dimension, node_id=node_id, message=message)
        key = (code, dimension, node_id)
        if key not in self._seen:
            self._seen.add(key)
            self._items.append(diagnostic)
            logger.warning("%s [%s/%s]: %s", code.value, dimension, node_id, message)
        return diagnostic

    def drain(self) -> List[Diagnostic]:
        """Return collected diagnostics and reset the collector."""
        items = self._items
        self._items = []
        self._seen = set()
        return items

    def has(self, code: DiagnosticCode, node_id: Optional[str] = None) -> bool:
        return any(d.code == code and (node_id is None or d.node_id == node_id) for d in self._items)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)
