"""
Measure aggregation over the intersection of a row node and a column node.
"""
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .compositor import CompositeRow, RowCompositor
from .filters.dimension_filter import DimensionFilterResolver
from .types.hierarchy import Node

Record = Mapping[str, Any]


def parse_numeric(value: Any) -> float:
    """Numeric value of a measure field; absent or non-numeric values count as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


class MeasureAggregator:
    """
    Applies the row filter, then the column filter, and sums measure fields.
    Filters are pure subset operations, so their order does not change the
    result.
    """

    def __init__(self, resolver: DimensionFilterResolver, compositor: Optional[RowCompositor] = None):
        self.resolver = resolver
        self.compositor = compositor

    def filter_row(self, records: Iterable[Record], row: Any) -> List[Record]:
        if row is None:
            return list(records)
        if isinstance(row, CompositeRow):
            if self.compositor is None:
                raise ValueError("Composite rows need a row compositor")
            return self.compositor.filter(records, row)
        return self.resolver.filter(records, row)

    def filter_column(self, records: Iterable[Record], col: Optional[Node]) -> List[Record]:
        return self.resolver.filter(records, col)

    def intersect(self, records: Iterable[Record], row: Any, col: Optional[Node]) -> List[Record]:
        return self.filter_column(self.filter_row(records, row), col)

    @staticmethod
    def sum_field(records: Iterable[Record], field: str) -> float:
        return sum((parse_numeric(r.get(field)) for r in records), 0.0)

    def measure(self, records: Iterable[Record], row: Any, col: Optional[Node], field: str) -> float:
        return self.sum_field(self.intersect(records, row, col), field)

    def measures(
        self,
        records: Iterable[Record],
        row: Any,
        col: Optional[Node],
        fields: Sequence[str],
    ) -> Dict[str, float]:
        """Sum several measure fields over one filtered record set."""
        matched = self.intersect(records, row, col)
        return {field: self.sum_field(matched, field) for field in fields}
