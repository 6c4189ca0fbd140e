"""
hierarchy_pivot package - hierarchical pivot aggregation

Expose the controller and the request/result types.
"""
from .controller import PivotController, UnknownNodeError
from .types.pivot_result import PivotResult
from .types.pivot_spec import PivotRequest, Zone

__all__ = ["PivotController", "UnknownNodeError", "PivotRequest", "PivotResult", "Zone"]
