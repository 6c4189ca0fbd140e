"""
rest_api.py - REST API for the hierarchical pivot engine

Exposes the two inbound operations (pivot request, expansion toggle) and
returns results in a renderer-ready JSON form.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from hierarchy_pivot.controller import PivotController, UnknownNodeError
from hierarchy_pivot.types.pivot_spec import PivotRequest

logger = logging.getLogger(__name__)


# Pydantic models for API requests/responses
class PivotRequestModel(BaseModel):
    """Pydantic model for pivot request"""
    rows: List[str] = []
    columns: List[str] = []
    measures: List[str] = []
    exclusions: Dict[str, List[str]] = {}
    prune_empty: bool = False


class ExpansionRequest(BaseModel):
    """Pydantic model for a single-node expansion change"""
    dimension: str
    zone: str = "row"
    node_id: str
    expanded: Optional[bool] = None


class CollapseAllRequest(BaseModel):
    dimension: Optional[str] = None
    zone: Optional[str] = None


class APIResponse(BaseModel):
    """Base API response model"""
    status: str
    data: Optional[Any] = None
    metadata: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class PivotAPI:
    """REST API over a PivotController"""

    def __init__(self, controller: PivotController):
        self.controller = controller
        self.app = FastAPI(title="Hierarchical Pivot Engine API")
        self._setup_routes()

    def _result_payload(self, prune_empty: bool = False) -> Optional[Dict[str, Any]]:
        result = self.controller.result
        if result is None:
            return None
        if prune_empty:
            result = result.prune_empty()
        return result.to_dict()

    def _setup_routes(self):
        """Setup all API routes"""

        @self.app.get("/health")
        async def health_check():
            return {"status": "healthy", "service": "hierarchy-pivot", "version": "1.0"}

        @self.app.post("/pivot")
        async def pivot_endpoint(request: PivotRequestModel):
            pivot_request = PivotRequest(
                rows=request.rows,
                columns=request.columns,
                measures=request.measures,
                exclusions=request.exclusions,
            )
            self.controller.run_pivot(pivot_request)
            return APIResponse(
                status="success",
                data=self._result_payload(request.prune_empty),
                metadata=self.controller.get_stats(),
            )

        @self.app.post("/expansion/toggle")
        async def toggle_endpoint(request: ExpansionRequest):
            try:
                if request.expanded is None:
                    change = self.controller.toggle_expansion(request.dimension, request.zone, request.node_id)
                else:
                    change = self.controller.set_expansion(
                        request.dimension, request.zone, request.node_id, request.expanded
                    )
            except UnknownNodeError as e:
                logger.warning("Expansion change rejected: %s", e)
                raise HTTPException(status_code=404, detail=str(e))
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

            return APIResponse(status="success", data=self._result_payload(), metadata=change)

        @self.app.post("/expansion/collapse-all")
        async def collapse_all_endpoint(request: CollapseAllRequest):
            try:
                self.controller.collapse_all(request.dimension, request.zone)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return APIResponse(status="success", data=self._result_payload())

        @self.app.get("/expansion")
        async def expansion_endpoint():
            return APIResponse(status="success", data=self.controller.expansion.to_dict())

    def get_app(self) -> FastAPI:
        return self.app


def create_api(controller: PivotController) -> PivotAPI:
    """Create the REST API for an already loaded controller"""
    return PivotAPI(controller)
