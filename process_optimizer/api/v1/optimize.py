from fastapi import APIRouter, Depends, Request

from process_optimizer.api.deps import get_diagram_service
from process_optimizer.config import settings
from process_optimizer.core.rate_limit import limiter
from process_optimizer.schemas.diagram import OptimizationResponse, OptimizeRequest
from process_optimizer.services.diagram_service import DiagramService

router = APIRouter(tags=["optimization"])


@router.post("/optimize", response_model=OptimizationResponse)
@limiter.limit(settings.OPTIMIZE_RATE_LIMIT)
async def optimize(
    request: Request,
    body: OptimizeRequest,
    service: DiagramService = Depends(get_diagram_service),
):
    """Suggest improvements and an optimized rewrite of arbitrary BPMN markup."""
    result = await service.optimize(body.bpmn_xml)
    return OptimizationResponse.model_validate(result)
