"""Diagrams — CRUD, version history, and optimization candidates."""

from fastapi import APIRouter, Depends, Request

from process_optimizer.api.deps import get_diagram_service, parse_positive_int
from process_optimizer.config import settings
from process_optimizer.core.rate_limit import limiter
from process_optimizer.schemas.diagram import (
    CandidateResponse,
    DiagramCreate,
    DiagramResponse,
    DiagramUpdate,
    DiagramVersionResponse,
)
from process_optimizer.services.diagram_service import (
    DiagramEdit,
    DiagramService,
    DraftDiagram,
)

router = APIRouter(prefix="/diagrams", tags=["diagrams"])


# ── Diagram endpoints ────────────────────────────────────────────────────


@router.get("", response_model=list[DiagramResponse])
async def list_diagrams(service: DiagramService = Depends(get_diagram_service)):
    diagrams = await service.list_diagrams()
    return [DiagramResponse.model_validate(d) for d in diagrams]


@router.get("/{diagram_id}", response_model=DiagramResponse)
async def get_diagram(
    diagram_id: str,
    service: DiagramService = Depends(get_diagram_service),
):
    diagram = await service.get_diagram(parse_positive_int(diagram_id))
    return DiagramResponse.model_validate(diagram)


@router.post("", response_model=DiagramResponse, status_code=201)
async def create_diagram(
    body: DiagramCreate,
    service: DiagramService = Depends(get_diagram_service),
):
    diagram = await service.save_diagram(
        DraftDiagram(
            name=body.name,
            description=body.description,
            bpmn_xml=body.bpmn_xml,
            layout=body.layout,
            suggestions=body.suggestions,
        )
    )
    return DiagramResponse.model_validate(diagram)


@router.put("/{diagram_id}", response_model=DiagramResponse)
async def update_diagram(
    diagram_id: str,
    body: DiagramUpdate,
    service: DiagramService = Depends(get_diagram_service),
):
    diagram = await service.save_diagram(
        DiagramEdit(
            id=parse_positive_int(diagram_id),
            bpmn_xml=body.bpmn_xml,
            layout=body.layout,
            suggestions=body.suggestions,
        ),
        comment=body.comment,
    )
    return DiagramResponse.model_validate(diagram)


@router.delete("/{diagram_id}")
async def delete_diagram(
    diagram_id: str,
    service: DiagramService = Depends(get_diagram_service),
):
    """Delete a diagram and its whole version history. Idempotent."""
    deleted = await service.delete_diagram(parse_positive_int(diagram_id))
    return {"success": True, "deleted": deleted}


# ── Version history ──────────────────────────────────────────────────────


@router.get("/{diagram_id}/versions", response_model=list[DiagramVersionResponse])
async def list_versions(
    diagram_id: str,
    service: DiagramService = Depends(get_diagram_service),
):
    versions = await service.list_versions(parse_positive_int(diagram_id))
    return [DiagramVersionResponse.model_validate(v) for v in versions]


@router.get("/{diagram_id}/versions/{version}", response_model=DiagramVersionResponse)
async def get_version(
    diagram_id: str,
    version: str,
    service: DiagramService = Depends(get_diagram_service),
):
    snapshot = await service.get_version(
        parse_positive_int(diagram_id), parse_positive_int(version, "version number")
    )
    return DiagramVersionResponse.model_validate(snapshot)


# ── Optimization ─────────────────────────────────────────────────────────


@router.post("/{diagram_id}/optimize", response_model=CandidateResponse)
@limiter.limit(settings.OPTIMIZE_RATE_LIMIT)
async def optimize_diagram(
    request: Request,
    diagram_id: str,
    service: DiagramService = Depends(get_diagram_service),
):
    """Return an unsaved, optimized candidate of the diagram.

    The stored diagram is not modified; save the candidate with ``POST /diagrams``
    to keep it.
    """
    diagram = await service.get_diagram(parse_positive_int(diagram_id))
    candidate = await service.request_optimization(diagram)
    return CandidateResponse.model_validate(candidate)
