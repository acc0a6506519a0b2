"""Coordination of saving and optimizing diagrams.

A diagram is either a :class:`DraftDiagram` (never saved, no id) or a
persisted :class:`~process_optimizer.models.diagram.Diagram`. Saving a draft
creates it at version 1; saving a :class:`DiagramEdit` appends a version.
Optimization turns a diagram into a :class:`Candidate`, which is only a draft
until someone saves it.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any

from process_optimizer.core.errors import ValidationError
from process_optimizer.models.diagram import Diagram
from process_optimizer.models.diagram_version import DiagramVersion
from process_optimizer.services.optimization_gateway import (
    OptimizationGateway,
    OptimizationResult,
)
from process_optimizer.services.version_store import VersionStore

logger = logging.getLogger(__name__)


@dataclass
class DraftDiagram:
    """A diagram that has not been persisted yet."""

    name: str
    bpmn_xml: str
    description: str | None = None
    layout: Any = None
    suggestions: list[str] | None = None


@dataclass
class DiagramEdit:
    """New content for an existing diagram."""

    id: int
    bpmn_xml: str
    layout: Any = None
    suggestions: list[str] | None = None


@dataclass
class Candidate(DraftDiagram):
    """Optimizer output shaped as a draft; persisted only by an explicit save."""

    version: int = 1
    source_diagram_id: int | None = None


def _require_markup(markup: str | None) -> None:
    if markup is None or not markup.strip():
        raise ValidationError("Diagram markup (bpmnXml) must not be empty")


class DiagramService:
    def __init__(self, store: VersionStore, gateway: OptimizationGateway) -> None:
        self.store = store
        self.gateway = gateway

    async def list_diagrams(self) -> list[Diagram]:
        return await self.store.list_diagrams()

    async def get_diagram(self, diagram_id: int) -> Diagram:
        return await self.store.get_diagram(diagram_id)

    async def save_diagram(
        self, diagram: DraftDiagram | DiagramEdit, comment: str | None = None
    ) -> Diagram:
        """Create a draft at version 1, or append a version to an existing diagram.

        ``comment`` describes the change and is only recorded for edits; the
        implicit first version of a new diagram always reads "Initial version".
        """
        if not isinstance(diagram, (DraftDiagram, DiagramEdit)):
            raise TypeError(f"Cannot save {type(diagram).__name__}")
        _require_markup(diagram.bpmn_xml)
        if isinstance(diagram, DiagramEdit):
            return await self.store.update_diagram(
                diagram.id,
                markup=diagram.bpmn_xml,
                layout=diagram.layout,
                comment=comment,
                suggestions=diagram.suggestions,
            )
        if not diagram.name or not diagram.name.strip():
            raise ValidationError("Diagram name must not be empty")
        return await self.store.create_diagram(
            name=diagram.name.strip(),
            description=diagram.description,
            markup=diagram.bpmn_xml,
            layout=diagram.layout,
            suggestions=diagram.suggestions,
        )

    async def delete_diagram(self, diagram_id: int) -> bool:
        return await self.store.delete_diagram(diagram_id)

    async def list_versions(self, diagram_id: int) -> list[DiagramVersion]:
        return await self.store.list_versions(diagram_id)

    async def get_version(self, diagram_id: int, version: int) -> DiagramVersion:
        return await self.store.get_version(diagram_id, version)

    async def optimize(self, markup: str) -> OptimizationResult:
        return await self.gateway.optimize(markup)

    async def request_optimization(self, diagram: Diagram | DraftDiagram) -> Candidate:
        """Ask for an optimized sibling of ``diagram``. Nothing is written."""
        result = await self.gateway.optimize(diagram.bpmn_xml)
        source_id = diagram.id if isinstance(diagram, Diagram) else None
        logger.info(
            "Built optimization candidate for diagram %s",
            source_id if source_id is not None else "(draft)",
            extra={"diagram_id": source_id},
        )
        return Candidate(
            name=f"{diagram.name} (optimized)",
            description=f"Optimized version of: {diagram.name}",
            bpmn_xml=result.optimized_markup,
            layout=copy.deepcopy(diagram.layout),
            suggestions=list(result.suggestions),
            version=1,
            source_diagram_id=source_id,
        )
