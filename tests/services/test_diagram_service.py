"""Tests for process_optimizer.services.diagram_service — save dispatch and candidates."""

from __future__ import annotations

import pytest

from process_optimizer.core.errors import NotFoundError, OptimizationError, ValidationError
from process_optimizer.services.diagram_service import (
    Candidate,
    DiagramEdit,
    DiagramService,
    DraftDiagram,
)
from process_optimizer.services.optimization_gateway import OptimizationGateway
from process_optimizer.services.version_store import INITIAL_VERSION_COMMENT
from tests.conftest import OPTIMIZED_BPMN, SAMPLE_BPMN, FakeOptimizer


@pytest.fixture
def service(store, gateway):
    return DiagramService(store, gateway)


# ---------------------------------------------------------------------------
# save_diagram
# ---------------------------------------------------------------------------


class TestSaveDiagram:
    async def test_draft_is_created_at_version_one(self, service):
        diagram = await service.save_diagram(
            DraftDiagram(name="Onboarding", bpmn_xml=SAMPLE_BPMN, layout={"zoom": 1})
        )
        assert diagram.id is not None
        assert diagram.current_version == 1
        versions = await service.list_versions(diagram.id)
        assert [v.comment for v in versions] == [INITIAL_VERSION_COMMENT]

    async def test_comment_on_draft_is_not_recorded(self, service):
        diagram = await service.save_diagram(
            DraftDiagram(name="Onboarding", bpmn_xml=SAMPLE_BPMN), comment="ignored"
        )
        first = await service.get_version(diagram.id, 1)
        assert first.comment == INITIAL_VERSION_COMMENT

    async def test_name_is_trimmed(self, service):
        diagram = await service.save_diagram(
            DraftDiagram(name="  Onboarding  ", bpmn_xml=SAMPLE_BPMN)
        )
        assert diagram.name == "Onboarding"

    async def test_edit_appends_version(self, service):
        diagram = await service.save_diagram(DraftDiagram(name="A", bpmn_xml=SAMPLE_BPMN))
        updated = await service.save_diagram(
            DiagramEdit(id=diagram.id, bpmn_xml=OPTIMIZED_BPMN), comment="simplified"
        )
        assert updated.id == diagram.id
        assert updated.current_version == 2
        snapshot = await service.get_version(diagram.id, 2)
        assert snapshot.comment == "simplified"

    async def test_edit_of_unknown_diagram(self, service):
        with pytest.raises(NotFoundError):
            await service.save_diagram(DiagramEdit(id=404, bpmn_xml=SAMPLE_BPMN))

    async def test_blank_name_rejected(self, service):
        with pytest.raises(ValidationError):
            await service.save_diagram(DraftDiagram(name="  ", bpmn_xml=SAMPLE_BPMN))

    async def test_blank_markup_rejected(self, service):
        with pytest.raises(ValidationError):
            await service.save_diagram(DraftDiagram(name="A", bpmn_xml=""))
        assert await service.list_diagrams() == []

    async def test_candidate_saves_as_new_diagram(self, service):
        source = await service.save_diagram(DraftDiagram(name="A", bpmn_xml=SAMPLE_BPMN))
        candidate = await service.request_optimization(source)

        saved = await service.save_diagram(candidate)

        assert saved.id != source.id
        assert saved.current_version == 1
        assert saved.name == "A (optimized)"
        assert saved.suggestions == ["Remove the manual check"]

    async def test_unknown_type_rejected(self, service):
        with pytest.raises(TypeError):
            await service.save_diagram(object())  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# request_optimization
# ---------------------------------------------------------------------------


class TestRequestOptimization:
    async def test_candidate_from_persisted_diagram(self, service, fake_optimizer):
        source = await service.save_diagram(
            DraftDiagram(name="Invoices", bpmn_xml=SAMPLE_BPMN, layout={"zoom": 2})
        )

        candidate = await service.request_optimization(source)

        assert isinstance(candidate, Candidate)
        assert candidate.name == "Invoices (optimized)"
        assert candidate.description == "Optimized version of: Invoices"
        assert candidate.bpmn_xml == OPTIMIZED_BPMN
        assert candidate.layout == {"zoom": 2}
        assert candidate.suggestions == ["Remove the manual check"]
        assert candidate.version == 1
        assert candidate.source_diagram_id == source.id
        assert fake_optimizer.calls == [SAMPLE_BPMN]

    async def test_candidate_is_not_persisted(self, service):
        source = await service.save_diagram(DraftDiagram(name="A", bpmn_xml=SAMPLE_BPMN))

        await service.request_optimization(source)

        assert [d.id for d in await service.list_diagrams()] == [source.id]
        assert len(await service.list_versions(source.id)) == 1
        reloaded = await service.get_diagram(source.id)
        assert reloaded.bpmn_xml == SAMPLE_BPMN

    async def test_layout_is_copied(self, service):
        draft = DraftDiagram(name="A", bpmn_xml=SAMPLE_BPMN, layout={"nodes": {"a": 1}})
        candidate = await service.request_optimization(draft)
        candidate.layout["nodes"]["a"] = 2
        assert draft.layout == {"nodes": {"a": 1}}

    async def test_candidate_from_draft_has_no_source(self, service):
        candidate = await service.request_optimization(
            DraftDiagram(name="Scratch", bpmn_xml=SAMPLE_BPMN)
        )
        assert candidate.source_diagram_id is None

    async def test_failure_propagates(self, store):
        service = DiagramService(store, OptimizationGateway(FakeOptimizer(reply="{}")))
        source = await service.save_diagram(DraftDiagram(name="A", bpmn_xml=SAMPLE_BPMN))
        with pytest.raises(OptimizationError):
            await service.request_optimization(source)


class TestPassThroughReads:
    async def test_delete(self, service):
        diagram = await service.save_diagram(DraftDiagram(name="A", bpmn_xml=SAMPLE_BPMN))
        assert await service.delete_diagram(diagram.id) is True
        with pytest.raises(NotFoundError):
            await service.get_diagram(diagram.id)

    async def test_optimize_raw_markup(self, service):
        result = await service.optimize(SAMPLE_BPMN)
        assert result.optimized_markup == OPTIMIZED_BPMN
