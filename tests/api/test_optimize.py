"""Integration tests for POST /optimize (raw markup in, suggestions out)."""

from __future__ import annotations

from process_optimizer.core.errors import OptimizationError
from tests.conftest import OPTIMIZED_BPMN, SAMPLE_BPMN


class TestOptimize:
    async def test_success(self, client, fake_optimizer):
        resp = await client.post("/api/v1/optimize", json={"bpmnXml": SAMPLE_BPMN})
        assert resp.status_code == 200
        assert resp.json() == {
            "suggestions": ["Remove the manual check"],
            "optimizedMarkup": OPTIMIZED_BPMN,
        }
        assert fake_optimizer.calls == [SAMPLE_BPMN]

    async def test_nothing_is_stored(self, client):
        await client.post("/api/v1/optimize", json={"bpmnXml": SAMPLE_BPMN})
        resp = await client.get("/api/v1/diagrams")
        assert resp.json() == []

    async def test_missing_body_field_is_422(self, client):
        resp = await client.post("/api/v1/optimize", json={})
        assert resp.status_code == 422

    async def test_blank_markup_is_422(self, client, fake_optimizer):
        resp = await client.post("/api/v1/optimize", json={"bpmnXml": ""})
        assert resp.status_code == 422
        assert fake_optimizer.calls == []

    async def test_malformed_reply_is_502(self, client, fake_optimizer):
        fake_optimizer.reply = "I could not do that."
        resp = await client.post("/api/v1/optimize", json={"bpmnXml": SAMPLE_BPMN})
        assert resp.status_code == 502
        assert resp.json() == {"detail": "malformed response"}

    async def test_unavailable_is_502(self, client, fake_optimizer):
        fake_optimizer.error = OptimizationError("optimization service unavailable")
        resp = await client.post("/api/v1/optimize", json={"bpmnXml": SAMPLE_BPMN})
        assert resp.status_code == 502
        assert resp.json()["detail"] == "optimization service unavailable"
