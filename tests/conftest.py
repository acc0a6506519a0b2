"""Shared test fixtures for the Process Optimizer backend.

Provides:
- A fresh database per test (temporary SQLite file by default, or the
  database named by TEST_DATABASE_URL, e.g. a PostgreSQL test instance)
- A VersionStore bound to that database
- A scriptable fake optimizer standing in for the OpenAI client
- FastAPI test app + HTTP client with the store and optimizer overridden
- Sample BPMN markup and canned optimizer replies
"""

from __future__ import annotations

import json
import os

# Set test environment BEFORE any app imports so Settings() picks them up.
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient

from process_optimizer.database import make_engine, make_session_factory
from process_optimizer.models.base import Base
from process_optimizer.services.optimization_gateway import OptimizationGateway
from process_optimizer.services.version_store import VersionStore

# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

SAMPLE_BPMN = """<?xml version="1.0" encoding="UTF-8"?>
<bpmn:definitions xmlns:bpmn="http://www.omg.org/spec/BPMN/20100524/MODEL" id="Definitions_1">
  <bpmn:process id="Process_1" isExecutable="false">
    <bpmn:startEvent id="Start_1" />
    <bpmn:task id="Task_1" name="Check order" />
    <bpmn:endEvent id="End_1" />
    <bpmn:sequenceFlow id="Flow_1" sourceRef="Start_1" targetRef="Task_1" />
    <bpmn:sequenceFlow id="Flow_2" sourceRef="Task_1" targetRef="End_1" />
  </bpmn:process>
</bpmn:definitions>"""

OPTIMIZED_BPMN = """<?xml version="1.0" encoding="UTF-8"?>
<bpmn:definitions xmlns:bpmn="http://www.omg.org/spec/BPMN/20100524/MODEL" id="Definitions_1">
  <bpmn:process id="Process_1" isExecutable="false">
    <bpmn:startEvent id="Start_1" />
    <bpmn:endEvent id="End_1" />
    <bpmn:sequenceFlow id="Flow_1" sourceRef="Start_1" targetRef="End_1" />
  </bpmn:process>
</bpmn:definitions>"""


def optimizer_reply(
    suggestions: list[str] | None = None,
    markup: str = OPTIMIZED_BPMN,
) -> str:
    """A well-formed JSON reply as the optimizer would send it."""
    return json.dumps(
        {
            "suggestions": suggestions if suggestions is not None else ["Remove the manual check"],
            "optimizedMarkup": markup,
        }
    )


class FakeOptimizer:
    """Deterministic stand-in for the generative optimizer.

    Returns ``reply`` (or raises ``error``) and records every markup it was given.
    """

    def __init__(self, reply: str | None = None, error: Exception | None = None) -> None:
        self.reply = reply if reply is not None else optimizer_reply()
        self.error = error
        self.calls: list[str] = []

    async def generate(self, markup: str) -> str:
        self.calls.append(markup)
        if self.error is not None:
            raise self.error
        return self.reply

    async def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


def _test_db_url(tmp_path) -> str:
    return os.getenv("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
async def engine(tmp_path):
    """Engine on an empty schema; tables are dropped again at teardown."""
    engine = make_engine(_test_db_url(tmp_path))
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
    except Exception as exc:
        await engine.dispose()
        pytest.skip(f"Test database not available ({exc})")

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return VersionStore(session_factory, max_attempts=3)


@pytest.fixture
def fake_optimizer():
    return FakeOptimizer()


@pytest.fixture
def gateway(fake_optimizer):
    return OptimizationGateway(fake_optimizer)


# ---------------------------------------------------------------------------
# FastAPI test app + HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
async def app(store, fake_optimizer):
    """Minimal FastAPI test app with the store and optimizer overridden."""
    from fastapi import FastAPI
    from slowapi import _rate_limit_exceeded_handler
    from slowapi.errors import RateLimitExceeded

    from process_optimizer.api.deps import get_optimizer, get_version_store
    from process_optimizer.api.errors import register_exception_handlers
    from process_optimizer.api.v1.router import api_router
    from process_optimizer.config import settings
    from process_optimizer.core.rate_limit import limiter

    test_app = FastAPI()
    test_app.state.limiter = limiter
    test_app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(test_app)
    test_app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    test_app.dependency_overrides[get_version_store] = lambda: store
    test_app.dependency_overrides[get_optimizer] = lambda: fake_optimizer
    yield test_app
    test_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    """HTTP test client for the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c


@pytest.fixture(autouse=True)
def _disable_rate_limiter():
    """Disable slowapi rate limiting during tests to avoid 429 responses."""
    from process_optimizer.core.rate_limit import limiter

    limiter.enabled = False
    yield
    limiter.enabled = True
