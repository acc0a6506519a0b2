from __future__ import annotations

from fastapi import Depends, Request

from process_optimizer.config import settings
from process_optimizer.core.errors import ValidationError
from process_optimizer.database import async_session
from process_optimizer.services.diagram_service import DiagramService
from process_optimizer.services.optimization_gateway import OptimizationGateway
from process_optimizer.services.optimizer import OpenAIOptimizer, Optimizer
from process_optimizer.services.version_store import VersionStore


def parse_positive_int(raw: str, what: str = "diagram id") -> int:
    """Path parameters arrive as strings; reject anything but a positive integer."""
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {what}: {raw!r}") from None
    if value < 1:
        raise ValidationError(f"Invalid {what}: {raw!r}")
    return value


def get_version_store() -> VersionStore:
    return VersionStore(async_session, max_attempts=settings.VERSION_BUMP_MAX_ATTEMPTS)


def get_optimizer(request: Request) -> Optimizer:
    """The optimizer lives on ``app.state``; the lifespan creates and closes it."""
    optimizer = getattr(request.app.state, "optimizer", None)
    if optimizer is None:
        optimizer = OpenAIOptimizer.from_settings(settings)
        request.app.state.optimizer = optimizer
    return optimizer


def get_diagram_service(
    store: VersionStore = Depends(get_version_store),
    optimizer: Optimizer = Depends(get_optimizer),
) -> DiagramService:
    return DiagramService(store, OptimizationGateway(optimizer))
