"""Persistence of diagrams and their append-only version history.

Every public method runs in its own session and transaction, so each call is
atomic on its own: a diagram and its version 1 appear together, a version bump
either appends one version *and* advances ``current_version`` or does neither,
and a delete removes the versions and the diagram together.

Version bumps are serialized per diagram with ``SELECT ... FOR UPDATE`` on the
diagram row plus a compare-and-swap on ``current_version``. Engines without row
locks (SQLite) fall through to the compare-and-swap / unique constraint, and
the losing transaction is rolled back and retried from a fresh read.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from process_optimizer.core.errors import (
    NotFoundError,
    StorageError,
    VersionConflictError,
)
from process_optimizer.core.metrics import (
    diagram_versions_created_total,
    version_bump_conflicts_total,
)
from process_optimizer.models.diagram import Diagram
from process_optimizer.models.diagram_version import DiagramVersion

logger = logging.getLogger(__name__)

INITIAL_VERSION_COMMENT = "Initial version"


class _LostVersionRace(Exception):
    """The compare-and-swap on ``current_version`` matched no row."""


def _is_version_collision(exc: IntegrityError) -> bool:
    """True when the violated constraint is the (diagram_id, version) uniqueness."""
    message = str(exc.orig)
    return (
        "uq_diagram_versions_diagram_version" in message
        or "diagram_versions.diagram_id, diagram_versions.version" in message
    )


class VersionStore:
    """All reads and writes of ``diagrams`` and ``diagram_versions``."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_attempts: int = 3,
    ) -> None:
        self._session_factory = session_factory
        self._max_attempts = max(1, max_attempts)

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """Session with an open transaction; committed on exit, rolled back on error."""
        async with self._session_factory() as session:
            async with session.begin():
                yield session

    # ── reads ────────────────────────────────────────────────────────────

    async def list_diagrams(self) -> list[Diagram]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Diagram).order_by(Diagram.updated_at.desc(), Diagram.id.desc())
                )
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            logger.exception("Failed to list diagrams")
            raise StorageError("Could not load diagrams") from exc

    async def get_diagram(self, diagram_id: int) -> Diagram:
        try:
            async with self._session_factory() as session:
                diagram = await session.get(Diagram, diagram_id)
        except SQLAlchemyError as exc:
            logger.exception("Failed to load diagram %s", diagram_id)
            raise StorageError("Could not load diagram") from exc
        if diagram is None:
            raise NotFoundError(f"Diagram {diagram_id} not found")
        return diagram

    async def list_versions(self, diagram_id: int) -> list[DiagramVersion]:
        """Versions of a diagram, newest first. Unknown diagrams yield ``[]``."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(DiagramVersion)
                    .where(DiagramVersion.diagram_id == diagram_id)
                    .order_by(DiagramVersion.version.desc())
                )
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            logger.exception("Failed to list versions of diagram %s", diagram_id)
            raise StorageError("Could not load diagram versions") from exc

    async def get_version(self, diagram_id: int, version: int) -> DiagramVersion:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(DiagramVersion).where(
                        DiagramVersion.diagram_id == diagram_id,
                        DiagramVersion.version == version,
                    )
                )
                snapshot = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.exception("Failed to load version %s of diagram %s", version, diagram_id)
            raise StorageError("Could not load diagram version") from exc
        if snapshot is None:
            raise NotFoundError(f"Version {version} of diagram {diagram_id} not found")
        return snapshot

    # ── writes ───────────────────────────────────────────────────────────

    async def create_diagram(
        self,
        name: str,
        description: str | None,
        markup: str,
        layout: Any,
        suggestions: list[str] | None = None,
    ) -> Diagram:
        """Insert a diagram together with its version 1."""
        try:
            async with self._transaction() as session:
                diagram = Diagram(
                    name=name,
                    description=description,
                    bpmn_xml=markup,
                    layout=layout if layout is not None else {},
                    suggestions=suggestions,
                    current_version=1,
                )
                session.add(diagram)
                await session.flush()
                session.add(
                    DiagramVersion(
                        diagram_id=diagram.id,
                        version=1,
                        bpmn_xml=diagram.bpmn_xml,
                        layout=diagram.layout,
                        comment=INITIAL_VERSION_COMMENT,
                    )
                )
                await session.flush()
                await session.refresh(diagram)
        except SQLAlchemyError as exc:
            logger.exception("Failed to create diagram %r", name)
            raise StorageError("Could not create diagram") from exc

        diagram_versions_created_total.inc()
        logger.info(
            "Created diagram %s (%r) at version 1",
            diagram.id,
            diagram.name,
            extra={"diagram_id": diagram.id, "version": 1},
        )
        return diagram

    async def update_diagram(
        self,
        diagram_id: int,
        markup: str,
        layout: Any,
        comment: str | None = None,
        suggestions: list[str] | None = None,
    ) -> Diagram:
        """Append version ``current_version + 1`` and move the diagram row to it.

        ``layout=None`` keeps the stored layout and ``suggestions=None`` keeps the
        stored suggestions; pass ``[]`` to clear the suggestions.

        Retries from a fresh read when a concurrent save on the same diagram
        wins the race; raises :class:`VersionConflictError` once the attempts
        are used up.
        """
        for attempt in range(1, self._max_attempts + 1):
            try:
                diagram = await self._bump_version(
                    diagram_id, markup, layout, comment, suggestions
                )
            except IntegrityError as exc:
                if not _is_version_collision(exc):
                    logger.exception("Constraint violation saving diagram %s", diagram_id)
                    raise StorageError("Could not save diagram") from exc
                self._record_conflict(diagram_id, attempt, "version number already taken")
                continue
            except _LostVersionRace:
                self._record_conflict(diagram_id, attempt, "current_version moved")
                continue
            except SQLAlchemyError as exc:
                logger.exception("Failed to update diagram %s", diagram_id)
                raise StorageError("Could not save diagram") from exc

            diagram_versions_created_total.inc()
            logger.info(
                "Saved diagram %s as version %d",
                diagram.id,
                diagram.current_version,
                extra={"diagram_id": diagram.id, "version": diagram.current_version},
            )
            return diagram

        raise VersionConflictError(
            f"Diagram {diagram_id} is being saved concurrently; please retry"
        )

    def _record_conflict(self, diagram_id: int, attempt: int, reason: str) -> None:
        version_bump_conflicts_total.inc()
        logger.warning(
            "Version bump on diagram %s lost a race (%s, attempt %d/%d)",
            diagram_id,
            reason,
            attempt,
            self._max_attempts,
            extra={"diagram_id": diagram_id, "attempt": attempt},
        )

    async def _bump_version(
        self,
        diagram_id: int,
        markup: str,
        layout: Any,
        comment: str | None,
        suggestions: list[str] | None,
    ) -> Diagram:
        async with self._transaction() as session:
            result = await session.execute(
                select(Diagram.current_version, Diagram.layout)
                .where(Diagram.id == diagram_id)
                .with_for_update()
            )
            row = result.one_or_none()
            if row is None:
                raise NotFoundError(f"Diagram {diagram_id} not found")
            read_version, current_layout = row

            next_version = read_version + 1
            # An omitted layout carries the current one forward
            stored_layout = layout if layout is not None else current_layout
            session.add(
                DiagramVersion(
                    diagram_id=diagram_id,
                    version=next_version,
                    bpmn_xml=markup,
                    layout=stored_layout,
                    comment=comment,
                )
            )
            await session.flush()

            values: dict[str, Any] = {
                "bpmn_xml": markup,
                "layout": stored_layout,
                "current_version": next_version,
                "updated_at": func.now(),
            }
            if suggestions is not None:
                values["suggestions"] = suggestions
            swapped = await session.execute(
                update(Diagram)
                .where(Diagram.id == diagram_id, Diagram.current_version == read_version)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if swapped.rowcount != 1:
                raise _LostVersionRace()

            refreshed = await session.execute(select(Diagram).where(Diagram.id == diagram_id))
            return refreshed.scalar_one()

    async def delete_diagram(self, diagram_id: int) -> bool:
        """Delete all versions and then the diagram. ``False`` if it was already gone."""
        try:
            async with self._transaction() as session:
                exists = await session.execute(
                    select(Diagram.id).where(Diagram.id == diagram_id).with_for_update()
                )
                if exists.scalar_one_or_none() is None:
                    return False
                await session.execute(
                    delete(DiagramVersion).where(DiagramVersion.diagram_id == diagram_id)
                )
                await session.execute(delete(Diagram).where(Diagram.id == diagram_id))
        except SQLAlchemyError as exc:
            logger.exception("Failed to delete diagram %s", diagram_id)
            raise StorageError("Could not delete diagram") from exc

        logger.info("Deleted diagram %s", diagram_id, extra={"diagram_id": diagram_id})
        return True
