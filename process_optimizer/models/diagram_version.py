"""Diagram Version — immutable snapshot of a diagram's markup and layout."""

from __future__ import annotations

from typing import Any

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from process_optimizer.models.base import Base, CreatedAtMixin, JSONType


class DiagramVersion(Base, CreatedAtMixin):
    """One numbered snapshot in a diagram's history.

    Rows are append-only: a save inserts version ``current_version + 1`` and
    nothing ever updates an existing row.
    """

    __tablename__ = "diagram_versions"
    __table_args__ = (
        UniqueConstraint("diagram_id", "version", name="uq_diagram_versions_diagram_version"),
        CheckConstraint("version >= 1", name="ck_diagram_versions_version_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    diagram_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("diagrams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    bpmn_xml: Mapped[str] = mapped_column(Text, nullable=False)
    layout: Mapped[Any] = mapped_column(JSONType, default=dict, nullable=True)
    comment: Mapped[str | None] = mapped_column(Text)
