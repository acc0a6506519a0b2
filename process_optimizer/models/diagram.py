from __future__ import annotations

from typing import Any

from sqlalchemy import CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from process_optimizer.models.base import Base, JSONType, TimestampMixin


class Diagram(Base, TimestampMixin):
    """A BPMN process diagram.

    The row caches the latest version: ``bpmn_xml`` and ``layout`` always equal
    the snapshot stored in ``diagram_versions`` under ``current_version``.
    """

    __tablename__ = "diagrams"
    __table_args__ = (
        CheckConstraint("current_version >= 1", name="ck_diagrams_current_version_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    bpmn_xml: Mapped[str] = mapped_column(Text, nullable=False)
    # Viewport / geometry metadata from the editor; stored verbatim, never interpreted.
    layout: Mapped[Any] = mapped_column(JSONType, default=dict, nullable=True)
    # Last optimization advice surfaced for this diagram.
    suggestions: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    current_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
