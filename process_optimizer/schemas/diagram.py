from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# The editor client speaks camelCase (bpmnXml, currentVersion, ...); Python
# callers may use the field names directly.
_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

# Older clients send the editor geometry as "flowData".
_LAYOUT_ALIASES = AliasChoices("layout", "flowData")


class DiagramCreate(BaseModel):
    model_config = _CAMEL

    name: str = Field(max_length=500)
    description: str | None = None
    bpmn_xml: str
    layout: Any = Field(default=None, validation_alias=_LAYOUT_ALIASES)
    suggestions: list[str] | None = None


class DiagramUpdate(BaseModel):
    model_config = _CAMEL

    bpmn_xml: str
    layout: Any = Field(default=None, validation_alias=_LAYOUT_ALIASES)  # omitted → keep stored layout
    comment: str | None = None
    suggestions: list[str] | None = None  # omitted → keep stored suggestions


class DiagramResponse(BaseModel):
    model_config = _CAMEL

    id: int
    name: str
    description: str | None = None
    bpmn_xml: str
    layout: Any = None
    suggestions: list[str] | None = None
    current_version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DiagramVersionResponse(BaseModel):
    model_config = _CAMEL

    id: int
    diagram_id: int
    version: int
    bpmn_xml: str
    layout: Any = None
    comment: str | None = None
    created_at: datetime | None = None


class OptimizeRequest(BaseModel):
    model_config = _CAMEL

    bpmn_xml: str


class OptimizationResponse(BaseModel):
    model_config = _CAMEL

    suggestions: list[str]
    optimized_markup: str


class CandidateResponse(BaseModel):
    """Unsaved optimization result. ``id`` is always null until the client saves it."""

    model_config = _CAMEL

    id: None = None
    name: str
    description: str | None = None
    bpmn_xml: str
    layout: Any = None
    suggestions: list[str]
    version: int = 1
    source_diagram_id: int | None = None
