"""Defensive parsing of generative optimization replies.

The generator is untrusted and non-deterministic, so its reply goes through a
fixed pipeline: fence stripping, JSON parsing, markup and suggestion checks,
then sanitization of double-encoded markup. Anything that fails becomes an
``OptimizationError`` with a short reason. Nothing here touches the database.
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass, field

import defusedxml.ElementTree as ET  # noqa: N817
from defusedxml import DefusedXmlException
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictStr
from pydantic import ValidationError as PydanticValidationError

from process_optimizer.core.errors import OptimizationError, ValidationError
from process_optimizer.core.metrics import (
    optimization_duration_seconds,
    optimization_requests_total,
)
from process_optimizer.services.optimizer import Optimizer

logger = logging.getLogger(__name__)

MALFORMED_RESPONSE = "malformed response"
INVALID_MARKUP = "invalid markup"
NO_SUGGESTIONS = "no suggestions"

_OUTCOME_LABELS = {
    MALFORMED_RESPONSE: "malformed",
    INVALID_MARKUP: "invalid_markup",
    NO_SUGGESTIONS: "no_suggestions",
}

_PREVIEW_CHARS = 200

_FENCE_RE = re.compile(r"^```[\w+-]*[ \t]*\n?(?P<body>.*?)\n?[ \t]*```$", re.DOTALL)
_XML_DECLARATION = "<?xml"
# <definitions ...> with or without a namespace prefix (bpmn:, bpmn2:, ...)
_DEFINITIONS_RE = re.compile(r"<(?:[A-Za-z_][\w.-]*:)?definitions[\s/>]")
_LEADING_WS_BEFORE_DECL_RE = re.compile(r"^\s*<\?xml")


@dataclass(frozen=True)
class OptimizationResult:
    suggestions: list[str] = field(default_factory=list)
    optimized_markup: str = ""


class OptimizationPayload(BaseModel):
    """Shape of the generator's JSON reply.

    Older prompts asked for German keys (``vorschlaege``/``optimized_bpmn``);
    both spellings are accepted. Missing fields default to empty so they fail
    the markup/suggestion checks rather than the parse.
    """

    model_config = ConfigDict(extra="ignore")

    suggestions: list[StrictStr] | None = Field(
        default=None,
        validation_alias=AliasChoices("suggestions", "vorschlaege"),
    )
    optimized_markup: StrictStr | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "optimizedMarkup", "optimized_markup", "optimized_bpmn", "optimizedBpmn"
        ),
    )


def _preview(text: str) -> str:
    return text[:_PREVIEW_CHARS] + ("..." if len(text) > _PREVIEW_CHARS else "")


def strip_code_fence(text: str) -> str:
    """Remove a Markdown code fence (```json ... ```) wrapping the whole payload."""
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    if match:
        return match.group("body").strip()
    return stripped


def parse_payload(raw: str) -> OptimizationPayload:
    text = strip_code_fence(raw or "")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("Optimization reply is not JSON (%s): %r", exc.msg, _preview(text))
        raise OptimizationError(MALFORMED_RESPONSE) from exc
    if not isinstance(data, dict):
        logger.warning("Optimization reply is not a JSON object: %r", _preview(text))
        raise OptimizationError(MALFORMED_RESPONSE)
    try:
        return OptimizationPayload.model_validate(data)
    except PydanticValidationError as exc:
        logger.warning(
            "Optimization reply has unexpected field types: %s", exc.errors(include_url=False)
        )
        raise OptimizationError(MALFORMED_RESPONSE) from exc


def validate_markup(markup: str | None) -> str:
    """Superficial check that the markup looks like a BPMN definitions document."""
    if not markup or not markup.strip():
        logger.warning("Optimization reply has empty markup")
        raise OptimizationError(INVALID_MARKUP)
    if _XML_DECLARATION not in markup or not _DEFINITIONS_RE.search(markup):
        logger.warning("Optimization markup lacks XML declaration or definitions root: %r", _preview(markup))
        raise OptimizationError(INVALID_MARKUP)
    return markup


def validate_suggestions(suggestions: list[str] | None) -> list[str]:
    cleaned = [s.strip() for s in suggestions or []]
    if not cleaned or not all(cleaned):
        logger.warning("Optimization reply has no usable suggestions: %r", suggestions)
        raise OptimizationError(NO_SUGGESTIONS)
    return cleaned


def sanitize_markup(markup: str) -> str:
    """Undo the generator's occasional double encoding of the XML string."""
    cleaned = (
        markup.strip()
        .replace("\\n", "\n")
        .replace('\\"', '"')
        .replace("\\\\", "\\")
    )
    cleaned = _LEADING_WS_BEFORE_DECL_RE.sub(_XML_DECLARATION, cleaned, count=1)

    if not cleaned.startswith(_XML_DECLARATION):
        logger.warning("Sanitized markup does not start with an XML declaration: %r", _preview(cleaned))
        raise OptimizationError(INVALID_MARKUP)
    try:
        root = ET.fromstring(cleaned)
    except (ET.ParseError, DefusedXmlException) as exc:
        logger.warning("Sanitized markup is not well-formed XML: %s", exc)
        raise OptimizationError(INVALID_MARKUP) from exc
    if root.tag.rsplit("}", 1)[-1] != "definitions":
        logger.warning("Sanitized markup root is %r, expected definitions", root.tag)
        raise OptimizationError(INVALID_MARKUP)
    return cleaned


def parse_optimization_response(raw: str) -> OptimizationResult:
    """Run the full parse → validate → sanitize pipeline on a raw reply."""
    payload = parse_payload(raw)
    markup = validate_markup(payload.optimized_markup)
    suggestions = validate_suggestions(payload.suggestions)
    return OptimizationResult(suggestions=suggestions, optimized_markup=sanitize_markup(markup))


class OptimizationGateway:
    """Asks the injected :class:`Optimizer` for an improved diagram and vets the reply."""

    def __init__(self, optimizer: Optimizer) -> None:
        self._optimizer = optimizer

    async def optimize(self, markup: str) -> OptimizationResult:
        if not markup or not markup.strip():
            raise ValidationError("Diagram markup is required for optimization")

        start = time.perf_counter()
        try:
            raw = await self._generate(markup)
            result = parse_optimization_response(raw)
        except OptimizationError as exc:
            optimization_requests_total.labels(
                outcome=_OUTCOME_LABELS.get(exc.message, "unavailable")
            ).inc()
            raise
        finally:
            optimization_duration_seconds.observe(time.perf_counter() - start)

        optimization_requests_total.labels(outcome="ok").inc()
        logger.info(
            "Optimization produced %d suggestions (%d chars of markup)",
            len(result.suggestions),
            len(result.optimized_markup),
            extra={"outcome": "ok"},
        )
        return result

    async def _generate(self, markup: str) -> str:
        try:
            return await self._optimizer.generate(markup)
        except OptimizationError:
            raise
        except Exception as exc:
            logger.exception("Optimizer raised unexpectedly")
            raise OptimizationError("optimization service unavailable") from exc
