"""Generative optimization capability.

``Optimizer`` is what the gateway depends on. It hands back the generator's
raw text and does no parsing or validation of its own. ``OpenAIOptimizer`` is
the production implementation on top of an OpenAI-compatible chat completions
endpoint. Tests substitute a deterministic fake.
"""

from __future__ import annotations

import logging
from typing import Protocol

import openai
from openai import AsyncOpenAI

from process_optimizer.config import Settings
from process_optimizer.core.errors import OptimizationError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are a BPMN 2.0 process optimization expert. You receive the XML of a
business-process diagram. Analyze it and:
1. Identify the process elements (activities, events, gateways) and their flow.
2. Find bottlenecks, redundant steps and activities that could run in parallel.
3. Produce an optimized BPMN 2.0 diagram that implements your improvements
   while keeping the business rules and the process intent intact.

Reply with a single JSON object and nothing else:
{
  "suggestions": ["<one concrete improvement per entry>", "..."],
  "optimizedMarkup": "<?xml version=\\"1.0\\" encoding=\\"UTF-8\\"?><bpmn:definitions ...>...</bpmn:definitions>"
}

Rules for "optimizedMarkup":
- It must be a complete BPMN 2.0 XML document starting with the XML declaration.
- The root element must be bpmn:definitions with the BPMN namespaces declared.
- Include the bpmndi:BPMNDiagram section so the diagram can be rendered.
"""


class Optimizer(Protocol):
    """Turns diagram markup into the generator's raw (unvalidated) reply."""

    async def generate(self, markup: str) -> str: ...


class OpenAIOptimizer:
    """Single-shot chat completion call with bounded output and low temperature."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        temperature: float = 0.2,
        max_tokens: int = 4096,
        timeout: float = 60.0,
        max_retries: int = 0,
        base_url: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_url = base_url
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> OpenAIOptimizer:
        return cls(
            api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_MODEL,
            temperature=settings.OPTIMIZER_TEMPERATURE,
            max_tokens=settings.OPTIMIZER_MAX_TOKENS,
            timeout=settings.OPTIMIZER_TIMEOUT_SECONDS,
            max_retries=settings.OPTIMIZER_MAX_RETRIES,
            base_url=settings.OPENAI_BASE_URL,
        )

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                logger.error("OPENAI_API_KEY is not configured; optimization disabled")
                raise OptimizationError("optimization service unavailable")
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=self.max_retries,
            )
        return self._client

    async def generate(self, markup: str) -> str:
        client = self._get_client()
        try:
            completion = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": markup},
                ],
                response_format={"type": "json_object"},
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.APIError as exc:
            logger.warning("Optimization service call failed: %s: %s", type(exc).__name__, exc)
            raise OptimizationError("optimization service unavailable") from exc

        if not completion.choices:
            return ""
        choice = completion.choices[0]
        if choice.finish_reason == "length":
            logger.warning("Optimization reply was truncated at max_tokens=%d", self.max_tokens)
        return choice.message.content or ""

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
