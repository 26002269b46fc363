"""Paper generation: prompt construction, the bounded LLM call, and validation."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import pydantic

from paperforge.errors import GenerationTimeoutError, ResponseParseError, ValidationError
from paperforge.knowledge_base.models import (
    REQUIRED_PAPER_FIELDS,
    CitationStyle,
    GeneratedPaper,
)
from paperforge.llm.json_repair import parse_json_object
from paperforge.llm.router import LLMRouter

logger = logging.getLogger(__name__)

TASK_TYPE = "paper_generation"
DEFAULT_WORD_COUNT = 2000
MIN_WORD_COUNT = 500
MAX_WORD_COUNT = 10000
DEFAULT_TIMEOUT_SECONDS = 90.0

TIMEOUT_MESSAGE = "Request timed out. Please try again."

_PROMPT_TEMPLATE = """Write an {label} research paper about "{topic}" in {word_count} words.

IMPORTANT: Return ONLY a valid JSON object. No markdown, no explanations, no code blocks.

Required JSON structure:
{{
  "title": "Research Paper Title",
  "abstract": "Abstract text (150-200 words)...",
  "keywords": ["keyword1", "keyword2", "keyword3", "keyword4"],
  "introduction": "Introduction section...",
  "methodology": "Methodology section...",
  "results": "Results section...",
  "discussion": "Discussion section...",
  "conclusion": "Conclusion section...",
  "references": [
    "{reference_example}",
    "{reference_example}"
  ]
}}

Rules:
1. Return ONLY the JSON object
2. No markdown formatting (no ```json)
3. No text before or after the JSON
4. Ensure valid JSON syntax
5. Abstract should be 150-200 words
6. Include 5-8 references in {label} format ({description})
7. Do not number the references; numbering is added when the paper is exported"""


def build_prompt(topic: str, word_count: int, style: CitationStyle) -> str:
    return _PROMPT_TEMPLATE.format(
        label=style.label,
        description=style.description,
        topic=topic,
        word_count=word_count,
        reference_example=style.reference_format.replace('"', '\\"'),
    )


def parse_citation_style(value: Optional[str]) -> CitationStyle:
    """Map a request's ``format`` field to a style; missing means IEEE."""
    if not value:
        return CitationStyle.IEEE
    try:
        return CitationStyle(value.lower())
    except ValueError:
        allowed = ", ".join(s.value for s in CitationStyle)
        raise ValidationError(f"Unknown citation style '{value}'. Expected one of: {allowed}")


class PaperGenerator:
    """Asks the routed model for a complete paper and validates the answer.

    The upstream call runs under ``asyncio.wait_for``; when the budget is
    exhausted the call is cancelled and :class:`GenerationTimeoutError` is
    raised. No retries are attempted.
    """

    def __init__(
        self,
        llm_router: LLMRouter,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        temperature: float = 0.7,
        max_tokens: int = 8192,
    ) -> None:
        self.llm_router = llm_router
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate(
        self,
        topic: str,
        word_count: int = DEFAULT_WORD_COUNT,
        style: CitationStyle = CitationStyle.IEEE,
    ) -> GeneratedPaper:
        topic = (topic or "").strip()
        if not topic:
            raise ValidationError("Topic is required")

        prompt = build_prompt(topic, word_count, style)
        logger.info("Generating %s paper on %r (%d words)", style.value, topic, word_count)

        try:
            response = await asyncio.wait_for(
                self.llm_router.complete(
                    task_type=TASK_TYPE,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning("Paper generation timed out after %.1fs", self.timeout)
            raise GenerationTimeoutError(TIMEOUT_MESSAGE) from e

        text = self.llm_router.get_response_text(response)
        data = parse_json_object(text)
        return self._to_paper(data, word_count)

    @staticmethod
    def _to_paper(data: dict[str, Any], word_count: int) -> GeneratedPaper:
        missing = [name for name in REQUIRED_PAPER_FIELDS if not data.get(name)]
        if missing:
            logger.error("AI response missing fields: %s", missing)
            raise ResponseParseError(
                f"AI response missing fields: {', '.join(missing)}. Please try again."
            )

        fields = {name: data[name] for name in REQUIRED_PAPER_FIELDS}
        for name in ("keywords", "references"):
            if isinstance(fields[name], str):
                fields[name] = [fields[name]]
        try:
            return GeneratedPaper(**fields, word_count=word_count)
        except pydantic.ValidationError as e:
            logger.error("AI response has malformed fields: %s", e)
            raise ResponseParseError(
                "AI response had an unexpected structure. Please try again."
            ) from e
