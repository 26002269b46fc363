"""Tests for paper generation and the LLM router."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from paperforge.config import Settings
from paperforge.errors import (
    GenerationTimeoutError,
    LLMConfigurationError,
    ResponseParseError,
    UpstreamError,
    ValidationError,
)
from paperforge.generation.generator import (
    PaperGenerator,
    build_prompt,
    parse_citation_style,
)
from paperforge.knowledge_base.db import Database
from paperforge.knowledge_base.models import REQUIRED_PAPER_FIELDS, CitationStyle
from paperforge.llm.router import LLMRouter

SAMPLE_PAPER = {
    "title": "Error Mitigation in Noisy Quantum Processors",
    "abstract": "We survey mitigation techniques for near-term devices.",
    "keywords": ["quantum computing", "error mitigation", "NISQ"],
    "introduction": "Quantum processors remain noisy.",
    "methodology": "We benchmark zero-noise extrapolation.",
    "results": "Extrapolation halves the observed error.",
    "discussion": "Overheads grow with circuit depth.",
    "conclusion": "Mitigation buys time before error correction.",
    "references": [
        "J. Preskill, 'Quantum Computing in the NISQ era and beyond,' Quantum, vol. 2, p. 79, 2018.",
        "K. Temme et al., 'Error mitigation for short-depth quantum circuits,' PRL, vol. 119, 2017.",
    ],
}


def make_router(text: str) -> MagicMock:
    router = MagicMock()
    router.complete = AsyncMock(return_value=MagicMock())
    router.get_response_text = MagicMock(return_value=text)
    return router


class TestPrompt:
    def test_prompt_mentions_topic_words_and_style(self):
        prompt = build_prompt("Quantum Computing", 1500, CitationStyle.APA)
        assert '"Quantum Computing"' in prompt
        assert "1500 words" in prompt
        assert "APA" in prompt
        assert "American Psychological Association" in prompt

    @pytest.mark.parametrize("style", list(CitationStyle))
    def test_prompt_lists_every_required_field(self, style):
        prompt = build_prompt("Topic", 2000, style)
        for name in REQUIRED_PAPER_FIELDS:
            assert f'"{name}"' in prompt

    def test_parse_citation_style(self):
        assert parse_citation_style("IEEE") == CitationStyle.IEEE
        assert parse_citation_style("harvard") == CitationStyle.HARVARD
        assert parse_citation_style(None) == CitationStyle.IEEE

    def test_parse_unknown_citation_style(self):
        with pytest.raises(ValidationError, match="Unknown citation style"):
            parse_citation_style("vancouver")


class TestPaperGenerator:
    async def test_generates_paper_with_requested_word_count(self):
        router = make_router(json.dumps(SAMPLE_PAPER))
        paper = await PaperGenerator(router).generate("Quantum Computing", 1500, CitationStyle.IEEE)

        assert paper.title == SAMPLE_PAPER["title"]
        assert paper.references == SAMPLE_PAPER["references"]
        assert paper.word_count == 1500
        call = router.complete.await_args
        assert call.kwargs["task_type"] == "paper_generation"
        assert "Quantum Computing" in call.kwargs["messages"][0]["content"]

    async def test_repairs_fenced_response(self):
        text = "```json\n" + json.dumps(SAMPLE_PAPER)[:-1] + ",}\n```"
        paper = await PaperGenerator(make_router(text)).generate("Quantum Computing", 1500)
        assert paper.conclusion == SAMPLE_PAPER["conclusion"]

    async def test_missing_fields_reported(self):
        partial = {k: v for k, v in SAMPLE_PAPER.items() if k not in ("results", "references")}
        with pytest.raises(ResponseParseError, match="results, references"):
            await PaperGenerator(make_router(json.dumps(partial))).generate("Topic", 1000)

    async def test_empty_field_counts_as_missing(self):
        data = {**SAMPLE_PAPER, "abstract": ""}
        with pytest.raises(ResponseParseError, match="abstract"):
            await PaperGenerator(make_router(json.dumps(data))).generate("Topic", 1000)

    async def test_unparseable_response(self):
        with pytest.raises(ResponseParseError, match="Failed to parse AI response"):
            await PaperGenerator(make_router("Sorry, I can't help with that.")).generate("Topic", 1000)

    async def test_blank_topic_rejected_before_call(self):
        router = make_router(json.dumps(SAMPLE_PAPER))
        with pytest.raises(ValidationError):
            await PaperGenerator(router).generate("   ", 1000)
        router.complete.assert_not_called()

    async def test_timeout_cancels_call(self):
        cancelled = asyncio.Event()

        async def hang(**kwargs):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        router = MagicMock()
        router.complete = hang
        generator = PaperGenerator(router, timeout=0.05)

        with pytest.raises(GenerationTimeoutError, match="timed out"):
            await generator.generate("Quantum Computing", 1500)
        assert cancelled.is_set()

    async def test_upstream_error_propagates(self):
        router = MagicMock()
        router.complete = AsyncMock(side_effect=UpstreamError("quota exceeded"))
        with pytest.raises(UpstreamError, match="quota exceeded"):
            await PaperGenerator(router).generate("Topic", 1000)


class TestLLMRouter:
    @pytest.fixture
    def settings(self, tmp_path):
        return Settings(tmp_path / "missing.yaml")

    async def test_missing_api_key(self, settings, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        router = LLMRouter(settings=settings)
        with patch("paperforge.llm.router.acompletion", AsyncMock()) as mocked:
            with pytest.raises(LLMConfigurationError, match="gemini"):
                await router.complete("paper_generation", [{"role": "user", "content": "hi"}])
        mocked.assert_not_called()

    async def test_successful_call_tracks_usage(self, settings, tmp_path, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        db = Database(tmp_path / "usage.sqlite")
        db.initialize()
        response = MagicMock()
        response.usage.prompt_tokens = 120
        response.usage.completion_tokens = 800
        response._hidden_params = {"response_cost": 0.01}
        response.choices[0].message.content = '{"title": "X"}'

        with patch("paperforge.llm.router.acompletion", AsyncMock(return_value=response)) as mocked:
            router = LLMRouter(settings=settings, db=db)
            result = await router.complete("paper_generation", [{"role": "user", "content": "hi"}])

        assert router.get_response_text(result) == '{"title": "X"}'
        assert mocked.await_args.kwargs["api_key"] == "test-key"
        assert mocked.await_args.kwargs["model"] == "gemini/gemini-2.5-pro"
        summary = router.get_usage_summary()
        row = summary["gemini/gemini-2.5-pro:paper_generation"]
        assert row["calls"] == 1
        assert row["tokens"] == 920
        db.close()

    async def test_provider_failure_becomes_upstream_error(self, settings, tmp_path, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        db = Database(tmp_path / "usage.sqlite")
        db.initialize()
        failing = AsyncMock(side_effect=RuntimeError("503 Service Unavailable"))

        with patch("paperforge.llm.router.acompletion", failing):
            router = LLMRouter(settings=settings, db=db)
            with pytest.raises(UpstreamError, match="503"):
                await router.complete("paper_generation", [{"role": "user", "content": "hi"}])

        row = db.conn.execute("SELECT success FROM llm_usage").fetchone()
        assert row["success"] == 0
        db.close()

    def test_route_from_yaml(self, tmp_path):
        config = tmp_path / "settings.yaml"
        config.write_text(
            "routing:\n  paper_generation:\n    provider: openai\n    primary: openai/gpt-4o\n"
        )
        router = LLMRouter(settings=Settings(config))
        assert router.get_route("paper_generation")["primary"] == "openai/gpt-4o"
        assert router.get_route("unknown") == {}
