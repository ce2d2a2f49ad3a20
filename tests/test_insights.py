"""
Tests for the insight engine and its providers.
"""

import asyncio

import pytest

from receipt_sorter.agents.insights import (
    HeuristicInsightProvider,
    InsightEngine,
    clamp,
    count_bullets,
)
from receipt_sorter.errors import EmptyInputError


GOOD_AI_OUTPUT = "\n".join(f"- insight number {i}" for i in range(1, 7))


class TestHelpers:
    """Small helpers shared by the generators."""

    def test_clamp(self):
        assert clamp(None, 1, 50, 10) == 10
        assert clamp(0, 1, 50, 10) == 1
        assert clamp(500, 1, 50, 10) == 50
        assert clamp(7, 1, 50, 10) == 7

    def test_count_bullets(self):
        text = "Intro\n- one\n* two\n1. three\n  - nested\n2) four\n-no space"
        assert count_bullets(text) == 4


class TestHeuristicInsights:
    """Deterministic insights from the receipts themselves."""

    def test_bullets(self, sample_receipts):
        text = HeuristicInsightProvider().build(sample_receipts, 10)
        lines = text.split("\n")
        assert lines == [
            "- **Total spend:** $110.00 across 2 receipts",
            "- **Average receipt:** $55.00; average daily spend over 30 days: $3.67",
            "- **Top category:** Y at $100.00 (90.9% of total spend)",
            "- **Most frequent vendor:** A (1 visit)",
            "- **Largest purchase:** $100.00 at B",
        ]

    def test_truncated_to_max(self, sample_receipts):
        text = HeuristicInsightProvider().build(sample_receipts, 2)
        assert count_bullets(text) == 2

    def test_zero_totals(self):
        text = HeuristicInsightProvider().build([{"vendor": "A", "total": 0}], 10)
        assert "(0.0% of total spend)" in text
        assert "across 1 receipt\n" in text

    def test_numeric_vendor(self):
        receipts = [{"vendor": 7, "total": 3, "category": 1}, {"vendor": 7, "total": 9, "category": 1}]
        text = HeuristicInsightProvider().build(receipts, 10)
        assert "- **Most frequent vendor:** 7 (2 visits)" in text
        assert "- **Largest purchase:** $9.00 at 7" in text
        assert "- **Top category:** 1 at" in text


class TestInsightEngine:
    """AI-first generation with heuristic fallback."""

    async def test_empty_input_rejected(self):
        engine = InsightEngine()
        with pytest.raises(EmptyInputError, match="receipts array is required"):
            await engine.generate([])
        with pytest.raises(EmptyInputError):
            await engine.generate(None)

    async def test_heuristic_without_client(self, sample_receipts):
        result = await InsightEngine().generate(sample_receipts)
        assert result.provider == "heuristic"
        assert result.fallback is False
        assert "**Top category:** Y" in result.insights

    async def test_ai_output_accepted(self, sample_receipts, stub_client):
        client = stub_client(response=GOOD_AI_OUTPUT)
        result = await InsightEngine.from_client(client).generate(sample_receipts, 6)
        assert result.insights == GOOD_AI_OUTPUT
        assert result.provider == "stub"
        assert result.fallback is False
        assert "up to 6 concise insights" in client.prompts[0]

    async def test_thin_ai_output_falls_back(self, sample_receipts, stub_client):
        client = stub_client(response="- only\n- four\n- bullets\n- here")
        result = await InsightEngine.from_client(client).generate(sample_receipts)
        assert result.fallback is True
        assert result.provider == "heuristic"
        assert "only 4 bullet lines" in result.fallback_reason
        assert "**Largest purchase:**" in result.insights

    async def test_ai_error_falls_back(self, sample_receipts, stub_client):
        client = stub_client(error=RuntimeError("quota exceeded"))
        result = await InsightEngine.from_client(client).generate(sample_receipts)
        assert result.fallback is True
        assert result.fallback_reason == "RuntimeError: quota exceeded"

    async def test_ai_timeout_falls_back(self, sample_receipts, stub_client):
        client = stub_client(error=asyncio.TimeoutError())
        result = await InsightEngine.from_client(client).generate(sample_receipts)
        assert result.fallback is True

    async def test_receipts_capped(self, stub_client):
        receipts = [{"vendor": f"V{i}", "total": i, "category": "C"} for i in range(10)]
        client = stub_client(response=GOOD_AI_OUTPUT)
        await InsightEngine.from_client(client, max_receipts=3).generate(receipts)
        prompt = client.prompts[0]
        assert '"V2"' in prompt
        assert '"V3"' not in prompt

    async def test_default_cap_from_settings(self, stub_client):
        receipts = [{"vendor": f"V{i}", "total": 1} for i in range(450)]
        client = stub_client(response=GOOD_AI_OUTPUT)
        await InsightEngine.from_client(client).generate(receipts)
        assert '"V399"' in client.prompts[0]
        assert '"V400"' not in client.prompts[0]

    async def test_max_insights_clamped(self, sample_receipts, stub_client):
        client = stub_client(response=GOOD_AI_OUTPUT)
        await InsightEngine.from_client(client).generate(sample_receipts, 500)
        assert "up to 50 concise insights" in client.prompts[0]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
