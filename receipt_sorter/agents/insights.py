"""
Insight Engine

Turns a receipt list into a short markdown bullet list of spending insights.

DESIGN DECISION: Two interchangeable providers sit behind one interface:

1. GeminiInsightProvider - asks the language model for insights
2. HeuristicInsightProvider - computes them deterministically

The engine picks the AI provider only when one is configured, and accepts
its output only if it looks like a real bullet list (at least 5 top-level
bullets). Anything else (an error, a timeout, a thin answer) is replaced by
the heuristic output and flagged with `fallback=True`. An AI outage never
reaches the caller as an error.
"""

import json
import re
from abc import ABC, abstractmethod
from collections import Counter
from decimal import Decimal
from typing import Any, Optional

import structlog

from receipt_sorter.agents.llm import TextGenerationClient
from receipt_sorter.config import get_settings
from receipt_sorter.errors import EmptyInputError
from receipt_sorter.models.reports import InsightResult
from receipt_sorter.reports.summary import UNKNOWN_VENDOR, as_label, summarize, to_decimal


logger = structlog.get_logger(__name__)


DEFAULT_MAX_INSIGHTS = 10
MIN_INSIGHTS = 1
MAX_INSIGHTS = 50

# AI output needs at least this many bullets to be trusted
MIN_BULLETS = 5

# Average daily spend is reported over a fixed window
DAILY_WINDOW_DAYS = 30

BULLET_LINE = re.compile(r"^(?:[-*+•]\s|\d+[.)]\s)")


def clamp(value: Optional[int], low: int, high: int, default: int) -> int:
    """Clamp a requested count into [low, high]. None means default."""
    if value is None:
        return default
    return max(low, min(high, int(value)))


def count_bullets(text: str) -> int:
    """Number of top-level bullet lines (bullets at column 0)."""
    return sum(1 for line in text.splitlines() if BULLET_LINE.match(line))


def format_money(amount: Any) -> str:
    return f"${to_decimal(amount):,.2f}"


def compact_receipts(receipts: list[dict[str, Any]]) -> str:
    """The fields the model needs, as JSON."""
    rows = [
        {
            "vendor": receipt.get("vendor"),
            "total": receipt.get("total"),
            "category": receipt.get("category"),
            "date": receipt.get("date"),
        }
        for receipt in receipts
    ]
    return json.dumps(rows, default=str)


class InsightProvider(ABC):
    """Produces markdown bullet insights for a (non-empty) receipt list."""

    name: str

    @abstractmethod
    async def generate(self, receipts: list[dict[str, Any]], max_insights: int) -> str:
        pass


class HeuristicInsightProvider(InsightProvider):
    """
    Deterministic insights computed from the receipts.

    Bullets, in order:
    1. Total spend and receipt count
    2. Average receipt and average daily spend over a 30-day window
    3. Top category and its share of total spend
    4. Most frequent vendor
    5. Largest purchase

    Ties resolve to the first occurrence in input order.
    """

    name = "heuristic"

    def build(self, receipts: list[dict[str, Any]], max_insights: int) -> str:
        summary = summarize(receipts)
        total = to_decimal(summary.totals.amount)
        count = summary.totals.receipts

        bullets = [
            f"- **Total spend:** {format_money(total)} across {count} "
            f"receipt{'s' if count != 1 else ''}",
            f"- **Average receipt:** {format_money(summary.totals.average)}; "
            f"average daily spend over {DAILY_WINDOW_DAYS} days: "
            f"{format_money(total / DAILY_WINDOW_DAYS)}",
        ]

        if summary.by_category:
            top = summary.by_category[0]
            share = to_decimal(top.amount) / total * 100 if total else Decimal("0")
            bullets.append(
                f"- **Top category:** {top.category} at {format_money(top.amount)} "
                f"({share:.1f}% of total spend)"
            )

        vendor, visits = Counter(
            as_label(receipt.get("vendor"), UNKNOWN_VENDOR) for receipt in receipts
        ).most_common(1)[0]
        bullets.append(
            f"- **Most frequent vendor:** {vendor} "
            f"({visits} visit{'s' if visits != 1 else ''})"
        )

        largest = max(receipts, key=lambda receipt: to_decimal(receipt.get("total")))
        bullets.append(
            f"- **Largest purchase:** {format_money(largest.get('total'))} "
            f"at {as_label(largest.get('vendor'), UNKNOWN_VENDOR)}"
        )

        return "\n".join(bullets[:max_insights])

    async def generate(self, receipts: list[dict[str, Any]], max_insights: int) -> str:
        return self.build(receipts, max_insights)


class GeminiInsightProvider(InsightProvider):
    """Asks the language model for insights."""

    name = "gemini"

    def __init__(self, client: TextGenerationClient):
        self._client = client
        self.name = client.name

    def build_prompt(self, receipts: list[dict[str, Any]], max_insights: int) -> str:
        return f"""You are a personal finance assistant analysing a user's receipts.

Write up to {max_insights} concise insights as a markdown bullet list.
Cover:
- category concentration (where most of the money goes)
- average receipt and average daily spend
- trends over time
- unusual or unusually large purchases
- how often the user visits each vendor
- practical recommendations

Use only the data below. Every line must be a bullet starting with "- ".
No preamble, no conclusion.

Receipts (JSON):
{compact_receipts(receipts)}"""

    async def generate(self, receipts: list[dict[str, Any]], max_insights: int) -> str:
        return await self._client.generate(self.build_prompt(receipts, max_insights))


class InsightEngine:
    """
    Generates spending insights, preferring the AI provider when present.
    """

    def __init__(
        self,
        ai_provider: Optional[InsightProvider] = None,
        heuristic_provider: Optional[InsightProvider] = None,
        max_receipts: Optional[int] = None,
    ):
        self._ai = ai_provider
        self._heuristic = heuristic_provider or HeuristicInsightProvider()
        self._max_receipts = max_receipts or get_settings().app.max_ai_receipts

    @classmethod
    def from_client(
        cls,
        client: Optional[TextGenerationClient],
        max_receipts: Optional[int] = None,
    ) -> "InsightEngine":
        ai_provider = GeminiInsightProvider(client) if client else None
        return cls(ai_provider=ai_provider, max_receipts=max_receipts)

    async def generate(
        self,
        receipts: Optional[list[dict[str, Any]]],
        max_insights: Optional[int] = None,
    ) -> InsightResult:
        """
        Generate insights for a receipt list.

        Raises:
            EmptyInputError: If no receipts were given
        """
        if not receipts:
            raise EmptyInputError("receipts")

        capped = receipts[:self._max_receipts]
        limit = clamp(max_insights, MIN_INSIGHTS, MAX_INSIGHTS, DEFAULT_MAX_INSIGHTS)

        if self._ai is None:
            return InsightResult(
                insights=await self._heuristic.generate(capped, limit),
                provider=self._heuristic.name,
            )

        try:
            text = await self._ai.generate(capped, limit)
        except Exception as e:
            reason = f"{type(e).__name__}: {e}"
        else:
            bullets = count_bullets(text)
            if bullets >= MIN_BULLETS:
                return InsightResult(insights=text, provider=self._ai.name)
            reason = f"only {bullets} bullet lines in model output"

        logger.warning("insights_fallback", reason=reason, receipts=len(capped))
        return InsightResult(
            insights=await self._heuristic.generate(capped, limit),
            fallback=True,
            provider=self._heuristic.name,
            fallback_reason=reason,
        )
