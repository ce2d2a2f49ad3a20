"""
Budget Advisor

Two advisory outputs built from spending history:

1. BUDGET SUGGESTIONS - one monthly budget per category, from the category's
   trailing three-month total
2. SAVING ADVICE - markdown tips grouped into fixed sections

DESIGN DECISION: Same dual path as the insight engine. The model is asked
first when configured; the deterministic heuristic answers when it is not,
or when the call fails or times out (flagged `fallback=True`).

One deliberate asymmetry: if the model answers a budget request but the
answer is not a parseable JSON array, suggestions degrade to an empty list.
We do not retry and we do not substitute the heuristic, because a model that
answered with garbage is a signal worth surfacing.
"""

import json
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Union

import structlog

from receipt_sorter.agents.insights import clamp, compact_receipts, format_money
from receipt_sorter.agents.llm import TextGenerationClient
from receipt_sorter.config import get_settings
from receipt_sorter.errors import EmptyInputError
from receipt_sorter.models.reports import (
    AdviceResult,
    BudgetResult,
    BudgetSuggestion,
    CategorySpend,
)
from receipt_sorter.reports.analytics import average_total
from receipt_sorter.reports.summary import UNKNOWN_VENDOR, as_label, to_decimal


logger = structlog.get_logger(__name__)


HEURISTIC_PROVIDER = "heuristic"

DEFAULT_MAX_TIPS = 25
MIN_TIPS = 5
MAX_TIPS = 50

# A vendor is flagged when any of its receipts exceeds this multiple of the average
HIGH_TICKET_FACTOR = Decimal("1.5")

ADVICE_SECTIONS = (
    "High-ticket purchases",
    "Subscriptions",
    "Grocery optimization",
    "Eating out",
    "Miscellaneous",
)


def round_half_up(amount: Decimal) -> int:
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def heuristic_budgets(categories: list[CategorySpend]) -> list[BudgetSuggestion]:
    """One third of the trailing three-month total, rounded half up."""
    return [
        BudgetSuggestion(
            category=entry.category,
            suggested_budget=round_half_up(to_decimal(entry.last_three_month_total) / 3),
        )
        for entry in categories
    ]


def parse_budget_suggestions(text: str) -> Optional[list[BudgetSuggestion]]:
    """
    Extract the JSON array of {category, suggested_budget} from model output.

    Keys other than those two are dropped, as are entries without them.

    Returns:
        The suggestions, or None if no JSON array could be parsed
    """
    start = text.find("[")
    end = text.rfind("]") + 1
    if start < 0 or end <= start:
        return None

    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError:
        return None
    if not isinstance(data, list):
        return None

    suggestions = []
    for item in data:
        if not isinstance(item, dict):
            continue
        category = item.get("category")
        budget = item.get("suggested_budget")
        if not category or isinstance(budget, bool) or not isinstance(budget, (int, float, str)):
            continue
        suggestions.append(BudgetSuggestion(
            category=str(category),
            suggested_budget=round_half_up(to_decimal(budget)),
        ))
    return suggestions


def flag_high_ticket_vendors(receipts: list[dict[str, Any]]) -> tuple[list[str], Decimal]:
    """
    Vendors with at least one receipt above 1.5x the average total.

    Returns:
        (vendors in first-occurrence order, average total)
    """
    average = average_total(receipts)
    threshold = average * HIGH_TICKET_FACTOR
    flagged: list[str] = []
    for receipt in receipts:
        vendor = as_label(receipt.get("vendor"), UNKNOWN_VENDOR)
        if to_decimal(receipt.get("total")) > threshold and vendor not in flagged:
            flagged.append(vendor)
    return flagged, average


def heuristic_advice(receipts: list[dict[str, Any]], max_tips: int) -> str:
    """
    Generic saving advice in the five standard sections.

    Bullets are dealt to the sections round-robin so that every section
    gets at least one and the total never exceeds `max_tips`.
    """
    flagged, average = flag_high_ticket_vendors(receipts)
    average_text = format_money(average)
    threshold_text = format_money(average * HIGH_TICKET_FACTOR)

    if flagged:
        high_ticket = [
            f"Review your purchases at {vendor}: at least one receipt was above "
            f"1.5x your average receipt of {average_text}"
            for vendor in flagged
        ]
    else:
        high_ticket = [
            f"No vendor stands out: every receipt is within 1.5x your average of {average_text}"
        ]
    high_ticket.append(
        f"Wait 48 hours before any non-essential purchase above {threshold_text}"
    )

    bullets = {
        "High-ticket purchases": high_ticket,
        "Subscriptions": [
            "List every recurring charge and cancel the ones you did not use last month",
            "Rotate streaming services instead of paying for all of them at once",
            "Check for annual billing discounts on the services you keep",
        ],
        "Grocery optimization": [
            "Plan meals for the week and shop from a list",
            "Compare unit prices and try store brands for staples",
            "Buy non-perishables in bulk when they are on sale",
        ],
        "Eating out": [
            f"Set a weekly eating-out budget and keep single meals below {average_text}",
            "Cook at home on weekdays and keep restaurants for weekends",
            "Use loyalty programs at the places you already visit most",
        ],
        "Miscellaneous": [
            "Review this month's receipts once a week to catch impulse purchases",
            "Move the amount you save each month into a separate account",
        ],
    }

    taken: dict[str, list[str]] = {section: [] for section in ADVICE_SECTIONS}
    used = 0
    depth = 0
    deepest = max(len(tips) for tips in bullets.values())
    while used < max_tips and depth < deepest:
        for section in ADVICE_SECTIONS:
            if depth < len(bullets[section]) and used < max_tips:
                taken[section].append(bullets[section][depth])
                used += 1
        depth += 1

    return "\n\n".join(
        f"**{section}**\n" + "\n".join(f"- {tip}" for tip in taken[section])
        for section in ADVICE_SECTIONS
    )


class BudgetAdvisor:
    """
    Budget suggestions and saving advice, AI-first with heuristic fallback.
    """

    def __init__(
        self,
        client: Optional[TextGenerationClient] = None,
        max_receipts: Optional[int] = None,
    ):
        """
        Args:
            client: Language model client. If None, only heuristics are used.
            max_receipts: Receipts considered for advice (default from settings)
        """
        self._client = client
        self._max_receipts = max_receipts or get_settings().app.max_ai_receipts

    @property
    def ai_enabled(self) -> bool:
        return self._client is not None

    # =========================================================================
    # BUDGET SUGGESTIONS
    # =========================================================================

    def _budget_prompt(self, categories: list[CategorySpend]) -> str:
        rows = json.dumps([
            {"category": entry.category, "lastThreeMonthTotal": entry.last_three_month_total}
            for entry in categories
        ])
        return f"""You are a personal finance assistant.

For each category below you get the total spent over the last three months.
Propose one realistic monthly budget per category, in whole currency units.

Respond with ONLY a JSON array in this exact format, with no other keys:
[{{"category": "Groceries", "suggested_budget": 400}}]

Categories:
{rows}"""

    async def suggest_budgets(
        self,
        categories: Optional[list[Union[CategorySpend, dict[str, Any]]]],
    ) -> BudgetResult:
        """
        Suggest a monthly budget per category.

        Raises:
            EmptyInputError: If no categories were given
        """
        if not categories:
            raise EmptyInputError("categories")

        entries = [
            entry if isinstance(entry, CategorySpend) else CategorySpend.model_validate(entry)
            for entry in categories
        ]

        if self._client is None:
            return BudgetResult(
                suggestions=heuristic_budgets(entries),
                provider=HEURISTIC_PROVIDER,
            )

        try:
            text = await self._client.generate(self._budget_prompt(entries))
        except Exception as e:
            reason = f"{type(e).__name__}: {e}"
            logger.warning("budget_fallback", reason=reason, categories=len(entries))
            return BudgetResult(
                suggestions=heuristic_budgets(entries),
                fallback=True,
                provider=HEURISTIC_PROVIDER,
                fallback_reason=reason,
            )

        suggestions = parse_budget_suggestions(text)
        if suggestions is None:
            logger.warning("budget_response_unparseable", response_preview=text[:200])
            suggestions = []
        return BudgetResult(suggestions=suggestions, provider=self._client.name)

    # =========================================================================
    # SAVING ADVICE
    # =========================================================================

    def _advice_prompt(self, receipts: list[dict[str, Any]], max_tips: int) -> str:
        sections = "\n".join(f"**{section}**" for section in ADVICE_SECTIONS)
        return f"""You are a personal finance coach reviewing a user's receipts.

Write at most {max_tips} saving tips in markdown, grouped under exactly these
section headings, in this order:
{sections}

Each tip is a bullet starting with "- " and must reference concrete
categories or vendors from the data. No preamble, no conclusion.

Receipts (JSON):
{compact_receipts(receipts)}"""

    async def saving_advice(
        self,
        receipts: Optional[list[dict[str, Any]]],
        max_tips: Optional[int] = None,
    ) -> AdviceResult:
        """
        Markdown saving advice for a receipt list.

        Raises:
            EmptyInputError: If no receipts were given
        """
        if not receipts:
            raise EmptyInputError("receipts")

        capped = receipts[:self._max_receipts]
        limit = clamp(max_tips, MIN_TIPS, MAX_TIPS, DEFAULT_MAX_TIPS)

        if self._client is None:
            return AdviceResult(
                advice=heuristic_advice(capped, limit),
                provider=HEURISTIC_PROVIDER,
            )

        try:
            text = await self._client.generate(self._advice_prompt(capped, limit))
        except Exception as e:
            reason = f"{type(e).__name__}: {e}"
        else:
            if text.strip():
                return AdviceResult(advice=text, provider=self._client.name)
            reason = "empty model output"

        logger.warning("advice_fallback", reason=reason, receipts=len(capped))
        return AdviceResult(
            advice=heuristic_advice(capped, limit),
            fallback=True,
            provider=HEURISTIC_PROVIDER,
            fallback_reason=reason,
        )
