"""AI Agents package."""

from receipt_sorter.agents.budget import BudgetAdvisor
from receipt_sorter.agents.insights import (
    GeminiInsightProvider,
    HeuristicInsightProvider,
    InsightEngine,
    InsightProvider,
)
from receipt_sorter.agents.llm import (
    GeminiTextClient,
    TextGenerationClient,
    create_text_client,
)

__all__ = [
    "BudgetAdvisor",
    "GeminiInsightProvider",
    "GeminiTextClient",
    "HeuristicInsightProvider",
    "InsightEngine",
    "InsightProvider",
    "TextGenerationClient",
    "create_text_client",
]
