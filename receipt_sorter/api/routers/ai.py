"""
AI-backed advisory endpoints.

POST /ai-insights     - markdown spending insights
POST /suggest-budget  - monthly budget per category
POST /saving-advice   - sectioned saving tips

These never fail because the model failed: the heuristic answers instead
and the response carries `fallback: true`.
"""

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends

from receipt_sorter.api.dependencies import get_reporting_flow
from receipt_sorter.models.reports import (
    BudgetRequest,
    InsightsRequest,
    SavingAdviceRequest,
)
from receipt_sorter.orchestrator import ReportingFlow


logger = structlog.get_logger(__name__)
router = APIRouter()


def _with_fallback(body: dict[str, Any], fallback: bool) -> dict[str, Any]:
    # `fallback` is only emitted when true
    if fallback:
        body["fallback"] = True
    return body


@router.post("/ai-insights")
async def ai_insights(
    request: Optional[InsightsRequest] = None,
    flow: ReportingFlow = Depends(get_reporting_flow),
):
    request = request or InsightsRequest()
    result = await flow.generate_insights(request.receipts, request.max_insights)
    logger.info("insights_response", provider=result.provider, fallback=result.fallback)
    return _with_fallback(
        {"success": True, "insights": result.insights},
        result.fallback,
    )


@router.post("/suggest-budget")
async def suggest_budget(
    request: Optional[BudgetRequest] = None,
    flow: ReportingFlow = Depends(get_reporting_flow),
):
    request = request or BudgetRequest()
    result = await flow.suggest_budgets(request.categories)
    logger.info("budget_response", provider=result.provider, fallback=result.fallback)
    return _with_fallback(
        {
            "success": True,
            "suggestions": [suggestion.model_dump() for suggestion in result.suggestions],
        },
        result.fallback,
    )


@router.post("/saving-advice")
async def saving_advice(
    request: Optional[SavingAdviceRequest] = None,
    flow: ReportingFlow = Depends(get_reporting_flow),
):
    request = request or SavingAdviceRequest()
    result = await flow.saving_advice(request.receipts, request.max_tips)
    logger.info("advice_response", provider=result.provider, fallback=result.fallback)
    return _with_fallback(
        {"success": True, "advice": result.advice},
        result.fallback,
    )
