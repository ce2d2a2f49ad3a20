"""
Reporting endpoints.

POST /export/receipts/csv      - CSV export with summary, filtered by period
POST /export/receipts/summary  - JSON summary export
GET  /analytics/anomalies      - receipts far above the average
GET  /analytics/prediction     - next-month spend projection
GET  /categories               - category list (seeded on first read)
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from receipt_sorter.api.dependencies import get_reporting_flow
from receipt_sorter.errors import DependencyError
from receipt_sorter.models.reports import CsvExportRequest, SummaryExportRequest
from receipt_sorter.orchestrator import ReportingFlow


logger = structlog.get_logger(__name__)
router = APIRouter()

NO_RECEIPTS_MESSAGE = "No receipts found to export"


def _failure(message: str, error: Exception) -> JSONResponse:
    logger.error("report_failed", message=message, error=str(error))
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": message, "error": str(error)},
    )


@router.post("/export/receipts/csv")
async def export_receipts_csv(
    request: Optional[CsvExportRequest] = None,
    flow: ReportingFlow = Depends(get_reporting_flow),
):
    request = request or CsvExportRequest()
    logger.info("csv_export_request", limit=request.limit, period=request.period)
    try:
        export = await flow.export_csv(limit=request.limit, period=request.period)
    except DependencyError as e:
        return _failure("Failed to export receipts", e)

    if export is None:
        return {"success": False, "message": NO_RECEIPTS_MESSAGE}
    return {"success": True, "data": export.model_dump(mode="json")}


@router.post("/export/receipts/summary")
async def export_receipts_summary(
    request: Optional[SummaryExportRequest] = None,
    flow: ReportingFlow = Depends(get_reporting_flow),
):
    request = request or SummaryExportRequest()
    logger.info("summary_export_request", limit=request.limit)
    try:
        export = await flow.export_summary(limit=request.limit)
    except DependencyError as e:
        return _failure("Failed to export summary", e)

    if export is None:
        return {"success": False, "message": NO_RECEIPTS_MESSAGE}
    return {"success": True, "data": export.model_dump(mode="json")}


@router.get("/analytics/anomalies")
async def spending_anomalies(
    limit: Optional[int] = Query(default=None, ge=1),
    flow: ReportingFlow = Depends(get_reporting_flow),
):
    try:
        anomalies, threshold, average = await flow.anomalies(limit)
    except DependencyError as e:
        return _failure("Failed to detect anomalies", e)

    return {
        "success": True,
        "anomalies": [anomaly.model_dump(mode="json") for anomaly in anomalies],
        "threshold": threshold,
        "average": average,
    }


@router.get("/analytics/prediction")
async def spending_prediction(
    limit: Optional[int] = Query(default=None, ge=1),
    flow: ReportingFlow = Depends(get_reporting_flow),
):
    try:
        forecast = await flow.prediction(limit)
    except DependencyError as e:
        return _failure("Failed to generate prediction", e)

    return {"success": True, **forecast.model_dump(mode="json")}


@router.get("/categories")
async def list_categories(
    flow: ReportingFlow = Depends(get_reporting_flow),
):
    try:
        categories = await flow.categories()
    except DependencyError as e:
        return _failure("Failed to load categories", e)

    return {"success": True, "categories": categories}
