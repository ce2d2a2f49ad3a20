"""
Ingestion endpoint.

POST /store-receipt  - called by the extraction workflow with one receipt
"""

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from receipt_sorter.api.dependencies import get_ingestion_flow
from receipt_sorter.orchestrator import ReceiptIngestionFlow


logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/store-receipt")
async def store_receipt(
    payload: dict[str, Any] = Body(...),
    flow: ReceiptIngestionFlow = Depends(get_ingestion_flow),
):
    logger.info("store_receipt_request", fields=list(payload.keys()))
    result = await flow.ingest(payload)
    return JSONResponse(status_code=result.status_code, content=result.to_body())
