"""
Receipt and category management endpoints.

GET    /receipts                          - stored receipts, optionally one category
PATCH  /receipts/{id}                     - edit a receipt
DELETE /receipts/{id}                     - delete a receipt
GET    /analytics/spending-by-category    - spend per category between two dates
POST   /categories                        - add a category
PATCH  /categories/{id}                   - rename or restyle a category
DELETE /categories/{id}                   - remove a category

Unknown ids are 404 and invalid edits are 400 (application handlers).
"""

from datetime import date
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from receipt_sorter.api.dependencies import get_management_flow
from receipt_sorter.errors import DependencyError
from receipt_sorter.models.receipt import CategoryCreateRequest, CategoryUpdateRequest
from receipt_sorter.orchestrator import ReceiptManagementFlow


logger = structlog.get_logger(__name__)
router = APIRouter()


def _failure(message: str, error: Exception) -> JSONResponse:
    logger.error("management_failed", message=message, error=str(error))
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": message, "error": str(error)},
    )


# =============================================================================
# RECEIPTS
# =============================================================================

@router.get("/receipts")
async def list_receipts(
    category: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1),
    flow: ReceiptManagementFlow = Depends(get_management_flow),
):
    try:
        receipts = await flow.list_receipts(category=category, limit=limit)
    except DependencyError as e:
        return _failure("Failed to load receipts", e)

    return {"success": True, "receipts": receipts}


@router.patch("/receipts/{receipt_id}")
async def edit_receipt(
    receipt_id: str,
    changes: dict[str, Any] = Body(...),
    flow: ReceiptManagementFlow = Depends(get_management_flow),
):
    logger.info("receipt_edit_request", receipt_id=receipt_id, fields=sorted(changes))
    try:
        receipt = await flow.edit_receipt(receipt_id, changes)
    except DependencyError as e:
        return _failure("Failed to update receipt", e)

    return {"success": True, "receipt": receipt}


@router.delete("/receipts/{receipt_id}")
async def delete_receipt(
    receipt_id: str,
    flow: ReceiptManagementFlow = Depends(get_management_flow),
):
    try:
        await flow.delete_receipt(receipt_id)
    except DependencyError as e:
        return _failure("Failed to delete receipt", e)

    return {"success": True, "id": receipt_id}


@router.get("/analytics/spending-by-category")
async def spending_by_category(
    start: Optional[date] = None,
    end: Optional[date] = None,
    flow: ReceiptManagementFlow = Depends(get_management_flow),
):
    try:
        spending = await flow.spending_by_category(start, end)
    except DependencyError as e:
        return _failure("Failed to compute spending", e)

    return {"success": True, "spending": spending}


# =============================================================================
# CATEGORIES
# =============================================================================

@router.post("/categories")
async def add_category(
    request: CategoryCreateRequest,
    flow: ReceiptManagementFlow = Depends(get_management_flow),
):
    try:
        category_id = await flow.add_category(request.name, color=request.color, icon=request.icon)
    except DependencyError as e:
        return _failure("Failed to add category", e)

    return {"success": True, "id": category_id}


@router.patch("/categories/{category_id}")
async def update_category(
    category_id: str,
    request: CategoryUpdateRequest,
    flow: ReceiptManagementFlow = Depends(get_management_flow),
):
    try:
        await flow.update_category(category_id, request.model_dump(exclude_none=True))
    except DependencyError as e:
        return _failure("Failed to update category", e)

    return {"success": True}


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: str,
    flow: ReceiptManagementFlow = Depends(get_management_flow),
):
    try:
        await flow.delete_category(category_id)
    except DependencyError as e:
        return _failure("Failed to delete category", e)

    return {"success": True}
