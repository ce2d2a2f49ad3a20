"""
Receipt Sorter HTTP service - FastAPI application entry-point.

Run with:
    uvicorn receipt_sorter.api:app --port 3001
or:
    python -m receipt_sorter.api.main
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from receipt_sorter import __version__
from receipt_sorter.api.routers.ai import router as ai_router
from receipt_sorter.api.routers.ingest import router as ingest_router
from receipt_sorter.api.routers.receipts import router as receipts_router
from receipt_sorter.api.routers.reports import router as reports_router
from receipt_sorter.audit import configure_logging
from receipt_sorter.config import get_settings
from receipt_sorter.errors import ClientError, RecordNotFoundError


logger = structlog.get_logger(__name__)

SERVICE_NAME = "receipt-sorter"

ENDPOINTS = [
    "POST /store-receipt",
    "POST /export/receipts/csv",
    "POST /export/receipts/summary",
    "POST /ai-insights",
    "POST /suggest-budget",
    "POST /saving-advice",
    "GET /analytics/anomalies",
    "GET /analytics/prediction",
    "GET /analytics/spending-by-category",
    "GET /receipts",
    "PATCH /receipts/{id}",
    "DELETE /receipts/{id}",
    "GET /categories",
    "POST /categories",
    "PATCH /categories/{id}",
    "DELETE /categories/{id}",
    "GET /health",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings().app
    configure_logging(settings.debug_mode)
    logger.info("service_started", environment=settings.environment, version=__version__)
    yield
    logger.info("service_stopped")


async def client_error_handler(request: Request, exc: ClientError) -> JSONResponse:
    logger.warning("client_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})


async def not_found_handler(request: Request, exc: RecordNotFoundError) -> JSONResponse:
    logger.warning("record_not_found", path=request.url.path, kind=exc.kind, record_id=exc.record_id)
    return JSONResponse(status_code=404, content={"success": False, "error": str(exc)})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("invalid_request_body", path=request.url.path)
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Invalid request body",
            "details": jsonable_encoder(exc.errors()),
        },
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Receipt Sorter",
        description="Receipt ingestion, spending reports and budget advice",
        version=__version__,
        lifespan=lifespan,
    )

    # The dashboard and the workflow engine call from other origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ClientError, client_error_handler)
    app.add_exception_handler(RecordNotFoundError, not_found_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "endpoints": ENDPOINTS,
        }

    app.include_router(ingest_router, tags=["Ingestion"])
    app.include_router(reports_router, tags=["Reports"])
    app.include_router(receipts_router, tags=["Management"])
    app.include_router(ai_router, tags=["AI"])
    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    settings = get_settings().app
    uvicorn.run(app, host=settings.webhook_host, port=settings.webhook_port)


if __name__ == "__main__":
    run()
