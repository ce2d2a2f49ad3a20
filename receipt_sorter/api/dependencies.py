"""
FastAPI dependencies.

The application components are built once per process. Tests replace
`get_components` through `app.dependency_overrides`.
"""

from functools import lru_cache

from fastapi import Depends

from receipt_sorter.orchestrator import (
    AppComponents,
    ReceiptIngestionFlow,
    ReceiptManagementFlow,
    ReportingFlow,
    create_app_components,
)


@lru_cache()
def get_components() -> AppComponents:
    return create_app_components()


def get_ingestion_flow(
    components: AppComponents = Depends(get_components),
) -> ReceiptIngestionFlow:
    return components.ingestion_flow


def get_reporting_flow(
    components: AppComponents = Depends(get_components),
) -> ReportingFlow:
    return components.reporting_flow


def get_management_flow(
    components: AppComponents = Depends(get_components),
) -> ReceiptManagementFlow:
    return components.management_flow
