"""HTTP service package."""

from receipt_sorter.api.main import app, create_app

__all__ = ["app", "create_app"]
