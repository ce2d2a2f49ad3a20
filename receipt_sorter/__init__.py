"""
Receipt Sorter - Source Package

Receipt ingestion and financial insights service for personal finance
tracking. Receipts arrive from an external OCR + LLM workflow, are
validated and stored, and are later aggregated into summaries, CSV
exports, spending insights and budget suggestions.

DESIGN PRINCIPLES:
1. Validate at the boundary, then trust the store
2. Every AI path has a deterministic fallback
3. Bad data is normalised, not fatal
4. Every step is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Receipt Sorter Team"
