"""
Maintenance CLI

One-off utilities for the receipt store:

    python -m receipt_sorter.maintenance count
    python -m receipt_sorter.maintenance cleanup
    python -m receipt_sorter.maintenance seed
    python -m receipt_sorter.maintenance categories
    python -m receipt_sorter.maintenance add-category Pets --color "#fab005" --icon 🐾
    python -m receipt_sorter.maintenance delete-receipt <id>
    python -m receipt_sorter.maintenance spending --start 2024-06-01 --end 2024-06-30

`cleanup` deletes receipts missing vendor, total or date (same falsy rule
as the ingestion validator). `seed` writes sample receipts in chunks, with
concurrent writes inside a chunk and a short pause between chunks so the
store is not flooded.
"""

import argparse
import asyncio
import sys
from datetime import date, datetime, timezone
from typing import Any, Optional

import structlog

from receipt_sorter.audit import AuditLogger, configure_logging
from receipt_sorter.config import get_settings
from receipt_sorter.errors import ClientError
from receipt_sorter.orchestrator import create_app_components
from receipt_sorter.services.storage import ReceiptRepository


logger = structlog.get_logger(__name__)


# Fields a stored receipt cannot be without
CORE_FIELDS = ("vendor", "total", "date")

SAMPLE_SOURCE = "sample_data"

SAMPLE_RECEIPTS: list[dict[str, Any]] = [
    {
        "vendor": "Steam", "date": "2024-06-28", "total": 59.99, "tax": 0,
        "currency": "USD", "payment_method": "Visa", "category": "Games",
        "items": [{"name": "Elden Ring", "price": 59.99}],
    },
    {
        "vendor": "Netflix", "date": "2024-06-27", "total": 15.99, "tax": 0,
        "currency": "USD", "payment_method": "Mastercard", "category": "Entertainment",
        "items": [{"name": "Monthly Subscription", "price": 15.99}],
    },
    {
        "vendor": "AMC Theatres", "date": "2024-06-26", "total": 27.50, "tax": 2.5,
        "currency": "USD", "payment_method": "Amex", "category": "Movies",
        "items": [{"name": "Movie Tickets", "price": 25}, {"name": "Tax", "price": 2.5}],
    },
    {
        "vendor": "Chipotle", "date": "2024-06-25", "total": 11.75, "tax": 0.95,
        "currency": "USD", "payment_method": "Visa", "category": "Restaurants",
        "items": [{"name": "Burrito", "price": 9.25}, {"name": "Drink", "price": 1.55}],
    },
    {
        "vendor": "Nintendo eShop", "date": "2024-06-24", "total": 39.99, "tax": 0,
        "currency": "USD", "payment_method": "Visa", "category": "Games",
        "items": [{"name": "Mario Kart 8 Deluxe", "price": 39.99}],
    },
    {
        "vendor": "Spotify", "date": "2024-06-23", "total": 9.99, "tax": 0,
        "currency": "USD", "payment_method": "Visa", "category": "Entertainment",
        "items": [{"name": "Premium Subscription", "price": 9.99}],
    },
    {
        "vendor": "Dominos Pizza", "date": "2024-06-22", "total": 18.45, "tax": 1.35,
        "currency": "USD", "payment_method": "Cash", "category": "Restaurants",
        "items": [
            {"name": "Large Pizza", "price": 15},
            {"name": "Tax", "price": 1.35},
            {"name": "Delivery", "price": 2.1},
        ],
    },
]


def is_invalid_receipt(receipt: dict[str, Any]) -> bool:
    return any(not receipt.get(field) for field in CORE_FIELDS)


async def cleanup_invalid_receipts(
    repository: ReceiptRepository,
    audit_logger: Optional[AuditLogger] = None,
) -> list[str]:
    """
    Delete receipts missing vendor, total or date.

    Returns:
        IDs of the deleted receipts
    """
    audit_logger = audit_logger or AuditLogger()
    deleted = []
    for receipt in await repository.list_receipts():
        if not is_invalid_receipt(receipt):
            continue
        missing = [field for field in CORE_FIELDS if not receipt.get(field)]
        if await repository.delete_receipt(receipt["id"]):
            deleted.append(receipt["id"])
            await audit_logger.log_receipt_deleted(
                receipt["id"],
                reason=f"missing {', '.join(missing)}",
            )
    logger.info("cleanup_complete", deleted=len(deleted))
    return deleted


def sample_receipts(now: Optional[datetime] = None) -> list[dict[str, Any]]:
    """The sample receipts, stamped as if they had just been ingested."""
    processed_at = (now or datetime.now(timezone.utc)).isoformat()
    return [
        {
            **receipt,
            "processed_at": processed_at,
            "status": "processed",
            "source": SAMPLE_SOURCE,
        }
        for receipt in SAMPLE_RECEIPTS
    ]


async def seed_receipts(
    repository: ReceiptRepository,
    receipts: list[dict[str, Any]],
    chunk_size: Optional[int] = None,
    delay_seconds: Optional[float] = None,
) -> list[str]:
    """
    Write receipts in chunks.

    Writes inside a chunk run concurrently, so their order in the store is
    not guaranteed. Chunks are separated by `delay_seconds`.

    Returns:
        IDs of the written receipts
    """
    settings = get_settings().app
    chunk_size = chunk_size or settings.seed_chunk_size
    if delay_seconds is None:
        delay_seconds = settings.seed_chunk_delay_seconds

    ids: list[str] = []
    for start in range(0, len(receipts), chunk_size):
        if start and delay_seconds:
            await asyncio.sleep(delay_seconds)
        chunk = receipts[start:start + chunk_size]
        ids.extend(await asyncio.gather(
            *(repository.save_receipt(receipt) for receipt in chunk)
        ))
        logger.info("seed_chunk_written", written=len(ids), total=len(receipts))
    return ids


async def _run(args: argparse.Namespace) -> int:
    components = create_app_components(use_storage=not args.memory)
    repository = components.repository
    management = components.management_flow
    command = args.command

    try:
        if command == "count":
            print(f"Receipts in store: {await repository.count_receipts()}")
        elif command == "cleanup":
            deleted = await cleanup_invalid_receipts(repository, components.audit_logger)
            print(f"Deleted {len(deleted)} invalid receipts")
        elif command == "seed":
            ids = await seed_receipts(repository, sample_receipts())
            print(f"Added {len(ids)} sample receipts")
        elif command == "categories":
            for category in await management.list_categories():
                print(f"{category.get('icon', '')} {category['name']} ({category.get('color', '')})")
        elif command == "add-category":
            category_id = await management.add_category(args.name, color=args.color, icon=args.icon)
            print(f"Added category {args.name.strip()} ({category_id})")
        elif command == "delete-receipt":
            await management.delete_receipt(args.receipt_id)
            print(f"Deleted receipt {args.receipt_id}")
        elif command == "spending":
            spending = await management.spending_by_category(args.start, args.end)
            if not spending:
                print("No spending in range")
            for category, amount in sorted(spending.items(), key=lambda entry: -entry[1]):
                print(f"{category}: {amount:.2f}")
    except ClientError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a YYYY-MM-DD date: {value}")


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--memory",
        action="store_true",
        help="Run against a throwaway in-memory store instead of Google Sheets",
    )
    common.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    parser = argparse.ArgumentParser(
        prog="receipt-sorter-maintenance",
        description="Maintenance utilities for the receipt store",
    )
    commands = parser.add_subparsers(dest="command", required=True, metavar="command")

    commands.add_parser("count", parents=[common], help="Count stored receipts")
    commands.add_parser("cleanup", parents=[common], help="Delete receipts missing vendor, total or date")
    commands.add_parser("seed", parents=[common], help="Write the sample receipts")
    commands.add_parser("categories", parents=[common], help="List categories")

    add_category = commands.add_parser("add-category", parents=[common], help="Add a category")
    add_category.add_argument("name")
    add_category.add_argument("--color", help="Hex color, e.g. #51cf66")
    add_category.add_argument("--icon", help="Emoji shown next to the name")

    delete_receipt = commands.add_parser("delete-receipt", parents=[common], help="Delete one receipt")
    delete_receipt.add_argument("receipt_id")

    spending = commands.add_parser("spending", parents=[common], help="Spend per category")
    spending.add_argument("--start", type=_iso_date, help="First day (YYYY-MM-DD)")
    spending.add_argument("--end", type=_iso_date, help="Last day (YYYY-MM-DD)")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
