"""
Re-seed the orders table from a CSV export.

Deletes every existing order, then inserts the rows parsed from the file.

Usage:
    python scripts/import_orders_csv.py data/orders.csv
    python scripts/import_orders_csv.py data/orders.csv --dry-run
"""

import argparse
import sys
from pathlib import Path

# Add backend to path so we can import modules
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import structlog

from parsers.order_csv_parser import parse_order_csv
from services.order_service import get_order_service

logger = structlog.get_logger(__name__)


def import_orders(csv_path: str, dry_run: bool = False) -> int:
    """Parse the CSV and replace the orders table with its rows."""
    print(f"\n{'='*60}")
    print("ORDER CSV IMPORT")
    print(f"{'='*60}")
    print(f"File: {csv_path}")

    result = parse_order_csv(Path(csv_path))

    print(f"\nParsed {len(result.rows)} of {result.total_rows} rows")
    if result.errors:
        print(f"\nRejected rows ({len(result.errors)}):")
        for e in result.errors[:10]:
            print(f"  - line {e.row} [{e.field}] {e.error}")

    if dry_run:
        print("\nDry run, database untouched")
        return 0

    service = get_order_service()

    deleted = service.delete_all()
    print(f"\n✓ Removed {deleted} existing orders")

    inserted = service.insert_many(result.rows)
    logger.info("orders_seeded", inserted=inserted, rejected=len(result.errors))
    print(f"✓ Inserted {inserted} orders ({service.count_all()} in table)")

    return inserted


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Re-seed orders from a CSV export")
    parser.add_argument("csv_path", help="Semicolon-separated order export")
    parser.add_argument("--dry-run", action="store_true", help="Parse only")
    args = parser.parse_args()

    import_orders(args.csv_path, dry_run=args.dry_run)
    print("\nDone!")
