#!/usr/bin/env python3
"""
Import office (location) records into the primary store.

Reads a CSV or JSON file whose rows carry the columns of the office table
("Facility ID", "Region", "Division", "Office name", "Reporting Office Name")
and writes one document per row to the `offices` collection. Rows are keyed by
Facility ID (or the slugified office name), so re-running is idempotent.

Usage:
    python scripts/import_offices.py offices.csv
    python scripts/import_offices.py offices.json --dry-run
    python scripts/import_offices.py offices.csv --verbose
"""

import argparse
import asyncio
import csv
import json
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from pydantic import ValidationError

from formportal.core.slug import slugify
from formportal.db.document_store import DocumentStore
from formportal.db.session import init_models, primary_engine, stores
from formportal.schemas.location import LocationRecord
from formportal.services.location_hierarchy import OFFICES_COLLECTION, resolve_hierarchy


def read_rows(path: Path) -> list[dict]:
    if path.suffix.lower() == ".json":
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError("JSON file must contain a list of office rows")
        return data

    with path.open(newline="", encoding="utf-8-sig") as f:
        return list(csv.DictReader(f))


def parse_rows(rows: list[dict]) -> tuple[list[tuple[str, LocationRecord]], list[str]]:
    """Returns ([(key, record)], errors). Rows without a usable key are errors."""
    parsed: list[tuple[str, LocationRecord]] = []
    errors: list[str] = []
    for i, row in enumerate(rows, start=1):
        try:
            rec = LocationRecord.model_validate(row)
        except ValidationError as e:
            errors.append(f"row {i}: {e.errors()[0]['msg']}")
            continue
        key = (rec.office_id or "").strip() or slugify(rec.office_name or "")
        if not key:
            errors.append(f"row {i}: no Facility ID or Office name")
            continue
        parsed.append((key, rec))
    return parsed, errors


async def import_records(
    store: DocumentStore, records: list[tuple[str, LocationRecord]], verbose: bool = False
) -> dict:
    stats = {"created": 0, "updated": 0}
    for key, rec in records:
        existing = await store.get(OFFICES_COLLECTION, key)
        await store.put(OFFICES_COLLECTION, key, rec.model_dump(by_alias=True))
        stats["updated" if existing else "created"] += 1
        if verbose:
            print(f"    {'updated' if existing else 'created'}: {key} ({rec.office_name})")
    return stats


async def run_import(path: Path, dry_run: bool = False, verbose: bool = False) -> dict:
    start = time.time()
    print(f"Importing offices from {path.name}...")
    if dry_run:
        print("  [DRY RUN MODE - No changes will be made]")

    records, errors = parse_rows(read_rows(path))
    if errors:
        print("\nValidation errors:")
        for error in errors:
            print(f"  ❌ {error}")

    h = resolve_hierarchy(rec for _, rec in records)
    print(
        f"✓ Parsed {len(records)} rows: {len(h.regions)} regions, "
        f"{len(h.divisions)} divisions, {len(h.offices)} offices"
    )

    if dry_run:
        print("\n✓ Dry-run complete. No data imported.")
        return {"created": 0, "updated": 0, "errors": len(errors), "elapsed_time": time.time() - start}

    await init_models(primary_engine)
    stats = await import_records(stores.primary, records, verbose=verbose)
    stats["errors"] = len(errors)
    stats["elapsed_time"] = time.time() - start
    return stats


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="Import office records into the form portal")
    parser.add_argument("file", type=Path, help="CSV or JSON file with office rows")
    parser.add_argument("--dry-run", action="store_true", help="Validate data without importing")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    args = parser.parse_args()

    path = args.file.resolve()
    if not path.exists():
        print(f"❌ Error: File not found: {path}")
        sys.exit(1)

    try:
        summary = asyncio.run(run_import(path, dry_run=args.dry_run, verbose=args.verbose))
    except Exception as e:
        print(f"\n❌ Error: {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)

    if not args.dry_run:
        print("\n=== Import Summary ===")
        print(f"Offices: {summary['created']} created, {summary['updated']} updated, {summary['errors']} rejected")
        print(f"\nTotal time: {summary['elapsed_time']:.1f}s")


if __name__ == "__main__":
    main()
