#!/usr/bin/env python3
"""
Import server listings from a scraped awesome-list dump.

The file is a JSON array of entries (or an object with a "servers" array).
Each entry needs a "name" and may carry "url", "description" and "author".
Listings are keyed by the slug of their name, so running the import again
refreshes existing rows instead of duplicating them.

Usage:
    # Preview what would be written
    python scripts/import_servers.py --file data/servers.json --dry-run

    # Write listings
    python scripts/import_servers.py --file data/servers.json
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from app.core.database import async_session_maker, engine
from app.services.catalog import CatalogService, categorize, slugify

logger = logging.getLogger(__name__)


def load_entries(path: Path) -> list[dict[str, Any]]:
    """Read scraped entries from a JSON file."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("servers", [])
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of server entries")
    return [entry for entry in data if isinstance(entry, dict)]


async def import_file(path: Path, dry_run: bool = False) -> int:
    entries = load_entries(path)
    print(f"Loaded {len(entries)} entries from {path}")

    if dry_run:
        for entry in entries:
            name = (entry.get("name") or "").strip()
            print(f"  {slugify(name):<50} {categorize(name, entry.get('description'))}")
        print("\n[DRY RUN] No changes made")
        return 0

    async with async_session_maker() as db:
        imported = await CatalogService.import_servers(db, entries)
        await db.commit()

    print(f"✓ Imported {imported} servers")
    return imported


async def main() -> None:
    parser = argparse.ArgumentParser(description="Import server listings from JSON")
    parser.add_argument(
        "--file",
        type=Path,
        required=True,
        help="Path to the scraped servers JSON file",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show slugs and categories without writing anything",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")
    try:
        await import_file(args.file, dry_run=args.dry_run)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
