#!/usr/bin/env python3
"""
Database Reset Script
Drops the leaf and sync tables so the server re-indexes from START_BLOCK
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from zasp.config import get_settings
from zasp.storage import LeafStore


def reset_database(database_url: str, start_block: int) -> None:
    """Drop and recreate tables, then seed the watermark."""
    print(f"🔄 Resetting database at {database_url}...")

    store = LeafStore(database_url)
    try:
        print("  ⚠️  Dropping all tables...")
        store.drop_tables()

        print("  ✨ Creating tables...")
        store.create_tables()

        print(f"  📍 Seeding watermark at block {start_block}...")
        store.get_watermark(start_block)
    finally:
        store.engine.dispose()

    print("\n✅ Database reset complete!")
    print(f"   The next server start indexes deposits after block {start_block}.")


if __name__ == "__main__":
    settings = get_settings()
    try:
        if "--yes" not in sys.argv[1:]:
            answer = input(f"Delete all indexed leaves in {settings.database_url}? [y/N] ")
            if answer.strip().lower() != "y":
                print("Aborted")
                sys.exit(0)
        reset_database(settings.database_url, settings.start_block)
    except KeyboardInterrupt:
        print("\n\n⚠️  Operation cancelled by user")
        sys.exit(1)
    except Exception as e:
        print(f"\n❌ Fatal error: {e}")
        sys.exit(1)
