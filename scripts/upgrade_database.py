#!/usr/bin/env python3
"""
Upgrade the chain database schema to the current version.

Intended to run before the indexing service starts. Exits non-zero if the
upgrade fails, in which case the service must not be started.

Usage:
    python scripts/upgrade_database.py <config file> [--dry-run]
"""
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from chaindb.config import get_config
from chaindb.database import ChainDatabase
from chaindb.errors import StorageError
from chaindb.migrations import MigrationExecutor

logger = logging.getLogger('chaindb.upgrade')


async def upgrade(database_url: str, dry_run: bool = False) -> bool:
    """
    Upgrade a database.

    Args:
        database_url: SQLAlchemy database URL
        dry_run: Only report pending migrations

    Returns:
        True if the upgrade succeeded (or nothing was pending)
    """
    database = ChainDatabase(database_url)
    executor = MigrationExecutor(database)

    try:
        if dry_run:
            pending = await executor.pending_versions()
            if pending:
                print(f"Pending migrations: {', '.join(f'v{v}' for v in pending)}")
            else:
                print("✓ Schema is up to date")
            return True

        requires_refetch = await executor.upgrade()
        print(f"✓ Schema at version {executor.target_version}")
        if requires_refetch:
            print("! Upgrade requires previously fetched blocks to be refetched")
        return True

    except StorageError as e:
        logger.error('Schema upgrade failed: %s', e)
        print(f"✗ Schema upgrade failed: {e}", file=sys.stderr)
        return False

    finally:
        await database.close()


async def main():
    """Main entry point."""
    args = [arg for arg in sys.argv[1:] if not arg.startswith('--')]
    if len(args) != 1:
        print("Usage: python upgrade_database.py <config file> [--dry-run]", file=sys.stderr)
        sys.exit(1)

    _, database_kwargs = get_config(args[0])
    success = await upgrade(database_kwargs['database_url'], dry_run='--dry-run' in sys.argv)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    asyncio.run(main())
