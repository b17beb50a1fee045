"""
Versioned schema migrations for the chain database.

This package provides:
- Step / Migration: Immutable migration definitions
- MigrationRegistry: Version-keyed table of migrations (UPGRADES)
- VersionTracker: Persisted schema version in the metadata store
- MigrationExecutor: Atomic, ordered application of pending migrations
"""

from .migration import Migration, Step
from .version_tracker import SCHEMA_METADATA_KEY, SchemaMetadata, VersionTracker
from .registry import CURRENT_VERSION, UPGRADES, MigrationRegistry, build_registry
from .migration_executor import MigrationExecutor

__all__ = [
    'Step',
    'Migration',
    'MigrationRegistry',
    'build_registry',
    'CURRENT_VERSION',
    'UPGRADES',
    'SCHEMA_METADATA_KEY',
    'SchemaMetadata',
    'VersionTracker',
    'MigrationExecutor',
]
