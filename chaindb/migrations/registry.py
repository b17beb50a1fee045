"""
Migration registry.

An immutable mapping from the schema version a migration produces to the
Migration itself. Versions without an entry are no-op version bumps.
"""
from functools import partial
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from chaindb.hashing import beacon_block_header_root
from chaindb.migrations import steps
from chaindb.migrations.migration import Migration, Step

# Current schema version - increment when adding new migrations
CURRENT_VERSION = 1


class MigrationRegistry:
    """
    Read-only table of migrations keyed by version.

    Attributes:
        current_version: Schema version the running software expects

    Example:
        registry = MigrationRegistry({1: migration}, current_version=1)
        registry.get(1)   # -> migration
        registry.get(2)   # -> None (no-op version)
    """

    def __init__(self, migrations: Mapping[int, Migration], current_version: int):
        if isinstance(current_version, bool) or not isinstance(current_version, int):
            raise TypeError(f"current_version must be an int, got {current_version!r}")
        if current_version < 0:
            raise ValueError(f"current_version must be >= 0, got {current_version}")

        for version, migration in migrations.items():
            if isinstance(version, bool) or not isinstance(version, int):
                raise TypeError(f"Migration version must be an int, got {version!r}")
            if version < 1 or version > current_version:
                raise ValueError(
                    f"Migration version {version} outside range 1..{current_version}"
                )
            if not isinstance(migration, Migration):
                raise TypeError(f"Version {version} is not a Migration: {migration!r}")

        self._migrations = MappingProxyType(dict(sorted(migrations.items())))
        self._current_version = current_version

    @property
    def current_version(self) -> int:
        return self._current_version

    def get(self, version: int) -> Optional[Migration]:
        """Get the migration producing a version, or None if there is none."""
        return self._migrations.get(version)

    def versions(self) -> list[int]:
        """Registered versions in ascending order."""
        return list(self._migrations)

    def pending(self, from_version: int, to_version: Optional[int] = None) -> list[int]:
        """
        Registered versions an upgrade from from_version would apply.

        Args:
            from_version: Version currently persisted
            to_version: Target version (defaults to current_version)
        """
        target = self._current_version if to_version is None else to_version
        return [v for v in self._migrations if from_version < v <= target]

    def __contains__(self, version: object) -> bool:
        return version in self._migrations

    def __iter__(self) -> Iterator[int]:
        return iter(self._migrations)

    def __len__(self) -> int:
        return len(self._migrations)

    def __repr__(self) -> str:
        return (
            f"<MigrationRegistry(current_version={self._current_version}, "
            f"versions={self.versions()})>"
        )


def build_registry(header_root=beacon_block_header_root) -> MigrationRegistry:
    """
    Build the production migration registry.

    Args:
        header_root: Function computing a beacon block root from header
            fields, used by the proposer slashing backfill

    Returns:
        MigrationRegistry targeting CURRENT_VERSION
    """
    return MigrationRegistry(
        {
            1: Migration(
                steps=(
                    Step('validators_epoch_null', steps.validators_epoch_null),
                    Step('create_deposits', steps.create_deposits),
                    Step('create_chain_spec', steps.create_chain_spec),
                    Step('create_genesis', steps.create_genesis),
                    Step(
                        'add_proposer_slashing_block_roots',
                        partial(steps.add_proposer_slashing_block_roots, header_root=header_root),
                    ),
                    Step('create_eth1_deposits', steps.create_eth1_deposits),
                    Step('add_attestation_aggregation_indices', steps.add_attestation_aggregation_indices),
                ),
                requires_refetch=True,
                description='Nullable validator epochs, deposit/genesis/spec tables, '
                            'proposer slashing block roots, attestation aggregation indices',
            ),
        },
        current_version=CURRENT_VERSION,
    )


UPGRADES = build_registry()
