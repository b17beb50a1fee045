#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Migration executor with transaction management.

Brings the database schema from its persisted version up to the version
the running software expects. The whole upgrade path, including the
version bump, runs in one transaction: the database is observed either at
its original version or at the target, never in between.
"""
import logging
import time
from typing import Optional

from chaindb.database import ChainDatabase
from chaindb.errors import MigrationError, NoTransactionError, StepError
from chaindb.migrations.registry import UPGRADES, MigrationRegistry
from chaindb.migrations.version_tracker import VersionTracker


class MigrationExecutor:
    """
    Applies pending migrations atomically.

    Assumes single-flight use: only one process may upgrade a given
    database at a time.

    Attributes:
        database: ChainDatabase the migrations run against
        registry: Migrations keyed by version
        target_version: Version to upgrade to
        version_tracker: Reads and writes the persisted schema version

    Example:
        executor = MigrationExecutor(database)
        requires_refetch = await executor.upgrade()
        if requires_refetch:
            schedule_refetch()
    """

    def __init__(
        self,
        database: ChainDatabase,
        registry: MigrationRegistry = UPGRADES,
        target_version: Optional[int] = None
    ):
        """
        Initialize migration executor.

        Args:
            database: ChainDatabase instance
            registry: Migration registry (defaults to the production one)
            target_version: Version to upgrade to (defaults to the
                registry's current version)
        """
        self.database = database
        self.registry = registry
        if target_version is None:
            target_version = registry.current_version
        if target_version < 0 or target_version > registry.current_version:
            raise ValueError(
                f'Target version {target_version} outside range 0..{registry.current_version}'
            )
        self.target_version = target_version
        self.version_tracker = VersionTracker(database)
        self.logger = logging.getLogger(__name__)

    async def pending_versions(self) -> list[int]:
        """
        Versions with migrations an upgrade would apply.

        Raises:
            VersionReadError: If the current version cannot be read
        """
        version = await self.version_tracker.get_version()
        return self.registry.pending(version, self.target_version)

    async def upgrade(self) -> bool:
        """
        Upgrade the database to the target version.

        Returns:
            True if an applied migration requires previously derived data
            to be refetched from upstream

        Raises:
            VersionReadError: If the current version cannot be read
            MigrationError: If the database is newer than the target or
                the new version cannot be persisted
            StepError: If a step fails (nothing is committed)
            NoTransactionError: If a step runs without an active scope
            TransactionError: If the transaction cannot begin or commit
        """
        version = await self.version_tracker.get_version()
        target = self.target_version

        if version == target:
            # Nothing to do
            self.logger.debug('Database schema is current (version %d)', version)
            return False

        if version > target:
            raise MigrationError(
                f'Database schema version {version} is newer than supported version {target}'
            )

        self.logger.info('Upgrading database schema from version %d to %d', version, target)
        start_time = time.time()

        scope = await self.database.begin_tx()
        async with scope:
            requires_refetch = False
            for i in range(version + 1, target + 1):
                migration = self.registry.get(i)
                if migration is None:
                    self.logger.debug('No migration registered for version %d', i)
                    continue

                self.logger.info('Upgrading database to version %d', i)
                total = len(migration.steps)
                for current, step in enumerate(migration.steps, start=1):
                    self.logger.info('Running upgrade step %d/%d: %s', current, total, step.name)
                    try:
                        await step(scope, self.database)
                    except NoTransactionError as e:
                        self.logger.error('Upgrade step %s ran without an active transaction', step.name)
                        e.version = i
                        e.step = step.name
                        raise
                    except Exception as e:
                        self.logger.error(
                            'Upgrade to version %d failed in step %s: %s', i, step.name, e
                        )
                        raise StepError(i, step.name, str(e)) from e

                requires_refetch = requires_refetch or migration.requires_refetch

            await self.version_tracker.set_version(scope, target)
            await scope.commit()

        execution_time_ms = int((time.time() - start_time) * 1000)
        self.logger.info(
            'Upgrade complete: schema version %d (%dms)%s',
            target,
            execution_time_ms,
            ', refetch required' if requires_refetch else ''
        )

        return requires_refetch
