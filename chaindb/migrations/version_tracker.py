"""
Schema Version Tracker

Reads and writes the schema version record kept in the metadata store
under the 'schema' key as a JSON document: {"version": <int>}.
"""

import json
import logging
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Optional

from chaindb.errors import MigrationError, VersionReadError
from chaindb.transaction import TransactionScope, require_active

if TYPE_CHECKING:
    from chaindb.database import ChainDatabase

SCHEMA_METADATA_KEY = 'schema'


@dataclass
class SchemaMetadata:
    """Persisted schema metadata document."""

    version: int

    def to_bytes(self) -> bytes:
        return json.dumps(asdict(self)).encode('utf-8')

    @classmethod
    def from_bytes(cls, data: bytes) -> 'SchemaMetadata':
        """
        Parse a metadata document.

        Raises:
            ValueError: If the document is not valid JSON or the version
                is not a non-negative integer
        """
        document = json.loads(data)
        if not isinstance(document, dict):
            raise ValueError("schema metadata must be a JSON object")
        version = document.get('version', 0)
        if isinstance(version, bool) or not isinstance(version, int) or version < 0:
            raise ValueError(f"invalid schema version: {version!r}")
        return cls(version=version)


class VersionTracker:
    """
    Tracks the database schema version.

    The version is read outside any transaction (a pure read) and written
    inside the upgrade transaction together with the changes it describes.
    """

    def __init__(self, database: 'ChainDatabase', key: str = SCHEMA_METADATA_KEY) -> None:
        """
        Initialize version tracker.

        Args:
            database: ChainDatabase providing the metadata store
            key: Metadata key holding the schema document
        """
        self.database = database
        self.key = key
        self.logger = logging.getLogger(__name__)

    async def get_version(self, scope: Optional[TransactionScope] = None) -> int:
        """
        Get current database schema version.

        Returns:
            Current version number, 0 if no schema metadata exists

        Raises:
            VersionReadError: If the metadata store fails or the document
                is malformed
        """
        try:
            data = await self.database.metadata(self.key, scope)
        except Exception as e:
            raise VersionReadError(f"Failed to obtain schema metadata: {e}") from e

        # No data means it's version 0 of the schema
        if not data:
            return 0

        try:
            metadata = SchemaMetadata.from_bytes(data)
        except ValueError as e:
            raise VersionReadError(f"Failed to parse schema metadata: {e}") from e

        self.logger.debug('Current schema version: %d', metadata.version)
        return metadata.version

    async def set_version(self, scope: Optional[TransactionScope], version: int) -> None:
        """
        Set database schema version inside a transaction.

        Args:
            scope: Active transaction scope
            version: Version number to persist

        Raises:
            NoTransactionError: If scope is missing or inactive
            MigrationError: If the version cannot be written
        """
        scope = require_active(scope)
        if isinstance(version, bool) or not isinstance(version, int) or version < 0:
            raise MigrationError(f"Invalid schema version: {version!r}")

        try:
            await self.database.set_metadata(scope, self.key, SchemaMetadata(version).to_bytes())
        except Exception as e:
            raise MigrationError(f"Failed to set schema version: {e}") from e

        self.logger.debug('Schema version set to %d', version)
