"""
Storage and migration exceptions.

This module defines the exception hierarchy for chain database operations,
enabling callers to tell infrastructure misuse apart from failures reported
by the database itself.
"""

from typing import Optional


class StorageError(Exception):
    """
    Base exception for storage errors.

    All storage-related exceptions inherit from this base class,
    allowing catch-all error handling when needed.
    """
    pass


class NoTransactionError(StorageError):
    """
    Operation requires an active transaction scope.

    Raised when:
    - A migration step is invoked without a scope
    - A scope is used after it was committed or cancelled
    - A write that must share the upgrade transaction is called standalone

    When raised from a migration step, version and step name the step.
    """

    version: Optional[int] = None
    step: Optional[str] = None


class TransactionError(StorageError):
    """
    Transaction lifecycle failed.

    Raised when:
    - Unable to begin a transaction
    - Commit fails (the upgrade must not be treated as applied)
    """
    pass


class MigrationError(StorageError):
    """
    Schema migration failed.

    Raised when:
    - Schema version is newer than this software supports
    - The new schema version cannot be persisted
    """
    pass


class VersionReadError(MigrationError):
    """
    Current schema version could not be determined.

    Raised when:
    - Metadata store is unreachable
    - Schema metadata document is malformed
    """
    pass


class StepError(MigrationError):
    """
    A migration step failed.

    The underlying exception is chained as ``__cause__``.
    """

    def __init__(self, version: int, step: str, message: Optional[str] = None) -> None:
        """
        Initialize step error.

        Args:
            version: Schema version the failing migration produces
            step: Name of the failing step
            message: Optional description of the failure
        """
        self.version = version
        self.step = step
        detail = f": {message}" if message else ""
        super().__init__(f"Upgrade to version {version} failed in step {step}{detail}")
