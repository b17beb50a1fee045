"""Schema upgrader for the chain indexing database."""
from .config import configure_logger, get_config
from .database import ChainDatabase
from .errors import (
    MigrationError,
    NoTransactionError,
    StepError,
    StorageError,
    TransactionError,
    VersionReadError,
)
from .transaction import TransactionScope

__all__ = [
    'ChainDatabase',
    'TransactionScope',
    'get_config',
    'configure_logger',
    'StorageError',
    'MigrationError',
    'VersionReadError',
    'StepError',
    'TransactionError',
    'NoTransactionError',
]
