"""
DDL helpers for migration steps.

Structural changes are expressed with Alembic's Operations API bound to
the upgrade transaction's connection. batch_alter_table issues plain
ALTER statements on PostgreSQL and rebuilds the table on SQLite, which
cannot alter column constraints in place.
"""
from typing import Any, Callable, Optional

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import text
from sqlalchemy.engine import Connection

from chaindb.transaction import TransactionScope, require_active


async def run_operations(scope: TransactionScope, fn: Callable[[Operations], Any]) -> Any:
    """
    Run Alembic operations inside the scope's transaction.

    Args:
        scope: Active transaction scope
        fn: Callable receiving an Operations instance

    Returns:
        Whatever fn returns

    Example:
        await run_operations(scope, lambda op: op.add_column(
            't_blocks', sa.Column('f_extra', sa.Text(), nullable=True)))
    """
    scope = require_active(scope)
    conn = await scope.connection()

    def _run(sync_conn: Connection) -> Any:
        context = MigrationContext.configure(connection=sync_conn)
        return fn(Operations(context))

    return await conn.run_sync(_run)


async def run_sync(scope: TransactionScope, fn: Callable[[Connection], Any]) -> Any:
    """
    Run a function taking a synchronous Connection inside the scope.

    Used for metadata-driven DDL such as Table.create(checkfirst=True).
    """
    scope = require_active(scope)
    conn = await scope.connection()
    return await conn.run_sync(fn)


async def execute(scope: TransactionScope, sql: str, params: Optional[dict] = None) -> None:
    """Execute a single SQL statement inside the scope."""
    scope = require_active(scope)
    await scope.session.execute(text(sql), params or {})


async def set_nullable(
    scope: TransactionScope,
    table_name: str,
    columns: list[str],
    nullable: bool,
    existing_type: Any,
) -> None:
    """
    Add or drop NOT NULL constraints on columns of one table.

    Args:
        scope: Active transaction scope
        table_name: Table to alter
        columns: Column names to change
        nullable: True to drop NOT NULL, False to add it
        existing_type: Current SQLAlchemy type of the columns
    """
    def _alter(op: Operations) -> None:
        with op.batch_alter_table(table_name) as batch_op:
            for column in columns:
                batch_op.alter_column(column, existing_type=existing_type, nullable=nullable)

    await run_operations(scope, _alter)
