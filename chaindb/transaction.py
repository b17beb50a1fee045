"""
Transaction scope for schema upgrades.

A TransactionScope wraps one AsyncSession with explicit commit/cancel
semantics. All migration work for a single upgrade run shares one scope,
which is handed to every step as a parameter.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession

from chaindb.errors import NoTransactionError, TransactionError


class TransactionScope:
    """
    A unit of work with begin/commit/cancel semantics.

    Use as an async context manager to guarantee cancellation on any exit
    path that did not commit:

        scope = await database.begin_tx()
        async with scope:
            await step(scope, database)
            await scope.commit()

    Attributes:
        session: The session backing this scope
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self._active = True
        self.logger = logging.getLogger(__name__)

    @property
    def active(self) -> bool:
        """True until the scope is committed or cancelled."""
        return self._active

    async def connection(self) -> AsyncConnection:
        """
        Get the connection bound to this scope's transaction.

        Raises:
            NoTransactionError: If the scope is no longer active
        """
        if not self._active:
            raise NoTransactionError('Transaction scope is no longer active')
        return await self.session.connection()

    async def commit(self) -> None:
        """
        Commit the scope.

        Raises:
            NoTransactionError: If the scope is no longer active
            TransactionError: If the commit fails (changes are rolled back)
        """
        if not self._active:
            raise NoTransactionError('Cannot commit an inactive transaction scope')

        try:
            await self.session.commit()
        except Exception as e:
            self.logger.error('Failed to commit transaction: %s', e)
            await self._rollback_quietly()
            raise TransactionError(f'Failed to commit transaction: {e}') from e
        finally:
            await self._finish()

    async def cancel(self) -> None:
        """
        Roll back the scope.

        Safe to call multiple times; subsequent calls are no-ops.
        """
        if not self._active:
            return

        try:
            await self.session.rollback()
        finally:
            await self._finish()

    async def _rollback_quietly(self) -> None:
        try:
            await self.session.rollback()
        except Exception as e:
            self.logger.warning('Rollback after failure also failed: %s', e)

    async def _finish(self) -> None:
        self._active = False
        await self.session.close()

    async def _finish_quietly(self) -> None:
        self._active = False
        try:
            await self.session.close()
        except Exception as e:
            self.logger.warning('Closing session after failure also failed: %s', e)

    async def __aenter__(self) -> 'TransactionScope':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self._active:
            return

        if exc_type is None:
            await self.cancel()
            return

        # The exception leaving the block is the one the caller needs to see
        self.logger.debug('Cancelling transaction scope after %s', exc_type.__name__)
        try:
            await self._rollback_quietly()
        finally:
            await self._finish_quietly()


def require_active(scope: Optional[TransactionScope]) -> TransactionScope:
    """
    Ensure a scope is present and active.

    Args:
        scope: Scope passed to a step or write operation

    Returns:
        The same scope

    Raises:
        NoTransactionError: If scope is None or no longer active
    """
    if scope is None or not scope.active:
        raise NoTransactionError('No active transaction')
    return scope
