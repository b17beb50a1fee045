"""
Schema migration data models.

This module defines the core data structures for versioned upgrades:
- Step: A single named operation run inside the upgrade transaction
- Migration: The ordered steps that produce one schema version

Migrations are immutable and are collected into a MigrationRegistry
keyed by the version they produce.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable

if TYPE_CHECKING:
    from chaindb.database import ChainDatabase
    from chaindb.transaction import TransactionScope

StepFunc = Callable[['TransactionScope', 'ChainDatabase'], Awaitable[None]]


@dataclass(frozen=True)
class Step:
    """
    A named migration step.

    Attributes:
        name: Identifier used in logs and errors (e.g., 'create_deposits')
        func: Async callable taking (scope, database); raises on failure

    Example:
        >>> step = Step('create_genesis', create_genesis)
        >>> await step(scope, database)
    """

    name: str
    func: StepFunc

    def __post_init__(self):
        if not self.name:
            raise ValueError("Step name must not be empty")
        if not callable(self.func):
            raise TypeError(f"Step {self.name} function is not callable")

    async def __call__(self, scope: 'TransactionScope', database: 'ChainDatabase') -> None:
        await self.func(scope, database)

    def __repr__(self) -> str:
        return f"<Step({self.name})>"


@dataclass(frozen=True)
class Migration:
    """
    The steps that advance the schema to one version.

    Attributes:
        steps: Steps in execution order
        requires_refetch: Whether previously derived data must be
            refetched from upstream once this migration is applied
        description: Human-readable summary

    Example:
        >>> migration = Migration(
        ...     steps=[Step('create_genesis', create_genesis)],
        ...     requires_refetch=False,
        ...     description='Add genesis table',
        ... )
    """

    steps: tuple[Step, ...]
    requires_refetch: bool = False
    description: str = field(default='')

    def __post_init__(self):
        """Validate migration after initialization."""
        steps = tuple(self.steps)
        if not steps:
            raise ValueError("Migration must have at least one step")
        for step in steps:
            if not isinstance(step, Step):
                raise TypeError(f"Migration steps must be Step instances, got {step!r}")
        names = [step.name for step in steps]
        if len(names) != len(set(names)):
            raise ValueError(f"Migration has duplicate step names: {names}")
        # Frozen dataclass: bypass __setattr__ to store the normalized tuple
        object.__setattr__(self, 'steps', steps)

    @property
    def step_names(self) -> list[str]:
        return [step.name for step in self.steps]

    def __repr__(self) -> str:
        return (
            f"<Migration({len(self.steps)} steps, "
            f"requires_refetch={self.requires_refetch})>"
        )
