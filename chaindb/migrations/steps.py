"""
Migration steps.

Each step is an async function taking (scope, database) and raising on
failure. Steps run in declaration order inside the single upgrade
transaction, so a step may rely on the effects of earlier ones.

Steps documented as re-runnable tolerate databases that already received
the change, e.g. from a manual fix applied before this upgrader existed.
"""
import logging
from typing import Callable

import sqlalchemy as sa
from alembic.operations import Operations

from chaindb.database import ChainDatabase
from chaindb.errors import MigrationError
from chaindb.hashing import beacon_block_header_root
from chaindb.migrations import ddl
from chaindb.transaction import TransactionScope, require_active

logger = logging.getLogger(__name__)

HeaderRootFunc = Callable[..., bytes]

# Epoch columns that used -1 to mean "not set"
VALIDATOR_EPOCH_COLUMNS = [
    'f_activation_eligibility_epoch',
    'f_activation_epoch',
    'f_exit_epoch',
    'f_withdrawable_epoch',
]
UNSET_EPOCH = -1

# Highest slot representable in a signed BIGINT column
MAX_SLOT = 0x7fffffffffffffff

AGGREGATION_INDICES_TYPE = sa.ARRAY(sa.BigInteger()).with_variant(sa.JSON(), 'sqlite')


async def validators_epoch_null(scope: TransactionScope, database: ChainDatabase) -> None:
    """Allow epochs in t_validators to be NULL and replace -1 with NULL."""
    require_active(scope)

    # The constraint must go before NULLs can be written
    await ddl.set_nullable(
        scope, 't_validators', VALIDATOR_EPOCH_COLUMNS,
        nullable=True, existing_type=sa.BigInteger(),
    )

    for column in VALIDATOR_EPOCH_COLUMNS:
        await ddl.execute(
            scope,
            f'UPDATE t_validators SET {column} = NULL WHERE {column} = :unset',
            {'unset': UNSET_EPOCH},
        )


async def create_deposits(scope: TransactionScope, database: ChainDatabase) -> None:
    """Create the t_deposits table."""
    require_active(scope)

    def _create(op: Operations) -> None:
        op.create_table(
            't_deposits',
            sa.Column('f_inclusion_slot', sa.BigInteger(), nullable=False),
            sa.Column(
                'f_inclusion_block_root', sa.LargeBinary(),
                sa.ForeignKey('t_blocks.f_root', ondelete='CASCADE'),
                nullable=False,
            ),
            sa.Column('f_inclusion_index', sa.BigInteger(), nullable=False),
            sa.Column('f_validator_pubkey', sa.LargeBinary(), nullable=False),
            sa.Column('f_withdrawal_credentials', sa.LargeBinary(), nullable=False),
            sa.Column('f_amount', sa.BigInteger(), nullable=False),
        )
        op.create_index(
            'i_deposits_1', 't_deposits',
            ['f_inclusion_slot', 'f_inclusion_block_root', 'f_inclusion_index'],
            unique=True,
        )

    await ddl.run_operations(scope, _create)


async def create_chain_spec(scope: TransactionScope, database: ChainDatabase) -> None:
    """Create the t_chain_spec table."""
    require_active(scope)

    await ddl.run_operations(scope, lambda op: op.create_table(
        't_chain_spec',
        sa.Column('f_key', sa.Text(), primary_key=True, nullable=False),
        sa.Column('f_value', sa.Text(), nullable=False),
    ))


async def create_genesis(scope: TransactionScope, database: ChainDatabase) -> None:
    """Create the t_genesis table."""
    require_active(scope)

    await ddl.run_operations(scope, lambda op: op.create_table(
        't_genesis',
        sa.Column('f_validators_root', sa.LargeBinary(), primary_key=True, nullable=False),
        sa.Column('f_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('f_fork_version', sa.LargeBinary(), nullable=False),
    ))


async def add_proposer_slashing_block_roots(
    scope: TransactionScope,
    database: ChainDatabase,
    header_root: HeaderRootFunc = beacon_block_header_root,
) -> None:
    """
    Add calculated block roots to t_proposer_slashings.

    The columns are added nullable, every existing slashing is backfilled
    from its two headers, then the columns are made NOT NULL. A single
    failed calculation fails the step.

    Args:
        scope: Active transaction scope
        database: Database facade for the range read and upsert
        header_root: Pure function computing a block root from header
            fields (slot, proposer_index, parent_root, state_root, body_root)
    """
    require_active(scope)

    def _add_columns(op: Operations) -> None:
        op.add_column('t_proposer_slashings', sa.Column('f_block_1_root', sa.LargeBinary(), nullable=True))
        op.add_column('t_proposer_slashings', sa.Column('f_block_2_root', sa.LargeBinary(), nullable=True))

    await ddl.run_operations(scope, _add_columns)

    # Maximum slot value catches all proposer slashings
    proposer_slashings = await database.proposer_slashings_for_slot_range(0, MAX_SLOT, scope)
    logger.info('Backfilling block roots for %d proposer slashings', len(proposer_slashings))

    for slashing in proposer_slashings:
        try:
            slashing.block_1_root = header_root(
                slot=slashing.header_1_slot,
                proposer_index=slashing.header_1_proposer_index,
                parent_root=slashing.header_1_parent_root,
                state_root=slashing.header_1_state_root,
                body_root=slashing.header_1_body_root,
            )
        except Exception as e:
            raise MigrationError(
                f'Failed to calculate block 1 root for proposer slashing at slot '
                f'{slashing.inclusion_slot} index {slashing.inclusion_index}: {e}'
            ) from e

        try:
            slashing.block_2_root = header_root(
                slot=slashing.header_2_slot,
                proposer_index=slashing.header_2_proposer_index,
                parent_root=slashing.header_2_parent_root,
                state_root=slashing.header_2_state_root,
                body_root=slashing.header_2_body_root,
            )
        except Exception as e:
            raise MigrationError(
                f'Failed to calculate block 2 root for proposer slashing at slot '
                f'{slashing.inclusion_slot} index {slashing.inclusion_index}: {e}'
            ) from e

        await database.set_proposer_slashing(scope, slashing)

    await ddl.set_nullable(
        scope, 't_proposer_slashings', ['f_block_1_root', 'f_block_2_root'],
        nullable=False, existing_type=sa.LargeBinary(),
    )


async def create_eth1_deposits(scope: TransactionScope, database: ChainDatabase) -> None:
    """
    Create the t_eth1_deposits table and its indices.

    Re-runnable: existing table and indices are left alone.
    """
    require_active(scope)

    table = sa.Table(
        't_eth1_deposits',
        sa.MetaData(),
        sa.Column('f_eth1_block_number', sa.BigInteger(), nullable=False),
        sa.Column('f_eth1_block_hash', sa.LargeBinary(), nullable=False),
        sa.Column('f_eth1_block_timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('f_eth1_tx_hash', sa.LargeBinary(), nullable=False),
        sa.Column('f_eth1_log_index', sa.BigInteger(), nullable=False),
        sa.Column('f_eth1_sender', sa.LargeBinary(), nullable=False),
        sa.Column('f_eth1_recipient', sa.LargeBinary(), nullable=False),
        sa.Column('f_eth1_gas_used', sa.BigInteger(), nullable=False),
        sa.Column('f_eth1_gas_price', sa.BigInteger(), nullable=False),
        sa.Column('f_deposit_index', sa.BigInteger(), unique=True, nullable=False),
        sa.Column('f_validator_pubkey', sa.LargeBinary(), nullable=False),
        sa.Column('f_withdrawal_credentials', sa.LargeBinary(), nullable=False),
        sa.Column('f_signature', sa.LargeBinary(), nullable=False),
        sa.Column('f_amount', sa.BigInteger(), nullable=False),
        sa.Index('i_eth1_deposits_1', 'f_eth1_block_hash', 'f_eth1_tx_hash', 'f_eth1_log_index', unique=True),
        sa.Index('i_eth1_deposits_2', 'f_validator_pubkey'),
        sa.Index('i_eth1_deposits_3', 'f_withdrawal_credentials'),
        sa.Index('i_eth1_deposits_4', 'f_eth1_sender'),
        sa.Index('i_eth1_deposits_5', 'f_eth1_recipient'),
    )

    def _create(sync_conn) -> None:
        table.create(sync_conn, checkfirst=True)
        # Table may predate some of its indices
        for index in sorted(table.indexes, key=lambda i: i.name):
            index.create(sync_conn, checkfirst=True)

    await ddl.run_sync(scope, _create)


async def add_attestation_aggregation_indices(scope: TransactionScope, database: ChainDatabase) -> None:
    """
    Add aggregation indices to t_attestations.

    Re-runnable: earlier deployments added the column by hand.
    """
    require_active(scope)

    already_present = await database.column_exists('t_attestations', 'f_aggregation_indices', scope)
    if already_present:
        logger.info('t_attestations.f_aggregation_indices already present, skipping')
        return

    await ddl.run_operations(scope, lambda op: op.add_column(
        't_attestations',
        sa.Column('f_aggregation_indices', AGGREGATION_INDICES_TYPE, nullable=True),
    ))
