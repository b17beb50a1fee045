#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SQLAlchemy ORM Models for the chain database
============================================

Defines the tables the schema upgrader reads and writes directly, using
SQLAlchemy 2.0 ORM with type hints. Tables created by migration steps are
declared inside the steps themselves so their shape stays frozen at the
version that introduced them.

Models:
- MetadataEntry: Generic key/value metadata (schema version lives here)
- ProposerSlashing: Proposer slashings, including derived block roots

Records:
- ProposerSlashingRecord: Plain value passed between the data-access
  layer and migration steps

Usage:
    from chaindb.models import MetadataEntry

    async with AsyncSession(engine) as session:
        result = await session.execute(
            select(MetadataEntry).where(MetadataEntry.key == 'schema')
        )
        entry = result.scalar_one_or_none()
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import BigInteger, Index, LargeBinary, Text
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# ============================================================================
# Base Class
# ============================================================================


class Base(AsyncAttrs, DeclarativeBase):
    """
    Base class for all ORM models.

    Provides AsyncAttrs so lazy attributes can be awaited.
    """
    pass


# ============================================================================
# Metadata
# ============================================================================

class MetadataEntry(Base):
    """
    Key/value metadata shared by several subsystems.

    Each subsystem owns its own keys. Values are JSON documents stored
    as text and treated as opaque bytes by the storage layer.
    """
    __tablename__ = 't_metadata'

    key: Mapped[str] = mapped_column(
        'f_key',
        Text,
        primary_key=True,
        nullable=False,
        comment="Metadata key (e.g., 'schema')"
    )

    value_json: Mapped[str] = mapped_column(
        'f_value',
        Text,
        nullable=False,
        comment="JSON document"
    )

    def __repr__(self) -> str:
        return f"<MetadataEntry(key={self.key})>"


# ============================================================================
# Proposer Slashings
# ============================================================================

class ProposerSlashing(Base):
    """
    A proposer slashing included in a block.

    Identity is (inclusion slot, inclusion block root, inclusion index).
    The block roots are derived from the two signed headers and were
    added by schema version 1.
    """
    __tablename__ = 't_proposer_slashings'

    inclusion_slot: Mapped[int] = mapped_column('f_inclusion_slot', BigInteger, primary_key=True)
    inclusion_block_root: Mapped[bytes] = mapped_column('f_inclusion_block_root', LargeBinary, primary_key=True)
    inclusion_index: Mapped[int] = mapped_column('f_inclusion_index', BigInteger, primary_key=True)

    block_1_root: Mapped[Optional[bytes]] = mapped_column('f_block_1_root', LargeBinary, nullable=True)
    header_1_slot: Mapped[int] = mapped_column('f_header_1_slot', BigInteger, nullable=False)
    header_1_proposer_index: Mapped[int] = mapped_column('f_header_1_proposer_index', BigInteger, nullable=False)
    header_1_parent_root: Mapped[bytes] = mapped_column('f_header_1_parent_root', LargeBinary, nullable=False)
    header_1_state_root: Mapped[bytes] = mapped_column('f_header_1_state_root', LargeBinary, nullable=False)
    header_1_body_root: Mapped[bytes] = mapped_column('f_header_1_body_root', LargeBinary, nullable=False)
    header_1_signature: Mapped[bytes] = mapped_column('f_header_1_signature', LargeBinary, nullable=False)

    block_2_root: Mapped[Optional[bytes]] = mapped_column('f_block_2_root', LargeBinary, nullable=True)
    header_2_slot: Mapped[int] = mapped_column('f_header_2_slot', BigInteger, nullable=False)
    header_2_proposer_index: Mapped[int] = mapped_column('f_header_2_proposer_index', BigInteger, nullable=False)
    header_2_parent_root: Mapped[bytes] = mapped_column('f_header_2_parent_root', LargeBinary, nullable=False)
    header_2_state_root: Mapped[bytes] = mapped_column('f_header_2_state_root', LargeBinary, nullable=False)
    header_2_body_root: Mapped[bytes] = mapped_column('f_header_2_body_root', LargeBinary, nullable=False)
    header_2_signature: Mapped[bytes] = mapped_column('f_header_2_signature', LargeBinary, nullable=False)

    __table_args__ = (
        Index(
            'i_proposer_slashings_1',
            'f_inclusion_slot', 'f_inclusion_block_root', 'f_inclusion_index',
            unique=True,
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ProposerSlashing(slot={self.inclusion_slot}, "
            f"index={self.inclusion_index})>"
        )


@dataclass
class ProposerSlashingRecord:
    """A proposer slashing row as seen by migration steps."""

    inclusion_slot: int
    inclusion_block_root: bytes
    inclusion_index: int
    header_1_slot: int
    header_1_proposer_index: int
    header_1_parent_root: bytes
    header_1_state_root: bytes
    header_1_body_root: bytes
    header_1_signature: bytes
    header_2_slot: int
    header_2_proposer_index: int
    header_2_parent_root: bytes
    header_2_state_root: bytes
    header_2_body_root: bytes
    header_2_signature: bytes
    block_1_root: Optional[bytes] = None
    block_2_root: Optional[bytes] = None

    def to_row(self) -> dict:
        """Column-keyed values for a Core insert into t_proposer_slashings."""
        return {
            'f_inclusion_slot': self.inclusion_slot,
            'f_inclusion_block_root': self.inclusion_block_root,
            'f_inclusion_index': self.inclusion_index,
            'f_block_1_root': self.block_1_root,
            'f_header_1_slot': self.header_1_slot,
            'f_header_1_proposer_index': self.header_1_proposer_index,
            'f_header_1_parent_root': self.header_1_parent_root,
            'f_header_1_state_root': self.header_1_state_root,
            'f_header_1_body_root': self.header_1_body_root,
            'f_header_1_signature': self.header_1_signature,
            'f_block_2_root': self.block_2_root,
            'f_header_2_slot': self.header_2_slot,
            'f_header_2_proposer_index': self.header_2_proposer_index,
            'f_header_2_parent_root': self.header_2_parent_root,
            'f_header_2_state_root': self.header_2_state_root,
            'f_header_2_body_root': self.header_2_body_root,
            'f_header_2_signature': self.header_2_signature,
        }

    @classmethod
    def from_row(cls, row) -> 'ProposerSlashingRecord':
        """Build a record from a row mapping keyed by column name."""
        return cls(
            inclusion_slot=row['f_inclusion_slot'],
            inclusion_block_root=row['f_inclusion_block_root'],
            inclusion_index=row['f_inclusion_index'],
            header_1_slot=row['f_header_1_slot'],
            header_1_proposer_index=row['f_header_1_proposer_index'],
            header_1_parent_root=row['f_header_1_parent_root'],
            header_1_state_root=row['f_header_1_state_root'],
            header_1_body_root=row['f_header_1_body_root'],
            header_1_signature=row['f_header_1_signature'],
            header_2_slot=row['f_header_2_slot'],
            header_2_proposer_index=row['f_header_2_proposer_index'],
            header_2_parent_root=row['f_header_2_parent_root'],
            header_2_state_root=row['f_header_2_state_root'],
            header_2_body_root=row['f_header_2_body_root'],
            header_2_signature=row['f_header_2_signature'],
            block_1_root=row.get('f_block_1_root'),
            block_2_root=row.get('f_block_2_root'),
        )
