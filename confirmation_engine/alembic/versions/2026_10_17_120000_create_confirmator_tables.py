"""create_confirmator_tables

Revision ID: 2026_10_17_120000
Revises:
Create Date: 2026-10-17 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '2026_10_17_120000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute('CREATE SCHEMA IF NOT EXISTS confirmator')

    op.create_table(
        'pending_events',
        sa.Column('id', sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column('contract_address', sa.Text(), nullable=False),
        sa.Column('transaction_hash', sa.Text(), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('block_hash', sa.Text(), nullable=False),
        sa.Column('event', sa.Text(), nullable=False),
        sa.Column('content', postgresql.JSONB(), nullable=False),
        sa.Column('target_confirmation', sa.Integer(), nullable=False),
        sa.Column('emitted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id'),
        schema='confirmator',
    )
    op.create_index(
        'ix_pending_events_contract_address',
        'pending_events',
        ['contract_address'],
        schema='confirmator',
    )
    op.create_index(
        'ix_pending_events_tx_event',
        'pending_events',
        ['transaction_hash', 'event'],
        schema='confirmator',
    )

    op.create_table(
        'block_trackers',
        sa.Column('namespace', sa.Text(), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('block_hash', sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint('namespace'),
        schema='confirmator',
    )


def downgrade() -> None:
    op.drop_table('block_trackers', schema='confirmator')
    op.drop_index('ix_pending_events_tx_event', table_name='pending_events', schema='confirmator')
    op.drop_index('ix_pending_events_contract_address', table_name='pending_events', schema='confirmator')
    op.drop_table('pending_events', schema='confirmator')
