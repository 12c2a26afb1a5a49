"""
Add append-only contract_events audit table.

Revision ID: 0002_contract_events
Revises: 0001_booking_workflow_tables
Create Date: 2026-10-16
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from typing import Union

# revision identifiers, used by Alembic.
revision: str = '0002_contract_events'
down_revision: Union[str, None] = '0001_booking_workflow_tables'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'contract_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('contract_id', sa.Integer(), sa.ForeignKey('contracts.id'), nullable=False),
        sa.Column('action', sa.String(length=32), nullable=False),
        sa.Column('actor_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('party', sa.String(length=16), nullable=True),
        sa.Column('at', sa.DateTime(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
    )
    op.create_index('ix_contract_events_id', 'contract_events', ['id'])
    op.create_index('ix_contract_events_contract_id', 'contract_events', ['contract_id'])


def downgrade() -> None:
    op.drop_index('ix_contract_events_contract_id', table_name='contract_events')
    op.drop_index('ix_contract_events_id', table_name='contract_events')
    op.drop_table('contract_events')
