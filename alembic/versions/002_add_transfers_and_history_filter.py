"""Add direct transfers and history filter preference

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE TYPE payment_request_type AS ENUM ('request', 'transfer')")
    op.execute("CREATE TYPE history_filter AS ENUM ('all', 'contacts-only', 'external-only')")

    # Transfers are recorded as already-paid rows next to requests
    op.add_column(
        'payment_requests',
        sa.Column('type', postgresql.ENUM('request', 'transfer', name='payment_request_type', create_type=False), nullable=False, server_default='request'),
    )
    op.add_column(
        'profiles',
        sa.Column('history_filter_default', postgresql.ENUM('all', 'contacts-only', 'external-only', name='history_filter', create_type=False), nullable=False, server_default='all'),
    )


def downgrade() -> None:
    op.drop_column('profiles', 'history_filter_default')
    op.drop_column('payment_requests', 'type')
    op.execute("DROP TYPE IF EXISTS history_filter")
    op.execute("DROP TYPE IF EXISTS payment_request_type")
