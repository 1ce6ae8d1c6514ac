"""Initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create profiles table
    op.create_table(
        'profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('wallet_address', sa.String(42), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('last_seen_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('wallet_address = lower(wallet_address)', name='profiles_wallet_lowercase'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_profiles_wallet_address'), 'profiles', ['wallet_address'], unique=True)

    # Create contacts table
    op.create_table(
        'contacts',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('contact_wallet_address', sa.String(42), nullable=False),
        sa.Column('label', sa.String(255), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['owner_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.CheckConstraint('contact_wallet_address = lower(contact_wallet_address)', name='contacts_wallet_lowercase'),
        sa.UniqueConstraint('owner_id', 'contact_wallet_address', name='contacts_owner_contact_unique'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_contacts_owner_id'), 'contacts', ['owner_id'], unique=False)

    # Create enum types using raw SQL to avoid duplication issues
    op.execute("CREATE TYPE payment_request_status AS ENUM ('pending', 'paid', 'cancelled', 'rejected', 'expired')")

    # Create payment_requests table
    op.create_table(
        'payment_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('requester_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('payer_wallet_address', sa.String(42), nullable=False),
        sa.Column('token_address', sa.String(42), nullable=False, server_default='0x833589fcd6edb6e08f4c7c32d4f71b54bda02913'),
        sa.Column('chain_id', sa.Integer(), nullable=False, server_default='8453'),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('memo', sa.Text(), nullable=True),
        sa.Column('status', postgresql.ENUM('pending', 'paid', 'cancelled', 'rejected', 'expired', name='payment_request_status', create_type=False), nullable=False, server_default='pending'),
        sa.Column('tx_hash', sa.String(66), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['requester_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.CheckConstraint('amount > 0', name='payment_requests_amount_positive'),
        sa.CheckConstraint('payer_wallet_address = lower(payer_wallet_address)', name='payment_requests_payer_lowercase'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_payment_requests_requester_id'), 'payment_requests', ['requester_id'], unique=False)
    op.create_index(op.f('ix_payment_requests_payer_wallet_address'), 'payment_requests', ['payer_wallet_address'], unique=False)
    op.create_index(op.f('ix_payment_requests_status'), 'payment_requests', ['status'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_payment_requests_status'), table_name='payment_requests')
    op.drop_index(op.f('ix_payment_requests_payer_wallet_address'), table_name='payment_requests')
    op.drop_index(op.f('ix_payment_requests_requester_id'), table_name='payment_requests')
    op.drop_table('payment_requests')
    op.drop_index(op.f('ix_contacts_owner_id'), table_name='contacts')
    op.drop_table('contacts')
    op.drop_index(op.f('ix_profiles_wallet_address'), table_name='profiles')
    op.drop_table('profiles')

    op.execute("DROP TYPE IF EXISTS payment_request_status")
