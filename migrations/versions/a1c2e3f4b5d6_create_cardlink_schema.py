"""Create identity, loyalty account, link, ledger, sync session and log tables

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-03-01 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c2e3f4b5d6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create the CardLink schema."""
    op.create_table(
        'external_identities',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('external_identity_id', sa.String(255), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('status_message', sa.Text(), nullable=True),
        sa.Column('locale', sa.String(10), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_identity_id')
    )

    op.create_table(
        'loyalty_accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(255), nullable=True),
        sa.Column('last_name', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('balance', sa.Numeric(15, 2), nullable=True),
        sa.Column('credit_limit', sa.Numeric(15, 2), nullable=True),
        sa.Column('tier', sa.String(50), nullable=True),
        sa.Column('points', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username')
    )

    op.create_table(
        'account_links',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('external_identity_id', sa.String(255), nullable=False),
        sa.Column('loyalty_username', sa.String(255), nullable=False),
        sa.Column('link_method', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('linked_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['loyalty_username'], ['loyalty_accounts.username'],
                                name='fk_account_links_account', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_identity_id', 'loyalty_username', name='uq_account_link_pair')
    )
    op.create_index('ix_account_links_external_identity_id', 'account_links', ['external_identity_id'])
    op.create_index('ix_account_links_loyalty_username', 'account_links', ['loyalty_username'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.String(255), nullable=False),
        sa.Column('external_identity_id', sa.String(255), nullable=True),
        sa.Column('loyalty_username', sa.String(255), nullable=True),
        sa.Column('transaction_type', sa.String(50), nullable=False),
        sa.Column('amount', sa.Numeric(15, 2), nullable=True),
        sa.Column('balance_before', sa.Numeric(15, 2), nullable=True),
        sa.Column('balance_after', sa.Numeric(15, 2), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('source', sa.String(100), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_id')
    )
    op.create_index('ix_transactions_external_identity_id', 'transactions', ['external_identity_id'])
    op.create_index('ix_transactions_loyalty_username', 'transactions', ['loyalty_username'])
    op.create_index('ix_transactions_transaction_type', 'transactions', ['transaction_type'])
    op.create_index('ix_transactions_created_at', 'transactions', ['created_at'])

    op.create_table(
        'sync_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sync_id', sa.String(255), nullable=False),
        sa.Column('external_identity_id', sa.String(255), nullable=False),
        sa.Column('status', sa.String(50), nullable=False, server_default='waiting'),
        sa.Column('loyalty_data', sa.JSON(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sync_id')
    )
    op.create_index('ix_sync_sessions_external_identity_id', 'sync_sessions', ['external_identity_id'])
    op.create_index('ix_sync_sessions_status', 'sync_sessions', ['status'])
    op.create_index('ix_sync_sessions_expires_at', 'sync_sessions', ['expires_at'])

    op.create_table(
        'system_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('level', sa.String(20), nullable=True),
        sa.Column('source', sa.String(100), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('user_id', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_system_logs_user_id', 'system_logs', ['user_id'])


def downgrade():
    """Drop the CardLink schema."""
    op.drop_index('ix_system_logs_user_id', 'system_logs')
    op.drop_table('system_logs')

    op.drop_index('ix_sync_sessions_expires_at', 'sync_sessions')
    op.drop_index('ix_sync_sessions_status', 'sync_sessions')
    op.drop_index('ix_sync_sessions_external_identity_id', 'sync_sessions')
    op.drop_table('sync_sessions')

    op.drop_index('ix_transactions_created_at', 'transactions')
    op.drop_index('ix_transactions_transaction_type', 'transactions')
    op.drop_index('ix_transactions_loyalty_username', 'transactions')
    op.drop_index('ix_transactions_external_identity_id', 'transactions')
    op.drop_table('transactions')

    op.drop_index('ix_account_links_loyalty_username', 'account_links')
    op.drop_index('ix_account_links_external_identity_id', 'account_links')
    op.drop_table('account_links')

    op.drop_table('loyalty_accounts')
    op.drop_table('external_identities')
