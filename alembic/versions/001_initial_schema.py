"""Initial schema: accounts, ledger entries, allocations, deposits, withdrawals

Revision ID: 001_initial_schema
Revises:
Create Date: 2025-01-01

Money columns are BIGINT minor units (cents), see src.database.models.Money.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('account_type', sa.Enum('user', 'admin', name='account_type'), nullable=False),
        sa.Column('balance', sa.BigInteger(), nullable=False),
        sa.Column('initial_balance', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('balance >= 0', name='ck_account_balance_non_negative'),
    )
    op.create_index('ix_accounts_email', 'accounts', ['email'], unique=True)

    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('account_id', sa.Integer(), sa.ForeignKey('accounts.id'), nullable=False),
        sa.Column('kind', sa.Enum('debit', 'credit', name='ledger_entry_kind'), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('balance_after', sa.BigInteger(), nullable=False),
        sa.Column('reason', sa.String(50), nullable=False),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_ledger_amount_positive'),
    )
    op.create_index('ix_ledger_entries_account_id', 'ledger_entries', ['account_id'])
    op.create_index('idx_ledger_account_created', 'ledger_entries', ['account_id', 'created_at'])

    op.create_table(
        'allocations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('account_id', sa.Integer(), sa.ForeignKey('accounts.id'), nullable=False),
        sa.Column('coin_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column(
            'status',
            sa.Enum('active', 'closed', 'cancelled', name='allocation_status'),
            nullable=False
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('amount > 0', name='ck_allocation_amount_positive'),
    )
    op.create_index('ix_allocations_account_id', 'allocations', ['account_id'])
    op.create_index('ix_allocations_coin_id', 'allocations', ['coin_id'])
    op.create_index('ix_allocations_status', 'allocations', ['status'])
    op.create_index('idx_allocation_status_expires', 'allocations', ['status', 'expires_at'])

    op.create_table(
        'deposits',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('account_id', sa.Integer(), sa.ForeignKey('accounts.id'), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('network', sa.String(20), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_deposit_amount_positive'),
    )
    op.create_index('ix_deposits_account_id', 'deposits', ['account_id'])
    op.create_index('ix_deposits_created_at', 'deposits', ['created_at'])

    op.create_table(
        'withdrawals',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('account_id', sa.Integer(), sa.ForeignKey('accounts.id'), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False),
        sa.Column('network', sa.String(20), nullable=False),
        sa.Column('address', sa.String(255), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column(
            'status',
            sa.Enum('pending', 'completed', 'rejected', name='withdrawal_status'),
            nullable=False
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('amount > 0', name='ck_withdrawal_amount_positive'),
    )
    op.create_index('ix_withdrawals_account_id', 'withdrawals', ['account_id'])
    op.create_index('ix_withdrawals_status', 'withdrawals', ['status'])
    op.create_index('ix_withdrawals_created_at', 'withdrawals', ['created_at'])


def downgrade() -> None:
    op.drop_table('withdrawals')
    op.drop_table('deposits')
    op.drop_table('allocations')
    op.drop_table('ledger_entries')
    op.drop_table('accounts')

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for enum_name in ('withdrawal_status', 'allocation_status', 'ledger_entry_kind', 'account_type'):
            op.execute(f"DROP TYPE IF EXISTS {enum_name}")
