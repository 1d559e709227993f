"""
Initial schema: users, accounts, transactions, budgets, budget periods, recurring series

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
    ]


def upgrade() -> None:
    # Enums persist member names; on SQLite they become CHECK-constrained TEXT
    user_role = sa.Enum('MEMBER', 'ADMIN', 'SUPERADMIN', name='user_role')
    txn_type = sa.Enum('INCOME', 'EXPENSE', 'TRANSFER', name='txn_type')
    budget_type = sa.Enum('MONTHLY', 'ANNUALLY', name='budget_type')
    recurring_frequency = sa.Enum('ONCE', 'WEEKLY', 'BIWEEKLY', 'MONTHLY', 'YEARLY', name='recurring_frequency')
    bind = op.get_bind()
    for enum in (user_role, txn_type, budget_type, recurring_frequency):
        enum.create(bind, checkfirst=True)

    op.create_table(
        'group',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('auth_subject', sa.String(length=255), nullable=True, unique=True),
        sa.Column('email', sa.String(length=320), nullable=False, unique=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('role', user_role, nullable=False, server_default='MEMBER'),
        sa.Column('group_id', sa.Integer(), sa.ForeignKey('group.id', ondelete='SET NULL'), nullable=True),
        sa.Column('budget_start_day', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            'budget_start_day IS NULL OR (budget_start_day BETWEEN 1 AND 28)',
            name='ck_user_budget_start_day',
        ),
    )

    op.create_table(
        'account',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('balance', sa.Numeric(18, 4), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='EUR'),
        *_timestamps(),
    )

    op.create_table(
        'accountowner',
        sa.Column('account_id', sa.Integer(), sa.ForeignKey('account.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'category',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('key', sa.String(length=100), nullable=False, unique=True),
        sa.Column('label', sa.String(length=100), nullable=False),
        sa.Column('color', sa.String(length=9), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'recurringseries',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('account_id', sa.Integer(), sa.ForeignKey('account.id'), nullable=False),
        sa.Column('type', txn_type, nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=200), nullable=False),
        sa.Column('amount', sa.Numeric(18, 4), nullable=False),
        sa.Column('frequency', recurring_frequency, nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        *_timestamps(),
        sa.CheckConstraint('amount > 0', name='ck_recurring_amount_positive'),
        sa.CheckConstraint('end_date IS NULL OR end_date >= start_date', name='ck_recurring_end_after_start'),
    )

    op.create_table(
        'transaction',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('account_id', sa.Integer(), sa.ForeignKey('account.id'), nullable=False),
        sa.Column('to_account_id', sa.Integer(), sa.ForeignKey('account.id'), nullable=True),
        sa.Column('type', txn_type, nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('amount', sa.Numeric(18, 4), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column(
            'recurring_series_id',
            sa.Integer(),
            sa.ForeignKey('recurringseries.id', ondelete='SET NULL'),
            nullable=True,
        ),
        *_timestamps(),
        sa.CheckConstraint('amount > 0', name='ck_txn_amount_positive'),
        sa.CheckConstraint(
            "(type = 'TRANSFER' AND to_account_id IS NOT NULL AND to_account_id != account_id)"
            " OR (type != 'TRANSFER' AND to_account_id IS NULL)",
            name='ck_txn_transfer_rules',
        ),
    )
    op.create_index('ix_txn_user_date', 'transaction', ['user_id', 'date'])

    op.create_table(
        'budget',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('description', sa.String(length=200), nullable=False),
        sa.Column('amount', sa.Numeric(18, 4), nullable=False),
        sa.Column('type', budget_type, nullable=False, server_default='MONTHLY'),
        sa.Column('categories', sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        *_timestamps(),
        sa.CheckConstraint('amount > 0', name='ck_budget_amount_positive'),
    )

    op.create_table(
        'budgetperiod',
        sa.Column('id', sa.String(length=36), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('total_saved', sa.Numeric(18, 4), nullable=False, server_default='0'),
        sa.Column('total_spent', sa.Numeric(18, 4), nullable=False, server_default='0'),
        sa.Column('category_spending', sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        *_timestamps(),
        sa.CheckConstraint('end_date IS NULL OR end_date >= start_date', name='ck_period_end_after_start'),
    )
    # At most one open period per user
    op.create_index(
        'uq_budget_period_open',
        'budgetperiod',
        ['user_id'],
        unique=True,
        sqlite_where=sa.text('end_date IS NULL'),
        postgresql_where=sa.text('end_date IS NULL'),
    )


def downgrade() -> None:
    op.drop_index('uq_budget_period_open', table_name='budgetperiod')
    op.drop_table('budgetperiod')
    op.drop_table('budget')
    op.drop_index('ix_txn_user_date', table_name='transaction')
    op.drop_table('transaction')
    op.drop_table('recurringseries')
    op.drop_table('category')
    op.drop_table('accountowner')
    op.drop_table('account')
    op.drop_table('user')
    op.drop_table('group')
    bind = op.get_bind()
    for name in ('recurring_frequency', 'budget_type', 'txn_type', 'user_role'):
        sa.Enum(name=name).drop(bind, checkfirst=True)
