"""Initial schema: users, access stores, audit feed, portfolio, local identity

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18

This migration adds:
1. users (role store)
2. user_permissions and user_grants (global permissions, point grants)
3. audit_log
4. exchanges, stocks, trades, dividends
5. identity_accounts and identity_sessions (bundled local identity provider)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. USERS
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('must_change_password', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('first_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_email'), ['email'], unique=True)
        batch_op.create_index('ix_users_active_admin', ['is_active', 'is_admin'], unique=False)

    # ==========================================================================
    # 2. GLOBAL PERMISSIONS / GRANTS
    # ==========================================================================
    op.create_table('user_permissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('can_view_all', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('can_edit_all', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('can_edit_dictionaries', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('user_permissions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_user_permissions_user_id'), ['user_id'], unique=True)

    op.create_table('user_grants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('resource', sa.String(length=32), nullable=False),
        sa.Column('owner_id', sa.String(length=64), nullable=True),
        sa.Column('grantee_id', sa.String(length=64), nullable=False),
        sa.Column('mode', sa.String(length=8), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['grantee_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('resource', 'owner_id', 'grantee_id', 'mode', name='uq_user_grants_tuple')
    )
    with op.batch_alter_table('user_grants', schema=None) as batch_op:
        batch_op.create_index('ix_user_grants_grantee', ['grantee_id'], unique=False)
        batch_op.create_index('ix_user_grants_owner', ['owner_id'], unique=False)
        batch_op.create_index(
            'uq_user_grants_ownerless', ['resource', 'grantee_id', 'mode'], unique=True,
            sqlite_where=sa.text('owner_id IS NULL'), postgresql_where=sa.text('owner_id IS NULL'),
        )

    # ==========================================================================
    # 3. AUDIT LOG
    # ==========================================================================
    op.create_table('audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('table_name', sa.String(length=64), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=True),
        sa.Column('target_user_id', sa.String(length=64), nullable=True),
        sa.Column('ticker', sa.String(length=32), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('audit_log', schema=None) as batch_op:
        batch_op.create_index('ix_audit_log_occurred', ['occurred_at'], unique=False)
        batch_op.create_index('ix_audit_log_actor', ['actor_id'], unique=False)
        batch_op.create_index('ix_audit_log_target', ['target_user_id'], unique=False)

    # ==========================================================================
    # 4. PORTFOLIO
    # ==========================================================================
    op.create_table('exchanges',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('currency', sa.String(length=8), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('exchanges', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_exchanges_code'), ['code'], unique=True)

    op.create_table('stocks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ticker', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('isin', sa.String(length=12), nullable=True),
        sa.Column('sector', sa.String(length=128), nullable=True),
        sa.Column('exchange_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['exchange_id'], ['exchanges.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('stocks', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stocks_ticker'), ['ticker'], unique=True)
        batch_op.create_index(batch_op.f('ix_stocks_exchange_id'), ['exchange_id'], unique=False)

    op.create_table('trades',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('stock_id', sa.Integer(), nullable=False),
        sa.Column('trade_type', sa.String(length=4), nullable=False),
        sa.Column('trade_date', sa.Date(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_per_share', sa.Numeric(precision=18, scale=6), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=18, scale=6), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_trades_quantity_positive'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['stock_id'], ['stocks.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('trades', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_trades_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_trades_stock_id'), ['stock_id'], unique=False)
        batch_op.create_index('ix_trades_user_date', ['user_id', 'trade_date'], unique=False)

    op.create_table('dividends',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('stock_id', sa.Integer(), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('amount_per_share', sa.Numeric(precision=18, scale=6), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=18, scale=6), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_dividends_quantity_positive'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['stock_id'], ['stocks.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('dividends', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_dividends_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_dividends_stock_id'), ['stock_id'], unique=False)
        batch_op.create_index('ix_dividends_user_date', ['user_id', 'payment_date'], unique=False)

    # ==========================================================================
    # 5. LOCAL IDENTITY PROVIDER
    # ==========================================================================
    op.create_table('identity_accounts',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('password_changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('identity_accounts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_identity_accounts_email'), ['email'], unique=True)

    op.create_table('identity_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.String(length=64), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['account_id'], ['identity_accounts.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('identity_sessions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_identity_sessions_account_id'), ['account_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_identity_sessions_token_hash'), ['token_hash'], unique=True)
        batch_op.create_index(batch_op.f('ix_identity_sessions_expires_at'), ['expires_at'], unique=False)
        batch_op.create_index('ix_identity_sessions_account_active', ['account_id', 'is_revoked'], unique=False)


def downgrade():
    op.drop_table('identity_sessions')
    op.drop_table('identity_accounts')
    op.drop_table('dividends')
    op.drop_table('trades')
    op.drop_table('stocks')
    op.drop_table('exchanges')
    op.drop_table('audit_log')
    op.drop_table('user_grants')
    op.drop_table('user_permissions')
    op.drop_table('users')
