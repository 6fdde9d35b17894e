"""initial back office schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete back office schema:
- users / session_tokens: accounts and server-side sessions
- cities, workers, orders, order_documents: service desk
- leaflets, distributors, distributor_documents, leaflet_orders: leaflet distribution
- goals, logs: dashboard targets and the append-only audit log
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade():
    # ============================================================================
    # users / session_tokens
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('visibility', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('is_valid', sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_is_valid', 'session_tokens', ['is_valid'])
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_user_valid', 'session_tokens', ['user_id', 'is_valid'])

    # ============================================================================
    # cities / leaflets / workers / distributors
    # ============================================================================
    op.create_table(
        'cities',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'leaflets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _created_at(),
        sa.CheckConstraint('value >= 0', name='ck_leaflets_value_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'workers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('telegram_username', sa.String(length=64), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'distributors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('telegram', sa.String(length=64), nullable=True),
        sa.Column('invited_by', sa.String(length=255), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'distributor_documents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('distributor_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('url', sa.String(length=512), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['distributor_id'], ['distributors.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_distributor_documents_distributor_id', 'distributor_documents', ['distributor_id'])

    # ============================================================================
    # leaflet_orders: stock leaves leaflets.value on create, returns on completion
    # ============================================================================
    op.create_table(
        'leaflet_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('profit_type', sa.String(length=8), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('square_number', sa.String(length=64), nullable=True),
        sa.Column('state', sa.String(length=16), nullable=False, server_default='IN_PROCESS'),
        sa.Column('given', sa.Integer(), nullable=True),
        sa.Column('returned', sa.Integer(), nullable=True),
        sa.Column('distributor_profit', sa.Float(), nullable=False, server_default='0'),
        sa.Column('payment_photo', sa.String(length=512), nullable=True),
        sa.Column('city_id', sa.Integer(), nullable=False),
        sa.Column('leaflet_id', sa.Integer(), nullable=False),
        sa.Column('distributor_id', sa.Integer(), nullable=False),
        _created_at(),
        sa.Column('done_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['city_id'], ['cities.id']),
        sa.ForeignKeyConstraint(['leaflet_id'], ['leaflets.id']),
        sa.ForeignKeyConstraint(['distributor_id'], ['distributors.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_leaflet_orders_state', 'leaflet_orders', ['state'])
    op.create_index('ix_leaflet_orders_city_id', 'leaflet_orders', ['city_id'])
    op.create_index('ix_leaflet_orders_leaflet_id', 'leaflet_orders', ['leaflet_id'])
    op.create_index('ix_leaflet_orders_distributor_id', 'leaflet_orders', ['distributor_id'])
    op.create_index('ix_leaflet_orders_state_done_at', 'leaflet_orders', ['state', 'done_at'])

    # ============================================================================
    # orders / order_documents
    # ============================================================================
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('address', sa.String(length=512), nullable=False),
        sa.Column('problem', sa.Text(), nullable=True),
        sa.Column('city_id', sa.Integer(), nullable=False),
        sa.Column('leaflet_id', sa.Integer(), nullable=True),
        sa.Column('master_id', sa.Integer(), nullable=True),
        sa.Column('arrive_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('visit_type', sa.String(length=16), nullable=False, server_default='FIRST'),
        sa.Column('call_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_professional', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('equipment_type', sa.String(length=64), nullable=True),
        sa.Column('payment_type', sa.String(length=32), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('received', sa.Integer(), nullable=True),
        sa.Column('outlay', sa.Integer(), nullable=True),
        sa.Column('received_worker', sa.Integer(), nullable=True),
        sa.Column('time_changed_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_notified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('date_created', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('date_done', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['city_id'], ['cities.id']),
        sa.ForeignKeyConstraint(['leaflet_id'], ['leaflets.id']),
        sa.ForeignKeyConstraint(['master_id'], ['workers.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_orders_city_id', 'orders', ['city_id'])
    op.create_index('ix_orders_leaflet_id', 'orders', ['leaflet_id'])
    op.create_index('ix_orders_master_id', 'orders', ['master_id'])
    op.create_index('ix_orders_arrive_date', 'orders', ['arrive_date'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_status_date_done', 'orders', ['status', 'date_done'])
    op.create_index('ix_orders_notify', 'orders', ['is_notified', 'arrive_date'])

    op.create_table(
        'order_documents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('url', sa.String(length=512), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_order_documents_order_id', 'order_documents', ['order_id'])

    # ============================================================================
    # goals / logs
    # ============================================================================
    op.create_table(
        'goals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('all', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('month', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('day', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('who_did', sa.String(length=255), nullable=False),
        sa.Column('what_happened', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=True),
        sa.Column('payload', sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_logs_type', 'logs', ['type'])
    op.create_index('ix_logs_event_type', 'logs', ['event_type'])
    op.create_index('ix_logs_created_at', 'logs', ['created_at'])
    op.create_index('ix_logs_type_created', 'logs', ['type', 'created_at'])


def downgrade():
    op.drop_table('logs')
    op.drop_table('goals')
    op.drop_table('order_documents')
    op.drop_table('orders')
    op.drop_table('leaflet_orders')
    op.drop_table('distributor_documents')
    op.drop_table('distributors')
    op.drop_table('workers')
    op.drop_table('leaflets')
    op.drop_table('cities')
    op.drop_table('session_tokens')
    op.drop_table('users')
