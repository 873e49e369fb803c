"""Initial attendance schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

Tags: schema, initial
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create users, daily_codes, entry_exit_records and ip_address_logs.
    Tables that already exist are left alone.
    """
    connection = op.get_bind()
    existing_tables = set(sa.inspect(connection).get_table_names())

    if 'users' not in existing_tables:
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=255), nullable=True),
            sa.Column('mobile', sa.String(length=20), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('assigned_ip_addresses', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
        op.create_index(op.f('ix_users_mobile'), 'users', ['mobile'], unique=True)

    if 'daily_codes' not in existing_tables:
        op.create_table(
            'daily_codes',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('code_value', sa.String(length=64), nullable=False),
            sa.Column('valid_date', sa.Date(), nullable=False),
            sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'valid_date', name='uq_daily_codes_user_date'),
            sa.CheckConstraint('usage_count >= 0 AND usage_count <= 2', name='ck_daily_codes_usage_bounds'),
        )
        op.create_index(op.f('ix_daily_codes_id'), 'daily_codes', ['id'], unique=False)
        op.create_index(op.f('ix_daily_codes_user_id'), 'daily_codes', ['user_id'], unique=False)
        op.create_index(op.f('ix_daily_codes_code_value'), 'daily_codes', ['code_value'], unique=True)

    if 'entry_exit_records' not in existing_tables:
        op.create_table(
            'entry_exit_records',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('kind', sa.String(length=10), nullable=False),
            sa.Column('event_timestamp', sa.DateTime(timezone=True), nullable=False),
            sa.Column('latitude', sa.Float(), nullable=True),
            sa.Column('longitude', sa.Float(), nullable=True),
            sa.Column('daily_code_value', sa.String(length=64), nullable=False),
            sa.Column('ip_address', sa.String(length=45), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(op.f('ix_entry_exit_records_id'), 'entry_exit_records', ['id'], unique=False)
        op.create_index(op.f('ix_entry_exit_records_user_id'), 'entry_exit_records', ['user_id'], unique=False)
        op.create_index(
            op.f('ix_entry_exit_records_daily_code_value'), 'entry_exit_records', ['daily_code_value'], unique=False
        )
        op.create_index('idx_entry_exit_user_event', 'entry_exit_records', ['user_id', 'event_timestamp'], unique=False)

    if 'ip_address_logs' not in existing_tables:
        op.create_table(
            'ip_address_logs',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=True),
            sa.Column('ip_address', sa.String(length=45), nullable=True),
            sa.Column('action', sa.String(length=20), nullable=False),
            sa.Column('admin_user_id', sa.Integer(), nullable=True),
            sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
            sa.Column('details', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(op.f('ix_ip_address_logs_id'), 'ip_address_logs', ['id'], unique=False)
        op.create_index(op.f('ix_ip_address_logs_user_id'), 'ip_address_logs', ['user_id'], unique=False)
        op.create_index(op.f('ix_ip_address_logs_action'), 'ip_address_logs', ['action'], unique=False)
        op.create_index(op.f('ix_ip_address_logs_admin_user_id'), 'ip_address_logs', ['admin_user_id'], unique=False)
        op.create_index('idx_ip_address_logs_timestamp', 'ip_address_logs', ['timestamp'], unique=False)


def downgrade() -> None:
    op.drop_table('ip_address_logs')
    op.drop_table('entry_exit_records')
    op.drop_table('daily_codes')
    op.drop_table('users')
