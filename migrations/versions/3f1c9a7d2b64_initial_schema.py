"""initial schema: users, connections, shared records

Revision ID: 3f1c9a7d2b64
Revises:
Create Date: 2026-02-11 10:24:31.418202

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '3f1c9a7d2b64'
down_revision = None
branch_labels = None
depends_on = None


def _shared_columns():
    return [
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
    ]


def _reminder_columns(remind_default):
    return [
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('remind_enabled', sa.Boolean(), nullable=False, server_default=remind_default),
        sa.Column('day_before_reminded_at', sa.DateTime(), nullable=True),
        sa.Column('day_of_reminded_at', sa.DateTime(), nullable=True),
    ]


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('email', sa.String(length=128), nullable=False, unique=True),
        sa.Column('name', sa.String(length=64), nullable=True),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
        sa.Column('discord_webhook_url', sa.String(length=512), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'connections',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id1', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('user_id2', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('user_id1', 'user_id2', name='uix_connection_pair'),
        sa.CheckConstraint('user_id1 < user_id2', name='ck_connection_canonical_order'),
    )

    # user_id 作主键：一个账户只能属于一条连接
    op.create_table(
        'connection_members',
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('connection_id', sa.Integer(),
                  sa.ForeignKey('connections.id', ondelete='CASCADE'), nullable=False),
    )
    op.create_index('ix_connection_members_connection_id', 'connection_members', ['connection_id'])

    op.create_table(
        'connection_requests',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('from_user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('to_user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('from_user_id', 'to_user_id', name='uix_request_from_to'),
    )
    op.create_index('ix_connection_requests_from_user_id', 'connection_requests', ['from_user_id'])
    op.create_index('ix_connection_requests_to_user_id', 'connection_requests', ['to_user_id'])

    op.create_table(
        'wedding_preps',
        *_shared_columns(),
        *_reminder_columns(sa.false()),
        sa.Column('updated_by_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('category', sa.String(length=64), nullable=False),
        sa.Column('sub_category', sa.String(length=64), nullable=True),
        sa.Column('content', sa.String(length=500), nullable=False),
        sa.Column('amount', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'travel_schedules',
        *_shared_columns(),
        *_reminder_columns(sa.true()),
        sa.Column('updated_by_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
    )

    op.create_table(
        'real_estates',
        *_shared_columns(),
        sa.Column('category', sa.String(length=32), nullable=False),
        sa.Column('region', sa.String(length=128), nullable=False),
        sa.Column('rooms', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bathrooms', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('price', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('preference', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('images', sa.JSON(), nullable=True),
        sa.Column('url', sa.String(length=512), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
    )

    for table in ('wedding_preps', 'travel_schedules', 'real_estates'):
        op.create_index(f'ix_{table}_user_id', table, ['user_id'])
        op.create_index(f'ix_{table}_updated_at', table, ['updated_at'])
    for table in ('wedding_preps', 'travel_schedules'):
        op.create_index(f'ix_{table}_due_date', table, ['due_date'])
    op.create_index('ix_wedding_preps_category', 'wedding_preps', ['category'])
    op.create_index('ix_real_estates_category', 'real_estates', ['category'])


def downgrade():
    op.drop_table('real_estates')
    op.drop_table('travel_schedules')
    op.drop_table('wedding_preps')
    op.drop_table('connection_requests')
    op.drop_table('connection_members')
    op.drop_table('connections')
    op.drop_table('users')
