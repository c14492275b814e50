"""baseline_entitlements

Revision ID: 3c7a1e5d9b20
Revises: 
Create Date: 2026-10-19 10:12:44.118203

Production-safe migration: Only creates tables that don't exist yet.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '3c7a1e5d9b20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    """Create users, subscriptions, usage counters, resources and webhook audit tables."""
    if not table_exists('users'):
        op.create_table('users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('full_name', sa.String(), nullable=True),
            sa.Column('email', sa.String(), nullable=False),
            sa.Column('created_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
        op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    if not table_exists('subscriptions'):
        op.create_table('subscriptions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('plan_tier', sa.String(), nullable=False, server_default='free'),
            sa.Column('status', sa.String(), nullable=False, server_default='expired'),
            sa.Column('payment_provider', sa.String(), nullable=False, server_default='none'),
            sa.Column('external_subscription_id', sa.String(), nullable=True),
            sa.Column('external_customer_key', sa.String(), nullable=True),
            sa.Column('amount', sa.Float(), nullable=True),
            sa.Column('currency', sa.String(length=3), nullable=True),
            sa.Column('period_start', sa.DateTime(), nullable=True),
            sa.Column('period_end', sa.DateTime(), nullable=True),
            sa.Column('trial_end', sa.DateTime(), nullable=True),
            sa.Column('activated_at', sa.DateTime(), nullable=True),
            sa.Column('cancelled_at', sa.DateTime(), nullable=True),
            sa.Column('cancel_reason', sa.String(), nullable=True),
            sa.Column('last_event', sa.String(), nullable=True),
            sa.Column('raw_provider_payload', sa.JSON(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id')
        )
        op.create_index(op.f('ix_subscriptions_id'), 'subscriptions', ['id'], unique=False)
        op.create_index(op.f('ix_subscriptions_external_subscription_id'), 'subscriptions', ['external_subscription_id'], unique=False)
        op.create_index(op.f('ix_subscriptions_external_customer_key'), 'subscriptions', ['external_customer_key'], unique=False)

    if not table_exists('usage_counters'):
        op.create_table('usage_counters',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('resource_type', sa.String(), nullable=False),
            sa.Column('period_key', sa.String(length=7), nullable=False),
            sa.Column('count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.CheckConstraint('count >= 0', name='ck_usage_count_non_negative'),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'resource_type', 'period_key', name='uq_usage_user_resource_period')
        )
        op.create_index(op.f('ix_usage_counters_id'), 'usage_counters', ['id'], unique=False)
        op.create_index(op.f('ix_usage_counters_user_id'), 'usage_counters', ['user_id'], unique=False)

    if not table_exists('jobs'):
        op.create_table('jobs',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('title', sa.String(length=255), nullable=False),
            sa.Column('client', sa.String(length=255), nullable=True),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('status', sa.String(length=50), nullable=False),
            sa.Column('value', sa.Float(), nullable=True),
            sa.Column('created_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_jobs_id'), 'jobs', ['id'], unique=False)
        op.create_index(op.f('ix_jobs_user_id'), 'jobs', ['user_id'], unique=False)

    if not table_exists('projects'):
        op.create_table('projects',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_projects_id'), 'projects', ['id'], unique=False)
        op.create_index(op.f('ix_projects_user_id'), 'projects', ['user_id'], unique=False)

    if not table_exists('webhook_events'):
        op.create_table('webhook_events',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('provider', sa.String(), nullable=False),
            sa.Column('event', sa.String(), nullable=False),
            sa.Column('category', sa.String(), nullable=True),
            sa.Column('user_id', sa.Integer(), nullable=True),
            sa.Column('external_subscription_id', sa.String(), nullable=True),
            sa.Column('processed', sa.Boolean(), nullable=False),
            sa.Column('payload', sa.JSON(), nullable=True),
            sa.Column('received_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('idx_webhook_provider_event', 'webhook_events', ['provider', 'event'], unique=False)
        op.create_index(op.f('ix_webhook_events_id'), 'webhook_events', ['id'], unique=False)
        op.create_index(op.f('ix_webhook_events_user_id'), 'webhook_events', ['user_id'], unique=False)
        op.create_index(op.f('ix_webhook_events_received_at'), 'webhook_events', ['received_at'], unique=False)


def downgrade() -> None:
    """Drop all entitlement tables in reverse dependency order."""
    op.drop_table('webhook_events')
    op.drop_table('projects')
    op.drop_table('jobs')
    op.drop_table('usage_counters')
    op.drop_table('subscriptions')
    op.drop_table('users')
