"""initial_schema

Revision ID: a1c3e5f70001
Revises:
Create Date: 2026-10-19 09:00:00.000000

Creates the tenant, credential, campaign, metric and job tables.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f70001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        'organizations',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('slug', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_organizations_slug', 'organizations', ['slug'], unique=True)

    op.create_table(
        'members',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('org_id', sa.String(length=36), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'org_id', name='uq_members_user_org'),
    )
    op.create_index('ix_members_user_id', 'members', ['user_id'])
    op.create_index('ix_members_org_id', 'members', ['org_id'])

    op.create_table(
        'invites',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('token', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('org_id', sa.String(length=36), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('ad_account_id', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_invites_token', 'invites', ['token'], unique=True)
    op.create_index('ix_invites_org_id', 'invites', ['org_id'])

    op.create_table(
        'integrations',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('org_id', sa.String(length=36), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('integration_type', sa.String(), nullable=False),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('ad_account_id', sa.JSON(), nullable=True),
        sa.Column('account_name', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('last_sync_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_integrations_org_id', 'integrations', ['org_id'])
    op.create_index('ix_integrations_user_id', 'integrations', ['user_id'])
    op.create_index('ix_integrations_integration_type', 'integrations', ['integration_type'])
    op.create_index('ix_integrations_status', 'integrations', ['status'])

    op.create_table(
        'jobs',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('org_id', sa.String(length=36), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('external_id', sa.String(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_jobs_org_id', 'jobs', ['org_id'])
    op.create_index('ix_jobs_status', 'jobs', ['status'])
    op.create_index('ix_jobs_org_external', 'jobs', ['org_id', 'external_id'])

    op.create_table(
        'campaigns',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('org_id', sa.String(length=36), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('objective', sa.String(), nullable=False),
        sa.Column('budget', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('platform', sa.String(), nullable=True),
        sa.Column('external_id', sa.String(), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('location_targeting', sa.JSON(), nullable=False),
        sa.Column('audience_targeting', sa.JSON(), nullable=False),
        sa.Column('ad_copy', sa.Text(), nullable=True),
        sa.Column('cta_button', sa.String(), nullable=True),
        sa.Column('creative_assets', sa.JSON(), nullable=True),
        sa.Column('job_id', sa.String(length=36), sa.ForeignKey('jobs.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_by', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_campaigns_org_id', 'campaigns', ['org_id'])
    op.create_index('ix_campaigns_status', 'campaigns', ['status'])
    op.create_index('ix_campaigns_platform', 'campaigns', ['platform'])
    op.create_index('ix_campaigns_org_platform_name', 'campaigns', ['org_id', 'platform', 'name'])
    op.create_index('ix_campaigns_org_platform_external', 'campaigns', ['org_id', 'platform', 'external_id'])

    op.create_table(
        'metrics',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('campaign_id', sa.String(length=36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('impressions', sa.Integer(), nullable=False),
        sa.Column('clicks', sa.Integer(), nullable=False),
        sa.Column('spend', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('leads', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_metrics_campaign_id', 'metrics', ['campaign_id'])
    op.create_index('ix_metrics_date', 'metrics', ['date'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('metrics')
    op.drop_table('campaigns')
    op.drop_table('jobs')
    op.drop_table('integrations')
    op.drop_table('invites')
    op.drop_table('members')
    op.drop_table('organizations')
