"""baseline_membership_and_leads

Revision ID: 7c3e51a9d402
Revises:
Create Date: 2026-10-18 10:12:44.518302

Production-safe migration: Only creates tables that don't exist yet.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '7c3e51a9d402'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BENEFIT_FLAGS = [
    'featured_listing',
    'off_market_access',
    'publicity_references',
    'verified_badge',
    'financing_support',
    'private_network',
    'free_calculators',
    'unlimited_requests',
    'contractor_reviews_visible',
    'priority_contractor_access',
    'property_valuation_support',
    'certified_aas_work',
    'free_evaluation',
]


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def _flag_columns(prefix: str = ''):
    return [
        sa.Column(f'{prefix}{flag}', sa.Boolean(), nullable=False, server_default=sa.false())
        for flag in BENEFIT_FLAGS
    ]


def upgrade() -> None:
    if not table_exists('users'):
        op.create_table('users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('full_name', sa.String(), nullable=False),
            sa.Column('email', sa.String(), nullable=True),
            sa.Column('role', sa.String(), nullable=False, server_default='contractor'),
            sa.Column('home_lat', sa.Float(), nullable=True),
            sa.Column('home_lng', sa.Float(), nullable=True),
            sa.Column('services', sa.JSON(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
        op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    if not table_exists('membership_plans'):
        op.create_table('membership_plans',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('description', sa.String(), nullable=True),
            sa.Column('user_category', sa.String(), nullable=False),
            sa.Column('tier', sa.String(), nullable=False),
            sa.Column('monthly_price', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('yearly_price', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('annual_discount_rate', sa.Float(), nullable=False, server_default='15'),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('leads_per_month', sa.Integer(), nullable=True),
            sa.Column('access_delay_hours', sa.Integer(), nullable=False, server_default='24'),
            sa.Column('radius_km', sa.Float(), nullable=True),
            sa.Column('max_properties', sa.Integer(), nullable=True),
            sa.Column('platform_fee_percent', sa.Float(), nullable=False, server_default='100'),
            sa.Column('property_type', sa.String(), nullable=False, server_default='domestic'),
            *_flag_columns(),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_membership_plans_id'), 'membership_plans', ['id'], unique=False)
        op.create_index(op.f('ix_membership_plans_user_category'), 'membership_plans', ['user_category'], unique=False)
        op.create_index('idx_plan_category_tier', 'membership_plans', ['user_category', 'tier'], unique=False)

    if not table_exists('membership_periods'):
        op.create_table('membership_periods',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('plan_id', sa.Integer(), nullable=False),
            sa.Column('status', sa.String(), nullable=False, server_default='active'),
            sa.Column('billing_period', sa.String(), nullable=False, server_default='monthly'),
            sa.Column('start_date', sa.DateTime(), nullable=False),
            sa.Column('end_date', sa.DateTime(), nullable=False),
            sa.Column('effective_leads_per_month', sa.Integer(), nullable=True),
            sa.Column('effective_access_delay_hours', sa.Integer(), nullable=False, server_default='24'),
            sa.Column('effective_radius_km', sa.Float(), nullable=True),
            sa.Column('effective_max_properties', sa.Integer(), nullable=True),
            sa.Column('effective_platform_fee_percent', sa.Float(), nullable=False, server_default='100'),
            sa.Column('effective_property_type', sa.String(), nullable=False, server_default='domestic'),
            *_flag_columns('effective_'),
            sa.Column('accumulated_leads', sa.Integer(), nullable=True),
            sa.Column('bonus_leads', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('used_this_month', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('used_this_year', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('lead_reset_anchor', sa.DateTime(), nullable=False),
            sa.Column('last_lead_reset_at', sa.DateTime(), nullable=False),
            sa.Column('upgraded_from_id', sa.Integer(), nullable=True),
            sa.Column('upgraded_to_id', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
            sa.ForeignKeyConstraint(['plan_id'], ['membership_plans.id'], ),
            sa.ForeignKeyConstraint(['upgraded_from_id'], ['membership_periods.id'], ),
            sa.ForeignKeyConstraint(['upgraded_to_id'], ['membership_periods.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_membership_periods_id'), 'membership_periods', ['id'], unique=False)
        op.create_index(op.f('ix_membership_periods_user_id'), 'membership_periods', ['user_id'], unique=False)
        op.create_index('idx_period_user_status', 'membership_periods', ['user_id', 'status'], unique=False)
        op.create_index('idx_period_user_status_end', 'membership_periods', ['user_id', 'status', 'end_date'], unique=False)

    if not table_exists('properties'):
        op.create_table('properties',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('owner_id', sa.Integer(), nullable=True),
            sa.Column('title', sa.String(), nullable=False),
            sa.Column('property_type', sa.String(), nullable=False, server_default='domestic'),
            sa.Column('latitude', sa.Float(), nullable=True),
            sa.Column('longitude', sa.Float(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_properties_id'), 'properties', ['id'], unique=False)
        op.create_index(op.f('ix_properties_owner_id'), 'properties', ['owner_id'], unique=False)

    if not table_exists('jobs'):
        op.create_table('jobs',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('created_by', sa.Integer(), nullable=True),
            sa.Column('property_id', sa.Integer(), nullable=True),
            sa.Column('title', sa.String(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('service', sa.String(), nullable=False),
            sa.Column('estimate', sa.Float(), nullable=True),
            sa.Column('type', sa.String(), nullable=False, server_default='regular'),
            sa.Column('status', sa.String(), nullable=False, server_default='open'),
            sa.Column('accepted_bid_id', sa.Integer(), nullable=True),
            sa.Column('accepted_at', sa.DateTime(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['created_by'], ['users.id'], ),
            sa.ForeignKeyConstraint(['property_id'], ['properties.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_jobs_id'), 'jobs', ['id'], unique=False)
        op.create_index(op.f('ix_jobs_created_by'), 'jobs', ['created_by'], unique=False)
        op.create_index(op.f('ix_jobs_service'), 'jobs', ['service'], unique=False)
        op.create_index(op.f('ix_jobs_status'), 'jobs', ['status'], unique=False)
        op.create_index(op.f('ix_jobs_created_at'), 'jobs', ['created_at'], unique=False)
        op.create_index('idx_job_status_service_created', 'jobs', ['status', 'service', 'created_at'], unique=False)

    if not table_exists('bids'):
        op.create_table('bids',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('job_id', sa.Integer(), nullable=False),
            sa.Column('contractor_id', sa.Integer(), nullable=False),
            sa.Column('bid_amount', sa.Float(), nullable=False),
            sa.Column('message', sa.Text(), nullable=False),
            sa.Column('status', sa.String(), nullable=False, server_default='pending'),
            sa.Column('start_date', sa.DateTime(), nullable=False),
            sa.Column('end_date', sa.DateTime(), nullable=False),
            sa.Column('materials_included', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('materials_description', sa.Text(), nullable=True),
            sa.Column('warranty_months', sa.Integer(), nullable=True),
            sa.Column('warranty_description', sa.Text(), nullable=True),
            sa.Column('lead_counted', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ),
            sa.ForeignKeyConstraint(['contractor_id'], ['users.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('contractor_id', 'job_id', name='uq_bid_contractor_job')
        )
        op.create_index(op.f('ix_bids_id'), 'bids', ['id'], unique=False)
        op.create_index(op.f('ix_bids_job_id'), 'bids', ['job_id'], unique=False)
        op.create_index(op.f('ix_bids_contractor_id'), 'bids', ['contractor_id'], unique=False)
        op.create_index('idx_bid_contractor_created', 'bids', ['contractor_id', 'created_at'], unique=False)

    if not table_exists('job_bid_refs'):
        op.create_table('job_bid_refs',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('job_id', sa.Integer(), nullable=False),
            sa.Column('bid_id', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ),
            sa.ForeignKeyConstraint(['bid_id'], ['bids.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('job_id', 'bid_id', name='uq_job_bid_ref')
        )
        op.create_index(op.f('ix_job_bid_refs_id'), 'job_bid_refs', ['id'], unique=False)
        op.create_index(op.f('ix_job_bid_refs_job_id'), 'job_bid_refs', ['job_id'], unique=False)

    if not table_exists('lead_access_records'):
        op.create_table('lead_access_records',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('contractor_id', sa.Integer(), nullable=False),
            sa.Column('job_id', sa.Integer(), nullable=False),
            sa.Column('bid_id', sa.Integer(), nullable=False),
            sa.Column('membership_tier', sa.String(), nullable=False),
            sa.Column('billing_period', sa.String(), nullable=True),
            sa.Column('accessed_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['contractor_id'], ['users.id'], ),
            sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ),
            sa.ForeignKeyConstraint(['bid_id'], ['bids.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_lead_access_records_id'), 'lead_access_records', ['id'], unique=False)
        op.create_index(op.f('ix_lead_access_records_contractor_id'), 'lead_access_records', ['contractor_id'], unique=False)
        op.create_index(op.f('ix_lead_access_records_bid_id'), 'lead_access_records', ['bid_id'], unique=False)
        op.create_index(op.f('ix_lead_access_records_accessed_at'), 'lead_access_records', ['accessed_at'], unique=False)
        op.create_index('idx_lead_contractor_accessed', 'lead_access_records', ['contractor_id', 'accessed_at'], unique=False)
        op.create_index('idx_lead_job_contractor', 'lead_access_records', ['job_id', 'contractor_id'], unique=False)


def downgrade() -> None:
    for table in (
        'lead_access_records',
        'job_bid_refs',
        'bids',
        'jobs',
        'properties',
        'membership_periods',
        'membership_plans',
        'users',
    ):
        if table_exists(table):
            op.drop_table(table)
