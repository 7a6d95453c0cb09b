"""initial_dispatch_schema

Creates the field dispatch schema:
1. Users, organizations and memberships (multi-tenancy)
2. Jobs, match candidates, SLA timers and alerts, ratings
3. Technicians with licenses, insurance and certifications
4. Compliance policies
5. Cold lead staging, cold leads, outreach and the unsubscribe list
6. Audit log

Seeds the public technician pool organization.

Revision ID: c4d1f0a2b7e9
Revises:
Create Date: 2026-10-19 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'c4d1f0a2b7e9'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PUBLIC_POOL_ORG_ID = '00000000-0000-0000-0000-000000000001'

JOB_STATUS = ('MATCHING', 'DISPATCHED', 'ASSIGNED', 'PENDING', 'COMPLETED', 'CANCELLED')
JOB_URGENCY = ('EMERGENCY', 'SAME_DAY', 'NEXT_DAY', 'WITHIN_WEEK', 'FLEXIBLE')
SLA_STAGE = ('DISPATCH', 'ASSIGNMENT', 'ARRIVAL', 'COMPLETION')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), onupdate=sa.func.now()),
    ]


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Accounts and tenancy
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False, index=True),
        sa.Column('email', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'organizations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False, index=True),
        sa.Column('name', sa.String(), nullable=False, index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        'org_memberships',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('role', sa.Enum('OWNER', 'ADMIN', 'MEMBER', name='membershiprole'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'org_id', name='uq_org_memberships_user_org'),
    )

    # 2. Technicians and credentials
    op.create_table(
        'technicians',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False, index=True),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('trade', sa.String(), nullable=False, index=True),
        sa.Column('company_name', sa.String(), nullable=True),
        sa.Column('years_experience', sa.Integer(), nullable=True),
        sa.Column('address_text', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('state', sa.String(), nullable=True, index=True),
        sa.Column('lat', sa.Float(), nullable=True),
        sa.Column('lng', sa.Float(), nullable=True),
        sa.Column('service_radius', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('signed_up', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('unsubscribed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('average_rating', sa.Float(), nullable=True),
        sa.Column('total_jobs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('response_rate', sa.Float(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ondelete='CASCADE'),
    )

    op.create_table(
        'contractor_licenses',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('technician_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('license_type', sa.String(), nullable=False),
        sa.Column('license_number', sa.String(), nullable=False),
        sa.Column('issuing_state', sa.String(), nullable=False),
        sa.Column('issue_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expiration_date', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['technician_id'], ['technicians.id'], ondelete='CASCADE'),
    )

    op.create_table(
        'contractor_insurance',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('technician_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('insurance_type', sa.Enum('GENERAL_LIABILITY', 'WORKERS_COMP', 'AUTO', 'UMBRELLA', name='insurancetype'), nullable=False),
        sa.Column('carrier', sa.String(), nullable=True),
        sa.Column('policy_number', sa.String(), nullable=True),
        sa.Column('coverage_amount', sa.Float(), nullable=True),
        sa.Column('effective_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expiration_date', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['technician_id'], ['technicians.id'], ondelete='CASCADE'),
    )

    op.create_table(
        'contractor_certifications',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('technician_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('certification_name', sa.String(), nullable=False),
        sa.Column('issuing_body', sa.String(), nullable=True),
        sa.Column('certification_number', sa.String(), nullable=True),
        sa.Column('issue_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expiration_date', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['technician_id'], ['technicians.id'], ondelete='CASCADE'),
    )

    # 3. Jobs
    op.create_table(
        'jobs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False, index=True),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('created_by_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('job_title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('trade_needed', sa.String(), nullable=False, index=True),
        sa.Column('required_certifications', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('address_text', sa.String(), nullable=False),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('state', sa.String(), nullable=True, index=True),
        sa.Column('lat', sa.Float(), nullable=True),
        sa.Column('lng', sa.Float(), nullable=True),
        sa.Column('urgency', sa.Enum(*JOB_URGENCY, name='joburgency'), nullable=False),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration', sa.String(), nullable=True),
        sa.Column('budget_min', sa.Float(), nullable=True),
        sa.Column('budget_max', sa.Float(), nullable=True),
        sa.Column('pay_rate', sa.String(), nullable=True),
        sa.Column('contact_name', sa.String(), nullable=False, server_default=''),
        sa.Column('contact_phone', sa.String(), nullable=False, server_default=''),
        sa.Column('contact_email', sa.String(), nullable=False, server_default=''),
        sa.Column('policy_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('job_status', sa.Enum(*JOB_STATUS, name='jobstatus'), nullable=False, index=True),
        sa.Column('assigned_tech_id', postgresql.UUID(as_uuid=True), nullable=True, index=True),
        sa.Column('sla_breached', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('idempotency_key', sa.String(64), nullable=True, index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), onupdate=sa.func.now()),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['assigned_tech_id'], ['technicians.id'], ondelete='SET NULL'),
    )

    op.create_table(
        'job_candidates',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False, index=True),
        sa.Column('job_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('technician_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('distance_miles', sa.Float(), nullable=False),
        sa.Column('rank', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['technician_id'], ['technicians.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('job_id', 'technician_id', name='uq_job_candidates_job_tech'),
    )

    op.create_table(
        'sla_timers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False, index=True),
        sa.Column('job_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('stage', sa.Enum(*SLA_STAGE, name='slastage'), nullable=False),
        sa.Column('target_minutes', sa.Integer(), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('breached', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('breach_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('job_id', 'stage', name='uq_sla_timers_job_stage'),
    )

    op.create_table(
        'sla_alerts',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('timer_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('job_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('alert_type', sa.Enum('WARNING', 'BREACH', name='slaalerttype'), nullable=False),
        sa.Column('message', sa.String(), nullable=False),
        sa.Column('acknowledged', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['timer_id'], ['sla_timers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
    )

    op.create_table(
        'job_ratings',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('job_id', postgresql.UUID(as_uuid=True), nullable=False, unique=True, index=True),
        sa.Column('technician_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('rated_by_user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('quality_rating', sa.Integer(), nullable=False),
        sa.Column('timeliness_rating', sa.Integer(), nullable=False),
        sa.Column('communication_rating', sa.Integer(), nullable=False),
        sa.Column('professionalism_rating', sa.Integer(), nullable=False),
        sa.Column('overall_rating', sa.Float(), nullable=False),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['technician_id'], ['technicians.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['rated_by_user_id'], ['users.id'], ondelete='SET NULL'),
    )

    # 4. Compliance policies
    op.create_table(
        'compliance_policies',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False, index=True),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('job_id', postgresql.UUID(as_uuid=True), nullable=True, index=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='SET NULL'),
    )

    op.create_table(
        'compliance_policy_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('policy_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('requirement_code', sa.String(), nullable=False),
        sa.Column('required', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('weight', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('min_valid_days', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['policy_id'], ['compliance_policies.id'], ondelete='CASCADE'),
    )

    # 5. Leads and outreach
    op.create_table(
        'cold_leads',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False, index=True),
        sa.Column('email', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('supersearch_query', sa.String(), nullable=True),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('company_name', sa.String(), nullable=True),
        sa.Column('job_title', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('state', sa.String(), nullable=True, index=True),
        sa.Column('country', sa.String(), nullable=True),
        sa.Column('trade_type', sa.String(), nullable=True, index=True),
        sa.Column('lead_source', sa.String(), nullable=True),
        sa.Column('license_number', sa.String(), nullable=True),
        sa.Column('license_expiration', sa.DateTime(timezone=True), nullable=True),
        sa.Column('license_status', sa.String(), nullable=True),
        sa.Column('license_classification', sa.String(), nullable=True),
        sa.Column('email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('enriched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('enrichment_source', sa.String(), nullable=True),
        sa.Column('enrichment_credits_used', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_dispatched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('dispatch_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('has_replied', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('has_signed_up', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('unsubscribed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'license_records',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False, index=True),
        sa.Column('source', sa.String(), nullable=True),
        sa.Column('license_number', sa.String(), nullable=True),
        sa.Column('license_status', sa.String(), nullable=True),
        sa.Column('license_classification', sa.String(), nullable=True),
        sa.Column('license_expiration', sa.DateTime(timezone=True), nullable=True),
        sa.Column('business_name', sa.String(), nullable=True),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('job_title', sa.String(), nullable=True),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('state', sa.String(), nullable=True, index=True),
        sa.Column('zip', sa.String(), nullable=True),
        sa.Column('trade_type', sa.String(), nullable=True),
        sa.Column('lat', sa.Float(), nullable=True),
        sa.Column('lng', sa.Float(), nullable=True),
        sa.Column('ai_selected', sa.Boolean(), nullable=False, server_default=sa.false(), index=True),
        sa.Column('ai_selection_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ai_selection_score', sa.Float(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('email_verification_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('hunter_confidence', sa.Integer(), nullable=True),
        sa.Column('moved_to_cold_leads', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('cold_lead_id', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['cold_lead_id'], ['cold_leads.id'], ondelete='SET NULL'),
    )

    op.create_table(
        'outreach_unsubscribes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('email', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('unsubscribe_type', sa.String(), nullable=False),
        sa.Column('unsubscribed_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'work_order_outreach',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False, index=True),
        sa.Column('job_id', postgresql.UUID(as_uuid=True), nullable=False, unique=True, index=True),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('status', sa.Enum('PENDING', 'ACTIVE', 'COMPLETED', 'FAILED', name='outreachstatus'), nullable=False),
        sa.Column('total_recipients', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('warm_sent', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('warm_opened', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('warm_replied', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('warm_qualified', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cold_sent', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cold_opened', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cold_replied', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cold_qualified', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pipeline_stats', postgresql.JSONB(), nullable=True),
        sa.Column('dispatched_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ondelete='CASCADE'),
    )

    op.create_table(
        'work_order_recipients',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False, index=True),
        sa.Column('outreach_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('job_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('technician_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('cold_lead_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('dispatch_method', sa.Enum('SENDGRID_WARM', 'INSTANTLY_COLD', name='dispatchmethod'), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('email_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('email_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reply_received', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reply_received_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ai_qualified', sa.Boolean(), nullable=True),
        sa.Column('qualified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('qualification_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['outreach_id'], ['work_order_outreach.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['technician_id'], ['technicians.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['cold_lead_id'], ['cold_leads.id'], ondelete='SET NULL'),
    )

    # 6. Audit log
    op.create_table(
        'audit_log',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False, index=True),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('actor_type', sa.String(), nullable=False, server_default='user'),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=True, index=True),
        sa.Column('changes', postgresql.JSONB(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )

    # Public technician pool
    op.execute(f"""
        INSERT INTO organizations (id, name)
        VALUES ('{PUBLIC_POOL_ORG_ID}', 'Public Technicians Pool')
    """)


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'audit_log',
        'work_order_recipients',
        'work_order_outreach',
        'outreach_unsubscribes',
        'license_records',
        'cold_leads',
        'compliance_policy_items',
        'compliance_policies',
        'job_ratings',
        'sla_alerts',
        'sla_timers',
        'job_candidates',
        'jobs',
        'contractor_certifications',
        'contractor_insurance',
        'contractor_licenses',
        'technicians',
        'org_memberships',
        'organizations',
        'users',
    ):
        op.drop_table(table)

    for enum_name in (
        'dispatchmethod', 'outreachstatus', 'slaalerttype', 'slastage',
        'jobstatus', 'joburgency', 'insurancetype', 'membershiprole',
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
