"""initial access-control schema

Revision ID: 001
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

ENUMS = {
    'organization_plan': ('enterprise',),
    'billing_cycle': ('monthly', 'yearly'),
    'plan_tier': ('free', 'standard', 'premium', 'enterprise'),
    'member_role': ('viewer', 'analyst', 'manager', 'admin'),
    'invitation_status': ('pending', 'accepted', 'cancelled', 'expired'),
    'audit_action': (
        'analysis_created',
        'analysis_viewed',
        'analysis_edited',
        'analysis_deleted',
        'analysis_exported',
        'comparative_analysis_created',
        'user_invited',
        'user_role_changed',
        'user_removed',
        'user_joined',
        'organization_settings_updated',
        'organization_branding_updated',
        'billing_viewed',
        'subscription_updated',
    ),
}


def _enum(name):
    # Types are created up front; member_role is shared by two tables
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        sa.Enum(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        'organizations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('domain', sa.String(255), nullable=True),
        sa.Column('plan', _enum('organization_plan'), nullable=False, server_default='enterprise'),
        sa.Column('logo_url', sa.String(), nullable=False, server_default=''),
        sa.Column('primary_color', sa.String(32), nullable=False, server_default='#4f46e5'),
        sa.Column('secondary_color', sa.String(32), nullable=False, server_default='#6b7280'),
        sa.Column('display_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('billing_customer_id', sa.String(), nullable=True),
        sa.Column('max_seats', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('price_per_seat', sa.Numeric(10, 2), nullable=False, server_default='30.00'),
        sa.Column('billing_cycle', _enum('billing_cycle'), nullable=False, server_default='monthly'),
        sa.Column('current_seats', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_analyses', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('monthly_analyses', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('usage_period', sa.String(7), nullable=False),
        sa.Column('usage_last_reset_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('domain', name='uq_organizations_domain'),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('external_id', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('last_name', sa.String(255), nullable=False, server_default=''),
        sa.Column('plan', _enum('plan_tier'), nullable=False, server_default='free'),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('role', _enum('member_role'), nullable=True),
        sa.Column('joined_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "(organization_id IS NULL AND role IS NULL) OR "
            "(organization_id IS NOT NULL AND role IS NOT NULL)",
            name='ck_users_membership_complete',
        ),
    )
    op.create_index('ix_users_external_id', 'users', ['external_id'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_organization_id', 'users', ['organization_id'])

    op.create_table(
        'user_analyses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_user_analyses_user_id', 'user_analyses', ['user_id'])
    op.create_index('ix_user_analyses_created_at', 'user_analyses', ['created_at'])

    op.create_table(
        'invitations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('token', sa.String(128), nullable=False),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', _enum('member_role'), nullable=False),
        sa.Column('invited_by', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('status', _enum('invitation_status'), nullable=False, server_default='pending'),
        sa.Column('custom_message', sa.Text(), nullable=False, server_default=''),
        sa.Column('email_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('email_sent_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('accepted_by', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_invitations_token', 'invitations', ['token'], unique=True)
    op.create_index('ix_invitations_email', 'invitations', ['email'])
    op.create_index('ix_invitations_organization_id', 'invitations', ['organization_id'])
    # At most one pending invitation per (email, organization)
    op.create_index(
        'uq_invitations_pending_email_org',
        'invitations',
        ['email', 'organization_id'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('organization_id', sa.Uuid(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('action', _enum('audit_action'), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(), nullable=True),
        sa.Column('user_agent', sa.String(), nullable=True),
        sa.Column('target_user_id', sa.Uuid(), nullable=True),
        sa.Column('resource_id', sa.String(), nullable=True),
        sa.Column('resource_type', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_org_created', 'audit_logs', ['organization_id', 'created_at'])
    op.create_index('ix_audit_logs_user_created', 'audit_logs', ['user_id', 'created_at'])
    op.create_index('ix_audit_logs_action_created', 'audit_logs', ['action', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_audit_logs_action_created', table_name='audit_logs')
    op.drop_index('ix_audit_logs_user_created', table_name='audit_logs')
    op.drop_index('ix_audit_logs_org_created', table_name='audit_logs')
    op.drop_table('audit_logs')

    op.drop_index('uq_invitations_pending_email_org', table_name='invitations')
    op.drop_index('ix_invitations_organization_id', table_name='invitations')
    op.drop_index('ix_invitations_email', table_name='invitations')
    op.drop_index('ix_invitations_token', table_name='invitations')
    op.drop_table('invitations')

    op.drop_index('ix_user_analyses_created_at', table_name='user_analyses')
    op.drop_index('ix_user_analyses_user_id', table_name='user_analyses')
    op.drop_table('user_analyses')

    op.drop_index('ix_users_organization_id', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_external_id', table_name='users')
    op.drop_table('users')

    op.drop_table('organizations')

    bind = op.get_bind()
    for name, values in reversed(list(ENUMS.items())):
        sa.Enum(*values, name=name).drop(bind, checkfirst=True)
