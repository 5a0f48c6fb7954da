"""Initial InvoiceFlow schema

Revision ID: 20261019_0900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '20261019_0900'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Enum types store member names, matching the ORM's SQLEnum columns
ENUMS = {
    'userplan': ('FREE', 'PRO', 'AGENCY'),
    'invoicestatus': ('DRAFT', 'SENT', 'PAID', 'OVERDUE'),
    'discounttype': ('FLAT', 'PERCENTAGE'),
    'recurringfrequency': ('WEEKLY', 'MONTHLY', 'QUARTERLY', 'YEARLY'),
    'paymentmethodtype': ('UPI', 'BANK', 'CRYPTO', 'PAYMENT_LINK', 'CUSTOM'),
    'proposalstatus': ('DRAFT', 'CONVERTED'),
    'teamrole': ('ADMIN', 'MEMBER', 'VIEWER'),
    'teammemberstatus': ('PENDING', 'ACTIVE', 'INACTIVE'),
    'ticketcategory': ('BILLING', 'TECHNICAL', 'FEATURE', 'ACCOUNT', 'GENERAL'),
    'ticketpriority': ('LOW', 'MEDIUM', 'HIGH', 'URGENT'),
    'ticketstatus': ('OPEN', 'IN_PROGRESS', 'RESOLVED', 'CLOSED'),
    'feedbacktype': ('GENERAL', 'FEATURE', 'BUG', 'IMPROVEMENT', 'COMPLIMENT'),
    'feedbackstatus': ('NEW', 'REVIEWED', 'IMPLEMENTED', 'REJECTED'),
    'emailtype': ('INVOICE', 'WELCOME', 'PASSWORD_RESET', 'NOTIFICATION'),
    'emailstatus': ('SENT', 'FAILED', 'PENDING', 'BOUNCED'),
    'billingcycle': ('MONTHLY', 'YEARLY'),
    'purchasestatus': ('PENDING', 'PAID', 'FAILED', 'EXPIRED'),
}


def enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def id_column() -> sa.Column:
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True)


def timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def owner_column() -> sa.Column:
    return sa.Column(
        'user_id', postgresql.UUID(as_uuid=True),
        sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False,
    )


def money(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(precision=15, scale=2), nullable=nullable)


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    # Users (profiles)
    op.create_table(
        'users',
        id_column(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('address', sa.Text, nullable=True),
        sa.Column('default_currency', sa.String(10), nullable=False),
        sa.Column('default_tax_rate', sa.Numeric(precision=5, scale=2), nullable=False),
        money('default_discount'),
        sa.Column('plan', enum('userplan'), nullable=False),
        sa.Column('plan_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_banned', sa.Boolean, nullable=False, server_default=sa.text('false')),
        *timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Company info, white label and branded email (one row per user)
    op.create_table(
        'company_info',
        id_column(),
        owner_column(),
        sa.Column('business_name', sa.String(255), nullable=False),
        sa.Column('company_email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('website', sa.String(255), nullable=True),
        sa.Column('logo_url', sa.String(500), nullable=True),
        sa.Column('address_line_1', sa.String(255), nullable=True),
        sa.Column('address_line_2', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('state', sa.String(100), nullable=True),
        sa.Column('zip_code', sa.String(20), nullable=True),
        sa.Column('country', sa.String(100), nullable=True),
        sa.Column('custom_email_domain', sa.String(255), nullable=True),
        sa.Column('email_signature', sa.Text, nullable=True),
        *timestamps(),
        sa.UniqueConstraint('user_id', name='uq_company_info_user_id'),
    )
    op.create_index('ix_company_info_user_id', 'company_info', ['user_id'])

    op.create_table(
        'white_label_settings',
        id_column(),
        owner_column(),
        sa.Column('primary_color', sa.String(20), nullable=False),
        sa.Column('secondary_color', sa.String(20), nullable=False),
        sa.Column('logo_url', sa.String(500), nullable=True),
        sa.Column('custom_domain', sa.String(255), nullable=True),
        sa.Column('hide_branding', sa.Boolean, nullable=False, server_default=sa.text('false')),
        *timestamps(),
        sa.UniqueConstraint('user_id', name='uq_white_label_settings_user_id'),
    )
    op.create_index('ix_white_label_settings_user_id', 'white_label_settings', ['user_id'])

    op.create_table(
        'agency_email_settings',
        id_column(),
        owner_column(),
        sa.Column('provider', sa.String(50), nullable=False, server_default='custom'),
        sa.Column('smtp_host', sa.String(255), nullable=False),
        sa.Column('smtp_port', sa.Integer, nullable=False),
        sa.Column('smtp_secure', sa.Boolean, nullable=False),
        sa.Column('smtp_username', sa.String(255), nullable=False),
        sa.Column('smtp_password', sa.String(255), nullable=False),
        sa.Column('from_name', sa.String(255), nullable=False),
        sa.Column('from_email', sa.String(255), nullable=False),
        sa.Column('reply_to', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.text('true')),
        *timestamps(),
        sa.UniqueConstraint('user_id', name='uq_agency_email_settings_user_id'),
    )
    op.create_index('ix_agency_email_settings_user_id', 'agency_email_settings', ['user_id'])

    # Clients
    op.create_table(
        'clients',
        id_column(),
        owner_column(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('business_name', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('address', sa.Text, nullable=True),
        *timestamps(),
    )
    op.create_index('ix_clients_user_id', 'clients', ['user_id'])
    op.create_index('ix_clients_email', 'clients', ['email'])

    # Invoices
    op.create_table(
        'invoices',
        id_column(),
        owner_column(),
        sa.Column('invoice_number', sa.String(50), nullable=False),
        sa.Column(
            'client_id', postgresql.UUID(as_uuid=True),
            sa.ForeignKey('clients.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('client_name', sa.String(255), nullable=False),
        sa.Column('client_email', sa.String(255), nullable=False),
        sa.Column('client_address', sa.Text, nullable=True),
        sa.Column('client_phone', sa.String(50), nullable=True),
        sa.Column('client_business_name', sa.String(255), nullable=True),
        sa.Column('status', enum('invoicestatus'), nullable=False),
        sa.Column('currency', sa.String(10), nullable=False),
        sa.Column('hours_enabled', sa.Boolean, nullable=False),
        sa.Column('tax_enabled', sa.Boolean, nullable=False),
        sa.Column('tax_rate', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('discount_enabled', sa.Boolean, nullable=False),
        sa.Column('discount_type', enum('discounttype'), nullable=False),
        money('discount_value'),
        money('subtotal'),
        money('tax_amount'),
        money('discount_amount'),
        money('total'),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('terms', sa.Text, nullable=True),
        sa.Column('estimated_completion', sa.Date, nullable=True),
        sa.Column('due_date', sa.Date, nullable=True),
        sa.Column('payment_gateway_url', sa.String(500), nullable=True),
        sa.Column('is_recurring', sa.Boolean, nullable=False, server_default=sa.text('false')),
        sa.Column('recurring_frequency', enum('recurringfrequency'), nullable=True),
        sa.Column('recurring_end_date', sa.Date, nullable=True),
        sa.Column('parent_recurring_id', postgresql.UUID(as_uuid=True), nullable=True),
        *timestamps(),
        sa.UniqueConstraint('user_id', 'invoice_number', name='uq_invoices_user_number'),
    )
    op.create_index('ix_invoices_user_id', 'invoices', ['user_id'])
    op.create_index('ix_invoices_invoice_number', 'invoices', ['invoice_number'])
    op.create_index('ix_invoices_client_email', 'invoices', ['client_email'])
    op.create_index('ix_invoices_status', 'invoices', ['status'])

    op.create_table(
        'invoice_items',
        id_column(),
        sa.Column(
            'invoice_id', postgresql.UUID(as_uuid=True),
            sa.ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('hours', sa.Numeric(precision=10, scale=2), nullable=True),
        money('rate'),
        money('subtotal'),
        sa.Column('order_index', sa.Integer, nullable=False, server_default='0'),
        *timestamps(),
    )
    op.create_index('ix_invoice_items_invoice_id', 'invoice_items', ['invoice_id'])

    # Payment methods
    op.create_table(
        'payment_methods',
        id_column(),
        owner_column(),
        sa.Column('type', enum('paymentmethodtype'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('details', postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.text('true')),
        sa.Column('order_index', sa.Integer, nullable=False, server_default='0'),
        *timestamps(),
    )
    op.create_index('ix_payment_methods_user_id', 'payment_methods', ['user_id'])

    # Proposals
    op.create_table(
        'proposals',
        id_column(),
        owner_column(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('client_name', sa.String(255), nullable=False),
        sa.Column('client_email', sa.String(255), nullable=False),
        sa.Column('client_address', sa.Text, nullable=True),
        sa.Column('client_phone', sa.String(50), nullable=True),
        sa.Column('client_business_name', sa.String(255), nullable=True),
        sa.Column('currency', sa.String(10), nullable=False),
        sa.Column('valid_until', sa.Date, nullable=True),
        sa.Column('status', enum('proposalstatus'), nullable=False),
        sa.Column('hours_enabled', sa.Boolean, nullable=False),
        sa.Column('tax_enabled', sa.Boolean, nullable=False),
        sa.Column('tax_rate', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('discount_enabled', sa.Boolean, nullable=False),
        sa.Column('discount_type', enum('discounttype'), nullable=False),
        money('discount_value'),
        money('subtotal'),
        money('tax_amount'),
        money('discount_amount'),
        money('total'),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('terms', sa.Text, nullable=True),
        sa.Column('estimated_completion', sa.Date, nullable=True),
        sa.Column(
            'converted_invoice_id', postgresql.UUID(as_uuid=True),
            sa.ForeignKey('invoices.id', ondelete='SET NULL'), nullable=True,
        ),
        *timestamps(),
    )
    op.create_index('ix_proposals_user_id', 'proposals', ['user_id'])

    op.create_table(
        'proposal_items',
        id_column(),
        sa.Column(
            'proposal_id', postgresql.UUID(as_uuid=True),
            sa.ForeignKey('proposals.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('hours', sa.Numeric(precision=10, scale=2), nullable=True),
        money('rate'),
        money('subtotal'),
        sa.Column('order_index', sa.Integer, nullable=False, server_default='0'),
        *timestamps(),
    )
    op.create_index('ix_proposal_items_proposal_id', 'proposal_items', ['proposal_id'])

    # Agency: team, portal access, recurring schedules, API keys
    op.create_table(
        'team_members',
        id_column(),
        owner_column(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column(
            'member_user_id', postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('role', enum('teamrole'), nullable=False),
        sa.Column('status', enum('teammemberstatus'), nullable=False),
        sa.Column('invited_by', postgresql.UUID(as_uuid=True), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_team_members_user_id', 'team_members', ['user_id'])

    op.create_table(
        'client_portal_access',
        id_column(),
        owner_column(),
        sa.Column('client_email', sa.String(255), nullable=False),
        sa.Column('access_token', sa.String(128), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.text('true')),
        sa.Column('last_accessed_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_client_portal_access_user_id', 'client_portal_access', ['user_id'])
    op.create_index('ix_client_portal_access_client_email', 'client_portal_access', ['client_email'])
    op.create_index('ix_client_portal_access_access_token', 'client_portal_access', ['access_token'], unique=True)

    op.create_table(
        'recurring_invoices',
        id_column(),
        owner_column(),
        sa.Column(
            'source_invoice_id', postgresql.UUID(as_uuid=True),
            sa.ForeignKey('invoices.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('frequency', enum('recurringfrequency'), nullable=False),
        sa.Column('start_date', sa.Date, nullable=False),
        sa.Column('end_date', sa.Date, nullable=True),
        sa.Column('next_invoice_date', sa.Date, nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.text('true')),
        sa.Column('last_generated_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_recurring_invoices_user_id', 'recurring_invoices', ['user_id'])
    op.create_index('ix_recurring_invoices_next_invoice_date', 'recurring_invoices', ['next_invoice_date'])

    # invoices <-> recurring_invoices reference each other
    op.create_foreign_key(
        'fk_invoices_parent_recurring_id_recurring_invoices',
        'invoices', 'recurring_invoices',
        ['parent_recurring_id'], ['id'],
        ondelete='SET NULL',
    )

    op.create_table(
        'api_keys',
        id_column(),
        owner_column(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('key_prefix', sa.String(20), nullable=False),
        sa.Column('key_hash', sa.String(64), nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.text('true')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
        sa.UniqueConstraint('key_hash', name='uq_api_keys_key_hash'),
    )
    op.create_index('ix_api_keys_user_id', 'api_keys', ['user_id'])

    # Support and feedback (anonymous submissions allowed)
    op.create_table(
        'support_tickets',
        id_column(),
        sa.Column(
            'user_id', postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('subject', sa.String(255), nullable=False),
        sa.Column('category', enum('ticketcategory'), nullable=False),
        sa.Column('priority', enum('ticketpriority'), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('status', enum('ticketstatus'), nullable=False),
        sa.Column('assigned_to', sa.String(255), nullable=True),
        sa.Column('admin_response', sa.Text, nullable=True),
        *timestamps(),
    )
    op.create_index('ix_support_tickets_user_id', 'support_tickets', ['user_id'])
    op.create_index('ix_support_tickets_status', 'support_tickets', ['status'])

    op.create_table(
        'feedback_submissions',
        id_column(),
        sa.Column(
            'user_id', postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('type', enum('feedbacktype'), nullable=False),
        sa.Column('rating', sa.Integer, nullable=True),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('status', enum('feedbackstatus'), nullable=False),
        sa.Column('admin_notes', sa.Text, nullable=True),
        *timestamps(),
    )
    op.create_index('ix_feedback_submissions_user_id', 'feedback_submissions', ['user_id'])
    op.create_index('ix_feedback_submissions_status', 'feedback_submissions', ['status'])

    # Email log and admin activity log
    op.create_table(
        'email_logs',
        id_column(),
        sa.Column(
            'user_id', postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('recipient_email', sa.String(255), nullable=False),
        sa.Column('sender_email', sa.String(255), nullable=True),
        sa.Column('subject', sa.String(500), nullable=False),
        sa.Column('email_type', enum('emailtype'), nullable=False),
        sa.Column('status', enum('emailstatus'), nullable=False),
        sa.Column('error_message', sa.Text, nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_email_logs_user_id', 'email_logs', ['user_id'])
    op.create_index('ix_email_logs_recipient_email', 'email_logs', ['recipient_email'])

    op.create_table(
        'admin_activity_logs',
        id_column(),
        sa.Column(
            'admin_user_id', postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('target_type', sa.String(50), nullable=False),
        sa.Column('target_id', sa.String(100), nullable=True),
        sa.Column('details', postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_admin_activity_logs_admin_user_id', 'admin_activity_logs', ['admin_user_id'])
    op.create_index('ix_admin_activity_logs_action', 'admin_activity_logs', ['action'])

    # Plan purchases through OxaPay
    op.create_table(
        'plan_purchases',
        id_column(),
        owner_column(),
        sa.Column('plan', enum('userplan'), nullable=False),
        sa.Column('billing_cycle', enum('billingcycle'), nullable=False),
        money('amount'),
        sa.Column('currency', sa.String(10), nullable=False),
        sa.Column('order_id', sa.String(50), nullable=False),
        sa.Column('track_id', sa.String(100), nullable=True),
        sa.Column('payment_url', sa.String(500), nullable=True),
        sa.Column('status', enum('purchasestatus'), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('gateway_payload', postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        *timestamps(),
    )
    op.create_index('ix_plan_purchases_user_id', 'plan_purchases', ['user_id'])
    op.create_index('ix_plan_purchases_order_id', 'plan_purchases', ['order_id'], unique=True)
    op.create_index('ix_plan_purchases_track_id', 'plan_purchases', ['track_id'])
    op.create_index('ix_plan_purchases_status', 'plan_purchases', ['status'])


def downgrade() -> None:
    op.drop_table('plan_purchases')
    op.drop_table('admin_activity_logs')
    op.drop_table('email_logs')
    op.drop_table('feedback_submissions')
    op.drop_table('support_tickets')
    op.drop_table('api_keys')
    op.drop_constraint('fk_invoices_parent_recurring_id_recurring_invoices', 'invoices', type_='foreignkey')
    op.drop_table('recurring_invoices')
    op.drop_table('client_portal_access')
    op.drop_table('team_members')
    op.drop_table('proposal_items')
    op.drop_table('proposals')
    op.drop_table('payment_methods')
    op.drop_table('invoice_items')
    op.drop_table('invoices')
    op.drop_table('clients')
    op.drop_table('agency_email_settings')
    op.drop_table('white_label_settings')
    op.drop_table('company_info')
    op.drop_table('users')

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
