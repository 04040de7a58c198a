"""Add request templates, contacts and notification preferences

Revision ID: 002
Revises: 001
Create Date: 2026-10-16

WHY: Admins manage the services sold to each company and the people who
work there, curate request templates, and every profile chooses which
events reach its inbox. Client services gain end dates, notes and the
pending/completed states of one-time work.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


DIGEST_FREQUENCY = ('daily', 'weekly')
NEW_SERVICE_STATUSES = ('completed', 'pending')


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade() -> None:
    # ADD VALUE cannot share a transaction with statements using the value
    with op.get_context().autocommit_block():
        for value in NEW_SERVICE_STATUSES:
            op.execute(f"ALTER TYPE service_status ADD VALUE IF NOT EXISTS '{value}'")

    op.add_column('client_services', sa.Column('end_date', sa.DateTime(), nullable=True))
    op.add_column('client_services', sa.Column('notes', sa.Text(), nullable=True))

    bind = op.get_bind()
    postgresql.ENUM(*DIGEST_FREQUENCY, name='digest_frequency').create(bind, checkfirst=True)

    op.create_table(
        'request_templates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('title_template', sa.String(length=500), nullable=False),
        sa.Column('description_template', sa.Text(), nullable=True),
        sa.Column(
            'default_priority',
            postgresql.ENUM('low', 'normal', 'high', name='request_priority', create_type=False),
            nullable=False,
            server_default='normal',
        ),
        sa.Column('default_sla_hours', sa.Integer(), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_global', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['created_by'], ['profiles.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_request_templates_company_active', 'request_templates', ['company_id', 'is_active'])

    op.create_table(
        'contacts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('role', sa.String(length=100), nullable=True),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_billing_contact', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_contacts_id', 'contacts', ['id'])
    op.create_index('ix_contacts_company_id', 'contacts', ['company_id'])

    op.create_table(
        'notification_preferences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('email_on_comment', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('email_on_status_change', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('email_on_assignment', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('email_on_mention', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('email_on_due_date', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('email_digest_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            'email_digest_frequency',
            postgresql.ENUM(*DIGEST_FREQUENCY, name='digest_frequency', create_type=False),
            nullable=False,
            server_default='daily',
        ),
        sa.Column('push_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )


def downgrade() -> None:
    op.drop_table('notification_preferences')
    op.drop_table('contacts')
    op.drop_index('ix_request_templates_company_active', table_name='request_templates')
    op.drop_table('request_templates')
    postgresql.ENUM(*DIGEST_FREQUENCY, name='digest_frequency').drop(op.get_bind(), checkfirst=True)

    op.drop_column('client_services', 'notes')
    op.drop_column('client_services', 'end_date')
    # PostgreSQL cannot drop enum values; 'completed' and 'pending' stay on service_status
