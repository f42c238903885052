"""Baseline migration - portal schema

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19

Creates users, cases (documents, reports, messages), saved trials,
audit logs and the public form tables. Types are portable so the same
revision runs on PostgreSQL and SQLite.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Create portal tables."""

    # ==========================================================================
    # Users
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=True),
        sa.Column('name', sa.String(100), nullable=True),
        sa.Column('first_name', sa.String(50), nullable=True),
        sa.Column('last_name', sa.String(50), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('address', sa.String(200), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('state', sa.String(50), nullable=True),
        sa.Column('zip_code', sa.String(20), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='PATIENT'),
        sa.Column('is_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp('approved_at', nullable=True),
        sa.Column(
            'approved_by_id', sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('specialty', sa.String(100), nullable=True),
        sa.Column('license_number', sa.String(100), nullable=True),
        sa.Column('institution', sa.String(200), nullable=True),
        sa.Column('has_accepted_terms', sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp('terms_accepted_at', nullable=True),
        sa.Column('has_accepted_consent', sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp('consent_accepted_at', nullable=True),
        sa.Column('google_sub', sa.String(255), nullable=True, unique=True),
        sa.Column('token_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('locale', sa.String(10), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
    )

    # ==========================================================================
    # Cases
    # ==========================================================================
    op.create_table(
        'cases',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('case_number', sa.String(32), nullable=False, unique=True),
        sa.Column(
            'user_id', sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'assigned_clinician_id', sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True,
        ),
        _timestamp('assigned_at', nullable=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('case_type', sa.String(30), nullable=False, server_default='OTHER'),
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        sa.Column('primary_diagnosis', sa.String(500), nullable=True),
        sa.Column('symptoms', sa.Text(), nullable=True),
        sa.Column('current_medications', sa.Text(), nullable=True),
        sa.Column('allergies', sa.Text(), nullable=True),
        sa.Column('medical_history', sa.Text(), nullable=True),
        sa.Column('intake_data', sa.JSON(), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        _timestamp('submitted_at', nullable=True),
        _timestamp('completed_at', nullable=True),
    )
    op.create_index('idx_cases_user_updated', 'cases', ['user_id', 'updated_at'])
    op.create_index('idx_cases_assignee_status', 'cases', ['assigned_clinician_id', 'status'])
    op.create_index('idx_cases_status', 'cases', ['status'])

    op.create_table(
        'case_documents',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'case_id', sa.Uuid(),
            sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_type', sa.String(100), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('storage_key', sa.String(500), nullable=False),
        sa.Column('checksum_sha256', sa.String(64), nullable=False),
        sa.Column(
            'uploaded_by_id', sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True,
        ),
        _timestamp('uploaded_at'),
    )
    op.create_index('ix_case_documents_case_id', 'case_documents', ['case_id'])

    op.create_table(
        'case_reports',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'case_id', sa.Uuid(),
            sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'author_id', sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('report_type', sa.String(30), nullable=False),
        sa.Column('content', sa.JSON(), nullable=False),
        sa.Column('reviewer_notes', sa.Text(), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
    )
    op.create_index('ix_case_reports_case_id', 'case_reports', ['case_id'])
    op.create_index('ix_case_reports_author_id', 'case_reports', ['author_id'])

    # ==========================================================================
    # Messaging
    # ==========================================================================
    op.create_table(
        'messages',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'case_id', sa.Uuid(),
            sa.ForeignKey('cases.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'sender_id', sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp('created_at'),
    )
    op.create_index('idx_messages_case_created', 'messages', ['case_id', 'created_at'])
    op.create_index('idx_messages_case_unread', 'messages', ['case_id', 'is_read'])

    op.create_table(
        'message_attachments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'message_id', sa.Uuid(),
            sa.ForeignKey('messages.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_type', sa.String(100), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('storage_key', sa.String(500), nullable=False),
        _timestamp('created_at'),
    )
    op.create_index('ix_message_attachments_message_id', 'message_attachments', ['message_id'])

    # ==========================================================================
    # Patient extras
    # ==========================================================================
    op.create_table(
        'saved_trials',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'user_id', sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('trial_id', sa.String(100), nullable=False),
        sa.Column('trial_title', sa.String(500), nullable=False),
        sa.Column('trial_data', sa.JSON(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _timestamp('saved_at'),
        sa.UniqueConstraint('user_id', 'trial_id', name='uq_saved_trials_user_trial'),
    )

    # ==========================================================================
    # Audit & public forms
    # ==========================================================================
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'user_id', sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('resource', sa.String(50), nullable=False),
        sa.Column('resource_id', sa.String(64), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
        _timestamp('created_at'),
    )
    op.create_index('idx_audit_created', 'audit_logs', ['created_at'])
    op.create_index('idx_audit_user_created', 'audit_logs', ['user_id', 'created_at'])

    op.create_table(
        'contact_submissions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('first_name', sa.String(50), nullable=False),
        sa.Column('last_name', sa.String(50), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('category', sa.String(20), nullable=False, server_default='OTHER'),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column(
            'user_id', sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True,
        ),
        _timestamp('created_at'),
    )

    op.create_table(
        'newsletter_subscriptions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp('subscribed_at'),
        _timestamp('unsubscribed_at', nullable=True),
    )


def downgrade() -> None:
    """Drop portal tables in dependency order."""
    op.drop_table('newsletter_subscriptions')
    op.drop_table('contact_submissions')
    op.drop_index('idx_audit_user_created', table_name='audit_logs')
    op.drop_index('idx_audit_created', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_table('saved_trials')
    op.drop_index('ix_message_attachments_message_id', table_name='message_attachments')
    op.drop_table('message_attachments')
    op.drop_index('idx_messages_case_unread', table_name='messages')
    op.drop_index('idx_messages_case_created', table_name='messages')
    op.drop_table('messages')
    op.drop_index('ix_case_reports_author_id', table_name='case_reports')
    op.drop_index('ix_case_reports_case_id', table_name='case_reports')
    op.drop_table('case_reports')
    op.drop_index('ix_case_documents_case_id', table_name='case_documents')
    op.drop_table('case_documents')
    op.drop_index('idx_cases_status', table_name='cases')
    op.drop_index('idx_cases_assignee_status', table_name='cases')
    op.drop_index('idx_cases_user_updated', table_name='cases')
    op.drop_table('cases')
    op.drop_table('users')
