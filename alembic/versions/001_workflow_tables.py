"""Add workflow request, chain step and notification tables

Revision ID: 001_workflow_tables
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_workflow_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLE = sa.Enum('hod', 'dean', 'vc', 'president', 'hr', name='role', native_enum=False, length=20)
REQUEST_STATUS = sa.Enum(
    'Pending', 'Forwarded', 'Approved', 'Rejected', 'Returned',
    name='requeststatus', native_enum=False, length=20,
)


def upgrade() -> None:
    if 'workflow_requests' in sa.inspect(op.get_bind()).get_table_names():
        return
    op.create_table(
        'workflow_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.Enum('leave', 'review', name='requestkind', native_enum=False, length=20), nullable=False),
        sa.Column(
            'category',
            sa.Enum('standard', 'medical', 'faculty', 'hod', name='category', native_enum=False, length=20),
            nullable=False,
        ),
        sa.Column('subject_id', sa.String(length=64), nullable=False),
        sa.Column('subject_name', sa.String(length=200), nullable=True),
        sa.Column(
            'subject_level',
            sa.Enum('department', 'faculty', name='subjectlevel', native_enum=False, length=20),
            nullable=False,
        ),
        sa.Column('department', sa.String(length=100), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('total_units', sa.Integer(), nullable=False),
        sa.Column('period', sa.String(length=20), nullable=True),
        sa.Column('status', REQUEST_STATUS, nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('payload_json', sa.JSON(), nullable=True),
        sa.Column('attachments', sa.JSON(), nullable=True),
        sa.Column('paid_units', sa.Integer(), nullable=True),
        sa.Column('unpaid_units', sa.Integer(), nullable=True),
        sa.Column(
            'leave_category',
            sa.Enum('medical', 'unpaid', name='leavecategory', native_enum=False, length=20),
            nullable=True,
        ),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('total_units >= 0', name='check_total_units_non_negative'),
        sa.CheckConstraint(
            'start_date IS NULL OR end_date IS NULL OR start_date <= end_date',
            name='check_start_date_le_end_date',
        ),
    )
    op.create_index(op.f('ix_workflow_requests_id'), 'workflow_requests', ['id'], unique=False)
    op.create_index(op.f('ix_workflow_requests_kind'), 'workflow_requests', ['kind'], unique=False)
    op.create_index(op.f('ix_workflow_requests_category'), 'workflow_requests', ['category'], unique=False)
    op.create_index(op.f('ix_workflow_requests_subject_id'), 'workflow_requests', ['subject_id'], unique=False)
    op.create_index(op.f('ix_workflow_requests_status'), 'workflow_requests', ['status'], unique=False)
    op.create_index('ix_workflow_requests_subject_status', 'workflow_requests', ['subject_id', 'status'], unique=False)

    op.create_table(
        'chain_steps',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('request_id', sa.Integer(), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('role', ROLE, nullable=False),
        sa.Column(
            'status',
            sa.Enum('pending', 'approved', 'rejected', 'returned', name='stepstatus', native_enum=False, length=20),
            nullable=False,
        ),
        sa.Column('actor_name', sa.String(length=200), nullable=True),
        sa.Column('acted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('meta_json', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['request_id'], ['workflow_requests.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('request_id', 'seq', name='uq_chain_steps_request_seq'),
    )
    op.create_index(op.f('ix_chain_steps_id'), 'chain_steps', ['id'], unique=False)
    op.create_index(op.f('ix_chain_steps_request_id'), 'chain_steps', ['request_id'], unique=False)

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('request_id', sa.Integer(), nullable=False),
        sa.Column('new_status', REQUEST_STATUS, nullable=False),
        sa.Column('acting_role', ROLE, nullable=False),
        sa.Column('recipient_role', ROLE, nullable=True),
        sa.Column('recipient_subject_id', sa.String(length=64), nullable=True),
        sa.Column('message', sa.String(length=255), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['request_id'], ['workflow_requests.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_notifications_id'), 'notifications', ['id'], unique=False)
    op.create_index(op.f('ix_notifications_request_id'), 'notifications', ['request_id'], unique=False)
    op.create_index('ix_notifications_recipient_read', 'notifications', ['recipient_role', 'is_read'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_notifications_recipient_read', table_name='notifications')
    op.drop_index(op.f('ix_notifications_request_id'), table_name='notifications')
    op.drop_index(op.f('ix_notifications_id'), table_name='notifications')
    op.drop_table('notifications')
    op.drop_index(op.f('ix_chain_steps_request_id'), table_name='chain_steps')
    op.drop_index(op.f('ix_chain_steps_id'), table_name='chain_steps')
    op.drop_table('chain_steps')
    op.drop_index('ix_workflow_requests_subject_status', table_name='workflow_requests')
    op.drop_index(op.f('ix_workflow_requests_status'), table_name='workflow_requests')
    op.drop_index(op.f('ix_workflow_requests_subject_id'), table_name='workflow_requests')
    op.drop_index(op.f('ix_workflow_requests_category'), table_name='workflow_requests')
    op.drop_index(op.f('ix_workflow_requests_kind'), table_name='workflow_requests')
    op.drop_index(op.f('ix_workflow_requests_id'), table_name='workflow_requests')
    op.drop_table('workflow_requests')
