"""Add enrollment_requests table for the request/review workflow

Revision ID: 002_add_enrollment_requests
Revises: 001_initial
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '002_add_enrollment_requests'
down_revision = '001_initial'
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create the enum type first
    request_status = postgresql.ENUM('pending', 'approved', 'rejected', name='enrollment_request_status', create_type=False)
    request_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        'enrollment_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('course_id', sa.Integer(), nullable=False),
        sa.Column(
            'status',
            postgresql.ENUM('pending', 'approved', 'rejected', name='enrollment_request_status', create_type=False),
            nullable=False,
            server_default='pending'
        ),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('admin_note', sa.Text(), nullable=True),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reviewed_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('student_id', 'course_id', name='unique_enrollment_request')
    )
    op.create_index('ix_enrollment_requests_id', 'enrollment_requests', ['id'])
    op.create_index('ix_enrollment_requests_student_id', 'enrollment_requests', ['student_id'])
    op.create_index('ix_enrollment_requests_course_id', 'enrollment_requests', ['course_id'])
    op.create_index('ix_enrollment_requests_status', 'enrollment_requests', ['status'])
    op.create_index('ix_enrollment_requests_created_at', 'enrollment_requests', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_enrollment_requests_created_at', table_name='enrollment_requests')
    op.drop_index('ix_enrollment_requests_status', table_name='enrollment_requests')
    op.drop_index('ix_enrollment_requests_course_id', table_name='enrollment_requests')
    op.drop_index('ix_enrollment_requests_student_id', table_name='enrollment_requests')
    op.drop_index('ix_enrollment_requests_id', table_name='enrollment_requests')
    op.drop_table('enrollment_requests')
    op.execute('DROP TYPE IF EXISTS enrollment_request_status')
