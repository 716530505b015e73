"""initial scoring schema

Revision ID: 3b9e41c7d2a0
Revises: 
Create Date: 2026-10-19 09:12:40.318207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b9e41c7d2a0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=True),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_employees_company_id', 'employees', ['company_id'])
    op.create_index('ix_employees_location_id', 'employees', ['location_id'])

    op.create_table(
        'shifts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=True),
        sa.Column('shift_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
    )
    op.create_index('ix_shifts_company_id', 'shifts', ['company_id'])
    op.create_index('ix_shifts_shift_date', 'shifts', ['shift_date'])

    op.create_table(
        'shift_assignments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('shift_id', sa.Integer(), sa.ForeignKey('shifts.id'), nullable=False),
        sa.Column('staff_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('approval_status', sa.String(), nullable=False, server_default='pending'),
    )

    op.create_table(
        'attendance_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('staff_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('shift_id', sa.Integer(), sa.ForeignKey('shifts.id'), nullable=True),
        sa.Column('check_in_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('check_out_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_late', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('late_minutes', sa.Integer(), nullable=True),
    )
    op.create_index('ix_attendance_logs_company_id', 'attendance_logs', ['company_id'])

    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('assigned_to', sa.Integer(), sa.ForeignKey('employees.id'), nullable=True),
        sa.Column('status', sa.String(), nullable=True, server_default='pending'),
        sa.Column('completed_late', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_tasks_company_id', 'tasks', ['company_id'])

    op.create_table(
        'task_completions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('task_id', sa.Integer(), sa.ForeignKey('tasks.id'), nullable=False),
        sa.Column('completed_by_employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=True),
        sa.Column('occurrence_date', sa.Date(), nullable=False),
        sa.Column('completed_late', sa.Boolean(), nullable=True),
    )
    op.create_index('ix_task_completions_company_id', 'task_completions', ['company_id'])

    op.create_table(
        'test_submissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=True),
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column('passed', sa.Boolean(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_test_submissions_company_id', 'test_submissions', ['company_id'])

    op.create_table(
        'staff_audits',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=True),
        sa.Column('auditor_id', sa.Integer(), nullable=True),
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column('audit_date', sa.Date(), nullable=False),
    )
    op.create_index('ix_staff_audits_company_id', 'staff_audits', ['company_id'])

    op.create_table(
        'staff_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('staff_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('event_date', sa.Date(), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=True),
    )
    op.create_index('ix_staff_events_company_id', 'staff_events', ['company_id'])

    op.create_table(
        'performance_monthly_scores',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id'), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('month', sa.Date(), nullable=False),
        sa.Column('effective_score', sa.Float(), nullable=True),
        sa.Column('used_components', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('attendance_score', sa.Float(), nullable=True),
        sa.Column('punctuality_score', sa.Float(), nullable=True),
        sa.Column('task_score', sa.Float(), nullable=True),
        sa.Column('test_score', sa.Float(), nullable=True),
        sa.Column('review_score', sa.Float(), nullable=True),
        sa.Column('warning_penalty', sa.Float(), nullable=False, server_default='0'),
        sa.Column('rank_in_location', sa.Integer(), nullable=True),
        sa.UniqueConstraint('employee_id', 'month', name='uq_employee_month'),
    )
    op.create_index('ix_performance_monthly_scores_company_id', 'performance_monthly_scores', ['company_id'])


def downgrade() -> None:
    op.drop_table('performance_monthly_scores')
    op.drop_table('staff_events')
    op.drop_table('staff_audits')
    op.drop_table('test_submissions')
    op.drop_table('task_completions')
    op.drop_table('tasks')
    op.drop_table('attendance_logs')
    op.drop_table('shift_assignments')
    op.drop_table('shifts')
    op.drop_table('employees')
