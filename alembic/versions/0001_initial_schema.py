"""initial school management schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

Money = sa.Numeric(12, 2, asdecimal=False)


def _base_columns():
    return [
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def _indexes(table: str, columns, unique=()):
    for column in ('id', 'created_at') + tuple(columns):
        op.create_index(f'ix_{table}_{column}', table, [column], unique=column in unique)


def upgrade() -> None:
    op.create_table(
        'teachers',
        *_base_columns(),
        sa.Column('first_name', sa.String(50), nullable=False),
        sa.Column('last_name', sa.String(50), nullable=False),
        sa.Column('email', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(20)),
        sa.Column('address', sa.String(500)),
        sa.Column('blood_type', sa.String(5)),
        sa.Column('sex', sa.String(10), nullable=False),
        sa.Column('birthday', sa.DateTime()),
        sa.Column('salary', Money),
        sa.Column('hire_date', sa.DateTime()),
        sa.Column('qualification', sa.String(200)),
        sa.Column('experience_years', sa.Integer()),
        sa.Column('subjects', sa.JSON()),
        sa.Column('status', sa.String(20), nullable=False),
    )
    _indexes('teachers', ['email', 'status'], unique=['email'])

    op.create_table(
        'users',
        *_base_columns(),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('email', sa.String(100), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(30), nullable=False),
        sa.Column('department', sa.String(30), nullable=False),
        sa.Column('permissions', sa.JSON()),
        sa.Column('first_name', sa.String(50)),
        sa.Column('last_name', sa.String(50)),
        sa.Column('phone', sa.String(20)),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_login', sa.DateTime()),
        sa.Column('login_attempts', sa.Integer(), nullable=False),
        sa.Column('lock_until', sa.DateTime()),
        sa.Column('password_changed_at', sa.DateTime()),
        sa.Column('teacher_profile_id', sa.Uuid(), sa.ForeignKey('teachers.id')),
    )
    _indexes('users', ['username', 'email', 'role', 'department'], unique=['username', 'email'])

    op.create_table(
        'classes',
        *_base_columns(),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('grade_level', sa.Integer(), nullable=False),
        sa.Column('section', sa.String(10)),
        sa.Column('academic_year', sa.String(10), nullable=False),
        sa.Column('semester', sa.String(20)),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('supervisor_id', sa.Uuid(), sa.ForeignKey('teachers.id')),
    )
    _indexes('classes', ['name', 'grade_level'], unique=['name'])

    op.create_table(
        'students',
        *_base_columns(),
        sa.Column('student_code', sa.String(20), nullable=False),
        sa.Column('first_name', sa.String(50), nullable=False),
        sa.Column('last_name', sa.String(50), nullable=False),
        sa.Column('email', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(20)),
        sa.Column('address', sa.String(500)),
        sa.Column('sex', sa.String(10), nullable=False),
        sa.Column('birthday', sa.DateTime()),
        sa.Column('class_id', sa.Uuid(), sa.ForeignKey('classes.id')),
        sa.Column('grade_level', sa.Integer(), nullable=False),
        sa.Column('gpa', sa.Float()),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('emergency_contact', sa.JSON()),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id')),
        sa.Column('parent_user_id', sa.Uuid(), sa.ForeignKey('users.id')),
    )
    _indexes(
        'students',
        ['student_code', 'email', 'class_id', 'grade_level', 'status', 'user_id', 'parent_user_id'],
        unique=['student_code', 'email'],
    )

    op.create_table(
        'sessions',
        *_base_columns(),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('session_id', sa.String(64), nullable=False),
        sa.Column('refresh_token_hash', sa.String(64)),
        sa.Column('ip_address', sa.String(45)),
        sa.Column('user_agent', sa.String(500)),
        sa.Column('device_info', sa.JSON()),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('last_activity', sa.DateTime()),
        sa.Column('login_time', sa.DateTime()),
        sa.Column('logout_time', sa.DateTime()),
        sa.Column('department', sa.String(30)),
        sa.Column('role', sa.String(30)),
    )
    _indexes('sessions', ['user_id', 'session_id', 'is_active'], unique=['session_id'])

    op.create_table(
        'fees',
        *_base_columns(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('amount', Money, nullable=False),
        sa.Column('academic_year', sa.String(10), nullable=False),
        sa.Column('semester', sa.String(10), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('due_date', sa.DateTime()),
        sa.Column('late_fee_amount', Money, nullable=False),
        sa.Column('late_fee_days', sa.Integer(), nullable=False),
        sa.Column('applicable_classes', sa.JSON()),
        sa.Column('created_by', sa.Uuid(), sa.ForeignKey('users.id')),
    )
    _indexes('fees', ['category', 'academic_year', 'is_active'])

    op.create_table(
        'fee_assignments',
        *_base_columns(),
        sa.Column('student_id', sa.Uuid(), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('fee_id', sa.Uuid(), sa.ForeignKey('fees.id'), nullable=False),
        sa.Column('assigned_amount', Money, nullable=False),
        sa.Column('due_date', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('paid_amount', Money, nullable=False),
        sa.Column('remaining_amount', Money, nullable=False),
        sa.Column('late_fee_applied', sa.Boolean(), nullable=False),
        sa.Column('late_fee_amount', Money, nullable=False),
        sa.Column('notes', sa.Text()),
        sa.Column('assigned_by', sa.Uuid(), sa.ForeignKey('users.id')),
    )
    _indexes('fee_assignments', ['student_id', 'fee_id', 'due_date', 'status'])

    op.create_table(
        'payments',
        *_base_columns(),
        sa.Column('fee_assignment_id', sa.Uuid(), sa.ForeignKey('fee_assignments.id'), nullable=False),
        sa.Column('student_id', sa.Uuid(), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('amount', Money, nullable=False),
        sa.Column('payment_date', sa.DateTime(), nullable=False),
        sa.Column('payment_method', sa.String(20), nullable=False),
        sa.Column('reference_number', sa.String(100)),
        sa.Column('receipt_number', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('notes', sa.Text()),
        sa.Column('processed_by', sa.Uuid(), sa.ForeignKey('users.id')),
        sa.Column('bank_details', sa.JSON()),
    )
    _indexes(
        'payments',
        ['fee_assignment_id', 'student_id', 'payment_date', 'payment_method', 'receipt_number', 'status'],
        unique=['receipt_number'],
    )

    op.create_table(
        'payment_reminders',
        *_base_columns(),
        sa.Column('student_id', sa.Uuid(), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('fee_assignment_id', sa.Uuid(), sa.ForeignKey('fee_assignments.id'), nullable=False),
        sa.Column('reminder_type', sa.String(20), nullable=False),
        sa.Column('message', sa.String(500), nullable=False),
        sa.Column('priority', sa.String(10), nullable=False),
        sa.Column('days_overdue', sa.Integer(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('read_at', sa.DateTime()),
        sa.Column('is_dismissed', sa.Boolean(), nullable=False),
        sa.Column('dismissed_at', sa.DateTime()),
    )
    _indexes('payment_reminders', ['student_id', 'fee_assignment_id'])

    op.create_table(
        'announcements',
        *_base_columns(),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('audience', sa.String(30), nullable=False),
        sa.Column('priority', sa.String(10), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('is_pinned', sa.Boolean(), nullable=False),
        sa.Column('scheduled_date', sa.DateTime()),
        sa.Column('class_id', sa.Uuid(), sa.ForeignKey('classes.id')),
        sa.Column('created_by', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
    )
    _indexes('announcements', ['audience', 'status', 'created_by'])

    op.create_table(
        'events',
        *_base_columns(),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('location', sa.String(200), nullable=False),
        sa.Column('category', sa.String(40), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('audience', sa.String(60), nullable=False),
        sa.Column('class_id', sa.Uuid(), sa.ForeignKey('classes.id')),
        sa.Column('created_by', sa.Uuid(), sa.ForeignKey('users.id'), nullable=False),
    )
    _indexes('events', ['start_time', 'category', 'status', 'audience'])

    op.create_table(
        'audit_logs',
        *_base_columns(),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id')),
        sa.Column('action', sa.String(40), nullable=False),
        sa.Column('resource', sa.String(40), nullable=False),
        sa.Column('resource_id', sa.String(64)),
        sa.Column('resource_model', sa.String(40)),
        sa.Column('details', sa.JSON()),
        sa.Column('ip_address', sa.String(45)),
        sa.Column('user_agent', sa.String(500)),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('error_message', sa.Text()),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('department', sa.String(30)),
        sa.Column('role', sa.String(30)),
    )
    _indexes('audit_logs', ['user_id', 'action', 'success', 'timestamp', 'department'])


def downgrade() -> None:
    for table in (
        'audit_logs', 'events', 'announcements', 'payment_reminders', 'payments',
        'fee_assignments', 'fees', 'sessions', 'students', 'classes', 'users', 'teachers',
    ):
        op.drop_table(table)
