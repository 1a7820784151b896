"""tutoring center core tables

Revision ID: 20261019_initial
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


salary_type = sa.Enum('FIXED', 'PER_STUDENT', name='salarytype')
attendance_status = sa.Enum('PRESENT', 'ABSENT', 'LATE', name='attendancestatus')
performance_status = sa.Enum('GOOD', 'NORMAL', 'BAD', 'ABSENT', name='performancestatus')
notification_type = sa.Enum(
    'ATTENDANCE_REMINDER', 'PERFORMANCE_REMINDER', 'PAYMENT_REMINDER',
    'TEST_RESULT_REMINDER', 'BROADCAST', 'OTHER',
    name='notificationtype',
)
notification_status = sa.Enum('WAITING', 'SENDING', 'SENT', 'ERROR', name='notificationstatus')


def upgrade() -> None:
    # Teachers
    op.create_table(
        'teachers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('phone_number', sa.String(20), nullable=True),
        sa.Column('salary_type', salary_type, nullable=False),
        sa.Column('salary', sa.Numeric(14, 2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
    )

    # Groups
    op.create_table(
        'groups',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('teacher_id', sa.Integer(), sa.ForeignKey('teachers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('price', sa.Numeric(14, 2), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_groups_teacher_id', 'groups', ['teacher_id'])

    # Students
    op.create_table(
        'students',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('phone_number', sa.String(20), nullable=True),
        sa.Column('balance', sa.Numeric(14, 2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('frozen', sa.Boolean(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False),
        sa.Column('group_id', sa.Integer(), sa.ForeignKey('groups.id', ondelete='SET NULL'), nullable=True),
        sa.Column('came_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_students_is_active', 'students', ['is_active'])
    op.create_index('ix_students_group_id', 'students', ['group_id'])

    # Parents
    op.create_table(
        'parents',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('telegram_id', sa.String(64), nullable=False),
        sa.Column('phone_number', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_parents_student_id', 'parents', ['student_id'])
    op.create_index('ix_parents_telegram_id', 'parents', ['telegram_id'])

    # Attendances (одна отметка на ученика, группу и день)
    op.create_table(
        'attendances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('group_id', sa.Integer(), sa.ForeignKey('groups.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', attendance_status, nullable=False),
        sa.Column('performance', performance_status, nullable=False),
        sa.Column('performance_reported', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('student_id', 'group_id', 'date', name='uq_attendance_student_group_date'),
    )
    op.create_index('ix_attendances_student_id', 'attendances', ['student_id'])
    op.create_index('ix_attendances_group_id', 'attendances', ['group_id'])
    op.create_index('ix_attendances_date', 'attendances', ['date'])

    # Notifications (журнал, строки не удаляются)
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('type', notification_type, nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('telegram_id', sa.String(64), nullable=False),
        sa.Column('phone_number', sa.String(20), nullable=True),
        sa.Column('sms_fields', sa.JSON(), nullable=True),
        sa.Column('sms_variant', sa.String(20), nullable=True),
        sa.Column('status', notification_status, nullable=False),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_status', 'notifications', ['status'])
    op.create_index('ix_notifications_student_id', 'notifications', ['student_id'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])

    # Configs
    op.create_table(
        'configs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('key', 'user_id', name='uq_config_key_user'),
    )
    op.create_index('ix_configs_key', 'configs', ['key'])


def downgrade() -> None:
    op.drop_table('configs')
    op.drop_table('notifications')
    op.drop_table('attendances')
    op.drop_table('parents')
    op.drop_table('students')
    op.drop_table('groups')
    op.drop_table('teachers')

    bind = op.get_bind()
    for enum_type in (notification_status, notification_type, performance_status, attendance_status, salary_type):
        enum_type.drop(bind, checkfirst=True)
