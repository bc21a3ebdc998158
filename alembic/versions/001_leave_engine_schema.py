"""Leave engine schema

Revision ID: 001_leave_engine_schema
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_leave_engine_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

APPLICATION_STATUSES = ('PENDING_SUPERVISOR', 'PENDING_HR', 'PENDING_CEO', 'APPROVED', 'REJECTED', 'CANCELLED')


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text('CURRENT_TIMESTAMP'),
        nullable=False,
    )


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        # Shared by three columns, so the type is created once up front
        postgresql.ENUM(*APPLICATION_STATUSES, name='applicationstatus').create(bind, checkfirst=True)
        status_type = postgresql.ENUM(*APPLICATION_STATUSES, name='applicationstatus', create_type=False)
    else:
        status_type = sa.Enum(*APPLICATION_STATUSES, name='applicationstatus')

    op.create_table(
        'companies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_index(op.f('ix_companies_id'), 'companies', ['id'], unique=False)

    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('gender', sa.String(length=20), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_employees_id'), 'employees', ['id'], unique=False)
    op.create_index(op.f('ix_employees_company_id'), 'employees', ['company_id'], unique=False)
    op.create_index(op.f('ix_employees_email'), 'employees', ['email'], unique=True)

    op.create_table(
        'employments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('manager_id', sa.Integer(), nullable=True),
        sa.Column('job_level', sa.String(length=50), nullable=True),
        sa.Column('monthly_salary', sa.Numeric(12, 2), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['manager_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_employments_id'), 'employments', ['id'], unique=False)
    op.create_index(op.f('ix_employments_employee_id'), 'employments', ['employee_id'], unique=False)
    op.create_index(op.f('ix_employments_company_id'), 'employments', ['company_id'], unique=False)
    op.create_index(op.f('ix_employments_manager_id'), 'employments', ['manager_id'], unique=False)
    op.create_index('ix_employments_employee_active', 'employments', ['employee_id', 'is_active'], unique=False)

    op.create_table(
        'public_holidays',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_recurring', sa.Boolean(), nullable=False),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'date', name='uq_public_holiday_company_date')
    )
    op.create_index(op.f('ix_public_holidays_id'), 'public_holidays', ['id'], unique=False)
    op.create_index(op.f('ix_public_holidays_company_id'), 'public_holidays', ['company_id'], unique=False)
    op.create_index(op.f('ix_public_holidays_date'), 'public_holidays', ['date'], unique=False)

    op.create_table(
        'leave_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('saturday_half_day', sa.Boolean(), nullable=False),
        sa.Column('sunday_off', sa.Boolean(), nullable=False),
        sa.Column('fiscal_year_start_month', sa.Integer(), nullable=False),
        sa.Column('accrual_basis', sa.Enum('ANNIVERSARY', 'CALENDAR_YEAR', name='accrualbasis'), nullable=False),
        sa.Column('annual_leave_base_days', sa.Numeric(6, 2), nullable=False),
        sa.Column('accrual_divisor', sa.Integer(), nullable=False),
        sa.Column('increment_period_years', sa.Integer(), nullable=False),
        sa.Column('increment_amount', sa.Numeric(5, 2), nullable=False),
        sa.Column('max_annual_leave_cap', sa.Numeric(6, 2), nullable=True),
        sa.Column('require_ceo_approval_for_managers', sa.Boolean(), nullable=False),
        sa.Column('enable_leave_expiry', sa.Boolean(), nullable=False),
        sa.Column('expiry_notification_days', sa.Integer(), nullable=False),
        sa.Column('enable_encashment', sa.Boolean(), nullable=False),
        sa.Column('encashment_salary_divisor', sa.Integer(), nullable=False),
        sa.Column('max_encashment_days', sa.Numeric(6, 2), nullable=True),
        sa.Column('encashment_rounding', sa.Enum('ROUND', 'FLOOR', 'CEIL', name='encashmentrounding'), nullable=False),
        sa.Column('policy_version', sa.Integer(), nullable=False),
        sa.Column('policy_effective_date', sa.Date(), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', name='uq_leave_settings_company')
    )
    op.create_index(op.f('ix_leave_settings_id'), 'leave_settings', ['id'], unique=False)

    op.create_table(
        'leave_types',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('code', sa.String(length=30), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('default_allowance_days', sa.Numeric(6, 2), nullable=False),
        sa.Column('increment_amount', sa.Numeric(5, 2), nullable=False),
        sa.Column('increment_period_years', sa.Integer(), nullable=False),
        sa.Column('max_cap', sa.Numeric(6, 2), nullable=True),
        sa.Column('allows_carry_over', sa.Boolean(), nullable=False),
        sa.Column('carry_over_expiry_months', sa.Integer(), nullable=True),
        sa.Column('applicable_gender', sa.String(length=10), nullable=False),
        sa.Column('requires_attachment', sa.Boolean(), nullable=False),
        sa.Column('is_paid', sa.Boolean(), nullable=False),
        sa.Column('uses_calendar_days', sa.Boolean(), nullable=False),
        sa.Column('accrues_gradually', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'code', name='uq_leave_types_company_code')
    )
    op.create_index(op.f('ix_leave_types_id'), 'leave_types', ['id'], unique=False)
    op.create_index(op.f('ix_leave_types_company_id'), 'leave_types', ['company_id'], unique=False)

    op.create_table(
        'leave_balances',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('leave_type_id', sa.Integer(), nullable=False),
        sa.Column('fiscal_year', sa.Integer(), nullable=False),
        sa.Column('total_entitlement', sa.Numeric(6, 2), nullable=False),
        sa.Column('used_days', sa.Numeric(6, 2), nullable=False),
        sa.Column('pending_days', sa.Numeric(6, 2), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['leave_type_id'], ['leave_types.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_id', 'leave_type_id', 'fiscal_year', name='uq_leave_balances_employee_type_year'),
        sa.CheckConstraint('used_days >= 0', name='check_leave_balances_used_non_negative'),
        sa.CheckConstraint('pending_days >= 0', name='check_leave_balances_pending_non_negative')
    )
    op.create_index(op.f('ix_leave_balances_id'), 'leave_balances', ['id'], unique=False)
    op.create_index(op.f('ix_leave_balances_company_id'), 'leave_balances', ['company_id'], unique=False)
    op.create_index(op.f('ix_leave_balances_employee_id'), 'leave_balances', ['employee_id'], unique=False)
    op.create_index(op.f('ix_leave_balances_leave_type_id'), 'leave_balances', ['leave_type_id'], unique=False)
    op.create_index(op.f('ix_leave_balances_fiscal_year'), 'leave_balances', ['fiscal_year'], unique=False)

    op.create_table(
        'leave_applications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('leave_type_id', sa.Integer(), nullable=False),
        sa.Column('fiscal_year', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('return_date', sa.Date(), nullable=False),
        sa.Column('requested_days', sa.Numeric(6, 2), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('attachment_url', sa.String(length=500), nullable=True),
        sa.Column('relief_officer_id', sa.Integer(), nullable=True),
        sa.Column(
            'current_status',
            status_type,
            nullable=False,
            server_default='PENDING_SUPERVISOR',
        ),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['leave_type_id'], ['leave_types.id'], ),
        sa.ForeignKeyConstraint(['relief_officer_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('start_date <= end_date', name='check_start_date_le_end_date')
    )
    op.create_index(op.f('ix_leave_applications_id'), 'leave_applications', ['id'], unique=False)
    op.create_index(op.f('ix_leave_applications_company_id'), 'leave_applications', ['company_id'], unique=False)
    op.create_index(op.f('ix_leave_applications_employee_id'), 'leave_applications', ['employee_id'], unique=False)
    op.create_index(op.f('ix_leave_applications_leave_type_id'), 'leave_applications', ['leave_type_id'], unique=False)
    op.create_index(
        'ix_leave_applications_employee_dates', 'leave_applications', ['employee_id', 'start_date', 'end_date'],
        unique=False,
    )

    op.create_table(
        'leave_approval_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('approver_id', sa.Integer(), nullable=False),
        sa.Column('role_at_time', sa.String(length=20), nullable=False),
        sa.Column('action', sa.Enum('APPROVED', 'REJECTED', 'CANCELLED', name='approvalaction'), nullable=False),
        sa.Column('from_status', status_type, nullable=False),
        sa.Column('to_status', status_type, nullable=False),
        sa.Column('comments', sa.Text(), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['application_id'], ['leave_applications.id'], ),
        sa.ForeignKeyConstraint(['approver_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_leave_approval_logs_id'), 'leave_approval_logs', ['id'], unique=False)
    op.create_index(op.f('ix_leave_approval_logs_application_id'), 'leave_approval_logs', ['application_id'], unique=False)

    op.create_table(
        'leave_recalls',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('initiated_by_id', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('recall_date', sa.Date(), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'ACCEPTED', 'DECLINED', name='recallstatus'), nullable=False),
        sa.Column('employee_response', sa.Text(), nullable=True),
        sa.Column('actual_return_date', sa.Date(), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('days_restored', sa.Numeric(6, 2), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['application_id'], ['leave_applications.id'], ),
        sa.ForeignKeyConstraint(['initiated_by_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_leave_recalls_id'), 'leave_recalls', ['id'], unique=False)
    op.create_index(op.f('ix_leave_recalls_company_id'), 'leave_recalls', ['company_id'], unique=False)
    op.create_index(op.f('ix_leave_recalls_application_id'), 'leave_recalls', ['application_id'], unique=False)
    op.create_index(
        'uq_leave_recalls_one_pending',
        'leave_recalls',
        ['application_id'],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
        sqlite_where=sa.text("status = 'PENDING'"),
    )

    op.create_table(
        'unpaid_leave_usages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('fiscal_year', sa.Integer(), nullable=False),
        sa.Column('usage_count', sa.Integer(), nullable=False),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_id', 'company_id', 'fiscal_year', name='uq_unpaid_usage_employee_company_year'),
        sa.CheckConstraint('usage_count <= 2', name='check_unpaid_usage_count_max')
    )
    op.create_index(op.f('ix_unpaid_leave_usages_id'), 'unpaid_leave_usages', ['id'], unique=False)
    op.create_index(op.f('ix_unpaid_leave_usages_employee_id'), 'unpaid_leave_usages', ['employee_id'], unique=False)

    op.create_table(
        'leave_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('balance_id', sa.Integer(), nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=20), nullable=False),
        sa.Column('delta_days', sa.Numeric(6, 2), nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
        sa.ForeignKeyConstraint(['balance_id'], ['leave_balances.id'], ),
        sa.ForeignKeyConstraint(['application_id'], ['leave_applications.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['actor_id'], ['employees.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_leave_transactions_id'), 'leave_transactions', ['id'], unique=False)
    op.create_index(op.f('ix_leave_transactions_company_id'), 'leave_transactions', ['company_id'], unique=False)
    op.create_index(op.f('ix_leave_transactions_balance_id'), 'leave_transactions', ['balance_id'], unique=False)
    op.create_index(op.f('ix_leave_transactions_application_id'), 'leave_transactions', ['application_id'], unique=False)


def downgrade() -> None:
    op.drop_table('leave_transactions')
    op.drop_table('unpaid_leave_usages')
    op.drop_index('uq_leave_recalls_one_pending', table_name='leave_recalls')
    op.drop_table('leave_recalls')
    op.drop_table('leave_approval_logs')
    op.drop_table('leave_applications')
    op.drop_table('leave_balances')
    op.drop_table('leave_types')
    op.drop_table('leave_settings')
    op.drop_table('public_holidays')
    op.drop_table('employments')
    op.drop_table('employees')
    op.drop_table('companies')

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for enum_name in ('recallstatus', 'approvalaction', 'applicationstatus', 'encashmentrounding', 'accrualbasis'):
            sa.Enum(name=enum_name).drop(bind, checkfirst=True)
