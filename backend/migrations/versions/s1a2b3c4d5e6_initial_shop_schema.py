"""initial shop schema

Revision ID: s1a2b3c4d5e6
Revises:
Create Date: 2026-10-19 00:00:00.000000

This migration creates the complete shopdesk schema from scratch:
- shops / session_tokens: accounts (tenants), lockout bookkeeping, bearer sessions
- stock: sellable items with float quantities (units or kg)
- receipts: self-contained sale documents (JSON line items + shop snapshot)
- employees / attendance / salary_payments: staff records
- expense_categories / expenses: shop expenses
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 's1a2b3c4d5e6'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated_nullable: bool = True):
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=updated_nullable,
                  server_default=None if updated_nullable else sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    # ============================================================================
    # shops: tenant + sign-in identity
    # ============================================================================
    op.create_table(
        'shops',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('shop_name', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone_numbers', sa.JSON(), nullable=False),
        sa.Column('logo_url', sa.String(length=512), nullable=True),
        sa.Column('receipt_description', sa.Text(), nullable=True),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='UTC'),
        sa.Column('auth_provider', sa.String(length=32), nullable=False, server_default='password'),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('photo_url', sa.String(length=512), nullable=True),
        sa.Column('account_status', sa.String(length=16), nullable=False, server_default='active'),
        # Lockout bookkeeping: locked_until = locked_at + lock_duration_minutes
        sa.Column('failed_login_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_failed_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('locked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('lock_duration_minutes', sa.Integer(), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_password_change', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated_nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shops_email', 'shops', ['email'], unique=True)
    op.create_index('ix_shops_status', 'shops', ['account_status'])

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_shop_id', 'session_tokens', ['shop_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_shop_active', 'session_tokens', ['shop_id', 'is_revoked'])

    # ============================================================================
    # stock: matched to receipt lines by name (no foreign key from receipts)
    # ============================================================================
    op.create_table(
        'stock',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=120), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Float(), nullable=False, server_default='0'),
        sa.Column('quantity_unit', sa.String(length=16), nullable=False, server_default='units'),
        *_timestamps(updated_nullable=False),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_shop_id', 'stock', ['shop_id'])
    op.create_index('ix_stock_shop_name', 'stock', ['shop_id', 'name'])
    op.create_index('ix_stock_shop_category', 'stock', ['shop_id', 'category'])

    # ============================================================================
    # receipts
    # ============================================================================
    op.create_table(
        'receipts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.String(length=16), nullable=False),
        sa.Column('cashier_name', sa.String(length=120), nullable=False),
        sa.Column('manager_name', sa.String(length=120), nullable=True),
        sa.Column('shop_details', sa.JSON(), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('payment_method', sa.String(length=32), nullable=False, server_default='Cash'),
        sa.Column('cash_given_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('change_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('return_info', sa.JSON(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shop_id', 'transaction_id', name='uq_receipts_shop_transaction'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_receipts_shop_id', 'receipts', ['shop_id'])
    op.create_index('ix_receipts_timestamp', 'receipts', ['timestamp'])
    op.create_index('ix_receipts_shop_timestamp', 'receipts', ['shop_id', 'timestamp'])

    # ============================================================================
    # staff
    # ============================================================================
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('position', sa.String(length=120), nullable=False),
        sa.Column('contact', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('joining_date', sa.Date(), nullable=False),
        sa.Column('salary_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_employees_shop_id', 'employees', ['shop_id'])
    op.create_index('ix_employees_shop_name', 'employees', ['shop_id', 'name'])

    op.create_table(
        'attendance',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('employee_id', 'date', name='uq_attendance_employee_date'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_attendance_shop_id', 'attendance', ['shop_id'])
    op.create_index('ix_attendance_employee_id', 'attendance', ['employee_id'])
    op.create_index('ix_attendance_shop_date', 'attendance', ['shop_id', 'date'])

    op.create_table(
        'salary_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('employee_id', sa.Integer(), nullable=False),
        sa.Column('period', sa.String(length=7), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.ForeignKeyConstraint(['employee_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_salary_payments_shop_id', 'salary_payments', ['shop_id'])
    op.create_index('ix_salary_payments_employee_id', 'salary_payments', ['employee_id'])
    op.create_index('ix_salary_payments_shop_period', 'salary_payments', ['shop_id', 'period'])

    # ============================================================================
    # expenses
    # ============================================================================
    op.create_table(
        'expense_categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shop_id', 'name', name='uq_expense_categories_shop_name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_expense_categories_shop_id', 'expense_categories', ['shop_id'])

    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        # Nullable: deleting a category leaves its expenses uncategorized
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('expense_date', sa.Date(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ),
        sa.ForeignKeyConstraint(['category_id'], ['expense_categories.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_expenses_shop_id', 'expenses', ['shop_id'])
    op.create_index('ix_expenses_category_id', 'expenses', ['category_id'])
    op.create_index('ix_expenses_shop_date', 'expenses', ['shop_id', 'expense_date'])


def downgrade():
    op.drop_table('expenses')
    op.drop_table('expense_categories')
    op.drop_table('salary_payments')
    op.drop_table('attendance')
    op.drop_table('employees')
    op.drop_table('receipts')
    op.drop_table('stock')
    op.drop_table('session_tokens')
    op.drop_table('shops')
