"""Initial schema: staff, cash ledger, expenses, products, stock log, sales

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

Creates:
1. users, session_tokens (bearer auth)
2. expenses, extra_incomes (owners of cash records)
3. cash_records (drawer ledger with day closing)
4. products, inventory_logs (stock counter + movements)
5. dental_sales, dental_sale_lines
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    ]


def upgrade():
    # ==========================================================================
    # 1. AUTH
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('display_name', sa.String(length=128), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_username'), ['username'], unique=True)

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_session_tokens_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_session_tokens_token_hash'), ['token_hash'], unique=True)
        batch_op.create_index(batch_op.f('ix_session_tokens_expires_at'), ['expires_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_session_tokens_is_revoked'), ['is_revoked'], unique=False)
        batch_op.create_index('ix_session_tokens_user_active', ['user_id', 'is_revoked'], unique=False)

    # ==========================================================================
    # 2. EXPENSES / EXTRA INCOME
    # ==========================================================================
    op.create_table('expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('method', sa.String(length=16), nullable=False),
        sa.Column('vendor', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('amount >= 0', name='ck_expenses_amount_nonneg'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('expenses', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_expenses_date'), ['date'], unique=False)

    op.create_table('extra_incomes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('income_type', sa.String(length=64), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('method', sa.String(length=16), nullable=False),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('amount >= 0', name='ck_extra_incomes_amount_nonneg'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('extra_incomes', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_extra_incomes_date'), ['date'], unique=False)

    # ==========================================================================
    # 3. CASH LEDGER
    # ==========================================================================
    op.create_table('cash_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('is_closed', sa.Boolean(), nullable=False),
        sa.Column('closing_amount', sa.Integer(), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expense_id', sa.Integer(), nullable=True),
        sa.Column('extra_income_id', sa.Integer(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('amount >= 0', name='ck_cash_records_amount_nonneg'),
        sa.ForeignKeyConstraint(['expense_id'], ['expenses.id'], ),
        sa.ForeignKeyConstraint(['extra_income_id'], ['extra_incomes.id'], ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('cash_records', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cash_records_date'), ['date'], unique=False)
        batch_op.create_index(batch_op.f('ix_cash_records_type'), ['type'], unique=False)
        batch_op.create_index(batch_op.f('ix_cash_records_expense_id'), ['expense_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_cash_records_extra_income_id'), ['extra_income_id'], unique=False)
        batch_op.create_index('ix_cash_records_date_closed', ['date', 'is_closed'], unique=False)

    # ==========================================================================
    # 4. PRODUCTS / STOCK LOG
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_line', sa.String(length=16), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('manufacturer', sa.String(length=255), nullable=True),
        sa.Column('specification', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('purchase_price', sa.Integer(), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_nonneg'),
        sa.CheckConstraint('price >= 0', name='ck_products_price_nonneg'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_line', 'name', 'specification', name='uq_products_line_name_spec'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_products_product_line'), ['product_line'], unique=False)
        batch_op.create_index('ix_products_line_category', ['product_line', 'category'], unique=False)

    op.create_table('inventory_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('activity_id', sa.String(length=32), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=8), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('unit_cost', sa.Integer(), nullable=True),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('out_reason', sa.String(length=16), nullable=True),
        sa.Column('chart_number', sa.String(length=32), nullable=True),
        sa.Column('patient_name', sa.String(length=128), nullable=True),
        sa.Column('doctor', sa.String(length=128), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_inventory_logs_quantity_pos'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('activity_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('inventory_logs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_inventory_logs_product_id'), ['product_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_logs_type'), ['type'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_logs_date'), ['date'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_logs_chart_number'), ['chart_number'], unique=False)
        batch_op.create_index('ix_inventory_logs_product_date', ['product_id', 'date'], unique=False)

    # ==========================================================================
    # 5. SALES
    # ==========================================================================
    op.create_table('dental_sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('activity_id', sa.String(length=32), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('chart_number', sa.String(length=32), nullable=False),
        sa.Column('patient_name', sa.String(length=128), nullable=False),
        sa.Column('doctor', sa.String(length=128), nullable=True),
        sa.Column('total_amount', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('activity_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('dental_sales', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_dental_sales_date'), ['date'], unique=False)
        batch_op.create_index(batch_op.f('ix_dental_sales_chart_number'), ['chart_number'], unique=False)

    op.create_table('dental_sale_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('sale_price', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_sale_lines_quantity_pos'),
        sa.CheckConstraint('sale_price >= 0', name='ck_sale_lines_price_nonneg'),
        sa.ForeignKeyConstraint(['sale_id'], ['dental_sales.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('dental_sale_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_dental_sale_lines_sale_id'), ['sale_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_dental_sale_lines_product_id'), ['product_id'], unique=False)


def downgrade():
    op.drop_table('dental_sale_lines')
    op.drop_table('dental_sales')
    op.drop_table('inventory_logs')
    op.drop_table('products')
    op.drop_table('cash_records')
    op.drop_table('extra_incomes')
    op.drop_table('expenses')
    op.drop_table('session_tokens')
    op.drop_table('users')
