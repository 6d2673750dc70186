"""Visit payments: cash payments at patient visits feed the drawer

Revision ID: 20261019_visit_payments
Revises: 20261019_initial
Create Date: 2026-10-19

This migration adds:
1. visit_payments (one row per payment collected at a visit)
2. cash_records.visit_payment_id (INCOME rows owned by a CASH visit payment)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_visit_payments'
down_revision = '20261019_initial'
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. VISIT PAYMENTS TABLE
    # ==========================================================================
    op.create_table('visit_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('chart_number', sa.String(length=32), nullable=False),
        sa.Column('patient_name', sa.String(length=128), nullable=False),
        sa.Column('doctor', sa.String(length=128), nullable=True),
        sa.Column('treatment', sa.String(length=255), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('method', sa.String(length=16), nullable=False),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('amount >= 0', name='ck_visit_payments_amount_nonneg'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('visit_payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_visit_payments_date'), ['date'], unique=False)
        batch_op.create_index(batch_op.f('ix_visit_payments_chart_number'), ['chart_number'], unique=False)

    # ==========================================================================
    # 2. CASH RECORD LINK
    # ==========================================================================
    with op.batch_alter_table('cash_records', schema=None) as batch_op:
        batch_op.add_column(sa.Column('visit_payment_id', sa.Integer(), nullable=True))
        batch_op.create_index(batch_op.f('ix_cash_records_visit_payment_id'), ['visit_payment_id'], unique=False)
        batch_op.create_foreign_key(
            'fk_cash_records_visit_payment_id', 'visit_payments', ['visit_payment_id'], ['id']
        )


def downgrade():
    with op.batch_alter_table('cash_records', schema=None) as batch_op:
        batch_op.drop_constraint('fk_cash_records_visit_payment_id', type_='foreignkey')
        batch_op.drop_index(batch_op.f('ix_cash_records_visit_payment_id'))
        batch_op.drop_column('visit_payment_id')

    op.drop_table('visit_payments')
