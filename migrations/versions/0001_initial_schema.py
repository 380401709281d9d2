"""initial schema: items, transactions, requests, request lines, RIS counters

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

request_status = sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='requeststatus')
transaction_type = sa.Enum('IN', 'OUT', name='transactiontype')
budget_source = sa.Enum('MOOE', 'SSP', name='budgetsource')


def audit_columns():
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('updated_by', sa.Integer(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'categories',
        *audit_columns(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )
    op.create_index(op.f('ix_categories_id'), 'categories', ['id'], unique=False)

    op.create_table(
        'items',
        *audit_columns(),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sku', sa.String(length=50), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit', sa.String(length=30), nullable=False),
        sa.Column('min_stock_level', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity >= 0', name='ck_items_quantity_non_negative'),
        sa.CheckConstraint('min_stock_level >= 0', name='ck_items_min_stock_non_negative'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_items_id'), 'items', ['id'], unique=False)
    op.create_index(op.f('ix_items_name'), 'items', ['name'], unique=False)
    op.create_index(op.f('ix_items_sku'), 'items', ['sku'], unique=True)

    op.create_table(
        'requests',
        *audit_columns(),
        sa.Column('requested_by', sa.Integer(), nullable=False),
        sa.Column('requested_by_name', sa.String(length=150), nullable=True),
        sa.Column('requested_by_designation', sa.String(length=150), nullable=True),
        sa.Column('received_by_name', sa.String(length=150), nullable=True),
        sa.Column('received_by_designation', sa.String(length=150), nullable=True),
        sa.Column('purpose', sa.Text(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('budget_source', budget_source, nullable=False),
        sa.Column('status', request_status, nullable=False),
        sa.Column('is_single_item', sa.Boolean(), nullable=False),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('ris_number', sa.String(length=30), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('ris_number'),
    )
    op.create_index(op.f('ix_requests_id'), 'requests', ['id'], unique=False)
    op.create_index(op.f('ix_requests_requested_by'), 'requests', ['requested_by'], unique=False)
    op.create_index(op.f('ix_requests_status'), 'requests', ['status'], unique=False)

    op.create_table(
        'request_lines',
        *audit_columns(),
        sa.Column('request_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit', sa.String(length=30), nullable=False),
        sa.Column('status', request_status, nullable=False),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.CheckConstraint('quantity >= 1', name='ck_request_lines_quantity_positive'),
        sa.ForeignKeyConstraint(['item_id'], ['items.id']),
        sa.ForeignKeyConstraint(['request_id'], ['requests.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('request_id', 'position', name='uq_request_lines_position'),
    )
    op.create_index(op.f('ix_request_lines_id'), 'request_lines', ['id'], unique=False)
    op.create_index(op.f('ix_request_lines_request_id'), 'request_lines', ['request_id'], unique=False)

    op.create_table(
        'transactions',
        *audit_columns(),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('type', transaction_type, nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=True),
        sa.Column('request_id', sa.Integer(), nullable=True),
        sa.Column('request_line_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('performed_by', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity >= 1', name='ck_transactions_quantity_positive'),
        sa.CheckConstraint('balance_after >= 0', name='ck_transactions_balance_non_negative'),
        sa.ForeignKeyConstraint(['item_id'], ['items.id']),
        sa.ForeignKeyConstraint(['request_id'], ['requests.id']),
        sa.ForeignKeyConstraint(['request_line_id'], ['request_lines.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_transactions_id'), 'transactions', ['id'], unique=False)
    op.create_index(op.f('ix_transactions_item_id'), 'transactions', ['item_id'], unique=False)
    op.create_index(op.f('ix_transactions_request_id'), 'transactions', ['request_id'], unique=False)

    op.create_table(
        'ris_counters',
        sa.Column('day_prefix', sa.String(length=20), nullable=False),
        sa.Column('last_sequence', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('day_prefix'),
    )


def downgrade() -> None:
    op.drop_table('ris_counters')
    op.drop_index(op.f('ix_transactions_request_id'), table_name='transactions')
    op.drop_index(op.f('ix_transactions_item_id'), table_name='transactions')
    op.drop_index(op.f('ix_transactions_id'), table_name='transactions')
    op.drop_table('transactions')
    op.drop_index(op.f('ix_request_lines_request_id'), table_name='request_lines')
    op.drop_index(op.f('ix_request_lines_id'), table_name='request_lines')
    op.drop_table('request_lines')
    op.drop_index(op.f('ix_requests_status'), table_name='requests')
    op.drop_index(op.f('ix_requests_requested_by'), table_name='requests')
    op.drop_index(op.f('ix_requests_id'), table_name='requests')
    op.drop_table('requests')
    op.drop_index(op.f('ix_items_sku'), table_name='items')
    op.drop_index(op.f('ix_items_name'), table_name='items')
    op.drop_index(op.f('ix_items_id'), table_name='items')
    op.drop_table('items')
    op.drop_index(op.f('ix_categories_id'), table_name='categories')
    op.drop_table('categories')
    request_status.drop(op.get_bind(), checkfirst=True)
    transaction_type.drop(op.get_bind(), checkfirst=True)
    budget_source.drop(op.get_bind(), checkfirst=True)
