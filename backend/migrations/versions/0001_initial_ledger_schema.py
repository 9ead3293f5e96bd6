"""initial ledger schema

Revision ID: 0001_initial_ledger
Revises:
Create Date: 2025-04-01 00:00:00.000000

Creates:
- products: inventory store, unique (name, variant), prices in cents
- sales: ledger records with one-way refund flag and optional idempotency key
- sale_items: price/cost snapshots; product_id is a soft reference (no FK)
- ledger_events: append-only audit log
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_ledger'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'products',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('variant', sa.String(255), nullable=True),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('name', 'variant', name='uq_products_name_variant'),
    )
    op.create_index('ix_products_name', 'products', ['name'])

    op.create_table(
        'sales',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('total_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('refunded', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('refund_date', sa.DateTime(), nullable=True),
        sa.Column('idempotency_key', sa.String(128), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_sales_date', 'sales', ['date'])
    op.create_index('ix_sales_refunded_date', 'sales', ['refunded', 'date'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('sale_id', sa.String(32), sa.ForeignKey('sales.id'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('product_id', sa.String(32), nullable=False),
        sa.Column('name_snapshot', sa.String(255), nullable=False),
        sa.Column('variant_snapshot', sa.String(255), nullable=True),
        sa.Column('price_snapshot_cents', sa.Integer(), nullable=False),
        sa.Column('cost_price_snapshot_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.BigInteger(), nullable=False),
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])
    op.create_index('ix_sale_items_product_id', 'sale_items', ['product_id'])
    op.create_index('ix_sale_items_sale_position', 'sale_items', ['sale_id', 'position'])

    op.create_table(
        'ledger_events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('event_type', sa.String(64), nullable=False),
        sa.Column('entity_type', sa.String(32), nullable=False),
        sa.Column('entity_id', sa.String(32), nullable=False),
        sa.Column('occurred_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('note', sa.String(255), nullable=True),
        sa.Column('payload', sa.Text(), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_ledger_events_event_type', 'ledger_events', ['event_type'])
    op.create_index('ix_ledger_events_entity', 'ledger_events', ['entity_type', 'entity_id'])
    op.create_index('ix_ledger_events_occurred', 'ledger_events', ['occurred_at'])


def downgrade():
    op.drop_table('ledger_events')
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('products')
