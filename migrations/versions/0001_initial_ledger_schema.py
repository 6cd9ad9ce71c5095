"""initial ledger schema: catalog, stock lots, stock movements

Revision ID: 0001_initial_ledger
Revises:
Create Date: 2026-10-19 00:00:00.000000

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
        'product',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'product_variant',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=False),
        sa.Column('sku', sa.String(length=128), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('sku', name='uq_product_variant_sku'),
    )
    op.create_index('ix_product_variant_product_id', 'product_variant', ['product_id'])

    op.create_table(
        'stock_lot',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('variant_id', sa.Integer(), sa.ForeignKey('product_variant.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=False),
        sa.Column('initial_quantity', sa.Integer(), nullable=False),
        sa.Column('available_quantity', sa.Integer(), nullable=False),
        sa.Column('unit_cost', sa.Numeric(12, 4), nullable=False),
        sa.Column('arrived_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=128), nullable=True),
        sa.CheckConstraint('available_quantity >= 0', name='ck_stock_lot_available_non_negative'),
        sa.CheckConstraint('initial_quantity > 0', name='ck_stock_lot_initial_positive'),
        sa.CheckConstraint('available_quantity <= initial_quantity', name='ck_stock_lot_available_le_initial'),
        sa.CheckConstraint('unit_cost >= 0', name='ck_stock_lot_unit_cost_non_negative'),
    )
    op.create_index('ix_stock_lot_product_id', 'stock_lot', ['product_id'])
    op.create_index('idx_stock_lot_fifo', 'stock_lot', ['variant_id', 'arrived_at', 'id'])

    op.create_table(
        'stock_movement',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('variant_id', sa.Integer(), sa.ForeignKey('product_variant.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('quantity_delta', sa.Integer(), nullable=False),
        sa.Column('unit_cost', sa.Numeric(12, 4), nullable=True),
        sa.Column('lot_id', sa.Integer(), sa.ForeignKey('stock_lot.id'), nullable=True),
        sa.Column('external_ref', sa.String(length=128), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('actor', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "(kind = 'in' AND quantity_delta > 0)"
            " OR (kind = 'out' AND quantity_delta < 0)"
            " OR (kind = 'adjust' AND quantity_delta <> 0)",
            name='ck_stock_movement_delta_sign',
        ),
    )
    op.create_index('ix_stock_movement_product_id', 'stock_movement', ['product_id'])
    op.create_index('ix_stock_movement_kind', 'stock_movement', ['kind'])
    op.create_index('ix_stock_movement_lot_id', 'stock_movement', ['lot_id'])
    op.create_index('idx_stock_movement_variant_created', 'stock_movement', ['variant_id', 'created_at'])
    op.create_index('idx_stock_movement_created', 'stock_movement', ['created_at', 'id'])


def downgrade():
    op.drop_table('stock_movement')
    op.drop_table('stock_lot')
    op.drop_table('product_variant')
    op.drop_table('product')
