"""Create product and product_variant tables

Revision ID: 001
Revises:
Create Date: 2026-10-12 09:00:00.000000

The catalog is written by the storefront side of the dashboard. This revision
exists so a fresh database (local development, integration tests) has the
tables the embedding pipelines read.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)

    op.create_table(
        'product',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('images', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_product_owner_id', 'product', ['owner_id'])
    op.create_index('ix_product_owner_active', 'product', ['owner_id', 'is_active'])

    op.execute("""
        CREATE TRIGGER update_product_updated_at
        BEFORE UPDATE ON product
        FOR EACH ROW
        EXECUTE FUNCTION update_updated_at_column();
    """)

    op.create_table(
        'product_variant',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('inventory_quantity', sa.Integer(), nullable=True),
        sa.Column('available', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['product_id'], ['product.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_product_variant_product_id', 'product_variant', ['product_id'])


def downgrade():
    op.drop_index('ix_product_variant_product_id', table_name='product_variant')
    op.drop_table('product_variant')

    op.execute('DROP TRIGGER IF EXISTS update_product_updated_at ON product')
    op.drop_index('ix_product_owner_active', table_name='product')
    op.drop_index('ix_product_owner_id', table_name='product')
    op.drop_table('product')

    op.execute('DROP FUNCTION IF EXISTS update_updated_at_column()')
