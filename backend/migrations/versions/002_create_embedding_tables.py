"""Create product_text_embedding and product_image_embedding tables with pgvector

Revision ID: 002
Revises: 001
Create Date: 2026-10-12 09:30:00.000000

Vector dimensions match the default models: 1536 for text-embedding-3-small,
512 for clip-ViT-B-32. Changing a model's dimension needs a new revision.
"""
from alembic import op
import sqlalchemy as sa
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade():
    # Enable pgvector extension (idempotent)
    op.execute('CREATE EXTENSION IF NOT EXISTS vector')

    op.create_table(
        'product_text_embedding',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_name', sa.Text(), nullable=False),
        sa.Column('product_description', sa.Text(), nullable=True),
        sa.Column('category', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=True),
        sa.Column('images', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('variants', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('embedding', Vector(1536), nullable=False),
        sa.Column('embedding_model', sa.String(100), nullable=False),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['product_id'], ['product.id'], ondelete='CASCADE'),
    )

    # One live text embedding per product per owner
    op.create_index(
        'idx_product_text_embedding_unique',
        'product_text_embedding',
        ['owner_id', 'product_id'],
        unique=True
    )
    op.create_index('ix_product_text_embedding_owner_id', 'product_text_embedding', ['owner_id'])
    op.create_index('ix_product_text_embedding_product_id', 'product_text_embedding', ['product_id'])

    op.create_table(
        'product_image_embedding',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('image_url', sa.Text(), nullable=False),
        sa.Column('embedding', Vector(512), nullable=False),
        sa.Column('embedding_model', sa.String(100), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['product_id'], ['product.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_product_image_embedding_owner_id', 'product_image_embedding', ['owner_id'])
    op.create_index(
        'idx_product_image_embedding_owner_product',
        'product_image_embedding',
        ['owner_id', 'product_id']
    )

    # HNSW indexes for cosine similarity (<=>), m=16, ef_construction=200
    op.execute("""
        CREATE INDEX idx_product_text_embedding_hnsw
        ON product_text_embedding
        USING hnsw (embedding vector_cosine_ops)
        WITH (m = 16, ef_construction = 200)
    """)
    op.execute("""
        CREATE INDEX idx_product_image_embedding_hnsw
        ON product_image_embedding
        USING hnsw (embedding vector_cosine_ops)
        WITH (m = 16, ef_construction = 200)
    """)


def downgrade():
    op.execute('DROP INDEX IF EXISTS idx_product_image_embedding_hnsw')
    op.execute('DROP INDEX IF EXISTS idx_product_text_embedding_hnsw')

    op.drop_index('idx_product_image_embedding_owner_product', table_name='product_image_embedding')
    op.drop_index('ix_product_image_embedding_owner_id', table_name='product_image_embedding')
    op.drop_table('product_image_embedding')

    op.drop_index('ix_product_text_embedding_product_id', table_name='product_text_embedding')
    op.drop_index('ix_product_text_embedding_owner_id', table_name='product_text_embedding')
    op.drop_index('idx_product_text_embedding_unique', table_name='product_text_embedding')
    op.drop_table('product_text_embedding')

    # Other tables may use the vector extension; leave it installed
