"""ProductTextEmbedding Model - Catalog text vectors for semantic product search."""

from uuid import uuid4

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, String, Integer, ForeignKey, Index, Text, Numeric, DateTime, Uuid

from config import settings
from .base import Base, PortableJSONB, utcnow


class ProductTextEmbedding(Base):
    """Text embedding of a product's canonical snapshot.

    One live row per (owner_id, product_id). Rows are written by the text
    embedding pipeline, which deletes and re-inserts them; they are never
    updated in place. Display fields are a denormalized copy taken at
    generation time so search results need no join against the catalog.

    Attributes:
        id: Primary key (UUID)
        owner_id: Owning merchant account (tenant isolation)
        product_id: Reference to product table
        product_name / product_description / category / price: snapshot copies
        stock: Sum of variant inventories, or base stock without variants
        images: Image list as stored on the product
        variants: [{id, title, price, stock, available}, ...]
        embedding: Vector(TEXT_EMBEDDING_DIM)
        embedding_model: Provider model that produced the vector
        metadata_json: {processed_at, description_length, images_count, text_hash}

    Indexes:
        - UNIQUE(owner_id, product_id)
        - HNSW(embedding vector_cosine_ops), created in migration 002

    Example Query (Top 5 similar products):
        SELECT product_id, 1 - (embedding <=> :query_vector) AS similarity
        FROM product_text_embedding
        WHERE owner_id = :owner_id
        ORDER BY embedding <=> :query_vector, product_id
        LIMIT 5
    """

    __tablename__ = "product_text_embedding"

    id = Column(Uuid, primary_key=True, default=uuid4)
    owner_id = Column(Uuid, nullable=False, index=True)
    product_id = Column(
        Uuid,
        ForeignKey("product.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    product_name = Column(Text, nullable=False)
    product_description = Column(Text, nullable=True)
    category = Column(Text, nullable=True)
    price = Column(Numeric(precision=12, scale=2), nullable=True)
    stock = Column(Integer, nullable=True)
    images = Column(PortableJSONB, nullable=False, default=list)
    variants = Column(PortableJSONB, nullable=False, default=list)

    embedding = Column(Vector(settings.TEXT_EMBEDDING_DIM), nullable=False)
    embedding_model = Column(String(100), nullable=False)
    # "metadata" is reserved on declarative classes
    metadata_json = Column("metadata", PortableJSONB, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index(
            "idx_product_text_embedding_unique",
            "owner_id",
            "product_id",
            unique=True,
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ProductTextEmbedding(id={self.id}, product_id={self.product_id}, "
            f"model={self.embedding_model})>"
        )
