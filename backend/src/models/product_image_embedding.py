"""ProductImageEmbedding Model - CLIP vectors for visual product search."""

from uuid import uuid4

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, String, ForeignKey, Index, Text, DateTime, Uuid

from config import settings
from .base import Base, utcnow


class ProductImageEmbedding(Base):
    """Visual embedding of one product image.

    A product has one row per successfully embedded image. The whole set for
    a product is deleted and regenerated together by the image embedding
    pipeline. Vectors live in the image model's space and must never be
    compared with ProductTextEmbedding vectors.

    Indexes:
        - (owner_id, product_id) for set replacement
        - HNSW(embedding vector_cosine_ops), created in migration 002
    """

    __tablename__ = "product_image_embedding"

    id = Column(Uuid, primary_key=True, default=uuid4)
    owner_id = Column(Uuid, nullable=False, index=True)
    product_id = Column(
        Uuid,
        ForeignKey("product.id", ondelete="CASCADE"),
        nullable=False,
    )
    image_url = Column(Text, nullable=False)
    embedding = Column(Vector(settings.IMAGE_EMBEDDING_DIM), nullable=False)
    embedding_model = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_product_image_embedding_owner_product", "owner_id", "product_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<ProductImageEmbedding(id={self.id}, product_id={self.product_id}, "
            f"image_url={self.image_url!r})>"
        )
