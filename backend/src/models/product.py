"""Product catalog SQLAlchemy models.

The catalog is owned by the storefront side of the dashboard; this service
only reads it. The models mirror the columns the embedding pipelines need.
"""

from uuid import uuid4

from sqlalchemy import Column, Text, ForeignKey, Boolean, Numeric, Integer, Index, DateTime, Uuid
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, utcnow


class Product(Base):
    """Catalog product owned by a single merchant account.

    images holds the product's media list as stored by the catalog: either
    plain URL strings or objects shaped like {"url": ..., "alt": ...}.
    """
    __tablename__ = "product"
    __table_args__ = (
        Index("ix_product_owner_id", "owner_id"),
        Index("ix_product_owner_active", "owner_id", "is_active"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    owner_id = Column(Uuid, nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(Text, nullable=True)
    price = Column(Numeric(precision=12, scale=2), nullable=True)
    stock = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    images = Column(PortableJSONB, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    variants = relationship(
        "ProductVariant",
        back_populates="product",
        order_by="ProductVariant.position",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, owner_id={self.owner_id}, name={self.name!r})>"


class ProductVariant(Base):
    """Sellable variant of a product (size, color, ...) with its own price and inventory."""
    __tablename__ = "product_variant"
    __table_args__ = (
        Index("ix_product_variant_product_id", "product_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    product_id = Column(Uuid, ForeignKey("product.id", ondelete="CASCADE"), nullable=False)
    title = Column(Text, nullable=False)
    price = Column(Numeric(precision=12, scale=2), nullable=True)
    inventory_quantity = Column(Integer, nullable=True)
    available = Column(Boolean, nullable=False, default=True)
    position = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="variants")

    def to_summary(self) -> dict:
        """Denormalized summary stored alongside text embeddings."""
        return {
            "id": str(self.id),
            "title": self.title,
            "price": float(self.price) if self.price is not None else None,
            "stock": self.inventory_quantity,
            "available": bool(self.available),
        }
