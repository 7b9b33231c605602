"""SQLAlchemy Models for the product similarity search engine"""

from .base import Base
from .product import Product, ProductVariant
from .product_embedding import ProductTextEmbedding
from .product_image_embedding import ProductImageEmbedding

__all__ = [
    "Base",
    "Product",
    "ProductVariant",
    "ProductTextEmbedding",
    "ProductImageEmbedding",
]
