"""Pydantic Schemas for embedding and search operations"""

from .product_search import (
    SearchResult,
    OperationResponse,
    TextEmbeddingResponse,
    ImageEmbeddingResponse,
    ProductImageEmbeddingSummary,
    BulkImageEmbeddingResponse,
    SearchResponse,
    EmbeddingStatsResponse,
)

__all__ = [
    "SearchResult",
    "OperationResponse",
    "TextEmbeddingResponse",
    "ImageEmbeddingResponse",
    "ProductImageEmbeddingSummary",
    "BulkImageEmbeddingResponse",
    "SearchResponse",
    "EmbeddingStatsResponse",
]
