"""Embedding Services - Product embedding generation and similarity search.

This module provides services for:
- Canonical snapshot text generation from catalog data
- Text and image embedding pipelines
- Vector similarity search with a manual-scan fallback
- The exposed operations returning response envelopes
"""

from .errors import ProductNotFoundError, SearchError, SearchValidationError
from .text_generator import (
    generate_product_embedding_text,
    generate_query_embedding_text,
    calculate_text_hash,
    truncate_text_for_embedding,
)
from .vector_search import (
    VectorSearchOutcome,
    cosine_similarity,
    search_text_embeddings,
    search_image_embeddings,
    get_embedding_stats,
)
from .text_pipeline import TextEmbeddingPipeline, TextEmbeddingRun
from .image_pipeline import ImageEmbeddingPipeline, ImageEmbeddingRun, BulkImageEmbeddingRun
from .operations import (
    generate_text_embeddings,
    generate_image_embeddings,
    bulk_generate_image_embeddings,
    search_by_text,
    search_by_image,
    embedding_stats,
)

__all__ = [
    "ProductNotFoundError",
    "SearchError",
    "SearchValidationError",
    "generate_product_embedding_text",
    "generate_query_embedding_text",
    "calculate_text_hash",
    "truncate_text_for_embedding",
    "VectorSearchOutcome",
    "cosine_similarity",
    "search_text_embeddings",
    "search_image_embeddings",
    "get_embedding_stats",
    "TextEmbeddingPipeline",
    "TextEmbeddingRun",
    "ImageEmbeddingPipeline",
    "ImageEmbeddingRun",
    "BulkImageEmbeddingRun",
    "generate_text_embeddings",
    "generate_image_embeddings",
    "bulk_generate_image_embeddings",
    "search_by_text",
    "search_by_image",
    "embedding_stats",
]
