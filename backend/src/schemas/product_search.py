"""Pydantic schemas for embedding generation and similarity search results.

Every exposed operation answers with an envelope carrying success plus either
a message (success) or an error (failure). Callers tell "nothing found"
(success, empty results) apart from "something went wrong" (success=False)
without catching exceptions.
"""

from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SearchResult(BaseModel):
    """One ranked match. Not persisted."""
    product_id: UUID
    product_name: str
    product_description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    stock: Optional[int] = None
    images: List[Any] = Field(default_factory=list)
    variants: List[Dict[str, Any]] = Field(default_factory=list)
    similarity: float = Field(..., ge=-1.0, le=1.0)
    matched_image_url: Optional[str] = None


class OperationResponse(BaseModel):
    """Common envelope fields"""
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None


class TextEmbeddingResponse(OperationResponse):
    """Result of one page of text embedding generation"""
    processed_count: int = 0
    fetched_count: int = 0
    has_more: bool = False
    next_offset: int = 0
    total_products: int = 0


class ImageEmbeddingResponse(OperationResponse):
    """Result of image embedding generation for one product"""
    product_id: Optional[UUID] = None
    processed_images: int = 0
    total_images: int = 0


class ProductImageEmbeddingSummary(BaseModel):
    """Per-product line of a bulk image embedding batch"""
    product_id: UUID
    product_name: str
    processed_images: int
    total_images: int
    error: Optional[str] = None


class BulkImageEmbeddingResponse(OperationResponse):
    """Result of one batch of the owner-wide image embedding pass"""
    products: List[ProductImageEmbeddingSummary] = Field(default_factory=list)
    products_in_batch: int = 0
    processed_images: int = 0
    total_images: int = 0
    has_more: bool = False
    next_offset: int = 0


class SearchResponse(OperationResponse):
    """Ranked similarity search results"""
    search_type: Literal["text", "image"]
    query: Optional[str] = None
    image_url: Optional[str] = None
    results: List[SearchResult] = Field(default_factory=list)
    count: int = 0
    used_fallback: bool = False


class EmbeddingStatsResponse(OperationResponse):
    """Embedding coverage of an owner's catalog"""
    total_embeddings: int = 0
    total_products: int = 0
    coverage_percent: float = 0.0
    image_embeddings: int = 0
    models: Dict[str, int] = Field(default_factory=dict)
