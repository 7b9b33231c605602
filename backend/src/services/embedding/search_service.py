"""Similarity search by text query or by image.

Both services embed the query with the same provider and model that produced
the stored vectors, check the dimension, and hand ranking to vector_search.
Text queries only ever meet product_text_embedding rows and image queries only
ever meet product_image_embedding rows.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from config import settings
from domain.ai.ports import EmbeddingProviderPort, ImageEmbeddingProviderPort
from infrastructure.images import HttpImageFetcher, decode_base64_image
from .errors import SearchValidationError
from .text_generator import generate_query_embedding_text, truncate_text_for_embedding
from .vector_search import (
    VectorSearchOutcome,
    ensure_dimension,
    search_text_embeddings,
    search_image_embeddings,
)

logger = logging.getLogger(__name__)


def _validate_ranking(limit: int, threshold: float) -> None:
    if limit < 1:
        raise SearchValidationError(f"limit must be at least 1, got {limit}")
    if not -1.0 <= threshold <= 1.0:
        raise SearchValidationError(f"threshold must be between -1 and 1, got {threshold}")


def search_by_text(
    db: Session,
    owner_id: UUID,
    query: str,
    provider: EmbeddingProviderPort,
    limit: Optional[int] = None,
    threshold: Optional[float] = None,
) -> VectorSearchOutcome:
    """Rank the owner's products against a free-text query.

    Args:
        db: Database session
        owner_id: Resolved owner
        query: Natural-language query, must contain non-whitespace
        provider: Text embedding provider (same model as the stored vectors)
        limit: Maximum results (default: TEXT_SEARCH_LIMIT)
        threshold: Minimum cosine similarity (default: TEXT_SEARCH_THRESHOLD)

    Returns:
        VectorSearchOutcome; empty results when nothing clears the threshold

    Raises:
        SearchValidationError: Blank query or invalid limit/threshold
        EmbeddingError: Provider failed to embed the query
        EmbeddingDimensionMismatchError: Provider returned the wrong dimension
    """
    limit = settings.TEXT_SEARCH_LIMIT if limit is None else limit
    threshold = settings.TEXT_SEARCH_THRESHOLD if threshold is None else threshold
    _validate_ranking(limit, threshold)

    text = generate_query_embedding_text(query)
    if not text:
        raise SearchValidationError("Query is required")

    result = provider.embed_text(truncate_text_for_embedding(text, settings.TEXT_EMBEDDING_MAX_TOKENS))
    ensure_dimension(result.embedding, settings.TEXT_EMBEDDING_DIM)

    outcome = search_text_embeddings(db, owner_id, result.embedding, limit=limit, threshold=threshold)
    logger.info(
        "Text search completed",
        extra={
            "owner_id": owner_id,
            "result_count": len(outcome.results),
            "used_fallback": outcome.used_fallback,
        },
    )
    return outcome


def search_by_image(
    db: Session,
    owner_id: UUID,
    provider: ImageEmbeddingProviderPort,
    image_url: Optional[str] = None,
    image_base64: Optional[str] = None,
    fetcher: Optional[HttpImageFetcher] = None,
    limit: Optional[int] = None,
    threshold: Optional[float] = None,
) -> VectorSearchOutcome:
    """Rank the owner's product images against a query image.

    Exactly one of image_url and image_base64 must be given. Inline payloads
    may be raw base64 or a data URL.

    Raises:
        SearchValidationError: Zero or two image sources, invalid limit/threshold
        InvalidImagePayloadError: Inline payload is not valid base64
        ImageFetchError: Query image could not be downloaded
        EmbeddingError: Decode or inference failed
        EmbeddingDimensionMismatchError: Provider returned the wrong dimension
    """
    limit = settings.IMAGE_SEARCH_LIMIT if limit is None else limit
    threshold = settings.IMAGE_SEARCH_THRESHOLD if threshold is None else threshold
    _validate_ranking(limit, threshold)

    has_url = bool(image_url and image_url.strip())
    has_inline = bool(image_base64 and image_base64.strip())
    if has_url == has_inline:
        raise SearchValidationError("Provide exactly one of image_url or image_base64")

    if has_inline:
        image_bytes = decode_base64_image(image_base64)
    elif fetcher is not None:
        image_bytes = fetcher.fetch(image_url.strip())
    else:
        own_fetcher = HttpImageFetcher()
        try:
            image_bytes = own_fetcher.fetch(image_url.strip())
        finally:
            own_fetcher.close()

    result = provider.embed_image(image_bytes)
    ensure_dimension(result.embedding, settings.IMAGE_EMBEDDING_DIM)

    outcome = search_image_embeddings(db, owner_id, result.embedding, limit=limit, threshold=threshold)
    logger.info(
        "Image search completed",
        extra={
            "owner_id": owner_id,
            "result_count": len(outcome.results),
            "used_fallback": outcome.used_fallback,
        },
    )
    return outcome
