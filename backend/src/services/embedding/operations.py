"""Exposed operations of the product similarity search engine.

Each operation resolves the owner from the requester, builds default providers
when none are injected, runs one pipeline or search, and answers with a
pydantic envelope. Authorization failures raise OwnerAuthorizationError,
except an image search with no resolvable owner, which fails like a missing
image. Every other failure (configuration, validation, missing product,
provider, database) comes back as success=False with the error text.

Example:
    with get_db_session() as db:
        requester = Requester(user_id=merchant_id, roles=frozenset({UserRole.MERCHANT}))
        page = generate_text_embeddings(db, requester)
        while page.has_more:
            page = generate_text_embeddings(db, requester, offset=page.next_offset)
        hits = search_by_text(db, requester, "waterproof hiking boots")
"""

import logging
import time
from typing import Callable, Mapping, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth.roles import OwnerAuthorizationError, Requester, resolve_owner_id
from domain.ai.ports import (
    EmbeddingProviderPort,
    ImageEmbeddingProviderPort,
    EmbeddingError,
    EmbeddingDimensionMismatchError,
)
from infrastructure.ai import OpenAIEmbeddingAdapter, get_image_embedding_provider
from infrastructure.images import HttpImageFetcher, ImageFetchError, InvalidImagePayloadError
from observability import (
    embedding_run_duration_seconds,
    request_context,
    search_requests_total,
    search_results_count,
)
from schemas import (
    BulkImageEmbeddingResponse,
    EmbeddingStatsResponse,
    ImageEmbeddingResponse,
    ProductImageEmbeddingSummary,
    SearchResponse,
    TextEmbeddingResponse,
)
from . import search_service
from .errors import ProductNotFoundError, SearchError
from .image_pipeline import ImageEmbeddingPipeline
from .text_pipeline import TextEmbeddingPipeline
from .vector_search import get_embedding_stats

logger = logging.getLogger(__name__)

# Failures reported through the envelope rather than raised
OPERATION_ERRORS = (
    EmbeddingError,
    EmbeddingDimensionMismatchError,
    ProductNotFoundError,
    SearchError,
    ImageFetchError,
    InvalidImagePayloadError,
    SQLAlchemyError,
    ValueError,
)


def _fail(db: Session, operation: str, owner_id: UUID, error: Exception) -> str:
    db.rollback()
    logger.error(
        "Operation failed",
        extra={
            "operation": operation,
            "owner_id": owner_id,
            "error_type": type(error).__name__,
            "error": str(error),
        },
    )
    return str(error) or type(error).__name__


def generate_text_embeddings(
    db: Session,
    requester: Requester,
    owner_id: Optional[UUID] = None,
    product_id: Optional[UUID] = None,
    offset: int = 0,
    page_size: Optional[int] = None,
    reset: bool = False,
    provider: Optional[EmbeddingProviderPort] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> TextEmbeddingResponse:
    """Generate text embeddings for one page of the owner's catalog (or one product).

    Raises:
        OwnerAuthorizationError: Owner cannot be resolved for the requester
    """
    owner = resolve_owner_id(requester, owner_id)
    with request_context(), embedding_run_duration_seconds.labels(operation="text").time():
        try:
            # Provider first: a missing credential aborts before any database work
            provider = provider or OpenAIEmbeddingAdapter()
            run = TextEmbeddingPipeline(db, provider, sleep=sleep).generate(
                owner,
                product_id=product_id,
                offset=offset,
                page_size=page_size,
                reset=reset,
            )
        except OPERATION_ERRORS as e:
            return TextEmbeddingResponse(
                success=False,
                error=_fail(db, "generate_text_embeddings", owner, e),
                next_offset=offset,
            )

    return TextEmbeddingResponse(
        success=True,
        message=f"Generated {run.processed_count} text embeddings",
        processed_count=run.processed_count,
        fetched_count=run.fetched_count,
        has_more=run.has_more,
        next_offset=run.next_offset,
        total_products=run.total_products,
    )


def generate_image_embeddings(
    db: Session,
    requester: Requester,
    product_id: UUID,
    owner_id: Optional[UUID] = None,
    raw_images: Optional[Mapping[str, bytes]] = None,
    provider: Optional[ImageEmbeddingProviderPort] = None,
    fetcher: Optional[HttpImageFetcher] = None,
) -> ImageEmbeddingResponse:
    """Replace the image embeddings of one product.

    Raises:
        OwnerAuthorizationError: Owner cannot be resolved for the requester
    """
    owner = resolve_owner_id(requester, owner_id)
    with request_context(), embedding_run_duration_seconds.labels(operation="image").time():
        try:
            provider = provider or get_image_embedding_provider()
            run = ImageEmbeddingPipeline(db, provider, fetcher=fetcher).generate(
                owner, product_id, raw_images=raw_images
            )
        except OPERATION_ERRORS as e:
            return ImageEmbeddingResponse(
                success=False,
                error=_fail(db, "generate_image_embeddings", owner, e),
                product_id=product_id,
            )

    if run.total_images == 0:
        message = "Product has no images"
    else:
        message = f"Generated {run.processed_images} of {run.total_images} image embeddings"
    return ImageEmbeddingResponse(
        success=True,
        message=message,
        product_id=run.product_id,
        processed_images=run.processed_images,
        total_images=run.total_images,
    )


def bulk_generate_image_embeddings(
    db: Session,
    requester: Requester,
    owner_id: Optional[UUID] = None,
    offset: int = 0,
    batch_size: Optional[int] = None,
    provider: Optional[ImageEmbeddingProviderPort] = None,
    fetcher: Optional[HttpImageFetcher] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> BulkImageEmbeddingResponse:
    """Run the image pipeline over one batch of the owner's products that have images.

    Raises:
        OwnerAuthorizationError: Owner cannot be resolved for the requester
    """
    owner = resolve_owner_id(requester, owner_id)
    with request_context(), embedding_run_duration_seconds.labels(operation="bulk_image").time():
        try:
            provider = provider or get_image_embedding_provider()
            run = ImageEmbeddingPipeline(db, provider, fetcher=fetcher).bulk_generate(
                owner, offset=offset, batch_size=batch_size, sleep=sleep
            )
        except OPERATION_ERRORS as e:
            return BulkImageEmbeddingResponse(
                success=False,
                error=_fail(db, "bulk_generate_image_embeddings", owner, e),
                next_offset=offset,
            )

    return BulkImageEmbeddingResponse(
        success=True,
        message=f"Processed {len(run.products)} products",
        products=[
            ProductImageEmbeddingSummary(
                product_id=item.product_id,
                product_name=item.product_name,
                processed_images=item.processed_images,
                total_images=item.total_images,
                error=item.error,
            )
            for item in run.products
        ],
        products_in_batch=len(run.products),
        processed_images=run.processed_images,
        total_images=run.total_images,
        has_more=run.has_more,
        next_offset=run.next_offset,
    )


def _record_search(search_type: str, response: SearchResponse) -> SearchResponse:
    if response.success:
        path = "fallback" if response.used_fallback else "primary"
        search_results_count.labels(search_type=search_type).observe(response.count)
    else:
        path = "none"
    search_requests_total.labels(
        search_type=search_type,
        path=path,
        status="success" if response.success else "error",
    ).inc()
    return response


def search_by_text(
    db: Session,
    requester: Requester,
    query: str,
    owner_id: Optional[UUID] = None,
    limit: Optional[int] = None,
    threshold: Optional[float] = None,
    provider: Optional[EmbeddingProviderPort] = None,
) -> SearchResponse:
    """Find the owner's products most similar to a text query.

    Raises:
        OwnerAuthorizationError: Owner cannot be resolved for the requester
    """
    owner = resolve_owner_id(requester, owner_id)
    with request_context():
        try:
            provider = provider or OpenAIEmbeddingAdapter()
            outcome = search_service.search_by_text(
                db, owner, query, provider, limit=limit, threshold=threshold
            )
        except OPERATION_ERRORS as e:
            return _record_search("text", SearchResponse(
                success=False,
                search_type="text",
                query=query,
                error=_fail(db, "search_by_text", owner, e),
            ))

    return _record_search("text", SearchResponse(
        success=True,
        search_type="text",
        query=query,
        results=outcome.results,
        count=len(outcome.results),
        used_fallback=outcome.used_fallback,
    ))


def search_by_image(
    db: Session,
    requester: Requester,
    image_url: Optional[str] = None,
    image_base64: Optional[str] = None,
    owner_id: Optional[UUID] = None,
    limit: Optional[int] = None,
    threshold: Optional[float] = None,
    provider: Optional[ImageEmbeddingProviderPort] = None,
    fetcher: Optional[HttpImageFetcher] = None,
) -> SearchResponse:
    """Find the owner's product images most similar to a query image.

    A requester with no owner at all gets a failure envelope, like a missing
    image.

    Raises:
        OwnerAuthorizationError: Requester asked for a catalog it may not search
    """
    try:
        owner = resolve_owner_id(requester, owner_id)
    except OwnerAuthorizationError as e:
        if owner_id is not None:
            raise
        logger.warning("Image search without an owner", extra={"error": str(e)})
        return _record_search("image", SearchResponse(
            success=False,
            search_type="image",
            image_url=image_url,
            error=str(e),
        ))

    with request_context():
        try:
            provider = provider or get_image_embedding_provider()
            outcome = search_service.search_by_image(
                db,
                owner,
                provider,
                image_url=image_url,
                image_base64=image_base64,
                fetcher=fetcher,
                limit=limit,
                threshold=threshold,
            )
        except OPERATION_ERRORS as e:
            return _record_search("image", SearchResponse(
                success=False,
                search_type="image",
                image_url=image_url,
                error=_fail(db, "search_by_image", owner, e),
            ))

    return _record_search("image", SearchResponse(
        success=True,
        search_type="image",
        image_url=image_url,
        results=outcome.results,
        count=len(outcome.results),
        used_fallback=outcome.used_fallback,
    ))


def embedding_stats(
    db: Session,
    requester: Requester,
    owner_id: Optional[UUID] = None,
) -> EmbeddingStatsResponse:
    """Embedding coverage of the owner's catalog.

    Raises:
        OwnerAuthorizationError: Owner cannot be resolved for the requester
    """
    owner = resolve_owner_id(requester, owner_id)
    with request_context():
        try:
            stats = get_embedding_stats(db, owner)
        except SQLAlchemyError as e:
            return EmbeddingStatsResponse(
                success=False,
                error=_fail(db, "embedding_stats", owner, e),
            )
    return EmbeddingStatsResponse(success=True, **stats)
