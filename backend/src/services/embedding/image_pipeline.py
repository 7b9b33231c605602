"""Image Embedding Pipeline - Embed every photo of a product.

A product's image rows are replaced as a set: existing rows are deleted and
committed first, then each image is fetched, embedded and committed on its own
so a failure on one image never loses the others. Video entries in the media
list are ignored.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catalog.media import product_image_urls
from catalog.queries import get_owner_product
from config import settings
from domain.ai.ports import (
    ImageEmbeddingProviderPort,
    EmbeddingError,
    EmbeddingConfigurationError,
    EmbeddingDimensionMismatchError,
)
from infrastructure.images import HttpImageFetcher, ImageFetchError
from models import Product, ProductImageEmbedding
from observability.metrics import embeddings_generated_total
from .errors import ProductNotFoundError
from .vector_search import ensure_dimension

logger = logging.getLogger(__name__)


@dataclass
class ImageEmbeddingRun:
    """Outcome of embedding one product's images."""
    product_id: UUID
    processed_images: int
    total_images: int
    product_name: str = ""
    error: Optional[str] = None


@dataclass
class BulkImageEmbeddingRun:
    """Outcome of one batch of the owner-wide image pass."""
    products: List[ImageEmbeddingRun] = field(default_factory=list)
    has_more: bool = False
    next_offset: int = 0

    @property
    def processed_images(self) -> int:
        return sum(run.processed_images for run in self.products)

    @property
    def total_images(self) -> int:
        return sum(run.total_images for run in self.products)


class ImageEmbeddingPipeline:
    """Generates product_image_embedding rows.

    Args:
        db: Database session (the pipeline commits on it)
        provider: Image embedding provider (process-wide CLIP singleton in production)
        fetcher: Image downloader (default: HttpImageFetcher)
    """

    def __init__(
        self,
        db: Session,
        provider: ImageEmbeddingProviderPort,
        fetcher: Optional[HttpImageFetcher] = None,
    ):
        self.db = db
        self.provider = provider
        self.fetcher = fetcher or HttpImageFetcher()
        self.dimension = settings.IMAGE_EMBEDDING_DIM

    def generate(
        self,
        owner_id: UUID,
        product_id: UUID,
        raw_images: Optional[Mapping[str, bytes]] = None,
    ) -> ImageEmbeddingRun:
        """Replace the image embeddings of one product.

        Args:
            owner_id: Resolved owner
            product_id: Product whose images are embedded
            raw_images: Image bytes keyed by URL; used instead of downloading

        Returns:
            ImageEmbeddingRun with processed and total image counts

        Raises:
            ProductNotFoundError: Product missing or owned by someone else
            EmbeddingConfigurationError: Model cannot be loaded
        """
        product = get_owner_product(self.db, owner_id, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return self._generate_for(owner_id, product, raw_images or {})

    def _generate_for(
        self,
        owner_id: UUID,
        product: Product,
        raw_images: Mapping[str, bytes],
    ) -> ImageEmbeddingRun:
        product_id = product.id
        product_name = product.name
        urls = product_image_urls(product.images)

        deleted = self.db.execute(
            delete(ProductImageEmbedding).where(
                ProductImageEmbedding.owner_id == owner_id,
                ProductImageEmbedding.product_id == product_id,
            )
        ).rowcount
        self.db.commit()

        logger.info(
            "Generating image embeddings",
            extra={
                "owner_id": owner_id,
                "product_id": product_id,
                "total_images": len(urls),
                "cleared": deleted,
            },
        )

        processed = 0
        for url in urls:
            if self._embed_one(owner_id, product_id, url, raw_images):
                processed += 1

        logger.info(
            "Image embeddings completed",
            extra={
                "owner_id": owner_id,
                "product_id": product_id,
                "processed_images": processed,
                "total_images": len(urls),
            },
        )
        return ImageEmbeddingRun(
            product_id=product_id,
            processed_images=processed,
            total_images=len(urls),
            product_name=product_name,
        )

    def _embed_one(
        self,
        owner_id: UUID,
        product_id: UUID,
        url: str,
        raw_images: Mapping[str, bytes],
    ) -> bool:
        try:
            image_bytes = raw_images[url] if url in raw_images else self.fetcher.fetch(url)
            result = self.provider.embed_image(image_bytes)
            ensure_dimension(result.embedding, self.dimension)
        except EmbeddingConfigurationError:
            raise
        except (ImageFetchError, EmbeddingError, EmbeddingDimensionMismatchError) as e:
            logger.warning(
                "Skipping image",
                extra={
                    "owner_id": owner_id,
                    "product_id": product_id,
                    "url": url,
                    "error_type": type(e).__name__,
                    "error": str(e),
                },
            )
            embeddings_generated_total.labels(space="image", status="skipped").inc()
            return False

        try:
            self.db.add(
                ProductImageEmbedding(
                    owner_id=owner_id,
                    product_id=product_id,
                    image_url=url,
                    embedding=result.embedding,
                    embedding_model=result.model,
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Image embedding insert failed",
                extra={"owner_id": owner_id, "product_id": product_id, "url": url, "error": str(e)},
            )
            embeddings_generated_total.labels(space="image", status="skipped").inc()
            return False

        embeddings_generated_total.labels(space="image", status="stored").inc()
        return True

    def bulk_generate(
        self,
        owner_id: UUID,
        offset: int = 0,
        batch_size: Optional[int] = None,
        pause_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> BulkImageEmbeddingRun:
        """Embed images for one batch of the owner's active products that have images.

        Products are walked in created_at desc, id order; the caller passes
        next_offset back in until has_more is False. A product that fails
        outright (e.g. vanished mid-run) is reported with its error and the
        batch continues.

        Raises:
            ValueError: Negative offset or non-positive batch size
            EmbeddingConfigurationError: Model cannot be loaded
        """
        batch_size = settings.IMAGE_BULK_BATCH_SIZE if batch_size is None else batch_size
        pause_seconds = settings.IMAGE_BULK_PAUSE_SECONDS if pause_seconds is None else pause_seconds
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        candidates = [
            product
            for product in self.db.execute(
                select(Product)
                .where(Product.owner_id == owner_id, Product.is_active == True)  # noqa: E712
                .order_by(Product.created_at.desc(), Product.id)
            ).scalars().all()
            if product_image_urls(product.images)
        ]
        batch = candidates[offset:offset + batch_size]
        next_offset = offset + len(batch)

        run = BulkImageEmbeddingRun(has_more=next_offset < len(candidates), next_offset=next_offset)
        for index, product in enumerate(batch):
            product_id = product.id
            product_name = product.name
            try:
                run.products.append(self._generate_for(owner_id, product, {}))
            except EmbeddingConfigurationError:
                raise
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(
                    "Bulk image embedding failed for product",
                    extra={"owner_id": owner_id, "product_id": product_id, "error": str(e)},
                )
                run.products.append(
                    ImageEmbeddingRun(
                        product_id=product_id,
                        processed_images=0,
                        total_images=0,
                        product_name=product_name,
                        error=str(e),
                    )
                )
            if index < len(batch) - 1 and pause_seconds > 0:
                sleep(pause_seconds)

        logger.info(
            "Bulk image embedding batch completed",
            extra={
                "owner_id": owner_id,
                "products_in_batch": len(batch),
                "processed_images": run.processed_images,
                "next_offset": run.next_offset,
                "has_more": run.has_more,
            },
        )
        return run
