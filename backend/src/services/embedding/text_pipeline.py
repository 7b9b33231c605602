"""Text Embedding Pipeline - Snapshot, embed and store an owner's catalog.

Processes one caller-driven page of the owner's active products per call:

1. Clamp page size, resolve scope (one product, or a page of products)
2. Pre-clear existing rows and commit before any insert
3. Walk the page in sub-batches of EMBEDDING_BATCH_SIZE; embedding calls in a
   sub-batch run concurrently, snapshots and database work stay on the
   calling thread
4. Bulk insert and commit each sub-batch, pause between sub-batches

Per-product failures are logged and skipped. Configuration failures
(EmbeddingConfigurationError) abort the run.
"""

import contextvars
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catalog.queries import list_active_products, count_active_products, get_active_product
from config import settings
from domain.ai.ports import (
    EmbeddingProviderPort,
    EmbeddingResult,
    EmbeddingError,
    EmbeddingConfigurationError,
    EmbeddingDimensionMismatchError,
)
from models import Product, ProductTextEmbedding
from observability.metrics import embeddings_generated_total
from .errors import ProductNotFoundError
from .text_generator import (
    generate_product_embedding_text,
    calculate_text_hash,
    truncate_text_for_embedding,
)
from .vector_search import ensure_dimension

logger = logging.getLogger(__name__)


@dataclass
class TextEmbeddingRun:
    """Outcome of one page of text embedding generation.

    Attributes:
        processed_count: Rows inserted and committed
        fetched_count: Products loaded for this page
        has_more: More active products exist past next_offset
        next_offset: Offset for the caller's next page
        total_products: Active products the owner has
    """
    processed_count: int
    fetched_count: int
    has_more: bool
    next_offset: int
    total_products: int


def clamp_page_size(page_size: Optional[int]) -> int:
    """Page size limited to [EMBEDDING_PAGE_SIZE_MIN, EMBEDDING_PAGE_SIZE_MAX]."""
    if page_size is None:
        return settings.EMBEDDING_PAGE_SIZE_DEFAULT
    return max(settings.EMBEDDING_PAGE_SIZE_MIN, min(settings.EMBEDDING_PAGE_SIZE_MAX, page_size))


def total_stock(product: Product) -> Optional[int]:
    """Sum of variant inventories, or the base stock when there are no variants."""
    if product.variants:
        return sum(v.inventory_quantity or 0 for v in product.variants)
    return product.stock


def build_snapshot(product: Product) -> str:
    return generate_product_embedding_text(
        name=product.name,
        description=product.description,
        category=product.category,
        price=product.price,
        stock=product.stock,
        variants=product.variants,
        image_count=len(product.images or []),
    )


class TextEmbeddingPipeline:
    """Generates product_text_embedding rows for one owner.

    Args:
        db: Database session (the pipeline commits on it)
        provider: Text embedding provider, shared read-only across worker threads
        batch_size: Products per sub-batch (default: EMBEDDING_BATCH_SIZE)
        pause_seconds: Pause between sub-batches (default: EMBEDDING_BATCH_PAUSE_SECONDS)
        sleep: Pause function, replaced in tests
    """

    def __init__(
        self,
        db: Session,
        provider: EmbeddingProviderPort,
        batch_size: Optional[int] = None,
        pause_seconds: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.db = db
        self.provider = provider
        self.batch_size = batch_size or settings.EMBEDDING_BATCH_SIZE
        self.pause_seconds = settings.EMBEDDING_BATCH_PAUSE_SECONDS if pause_seconds is None else pause_seconds
        self.sleep = sleep
        self.dimension = settings.TEXT_EMBEDDING_DIM

    def generate(
        self,
        owner_id: UUID,
        product_id: Optional[UUID] = None,
        offset: int = 0,
        page_size: Optional[int] = None,
        reset: bool = False,
    ) -> TextEmbeddingRun:
        """Embed one page of the owner's catalog, or a single product.

        Raises:
            ValueError: Negative offset
            ProductNotFoundError: product_id is not an active product of the owner
            EmbeddingConfigurationError: Provider cannot be used at all
        """
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")
        page_size = clamp_page_size(page_size)

        if product_id is not None:
            product = get_active_product(self.db, owner_id, product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            products = [product]
            total = count_active_products(self.db, owner_id)
        else:
            total = count_active_products(self.db, owner_id)
            products = list_active_products(self.db, owner_id, offset=offset, limit=page_size)

        logger.info(
            "Generating text embeddings",
            extra={
                "owner_id": owner_id,
                "product_id": product_id,
                "offset": offset,
                "page_size": page_size,
                "fetched_count": len(products),
                "total_products": total,
            },
        )

        if product_id is not None or reset or offset == 0:
            self._clear(owner_id, product_id)

        batches = [
            products[i:i + self.batch_size]
            for i in range(0, len(products), self.batch_size)
        ]
        processed = 0
        for index, batch in enumerate(batches):
            processed += self._process_batch(owner_id, batch)
            if index < len(batches) - 1 and self.pause_seconds > 0:
                self.sleep(self.pause_seconds)

        if product_id is not None:
            next_offset = offset
            has_more = False
        else:
            next_offset = offset + len(products)
            has_more = next_offset < total

        logger.info(
            "Text embedding page completed",
            extra={
                "owner_id": owner_id,
                "processed_count": processed,
                "fetched_count": len(products),
                "next_offset": next_offset,
                "has_more": has_more,
            },
        )
        return TextEmbeddingRun(
            processed_count=processed,
            fetched_count=len(products),
            has_more=has_more,
            next_offset=next_offset,
            total_products=total,
        )

    def _clear(self, owner_id: UUID, product_id: Optional[UUID]) -> None:
        stmt = delete(ProductTextEmbedding).where(ProductTextEmbedding.owner_id == owner_id)
        if product_id is not None:
            stmt = stmt.where(ProductTextEmbedding.product_id == product_id)
        deleted = self.db.execute(stmt).rowcount
        self.db.commit()
        logger.debug(
            "Cleared text embeddings",
            extra={"owner_id": owner_id, "product_id": product_id, "deleted": deleted},
        )

    def _snapshots(self, batch: List[Product]) -> List[Tuple[Product, str]]:
        prepared = []
        for product in batch:
            try:
                text = truncate_text_for_embedding(
                    build_snapshot(product), settings.TEXT_EMBEDDING_MAX_TOKENS
                )
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(
                    "Skipping product, snapshot could not be built",
                    extra={"product_id": product.id, "error": str(e)},
                )
                continue
            prepared.append((product, text))
        return prepared

    def _process_batch(self, owner_id: UUID, batch: List[Product]) -> int:
        prepared = self._snapshots(batch)
        if not prepared:
            return 0

        with ThreadPoolExecutor(max_workers=len(prepared)) as executor:
            # Copy per task so worker log lines keep the request id
            futures = [
                executor.submit(contextvars.copy_context().run, self.provider.embed_text, text)
                for _, text in prepared
            ]

        rows = []
        for (product, text), future in zip(prepared, futures):
            try:
                result: EmbeddingResult = future.result()
                ensure_dimension(result.embedding, self.dimension)
            except EmbeddingConfigurationError:
                raise
            except (EmbeddingError, EmbeddingDimensionMismatchError, ValueError) as e:
                logger.warning(
                    "Skipping product, embedding failed",
                    extra={
                        "owner_id": owner_id,
                        "product_id": product.id,
                        "error_type": type(e).__name__,
                        "error": str(e),
                    },
                )
                embeddings_generated_total.labels(space="text", status="skipped").inc()
                continue
            rows.append(self._build_row(owner_id, product, text, result))

        if not rows:
            return 0

        try:
            self.db.add_all(rows)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                "Text embedding insert failed, sub-batch discarded",
                extra={
                    "owner_id": owner_id,
                    "product_ids": [str(row.product_id) for row in rows],
                    "error": str(e),
                },
            )
            embeddings_generated_total.labels(space="text", status="skipped").inc(len(rows))
            return 0

        embeddings_generated_total.labels(space="text", status="stored").inc(len(rows))
        return len(rows)

    def _build_row(
        self,
        owner_id: UUID,
        product: Product,
        text: str,
        result: EmbeddingResult,
    ) -> ProductTextEmbedding:
        images = list(product.images or [])
        return ProductTextEmbedding(
            owner_id=owner_id,
            product_id=product.id,
            product_name=product.name,
            product_description=product.description,
            category=product.category,
            price=product.price,
            stock=total_stock(product),
            images=images,
            variants=[variant.to_summary() for variant in product.variants],
            embedding=result.embedding,
            embedding_model=result.model,
            metadata_json={
                "processed_at": datetime.now(timezone.utc).isoformat(),
                "description_length": len(product.description or ""),
                "images_count": len(images),
                "text_hash": calculate_text_hash(text),
            },
        )
