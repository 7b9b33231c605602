"""Vector Search Service - Cosine similarity search over stored product embeddings.

Two storage spaces are searched, each only against its own table:
- product_text_embedding (text provider space)
- product_image_embedding (image provider space)

Primary path: pgvector's cosine distance operator (<=>), ranked in the
database and served by the HNSW indexes.

Fallback path: load the owner's rows and compute cosine similarity in Python.
Used when the primary query errors (pgvector unavailable, driver error) or
returns nothing. Both paths share the same threshold rule (similarity >=
threshold), ordering (similarity desc, then product_id, then image_url) and
limit, so they return the same top matches for the same data.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence
from uuid import UUID

import numpy as np
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from domain.ai.ports import EmbeddingDimensionMismatchError
from models import Product, ProductTextEmbedding, ProductImageEmbedding
from schemas import SearchResult

logger = logging.getLogger(__name__)


@dataclass
class VectorSearchOutcome:
    """Ranked results plus which path produced them."""
    results: List[SearchResult] = field(default_factory=list)
    used_fallback: bool = False


def ensure_dimension(vector: Sequence[float], expected: int) -> None:
    """Reject vectors whose length differs from the configured dimension.

    Raises:
        EmbeddingDimensionMismatchError
    """
    if len(vector) != expected:
        raise EmbeddingDimensionMismatchError(expected, len(vector))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors, in [-1, 1].

    Dot product divided by the product of L2 norms. A zero vector has no
    direction and scores 0.0.

    Raises:
        EmbeddingDimensionMismatchError: Vectors differ in length
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise EmbeddingDimensionMismatchError(va.shape[0], vb.shape[0])

    denom = np.linalg.norm(va) * np.linalg.norm(vb)
    if denom == 0.0:
        return 0.0
    return _clamp(float(np.dot(va, vb) / denom))


def _clamp(similarity: float) -> float:
    return max(-1.0, min(1.0, similarity))


def rank_results(results: List[SearchResult], limit: int) -> List[SearchResult]:
    """Sort by similarity desc with deterministic tie-break, then truncate."""
    ordered = sorted(
        results,
        key=lambda r: (-r.similarity, str(r.product_id), r.matched_image_url or ""),
    )
    return ordered[:limit]


def _price(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


def _text_result(row: ProductTextEmbedding, similarity: float) -> SearchResult:
    return SearchResult(
        product_id=row.product_id,
        product_name=row.product_name,
        product_description=row.product_description,
        category=row.category,
        price=_price(row.price),
        stock=row.stock,
        images=row.images or [],
        variants=row.variants or [],
        similarity=_clamp(similarity),
    )


def _image_result(row: ProductImageEmbedding, product: Product, similarity: float) -> SearchResult:
    return SearchResult(
        product_id=product.id,
        product_name=product.name,
        product_description=product.description,
        category=product.category,
        price=_price(product.price),
        stock=product.stock,
        images=product.images or [],
        similarity=_clamp(similarity),
        matched_image_url=row.image_url,
    )


def _scan_similarity(query_vector: Sequence[float], stored: Any, row_id: UUID) -> Optional[float]:
    """Similarity for the manual scan; rows that cannot be compared are skipped."""
    if stored is None or len(stored) == 0:
        return None
    try:
        return cosine_similarity(query_vector, stored)
    except EmbeddingDimensionMismatchError as e:
        logger.warning(
            "Skipping embedding with mismatched dimension",
            extra={"embedding_id": row_id, "expected": e.expected, "actual": e.actual},
        )
        return None


def _with_fallback(
    db: Session,
    owner_id: UUID,
    space: str,
    primary: Callable[[], List[SearchResult]],
    fallback: Callable[[], List[SearchResult]],
) -> VectorSearchOutcome:
    try:
        results = primary()
    except SQLAlchemyError:
        logger.warning(
            "Primary similarity query failed, using manual scan",
            extra={"owner_id": owner_id, "space": space},
            exc_info=True,
        )
        # Search is read-only; discard the failed statement's transaction
        db.rollback()
        return VectorSearchOutcome(results=fallback(), used_fallback=True)

    if results:
        return VectorSearchOutcome(results=results, used_fallback=False)

    logger.info(
        "Primary similarity query returned no rows, using manual scan",
        extra={"owner_id": owner_id, "space": space},
    )
    return VectorSearchOutcome(results=fallback(), used_fallback=True)


# --- text space --------------------------------------------------------------


def primary_text_search(
    db: Session,
    owner_id: UUID,
    query_vector: Sequence[float],
    limit: int,
    threshold: float,
) -> List[SearchResult]:
    """pgvector ranking over the owner's text embeddings."""
    distance = ProductTextEmbedding.embedding.cosine_distance(query_vector)
    similarity = (1 - distance).label("similarity")

    stmt = (
        select(ProductTextEmbedding, similarity)
        .where(ProductTextEmbedding.owner_id == owner_id)
        .where((1 - distance) >= threshold)
        .order_by(distance, ProductTextEmbedding.product_id)
        .limit(limit)
    )
    return [_text_result(row, float(sim)) for row, sim in db.execute(stmt).all()]


def manual_text_search(
    db: Session,
    owner_id: UUID,
    query_vector: Sequence[float],
    limit: int,
    threshold: float,
) -> List[SearchResult]:
    """Full scan of the owner's text embeddings with in-process cosine."""
    rows = db.execute(
        select(ProductTextEmbedding).where(ProductTextEmbedding.owner_id == owner_id)
    ).scalars().all()

    matches = []
    for row in rows:
        similarity = _scan_similarity(query_vector, row.embedding, row.id)
        if similarity is not None and similarity >= threshold:
            matches.append(_text_result(row, similarity))
    return rank_results(matches, limit)


def search_text_embeddings(
    db: Session,
    owner_id: UUID,
    query_vector: Sequence[float],
    limit: int = 10,
    threshold: float = 0.7,
) -> VectorSearchOutcome:
    """Top `limit` text matches with similarity >= threshold for one owner.

    Example:
        >>> result = adapter.embed_text("blue shoes")
        >>> outcome = search_text_embeddings(db, owner_id, result.embedding, limit=5)
        >>> [(r.product_name, round(r.similarity, 2)) for r in outcome.results]
        [('Trail Runner', 0.91), ('Canvas Sneaker', 0.84)]
    """
    return _with_fallback(
        db,
        owner_id,
        "text",
        lambda: primary_text_search(db, owner_id, query_vector, limit, threshold),
        lambda: manual_text_search(db, owner_id, query_vector, limit, threshold),
    )


# --- image space -------------------------------------------------------------


def _image_rows():
    return (
        select(ProductImageEmbedding, Product)
        .join(
            Product,
            (Product.id == ProductImageEmbedding.product_id)
            & (Product.owner_id == ProductImageEmbedding.owner_id),
        )
        .where(Product.is_active == True)  # noqa: E712
    )


def primary_image_search(
    db: Session,
    owner_id: UUID,
    query_vector: Sequence[float],
    limit: int,
    threshold: float,
) -> List[SearchResult]:
    """pgvector ranking over the owner's image embeddings, one row per matched image."""
    distance = ProductImageEmbedding.embedding.cosine_distance(query_vector)
    similarity = (1 - distance).label("similarity")

    stmt = (
        _image_rows()
        .add_columns(similarity)
        .where(ProductImageEmbedding.owner_id == owner_id)
        .where((1 - distance) >= threshold)
        .order_by(distance, ProductImageEmbedding.product_id, ProductImageEmbedding.image_url)
        .limit(limit)
    )
    return [
        _image_result(row, product, float(sim))
        for row, product, sim in db.execute(stmt).all()
    ]


def manual_image_search(
    db: Session,
    owner_id: UUID,
    query_vector: Sequence[float],
    limit: int,
    threshold: float,
) -> List[SearchResult]:
    """Full scan of the owner's image embeddings joined with product display fields."""
    rows = db.execute(
        _image_rows().where(ProductImageEmbedding.owner_id == owner_id)
    ).all()

    matches = []
    for row, product in rows:
        similarity = _scan_similarity(query_vector, row.embedding, row.id)
        if similarity is not None and similarity >= threshold:
            matches.append(_image_result(row, product, similarity))
    return rank_results(matches, limit)


def search_image_embeddings(
    db: Session,
    owner_id: UUID,
    query_vector: Sequence[float],
    limit: int = 5,
    threshold: float = 0.5,
) -> VectorSearchOutcome:
    """Top `limit` image matches with similarity >= threshold for one owner."""
    return _with_fallback(
        db,
        owner_id,
        "image",
        lambda: primary_image_search(db, owner_id, query_vector, limit, threshold),
        lambda: manual_image_search(db, owner_id, query_vector, limit, threshold),
    )


def get_embedding_stats(db: Session, owner_id: UUID) -> dict:
    """Get embedding statistics for an owner.

    Returns:
        Dict with keys:
            - total_embeddings: Number of text embeddings
            - total_products: Number of active products (for coverage %)
            - coverage_percent: Percentage of active products with a text embedding
            - image_embeddings: Number of image embeddings
            - models: Dict of {model_name: count} across both tables

    Notes:
        - Coverage <100% means generation is still paging or some products failed
    """
    text_counts = db.execute(
        select(ProductTextEmbedding.embedding_model, func.count(ProductTextEmbedding.id).label("row_count"))
        .where(ProductTextEmbedding.owner_id == owner_id)
        .group_by(ProductTextEmbedding.embedding_model)
    ).all()

    image_counts = db.execute(
        select(ProductImageEmbedding.embedding_model, func.count(ProductImageEmbedding.id).label("row_count"))
        .where(ProductImageEmbedding.owner_id == owner_id)
        .group_by(ProductImageEmbedding.embedding_model)
    ).all()

    total_products = db.execute(
        select(func.count(Product.id)).where(
            Product.owner_id == owner_id,
            Product.is_active == True,  # noqa: E712
        )
    ).scalar() or 0

    total_embeddings = sum(row.row_count for row in text_counts)
    coverage_percent = (total_embeddings / total_products * 100) if total_products > 0 else 0.0

    models: dict = {}
    for row in list(text_counts) + list(image_counts):
        models[row.embedding_model] = models.get(row.embedding_model, 0) + row.row_count

    return {
        "total_embeddings": total_embeddings,
        "total_products": total_products,
        "coverage_percent": coverage_percent,
        "image_embeddings": sum(row.row_count for row in image_counts),
        "models": models,
    }
