"""Embedding Text Generator - Generate canonical catalog snapshot text for embedding.

Provides deterministic text generation from product data. The exact string
returned here is what the text embedding provider sees, so the same product
data always yields the same vector input (and the same text_hash).
"""

import hashlib
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence


def format_price(price: Any) -> str:
    """Render a price with two decimals; missing or unparsable prices render empty."""
    if price is None or price == "":
        return ""
    try:
        return f"{Decimal(str(price)):.2f}"
    except (InvalidOperation, ValueError):
        return ""


def _text(value: Optional[Any]) -> str:
    return "" if value is None else str(value).strip()


def _stock(value: Optional[Any]) -> str:
    return "0" if value is None else str(value)


def generate_product_embedding_text(
    name: Optional[str],
    description: Optional[str] = None,
    category: Optional[str] = None,
    price: Optional[Any] = None,
    stock: Optional[int] = None,
    variants: Optional[Sequence[Any]] = None,
    image_count: int = 0,
) -> str:
    """Generate canonical embedding text for a product.

    Format:
        {name}. {description}. Category: {category}. Variants: {variant entries}. {image note}

    Variant entries are "title: price (stock: n)" joined with ", ". Without
    variants a single "Price: price (stock: n)" entry is used instead. The
    image note is "N image(s) available" or "no images available".

    Args:
        name: Product name
        description: Product description (optional)
        category: Product category (optional)
        price: Base price, used only when there are no variants
        stock: Base stock, used only when there are no variants
        variants: Objects with title, price and inventory_quantity attributes
        image_count: Number of images on the product

    Returns:
        Canonical text string for embedding

    Example:
        >>> generate_product_embedding_text(
        ...     name="Trail Runner",
        ...     description="Lightweight running shoe",
        ...     category="Footwear",
        ...     price=79.9,
        ...     stock=12,
        ...     image_count=2,
        ... )
        'Trail Runner. Lightweight running shoe. Category: Footwear. Variants: Price: 79.90 (stock: 12). 2 image(s) available.'

    Notes:
        - Missing fields are replaced with empty strings
        - No external calls; never raises on missing optional fields
    """
    if variants:
        variant_text = ", ".join(
            f"{_text(getattr(v, 'title', None))}: {format_price(getattr(v, 'price', None))} "
            f"(stock: {_stock(getattr(v, 'inventory_quantity', None))})"
            for v in variants
        )
    else:
        variant_text = f"Price: {format_price(price)} (stock: {_stock(stock)})"

    image_note = (
        f"{image_count} image(s) available"
        if image_count and image_count > 0
        else "no images available"
    )

    return (
        f"{_text(name)}. "
        f"{_text(description)}. "
        f"Category: {_text(category)}. "
        f"Variants: {variant_text}. "
        f"{image_note}."
    )


def generate_query_embedding_text(query: str) -> str:
    """Normalize a free-text search query before embedding.

    Collapses whitespace only; the query is embedded in the same space as
    the product snapshots.
    """
    return " ".join((query or "").split())


def calculate_text_hash(text: str) -> str:
    """Calculate SHA256 hash of text.

    Stored in embedding metadata so a regenerated row can be compared with
    the snapshot it came from.
    """
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


def truncate_text_for_embedding(text: str, max_tokens: int = 8191) -> str:
    """Truncate text to fit within token limit.

    OpenAI text-embedding-3-small has 8191 token limit.
    Rough approximation: 1 token ≈ 4 characters.

    Notes:
        - Truncation preserves beginning of text (most important info)
    """
    max_chars = max_tokens * 4

    if len(text) <= max_chars:
        return text

    return text[:max_chars - 3] + "..."
