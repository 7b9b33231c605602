"""Catalog access for the embedding pipelines: read-only product queries and media helpers"""

from .media import media_url, is_video_url, product_image_urls
from .queries import (
    list_active_products,
    count_active_products,
    get_active_product,
    get_owner_product,
)

__all__ = [
    "media_url",
    "is_video_url",
    "product_image_urls",
    "list_active_products",
    "count_active_products",
    "get_active_product",
    "get_owner_product",
]
