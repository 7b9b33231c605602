"""AI Infrastructure - Adapters for embedding providers.

This module contains concrete implementations of AI domain ports.
"""

from .openai_embeddings import OpenAIEmbeddingAdapter
from .clip_image_embeddings import (
    CLIPImageEmbeddingAdapter,
    decode_image,
    get_image_embedding_provider,
)

__all__ = [
    "OpenAIEmbeddingAdapter",
    "CLIPImageEmbeddingAdapter",
    "decode_image",
    "get_image_embedding_provider",
]
