"""AI Port Interfaces"""

from .embedding_provider_port import (
    EmbeddingProviderPort,
    ImageEmbeddingProviderPort,
    EmbeddingResult,
    EmbeddingError,
    EmbeddingConfigurationError,
    EmbeddingAuthError,
    EmbeddingModelLoadError,
    EmbeddingTimeoutError,
    EmbeddingRateLimitError,
    EmbeddingServiceError,
    EmbeddingInvalidResponseError,
    ImageDecodeError,
    EmbeddingDimensionMismatchError,
)

__all__ = [
    "EmbeddingProviderPort",
    "ImageEmbeddingProviderPort",
    "EmbeddingResult",
    "EmbeddingError",
    "EmbeddingConfigurationError",
    "EmbeddingAuthError",
    "EmbeddingModelLoadError",
    "EmbeddingTimeoutError",
    "EmbeddingRateLimitError",
    "EmbeddingServiceError",
    "EmbeddingInvalidResponseError",
    "ImageDecodeError",
    "EmbeddingDimensionMismatchError",
]
