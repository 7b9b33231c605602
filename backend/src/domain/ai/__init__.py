"""AI domain layer - Ports and errors for embedding providers"""

from .ports import (
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
