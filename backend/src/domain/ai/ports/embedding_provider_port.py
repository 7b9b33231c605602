"""Embedding Provider Ports - Abstract interfaces for text and image embedding providers.

Hexagonal Architecture: these are domain ports that infrastructure adapters implement.
Pipelines and search services depend on these ports, not on OpenAI or CLIP directly.

Text and image providers produce vectors in different spaces. A vector from one
must never be compared with a vector from the other.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class EmbeddingResult:
    """Result from an embedding generation call.

    Attributes:
        embedding: Vector embedding (list of floats)
        model: Model name (e.g., 'text-embedding-3-small', 'clip-ViT-B-32')
        dimension: Embedding dimension (e.g., 1536 or 512)
        tokens: Number of tokens used (0 for image models)
    """
    embedding: list[float]
    model: str
    dimension: int
    tokens: int = 0


class EmbeddingProviderPort(ABC):
    """Abstract interface for text embedding providers.

    Implementations must handle:
    - API authentication
    - Request formatting for provider
    - Response parsing
    - Error handling (timeouts, rate limits, invalid responses)

    Example Usage:
        provider = OpenAIEmbeddingAdapter()
        result = provider.embed_text("Blue running shoes. Category: Footwear.")
        # result.embedding is list[float] of length 1536
    """

    @property
    @abstractmethod
    def model(self) -> str:
        """Model name used for every call made through this provider."""

    @abstractmethod
    def embed_text(self, text: str) -> EmbeddingResult:
        """Generate embedding vector for text.

        Args:
            text: Text to embed (product snapshot or search query)

        Returns:
            EmbeddingResult with vector and metadata

        Raises:
            ValueError: Empty text
            EmbeddingAuthError: Authentication failed (configuration, fatal)
            EmbeddingTimeoutError: Request timed out
            EmbeddingRateLimitError: Rate limit exceeded
            EmbeddingServiceError: Provider service unavailable
            EmbeddingInvalidResponseError: Provider returned invalid response
        """


class ImageEmbeddingProviderPort(ABC):
    """Abstract interface for image feature-extraction providers.

    Implementations may hold expensive model state. That state is loaded
    lazily once per process and only read afterwards, so one instance can be
    shared across requests and threads.
    """

    @property
    @abstractmethod
    def model(self) -> str:
        """Model name used for every call made through this provider."""

    @abstractmethod
    def embed_image(self, image_bytes: bytes) -> EmbeddingResult:
        """Generate embedding vector for an encoded image (JPEG, PNG, WebP, ...).

        Raises:
            ImageDecodeError: Bytes are not a decodable image
            EmbeddingModelLoadError: Model could not be initialized (configuration, fatal)
            EmbeddingServiceError: Inference failed
        """


# Custom exceptions for embedding operations
class EmbeddingError(Exception):
    """Base exception for embedding operations"""
    pass


class EmbeddingConfigurationError(EmbeddingError):
    """Provider is missing credentials or cannot be initialized.

    Fatal for the whole call: retrying the next item would fail the same way.
    """
    pass


class EmbeddingAuthError(EmbeddingConfigurationError):
    """Authentication failed or API key missing"""
    pass


class EmbeddingModelLoadError(EmbeddingConfigurationError):
    """Local model could not be loaded"""
    pass


class EmbeddingTimeoutError(EmbeddingError):
    """Embedding request timed out"""
    pass


class EmbeddingRateLimitError(EmbeddingError):
    """Rate limit exceeded"""
    pass


class EmbeddingServiceError(EmbeddingError):
    """Provider service unavailable or returned error"""
    pass


class EmbeddingInvalidResponseError(EmbeddingError):
    """Provider returned invalid/unexpected response"""
    pass


class ImageDecodeError(EmbeddingError):
    """Image bytes could not be decoded"""
    pass


class EmbeddingDimensionMismatchError(ValueError):
    """Vector length differs from the expected embedding dimension."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected embedding of dimension {expected}, got {actual}")
