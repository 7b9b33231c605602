"""OpenAI Embedding Adapter - Implementation of EmbeddingProviderPort using OpenAI API.

Produces the text embedding space used by both the catalog text pipeline and
text search. Both sides must use the same model, so the model is fixed per
adapter instance instead of being chosen per call.

Architecture: Hexagonal - Infrastructure adapter implementing domain port
"""

import logging
import time
from typing import Optional

from openai import OpenAI, APIError, APITimeoutError, RateLimitError, AuthenticationError

from config import settings
from domain.ai.ports import (
    EmbeddingProviderPort,
    EmbeddingResult,
    EmbeddingTimeoutError,
    EmbeddingRateLimitError,
    EmbeddingAuthError,
    EmbeddingServiceError,
    EmbeddingInvalidResponseError,
)

logger = logging.getLogger(__name__)


class OpenAIEmbeddingAdapter(EmbeddingProviderPort):
    """OpenAI implementation of EmbeddingProviderPort.

    Configuration (settings / environment variables):
        OPENAI_API_KEY: OpenAI API key (required)
        OPENAI_EMBEDDING_TIMEOUT: Request timeout in seconds (default: 30)
        TEXT_EMBEDDING_MODEL: Model name (default: text-embedding-3-small)

    Token Limits:
        text-embedding-3-small: 8191 tokens max input

    Example Usage:
        adapter = OpenAIEmbeddingAdapter()
        result = adapter.embed_text("Blue running shoes")
        # result.embedding is list[float] of length 1536
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[int] = None,
        client: Optional[OpenAI] = None,
    ):
        """Initialize OpenAI embedding adapter.

        Args:
            api_key: OpenAI API key (if None, read from settings)
            model: Embedding model (if None, TEXT_EMBEDDING_MODEL)
            timeout: Request timeout in seconds (if None, OPENAI_EMBEDDING_TIMEOUT)
            client: Preconfigured OpenAI client (tests, proxies)

        Raises:
            EmbeddingAuthError: If no API key is configured
        """
        self.api_key = api_key or settings.OPENAI_API_KEY
        if not self.api_key and client is None:
            raise EmbeddingAuthError("OPENAI_API_KEY not provided and not found in environment")

        self._model = model or settings.TEXT_EMBEDDING_MODEL
        self.timeout = timeout or settings.OPENAI_EMBEDDING_TIMEOUT
        self.client = client or OpenAI(api_key=self.api_key, timeout=self.timeout)

    @property
    def model(self) -> str:
        return self._model

    def embed_text(self, text: str) -> EmbeddingResult:
        """Generate embedding vector for text using OpenAI API.

        Raises:
            ValueError: If text is empty
            EmbeddingTimeoutError: Request timed out
            EmbeddingRateLimitError: Rate limit exceeded
            EmbeddingAuthError: Authentication failed
            EmbeddingServiceError: OpenAI service error
            EmbeddingInvalidResponseError: Invalid response from API
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        start_time = time.time()
        response = self._create(text)

        if not response.data:
            raise EmbeddingInvalidResponseError("No embedding returned from API")

        embedding = list(response.data[0].embedding)
        tokens = response.usage.total_tokens if response.usage else 0

        logger.debug(
            "Text embedding generated",
            extra={
                "model": self._model,
                "tokens": tokens,
                "latency_ms": int((time.time() - start_time) * 1000),
            },
        )

        return EmbeddingResult(
            embedding=embedding,
            model=self._model,
            dimension=len(embedding),
            tokens=tokens,
        )

    def _create(self, payload):
        """Call the embeddings endpoint and translate SDK errors to port errors."""
        try:
            return self.client.embeddings.create(model=self._model, input=payload)
        except AuthenticationError as e:
            raise EmbeddingAuthError(f"OpenAI authentication failed: {e}") from e
        except RateLimitError as e:
            raise EmbeddingRateLimitError(f"OpenAI rate limit exceeded: {e}") from e
        except APITimeoutError as e:
            raise EmbeddingTimeoutError(f"OpenAI request timed out: {e}") from e
        except APIError as e:
            raise EmbeddingServiceError(f"OpenAI API error: {e}") from e
