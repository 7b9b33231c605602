"""CLIP Image Embedding Adapter - Implementation of ImageEmbeddingProviderPort.

Uses sentence-transformers' CLIP checkpoints (clip-ViT-B-32 by default, 512
dimensions) to turn product photos and query images into vectors.

Loading the model is slow (weights download on first run, then several seconds
to move them onto the device), so the adapter loads it lazily on first use and
keeps it for the lifetime of the process. get_image_embedding_provider() hands
out one shared adapter per process.
"""

import io
import logging
import threading
from functools import lru_cache
from typing import Any, Callable, Optional

from PIL import Image, UnidentifiedImageError

from config import settings
from domain.ai.ports import (
    ImageEmbeddingProviderPort,
    EmbeddingResult,
    EmbeddingModelLoadError,
    EmbeddingServiceError,
    ImageDecodeError,
)

logger = logging.getLogger(__name__)

ModelLoader = Callable[[str, Optional[str]], Any]


def load_sentence_transformer(model_name: str, device: Optional[str] = None) -> Any:
    """Load a sentence-transformers CLIP model onto the requested device."""
    from sentence_transformers import SentenceTransformer

    return SentenceTransformer(model_name, device=device)


def decode_image(image_bytes: bytes) -> Image.Image:
    """Decode encoded image bytes into an RGB PIL image.

    Raises:
        ImageDecodeError: Empty payload or unreadable image data
    """
    if not image_bytes:
        raise ImageDecodeError("Image payload is empty")

    try:
        image = Image.open(io.BytesIO(image_bytes))
        return image.convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"Could not decode image ({len(image_bytes)} bytes): {e}") from e


class CLIPImageEmbeddingAdapter(ImageEmbeddingProviderPort):
    """CLIP implementation of ImageEmbeddingProviderPort.

    The model moves through two states: not loaded, then ready. The first
    embed_image() call loads it under a lock; concurrent first callers wait
    for that single load instead of loading their own copy. A failed load
    leaves the adapter not loaded, so a later call may try again.

    Configuration (settings / environment variables):
        IMAGE_EMBEDDING_MODEL: sentence-transformers model name (default: clip-ViT-B-32)
        IMAGE_EMBEDDING_DEVICE: torch device (default: auto)

    Example Usage:
        adapter = get_image_embedding_provider()
        result = adapter.embed_image(open("shoe.jpg", "rb").read())
        # result.embedding is list[float] of length 512
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        device: Optional[str] = None,
        loader: Optional[ModelLoader] = None,
    ):
        self._model_name = model_name or settings.IMAGE_EMBEDDING_MODEL
        self._device = device or settings.IMAGE_EMBEDDING_DEVICE
        self._loader = loader or load_sentence_transformer
        self._model: Any = None
        self._lock = threading.Lock()

    @property
    def model(self) -> str:
        return self._model_name

    @property
    def ready(self) -> bool:
        """True once the model has been loaded."""
        return self._model is not None

    def _get_model(self) -> Any:
        if self._model is not None:
            return self._model

        with self._lock:
            if self._model is None:
                logger.info("Initializing CLIP model", extra={"model": self._model_name})
                try:
                    self._model = self._loader(self._model_name, self._device)
                except Exception as e:
                    logger.error(
                        "CLIP model initialization failed",
                        extra={"model": self._model_name},
                        exc_info=True,
                    )
                    raise EmbeddingModelLoadError(
                        f"Could not load image model '{self._model_name}': {e}"
                    ) from e
                logger.info("CLIP model ready", extra={"model": self._model_name})
        return self._model

    def embed_image(self, image_bytes: bytes) -> EmbeddingResult:
        """Generate a CLIP embedding for encoded image bytes.

        Raises:
            ImageDecodeError: Bytes are not a decodable image
            EmbeddingModelLoadError: Model could not be initialized
            EmbeddingServiceError: Inference failed
        """
        image = decode_image(image_bytes)
        model = self._get_model()

        try:
            vector = model.encode(image, convert_to_numpy=True)
        except Exception as e:
            raise EmbeddingServiceError(f"CLIP inference failed: {e}") from e

        embedding = [float(value) for value in vector.tolist()]
        return EmbeddingResult(
            embedding=embedding,
            model=self._model_name,
            dimension=len(embedding),
        )


@lru_cache()
def get_image_embedding_provider() -> CLIPImageEmbeddingAdapter:
    """Process-wide shared CLIP adapter.

    Uses lru_cache for singleton behavior, like get_settings().
    """
    return CLIPImageEmbeddingAdapter()
