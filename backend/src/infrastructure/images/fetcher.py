"""Image fetching - download product photos and decode inline image payloads.

Product images are stored as URLs (storefront CDN, object storage). Search
requests may instead carry the image inline as base64, optionally wrapped in a
data URL (data:image/jpeg;base64,...).
"""

import base64
import binascii
import logging
from typing import Optional

import httpx

from config import settings

logger = logging.getLogger(__name__)


class ImageFetchError(Exception):
    """Image could not be downloaded"""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch image {url}: {reason}")


class InvalidImagePayloadError(ValueError):
    """Inline image payload is not valid base64"""
    pass


class HttpImageFetcher:
    """Downloads images over HTTP(S) with a size cap.

    Args:
        client: httpx client to reuse (tests pass one backed by MockTransport)
        timeout: Per-request timeout in seconds (default: IMAGE_FETCH_TIMEOUT)
        max_bytes: Largest accepted body (default: IMAGE_MAX_BYTES)
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
        max_bytes: Optional[int] = None,
    ):
        self.timeout = timeout or settings.IMAGE_FETCH_TIMEOUT
        self.max_bytes = max_bytes or settings.IMAGE_MAX_BYTES
        self.client = client or httpx.Client(timeout=self.timeout, follow_redirects=True)

    def fetch(self, url: str) -> bytes:
        """Download an image and return its raw bytes.

        Raises:
            ImageFetchError: Invalid URL, non-2xx status, transport error,
                oversized or empty body
        """
        if not url or not url.lower().startswith(("http://", "https://")):
            raise ImageFetchError(url, "unsupported URL scheme")

        try:
            with self.client.stream("GET", url) as response:
                if response.status_code >= 400:
                    raise ImageFetchError(url, f"HTTP {response.status_code}")

                chunks = []
                received = 0
                for chunk in response.iter_bytes():
                    received += len(chunk)
                    if received > self.max_bytes:
                        raise ImageFetchError(url, f"image larger than {self.max_bytes} bytes")
                    chunks.append(chunk)
        except httpx.HTTPError as e:
            raise ImageFetchError(url, str(e) or type(e).__name__) from e
        except (httpx.InvalidURL, ValueError) as e:
            raise ImageFetchError(url, f"invalid URL: {e}") from e

        data = b"".join(chunks)
        if not data:
            raise ImageFetchError(url, "empty response body")

        logger.debug("Image downloaded", extra={"url": url, "size_bytes": len(data)})
        return data

    def close(self) -> None:
        self.client.close()


def decode_base64_image(payload: str) -> bytes:
    """Decode a base64 image payload, accepting data URLs.

    Example:
        >>> decode_base64_image("data:image/png;base64,aGVsbG8=")
        b'hello'

    Raises:
        InvalidImagePayloadError: Empty or malformed base64
    """
    if not payload or not payload.strip():
        raise InvalidImagePayloadError("Image payload is empty")

    data = payload.split(",", 1)[1] if "," in payload else payload
    try:
        decoded = base64.b64decode("".join(data.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImagePayloadError(f"Image payload is not valid base64: {e}") from e

    if not decoded:
        raise InvalidImagePayloadError("Image payload is empty")
    return decoded
