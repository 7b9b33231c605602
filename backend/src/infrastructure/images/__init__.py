"""Image download and inline payload decoding."""

from .fetcher import (
    HttpImageFetcher,
    ImageFetchError,
    InvalidImagePayloadError,
    decode_base64_image,
)

__all__ = [
    "HttpImageFetcher",
    "ImageFetchError",
    "InvalidImagePayloadError",
    "decode_base64_image",
]
