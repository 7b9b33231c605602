"""Helpers for the product media list stored on catalog products."""

from typing import Any, Iterable, List

VIDEO_EXTENSIONS = (".mp4", ".webm", ".mov", ".avi", ".mkv", ".m4v")


def media_url(entry: Any) -> str:
    """URL of one media entry: plain string or {"url": ..., "alt": ...} object."""
    if isinstance(entry, str):
        return entry.strip()
    if isinstance(entry, dict) and entry.get("url"):
        return str(entry["url"]).strip()
    return ""


def is_video_url(url: str) -> bool:
    path = url.lower().split("?", 1)[0]
    return path.endswith(VIDEO_EXTENSIONS)


def product_image_urls(images: Iterable[Any]) -> List[str]:
    """Image URLs of a product's media list, in order.

    Entries without a URL and video files are dropped; duplicates are kept
    once.
    """
    urls: List[str] = []
    for entry in images or []:
        url = media_url(entry)
        if url and not is_video_url(url) and url not in urls:
            urls.append(url)
    return urls
