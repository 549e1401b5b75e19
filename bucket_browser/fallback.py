from __future__ import annotations
"""Canned listings served when no live bucket is reachable."""
from typing import NamedTuple

from .models import Entry, ListingResult
from .ui_utils import url_for

MIN_KEYS = 1
MAX_KEYS = 1000
DEFAULT_MAX_KEYS = 100


class FallbackObject(NamedTuple):
    key: str
    last_modified: str
    size: int = 0
    etag: str = ""


FALLBACK_TABLE: dict[str, tuple[FallbackObject, ...]] = {
    "": (
        FallbackObject("index.html", "2024-01-15T10:30:00Z", 2048, "abc123"),
        FallbackObject("assets/", "2024-01-15T09:00:00Z"),
        FallbackObject("pic/", "2024-01-14T18:45:00Z"),
        FallbackObject("images/logo.png", "2024-01-14T15:20:00Z", 15432, "def456"),
        FallbackObject("favicon.ico", "2024-01-12T08:10:00Z", 4286, "a1b2c3"),
        FallbackObject("README.md", "2024-01-10T12:00:00Z", 1337, "0f9e8d"),
    ),
    "pic/": (
        FallbackObject("pic/thumbs/", "2024-01-14T18:45:00Z"),
        FallbackObject("pic/banner.jpg", "2024-01-14T18:40:00Z", 284672, "9b8c7d"),
        FallbackObject("pic/avatar.png", "2024-01-13T11:05:00Z", 52430, "5e6f70"),
        FallbackObject("pic/diagram.svg", "2024-01-11T16:22:00Z", 8120, "c0ffee"),
    ),
    "assets/": (),
    "pic/thumbs/": (),
}


def clamp_max_keys(max_keys: object) -> int:
    if isinstance(max_keys, bool) or not isinstance(max_keys, int):
        return DEFAULT_MAX_KEYS
    return min(max(max_keys, MIN_KEYS), MAX_KEYS)


def fallback_listing(
    prefix: str,
    max_keys: int,
    *,
    endpoint_url: str,
    bucket: str,
    table: dict[str, tuple[FallbackObject, ...]] | None = None,
) -> ListingResult:
    """Return the canned listing for ``prefix`` truncated to ``max_keys``."""
    source = FALLBACK_TABLE if table is None else table
    candidates = [obj for obj in source.get(prefix, ()) if obj.key.startswith(prefix)]
    limit = clamp_max_keys(max_keys)
    entries = [
        Entry(
            key=obj.key,
            last_modified=obj.last_modified,
            size=obj.size,
            etag=obj.etag,
            url=url_for(endpoint_url, bucket, obj.key),
        )
        for obj in candidates[:limit]
    ]
    return ListingResult(entries=entries, has_more=len(candidates) > limit)
