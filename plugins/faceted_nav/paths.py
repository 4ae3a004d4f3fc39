"""
Canonical URL paths for filter sets.

    {"type": "cottage", "bedrooms": "2"}  <->  "bedrooms/2/type/cottage"

Keys are always emitted in alphabetical order, so each filter set has
exactly one path.
"""

import urllib.parse
from typing import Dict, Mapping, Optional

CONTENT_ANCHOR = "#content"


def encode_path(filter_set: Optional[Mapping[str, str]]) -> str:
    if not filter_set:
        return ""
    segments = []
    for key in sorted(filter_set):
        segments.append(urllib.parse.quote(key, safe=""))
        segments.append(urllib.parse.quote(filter_set[key], safe=""))
    return "/".join(segments)


def decode_path(path: Optional[str]) -> Dict[str, str]:
    """
    Parse a path back into a filter set.

    Empty segments are ignored. A trailing key without a value is dropped,
    so ``"type/cottage/bedrooms"`` decodes to ``{"type": "cottage"}``.
    """
    if not path:
        return {}
    segments = [s for s in path.split("/") if s]
    filter_set = {}
    for i in range(0, len(segments) - 1, 2):
        key = urllib.parse.unquote(segments[i])
        value = urllib.parse.unquote(segments[i + 1])
        if key and value:
            filter_set[key] = value
    return filter_set


def normalize_base_url(base_url: str) -> str:
    """Return ``base_url`` with a leading slash and no trailing slash."""
    stripped = base_url.strip().strip("/")
    return f"/{stripped}" if stripped else ""


def search_url(base_url: str, path: str = "") -> str:
    """Search listing URL for an encoded path."""
    if path:
        return f"{base_url}/search/{path}/{CONTENT_ANCHOR}"
    return f"{base_url}/search/{CONTENT_ANCHOR}"


def listing_url(base_url: str, filter_set: Optional[Mapping[str, str]] = None) -> str:
    """URL of the listing for a filter set; the empty set is the catalog root."""
    path = encode_path(filter_set)
    if not path:
        return f"{base_url}/{CONTENT_ANCHOR}"
    return search_url(base_url, path)


def path_from_url(url: str, base_url: str) -> str:
    """Extract the encoded filter path from a listing URL built by ``listing_url``."""
    route = url.split("#", 1)[0]
    prefix = f"{base_url}/search/"
    if not route.startswith(prefix):
        return ""
    return route[len(prefix):].strip("/")
