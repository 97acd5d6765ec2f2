"""URL validation and classification for external learning resources."""

from __future__ import annotations

import re
from enum import StrEnum
from urllib.parse import urlparse


class ResourceType(StrEnum):
    """Resource categories, matching the sub-type tags the reranker boosts."""

    GITHUB = "github"
    YOUTUBE = "youtube"
    BLOG = "blog"
    RSS = "rss"
    OTHER = "other"


_GITHUB_RE = re.compile(r"^(https?://)?(www\.)?github\.com/[\w-]+/[\w.-]+/?$", re.IGNORECASE)
_YOUTUBE_RES: list[re.Pattern[str]] = [
    re.compile(r"^(https?://)?(www\.)?youtube\.com/watch\?v=[\w-]+", re.IGNORECASE),
    re.compile(r"^(https?://)?(www\.)?youtu\.be/[\w-]+", re.IGNORECASE),
]


def _is_http_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_github_url(url: str) -> bool:
    """``github.com/owner/repo`` with or without scheme."""
    return bool(_GITHUB_RE.match(url))


def validate_youtube_url(url: str) -> bool:
    return any(p.match(url) for p in _YOUTUBE_RES)


def validate_blog_url(url: str) -> bool:
    return _is_http_url(url)


def validate_rss_url(url: str) -> bool:
    """Feeds usually end in ``.xml`` / ``.rss`` or live under a ``/feed`` path."""
    return _is_http_url(url) and (url.endswith((".xml", ".rss")) or "/feed" in url)


def validate_resource_url(url: str, resource_type: ResourceType | str) -> bool:
    """Check *url* against the rules for *resource_type*.

    Raises:
        ValueError: If *resource_type* is not a known resource type.
    """
    resource_type = ResourceType(resource_type)
    validators = {
        ResourceType.GITHUB: validate_github_url,
        ResourceType.YOUTUBE: validate_youtube_url,
        ResourceType.BLOG: validate_blog_url,
        ResourceType.RSS: validate_rss_url,
        ResourceType.OTHER: validate_blog_url,
    }
    return validators[resource_type](url)


def detect_resource_type(url: str) -> ResourceType:
    """Best-effort guess of the resource type from its URL (defaults to blog)."""
    if validate_github_url(url):
        return ResourceType.GITHUB
    if validate_youtube_url(url):
        return ResourceType.YOUTUBE
    if validate_rss_url(url):
        return ResourceType.RSS
    return ResourceType.BLOG
