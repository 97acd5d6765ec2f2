"""Tests for resource URL validation and type detection."""

from __future__ import annotations

import pytest

from src.resources.validators import (
    ResourceType,
    detect_resource_type,
    validate_blog_url,
    validate_github_url,
    validate_resource_url,
    validate_rss_url,
    validate_youtube_url,
)


class TestGithub:
    @pytest.mark.parametrize(
        "url",
        ["https://github.com/psf/requests", "github.com/tiangolo/fastapi/", "http://www.github.com/a-b/c.d"],
    )
    def test_valid(self, url: str) -> None:
        assert validate_github_url(url)

    @pytest.mark.parametrize(
        "url",
        ["https://github.com/psf", "https://gitlab.com/a/b", "https://github.com/a/b/issues/1"],
    )
    def test_invalid(self, url: str) -> None:
        assert not validate_github_url(url)


class TestYoutube:
    def test_valid(self) -> None:
        assert validate_youtube_url("https://www.youtube.com/watch?v=dQw4w9WgXcQ")
        assert validate_youtube_url("https://youtu.be/dQw4w9WgXcQ")

    def test_invalid(self) -> None:
        assert not validate_youtube_url("https://youtube.com/channel/abc")


class TestBlogAndRss:
    def test_blog(self) -> None:
        assert validate_blog_url("https://example.com/post/1")
        assert not validate_blog_url("ftp://example.com/file")
        assert not validate_blog_url("not a url")

    def test_rss(self) -> None:
        assert validate_rss_url("https://example.com/feed.xml")
        assert validate_rss_url("https://example.com/blog/feed")
        assert validate_rss_url("https://example.com/index.rss")
        assert not validate_rss_url("https://example.com/about")


class TestValidateResourceUrl:
    def test_dispatch_by_type(self) -> None:
        assert validate_resource_url("https://github.com/a/b", ResourceType.GITHUB)
        assert not validate_resource_url("https://example.com", "github")
        assert validate_resource_url("https://example.com", "other")

    def test_unknown_type_raises(self) -> None:
        with pytest.raises(ValueError):
            validate_resource_url("https://example.com", "podcast")


class TestDetectResourceType:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://github.com/a/b", ResourceType.GITHUB),
            ("https://youtu.be/xyz", ResourceType.YOUTUBE),
            ("https://example.com/feed.xml", ResourceType.RSS),
            ("https://example.com/post", ResourceType.BLOG),
        ],
    )
    def test_detect(self, url: str, expected: ResourceType) -> None:
        assert detect_resource_type(url) is expected

    def test_types_match_reranker_categories(self) -> None:
        from src.retrieval.reranker import RESOURCE_CATEGORIES

        tags = {c.type_tag for c in RESOURCE_CATEGORIES}
        assert tags <= {t.value for t in ResourceType}
