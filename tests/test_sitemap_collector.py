"""Tests for sitemap collection."""

import httpx
import pytest
from xml.etree import ElementTree as ET

from a11y_audit.config import AuditConfig
from a11y_audit.sitemap_collector import (
    SitemapCollector,
    extract_child_sitemaps,
    extract_page_urls,
    normalize_sitemap_url,
    parse_sitemap_xml,
)

ROOT = "https://example.com/sitemap_index.xml"
POSTS = "https://example.com/post-sitemap.xml"
PAGES = "https://example.com/page-sitemap.xml"


def sitemap_index(*locs: str) -> str:
    entries = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</sitemapindex>'
    )


def urlset(*locs: str) -> str:
    entries = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>'
    )


def make_transport(routes: dict, calls: list = None) -> httpx.MockTransport:
    """Serve ``routes`` (url -> body or status code); anything else is a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append((request.method, str(request.url)))
        body = routes.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        if isinstance(body, int):
            return httpx.Response(body)
        return httpx.Response(200, text=body)

    return httpx.MockTransport(handler)


@pytest.fixture
def fast_config():
    """Configuration without retry waits."""
    return AuditConfig(sitemap_retry_delay=0.0)


class TestNormalizeSitemapUrl:
    """Tests for normalize_sitemap_url."""

    @pytest.mark.parametrize("raw,expected", [
        ("example.com", "https://example.com/sitemap_index.xml"),
        ("https://example.com/", "https://example.com/sitemap_index.xml"),
        ("http://example.com", "http://example.com/sitemap_index.xml"),
        ("example.com/sitemap.xml", "https://example.com/sitemap.xml"),
        ("  https://example.com/page-sitemap.xml  ", "https://example.com/page-sitemap.xml"),
    ])
    def test_normalization(self, raw, expected):
        """Test scheme and default path handling."""
        assert normalize_sitemap_url(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_empty_input(self, raw):
        """Test that empty input is rejected."""
        with pytest.raises(ValueError):
            normalize_sitemap_url(raw)


class TestParsing:
    """Tests for XML parsing helpers."""

    def test_urlset(self):
        """Test page URL extraction in document order."""
        root = parse_sitemap_xml(urlset("https://example.com/b", "https://example.com/a"))

        assert extract_page_urls(root) == ["https://example.com/b", "https://example.com/a"]
        assert extract_child_sitemaps(root) == []

    def test_sitemap_index(self):
        """Test child sitemap extraction."""
        root = parse_sitemap_xml(sitemap_index(POSTS, PAGES))

        assert extract_child_sitemaps(root) == [POSTS, PAGES]
        assert extract_page_urls(root) == []

    def test_byte_order_mark_and_whitespace(self):
        """Test that a leading BOM does not break parsing."""
        root = parse_sitemap_xml("\ufeff\n  " + urlset("https://example.com/"))
        assert extract_page_urls(root) == ["https://example.com/"]

    def test_entries_without_loc_are_skipped(self):
        """Test that empty entries are ignored."""
        content = (
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
            "<url><lastmod>2024-01-01</lastmod></url>"
            "<url><loc> </loc></url>"
            "<url><loc>https://example.com/x</loc></url>"
            "</urlset>"
        )
        assert extract_page_urls(parse_sitemap_xml(content)) == ["https://example.com/x"]

    def test_malformed_xml(self):
        """Test that malformed XML raises ParseError."""
        with pytest.raises(ET.ParseError):
            parse_sitemap_xml("<urlset><url>")


class TestCollect:
    """Tests for SitemapCollector.collect."""

    @pytest.mark.asyncio
    async def test_index_with_overlapping_children(self, fast_config):
        """Test that an index of two 3-URL sitemaps sharing one URL yields 5 URLs."""
        routes = {
            ROOT: sitemap_index(POSTS, PAGES),
            POSTS: urlset("https://example.com/a", "https://example.com/b", "https://example.com/c"),
            PAGES: urlset("https://example.com/c", "https://example.com/d", "https://example.com/e"),
        }
        collector = SitemapCollector(fast_config, transport=make_transport(routes))

        urls = await collector.collect(ROOT)

        assert urls == [
            "https://example.com/a",
            "https://example.com/b",
            "https://example.com/c",
            "https://example.com/d",
            "https://example.com/e",
        ]
        assert len(urls) == len(set(urls))

    @pytest.mark.asyncio
    async def test_failed_child_is_skipped(self, fast_config):
        """Test that an unreachable child sitemap is retried, then skipped."""
        calls = []
        routes = {
            ROOT: sitemap_index(POSTS, PAGES),
            POSTS: urlset("https://example.com/a"),
            PAGES: 500,
        }
        collector = SitemapCollector(fast_config, transport=make_transport(routes, calls))

        urls = await collector.collect(ROOT)

        assert urls == ["https://example.com/a"]
        assert collector.failed_sitemaps == [PAGES]
        page_calls = [c for c in calls if c[1] == PAGES]
        assert len(page_calls) == fast_config.sitemap_fetch_retries + 1

    @pytest.mark.asyncio
    async def test_root_failure_returns_empty(self, fast_config):
        """Test that an unreachable root yields no URLs."""
        collector = SitemapCollector(fast_config, transport=make_transport({}))
        assert await collector.collect(ROOT) == []

    @pytest.mark.asyncio
    async def test_malformed_root_returns_empty(self, fast_config):
        """Test that a root that is not XML yields no URLs."""
        collector = SitemapCollector(fast_config, transport=make_transport({ROOT: "<html><body>"}))
        assert await collector.collect(ROOT) == []

    @pytest.mark.asyncio
    async def test_flat_sitemap_at_root(self, fast_config):
        """Test that a plain urlset at the root location is used directly."""
        routes = {ROOT: urlset("https://example.com/", "https://example.com/about")}
        collector = SitemapCollector(fast_config, transport=make_transport(routes))

        assert await collector.collect(ROOT) == ["https://example.com/", "https://example.com/about"]

    @pytest.mark.asyncio
    async def test_unknown_document_shape(self, fast_config):
        """Test that a well-formed but unrelated document yields nothing."""
        routes = {ROOT: "<rss><channel><title>Feed</title></channel></rss>"}
        collector = SitemapCollector(fast_config, transport=make_transport(routes))

        assert await collector.collect(ROOT) == []

    @pytest.mark.asyncio
    async def test_nested_index(self, fast_config):
        """Test that a child index is followed."""
        nested = "https://example.com/nested-index.xml"
        routes = {
            ROOT: sitemap_index(nested),
            nested: sitemap_index(POSTS),
            POSTS: urlset("https://example.com/deep"),
        }
        collector = SitemapCollector(fast_config, transport=make_transport(routes))

        assert await collector.collect(ROOT) == ["https://example.com/deep"]

    @pytest.mark.asyncio
    async def test_self_reference_is_not_refetched(self, fast_config):
        """Test that an index listing itself does not loop."""
        calls = []
        routes = {
            ROOT: sitemap_index(ROOT, POSTS),
            POSTS: urlset("https://example.com/a"),
        }
        collector = SitemapCollector(fast_config, transport=make_transport(routes, calls))

        assert await collector.collect(ROOT) == ["https://example.com/a"]
        assert [c for c in calls if c[1] == ROOT] == [("GET", ROOT)]


class TestVerify:
    """Tests for SitemapCollector.verify."""

    @pytest.mark.asyncio
    async def test_reachable(self):
        """Test a sitemap answering HEAD with 200."""
        calls = []
        collector = SitemapCollector(transport=make_transport({ROOT: urlset()}, calls))

        assert await collector.verify(ROOT) is True
        assert calls == [("HEAD", ROOT)]

    @pytest.mark.asyncio
    async def test_not_found(self):
        """Test a missing sitemap."""
        collector = SitemapCollector(transport=make_transport({}))
        assert await collector.verify(ROOT) is False

    @pytest.mark.asyncio
    async def test_head_not_allowed(self):
        """Test that servers refusing HEAD are treated as reachable."""
        collector = SitemapCollector(transport=make_transport({ROOT: 405}))
        assert await collector.verify(ROOT) is True

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Test that transport errors mean unreachable."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        collector = SitemapCollector(transport=httpx.MockTransport(handler))
        assert await collector.verify(ROOT) is False
