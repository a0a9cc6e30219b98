"""Sitemap collection: resolves a sitemap index into an ordered list of page URLs."""

import asyncio
import logging
import re
from typing import Dict, List, Optional, Set
from xml.etree import ElementTree as ET

import httpx

from a11y_audit.config import AuditConfig
from a11y_audit.constants import (
    DEFAULT_SITEMAP_PATH,
    SITEMAP_FETCH_TIMEOUT_SECONDS,
    SITEMAP_MAX_REDIRECTS,
    SITEMAP_REQUEST_HEADERS,
    SITEMAP_VERIFY_TIMEOUT_SECONDS,
)
from a11y_audit.infrastructure.cancellation import CancellationToken

logger = logging.getLogger(__name__)

# Nested sitemap indexes deeper than this are ignored
MAX_SITEMAP_DEPTH = 3


class SitemapCollectionError(Exception):
    """Raised when the root sitemap yields no URLs to audit."""

    def __init__(self, message: str, sitemap_url: Optional[str] = None):
        self.message = message
        self.sitemap_url = sitemap_url
        super().__init__(message)


def normalize_sitemap_url(raw: str) -> str:
    """
    Turn user input into a sitemap URL.

    ``example.com`` becomes ``https://example.com/sitemap_index.xml``; a URL
    already ending in ``.xml`` is used as is.

    Raises:
        ValueError: If the input is empty
    """
    if raw is None or not raw.strip():
        raise ValueError("A website URL is required")

    url = raw.strip()
    if not url.startswith(("http://", "https://")):
        url = "https://" + url

    if url.endswith(".xml"):
        return url

    if url.endswith("/"):
        url = url[:-1]

    return url + DEFAULT_SITEMAP_PATH


def _local_name(tag: str) -> str:
    """Strip the XML namespace from a tag."""
    return tag.split('}')[-1] if '}' in tag else tag


def _loc_values(root: ET.Element, container: str, entry: str) -> List[str]:
    """Collect <loc> text of every ``entry`` child when root is ``container``."""
    if _local_name(root.tag) != container:
        return []

    values = []
    for item in root:
        if _local_name(item.tag) != entry:
            continue
        for child in item:
            if _local_name(child.tag) == "loc" and child.text and child.text.strip():
                values.append(child.text.strip())
                break
    return values


def extract_page_urls(root: Optional[ET.Element]) -> List[str]:
    """Page URLs of a ``<urlset>`` document, in document order."""
    if root is None:
        return []
    return _loc_values(root, "urlset", "url")


def extract_child_sitemaps(root: Optional[ET.Element]) -> List[str]:
    """Child sitemap URLs of a ``<sitemapindex>`` document."""
    if root is None:
        return []
    return _loc_values(root, "sitemapindex", "sitemap")


def parse_sitemap_xml(content: str) -> ET.Element:
    """
    Parse sitemap XML text.

    Raises:
        ET.ParseError: If the content is not well-formed XML
    """
    content = re.sub(r'<!DOCTYPE[^>]*>', '', content.lstrip("\ufeff").strip())
    return ET.fromstring(content)


class SitemapCollector:
    """
    Collects page URLs from a sitemap hierarchy.

    Supports:
    - Standard sitemap.xml files (<urlset>)
    - Sitemap index files (<sitemapindex>), nested up to MAX_SITEMAP_DEPTH
    - Flat sitemaps served at the index location
    """

    def __init__(
        self,
        config: Optional[AuditConfig] = None,
        token: Optional[CancellationToken] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the collector.

        Args:
            config: Audit configuration (retry settings for downloads)
            token: Cancellation token for retry waits
            transport: Optional httpx transport (used by tests)
        """
        self.config = config or AuditConfig()
        self.token = token or CancellationToken()
        self._transport = transport
        self.failed_sitemaps: List[str] = []

    def _client(self, timeout: float = SITEMAP_FETCH_TIMEOUT_SECONDS) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=SITEMAP_REQUEST_HEADERS,
            timeout=timeout,
            follow_redirects=True,
            max_redirects=SITEMAP_MAX_REDIRECTS,
            transport=self._transport,
        )

    async def verify(self, sitemap_url: str) -> bool:
        """
        Check that the root sitemap answers a HEAD request.

        Returns:
            True if the sitemap looks reachable
        """
        try:
            async with self._client(SITEMAP_VERIFY_TIMEOUT_SECONDS) as client:
                response = await client.head(sitemap_url)
        except httpx.HTTPError as e:
            logger.error(f"Unable to reach sitemap {sitemap_url}: {e}")
            return False

        # Some servers refuse HEAD but serve GET
        if response.status_code == 405:
            return True
        if response.status_code >= 400:
            logger.error(f"Sitemap {sitemap_url} returned HTTP {response.status_code}")
            return False
        return True

    async def fetch_xml(self, client: httpx.AsyncClient, url: str) -> Optional[ET.Element]:
        """
        Download and parse one sitemap document with linear backoff.

        Args:
            client: HTTP client
            url: Sitemap URL

        Returns:
            Parsed root element, or None after the last failed attempt
        """
        retries = self.config.sitemap_fetch_retries

        for attempt in range(retries + 1):
            try:
                response = await client.get(url)
                response.raise_for_status()
                return parse_sitemap_xml(response.text)
            except (httpx.HTTPError, ET.ParseError) as e:
                if attempt < retries:
                    delay = self.config.sitemap_retry_delay * (attempt + 1)
                    logger.warning(f"Retry {attempt + 1}/{retries} for {url} after {delay:.1f}s ({e})")
                    await self.token.sleep(delay)
                else:
                    logger.error(f"Error fetching {url}: {e}")

        return None

    async def collect(self, sitemap_url: str) -> List[str]:
        """
        Collect every unique page URL reachable from a sitemap.

        Args:
            sitemap_url: Root sitemap or sitemap index URL

        Returns:
            Unique URLs in order of first discovery; empty if the root
            sitemap could not be fetched
        """
        self.failed_sitemaps = []
        found: Dict[str, None] = {}  # insertion-ordered set

        async with self._client() as client:
            logger.info(f"Fetching sitemap index: {sitemap_url}")
            root = await self.fetch_xml(client, sitemap_url)
            if root is None:
                logger.error(f"Failed to fetch sitemap index {sitemap_url}")
                return []

            children = extract_child_sitemaps(root)
            logger.info(f"Found {len(children)} sitemaps")

            visited: Set[str] = {sitemap_url}
            await self._collect_children(client, children, found, visited, depth=1)

            # The root may itself be a flat sitemap
            for url in extract_page_urls(root):
                found.setdefault(url, None)

        logger.info(f"✓ Total unique URLs found: {len(found)}")
        if self.failed_sitemaps:
            logger.warning(f"{len(self.failed_sitemaps)} sitemap(s) could not be fetched and were skipped")

        return list(found)

    async def _collect_children(
        self,
        client: httpx.AsyncClient,
        children: List[str],
        found: Dict[str, None],
        visited: Set[str],
        depth: int,
    ) -> None:
        """Fetch child sitemaps in order and merge their URLs into ``found``."""
        for child_url in children:
            if child_url in visited:
                continue
            visited.add(child_url)
            self.token.raise_if_cancelled()

            logger.info(f"Fetching {child_url}...")
            child_root = await self.fetch_xml(client, child_url)
            if child_root is None:
                logger.warning(f"Failed to fetch {child_url}, skipping")
                self.failed_sitemaps.append(child_url)
                continue

            nested = extract_child_sitemaps(child_root)
            if nested:
                if depth >= MAX_SITEMAP_DEPTH:
                    logger.warning(f"Sitemap nesting too deep, ignoring children of {child_url}")
                else:
                    await self._collect_children(client, nested, found, visited, depth + 1)

            urls = extract_page_urls(child_root)
            for url in urls:
                found.setdefault(url, None)
            logger.info(f"Extracted {len(urls)} URLs from {child_url}")


def collect_urls(sitemap_url: str, config: Optional[AuditConfig] = None) -> List[str]:
    """
    Convenience function to collect URLs synchronously.

    Args:
        sitemap_url: URL to the sitemap or sitemap index
        config: Optional audit configuration

    Returns:
        List of unique page URLs
    """
    return asyncio.run(SitemapCollector(config).collect(sitemap_url))
