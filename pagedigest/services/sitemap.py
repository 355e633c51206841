"""Sitemap-based URL discovery."""

import logging
from typing import List, Optional, Tuple
from xml.etree import ElementTree

import httpx

from pagedigest.services.fetcher import fetch_url

logger = logging.getLogger(__name__)

_SITEMAP_PATH = "/sitemap.xml"


async def _fetch_text(url: str, client: Optional[httpx.AsyncClient]) -> str:
    """Return the response body of *url* as text, or an empty string on failure."""
    try:
        return await fetch_url(url, client)
    except (ValueError, httpx.HTTPError, RuntimeError) as exc:
        logger.debug("Sitemap fetch failed for %s: %s", url, exc)
        return ""


def _parse_sitemap(xml_text: str) -> Tuple[bool, List[str]]:
    """Return ``(is_index, locations)`` for a sitemap or sitemap-index document."""
    urls: List[str] = []
    try:
        root = ElementTree.fromstring(xml_text)
    except ElementTree.ParseError as exc:
        logger.warning("Failed to parse sitemap XML: %s", exc)
        return False, urls

    ns = root.tag.split("}")[0] + "}" if root.tag.startswith("{") else ""
    for elem in root.iter(f"{ns}loc"):
        if elem.text and elem.text.strip():
            urls.append(elem.text.strip())
    return root.tag.endswith("sitemapindex"), urls


async def discover_urls_via_sitemap(
    root_url: str, client: Optional[httpx.AsyncClient] = None
) -> List[str]:
    """Return the page URLs listed in ``<root_url>/sitemap.xml``.

    Sitemap-index files are followed breadth-first, each sub-sitemap fetched
    once.  Returns an empty list when no usable sitemap is found.
    """
    sitemap_queue: List[str] = [root_url.rstrip("/") + _SITEMAP_PATH]
    processed: set = set()
    page_urls: List[str] = []
    seen: set = set()

    while sitemap_queue:
        sitemap_url = sitemap_queue.pop(0)
        if sitemap_url in processed:
            continue
        processed.add(sitemap_url)

        xml_text = await _fetch_text(sitemap_url, client)
        if "<urlset" not in xml_text and "<sitemapindex" not in xml_text:
            continue

        is_index, locations = _parse_sitemap(xml_text)
        if is_index:
            sitemap_queue.extend(locations)
            continue

        for url in locations:
            if url not in seen:
                seen.add(url)
                page_urls.append(url)

    return page_urls
