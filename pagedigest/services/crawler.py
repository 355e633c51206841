"""Whole-site fetching: discovery, parallel page fetch, boilerplate removal."""

import asyncio
import logging
from functools import partial
from typing import List, Optional
from urllib.parse import parse_qs, urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from pagedigest.config import Settings
from pagedigest.errors import ExtractionError
from pagedigest.models.site import SitePage, SiteResult
from pagedigest.services.deduplicator import BoilerplatePolicy, remove_boilerplate
from pagedigest.services.fetcher import fetch_url, make_client
from pagedigest.services.identity import root_url as get_root_url
from pagedigest.services.sanitizer import page_text
from pagedigest.services.sitemap import discover_urls_via_sitemap

logger = logging.getLogger(__name__)

# URL path prefixes to skip (common on WordPress and other CMSes)
_SKIP_PATH_PREFIXES = (
    "/wp-admin",
    "/wp-login",
    "/wp-json",
    "/wp-content",
)

_SKIP_PATH_SUFFIXES = (
    ".xml",
    ".rss",
    ".atom",
    "xmlrpc.php",
    "/feed",
)

# Query parameters that indicate non-content pages
_SKIP_QUERY_PARAMS = {"feed", "preview", "replytocom"}

_FETCH_ERRORS = (ValueError, httpx.HTTPError, RuntimeError)


def _should_skip(url: str) -> bool:
    """Return True for URLs that are unlikely to contain useful page content."""
    parsed = urlparse(url)
    path = parsed.path.lower()

    if any(path.startswith(prefix) for prefix in _SKIP_PATH_PREFIXES):
        return True
    if any(path.rstrip("/").endswith(suffix.rstrip("/")) for suffix in _SKIP_PATH_SUFFIXES):
        return True

    query_params = set(parse_qs(parsed.query).keys())
    return bool(query_params & _SKIP_QUERY_PARAMS)


def extract_links(html: str, root_url: str) -> List[str]:
    """Return the same-origin links of *html*, resolved against *root_url*.

    Fragment-only links are dropped, other fragments stripped, and a trailing
    slash removed so ``/docs/`` and ``/docs`` collapse to one URL.
    """
    soup = BeautifulSoup(html, "lxml")
    origin = urlparse(root_url)
    seen: set = set()
    links: List[str] = []

    for a in soup.find_all("a", href=True):
        href = str(a["href"]).strip()
        if not href or href.startswith(("#", "javascript:", "mailto:", "tel:")):
            continue

        parsed = urlparse(urljoin(root_url + "/", href))
        if parsed.scheme not in ("http", "https"):
            continue
        if (parsed.scheme, parsed.netloc) != (origin.scheme, origin.netloc):
            continue

        url = parsed._replace(fragment="").geturl()
        if url.endswith("/"):
            url = url[:-1]

        if url not in seen and not _should_skip(url):
            seen.add(url)
            links.append(url)

    return links


async def discover_urls_via_links(
    root_url: str, client: Optional[httpx.AsyncClient] = None
) -> List[str]:
    """Return the root URL followed by every same-origin link on the root page."""
    try:
        html = await fetch_url(root_url, client)
    except _FETCH_ERRORS as exc:
        raise ExtractionError(f"Could not fetch site root {root_url}: {exc}") from exc

    urls = [root_url]
    urls.extend(link for link in extract_links(html, root_url) if link != root_url)
    return urls


async def fetch_page(url: str, client: Optional[httpx.AsyncClient] = None) -> SitePage:
    html = await fetch_url(url, client)
    title, text = page_text(html)
    return SitePage(url=url, title=title, text=text, word_count=len(text.split()))


async def _fetch_pages(
    urls: List[str], client: httpx.AsyncClient, max_concurrency: int
) -> List[SitePage]:
    """Fetch every URL with at most *max_concurrency* requests in flight.

    Pages that fail to fetch are skipped with a warning; order is preserved.
    """
    semaphore = asyncio.Semaphore(max_concurrency)

    async def fetch_with_semaphore(url: str) -> Optional[SitePage]:
        async with semaphore:
            try:
                return await fetch_page(url, client)
            except _FETCH_ERRORS as exc:
                logger.warning("Site: skipping %s – %s", url, exc)
                return None

    results = await asyncio.gather(*(fetch_with_semaphore(url) for url in urls))
    return [page for page in results if page is not None]


def _is_root(url: str, root_url: str) -> bool:
    return url.rstrip("/") == root_url


async def fetch_site(
    url: str,
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
    boilerplate_policy: Optional[BoilerplatePolicy] = None,
) -> SiteResult:
    """Fetch every discoverable page of the site *url* belongs to.

    Discovery tries ``/sitemap.xml`` first and falls back to the links on the
    root page.  Cross-page boilerplate is stripped, then pages with
    ``settings.min_page_words`` words or fewer are dropped.

    Raises:
        ExtractionError: when discovery finds nothing or no page could be fetched.
    """
    if client is None:
        async with make_client(settings) as owned:
            return await fetch_site(url, settings, owned, boilerplate_policy)

    if boilerplate_policy is None:
        boilerplate_policy = partial(
            remove_boilerplate,
            window=settings.boilerplate_window,
            threshold=settings.boilerplate_ratio,
        )

    root = get_root_url(url)
    logger.info("Site: discovering pages for %s", root)

    page_urls = await discover_urls_via_sitemap(root, client)
    if page_urls:
        logger.info("Site: found %d pages via sitemap.xml", len(page_urls))
    else:
        logger.info("Site: no sitemap found, crawling links")
        page_urls = await discover_urls_via_links(root, client)
        logger.info("Site: found %d pages via link crawl", len(page_urls))

    if not page_urls:
        raise ExtractionError("No pages found on site")

    pages = await _fetch_pages(page_urls, client, settings.max_concurrency)
    if not pages:
        raise ExtractionError(f"None of the {len(page_urls)} pages on {root} could be fetched")

    cleaned_texts, stripped = boilerplate_policy([page.text for page in pages])
    if stripped:
        logger.info("Site: removed cross-page boilerplate")

    meaningful: List[SitePage] = []
    for page, text in zip(pages, cleaned_texts):
        word_count = len(text.split())
        if word_count > settings.min_page_words:
            meaningful.append(page.model_copy(update={"text": text, "word_count": word_count}))

    root_page = next((p for p in meaningful if _is_root(p.url, root)), None)
    title = root_page.title if root_page else urlparse(root).hostname or root

    total_words = sum(page.word_count for page in meaningful)
    logger.info("Site: kept %d pages, ~%d words", len(meaningful), total_words)

    return SiteResult(root_url=root, title=title, pages=meaningful, total_words=total_words)
