"""Orchestration: identity -> cache -> extraction -> summarization -> persistence."""

import logging
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

import httpx

from pagedigest.config import Settings
from pagedigest.errors import DiscussionError, ExtractionError
from pagedigest.models.artifact import CachedArtifact, SummarizeResult
from pagedigest.models.content import (
    ContentItem,
    ContentKind,
    SiteContent,
    VideoContent,
    WebContent,
)
from pagedigest.models.site import SiteResult
from pagedigest.models.summary import SummaryMeta
from pagedigest.models.tab import Tab
from pagedigest.services.browser import CdpBrowser
from pagedigest.services.chunker import format_pages
from pagedigest.services.crawler import fetch_site
from pagedigest.services.discussion import open_discussion
from pagedigest.services.identity import extract_video_id, generate_slug, normalize
from pagedigest.services.live_page import LivePageExtractor
from pagedigest.services.renderer import render_page
from pagedigest.services.storage import ArtifactStore
from pagedigest.services.summarizer import AnthropicOracle, SummaryService
from pagedigest.services.youtube import fetch_captions

logger = logging.getLogger(__name__)

DiscussionOpener = Callable[[str, Settings], Awaitable[None]]


def classify(url: str, site: bool = False) -> ContentKind:
    """Pick the extraction path for *url*; the video pattern wins over plain web."""
    if site:
        return "site"
    return "video" if extract_video_id(url) else "web"


class Pipeline:
    def __init__(
        self,
        settings: Settings,
        store: ArtifactStore,
        live_pages: LivePageExtractor,
        summaries: SummaryService,
        client: Optional[httpx.AsyncClient] = None,
        discussion: DiscussionOpener = open_discussion,
    ):
        self._settings = settings
        self._store = store
        self._live_pages = live_pages
        self._summaries = summaries
        self._client = client
        self._discussion = discussion

    @classmethod
    def from_settings(cls, settings: Settings) -> "Pipeline":
        """Wire the production collaborators: DevTools browser and Anthropic oracle."""
        return cls(
            settings,
            ArtifactStore(settings),
            LivePageExtractor(CdpBrowser(settings), settings),
            SummaryService(AnthropicOracle(settings), settings),
        )

    # -- summarize ------------------------------------------------------------

    async def summarize(
        self,
        url: Optional[str] = None,
        *,
        title: Optional[str] = None,
        redo: bool = False,
        site: bool = False,
    ) -> SummarizeResult:
        """Summarize *url*, or the browser's active tab when no URL is given.

        A stored summary for the same canonical key is returned as-is unless
        *redo* is set.
        """
        self._store.ensure_dirs()

        tab: Optional[Tab] = None
        if url is None:
            tab = await self._live_pages.active_tab()
            url = tab.url
            logger.info("Using active tab: %s", tab.title)

        source = self._store.resolve_source_url(url)
        if source:
            logger.info("Resolved stored page %s to %s", url, source)
            url, tab = source, None

        kind = classify(url, site)
        key = normalize(url, kind)

        if not redo:
            cached = self._store.find_cached(key, kind)
            if cached is not None:
                logger.info("Cache hit for %s: %s", key, cached.slug)
                return self._cached_result(cached)

        item = await self._extract(url, kind, key, tab, title)
        logger.info("Extracted %s content: %r, %d words", item.kind, item.title, item.word_count)

        summary = await self._summarize_item(item)
        return self._persist(item, summary)

    def _cached_result(self, cached: CachedArtifact) -> SummarizeResult:
        return SummarizeResult(
            slug=cached.slug,
            title=cached.title,
            summary=cached.summary_text,
            html_path=str(self._store.html_path(cached.slug)),
            cached=True,
            kind=cached.kind,
        )

    async def _extract(
        self,
        url: str,
        kind: ContentKind,
        key: str,
        tab: Optional[Tab],
        title: Optional[str],
    ) -> ContentItem:
        if kind == "video":
            video_id = key.split(":", 1)[1]
            captions = await fetch_captions(video_id, self._settings, self._client)
            return VideoContent(
                source_url=url,
                canonical_key=key,
                title=title or captions.title,
                raw_text=captions.transcript,
                word_count=captions.word_count,
                video_id=video_id,
                segment_count=captions.segment_count,
            )

        if kind == "site":
            result = await fetch_site(url, self._settings, self._client)
            if not result.pages:
                raise ExtractionError(f"No page on {result.root_url} has enough content to summarize")
            return SiteContent(
                source_url=url,
                canonical_key=key,
                title=title or result.title,
                raw_text=format_pages(result.pages),
                word_count=result.total_words,
                root_url=result.root_url,
                pages=result.pages,
            )

        if tab is not None:
            text = await self._live_pages.extract_text(tab)
        else:
            tab, text = await self._live_pages.extract(url)
        text = text.strip()
        if not text:
            raise ExtractionError(f"No text found on {url}")
        return WebContent(
            source_url=url,
            canonical_key=key,
            title=title or tab.title or "Untitled",
            raw_text=text,
            word_count=len(text.split()),
        )

    async def _summarize_item(self, item: ContentItem) -> str:
        if isinstance(item, SiteContent):
            site = SiteResult(
                root_url=item.root_url,
                title=item.title,
                pages=item.pages,
                total_words=item.word_count,
            )
            return await self._summaries.summarize_site(site)

        meta = SummaryMeta(title=item.title, url=item.source_url, kind=item.kind)
        return await self._summaries.summarize(item.raw_text, meta)

    def _persist(self, item: ContentItem, summary: str) -> SummarizeResult:
        created_at = datetime.now()
        slug = generate_slug(item.title, created_at.date())
        html = render_page(
            title=item.title,
            url=item.source_url,
            kind=item.kind,
            summary=summary,
            words=item.word_count,
            created=created_at.date(),
        )
        html_path = self._store.save(slug, item, summary, html, created_at)
        logger.info("Saved %s", slug)
        return SummarizeResult(
            slug=slug,
            title=item.title,
            summary=summary,
            html_path=str(html_path),
            kind=item.kind,
        )

    def regenerate_html(self) -> List[str]:
        return self._store.regenerate_html()

    # -- discuss --------------------------------------------------------------

    async def discuss(self, slug: Optional[str] = None, url: Optional[str] = None) -> str:
        """Open a discussion session; the slug is explicit, looked up by URL, or the latest."""
        if slug is None and url is not None:
            url = self._store.resolve_source_url(url) or url
            slug = self._store.find_by_url(url) or self._store.find_by_url(url, "site")
            if slug is None:
                raise DiscussionError(f"No summary found for {url}")
        elif slug is None:
            slug = self._store.latest_slug()
            if slug is None:
                raise DiscussionError("No summaries yet")
        elif self._store.read_summary(slug) is None:
            raise DiscussionError(f"No summary named {slug}")

        await self._discussion(slug, self._settings)
        return slug
