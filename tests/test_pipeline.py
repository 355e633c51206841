"""Tests for the Pipeline orchestrator.

Extraction collaborators are replaced with in-memory fakes and ``AsyncMock``
patches so the state machine can be driven end to end.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from pagedigest.config import Settings
from pagedigest.errors import DiscussionError, ExtractionError
from pagedigest.models.caption import CaptionResult
from pagedigest.models.site import SitePage, SiteResult
from pagedigest.models.tab import Tab
from pagedigest.services.live_page import LivePageExtractor
from pagedigest.services.pipeline import Pipeline, classify
from pagedigest.services.storage import ArtifactStore
from pagedigest.services.summarizer import SummaryService

_ARTICLE = "https://example.com/post"


class FakeBrowser:
    def __init__(self, tabs, texts):
        self.tabs = tabs
        self.texts = texts
        self.evaluated = []

    async def list_tabs(self):
        return list(self.tabs)

    async def evaluate(self, tab_id, expression):
        self.evaluated.append(tab_id)
        return self.texts[tab_id]

    async def open_background(self, url):
        raise AssertionError(f"unexpected open of {url}")


class FakeOracle:
    def __init__(self):
        self.calls = []

    async def summarize(self, content, meta):
        self.calls.append((content, meta))
        return f"Summary {len(self.calls)} of {meta.title}"


@pytest.fixture
def settings(tmp_path):
    return Settings(home=tmp_path, poll_interval=0.001, settle_delay=0, open_timeout=0.05)


@pytest.fixture
def browser():
    return FakeBrowser(
        [
            Tab(id="t1", title="A Great Post", url=f"{_ARTICLE}?utm_source=feed"),
            Tab(id="t2", title="Empty", url="https://example.com/blank"),
        ],
        {"t1": "Post body with several words in it", "t2": "   "},
    )


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def discussion():
    return AsyncMock()


@pytest.fixture
def pipeline(settings, browser, oracle, discussion):
    return Pipeline(
        settings,
        ArtifactStore(settings),
        LivePageExtractor(browser, settings),
        SummaryService(oracle, settings),
        discussion=discussion,
    )


class TestClassify:
    def test_video_pattern_wins(self):
        assert classify("https://youtu.be/dQw4w9WgXcQ") == "video"

    def test_plain_page(self):
        assert classify(_ARTICLE) == "web"

    def test_site_flag(self):
        assert classify("https://youtu.be/dQw4w9WgXcQ", site=True) == "site"


class TestSummarizeWeb:
    def test_extracts_summarizes_and_persists(self, pipeline, oracle, settings):
        result = asyncio.run(pipeline.summarize(_ARTICLE))

        assert result.cached is False
        assert result.kind == "web"
        assert result.title == "A Great Post"
        assert result.summary == "Summary 1 of A Great Post"
        assert result.slug.endswith("_a-great-post")
        assert (settings.articles_dir / f"{result.slug}.md").read_text().endswith(
            "Post body with several words in it"
        )
        html = (settings.html_dir / f"{result.slug}.html").read_text()
        assert "Summary 1 of A Great Post" in html

        content, meta = oracle.calls[0]
        assert meta.kind == "web"
        assert meta.url == _ARTICLE
        assert content == "Post body with several words in it"

    def test_second_request_is_served_from_storage(self, pipeline, oracle, browser):
        first = asyncio.run(pipeline.summarize(_ARTICLE))
        second = asyncio.run(pipeline.summarize(f"{_ARTICLE}/#comments"))

        assert second.cached is True
        assert second.summary == first.summary
        assert second.slug == first.slug
        assert len(oracle.calls) == 1
        assert browser.evaluated == ["t1"]

    def test_redo_skips_cache(self, pipeline, oracle):
        asyncio.run(pipeline.summarize(_ARTICLE))
        result = asyncio.run(pipeline.summarize(_ARTICLE, redo=True))
        assert result.cached is False
        assert len(oracle.calls) == 2

    def test_title_override(self, pipeline):
        result = asyncio.run(pipeline.summarize(_ARTICLE, title="My Own Title"))
        assert result.title == "My Own Title"
        assert result.slug.endswith("_my-own-title")

    def test_empty_page_text(self, pipeline, oracle):
        with pytest.raises(ExtractionError, match="No text"):
            asyncio.run(pipeline.summarize("https://example.com/blank"))
        assert oracle.calls == []

    def test_active_tab_when_no_url(self, pipeline, oracle):
        result = asyncio.run(pipeline.summarize())
        assert result.title == "A Great Post"
        assert oracle.calls[0][1].url == f"{_ARTICLE}?utm_source=feed"

    def test_active_tab_cache_hit_before_extraction(self, pipeline, browser, oracle):
        asyncio.run(pipeline.summarize(f"{_ARTICLE}?utm_source=feed"))
        browser.evaluated.clear()

        result = asyncio.run(pipeline.summarize())
        assert result.cached is True
        assert browser.evaluated == []
        assert len(oracle.calls) == 1

    def test_own_output_resolves_to_source(self, pipeline, oracle, settings):
        first = asyncio.run(pipeline.summarize(_ARTICLE))
        html_url = (settings.html_dir / f"{first.slug}.html").as_uri()

        result = asyncio.run(pipeline.summarize(html_url))
        assert result.cached is True
        assert result.slug == first.slug
        assert len(oracle.calls) == 1


class TestSummarizeVideo:
    def test_dispatches_to_captions(self, pipeline, oracle, browser):
        captions = CaptionResult(title="A Talk", transcript="hello\nworld", segment_count=2, word_count=2)
        with patch(
            "pagedigest.services.pipeline.fetch_captions", new=AsyncMock(return_value=captions)
        ) as mock_fetch:
            result = asyncio.run(pipeline.summarize("https://youtu.be/dQw4w9WgXcQ?t=10"))
            again = asyncio.run(pipeline.summarize("https://www.youtube.com/watch?v=dQw4w9WgXcQ"))

        assert mock_fetch.await_count == 1
        assert mock_fetch.await_args.args[0] == "dQw4w9WgXcQ"
        assert result.kind == "video"
        assert result.title == "A Talk"
        content, meta = oracle.calls[0]
        assert content == "hello\nworld"
        assert meta.kind == "video"
        assert again.cached is True
        assert browser.evaluated == []


class TestSummarizeSite:
    def _site(self):
        pages = [
            SitePage(url="https://docs.example.com", title="Docs", text="intro " * 30, word_count=30),
            SitePage(url="https://docs.example.com/api", title="API", text="api " * 30, word_count=30),
        ]
        return SiteResult(root_url="https://docs.example.com", title="Docs", pages=pages, total_words=60)

    def test_site_dispatch_and_origin_cache(self, pipeline, oracle):
        with patch(
            "pagedigest.services.pipeline.fetch_site", new=AsyncMock(return_value=self._site())
        ) as mock_fetch:
            result = asyncio.run(pipeline.summarize("https://docs.example.com/api", site=True))
            again = asyncio.run(pipeline.summarize("https://docs.example.com/other", site=True))

        assert mock_fetch.await_count == 1
        assert result.kind == "site"
        assert result.title == "Docs"
        assert oracle.calls[0][1].kind == "site"
        assert oracle.calls[0][1].url == "https://docs.example.com"
        assert again.cached is True

    def test_site_without_meaningful_pages(self, pipeline):
        empty = SiteResult(root_url="https://docs.example.com", title="Docs", pages=[], total_words=0)
        with patch("pagedigest.services.pipeline.fetch_site", new=AsyncMock(return_value=empty)):
            with pytest.raises(ExtractionError):
                asyncio.run(pipeline.summarize("https://docs.example.com", site=True))


class TestDiscuss:
    def test_explicit_slug(self, pipeline, discussion, settings):
        first = asyncio.run(pipeline.summarize(_ARTICLE))
        assert asyncio.run(pipeline.discuss(slug=first.slug)) == first.slug
        discussion.assert_awaited_once_with(first.slug, settings)

    def test_by_url(self, pipeline, discussion):
        first = asyncio.run(pipeline.summarize(_ARTICLE))
        assert asyncio.run(pipeline.discuss(url=f"{_ARTICLE}/")) == first.slug

    def test_latest(self, pipeline):
        first = asyncio.run(pipeline.summarize(_ARTICLE))
        assert asyncio.run(pipeline.discuss()) == first.slug

    def test_nothing_stored(self, pipeline, discussion):
        with pytest.raises(DiscussionError, match="No summaries yet"):
            asyncio.run(pipeline.discuss())
        discussion.assert_not_awaited()

    def test_unknown_url(self, pipeline):
        with pytest.raises(DiscussionError, match="No summary found"):
            asyncio.run(pipeline.discuss(url="https://nowhere.example.com"))

    def test_unknown_slug(self, pipeline):
        with pytest.raises(DiscussionError):
            asyncio.run(pipeline.discuss(slug="2024-01-01_missing"))
