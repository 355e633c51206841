"""Summarization: the language-model oracle, its timeout race, and site map-reduce."""

import asyncio
import logging
from typing import List, Optional, Protocol

import anthropic

from pagedigest.config import Settings
from pagedigest.errors import SummarizationError, SummarizationTimeout
from pagedigest.models.site import SiteResult
from pagedigest.models.summary import SummaryMeta
from pagedigest.services.chunker import format_pages, partition_pages
from pagedigest.services.prompts import build_user_prompt, system_prompt

logger = logging.getLogger(__name__)


class SummaryOracle(Protocol):
    async def summarize(self, content: str, meta: SummaryMeta) -> str: ...


class AnthropicOracle:
    """:class:`SummaryOracle` backed by the Anthropic Messages API."""

    def __init__(self, settings: Settings, client: Optional[anthropic.AsyncAnthropic] = None):
        self._settings = settings
        self._client = client or anthropic.AsyncAnthropic(api_key=settings.api_key)

    async def summarize(self, content: str, meta: SummaryMeta) -> str:
        try:
            message = await self._client.messages.create(
                model=self._settings.model,
                max_tokens=self._settings.max_tokens,
                system=system_prompt(meta.kind),
                messages=[{"role": "user", "content": build_user_prompt(content, meta)}],
            )
        except anthropic.APIError as exc:
            raise SummarizationError(f"Summarization request failed: {exc}") from exc

        text = "".join(block.text for block in message.content if block.type == "text").strip()
        if not text:
            raise SummarizationError("Summarization returned no text")
        return text


def _discard_late_result(task: asyncio.Task) -> None:
    # Retrieve the outcome of a call whose caller stopped waiting
    if not task.cancelled():
        task.exception()


def merge_input(partials: List[str]) -> str:
    """Label each partial summary ``Part i of N`` and join them for the merge call."""
    total = len(partials)
    return "\n\n".join(
        f"## Part {i} of {total}\n\n{summary}" for i, summary in enumerate(partials, start=1)
    )


class SummaryService:
    def __init__(self, oracle: SummaryOracle, settings: Settings):
        self._oracle = oracle
        self._settings = settings

    async def summarize(self, content: str, meta: SummaryMeta) -> str:
        """Run one oracle call, failing with :class:`SummarizationTimeout` past the bound.

        The underlying call is not cancelled on timeout; its result is dropped.
        """
        timeout = self._settings.summarize_timeout
        task = asyncio.ensure_future(self._oracle.summarize(content, meta))
        task.add_done_callback(_discard_late_result)
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError as exc:
            raise SummarizationTimeout(f"Summarization timed out after {timeout:g}s") from exc

    async def summarize_site(self, site: SiteResult) -> str:
        """Summarize a whole site, map-reducing over page chunks past the word budget."""
        meta = SummaryMeta(title=site.title, url=site.root_url, kind="site")
        budget = self._settings.context_budget_words

        if site.total_words <= budget:
            return await self.summarize(format_pages(site.pages), meta)

        chunks = partition_pages(site.pages, budget)
        logger.info(
            "Site: %d words exceed the %d-word budget, summarizing %d chunks",
            site.total_words,
            budget,
            len(chunks),
        )

        semaphore = asyncio.Semaphore(self._settings.max_concurrency)

        async def summarize_chunk(pages_text: str) -> str:
            async with semaphore:
                return await self.summarize(pages_text, meta)

        partials = await asyncio.gather(
            *(summarize_chunk(format_pages(chunk.pages)) for chunk in chunks)
        )

        logger.info("Site: merging %d partial summaries", len(partials))
        merge_meta = meta.model_copy(update={"kind": "site-merge"})
        return await self.summarize(merge_input(list(partials)), merge_meta)
