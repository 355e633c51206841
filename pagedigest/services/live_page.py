"""Text extraction from pages rendered in the user's own browser."""

import asyncio
import logging
import time
from typing import List, Optional, Tuple

from pagedigest.config import Settings
from pagedigest.errors import ExtractionError
from pagedigest.models.tab import Tab
from pagedigest.services.browser import BrowserControl

logger = logging.getLogger(__name__)

TEXT_EXPRESSION = "document.body.innerText"

_BLANK_URLS = {"", "about:blank"}


def find_tab_by_url(tabs: List[Tab], url: str) -> Optional[Tab]:
    """Return the first tab showing *url*, allowing trailing query/fragment on the tab."""
    return next((t for t in tabs if t.url == url or t.url.startswith(url)), None)


class LivePageExtractor:
    def __init__(self, browser: BrowserControl, settings: Settings):
        self._browser = browser
        self._settings = settings

    async def active_tab(self) -> Tab:
        tabs = await self._browser.list_tabs()
        if not tabs:
            raise ExtractionError("No browser tabs found")
        return tabs[0]

    async def open_tab(self, url: str) -> Tab:
        """Open *url* in a background tab and wait until the new tab has navigated.

        Raises:
            ExtractionError: if no new, non-blank tab appears within ``open_timeout``.
        """
        before = {t.id for t in await self._browser.list_tabs()}
        await self._browser.open_background(url)

        deadline = time.monotonic() + self._settings.open_timeout
        while time.monotonic() < deadline:
            await asyncio.sleep(self._settings.poll_interval)
            current = await self._browser.list_tabs()
            new_tab = next(
                (t for t in current if t.id not in before and t.url not in _BLANK_URLS),
                None,
            )
            if new_tab:
                # let client-side rendering settle before reading text
                await asyncio.sleep(self._settings.settle_delay)
                return new_tab

        raise ExtractionError(f"Timed out waiting for page to load: {url}")

    async def extract_text(self, tab: Tab) -> str:
        return await self._browser.evaluate(tab.id, TEXT_EXPRESSION)

    async def extract(self, url: str) -> Tuple[Tab, str]:
        """Return the tab showing *url* (opening one if needed) and its visible text."""
        tabs = await self._browser.list_tabs()
        tab = find_tab_by_url(tabs, url)
        if tab:
            logger.info("Extracting from tab: %s", tab.title)
        else:
            logger.info("Opening %s in the browser", url)
            tab = await self.open_tab(url)
            logger.info("Extracting from new tab: %s", tab.title)
        return tab, await self.extract_text(tab)
