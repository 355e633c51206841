"""Access to the user's running browser over the DevTools protocol.

Tabs are listed and opened through the DevTools HTTP endpoint; in-tab
evaluation goes through Playwright attached with ``connect_over_cdp``.
"""

import asyncio
import logging
import shlex
from typing import List, Protocol
from urllib.parse import quote

import httpx
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from pagedigest.config import Settings
from pagedigest.errors import ExtractionError
from pagedigest.models.tab import Tab

logger = logging.getLogger(__name__)


class BrowserControl(Protocol):
    async def list_tabs(self) -> List[Tab]: ...

    async def evaluate(self, tab_id: str, expression: str) -> str: ...

    async def open_background(self, url: str) -> None: ...


class CdpBrowser:
    """:class:`BrowserControl` backed by a Chromium-based browser's DevTools port."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._endpoint = settings.cdp_endpoint

    async def list_tabs(self) -> List[Tab]:
        try:
            async with httpx.AsyncClient(timeout=self._settings.eval_timeout) as client:
                resp = await client.get(f"{self._endpoint}/json/list")
                resp.raise_for_status()
                targets = resp.json()
        except httpx.HTTPError as exc:
            raise ExtractionError(f"Browser not reachable on {self._endpoint}: {exc}") from exc

        return [
            Tab(id=t["id"], title=t.get("title", ""), url=t.get("url", ""))
            for t in targets
            if t.get("type") == "page"
        ]

    async def evaluate(self, tab_id: str, expression: str) -> str:
        """Evaluate *expression* in the tab whose DevTools target id is *tab_id*."""
        try:
            async with async_playwright() as pw:
                browser = await pw.chromium.connect_over_cdp(self._endpoint)
                try:
                    for context in browser.contexts:
                        for page in context.pages:
                            session = await context.new_cdp_session(page)
                            info = await session.send("Target.getTargetInfo")
                            await session.detach()
                            if info["targetInfo"]["targetId"] != tab_id:
                                continue
                            value = await asyncio.wait_for(
                                page.evaluate(expression), self._settings.eval_timeout
                            )
                            if value is None:
                                raise ExtractionError(f"Evaluation in tab {tab_id} returned nothing")
                            return str(value)
                finally:
                    await browser.close()
        except asyncio.TimeoutError as exc:
            raise ExtractionError(f"Evaluation in tab {tab_id} timed out") from exc
        except PlaywrightError as exc:
            raise ExtractionError(f"Evaluation in tab {tab_id} failed: {exc}") from exc

        raise ExtractionError(f"Tab {tab_id} is no longer open")

    async def open_background(self, url: str) -> None:
        """Ask the browser to open *url* in a new tab without waiting for it to load."""
        if self._settings.open_command:
            argv = shlex.split(self._settings.open_command) + [url]
            try:
                proc = await asyncio.create_subprocess_exec(
                    *argv,
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.DEVNULL,
                )
                returncode = await proc.wait()
            except OSError as exc:
                raise ExtractionError(f"Could not run {argv[0]}: {exc}") from exc
            if returncode != 0:
                raise ExtractionError(f"{argv[0]} exited with status {returncode} opening {url}")
            return

        try:
            async with httpx.AsyncClient(timeout=self._settings.eval_timeout) as client:
                resp = await client.put(f"{self._endpoint}/json/new?{quote(url, safe='')}")
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise ExtractionError(f"Could not open {url} in the browser: {exc}") from exc
