from typing import Optional
from urllib.parse import urljoin, urlparse

import httpx

from pagedigest.config import Settings

MAX_CONTENT_SIZE = 10 * 1024 * 1024  # 10 MB
MAX_REDIRECTS = 10
ALLOWED_SCHEMES = {"http", "https"}


def make_client(settings: Settings, follow_redirects: bool = False) -> httpx.AsyncClient:
    """Return an AsyncClient carrying the configured timeout and User-Agent."""
    return httpx.AsyncClient(
        timeout=settings.http_timeout,
        headers={"User-Agent": settings.user_agent},
        follow_redirects=follow_redirects,
    )


def _validate_url(url: str) -> None:
    """Raise ValueError if *url* is not an absolute http(s) URL."""
    parsed = urlparse(url)

    if parsed.scheme not in ALLOWED_SCHEMES:
        raise ValueError(f"Scheme '{parsed.scheme}' is not allowed. Use http or https.")

    if not parsed.hostname:
        raise ValueError("URL must have a valid hostname.")


async def fetch_url(url: str, client: Optional[httpx.AsyncClient] = None) -> str:
    """Fetch *url* and return the response body as a string.

    Redirects are followed manually so that every hop is validated before the
    next request is made.  When *client* is omitted a short-lived one is created.

    Raises:
        ValueError: if the URL (or a redirect target) is not http/https.
        httpx.HTTPError: on network or HTTP errors.
        RuntimeError: if the response body exceeds MAX_CONTENT_SIZE.
    """
    _validate_url(url)

    if client is None:
        async with httpx.AsyncClient(follow_redirects=False, timeout=15) as owned:
            return await _fetch(url, owned)
    return await _fetch(url, client)


async def _fetch(url: str, client: httpx.AsyncClient) -> str:
    current_url = url
    for _ in range(MAX_REDIRECTS + 1):
        async with client.stream("GET", current_url) as response:
            if response.is_redirect:
                location = response.headers.get("location", "")
                next_url = urljoin(current_url, location)
                _validate_url(next_url)
                current_url = next_url
                continue

            response.raise_for_status()

            content_length = response.headers.get("content-length")
            if content_length and int(content_length) > MAX_CONTENT_SIZE:
                raise RuntimeError("Response body exceeds the maximum allowed size.")

            chunks = []
            total = 0
            async for chunk in response.aiter_bytes():
                total += len(chunk)
                if total > MAX_CONTENT_SIZE:
                    raise RuntimeError("Response body exceeds the maximum allowed size.")
                chunks.append(chunk)

            return b"".join(chunks).decode(errors="replace")

    raise RuntimeError("Too many redirects.")
