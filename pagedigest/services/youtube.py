"""Video caption retrieval through the public watch page and the player endpoint."""

import html
import json
import logging
import re
from typing import Any, List, Optional

import httpx
from bs4 import BeautifulSoup

from pagedigest.config import Settings
from pagedigest.errors import ExtractionError
from pagedigest.models.caption import CaptionResult, CaptionTrack
from pagedigest.services.fetcher import make_client
from pagedigest.services.sanitizer import collapse_whitespace

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch"
PLAYER_URL = "https://www.youtube.com/youtubei/v1/player"

# The mobile client is not subject to the bot checks applied to web clients.
_PLAYER_CLIENT = {"clientName": "ANDROID", "clientVersion": "20.10.38"}

_TITLE_RE = re.compile(r"<title>([^<]+)</title>")
_API_KEY_RE = re.compile(r'"INNERTUBE_API_KEY":"([^"]+)"')
_TITLE_SUFFIX = " - YouTube"


def _is_english(language_code: str) -> bool:
    return language_code == "en" or language_code.startswith("en-")


def parse_caption_tracks(player_response: dict) -> List[CaptionTrack]:
    raw_tracks = (
        player_response.get("captions", {})
        .get("playerCaptionsTracklistRenderer", {})
        .get("captionTracks", [])
    )
    return [
        CaptionTrack(
            language_code=track.get("languageCode", ""),
            is_auto_generated=track.get("kind") == "asr",
            track_url=track["baseUrl"],
        )
        for track in raw_tracks
        if track.get("baseUrl")
    ]


def select_best_track(tracks: List[CaptionTrack]) -> CaptionTrack:
    """Pick one track: manual English > manual any > auto English > auto any.

    Ties keep the order of *tracks*.
    """
    if not tracks:
        raise ValueError("select_best_track() needs at least one track")
    return min(
        tracks,
        key=lambda t: (t.is_auto_generated, not _is_english(t.language_code)),
    )


def parse_json3(body: str) -> List[str]:
    """Return the non-empty cue texts of a ``fmt=json3`` caption document.

    Raises:
        ValueError: if *body* is not JSON.
    """
    document = json.loads(body)
    if not isinstance(document, dict):
        raise ValueError("json3 caption document must be an object")
    events: List[Any] = document.get("events") or []
    lines: List[str] = []
    for event in events:
        text = "".join(seg.get("utf8", "") for seg in event.get("segs") or []).strip()
        if text:
            lines.append(text)
    return lines


def parse_xml(body: str) -> List[str]:
    """Return the non-empty cue texts of an XML timed-text document.

    Handles both ``<text>`` cues and the ``<p>`` cues of a format 3
    ``<timedtext>`` document; ``<p>`` elements anywhere else are not cues.
    """
    soup = BeautifulSoup(body, "xml")
    cues = soup.find_all("p") if soup.find("timedtext") else soup.find_all("text")
    lines: List[str] = []
    for cue in cues:
        # cue text is frequently entity-escaped a second time
        text = collapse_whitespace(html.unescape(cue.get_text()))
        if text:
            lines.append(text)
    return lines


def _page_title(page_html: str) -> str:
    match = _TITLE_RE.search(page_html)
    if not match:
        return "Untitled Video"
    title = html.unescape(match.group(1)).replace(_TITLE_SUFFIX, "").strip()
    return title or "Untitled Video"


async def _caption_lines(client: httpx.AsyncClient, track: CaptionTrack) -> List[str]:
    json3_url = httpx.URL(track.track_url).copy_set_param("fmt", "json3")
    response = await client.get(json3_url, headers={"Accept-Language": "en-US,en;q=0.9"})
    response.raise_for_status()
    body = response.text

    lines: List[str] = []
    if body:
        try:
            lines = parse_json3(body)
        except ValueError:
            lines = parse_xml(body)

    if not lines:
        logger.info("Captions: structured format empty, retrying raw XML track")
        response = await client.get(track.track_url)
        response.raise_for_status()
        if response.text:
            lines = parse_xml(response.text)

    return lines


async def _fetch_captions(video_id: str, client: httpx.AsyncClient) -> CaptionResult:
    page = await client.get(WATCH_URL, params={"v": video_id}, headers={"Accept": "text/html"})
    page.raise_for_status()
    page_html = page.text

    title = _page_title(page_html)
    api_key = _API_KEY_RE.search(page_html)
    if not api_key:
        raise ExtractionError("Could not find the video API key on the watch page")

    player = await client.post(
        PLAYER_URL,
        params={"key": api_key.group(1)},
        json={"context": {"client": _PLAYER_CLIENT}, "videoId": video_id},
        headers={"Accept": "application/json"},
    )
    player.raise_for_status()
    data = player.json()

    status = (data.get("playabilityStatus") or {}).get("status")
    if status != "OK":
        raise ExtractionError(f"Video not playable: {status or 'unknown'}")

    tracks = parse_caption_tracks(data)
    if not tracks:
        raise ExtractionError("No captions available for this video")

    track = select_best_track(tracks)
    logger.info(
        "Captions: using %s track (%s)",
        track.language_code,
        "auto-generated" if track.is_auto_generated else "manual",
    )

    lines = await _caption_lines(client, track)
    if not lines:
        raise ExtractionError("Caption tracks found but content was empty")

    transcript = "\n".join(lines)
    return CaptionResult(
        title=title,
        transcript=transcript,
        segment_count=len(lines),
        word_count=len(transcript.split()),
    )


async def fetch_captions(
    video_id: str,
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> CaptionResult:
    """Return the title and best caption transcript of *video_id*.

    Raises:
        ExtractionError: missing API key, unplayable video, no captions, empty
            captions, or any network failure along the way.
    """
    try:
        if client is None:
            async with make_client(settings, follow_redirects=True) as owned:
                return await _fetch_captions(video_id, owned)
        return await _fetch_captions(video_id, client)
    except (httpx.HTTPError, ValueError) as exc:
        raise ExtractionError(f"Caption retrieval failed for {video_id}: {exc}") from exc
