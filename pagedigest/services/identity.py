"""URL identity: canonical dedup keys, video detection, slug generation."""

import re
import unicodedata
from datetime import date
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from pagedigest.errors import IdentityResolutionError
from pagedigest.models.content import ContentKind

# watch?v=, shorts/, live/ on youtube.com and the youtu.be short host
_VIDEO_ID_RE = re.compile(
    r"(?:youtube\.com/(?:watch\?(?:[^#]*&)?v=|shorts/|live/)|youtu\.be/)([A-Za-z0-9_-]{11})"
)

_SLUG_MAX_LEN = 60


def extract_video_id(url: str) -> Optional[str]:
    """Return the 11-character video ID embedded in *url*, or *None*."""
    match = _VIDEO_ID_RE.search(url)
    return match.group(1) if match else None


def is_video_url(url: str) -> bool:
    return extract_video_id(url) is not None


def _split(url: str):
    parsed = urlsplit(url.strip())
    if not parsed.scheme or not parsed.netloc:
        raise IdentityResolutionError(f"Not an absolute URL: {url!r}")
    return parsed


def root_url(url: str) -> str:
    """Return ``scheme://host`` for *url*."""
    parsed = _split(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def normalize(url: str, kind: Optional[ContentKind] = None) -> str:
    """Return the canonical key used to detect that two URLs are the same source.

    * video URLs collapse to ``video:<id>`` whatever their host shape or parameters
    * ``kind="site"`` keys on the origin only
    * any other URL loses its fragment and a single trailing slash
    """
    video_id = extract_video_id(url)
    if video_id and kind != "site":
        return f"video:{video_id}"

    if kind == "site":
        return root_url(url)

    parsed = _split(url)
    normalized = urlunsplit(parsed._replace(fragment=""))
    if normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized


def generate_slug(title: str, today: Optional[date] = None) -> str:
    """Build a date-prefixed, filesystem-safe slug from *title*.

    ``"Hello, World!"`` on 2024-05-01 becomes ``2024-05-01_hello-world``.
    """
    today = today or date.today()

    slug = unicodedata.normalize("NFKD", title)
    slug = slug.encode("ascii", "ignore").decode("ascii").lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug[:_SLUG_MAX_LEN].strip("-")

    return f"{today.isoformat()}_{slug or 'untitled'}"
