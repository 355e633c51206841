"""Slug-addressed artifact storage and the cache lookups built on it.

Each summarized source is stored as three files sharing one slug::

    <home>/articles/<slug>.md     frontmatter + raw extracted content
    <home>/summaries/<slug>.md    frontmatter + summary
    <home>/html/<slug>.html       rendered summary page

Lookups scan the article frontmatter linearly, which is fine for a personal
archive.  An article whose summary file is missing counts as not cached.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Tuple
from urllib.parse import unquote, urlsplit

import yaml

from pagedigest.config import Settings
from pagedigest.errors import IdentityResolutionError, PersistenceError
from pagedigest.models.artifact import CachedArtifact
from pagedigest.models.content import ContentItem, ContentKind, SiteContent
from pagedigest.services.identity import normalize
from pagedigest.services.renderer import render_page

logger = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"\A---\n(.*?)\n---\n*", re.DOTALL)
_KINDS = ("web", "video", "site")


def _escape_yaml(value: str) -> str:
    """Escape characters that would break inline double-quoted YAML strings."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def make_frontmatter(item: ContentItem, created_at: datetime) -> str:
    """Return a YAML frontmatter block describing *item*."""
    lines = [
        "---",
        f'title: "{_escape_yaml(item.title)}"',
        f'url: "{_escape_yaml(item.source_url)}"',
        f'key: "{_escape_yaml(item.canonical_key)}"',
        f'date: "{created_at.isoformat()}"',
        f"type: {item.kind}",
        f"words: {item.word_count}",
    ]
    if isinstance(item, SiteContent):
        lines.append(f"pages: {len(item.pages)}")
    lines.append("---")
    return "\n".join(lines)


def split_frontmatter(text: str) -> Tuple[dict, str]:
    """Return ``(metadata, body)``; metadata is empty when there is no frontmatter."""
    match = _FRONTMATTER_RE.match(text)
    if not match:
        return {}, text.strip()
    try:
        meta = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        logger.warning("Unreadable frontmatter: %s", exc)
        meta = {}
    if not isinstance(meta, dict):
        meta = {}
    return meta, text[match.end():].strip()


def _parse_date(value, fallback: Path) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            pass
    return datetime.fromtimestamp(fallback.stat().st_mtime)


class ArtifactStore:
    def __init__(self, settings: Settings):
        self.articles_dir = settings.articles_dir
        self.summaries_dir = settings.summaries_dir
        self.html_dir = settings.html_dir

    def ensure_dirs(self) -> None:
        try:
            for directory in (self.articles_dir, self.summaries_dir, self.html_dir):
                directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Could not create storage directories: {exc}") from exc

    def html_path(self, slug: str) -> Path:
        return self.html_dir / f"{slug}.html"

    # -- writing ------------------------------------------------------------

    def save(
        self,
        slug: str,
        item: ContentItem,
        summary: str,
        html: str,
        created_at: Optional[datetime] = None,
    ) -> Path:
        """Write the article, summary and HTML files for *slug*; return the HTML path."""
        frontmatter = make_frontmatter(item, created_at or datetime.now())
        html_path = self.html_path(slug)
        try:
            (self.articles_dir / f"{slug}.md").write_text(
                f"{frontmatter}\n\n{item.raw_text}", encoding="utf-8"
            )
            (self.summaries_dir / f"{slug}.md").write_text(
                f"{frontmatter}\n\n{summary}", encoding="utf-8"
            )
            html_path.write_text(html, encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Could not save artifacts for {slug}: {exc}") from exc
        return html_path

    # -- reading ------------------------------------------------------------

    def _read_meta(self, path: Path) -> Optional[dict]:
        try:
            text = path.read_text(encoding="utf-8")
        except (FileNotFoundError, NotADirectoryError):
            return None
        meta, _ = split_frontmatter(text)
        return meta

    def _iter_article_meta(self) -> Iterator[Tuple[str, dict, Path]]:
        if not self.articles_dir.is_dir():
            return
        for path in sorted(self.articles_dir.glob("*.md")):
            meta = self._read_meta(path)
            if meta and meta.get("url"):
                yield path.stem, meta, path

    def read_summary(self, slug: str) -> Optional[CachedArtifact]:
        """Return the stored summary for *slug*, or *None* when it is missing."""
        path = self.summaries_dir / f"{slug}.md"
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

        meta, body = split_frontmatter(text)
        return self._to_artifact(slug, meta, body, path)

    def _to_artifact(self, slug: str, meta: dict, body: str, path: Path) -> CachedArtifact:
        url = str(meta.get("url", ""))
        kind = meta.get("type") if meta.get("type") in _KINDS else "web"
        return CachedArtifact(
            slug=slug,
            canonical_key=str(meta.get("key") or url),
            source_url=url,
            title=str(meta.get("title") or slug),
            kind=kind,
            summary_text=body,
            created_at=_parse_date(meta.get("date"), path),
            word_count=int(meta.get("words") or 0),
        )

    def find_cached(
        self, canonical_key: str, kind: Optional[ContentKind] = None
    ) -> Optional[CachedArtifact]:
        """Return the newest stored artifact whose source normalizes to *canonical_key*.

        Stored URLs are re-normalized on every lookup, so stored keys never go
        stale when normalization changes.
        """
        matches: List[Tuple[datetime, str]] = []
        for slug, meta, path in self._iter_article_meta():
            stored_kind = meta.get("type") if meta.get("type") in _KINDS else "web"
            if kind is not None and stored_kind != kind:
                continue
            try:
                stored_key = normalize(str(meta["url"]), stored_kind)
            except IdentityResolutionError:
                logger.warning("Ignoring artifact %s with malformed url %r", slug, meta["url"])
                continue
            if stored_key == canonical_key:
                matches.append((_parse_date(meta.get("date"), path), slug))

        for _, slug in sorted(matches, reverse=True):
            artifact = self.read_summary(slug)
            if artifact is not None:
                return artifact
        return None

    def find_by_url(self, url: str, kind: Optional[ContentKind] = None) -> Optional[str]:
        artifact = self.find_cached(normalize(url, kind), kind)
        return artifact.slug if artifact else None

    def latest_slug(self) -> Optional[str]:
        """Return the slug of the most recently written summary."""
        if not self.summaries_dir.is_dir():
            return None
        summaries = list(self.summaries_dir.glob("*.md"))
        if not summaries:
            return None
        newest = max(summaries, key=lambda p: p.stat().st_mtime)
        return newest.stem

    def resolve_source_url(self, url: str) -> Optional[str]:
        """Map a ``file://`` URL of one of our own HTML pages back to its original source."""
        parsed = urlsplit(url)
        if parsed.scheme != "file":
            return None

        path = Path(unquote(parsed.path))
        if path.suffix != ".html" or path.parent.resolve() != self.html_dir.resolve():
            return None

        meta = self._read_meta(self.articles_dir / f"{path.stem}.md")
        if not meta or not meta.get("url"):
            return None
        return str(meta["url"])

    def regenerate_html(self) -> List[str]:
        """Re-render the HTML page of every stored summary; return the slugs written.

        Summaries without frontmatter are skipped.
        """
        if not self.summaries_dir.is_dir():
            return []
        self.ensure_dirs()

        regenerated: List[str] = []
        for path in sorted(self.summaries_dir.glob("*.md")):
            meta, body = split_frontmatter(path.read_text(encoding="utf-8"))
            if not meta:
                logger.warning("Skipping %s: no frontmatter", path.name)
                continue

            artifact = self._to_artifact(path.stem, meta, body, path)
            html = render_page(
                title=artifact.title,
                url=artifact.source_url,
                kind=artifact.kind,
                summary=artifact.summary_text,
                words=artifact.word_count,
                created=artifact.created_at.date(),
            )
            try:
                self.html_path(artifact.slug).write_text(html, encoding="utf-8")
            except OSError as exc:
                raise PersistenceError(f"Could not write HTML for {artifact.slug}: {exc}") from exc
            regenerated.append(artifact.slug)

        logger.info("Regenerated %d HTML pages", len(regenerated))
        return regenerated
