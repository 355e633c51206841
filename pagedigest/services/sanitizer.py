import re
from typing import Tuple

from bs4 import BeautifulSoup, Comment

_WHITESPACE_RE = re.compile(r"\s+")

# Tags whose entire subtree is page furniture or scripting rather than content
_REMOVE_TAGS = {
    "script",
    "style",
    "noscript",
    "template",
    "nav",
    "header",
    "footer",
    "title",
}

_UNTITLED = "Untitled"


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def extract_title(soup: BeautifulSoup) -> str:
    """Return the ``<title>`` text, else the first ``<h1>``, else ``"Untitled"``."""
    for name in ("title", "h1"):
        tag = soup.find(name)
        if tag:
            text = collapse_whitespace(tag.get_text())
            if text:
                return text
    return _UNTITLED


def _strip_noise(soup: BeautifulSoup) -> BeautifulSoup:
    for tag in soup.find_all(_REMOVE_TAGS):
        tag.decompose()

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    return soup


def sanitize(html: str) -> BeautifulSoup:
    """Remove non-content elements from *html* and return the cleaned tree."""
    return _strip_noise(BeautifulSoup(html, "lxml"))


def page_text(html: str) -> Tuple[str, str]:
    """Return ``(title, text)`` for a raw HTML document.

    The title is read before any element is removed, so a heading inside
    ``<header>`` still counts.  Entities are decoded by the parser and
    whitespace is collapsed to single spaces.
    """
    soup = BeautifulSoup(html, "lxml")
    title = extract_title(soup)
    text = collapse_whitespace(_strip_noise(soup).get_text(separator=" "))
    return title, text
