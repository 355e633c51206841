"""Boilerplate deduplication for multi-page site crawls.

When a whole site is fetched, navigation bars, sidebars and footers that were
not wrapped in semantic tags survive as runs of text that are identical across
most pages.  This module finds those runs statistically: an 8-word sliding
window is taken over every page, and any window that occurs on at least 80 % of
the pages (rounded down) is treated as boilerplate and removed everywhere.

Legitimately repeated prose can be stripped too; the policy is kept in one
callable so it can be tuned or swapped without touching the crawler.
"""

import math
from collections import Counter
from typing import Callable, List, Set, Tuple

WINDOW_WORDS = 8
THRESHOLD = 0.8
MIN_PAGES = 3

BoilerplatePolicy = Callable[[List[str]], Tuple[List[str], bool]]


def _windows(words: List[str], size: int) -> Set[str]:
    """Return every distinct *size*-word window of *words*."""
    return {" ".join(words[i : i + size]) for i in range(len(words) - size + 1)}


def find_boilerplate(
    pages: List[str],
    window: int = WINDOW_WORDS,
    threshold: float = THRESHOLD,
) -> Set[str]:
    """Return the windows that appear on at least ``floor(len(pages) * threshold)`` pages."""
    if len(pages) < MIN_PAGES:
        return set()

    # Each page contributes at most one count per distinct window
    window_page_counts: Counter = Counter()
    for text in pages:
        window_page_counts.update(_windows(text.split(), window))

    min_count = math.floor(len(pages) * threshold)
    return {chunk for chunk, count in window_page_counts.items() if count >= min_count}


def _strip_windows(text: str, boilerplate: Set[str], window: int) -> str:
    """Drop every word covered by an occurrence of a boilerplate window."""
    words = text.split()
    keep = [True] * len(words)
    for i in range(len(words) - window + 1):
        if " ".join(words[i : i + window]) in boilerplate:
            for j in range(i, i + window):
                keep[j] = False
    return " ".join(word for word, kept in zip(words, keep) if kept)


def remove_boilerplate(
    pages: List[str],
    window: int = WINDOW_WORDS,
    threshold: float = THRESHOLD,
) -> Tuple[List[str], bool]:
    """Detect and remove cross-page boilerplate from *pages*.

    Fewer than three pages is always a no-op.

    Args:
        pages:      Per-page plain text.
        window:     Sliding-window width in words.
        threshold:  Fraction of pages a window must appear in to be pruned.

    Returns:
        A tuple of:
        - the cleaned page list (same length and order as *pages*)
        - a boolean indicating whether any boilerplate was detected and removed.
    """
    boilerplate = find_boilerplate(pages, window, threshold)
    if not boilerplate:
        return pages, False

    cleaned = [_strip_windows(text, boilerplate, window) for text in pages]
    return cleaned, True
