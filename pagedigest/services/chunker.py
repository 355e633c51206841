from typing import List

from pagedigest.models.site import SitePage, SummaryChunk


def partition_pages(pages: List[SitePage], budget: int) -> List[SummaryChunk]:
    """Greedily pack *pages*, in order, into chunks of at most *budget* words.

    A page is never split: one that alone exceeds the budget gets a chunk of
    its own.  Concatenating the chunks' pages reproduces *pages* exactly.
    """
    if budget <= 0:
        raise ValueError("budget must be positive")

    chunks: List[SummaryChunk] = []
    current: List[SitePage] = []
    words = 0

    for page in pages:
        if current and words + page.word_count > budget:
            chunks.append(SummaryChunk(pages=current, word_count=words))
            current, words = [], 0
        current.append(page)
        words += page.word_count

    if current:
        chunks.append(SummaryChunk(pages=current, word_count=words))

    return chunks


def format_pages(pages: List[SitePage]) -> str:
    """Render pages as one text block, each headed by its title and URL."""
    return "\n\n".join(f"### {page.title}\nURL: {page.url}\n\n{page.text}" for page in pages)
