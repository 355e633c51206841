from typing import List

from pydantic import BaseModel, ConfigDict


class SitePage(BaseModel):
    """One fetched page of a crawled site."""

    model_config = ConfigDict(frozen=True)

    url: str
    title: str
    text: str
    word_count: int


class SiteResult(BaseModel):
    root_url: str
    title: str
    pages: List[SitePage]
    total_words: int


class SummaryChunk(BaseModel):
    """A contiguous run of site pages summarized in one oracle call."""

    pages: List[SitePage]
    word_count: int
