from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from pagedigest.models.content import ContentKind


class CachedArtifact(BaseModel):
    """A persisted summary bundle as found by the cache layer."""

    model_config = ConfigDict(frozen=True)

    slug: str
    canonical_key: str
    source_url: str
    title: str
    kind: ContentKind
    summary_text: str
    created_at: datetime
    word_count: int = 0


class SummarizeResult(BaseModel):
    slug: str
    title: str
    summary: str
    html_path: str
    cached: bool = False
    kind: Optional[ContentKind] = None
