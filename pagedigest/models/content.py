"""Content acquired by one of the three extraction strategies.

``ContentItem`` is a closed union tagged by ``kind``: extraction, prompt selection
and persisted metadata all switch on that one field.
"""

from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from pagedigest.models.site import SitePage

ContentKind = Literal["web", "video", "site"]


class _ContentBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    source_url: str  # exact input URL
    canonical_key: str
    title: str
    raw_text: str
    word_count: int


class WebContent(_ContentBase):
    kind: Literal["web"] = "web"


class VideoContent(_ContentBase):
    kind: Literal["video"] = "video"
    video_id: str
    segment_count: int


class SiteContent(_ContentBase):
    kind: Literal["site"] = "site"
    root_url: str
    pages: List[SitePage]


ContentItem = Annotated[
    Union[WebContent, VideoContent, SiteContent],
    Field(discriminator="kind"),
]
