from typing import Literal

from pydantic import BaseModel, ConfigDict

# "site" covers both single-pass site summaries and per-chunk summaries.
SummaryKind = Literal["web", "video", "site", "site-merge"]


class SummaryMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    kind: SummaryKind
