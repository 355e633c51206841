from pydantic import BaseModel, ConfigDict


class CaptionTrack(BaseModel):
    model_config = ConfigDict(frozen=True)

    language_code: str
    is_auto_generated: bool
    track_url: str


class CaptionResult(BaseModel):
    title: str
    transcript: str
    segment_count: int
    word_count: int
