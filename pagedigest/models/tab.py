from pydantic import BaseModel, ConfigDict


class Tab(BaseModel):
    """A page target exposed by the controlled browser."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    url: str
