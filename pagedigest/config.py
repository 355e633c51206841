from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_HOME = Path.home() / ".pagedigest"

_CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PAGEDIGEST_",
        env_file=(".env", str(_DEFAULT_HOME / ".env")),
        extra="ignore",
    )

    # Storage
    home: Path = Field(default=_DEFAULT_HOME)

    # Summarization oracle
    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PAGEDIGEST_API_KEY", "ANTHROPIC_API_KEY"),
    )
    model: str = "claude-sonnet-4-5"
    max_tokens: int = 4096
    summarize_timeout: float = 120.0  # seconds

    # Site handling
    context_budget_words: int = Field(default=60_000, gt=0)
    min_page_words: int = 20
    boilerplate_window: int = Field(default=8, ge=1)
    boilerplate_ratio: float = Field(default=0.8, gt=0, le=1)
    max_concurrency: int = Field(default=8, ge=1)

    # HTTP
    http_timeout: float = 15.0
    user_agent: str = _CHROME_UA

    # Controlled browser
    cdp_port: int = 2262
    eval_timeout: float = 10.0
    open_timeout: float = 20.0
    poll_interval: float = 1.0
    settle_delay: float = 1.5
    open_command: str | None = None  # e.g. "qutebrowser --target tab-bg-silent"

    # Discussion sessions
    discuss_command: str = "claude"
    tmux_target: str = "main"

    @property
    def articles_dir(self) -> Path:
        return self.home / "articles"

    @property
    def summaries_dir(self) -> Path:
        return self.home / "summaries"

    @property
    def html_dir(self) -> Path:
        return self.home / "html"

    @property
    def cdp_endpoint(self) -> str:
        return f"http://localhost:{self.cdp_port}"
